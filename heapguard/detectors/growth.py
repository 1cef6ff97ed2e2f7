#=============================================================================
# File        : heapguard/detectors/growth.py
# Project     : HeapGuard v1.0
# Component   : Growth Detector - Before/After Snapshot Comparison
# Description : Surfaces growth patterns between two snapshots of one app
#               • Name/type identity pairing to isolate what grew
#               • Array growth, listener accumulation and closure retention
#               • Shared leak-confidence model (size, growth, object count)
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+
# Standards   : PEP 8, Type Hints, Production Safety
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: collections, time, logging, config, model, naming, report
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..config import Thresholds
from ..model import HeapNode, NodeType
from ..naming import is_closure, is_listener_name
from ..report import ComparisonReport, ScoredFinding, SeverityLevel, format_bytes

# Configure safe logging defaults
_logger = logging.getLogger(__name__)
_logger.setLevel(logging.WARNING)  # Only WARN/ERROR by default

# Add console handler only if none exists
if not _logger.handlers and not logging.getLogger().handlers:
    _console_handler = logging.StreamHandler()
    _console_handler.setLevel(logging.WARNING)
    _formatter = logging.Formatter('[HeapGuard] %(levelname)s: %(message)s')
    _console_handler.setFormatter(_formatter)
    _logger.addHandler(_console_handler)

MAX_CONFIDENCE = 95
RECOMMENDATION_CONFIDENCE = 70
TOP_OBJECTS = 10

# Performance metrics for overhead monitoring
_perf_stats = {
    'total_comparisons': 0,
    'growth_candidates': 0,
    'patterns_detected': 0,
    'comparison_overhead_ns': 0,
}

NodeInput = Union[HeapNode, Mapping[str, Any]]


def calculate_leak_confidence(size: int, growth_ratio: float, object_count: int,
                              thresholds: Optional[Thresholds] = None) -> int:
    """
    Leak confidence (0-95) from aggregate size, growth ratio and count.

    Each factor contributes its highest matching tier only.
    """
    t = thresholds or Thresholds()
    confidence = 0

    if size > t.very_large_object:
        confidence += 40
    elif size > t.large_object:
        confidence += 25
    elif size > t.suspicious_object:
        confidence += 15

    if growth_ratio > t.massive_growth_ratio:
        confidence += 40
    elif growth_ratio > t.critical_growth_ratio:
        confidence += 25
    elif growth_ratio > t.suspicious_growth_ratio:
        confidence += 15

    if object_count > 1000:
        confidence += 15
    elif object_count > 100:
        confidence += 10

    return min(confidence, MAX_CONFIDENCE)


def _coerce(nodes: Iterable[NodeInput]) -> List[HeapNode]:
    return [n if isinstance(n, HeapNode) else HeapNode.from_dict(n) for n in nodes]


def growth_candidates(before: List[HeapNode], after: List[HeapNode]) -> List[HeapNode]:
    """
    After-snapshot nodes that are new or bigger than their before match.

    Node ids are not stable across snapshots, so nodes are paired by
    (name, type): within each key the largest after-node pairs with the
    largest before-node, and so on down. Unpaired after-nodes are new.
    """
    by_key: Dict[Tuple[str, NodeType], List[HeapNode]] = defaultdict(list)
    for node in before:
        by_key[(node.name, node.type)].append(node)
    for bucket in by_key.values():
        bucket.sort(key=lambda n: (n.self_size, n.retained_size), reverse=True)

    grouped_after: Dict[Tuple[str, NodeType], List[HeapNode]] = defaultdict(list)
    for node in after:
        grouped_after[(node.name, node.type)].append(node)

    grown: List[HeapNode] = []
    for key, nodes in grouped_after.items():
        matches = by_key.get(key, [])
        ranked = sorted(nodes, key=lambda n: (n.self_size, n.retained_size), reverse=True)
        for rank, node in enumerate(ranked):
            if rank >= len(matches):
                grown.append(node)
                continue
            previous = matches[rank]
            if node.self_size > previous.self_size or node.retained_size > previous.retained_size:
                grown.append(node)

    # Keep the after snapshot's own order
    order = {id(n): i for i, n in enumerate(after)}
    grown.sort(key=lambda n: order[id(n)])
    return grown


@dataclass(frozen=True)
class _GrowthPattern:
    category: str
    node_type: str
    severity: SeverityLevel
    matches: Callable[[HeapNode, Thresholds], bool]
    size_of: Callable[[HeapNode], int]
    growth_ratio: Callable[[int], float]
    describe: Callable[[int, int], str]
    suggested_fix: str
    recommend: Callable[[int, int], str]
    top_objects: Optional[int] = TOP_OBJECTS


PATTERNS: Tuple[_GrowthPattern, ...] = (
    _GrowthPattern(
        category='array_growth',
        node_type='array',
        severity=SeverityLevel.HIGH,
        matches=lambda n, t: n.type is NodeType.ARRAY and n.self_size > t.suspicious_object,
        size_of=lambda n: n.self_size,
        growth_ratio=lambda count: 2.0 if count > 5 else 1.0,
        describe=lambda count, size: f"{count} large arrays totalling {format_bytes(size)}",
        suggested_fix="Review array usage and implement cleanup: array.length = 0 or proper element removal",
        recommend=lambda count, size: (f"Array growth: {count} arrays hold {format_bytes(size)} - "
                                       f"clear or cap arrays that grow with each user action"),
    ),
    _GrowthPattern(
        category='event_listeners',
        node_type='listener',
        severity=SeverityLevel.HIGH,
        matches=lambda n, t: is_listener_name(n.name) and n.self_size > t.listener_min_size,
        size_of=lambda n: n.self_size,
        growth_ratio=lambda count: count / 10,
        describe=lambda count, size: f"{count} event listeners accumulated ({format_bytes(size)})",
        suggested_fix="Remove event listeners: element.removeEventListener() in cleanup functions",
        recommend=lambda count, size: (f"Event listeners: {count} listeners accumulated - "
                                       f"pair every addEventListener with removeEventListener"),
        top_objects=None,
    ),
    _GrowthPattern(
        category='closures',
        node_type='closure',
        severity=SeverityLevel.MEDIUM,
        matches=lambda n, t: is_closure(n) and n.retained_size > t.suspicious_object,
        size_of=lambda n: n.retained_size,
        growth_ratio=lambda count: 0.0,
        describe=lambda count, size: f"{count} closures retaining {format_bytes(size)}",
        suggested_fix="Review closure scope - avoid capturing large objects in timer/event callbacks",
        recommend=lambda count, size: (f"Closures: {count} closures retain {format_bytes(size)} - "
                                       f"release timers and callbacks on teardown"),
    ),
)


def _scan(pattern: _GrowthPattern, nodes: List[HeapNode],
          t: Thresholds) -> Optional[Tuple[ScoredFinding, int, str]]:
    matched = [n for n in nodes if pattern.matches(n, t)]
    if not matched:
        return None

    matched.sort(key=pattern.size_of, reverse=True)
    count = len(matched)
    total = sum(pattern.size_of(n) for n in matched)
    kept = matched if pattern.top_objects is None else matched[:pattern.top_objects]

    finding = ScoredFinding(
        name=pattern.category,
        type=pattern.node_type,
        self_size=sum(n.self_size for n in matched),
        retained_size=sum(n.retained_size for n in matched),
        confidence=calculate_leak_confidence(total, pattern.growth_ratio(count), count, t),
        severity=pattern.severity,
        description=pattern.describe(count, total),
        suggested_fix=pattern.suggested_fix,
        category=pattern.category,
        edge_type='n/a',
        object_count=count,
        objects=tuple(n.name or f"@{n.id}" for n in kept),
    )
    return finding, total, pattern.recommend(count, total)


def compare_snapshots(before: Iterable[NodeInput],
                      after: Iterable[NodeInput],
                      thresholds: Optional[Thresholds] = None) -> ComparisonReport:
    """
    Compare two snapshots of the same application.

    Only the part of `after` that grew relative to `before` is scanned,
    so comparing a snapshot with itself reports nothing.
    """
    start_ns = time.perf_counter_ns()
    t = thresholds or Thresholds()
    before_nodes = _coerce(before)
    after_nodes = _coerce(after)

    candidates = growth_candidates(before_nodes, after_nodes)

    scanned: List[Tuple[ScoredFinding, int, str]] = []
    for pattern in PATTERNS:
        result = _scan(pattern, candidates, t)
        if result is not None:
            scanned.append(result)
    scanned.sort(key=lambda item: item[1], reverse=True)

    findings = [finding for finding, _, _ in scanned]
    recommendations = [text for finding, _, text in scanned
                       if finding.confidence > RECOMMENDATION_CONFIDENCE]

    elapsed_ns = time.perf_counter_ns() - start_ns
    _perf_stats['total_comparisons'] += 1
    _perf_stats['growth_candidates'] += len(candidates)
    _perf_stats['patterns_detected'] += len(findings)
    _perf_stats['comparison_overhead_ns'] += elapsed_ns
    _logger.debug(f"Comparison: {len(before_nodes)} -> {len(after_nodes)} nodes, "
                  f"{len(candidates)} grew, {len(findings)} patterns")

    return ComparisonReport(
        findings=findings,
        recommendations=recommendations,
        before_size=sum(n.self_size for n in before_nodes),
        after_size=sum(n.self_size for n in after_nodes),
    )


def get_performance_stats() -> Dict[str, Any]:
    """Get growth detector performance statistics."""
    stats = dict(_perf_stats)
    runs = stats['total_comparisons']
    stats['avg_overhead_ms'] = (stats['comparison_overhead_ns'] / runs / 1e6) if runs else 0.0
    return stats


def reset_performance_stats() -> None:
    """Reset performance statistics (for testing)."""
    for key in _perf_stats:
        _perf_stats[key] = 0
