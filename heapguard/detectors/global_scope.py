#=============================================================================
# File        : heapguard/detectors/global_scope.py
# Project     : HeapGuard v1.0
# Component   : Global-Scope Detector - Leaks Anchored on window/global
# Description : Scores user variables hanging off the global object
#               • Global-scope membership from names and referrer edges
#               • Built-in globals and benign types excluded
#               • Size, vocabulary and namespace scoring clamped to 95
#               • Bucketed recommendations and per-finding fixes
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+
# Standards   : PEP 8, Type Hints, Production Safety
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: time, logging, config, model, naming, report
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..config import KB, Thresholds
from ..model import HeapNode, NodeType
from ..naming import (BENIGN_TYPES, container_bucket, extract_variable_name,
                      global_location, has_stateful_container_name, infer_edge_type,
                      is_builtin_global, is_global_scope, is_namespaced, is_symbol_name)
from ..report import (GlobalScopeReport, ScoredFinding, SeverityLevel, format_bytes,
                      severity_for_size)

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

BASE_CONFIDENCE = 50
MAX_CONFIDENCE = 95
SUSPICIOUS_CONFIDENCE = 60

# Performance metrics for overhead monitoring
_perf_stats = {
    'total_scans': 0,
    'nodes_scanned': 0,
    'globals_scored': 0,
    'findings_reported': 0,
    'scan_overhead_ns': 0,
}


def _coerce(nodes: Iterable[Union[HeapNode, Mapping[str, Any]]]) -> List[HeapNode]:
    return [n if isinstance(n, HeapNode) else HeapNode.from_dict(n) for n in nodes]


def score_global(node: HeapNode, variable_name: str) -> int:
    """Leak confidence (0-95) for a global-scope candidate."""
    confidence = BASE_CONFIDENCE

    size = node.self_size
    if size > 100 * KB:
        confidence += 30
    elif size > 10 * KB:
        confidence += 20
    elif size > 1 * KB:
        confidence += 10

    if has_stateful_container_name(variable_name):
        confidence += 20

    if is_namespaced(node.name):
        confidence += 15

    if node.type is NodeType.ARRAY:
        confidence += 10
    elif node.type is NodeType.OBJECT:
        confidence += 5

    return max(0, min(MAX_CONFIDENCE, confidence))


def suggest_fix(variable_name: str, node_type: NodeType) -> str:
    bucket = container_bucket(variable_name, node_type)
    if bucket == 'cache':
        return f"Implement cache size limits and expiration for {variable_name}"
    if bucket == 'array':
        return f"Clear array contents: {variable_name}.length = 0 or implement array size limits"
    if bucket == 'collection':
        return f"Clear collection: {variable_name}.clear() or implement LRU eviction"
    return f"Clear {variable_name} when no longer needed"


def _is_candidate(node: HeapNode) -> bool:
    if not is_global_scope(node):
        return False
    if node.type in BENIGN_TYPES:
        return False
    if is_symbol_name(node.name):
        return False
    return not is_builtin_global(extract_variable_name(node.name))


def _summary(findings: List[ScoredFinding]) -> str:
    critical = sum(1 for f in findings if f.severity is SeverityLevel.CRITICAL)
    high = sum(1 for f in findings if f.severity is SeverityLevel.HIGH)
    if critical:
        return f"CRITICAL: {critical} critical global variable leaks found!"
    if high:
        return f"HIGH: {high} high-impact global variable leaks found"
    if findings:
        return f"{len(findings)} potential global variable issues found"
    return "No significant global variable leaks detected"


def _recommendations(findings: List[ScoredFinding], thresholds: Thresholds) -> List[str]:
    if not findings:
        return ["Global variable usage appears healthy"]

    recommendations: List[str] = []
    large = [f for f in findings if f.self_size > thresholds.large_object]
    if large:
        recommendations.append(f"{len(large)} global variables > 1MB - implement immediate cleanup")

    buckets: Dict[str, int] = {}
    for f in findings:
        bucket = container_bucket(f.name, NodeType.parse(f.type))
        if bucket:
            buckets[bucket] = buckets.get(bucket, 0) + 1
    if buckets.get('cache'):
        recommendations.append(f"{buckets['cache']} cache-like globals - add size limits and expiration")
    if buckets.get('array'):
        recommendations.append(f"{buckets['array']} array globals - implement periodic cleanup or size limits")
    if buckets.get('collection'):
        recommendations.append(f"{buckets['collection']} Map/Set globals - clear them or bound them with LRU eviction")

    recommendations.append("Avoid attaching application state directly to window/global")
    recommendations.append("Scope long-lived data to modules and release it on teardown")
    return recommendations


def classify_global_scope(nodes: Iterable[Union[HeapNode, Mapping[str, Any]]],
                          thresholds: Optional[Thresholds] = None) -> GlobalScopeReport:
    """
    Find global-scope variables that look like leak sources.

    Args:
        nodes: flat node list of one snapshot (HeapNodes or node dicts)
        thresholds: size thresholds, defaults when omitted

    Returns:
        GlobalScopeReport with suspicious findings sorted by retained
        size, largest first.
    """
    start_ns = time.perf_counter_ns()
    t = thresholds or Thresholds()
    heap_nodes = _coerce(nodes)

    scored = 0
    suspicious: List[ScoredFinding] = []
    for node in heap_nodes:
        if not _is_candidate(node):
            continue
        scored += 1

        variable_name = extract_variable_name(node.name)
        confidence = score_global(node, variable_name)
        severity = severity_for_size(node.self_size, t)

        if confidence <= SUSPICIOUS_CONFIDENCE:
            continue
        if severity < SeverityLevel.HIGH and node.self_size <= t.suspicious_global:
            continue

        suspicious.append(ScoredFinding(
            name=variable_name,
            type=node.type.value,
            self_size=node.self_size,
            retained_size=node.retained_size,
            confidence=confidence,
            severity=severity,
            description=(f"Global variable '{variable_name}' consuming "
                         f"{format_bytes(node.self_size)} of memory ({node.type.value})"),
            suggested_fix=suggest_fix(variable_name, node.type),
            category='global_variable',
            location=global_location(node.name),
            edge_type=infer_edge_type(node.name),
            objects=(node.id,),
        ))

    suspicious.sort(key=lambda f: f.retained_size, reverse=True)

    elapsed_ns = time.perf_counter_ns() - start_ns
    _perf_stats['total_scans'] += 1
    _perf_stats['nodes_scanned'] += len(heap_nodes)
    _perf_stats['globals_scored'] += scored
    _perf_stats['findings_reported'] += len(suspicious)
    _perf_stats['scan_overhead_ns'] += elapsed_ns
    _logger.debug(f"Global scan: {len(heap_nodes)} nodes, {scored} globals, "
                  f"{len(suspicious)} suspicious in {elapsed_ns / 1e6:.2f}ms")

    return GlobalScopeReport(
        total_global_variables=scored,
        suspicious=suspicious,
        total_memory_impact=sum(f.self_size for f in suspicious),
        summary=_summary(suspicious),
        recommendations=_recommendations(suspicious, t),
    )


def get_performance_stats() -> Dict[str, Any]:
    """Get global-scope detector performance statistics."""
    stats = dict(_perf_stats)
    scans = stats['total_scans']
    stats['avg_overhead_ms'] = (stats['scan_overhead_ns'] / scans / 1e6) if scans else 0.0
    return stats


def reset_performance_stats() -> None:
    """Reset performance statistics (for testing)."""
    for key in _perf_stats:
        _perf_stats[key] = 0
