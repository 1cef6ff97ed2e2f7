#=============================================================================
# File        : heapguard/tracer.py
# Project     : HeapGuard v1.0
# Component   : Retainer Tracer - Why Is This Object Still Alive
# Description : Follows referrer edges from a node back to what roots it
#               • Strong referrers preferred, cycles and hop limit respected
#               • Root type and detachment classification
#               • Template explanation and advice per root type
#               • Batch tracing with leak totals
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, AsyncIO
# Standards   : PEP 8, Type Hints, Production Safety
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: logging, cache, model, naming, report
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from .cache import ObjectDataCache
from .config import KB, MB
from .errors import ProviderError
from .model import HeapEdge, HeapNode, NodeType
from .naming import is_closure, is_detached_name, is_timer_name, root_type_for_name
from .report import BatchTraceReport, RetainerInfo, TraceResult, format_bytes

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

ROOT_TYPES = ('gc-root', 'global', 'closure', 'dom', 'framework', 'transient', 'unknown')
LIKELY_LEAK_CONFIDENCE = 0.5
LONG_PATH_HOPS = 5

Hop = Tuple[Optional[HeapEdge], HeapNode]


def _label(node: HeapNode) -> str:
    return f"{node.name or node.type.value} (@{node.id})"


def _is_array(node: HeapNode) -> bool:
    return node.type is NodeType.ARRAY or 'Array' in node.name


def _is_function(node: HeapNode) -> bool:
    return is_closure(node) or 'Closure' in node.name or 'Function' in node.name


class RetainerTracer:
    """
    Explains why nodes of one snapshot are retained.

    Referrers are resolved through the shared ObjectDataCache, so tracing
    many nodes of a warm snapshot costs one warm-up in total.
    """

    def __init__(self, cache: ObjectDataCache, snapshot_id: str, max_hops: int = 20) -> None:
        if max_hops < 1:
            raise ValueError(f"max_hops must be >= 1, got {max_hops}")
        self._cache = cache
        self._snapshot_id = snapshot_id
        self._max_hops = max_hops

    async def _resolve(self, node_id: str) -> Optional[HeapNode]:
        try:
            return await self._cache.get(self._snapshot_id, node_id)
        except ProviderError as e:
            _logger.warning(f"Skipping referrer @{node_id}: {e}")
            return None

    async def find_retainer_path(self, node: HeapNode) -> Tuple[List[Hop], bool]:
        """
        Walk referrers from `node` toward a root.

        Returns:
            (hops, has_cycle) with hops ordered target first; each hop
            carries the edge that leads from that referrer to the previous
            hop (None for the target itself).
        """
        hops: List[Hop] = [(None, node)]
        seen = {node.id}
        has_cycle = False
        current = node

        for _ in range(self._max_hops):
            if current is not node and root_type_for_name(current.name) is not None:
                break
            referrers = [e for e in current.referrers if e.from_node]
            # Strong referrers first, original order within each group
            ordered = ([e for e in referrers if not e.is_weak]
                       + [e for e in referrers if e.is_weak])
            step: Optional[Hop] = None
            for edge in ordered:
                if edge.from_node in seen:
                    has_cycle = True
                    continue
                parent = await self._resolve(edge.from_node)
                if parent is not None:
                    step = (edge, parent)
                    break
            if step is None:
                break
            hops.append(step)
            seen.add(step[1].id)
            current = step[1]
        else:
            if root_type_for_name(current.name) is None:
                _logger.debug(f"Retainer walk for @{node.id} stopped at {self._max_hops} hops")

        return hops, has_cycle

    @staticmethod
    def describe_path(hops: List[Hop]) -> List[str]:
        """Human-readable hop descriptions ordered root -> target."""
        described: List[str] = []
        last = len(hops) - 1
        for index in range(last, -1, -1):
            text = _label(hops[index][1])
            if index < last:
                # The edge stored on the next hop is the reference into this one
                inbound = hops[index + 1][0]
                if inbound is not None and inbound.name:
                    text = f"[{inbound.name}] {text}"
            described.append(text)
        return described

    @staticmethod
    def classify_root(hops: List[Hop]) -> str:
        root = hops[-1][1]
        root_type = root_type_for_name(root.name)
        if root_type is not None:
            return root_type
        # Unrecognized root: fall back to what the path passes through
        for _, hop_node in reversed(hops[1:]):
            named = root_type_for_name(hop_node.name)
            if named is not None:
                return named
            if is_closure(hop_node):
                return 'closure'
        return 'unknown'

    def analyze_path(self, node: HeapNode, hops: List[Hop], has_cycle: bool) -> RetainerInfo:
        return RetainerInfo(
            root_type=self.classify_root(hops),
            path_length=len(hops),
            is_detached=any(is_detached_name(hop_node.name) for _, hop_node in hops),
            retainer_count=len(node.referrers),
            has_circular_refs=has_cycle,
        )

    @staticmethod
    def assess(node: HeapNode, info: RetainerInfo, path: List[str]) -> Tuple[float, List[str]]:
        """Leak confidence in [0, 1] and the factors that produced it."""
        confidence = 0.0
        factors: List[str] = []
        size = node.self_size
        timer_related = is_timer_name(node.name) or any(is_timer_name(p) for p in path)

        if size > 5 * MB:
            confidence += 0.4
            factors.append('extremely large size (>5MB)')
        elif size > 1 * MB:
            confidence += 0.2
            factors.append('large size (>1MB)')
        elif size > 100 * KB:
            confidence += 0.1
            factors.append('moderate size (>100KB)')

        if timer_related:
            confidence += 0.4
            factors.append('timer/interval related object (common leak source)')
            if info.root_type == 'closure':
                confidence += 0.3
                factors.append('timer callback capturing closure data')

        if _is_array(node) and size > 50 * KB:
            estimated_elements = size // 8
            if estimated_elements > 1000:
                confidence += 0.3
                factors.append(f'large array with ~{estimated_elements:,} elements (possible accumulation)')
            if info.root_type in ('closure', 'global'):
                confidence += 0.2
                factors.append('array retained in closure/global scope')

        if _is_function(node):
            confidence += 0.2
            factors.append('closure object detected')
            if size > 200 * KB:
                confidence += 0.2
                factors.append('large closure suggesting captured variables')
            if info.root_type == 'global':
                confidence += 0.2
                factors.append('closure retained globally (timer callbacks?)')

        if info.is_detached:
            confidence += 0.4
            factors.append('detached from its owning structure')

        if info.root_type == 'framework' and size > 500 * KB:
            confidence += 0.2
            factors.append('large framework object that may not be cleaned up')

        if info.path_length > LONG_PATH_HOPS:
            confidence += 0.1
            factors.append(f'long retainer path ({info.path_length} hops)')

        if info.root_type == 'transient':
            confidence -= 0.3
            factors.append('held by a short-lived request/response object')

        if len(factors) >= 3:
            confidence += 0.1
            factors.append('multiple leak indicators present')

        return max(0.0, min(1.0, confidence)), factors

    @staticmethod
    def advise(node: HeapNode, info: RetainerInfo, path: List[str]) -> str:
        size = format_bytes(node.self_size)
        if is_timer_name(node.name) or any(is_timer_name(p) for p in path):
            return (f"Timer/interval leak ({size}). Clear intervals with clearInterval() and "
                    f"timeouts with clearTimeout() in cleanup code, and avoid capturing large "
                    f"objects in timer callbacks.")
        if _is_array(node) and node.self_size > 50 * KB:
            return (f"Array accumulation (~{node.self_size // 8:,} elements, {size}). Cap the array "
                    f"size, prune old entries periodically, and check state arrays that only grow.")
        if _is_function(node):
            if info.root_type == 'global' and node.self_size > 200 * KB:
                return (f"Large closure in global scope ({size}), likely a timer callback. Clear the "
                        f"timer on teardown and keep mutable data out of the captured scope.")
            return (f"Closure capturing a large scope ({size}). Capture fewer outer variables and "
                    f"remove event handlers explicitly when their owner goes away.")
        if info.is_detached:
            return (f"Detached object ({size}) still referenced. Remove listeners before removing "
                    f"the element and drop references to removed elements from state.")
        if info.root_type == 'framework':
            return (f"Framework object ({size}) retained. Check component unmount cleanup, effect "
                    f"cleanups and stores or memo caches that are never cleared.")
        if info.root_type == 'transient':
            return (f"Object ({size}) held by a short-lived request/response; it should be "
                    f"released when that request completes.")
        return (f"Object ({size}) held in memory via a {info.root_type} root. Follow the retainer "
                f"path to find the owning reference and check timers, handlers and growing state.")

    async def trace_object(self, node: HeapNode) -> TraceResult:
        """Trace one node back to its root retainer and score it."""
        hops, has_cycle = await self.find_retainer_path(node)
        path = self.describe_path(hops)
        info = self.analyze_path(node, hops, has_cycle)
        confidence, factors = self.assess(node, info, path)

        explanation = f"Confidence: {round(confidence * 100)}% - "
        if factors:
            explanation += f"Based on: {', '.join(factors)}"
        else:
            explanation += "No strong leak indicators found"

        return TraceResult(
            node=node,
            is_likely_leak=confidence > LIKELY_LEAK_CONFIDENCE,
            confidence=confidence,
            explanation=explanation,
            root_path=tuple(path),
            actionable_advice=self.advise(node, info, path),
            retainer_info=info,
        )

    async def trace_id(self, node_id: str) -> Optional[TraceResult]:
        """Look a node up by id and trace it; None when the id is unknown or unreadable."""
        try:
            node = await self._cache.get(self._snapshot_id, node_id)
        except ProviderError as e:
            _logger.warning(f"Cannot trace @{node_id}: {e}")
            return None
        if node is None:
            return None
        return await self.trace_object(node)

    async def batch_trace(self, nodes: Iterable[HeapNode]) -> BatchTraceReport:
        """Trace several nodes in order and total up the likely leaks."""
        traces = [await self.trace_object(node) for node in nodes]
        return BatchTraceReport(traces=traces)
