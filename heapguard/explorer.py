#=============================================================================
# File        : heapguard/explorer.py
# Project     : HeapGuard v1.0
# Component   : Explorer - Budgeted Retention Graph Traversal
# Description : Walks the reference graph outward from one object
#               • Depth, breadth, node-count and wall-clock budgets
#               • Batched concurrent lookups with deterministic tree shape
#               • Sentinel leaves for exhausted budgets, unknown nodes on failure
#               • Optional pattern post-pass and run statistics
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, AsyncIO
# Standards   : PEP 8, Type Hints, Production Safety
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: asyncio, time, cache, model, patterns, sampling
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .cache import ObjectDataCache
from .config import ExploreOptions
from .errors import ProviderError
from .model import Budget, ExploredNode, HeapEdge, HeapNode, NodeType, normalize_node_id
from .patterns import annotate
from .sampling import MemoryProbe, MemoryTracker, get_memory_tracker

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

BUDGET_EXCEEDED = 'budget-exceeded'
NODE_LIMIT = 'node-limit'


@dataclass(frozen=True)
class ExplorationStats:
    """What one explore call cost and where it stopped."""
    nodes_visited: int
    node_count: int
    duration_ms: float
    budget_exceeded: bool
    node_limit_hit: bool
    unknown_nodes: int
    rss_delta_mb: Optional[float] = None

    @property
    def truncated(self) -> bool:
        return self.budget_exceeded or self.node_limit_hit

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodesVisited': self.nodes_visited,
            'nodeCount': self.node_count,
            'durationMs': round(self.duration_ms, 2),
            'budgetExceeded': self.budget_exceeded,
            'nodeLimitHit': self.node_limit_hit,
            'unknownNodes': self.unknown_nodes,
            'rssDeltaMb': None if self.rss_delta_mb is None else round(self.rss_delta_mb, 3),
        }


class _Traversal:
    """State for one top-level explore call; never shared between calls."""

    def __init__(self, cache: ObjectDataCache, snapshot_id: str,
                 options: ExploreOptions, budget: Budget) -> None:
        self.cache = cache
        self.snapshot_id = snapshot_id
        self.options = options
        self.budget = budget
        self.budget_exceeded = False
        self.node_limit_hit = False
        self.unknown_nodes = 0

    def admit(self, node_id: str, depth: int) -> Optional[ExploredNode]:
        """
        Take the budget decision for one node.

        Returns a sentinel when the node must not be fetched; otherwise
        counts the visit and returns None. Never suspends, so siblings
        admitted after this one see the updated count.
        """
        budget = self.budget
        if budget.time_exceeded():
            self.budget_exceeded = True
            _logger.debug(f"Time budget hit at @{node_id} (depth {depth})")
            return ExploredNode.sentinel(
                node_id, depth, BUDGET_EXCEEDED,
                f"Stopped due to time budget ({self.options.time_budget_ms}ms)")
        if budget.nodes_exhausted():
            self.node_limit_hit = True
            _logger.debug(f"Node limit hit at @{node_id} (depth {depth})")
            return ExploredNode.sentinel(
                node_id, depth, NODE_LIMIT,
                f"Stopped after visiting {budget.visited_count} nodes (limit {budget.max_nodes})")
        budget.record_visit()
        return None

    async def fetch(self, node_id: str, depth: int) -> Tuple[ExploredNode, Optional[HeapNode]]:
        try:
            node = await self.cache.get(self.snapshot_id, node_id)
        except ProviderError as e:
            _logger.warning(f"Rendering @{node_id} as unknown: {e}")
            node = None
        if node is None:
            self.unknown_nodes += 1
            return ExploredNode.unknown(node_id, depth), None
        return ExploredNode.from_heap_node(node, depth), node

    def should_follow(self, edge: HeapEdge, parent: HeapNode) -> bool:
        # Without a target type hint the referencing node's type decides
        child_type = edge.to_type if edge.to_type is not None else parent.type
        opts = self.options
        return ((opts.follow_arrays and child_type.is_array_like)
                or (opts.follow_objects and child_type.is_object_like))

    async def expand(self, explored: ExploredNode, node: Optional[HeapNode]) -> None:
        """Attach the children of an already fetched node, recursively."""
        opts = self.options
        depth = explored.depth
        if node is None or depth >= opts.max_depth:
            return
        if node.type.is_primitive and not opts.show_primitives:
            return

        candidates = [
            edge for edge in node.references[:opts.max_children_per_level]
            if edge.to_node and self.should_follow(edge, node)
        ]

        for start in range(0, len(candidates), opts.batch_size):
            batch = candidates[start:start + opts.batch_size]

            # Admission runs in reference order before anything suspends
            slots: List[Optional[ExploredNode]] = []
            admitted: List[Tuple[int, str]] = []
            for edge in batch:
                child_id = normalize_node_id(edge.to_node)
                sentinel = self.admit(child_id, depth + 1)
                if sentinel is None:
                    admitted.append((len(slots), child_id))
                slots.append(sentinel)

            _logger.debug(f"@{explored.node_id}: batch of {len(batch)}, "
                          f"{len(admitted)} admitted at depth {depth + 1}")
            fetched = await asyncio.gather(
                *(self.fetch(child_id, depth + 1) for _, child_id in admitted))

            for (slot, _), (child, _) in zip(admitted, fetched):
                slots[slot] = child
            # Subtrees expand one after another so later siblings' budget
            # decisions never depend on how fast earlier lookups resolved
            for child, child_node in fetched:
                await self.expand(child, child_node)

            explored.children.extend(slot for slot in slots if slot is not None)

    async def run(self, start_node_id: str) -> ExploredNode:
        root_id = normalize_node_id(start_node_id)
        sentinel = self.admit(root_id, 0)
        if sentinel is not None:
            return sentinel
        root, node = await self.fetch(root_id, 0)
        await self.expand(root, node)
        return root


def _resolve_options(options: Optional[ExploreOptions], overrides: Dict[str, Any]) -> ExploreOptions:
    base = options or ExploreOptions()
    return base.merge(**overrides) if overrides else base


async def explore(cache: ObjectDataCache,
                  snapshot_id: str,
                  start_node_id: str,
                  options: Optional[ExploreOptions] = None,
                  *,
                  clock: Callable[[], float] = time.monotonic,
                  **overrides: Any) -> ExploredNode:
    """
    Explore the retention graph from `start_node_id`.

    Args:
        cache: warm-once cache over the snapshot provider
        snapshot_id: provider snapshot identifier
        start_node_id: node to start from ('@123' or '123')
        options: traversal budgets, ExploreOptions() when omitted
        clock: monotonic clock in seconds, injectable for tests
        **overrides: individual ExploreOptions fields (max_depth=3, ...)

    Returns:
        The explored tree. Budget stops appear as `info` sentinel leaves
        and unresolvable nodes as `unknown` leaves; nothing is raised for
        either.
    """
    tree, _ = await explore_with_stats(cache, snapshot_id, start_node_id, options,
                                       clock=clock, **overrides)
    return tree


async def explore_with_stats(cache: ObjectDataCache,
                             snapshot_id: str,
                             start_node_id: str,
                             options: Optional[ExploreOptions] = None,
                             *,
                             clock: Callable[[], float] = time.monotonic,
                             memory_probe: Optional[MemoryProbe] = None,
                             **overrides: Any) -> Tuple[ExploredNode, ExplorationStats]:
    """Same as explore(), also returning ExplorationStats for the run."""
    opts = _resolve_options(options, overrides)
    tracker = MemoryTracker(memory_probe or get_memory_tracker().probe)
    tracker.set_baseline()

    budget = Budget(time_budget_ms=opts.time_budget_ms, max_nodes=opts.max_nodes, clock=clock)
    traversal = _Traversal(cache, snapshot_id, opts, budget)
    started = time.perf_counter()

    tree = await traversal.run(start_node_id)
    if opts.detect_patterns:
        annotate(tree)

    stats = ExplorationStats(
        nodes_visited=budget.visited_count,
        node_count=tree.count_nodes(),
        duration_ms=(time.perf_counter() - started) * 1000.0,
        budget_exceeded=traversal.budget_exceeded,
        node_limit_hit=traversal.node_limit_hit,
        unknown_nodes=traversal.unknown_nodes,
        rss_delta_mb=tracker.get_delta_mb() if tracker.is_available() else None,
    )
    _logger.debug(f"Explored @{start_node_id} in {snapshot_id!r}: "
                  f"{stats.nodes_visited} visited, {stats.node_count} in tree, "
                  f"{stats.duration_ms:.1f}ms")
    return tree, stats


def count_fetched(tree: ExploredNode) -> int:
    """Nodes in the tree that cost a lookup (everything but sentinels)."""
    return sum(1 for n in tree.iter_nodes() if n.type is not NodeType.INFO)
