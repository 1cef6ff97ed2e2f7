#=============================================================================
# File        : heapguard/cache.py
# Project     : HeapGuard v1.0
# Component   : Object Data Cache - Warm-once Snapshot Access
# Description : Process-wide cache in front of the object data provider
#               • One expensive warm-up per snapshot id (single-flight)
#               • O(1) memoized per-node lookups after warm-up
#               • Unknown ids return None, provider failures raise ProviderError
#               • Optional LRU bound on the number of warm snapshots
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, AsyncIO
# Standards   : PEP 8, Type Hints, Production Safety
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: asyncio, collections, logging, provider, model, sampling
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Set

from .errors import ProviderError
from .model import HeapNode, normalize_node_id
from .provider import ObjectDataProvider
from .sampling import get_rss_mb

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


class ObjectDataCache:
    """
    Warm-once cache over an ObjectDataProvider.

    The first lookup for a snapshot id triggers the provider's warm-up;
    concurrent first lookups await that same warm-up instead of repeating
    it. Warm snapshots are kept for the life of the cache unless
    `max_snapshots` is set, in which case the least recently used
    snapshot is dropped beyond the bound.
    """

    def __init__(self, provider: ObjectDataProvider, max_snapshots: Optional[int] = None) -> None:
        if max_snapshots is not None and max_snapshots < 1:
            raise ValueError(f"max_snapshots must be >= 1 or None, got {max_snapshots}")
        self._provider = provider
        self._max_snapshots = max_snapshots
        self._warm: "OrderedDict[str, Dict[str, Optional[HeapNode]]]" = OrderedDict()
        self._node_lists: Dict[str, List[HeapNode]] = {}
        self._unknown_snapshots: Set[str] = set()
        self._pending: Dict[str, "asyncio.Future[bool]"] = {}
        self._stats = {
            'warm_ups': 0,
            'warm_up_failures': 0,
            'hits': 0,
            'misses': 0,
            'fetches': 0,
            'fetch_failures': 0,
            'evictions': 0,
        }

    @property
    def provider(self) -> ObjectDataProvider:
        return self._provider

    def is_warm(self, snapshot_id: str) -> bool:
        return snapshot_id in self._warm

    async def _ensure_warm(self, snapshot_id: str) -> bool:
        if snapshot_id in self._warm:
            self._warm.move_to_end(snapshot_id)
            return True
        if snapshot_id in self._unknown_snapshots:
            return False

        pending = self._pending.get(snapshot_id)
        if pending is not None:
            # Another caller is already warming this snapshot
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
                # The warming caller was cancelled; take the warm-up over
                return await self._ensure_warm(snapshot_id)

        future: "asyncio.Future[bool]" = asyncio.get_running_loop().create_future()
        self._pending[snapshot_id] = future
        _logger.debug(f"Warming snapshot {snapshot_id!r} (one-time parse)")
        try:
            self._stats['warm_ups'] += 1
            found = bool(await self._provider.warm_up(snapshot_id))
        except Exception as e:
            self._stats['warm_up_failures'] += 1
            error = ProviderError(snapshot_id, None, e)
            future.set_exception(error)
            future.exception()  # mark retrieved when nobody else is waiting
            _logger.warning(f"Warm-up failed for snapshot {snapshot_id!r}: {e}")
            raise error from e
        except asyncio.CancelledError:
            future.cancel()
            raise
        else:
            if found:
                self._warm[snapshot_id] = {}
                self._evict_if_needed()
            else:
                self._unknown_snapshots.add(snapshot_id)
                _logger.warning(f"Unknown snapshot: {snapshot_id!r}")
            future.set_result(found)
            return found
        finally:
            self._pending.pop(snapshot_id, None)

    def _evict_if_needed(self) -> None:
        if self._max_snapshots is None:
            return
        while len(self._warm) > self._max_snapshots:
            evicted, _ = self._warm.popitem(last=False)
            self._node_lists.pop(evicted, None)
            self._stats['evictions'] += 1
            _logger.debug(f"Evicted snapshot {evicted!r} from cache")

    async def get(self, snapshot_id: str, node_id: str) -> Optional[HeapNode]:
        """
        Look up one node.

        Returns:
            The HeapNode, or None when the snapshot or node id is unknown.

        Raises:
            ProviderError: the provider itself failed for this lookup.
        """
        node_id = normalize_node_id(node_id)
        if not await self._ensure_warm(snapshot_id):
            self._stats['misses'] += 1
            return None

        memo = self._warm.get(snapshot_id)
        if memo is None:
            # Evicted while this call was suspended; start a fresh memo
            memo = {}
        elif node_id in memo:
            self._stats['hits'] += 1
            return memo[node_id]

        self._stats['fetches'] += 1
        try:
            data = await self._provider.fetch_node(snapshot_id, node_id)
        except Exception as e:
            self._stats['fetch_failures'] += 1
            raise ProviderError(snapshot_id, node_id, e) from e

        node = None
        if data:
            try:
                if not data.get('id') and data.get('id') != 0:
                    data = {**data, 'id': node_id}
                node = HeapNode.from_dict(data)
            except (AttributeError, TypeError, ValueError) as e:
                self._stats['fetch_failures'] += 1
                raise ProviderError(snapshot_id, node_id, e) from e
        else:
            self._stats['misses'] += 1
        memo[node_id] = node
        return node

    async def nodes(self, snapshot_id: str) -> List[HeapNode]:
        """Every node of a snapshot as a flat list (empty when unknown)."""
        if not await self._ensure_warm(snapshot_id):
            return []
        cached = self._node_lists.get(snapshot_id)
        if cached is not None:
            return cached
        try:
            raw = await self._provider.list_nodes(snapshot_id)
        except Exception as e:
            raise ProviderError(snapshot_id, None, e) from e
        nodes: List[HeapNode] = []
        for data in raw:
            if not data:
                continue
            try:
                nodes.append(HeapNode.from_dict(data))
            except (AttributeError, TypeError, ValueError) as e:
                self._stats['fetch_failures'] += 1
                _logger.warning(f"Skipping malformed node in {snapshot_id!r}: {e}")
        if snapshot_id in self._warm:
            self._node_lists[snapshot_id] = nodes
        return nodes

    def clear(self) -> None:
        """Drop every warm snapshot (next lookup warms again)."""
        self._warm.clear()
        self._node_lists.clear()
        self._unknown_snapshots.clear()

    def get_performance_stats(self) -> Dict[str, Any]:
        """Counters for cache effectiveness plus current process memory."""
        stats: Dict[str, Any] = dict(self._stats)
        lookups = stats['hits'] + stats['fetches']
        stats['hit_rate'] = round(stats['hits'] / lookups, 3) if lookups else 0.0
        stats['warm_snapshots'] = len(self._warm)
        stats['max_snapshots'] = self._max_snapshots
        stats['process_rss_mb'] = round(get_rss_mb(), 2)
        return stats
