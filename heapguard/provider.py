#=============================================================================
# File        : heapguard/provider.py
# Project     : HeapGuard v1.0
# Component   : Object Data Providers - Snapshot Access Contract
# Description : The single external collaborator contract of the core
#               • ObjectDataProvider protocol (warm-up, per-node fetch, listing)
#               • InMemoryProvider for node dumps already in memory
#               • JsonDumpProvider for node dumps written by an external parser
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, AsyncIO, JSON
# Standards   : PEP 8, Type Hints, Protocols
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: asyncio, json, pathlib, model
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import (Any, Callable, Dict, Iterable, List, Mapping, Optional,
                    Protocol, Union, runtime_checkable)

from .model import HeapNode, normalize_node_id

_logger = logging.getLogger(__name__)

NodeData = Dict[str, Any]


@runtime_checkable
class ObjectDataProvider(Protocol):
    """
    Protocol for snapshot-backed object data.

    Implementations must be idempotent within a process run and return
    None (never raise) for an unknown snapshot or node id.
    """

    async def warm_up(self, snapshot_id: str) -> bool:
        """Parse/index the snapshot; False when the snapshot is unknown."""
        ...

    async def fetch_node(self, snapshot_id: str, node_id: str) -> Optional[NodeData]:
        """Object data for one node, or None when the id is unknown."""
        ...

    async def list_nodes(self, snapshot_id: str) -> List[NodeData]:
        """Every node of the snapshot as object data."""
        ...


def _to_node_data(item: Union[HeapNode, Mapping[str, Any]]) -> NodeData:
    if isinstance(item, HeapNode):
        return {
            'id': item.id,
            'name': item.name,
            'type': item.type.value,
            'selfsize': item.self_size,
            'retainedSize': item.retained_size,
            'references': [
                {'name': e.name, 'type': e.type, 'toNode': e.to_node,
                 **({'toNodeType': e.to_type.value} if e.to_type is not None else {})}
                for e in item.references
            ],
            'referrers': [
                {'name': e.name, 'type': e.type, 'fromNode': e.from_node}
                for e in item.referrers
            ],
        }
    return dict(item)


class InMemoryProvider:
    """
    Provider over node dumps already held in memory.

    Args:
        snapshots: snapshot id -> iterable of node dicts or HeapNodes
        latency: optional callable (snapshot_id, node_id) -> seconds of
                 artificial delay per fetch, for exercising concurrency
    """

    def __init__(self,
                 snapshots: Mapping[str, Iterable[Union[HeapNode, Mapping[str, Any]]]],
                 latency: Optional[Callable[[str, str], float]] = None) -> None:
        self._raw = {sid: list(nodes) for sid, nodes in snapshots.items()}
        self._indexes: Dict[str, Dict[str, NodeData]] = {}
        self._latency = latency
        self.warm_up_calls = 0
        self.fetch_calls = 0

    async def warm_up(self, snapshot_id: str) -> bool:
        self.warm_up_calls += 1
        if snapshot_id not in self._raw:
            return False
        if snapshot_id not in self._indexes:
            index: Dict[str, NodeData] = {}
            for item in self._raw[snapshot_id]:
                data = _to_node_data(item)
                index[normalize_node_id(data.get('id', ''))] = data
            self._indexes[snapshot_id] = index
            _logger.debug(f"Indexed {len(index)} nodes for snapshot {snapshot_id!r}")
        # Yield once so concurrent callers genuinely overlap with the warm-up
        await asyncio.sleep(0)
        return True

    async def fetch_node(self, snapshot_id: str, node_id: str) -> Optional[NodeData]:
        self.fetch_calls += 1
        if self._latency is not None:
            delay = self._latency(snapshot_id, node_id)
            if delay > 0:
                await asyncio.sleep(delay)
        index = self._indexes.get(snapshot_id)
        if index is None:
            return None
        return index.get(normalize_node_id(node_id))

    async def list_nodes(self, snapshot_id: str) -> List[NodeData]:
        return [_to_node_data(item) for item in self._raw.get(snapshot_id, ())]


class JsonDumpProvider(InMemoryProvider):
    """
    Provider over JSON node dumps on disk.

    The snapshot id is the path of a JSON file holding either a list of
    node objects or ``{"nodes": [...]}``, as written by an external
    heap-snapshot parser. Missing files are unknown snapshots.
    """

    def __init__(self, latency: Optional[Callable[[str, str], float]] = None) -> None:
        super().__init__({}, latency=latency)

    def _load(self, snapshot_id: str) -> bool:
        path = Path(snapshot_id)
        if not path.is_file():
            _logger.warning(f"Snapshot dump not found: {snapshot_id}")
            return False
        with open(path, 'r', encoding='utf-8') as f:
            payload = json.load(f)
        nodes = payload.get('nodes', []) if isinstance(payload, dict) else payload
        self._raw[snapshot_id] = list(nodes)
        return True

    async def warm_up(self, snapshot_id: str) -> bool:
        if snapshot_id not in self._raw:
            # Read once per snapshot id
            if not self._load(snapshot_id):
                self.warm_up_calls += 1
                return False
        return await super().warm_up(snapshot_id)

    async def list_nodes(self, snapshot_id: str) -> List[NodeData]:
        if snapshot_id not in self._raw and not await self.warm_up(snapshot_id):
            return []
        return await super().list_nodes(snapshot_id)
