#=============================================================================
# File        : heapguard/model.py
# Project     : HeapGuard v1.0
# Component   : Model - Heap Graph Data Structures
# Description : Core data structures shared by every analysis component
#               • NodeType closed enum with category helpers
#               • Immutable HeapNode / HeapEdge as served by providers
#               • ExploredNode result tree and shared traversal Budget
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, Dataclasses, Enum
# Standards   : PEP 8, Type Hints, Immutable Data Structures
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: dataclasses, enum, time, typing
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple


class NodeType(Enum):
    """Closed set of heap node types reported by snapshot providers."""
    OBJECT = "object"
    ARRAY = "array"
    CLOSURE = "closure"
    CODE = "code"
    REGEXP = "regexp"
    NUMBER = "number"
    STRING = "string"
    CONCATENATED_STRING = "concatenated string"
    SLICED_STRING = "sliced string"
    BOOLEAN = "boolean"
    SYMBOL = "symbol"
    BIGINT = "bigint"
    NULL = "null"
    UNDEFINED = "undefined"
    NATIVE = "native"
    HIDDEN = "hidden"
    SYNTHETIC = "synthetic"
    OBJECT_SHAPE = "object shape"
    INFO = "info"         # explorer sentinel
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "NodeType":
        """Map a provider type string onto the enum; anything else is UNKNOWN."""
        if isinstance(value, NodeType):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def category(self) -> str:
        return _CATEGORY[self]

    @property
    def is_primitive(self) -> bool:
        return _CATEGORY[self] == "primitive"

    @property
    def is_array_like(self) -> bool:
        # V8 reports plain arrays as "object" nodes named "Array"
        return self in (NodeType.OBJECT, NodeType.ARRAY)

    @property
    def is_object_like(self) -> bool:
        return self is NodeType.OBJECT


# Every member must appear exactly once; checked below at import time.
_CATEGORY: Dict[NodeType, str] = {
    NodeType.OBJECT: "object",
    NodeType.ARRAY: "array",
    NodeType.CLOSURE: "closure",
    NodeType.CODE: "internal",
    NodeType.REGEXP: "object",
    NodeType.NUMBER: "primitive",
    NodeType.STRING: "primitive",
    NodeType.CONCATENATED_STRING: "primitive",
    NodeType.SLICED_STRING: "primitive",
    NodeType.BOOLEAN: "primitive",
    NodeType.SYMBOL: "primitive",
    NodeType.BIGINT: "primitive",
    NodeType.NULL: "empty",
    NodeType.UNDEFINED: "empty",
    NodeType.NATIVE: "native",
    NodeType.HIDDEN: "internal",
    NodeType.SYNTHETIC: "internal",
    NodeType.OBJECT_SHAPE: "internal",
    NodeType.INFO: "sentinel",
    NodeType.UNKNOWN: "unknown",
}
assert set(_CATEGORY) == set(NodeType), "NodeType category table is incomplete"


def normalize_node_id(node_id: Any) -> str:
    """Strip the '@' prefix used by heap tooling ('@1234' -> '1234')."""
    return str(node_id).strip().lstrip("@")


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def _as_size(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class HeapEdge:
    """A named, typed reference between two heap nodes."""
    name: str = ""
    type: str = ""
    to_node: Optional[str] = None
    from_node: Optional[str] = None
    to_type: Optional[NodeType] = None   # target node type, when the provider knows it

    @property
    def is_weak(self) -> bool:
        return self.type == "weak"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HeapEdge":
        to_node = _first(data, "toNode", "to_node")
        from_node = _first(data, "fromNode", "from_node")
        to_type = _first(data, "toNodeType", "to_type")
        return cls(
            name=str(_first(data, "name", default="") or ""),
            type=str(_first(data, "type", default="") or ""),
            to_node=normalize_node_id(to_node) if to_node not in (None, "") else None,
            from_node=normalize_node_id(from_node) if from_node not in (None, "") else None,
            to_type=NodeType.parse(to_type) if to_type is not None else None,
        )


@dataclass(frozen=True)
class HeapNode:
    """
    A single retained object, immutable once produced by a provider.

    `retained_size` is raised to `self_size` when a provider reports less,
    keeping the retained >= self invariant.
    """
    id: str
    name: str = ""
    type: NodeType = NodeType.UNKNOWN
    self_size: int = 0
    retained_size: int = 0
    references: Tuple[HeapEdge, ...] = ()
    referrers: Tuple[HeapEdge, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "id", normalize_node_id(self.id))
        object.__setattr__(self, "name", self.name or "")
        object.__setattr__(self, "type", NodeType.parse(self.type))
        object.__setattr__(self, "self_size", _as_size(self.self_size))
        object.__setattr__(self, "retained_size", max(_as_size(self.retained_size), self.self_size))
        object.__setattr__(self, "references", tuple(self.references))
        object.__setattr__(self, "referrers", tuple(self.referrers))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HeapNode":
        """Build a node from provider object data (memlab-style or snake_case keys)."""
        return cls(
            id=str(_first(data, "id", "nodeId", "node_id", default="")),
            name=str(_first(data, "name", default="") or ""),
            type=NodeType.parse(_first(data, "type")),
            self_size=_as_size(_first(data, "selfsize", "selfSize", "self_size")),
            retained_size=_as_size(_first(data, "retainedSize", "retained_size")),
            references=tuple(HeapEdge.from_dict(e) for e in (data.get("references") or ())),
            referrers=tuple(HeapEdge.from_dict(e) for e in (data.get("referrers") or ())),
        )


@dataclass
class ExploredNode:
    """One node of an explorer result tree."""
    node_id: str
    name: str
    type: NodeType
    self_size: int
    retained_size: int
    depth: int
    children: List["ExploredNode"] = field(default_factory=list)
    pattern: Optional[str] = None
    summary: Optional[str] = None

    @property
    def is_sentinel(self) -> bool:
        return self.type is NodeType.INFO

    @classmethod
    def from_heap_node(cls, node: HeapNode, depth: int) -> "ExploredNode":
        return cls(
            node_id=node.id,
            name=node.name,
            type=node.type,
            self_size=node.self_size,
            retained_size=node.retained_size,
            depth=depth,
        )

    @classmethod
    def unknown(cls, node_id: str, depth: int) -> "ExploredNode":
        return cls(node_id=node_id, name="unknown", type=NodeType.UNKNOWN,
                   self_size=0, retained_size=0, depth=depth)

    @classmethod
    def sentinel(cls, node_id: str, depth: int, name: str, summary: str) -> "ExploredNode":
        return cls(node_id=node_id, name=name, type=NodeType.INFO,
                   self_size=0, retained_size=0, depth=depth, summary=summary)

    def iter_nodes(self) -> Iterator["ExploredNode"]:
        """Pre-order walk of this subtree."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def count_nodes(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'nodeId': self.node_id,
            'name': self.name,
            'type': self.type.value,
            'selfSize': self.self_size,
            'retainedSize': self.retained_size,
            'depth': self.depth,
            'children': [child.to_dict() for child in self.children],
        }
        if self.pattern is not None:
            data['pattern'] = self.pattern
        if self.summary is not None:
            data['summary'] = self.summary
        return data


@dataclass
class Budget:
    """
    Shared mutable traversal state for one top-level explore call.

    Passed by reference into every recursive call so node and time caps
    apply to the whole tree, never per branch.
    """
    time_budget_ms: float
    max_nodes: int
    clock: Callable[[], float] = time.monotonic
    start_time: float = field(default=-1.0)
    visited_count: int = 0

    def __post_init__(self):
        if self.start_time < 0:
            self.start_time = self.clock()

    @property
    def elapsed_ms(self) -> float:
        return (self.clock() - self.start_time) * 1000.0

    def time_exceeded(self) -> bool:
        return self.elapsed_ms > self.time_budget_ms

    def nodes_exhausted(self) -> bool:
        return self.visited_count >= self.max_nodes

    def record_visit(self) -> None:
        self.visited_count += 1
