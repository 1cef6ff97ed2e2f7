#=============================================================================
# File        : tests/conftest.py
# Project     : HeapGuard v1.0
# Component   : Shared Test Fixtures
# Description : Snapshot builders and fixtures shared by the test suite
#               • Node dict builder in provider object-data shape
#               • Canonical graphs for traversal and tracing tests
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Created     : 2025-09-02
#=============================================================================

import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pytest

# Add heapguard to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent))

from heapguard.cache import ObjectDataCache
from heapguard.provider import InMemoryProvider
from heapguard import sampling

EdgeSpec = Union[str, Tuple[str, str]]


def _edges(specs: Iterable[EdgeSpec], key: str) -> List[Dict[str, Any]]:
    edges = []
    for i, spec in enumerate(specs):
        name, target = spec if isinstance(spec, tuple) else (f"e{i}", spec)
        edge_type = 'weak' if name.startswith('weak') else 'property'
        edges.append({'name': name, 'type': edge_type, key: target})
    return edges


def make_node(node_id: str, name: str = "", type: str = "object", size: int = 0,
              retained: Optional[int] = None, refs: Sequence[EdgeSpec] = (),
              referrers: Sequence[EdgeSpec] = ()) -> Dict[str, Any]:
    """Node dict as an external snapshot parser would serve it."""
    return {
        'id': node_id,
        'name': name,
        'type': type,
        'selfsize': size,
        'retainedSize': size if retained is None else retained,
        'references': _edges(refs, 'toNode'),
        'referrers': _edges(referrers, 'fromNode'),
    }


def wide_tree(fanout: int = 5, depth: int = 3) -> List[Dict[str, Any]]:
    """Complete object tree; node ids encode their position ('1', '1.0', '1.0.3')."""
    nodes: List[Dict[str, Any]] = []

    def build(node_id: str, level: int) -> None:
        children = [f"{node_id}.{i}" for i in range(fanout)] if level < depth else []
        nodes.append(make_node(node_id, name=f"Object {node_id}", size=64,
                               retained=64 * (len(children) + 1), refs=children))
        for child in children:
            build(child, level + 1)

    build("1", 0)
    return nodes


def shape(tree) -> Tuple:
    """Structural fingerprint of an explored tree."""
    return (tree.node_id, tree.name, tree.type.value, tuple(shape(c) for c in tree.children))


@pytest.fixture(autouse=True)
def null_memory_probe():
    """Keep process memory readings out of test results."""
    sampling.force_probe(sampling.NullProbe())
    yield
    sampling.reset_global_state()


@pytest.fixture
def scenario_a_provider():
    """Root with 5 children, each with 3 children of their own."""
    nodes = [make_node("1", "Root", refs=[f"1{i}" for i in range(5)])]
    for i in range(5):
        child = f"1{i}"
        nodes.append(make_node(child, f"Child {i}", size=100,
                               refs=[f"{child}{j}" for j in range(3)]))
        for j in range(3):
            nodes.append(make_node(f"{child}{j}", f"Leaf {i}.{j}", size=10))
    return InMemoryProvider({'snap': nodes})


@pytest.fixture
def wide_provider():
    return InMemoryProvider({'wide': wide_tree()})


@pytest.fixture
def wide_cache(wide_provider):
    return ObjectDataCache(wide_provider)
