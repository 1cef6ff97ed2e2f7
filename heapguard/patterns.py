#=============================================================================
# File        : heapguard/patterns.py
# Project     : HeapGuard v1.0
# Component   : Pattern Detector - Structural Labels for Explored Trees
# Description : Pure post-pass over an explored tree
#               • Number arrays, nested arrays, catalog objects, framework internals
#               • First matching rule wins, one tag per node
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+
# Standards   : PEP 8, Type Hints
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: model, naming
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from .model import ExploredNode, NodeType
from .naming import is_product_name

ARRAY_OF_NUMBERS = 'array-of-numbers'
ARRAY_OF_ARRAYS = 'array-of-arrays'
PRODUCT_OBJECT = 'product-object'
REACT_FIBER = 'react-fiber'

_MIN_NUMBER_ARRAY = 5
_MIN_NESTED_ARRAY = 10


def _numbers(node: ExploredNode) -> Optional[str]:
    children = node.children
    if (node.type.is_array_like and len(children) > _MIN_NUMBER_ARRAY
            and all(c.type is NodeType.NUMBER for c in children)):
        return f'Array of {len(children)} numbers (likely IDs or indices)'
    return None


def _nested_arrays(node: ExploredNode) -> Optional[str]:
    children = node.children
    if (node.type.is_array_like and len(children) > _MIN_NESTED_ARRAY
            and all(c.type.is_array_like for c in children)):
        return f'Array of {len(children)} arrays (matrix/grid structure)'
    return None


def _product(node: ExploredNode) -> Optional[str]:
    if any(is_product_name(c.name) for c in node.children):
        return 'Likely a product/catalog object'
    return None


def _fiber(node: ExploredNode) -> Optional[str]:
    if 'Fiber' in node.name or any(c.name.lower() == 'memoizedstate' for c in node.children):
        return 'React Fiber node (internal React state)'
    return None


# Evaluated in order; the first rule returning a summary tags the node
RULES: List[Tuple[str, Callable[[ExploredNode], Optional[str]]]] = [
    (ARRAY_OF_NUMBERS, _numbers),
    (ARRAY_OF_ARRAYS, _nested_arrays),
    (PRODUCT_OBJECT, _product),
    (REACT_FIBER, _fiber),
]


def detect(node: ExploredNode) -> Optional[Tuple[str, str]]:
    """Return (tag, summary) for the first rule matching this node."""
    if node.is_sentinel:
        return None
    for tag, rule in RULES:
        summary = rule(node)
        if summary is not None:
            return tag, summary
    return None


def annotate(tree: ExploredNode) -> None:
    """Tag every node of `tree` in place; recurses into all children."""
    match = detect(tree)
    if match is not None:
        tree.pattern, tree.summary = match
    for child in tree.children:
        annotate(child)
