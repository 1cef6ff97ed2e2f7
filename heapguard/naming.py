#=============================================================================
# File        : heapguard/naming.py
# Project     : HeapGuard v1.0
# Component   : Naming Heuristics - Name-String Identification Rules
# Description : Every rule that infers meaning from node or edge names
#               • Global-scope markers and variable-name extraction
#               • Built-in globals allow-list
#               • Container, listener, closure, detachment and root vocabularies
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+
# Standards   : PEP 8, Type Hints
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: model
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

"""
Name-string heuristics.

Providers currently encode much of the structure (``window.foo``,
``Detached HTMLDivElement``) in node names rather than exposing edge
names. All of that guesswork lives here so it can be replaced by
edge-based identification without touching the classifiers.
"""

from __future__ import annotations

from typing import FrozenSet, Optional, Tuple

from .model import HeapNode, NodeType

WINDOW_PREFIX = "window."
GLOBAL_PREFIX = "global."

GLOBAL_MARKERS: FrozenSet[str] = frozenset({"Window", "global", "globalThis"})
GLOBAL_EDGE_NAMES: FrozenSet[str] = frozenset({"window", "global", "globalThis"})

BENIGN_TYPES: FrozenSet[NodeType] = frozenset({
    NodeType.HIDDEN, NodeType.NUMBER, NodeType.BOOLEAN,
    NodeType.NULL, NodeType.UNDEFINED, NodeType.SYMBOL,
})

STATEFUL_CONTAINER_WORDS: Tuple[str, ...] = (
    'Cache', 'Store', 'Registry', 'Manager', 'Pool',
    'Buffer', 'Archive', 'Collection', 'Map', 'Set',
    'Config', 'Settings', 'State', 'Data',
)

PRODUCT_WORDS: Tuple[str, ...] = ('product', 'sku', 'price')
LISTENER_WORDS: Tuple[str, ...] = ('EventListener', 'listener', 'addEventListener')
TIMER_WORDS: Tuple[str, ...] = ('timer', 'interval', 'timeout')

# Roots that outlive a single request/interaction
GC_ROOT_MARKERS: Tuple[str, ...] = ('(GC roots)', 'GC root', '(Global handles)', '(Strong roots)')
DOM_ROOT_MARKERS: Tuple[str, ...] = ('Document', 'HTMLDocument', 'DOM Tree')
FRAMEWORK_MARKERS: Tuple[str, ...] = ('FiberRootNode', 'Fiber', 'React', '__vue', 'Angular')
TRANSIENT_MARKERS: Tuple[str, ...] = (
    'IncomingMessage', 'ServerResponse', 'Request', 'Response',
    'FetchEvent', 'ClientRequest',
)

# Built-in JavaScript and browser globals (never user variables)
BUILT_IN_GLOBALS: FrozenSet[str] = frozenset({
    # Core JavaScript
    'Object', 'Function', 'Array', 'Number', 'parseFloat', 'parseInt',
    'Infinity', 'NaN', 'undefined', 'Boolean', 'String', 'Symbol', 'Date',
    'Promise', 'RegExp', 'Error', 'AggregateError', 'EvalError', 'RangeError',
    'ReferenceError', 'SyntaxError', 'TypeError', 'URIError', 'globalThis',
    'JSON', 'Math', 'console', 'Intl',
    # Typed arrays
    'ArrayBuffer', 'SharedArrayBuffer', 'Uint8Array', 'Int8Array', 'Uint16Array',
    'Int16Array', 'Uint32Array', 'Int32Array', 'Float32Array', 'Float64Array',
    'Uint8ClampedArray', 'BigUint64Array', 'BigInt64Array', 'DataView', 'BigInt',
    # Collections and meta-programming
    'Map', 'Set', 'WeakMap', 'WeakSet', 'Proxy', 'Reflect',
    'FinalizationRegistry', 'WeakRef', 'Atomics', 'WebAssembly',
    # Global functions
    'decodeURI', 'decodeURIComponent', 'encodeURI', 'encodeURIComponent',
    'escape', 'unescape', 'eval', 'isFinite', 'isNaN',
    'setTimeout', 'clearTimeout', 'setInterval', 'clearInterval',
    'queueMicrotask', 'structuredClone', 'requestAnimationFrame',
    'cancelAnimationFrame', 'fetch', 'atob', 'btoa',
    # Window object and properties
    'window', 'self', 'document', 'name', 'location', 'history', 'navigator',
    'screen', 'customElements', 'locationbar', 'menubar', 'personalbar',
    'scrollbars', 'statusbar', 'toolbar', 'status', 'closed', 'frames',
    'length', 'top', 'opener', 'parent', 'frameElement', 'origin', 'external',
    'innerWidth', 'innerHeight', 'scrollX', 'pageXOffset', 'scrollY',
    'pageYOffset', 'visualViewport', 'screenX', 'screenY', 'outerWidth',
    'outerHeight', 'devicePixelRatio', 'event', 'clientInformation',
    'performance', 'crypto', 'indexedDB', 'sessionStorage', 'localStorage',
    'caches', 'speechSynthesis',
    # DOM core
    'Node', 'NodeList', 'NodeIterator', 'NodeFilter', 'Element', 'Document',
    'DocumentType', 'DocumentFragment', 'CharacterData', 'Text', 'Comment',
    'CDATASection', 'HTMLElement', 'HTMLDocument', 'HTMLCollection',
    'ShadowRoot', 'Attr', 'Range', 'Selection', 'MutationObserver',
    'IntersectionObserver', 'ResizeObserver',
    # Events
    'Event', 'EventTarget', 'CustomEvent', 'MessageEvent', 'ErrorEvent',
    'KeyboardEvent', 'MouseEvent', 'PointerEvent', 'TouchEvent', 'FocusEvent',
    'onload', 'onerror', 'onclick', 'onmessage',
    # Web APIs
    'URL', 'URLSearchParams', 'Headers', 'Request', 'Response', 'FormData',
    'Blob', 'File', 'FileReader', 'XMLHttpRequest', 'WebSocket', 'Worker',
    'SharedWorker', 'ServiceWorker', 'BroadcastChannel', 'MessageChannel',
    'MessagePort', 'AbortController', 'AbortSignal', 'TextEncoder',
    'TextDecoder', 'Image', 'Audio', 'Option', 'CanvasRenderingContext2D',
    'WebGLRenderingContext', 'Storage', 'Notification', 'Geolocation',
    'RTCPeerConnection', 'CSS', 'CSSStyleSheet', 'StyleSheet',
    # Node.js globals
    'global', 'process', 'Buffer', 'require', 'module', 'exports',
    '__dirname', '__filename', 'setImmediate', 'clearImmediate',
})


def is_builtin_global(name: str) -> bool:
    return (name or "") in BUILT_IN_GLOBALS


def is_symbol_name(name: str) -> bool:
    name = name or ""
    return '<symbol>' in name or 'Symbol(' in name


def is_namespaced(name: str) -> bool:
    """True for names explicitly rooted at window./global."""
    name = name or ""
    return WINDOW_PREFIX in name or GLOBAL_PREFIX in name


def extract_variable_name(full_name: str) -> str:
    """
    Pull the variable name out of an encoded node name.

    'window.bigCache (object)' -> 'bigCache'; 'Foo bar' -> 'Foo'.
    """
    full_name = full_name or ""
    for prefix in (WINDOW_PREFIX, GLOBAL_PREFIX):
        if prefix in full_name:
            tail = full_name.split(prefix, 1)[1].split(' ')[0]
            return tail or full_name
    return full_name.split(' ')[0] or full_name


def global_location(name: str) -> str:
    name = name or ""
    if WINDOW_PREFIX in name:
        return 'window'
    if GLOBAL_PREFIX in name:
        return 'global'
    return 'unknown'


def infer_edge_type(name: str) -> str:
    name = name or ""
    if WINDOW_PREFIX in name:
        return 'window_property'
    if GLOBAL_PREFIX in name:
        return 'global_property'
    if '[' in name:
        return 'array_element'
    return 'property'


def is_global_scope(node: HeapNode) -> bool:
    """Decide global-scope membership from the node name and referrer edges."""
    name = node.name
    if is_namespaced(name) or name in GLOBAL_MARKERS:
        return True
    if node.type is NodeType.OBJECT and ('Global' in name or 'globalThis' in name):
        return True
    return any(edge.name in GLOBAL_EDGE_NAMES for edge in node.referrers)


def has_stateful_container_name(name: str) -> bool:
    name = name or ""
    return (not is_builtin_global(name)
            and any(word in name for word in STATEFUL_CONTAINER_WORDS))


def container_bucket(name: str, node_type: NodeType) -> Optional[str]:
    """Group a variable for fix suggestions: 'cache', 'array' or 'collection'."""
    lowered = (name or "").lower()
    if 'cache' in lowered:
        return 'cache'
    if 'array' in lowered or node_type is NodeType.ARRAY:
        return 'array'
    if 'map' in lowered or 'set' in lowered:
        return 'collection'
    return None


def is_product_name(name: str) -> bool:
    lowered = (name or "").lower()
    return any(word in lowered for word in PRODUCT_WORDS)


def is_listener_name(name: str) -> bool:
    name = name or ""
    return any(word in name for word in LISTENER_WORDS)


def is_closure(node: HeapNode) -> bool:
    return node.type is NodeType.CLOSURE or 'closure' in node.name


def is_timer_name(name: str) -> bool:
    lowered = (name or "").lower()
    return any(word in lowered for word in TIMER_WORDS)


def is_detached_name(name: str) -> bool:
    return 'detached' in (name or "").lower()


def root_type_for_name(name: str) -> Optional[str]:
    """Classify a node name as a recognized retainer root, or None."""
    name = name or ""
    if any(marker in name for marker in GC_ROOT_MARKERS):
        return 'gc-root'
    if name in GLOBAL_MARKERS or name.startswith('Window') or 'global' == name.lower():
        return 'global'
    if any(marker in name for marker in TRANSIENT_MARKERS):
        return 'transient'
    if any(marker in name for marker in DOM_ROOT_MARKERS):
        return 'dom'
    if any(marker in name for marker in FRAMEWORK_MARKERS):
        return 'framework'
    return None
