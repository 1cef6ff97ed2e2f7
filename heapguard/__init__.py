#=============================================================================
# File        : heapguard/__init__.py
# Project     : HeapGuard v1.0
# Component   : Package Initialization - Public API
# Description : Heap snapshot retention analysis
#               • Budgeted retention-graph exploration with pattern labels
#               • Global-scope and before/after growth leak scoring
#               • Retainer tracing with root-cause explanations
#               • Warm-once snapshot cache over a pluggable provider
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, AsyncIO, Dataclasses
# Standards   : PEP 8, Type Hints, Dataclasses
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: typing, asyncio, psutil
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. Released under MIT License.
#=============================================================================

"""
HeapGuard - Heap Snapshot Leak Analysis

Explores captured heap snapshots under hard budgets, scores likely leak
sources and explains why objects are retained. All scores are heuristic
confidence, never proof of a leak.

Quick Start:
    import asyncio
    import heapguard

    analyzer = heapguard.HeapAnalyzer(heapguard.JsonDumpProvider())
    tree = asyncio.run(analyzer.explore("after.json", "@1234", max_depth=3))
    report = asyncio.run(analyzer.scan_globals("after.json"))
    print(report.summary)
"""

from .core import (
    HeapAnalyzer,
    configure,
    get_analyzer,
    deep_dive,
    scan_globals,
    compare,
    trace,
    get_status,
    get_performance_summary,
    set_log_level
)

from .config import (
    HeapGuardConfig,
    ExploreOptions,
    Thresholds
)

from .errors import (
    HeapGuardError,
    ConfigError,
    ProviderError
)

from .model import (
    NodeType,
    HeapEdge,
    HeapNode,
    ExploredNode,
    Budget
)

from .report import (
    SeverityLevel,
    ScoredFinding,
    RetainerInfo,
    TraceResult,
    GlobalScopeReport,
    ComparisonReport,
    BatchTraceReport
)

from .provider import ObjectDataProvider, InMemoryProvider, JsonDumpProvider
from .cache import ObjectDataCache
from .explorer import explore, explore_with_stats, ExplorationStats
from .patterns import annotate
from .detectors import classify_global_scope, compare_snapshots, calculate_leak_confidence
from .tracer import RetainerTracer

__version__ = "1.0.0"
__author__ = "Kyle Clouthier"
__license__ = "MIT"
__description__ = "Budgeted heap snapshot exploration and leak scoring"

__all__ = [
    # Facade
    "HeapAnalyzer",
    "configure",
    "get_analyzer",
    "deep_dive",
    "scan_globals",
    "compare",
    "trace",
    "get_status",
    "get_performance_summary",
    "set_log_level",

    # Configuration
    "HeapGuardConfig",
    "ExploreOptions",
    "Thresholds",

    # Errors
    "HeapGuardError",
    "ConfigError",
    "ProviderError",

    # Model
    "NodeType",
    "HeapEdge",
    "HeapNode",
    "ExploredNode",
    "Budget",

    # Reporting
    "SeverityLevel",
    "ScoredFinding",
    "RetainerInfo",
    "TraceResult",
    "GlobalScopeReport",
    "ComparisonReport",
    "BatchTraceReport",

    # Components
    "ObjectDataProvider",
    "InMemoryProvider",
    "JsonDumpProvider",
    "ObjectDataCache",
    "explore",
    "explore_with_stats",
    "ExplorationStats",
    "annotate",
    "classify_global_scope",
    "compare_snapshots",
    "calculate_leak_confidence",
    "RetainerTracer",

    # Metadata
    "__version__",
    "__author__",
    "__license__"
]
