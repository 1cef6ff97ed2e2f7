#=============================================================================
# File        : heapguard/detectors/__init__.py
# Project     : HeapGuard v1.0
# Component   : Detectors Package - Leak Classifier Exports
# Description : Package initialization for the flat-node-list detectors
#               • Global-scope variable leak classification
#               • Before/after snapshot growth comparison
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+
# Standards   : PEP 8, Type Hints, Production Safety
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: global_scope, growth
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from .global_scope import (
    classify_global_scope,
    score_global,
    suggest_fix,
    get_performance_stats as get_global_scope_performance_stats,
    reset_performance_stats as reset_global_scope_performance_stats
)

from .growth import (
    compare_snapshots,
    calculate_leak_confidence,
    growth_candidates,
    get_performance_stats as get_growth_performance_stats,
    reset_performance_stats as reset_growth_performance_stats
)

__all__ = [
    # Global-scope detector exports
    "classify_global_scope",
    "score_global",
    "suggest_fix",
    "get_global_scope_performance_stats",
    "reset_global_scope_performance_stats",

    # Growth detector exports
    "compare_snapshots",
    "calculate_leak_confidence",
    "growth_candidates",
    "get_growth_performance_stats",
    "reset_growth_performance_stats"
]
