#=============================================================================
# File        : heapguard/core.py
# Project     : HeapGuard v1.0
# Component   : Core Engine - Analysis Facade and Convenience API
# Description : Wires the cache, explorer, detectors and tracer together
#               • HeapAnalyzer facade over one provider and one cache
#               • Default analyzer with configure()/get_status() helpers
#               • Log level control for every heapguard module logger
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, AsyncIO
# Standards   : PEP 8, Type Hints, Production Safety
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: logging, platform, time, config, cache, explorer, detectors, tracer
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import logging
import platform
import sys
import time
from typing import Any, Dict, List, Optional, Tuple

from .cache import ObjectDataCache
from .config import ExploreOptions, HeapGuardConfig
from .detectors.global_scope import classify_global_scope
from .detectors.global_scope import get_performance_stats as get_global_scope_stats
from .detectors.growth import compare_snapshots
from .detectors.growth import get_performance_stats as get_growth_stats
from .explorer import ExplorationStats, explore_with_stats
from .model import ExploredNode, HeapNode
from .provider import InMemoryProvider, ObjectDataProvider
from .report import BatchTraceReport, ComparisonReport, GlobalScopeReport, TraceResult
from .sampling import get_memory_tracker
from .tracer import RetainerTracer

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

_PACKAGE_LOGGER = __name__.rsplit('.', 1)[0]

_environment_info = {
    'python_version': sys.version.split()[0],
    'platform': platform.system(),
    'implementation': platform.python_implementation(),
}


def set_log_level(level: str) -> None:
    """Apply `level` to every heapguard module logger and its handlers."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level!r}")
    for name, candidate in logging.root.manager.loggerDict.items():
        if name == _PACKAGE_LOGGER or name.startswith(_PACKAGE_LOGGER + '.'):
            if isinstance(candidate, logging.Logger):
                candidate.setLevel(numeric)
                for handler in candidate.handlers:
                    handler.setLevel(numeric)


class HeapAnalyzer:
    """
    One entry point for every analysis over a single provider.

    All operations share the analyzer's cache, so a snapshot is warmed
    once no matter how many explorations, scans or traces touch it.
    """

    def __init__(self, provider: ObjectDataProvider,
                 config: Optional[HeapGuardConfig] = None) -> None:
        self.config = config or HeapGuardConfig()
        self.cache = ObjectDataCache(provider, max_snapshots=self.config.cache_max_snapshots)
        self._stats = {
            'explorations': 0,
            'global_scans': 0,
            'comparisons': 0,
            'traces': 0,
            'total_analysis_ms': 0.0,
        }
        self._last_exploration: Optional[ExplorationStats] = None

    def _timed(self, key: str, started: float, count: int = 1) -> None:
        self._stats[key] += count
        self._stats['total_analysis_ms'] += (time.perf_counter() - started) * 1000.0

    async def explore(self, snapshot_id: str, start_node_id: str,
                      options: Optional[ExploreOptions] = None, **overrides: Any) -> ExploredNode:
        tree, _ = await self.explore_with_stats(snapshot_id, start_node_id, options, **overrides)
        return tree

    async def explore_with_stats(self, snapshot_id: str, start_node_id: str,
                                 options: Optional[ExploreOptions] = None,
                                 **overrides: Any) -> Tuple[ExploredNode, ExplorationStats]:
        started = time.perf_counter()
        tree, stats = await explore_with_stats(self.cache, snapshot_id, start_node_id,
                                               options or self.config.explore, **overrides)
        self._last_exploration = stats
        self._timed('explorations', started)
        return tree, stats

    async def scan_globals(self, snapshot_id: str) -> GlobalScopeReport:
        started = time.perf_counter()
        nodes = await self.cache.nodes(snapshot_id)
        report = classify_global_scope(nodes, self.config.thresholds)
        self._timed('global_scans', started)
        return report

    async def compare(self, before_snapshot_id: str, after_snapshot_id: str) -> ComparisonReport:
        started = time.perf_counter()
        before = await self.cache.nodes(before_snapshot_id)
        after = await self.cache.nodes(after_snapshot_id)
        report = compare_snapshots(before, after, self.config.thresholds)
        self._timed('comparisons', started)
        return report

    def tracer(self, snapshot_id: str, max_hops: int = 20) -> RetainerTracer:
        return RetainerTracer(self.cache, snapshot_id, max_hops=max_hops)

    async def trace(self, snapshot_id: str, node_id: str) -> Optional[TraceResult]:
        """Trace one node by id; None when the snapshot or node is unknown or unreadable."""
        started = time.perf_counter()
        result = await self.tracer(snapshot_id).trace_id(node_id)
        self._timed('traces', started)
        return result

    async def trace_largest(self, snapshot_id: str, limit: int = 10) -> BatchTraceReport:
        """Trace the `limit` largest nodes of a snapshot by retained size."""
        started = time.perf_counter()
        nodes = await self.cache.nodes(snapshot_id)
        largest: List[HeapNode] = sorted(nodes, key=lambda n: n.retained_size, reverse=True)[:limit]
        report = await self.tracer(snapshot_id).batch_trace(largest)
        self._timed('traces', started, count=len(largest))
        return report

    def get_status(self) -> Dict[str, Any]:
        status: Dict[str, Any] = {
            'configuration': repr(self.config),
            'analysis_stats': dict(self._stats),
            'cache_stats': self.cache.get_performance_stats(),
            'environment_info': _environment_info.copy(),
        }
        if self._last_exploration is not None:
            status['last_exploration'] = self._last_exploration.to_dict()
        return status


# Default analyzer for the module-level convenience API
_default_analyzer: Optional[HeapAnalyzer] = None


def configure(provider: ObjectDataProvider,
              config: Optional[HeapGuardConfig] = None) -> HeapAnalyzer:
    """Create the default analyzer (replacing any previous one)."""
    global _default_analyzer
    config = config or HeapGuardConfig.from_env()
    set_log_level(config.log_level)
    _default_analyzer = HeapAnalyzer(provider, config)
    _logger.debug(f"Default analyzer configured: {config!r}")
    return _default_analyzer


def get_analyzer() -> HeapAnalyzer:
    """Return the default analyzer, creating an empty in-memory one if needed."""
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = HeapAnalyzer(InMemoryProvider({}), HeapGuardConfig.from_env())
    return _default_analyzer


def reset() -> None:
    """Drop the default analyzer (for testing)."""
    global _default_analyzer
    _default_analyzer = None


async def deep_dive(snapshot_id: str, node_id: str, **overrides: Any) -> ExploredNode:
    return await get_analyzer().explore(snapshot_id, node_id, **overrides)


async def scan_globals(snapshot_id: str) -> GlobalScopeReport:
    return await get_analyzer().scan_globals(snapshot_id)


async def compare(before_snapshot_id: str, after_snapshot_id: str) -> ComparisonReport:
    return await get_analyzer().compare(before_snapshot_id, after_snapshot_id)


async def trace(snapshot_id: str, node_id: str) -> Optional[TraceResult]:
    return await get_analyzer().trace(snapshot_id, node_id)


def get_status() -> Dict[str, Any]:
    """Status of the default analyzer plus process memory."""
    status = get_analyzer().get_status()
    status['process_rss_mb'] = round(get_memory_tracker().get_rss_mb(), 2)
    return status


def get_performance_summary() -> Dict[str, Any]:
    """Overhead statistics from the analyzer and both detectors."""
    return {
        'core_stats': get_analyzer().get_status()['analysis_stats'],
        'cache_stats': get_analyzer().cache.get_performance_stats(),
        'detector_stats': {
            'global_scope': get_global_scope_stats(),
            'growth': get_growth_stats(),
        },
    }
