#=============================================================================
# File        : heapguard/sampling.py
# Project     : HeapGuard v1.0
# Component   : Sampling - Analyzer Process Memory Measurement
# Description : Measures the analyzer's own footprint while it walks snapshots
#               • psutil-backed RSS and peak measurement
#               • MemoryTracker with baseline and signed deltas
#               • Testing hooks to force a deterministic probe
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, psutil
# Standards   : PEP 8, Type Hints, Cross-platform Compatibility
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: os, time, psutil
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import logging
import os
import time
from typing import Optional, Protocol, runtime_checkable

import psutil

_logger = logging.getLogger(__name__)

_MB = 1024 * 1024


@runtime_checkable
class MemoryProbe(Protocol):
    """Protocol for process memory probes."""

    def get_rss_mb(self) -> float:
        """Get current RSS memory usage in MB."""
        ...

    def get_peak_mb(self) -> Optional[float]:
        """Get peak memory usage in MB if available."""
        ...


class PsutilProbe:
    """Memory probe using psutil."""

    def __init__(self) -> None:
        self._process = psutil.Process(os.getpid())

    def get_rss_mb(self) -> float:
        try:
            return self._process.memory_info().rss / _MB
        except psutil.Error as e:
            _logger.debug(f"RSS measurement failed: {e}")
            return 0.0

    def get_peak_mb(self) -> Optional[float]:
        try:
            memory_info = self._process.memory_info()
        except psutil.Error:
            return None
        if hasattr(memory_info, 'peak_wset'):  # Windows
            return memory_info.peak_wset / _MB
        if hasattr(memory_info, 'peak_rss'):  # Some Unix variants
            return memory_info.peak_rss / _MB
        return None


class NullProbe:
    """Probe that reports nothing; used when measurement is disabled."""

    def get_rss_mb(self) -> float:
        return 0.0

    def get_peak_mb(self) -> Optional[float]:
        return None


class MemoryTracker:
    """
    Process memory tracking around an analysis run.

    Measurements are cached for a short window so tight loops (one
    reading per explored subtree) stay cheap.
    """

    def __init__(self, probe: Optional[MemoryProbe] = None) -> None:
        self._probe = probe if probe is not None else PsutilProbe()
        self._baseline_mb: Optional[float] = None
        self._last_measurement = 0.0
        self._measurement_cache = 0.0
        self._cache_duration = 0.1  # Cache for 100ms to reduce overhead

    @property
    def probe(self) -> MemoryProbe:
        return self._probe

    def set_baseline(self) -> float:
        """Set current memory usage as baseline and return it."""
        self._last_measurement = 0.0
        self._baseline_mb = self.get_rss_mb()
        return self._baseline_mb

    def get_rss_mb(self) -> float:
        """Get current RSS memory usage in MB with caching."""
        now = time.monotonic()
        if self._last_measurement and now - self._last_measurement < self._cache_duration:
            return self._measurement_cache

        self._measurement_cache = self._probe.get_rss_mb()
        self._last_measurement = now
        return self._measurement_cache

    def get_peak_mb(self) -> Optional[float]:
        return self._probe.get_peak_mb()

    def get_delta_mb(self) -> Optional[float]:
        """Signed change since baseline in MB (None without a baseline)."""
        if self._baseline_mb is None:
            return None
        self._last_measurement = 0.0
        return self.get_rss_mb() - self._baseline_mb

    def is_available(self) -> bool:
        return not isinstance(self._probe, NullProbe)

    def get_probe_type(self) -> str:
        return type(self._probe).__name__


# Global instance for convenience
_default_tracker: Optional[MemoryTracker] = None


def get_memory_tracker() -> MemoryTracker:
    """Get the default global memory tracker instance."""
    global _default_tracker
    if _default_tracker is None:
        _default_tracker = MemoryTracker()
    return _default_tracker


# Testing hooks for deterministic unit tests
def force_probe(probe: MemoryProbe) -> None:
    """Force a specific memory probe (replaces global tracker)."""
    global _default_tracker
    _default_tracker = MemoryTracker(probe)


def reset_global_state() -> None:
    """Reset global tracker state (for testing)."""
    global _default_tracker
    _default_tracker = None


def get_rss_mb() -> float:
    """Get current memory usage of this process in MB."""
    return get_memory_tracker().get_rss_mb()
