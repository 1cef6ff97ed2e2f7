#=============================================================================
# File        : tests/test_sampling.py
# Project     : HeapGuard v1.0
# Component   : Memory Sampling Test Suite
# Description : Tracker baselines, deltas and probe injection
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Created     : 2025-09-02
#=============================================================================

import asyncio

import pytest

from heapguard import sampling
from heapguard.cache import ObjectDataCache
from heapguard.explorer import explore_with_stats
from heapguard.provider import InMemoryProvider
from heapguard.sampling import MemoryTracker, NullProbe, PsutilProbe

from conftest import wide_tree


class SequenceProbe:
    """Returns the given RSS readings in order, repeating the last one."""

    def __init__(self, *readings):
        self.readings = list(readings)

    def get_rss_mb(self):
        if len(self.readings) > 1:
            return self.readings.pop(0)
        return self.readings[0]

    def get_peak_mb(self):
        return None


class TestMemoryTracker:

    def test_delta_requires_baseline(self):
        assert MemoryTracker(SequenceProbe(10.0)).get_delta_mb() is None

    def test_signed_delta(self):
        tracker = MemoryTracker(SequenceProbe(100.0, 96.5))
        tracker.set_baseline()
        assert tracker.get_delta_mb() == pytest.approx(-3.5)

    def test_null_probe_unavailable(self):
        tracker = MemoryTracker(NullProbe())
        assert not tracker.is_available()
        assert tracker.get_probe_type() == "NullProbe"
        assert tracker.get_peak_mb() is None

    def test_psutil_probe_reads_process(self):
        probe = PsutilProbe()
        assert probe.get_rss_mb() > 0

    def test_force_probe(self):
        probe = SequenceProbe(42.0)
        sampling.force_probe(probe)
        assert sampling.get_memory_tracker().probe is probe
        assert sampling.get_rss_mb() == 42.0


class TestExplorationMemory:

    def test_rss_delta_reported(self):
        cache = ObjectDataCache(InMemoryProvider({'wide': wide_tree(fanout=2, depth=2)}))
        _, stats = asyncio.run(explore_with_stats(cache, 'wide', '1',
                                                  memory_probe=SequenceProbe(50.0, 51.25)))
        assert stats.rss_delta_mb == pytest.approx(1.25)
        assert stats.to_dict()['rssDeltaMb'] == 1.25
