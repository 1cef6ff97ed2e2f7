#=============================================================================
# File        : tests/test_growth.py
# Project     : HeapGuard v1.0
# Component   : Growth Detector Test Suite
# Description : Identity pairing, growth patterns and the confidence model
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Created     : 2025-09-02
#=============================================================================

import pytest

from heapguard.config import KB, MB, Thresholds
from heapguard.detectors import calculate_leak_confidence, compare_snapshots
from heapguard.detectors.growth import (get_performance_stats, growth_candidates,
                                        reset_performance_stats)
from heapguard.model import HeapNode
from heapguard.report import SeverityLevel

from conftest import make_node


def baseline():
    return [
        make_node("1", "Window", size=2 * KB),
        make_node("2", "Array", type="array", size=300 * KB),
        make_node("3", "onResize EventListener", type="closure", size=400),
        make_node("4", "render closure", type="closure", size=64, retained=200 * KB),
    ]


def heap_nodes(dicts):
    return [HeapNode.from_dict(d) for d in dicts]


class TestSnapshotComparison:

    def test_identical_snapshots_report_nothing(self):
        nodes = baseline()
        report = compare_snapshots(nodes, nodes)
        assert report.findings == []
        assert report.recommendations == []
        assert report.total_growth == 0
        assert report.summary == "No growth patterns detected between snapshots."

    def test_listener_size_threshold(self):
        after = [
            make_node("10", "click EventListener", size=150),
            make_node("11", "scroll listener", size=50),
        ]
        report = compare_snapshots([], after)
        assert len(report.findings) == 1
        finding = report.findings[0]
        assert finding.category == "event_listeners"
        assert finding.object_count == 1
        assert finding.objects == ("click EventListener",)
        assert finding.severity is SeverityLevel.HIGH

    def test_new_large_arrays(self):
        after = [make_node(str(i), "Array", type="array", size=200 * KB) for i in range(6)]
        report = compare_snapshots([], after)
        finding = report.findings[0]
        assert finding.category == "array_growth"
        assert finding.object_count == 6
        assert finding.confidence == 40  # >1MB total (+25), ratio 2.0 (+15)
        assert finding.severity is SeverityLevel.HIGH
        assert report.recommendations == []

    def test_recommendation_needs_high_confidence(self):
        after = [make_node(str(i), "EventListener", size=5000) for i in range(1100)]
        report = compare_snapshots([], after)
        finding = report.findings[0]
        assert finding.confidence == 95
        assert len(finding.objects) == 1100
        assert report.recommendations == [
            "Event listeners: 1100 listeners accumulated - "
            "pair every addEventListener with removeEventListener"
        ]

    def test_unchanged_nodes_are_not_candidates(self):
        before = baseline()
        after = baseline() + [make_node("20", "Array", type="array", size=250 * KB)]
        report = compare_snapshots(before, after)
        arrays = [f for f in report.findings if f.category == "array_growth"]
        assert len(arrays) == 1
        assert arrays[0].object_count == 1
        assert arrays[0].self_size == 250 * KB

    def test_grown_matched_node_is_candidate(self):
        before = baseline()
        after = baseline()
        after[3] = make_node("4", "render closure", type="closure", size=64, retained=900 * KB)
        report = compare_snapshots(before, after)
        assert [f.category for f in report.findings] == ["closures"]
        assert report.findings[0].severity is SeverityLevel.MEDIUM
        assert report.findings[0].retained_size == 900 * KB

    def test_findings_sorted_by_aggregate_size(self):
        after = [
            make_node("1", "Array", type="array", size=150 * KB),
            make_node("2", "handler closure", type="closure", size=10, retained=4 * MB),
        ]
        report = compare_snapshots([], after)
        assert [f.category for f in report.findings] == ["closures", "array_growth"]

    def test_memory_growth_figures(self):
        report = compare_snapshots([make_node("1", "A", size=1000)],
                                   [make_node("1", "A", size=1000), make_node("2", "B", size=500)])
        assert report.before_size == 1000
        assert report.after_size == 1500
        assert report.total_growth == 500
        assert report.percentage_growth == pytest.approx(50.0)
        assert report.to_dict()['memoryGrowth']['percentageGrowth'] == 50.0

    def test_performance_stats(self):
        reset_performance_stats()
        compare_snapshots(baseline(), baseline())
        stats = get_performance_stats()
        assert stats['total_comparisons'] == 1
        assert stats['growth_candidates'] == 0


class TestGrowthCandidates:

    def test_new_instances_beyond_matches(self):
        before = heap_nodes([make_node("1", "Item", size=10)])
        after = heap_nodes([make_node("5", "Item", size=10), make_node("6", "Item", size=10)])
        grown = growth_candidates(before, after)
        assert len(grown) == 1

    def test_type_is_part_of_identity(self):
        before = heap_nodes([make_node("1", "data", type="object", size=10)])
        after = heap_nodes([make_node("2", "data", type="array", size=10)])
        assert [n.id for n in growth_candidates(before, after)] == ["2"]

    def test_keeps_after_order(self):
        after = heap_nodes([make_node(str(i), f"N{i}", size=i) for i in range(5)])
        assert [n.id for n in growth_candidates([], after)] == ["0", "1", "2", "3", "4"]


class TestLeakConfidence:

    def test_capped_at_95(self):
        assert calculate_leak_confidence(10 * MB, 10.0, 5000) == 95

    def test_zero_for_small_static_sets(self):
        assert calculate_leak_confidence(10 * KB, 0.0, 1) == 0

    @pytest.mark.parametrize("size,ratio,count,expected", [
        (200 * KB, 0.0, 1, 15),
        (2 * MB, 0.0, 1, 25),
        (6 * MB, 0.0, 1, 40),
        (0, 1.0, 1, 15),
        (0, 3.0, 1, 25),
        (0, 6.0, 1, 40),
        (0, 0.0, 101, 10),
        (0, 0.0, 1001, 15),
    ])
    def test_highest_tier_per_factor(self, size, ratio, count, expected):
        assert calculate_leak_confidence(size, ratio, count) == expected

    def test_custom_thresholds(self):
        t = Thresholds(suspicious_growth_ratio=0.0)
        assert calculate_leak_confidence(0, 0.1, 1, t) == 15
