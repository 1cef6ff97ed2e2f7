#=============================================================================
# File        : tests/test_global_scope.py
# Project     : HeapGuard v1.0
# Component   : Global-Scope Detector Test Suite
# Description : Membership, exclusions, scoring bounds and report shape
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Created     : 2025-09-02
#=============================================================================

import json

import pytest

from heapguard.config import KB, MB, Thresholds
from heapguard.detectors import classify_global_scope, score_global
from heapguard.detectors.global_scope import get_performance_stats, reset_performance_stats
from heapguard.model import HeapNode
from heapguard.report import SeverityLevel, severity_for_size

from conftest import make_node


class TestGlobalScopeClassification:

    def test_big_window_cache(self):
        """window.bigCache at 2MB scores the maximum and lands in HIGH."""
        report = classify_global_scope([
            make_node("1", "window.bigCache", "object", 2_000_000),
        ])
        assert len(report.suspicious) == 1
        finding = report.suspicious[0]
        assert finding.name == "bigCache"
        assert finding.confidence == 95
        assert finding.severity is SeverityLevel.HIGH
        assert finding.location == "window"
        assert finding.edge_type == "window_property"
        assert finding.suggested_fix == "Implement cache size limits and expiration for bigCache"
        assert "1.9MB" in finding.description
        assert report.summary == "HIGH: 1 high-impact global variable leaks found"

    def test_empty_input_is_healthy(self):
        report = classify_global_scope([])
        assert report.suspicious == []
        assert report.is_healthy
        assert report.total_memory_impact == 0
        assert report.summary == "No significant global variable leaks detected"
        assert report.recommendations == ["Global variable usage appears healthy"]

    @pytest.mark.parametrize("name", ["window.document", "window.setTimeout",
                                      "global.process", "window.localStorage"])
    def test_builtin_globals_excluded(self, name):
        report = classify_global_scope([make_node("1", name, "object", 5 * MB)])
        assert report.total_global_variables == 0
        assert report.suspicious == []

    @pytest.mark.parametrize("node_type", ["hidden", "number", "boolean", "null", "undefined", "symbol"])
    def test_benign_types_excluded(self, node_type):
        report = classify_global_scope([make_node("1", "window.counter", node_type, 5 * MB)])
        assert report.total_global_variables == 0

    def test_symbol_keyed_names_excluded(self):
        report = classify_global_scope([make_node("1", "window.<symbol>internal", "object", 5 * MB)])
        assert report.total_global_variables == 0

    def test_non_global_nodes_ignored(self):
        report = classify_global_scope([make_node("1", "LocalCache", "object", 5 * MB)])
        assert report.total_global_variables == 0

    def test_membership_via_referrer_edge(self):
        node = make_node("5", "appState", "object", 200 * KB, referrers=[("window", "1")])
        report = classify_global_scope([node])
        assert [f.name for f in report.suspicious] == ["appState"]
        assert report.suspicious[0].severity is SeverityLevel.MEDIUM

    def test_small_globals_counted_not_reported(self):
        report = classify_global_scope([make_node("1", "window.tiny", "object", 500)])
        assert report.total_global_variables == 1
        assert report.suspicious == []

    def test_sorted_by_retained_size(self):
        report = classify_global_scope([
            make_node("1", "window.smallStore", "object", 60 * KB, retained=60 * KB),
            make_node("2", "window.bigArray", "array", 200 * KB, retained=3 * MB),
            make_node("3", "window.midMap", "object", 300 * KB, retained=400 * KB),
        ])
        assert [f.name for f in report.suspicious] == ["bigArray", "midMap", "smallStore"]
        assert report.top_leaks == report.suspicious

    def test_fix_buckets(self):
        report = classify_global_scope([
            make_node("1", "window.rows", "array", 2 * MB),
            make_node("2", "window.userMap", "object", 2 * MB),
            make_node("3", "window.payload", "object", 2 * MB),
        ])
        fixes = {f.name: f.suggested_fix for f in report.suspicious}
        assert fixes["rows"].startswith("Clear array contents: rows.length = 0")
        assert fixes["userMap"] == "Clear collection: userMap.clear() or implement LRU eviction"
        assert fixes["payload"] == "Clear payload when no longer needed"
        assert report.recommendations[0] == "3 global variables > 1MB - implement immediate cleanup"

    def test_critical_summary(self):
        report = classify_global_scope([make_node("1", "global.archive", "object", 11 * MB)])
        assert report.suspicious[0].severity is SeverityLevel.CRITICAL
        assert report.summary == "CRITICAL: 1 critical global variable leaks found!"

    def test_accepts_heap_nodes(self):
        node = HeapNode(id="1", name="window.sessionStore", self_size=2 * MB)
        report = classify_global_scope([node])
        assert report.suspicious[0].name == "sessionStore"

    def test_report_serializes(self):
        report = classify_global_scope([make_node("1", "window.bigCache", "object", 2 * MB)])
        data = json.loads(report.to_json())
        assert data['suspiciousGlobals'][0]['severity'] == "HIGH"
        assert data['totalMemoryImpact'] == 2 * MB

    def test_performance_stats(self):
        reset_performance_stats()
        classify_global_scope([make_node("1", "window.bigCache", "object", 2 * MB)])
        stats = get_performance_stats()
        assert stats['total_scans'] == 1
        assert stats['findings_reported'] == 1


class TestScoringLaws:

    @pytest.mark.parametrize("size", [0, 500, 2 * KB, 20 * KB, 200 * KB, 2 * MB, 20 * MB])
    @pytest.mark.parametrize("name,node_type", [
        ("window.dataStore", "array"), ("window.x", "object"),
        ("appConfig", "closure"), ("global.buffer", "native"),
    ])
    def test_confidence_bounds(self, size, name, node_type):
        node = HeapNode.from_dict(make_node("1", name, node_type, size))
        confidence = score_global(node, name.split('.')[-1])
        assert 0 <= confidence <= 95

    def test_severity_monotonic_in_size(self):
        sizes = [0, 1, 100 * KB, 100 * KB + 1, MB, MB + 1, 10 * MB, 10 * MB + 1, 100 * MB]
        severities = [severity_for_size(s) for s in sizes]
        assert all(a <= b for a, b in zip(severities, severities[1:]))
        assert severities[-1] is SeverityLevel.CRITICAL

    def test_custom_thresholds(self):
        strict = Thresholds(suspicious_object=1 * KB, large_object=2 * KB,
                            very_large_object=3 * KB, critical_object=4 * KB)
        assert severity_for_size(5 * KB, strict) is SeverityLevel.CRITICAL
