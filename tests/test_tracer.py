#=============================================================================
# File        : tests/test_tracer.py
# Project     : HeapGuard v1.0
# Component   : Retainer Tracer Test Suite
# Description : Retainer walks, root classification and leak scoring
#               • Strong-over-weak preference, cycles and hop limit
#               • Global, closure and transient roots
#               • Batch totals and unknown ids
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Created     : 2025-09-02
#=============================================================================

import asyncio
import logging

import pytest

from heapguard.cache import ObjectDataCache
from heapguard.config import KB, MB
from heapguard.model import HeapNode
from heapguard.provider import InMemoryProvider
from heapguard.report import RetainerInfo
from heapguard.tracer import RetainerTracer

from conftest import make_node


def retention_graph():
    return [
        make_node("1", "Window", size=4 * KB),
        # Global cache
        make_node("2", "Object", size=2 * MB, referrers=[("bigCache", "1")]),
        # Detached element kept by a handler table hanging off window
        make_node("5", "Detached HTMLDivElement", size=2 * MB, referrers=[("el", "6")]),
        make_node("6", "handlers", size=200, referrers=[("handlers", "1")]),
        # Request-scoped payload
        make_node("8", "payload", size=150 * KB, referrers=[("body", "9")]),
        make_node("9", "IncomingMessage", size=1 * KB),
        # Two-node cycle with no root
        make_node("20", "A", size=100, referrers=[("next", "21")]),
        make_node("21", "B", size=100, referrers=[("prev", "20")]),
        # Weak and strong referrers
        make_node("30", "Entry", size=100, referrers=[("weakKey", "31"), ("entry", "32")]),
        make_node("31", "WeakHolder", size=10),
        make_node("32", "Store", size=10),
        # Timer callback on window
        make_node("40", "intervalHandler closure", type="closure", size=300 * KB,
                  referrers=[("tick", "1")]),
        # Array captured by a closure held by an unrecognized owner
        make_node("50", "Array", type="array", size=800 * KB, referrers=[("items", "51")]),
        make_node("51", "cb closure", type="closure", size=64, referrers=[("callback", "52")]),
        make_node("52", "Holder", size=32),
    ]


def chain(length):
    nodes = []
    for i in range(length):
        referrers = [("prev", f"c{i + 1}")] if i + 1 < length else []
        nodes.append(make_node(f"c{i}", f"Link {i}", size=10, referrers=referrers))
    return nodes


class BrokenReferrerProvider(InMemoryProvider):
    async def fetch_node(self, snapshot_id, node_id):
        if node_id == "31":
            raise ConnectionError("object data service unavailable")
        return await super().fetch_node(snapshot_id, node_id)


@pytest.fixture
def tracer():
    cache = ObjectDataCache(InMemoryProvider({'s': retention_graph()}))
    return RetainerTracer(cache, 's')


def trace(tracer, node_id):
    return asyncio.run(tracer.trace_id(node_id))


class TestRetainerPaths:

    def test_global_root(self, tracer):
        result = trace(tracer, "2")
        assert result.root_path == ("Window (@1)", "[bigCache] Object (@2)")
        assert result.retainer_info.root_type == "global"
        assert result.retainer_info.path_length == 2
        assert result.retainer_info.retainer_count == 1

    def test_path_ends_at_recognized_root(self, tracer):
        result = trace(tracer, "5")
        assert result.root_path == ("Window (@1)", "[handlers] handlers (@6)",
                                    "[el] Detached HTMLDivElement (@5)")

    def test_strong_referrer_preferred(self, tracer):
        result = trace(tracer, "30")
        assert result.root_path[0] == "Store (@32)"

    def test_failing_referrer_skipped(self, caplog):
        cache = ObjectDataCache(BrokenReferrerProvider({'s': [
            make_node("30", "Entry", referrers=[("first", "31"), ("second", "32")]),
            make_node("31", "Broken"),
            make_node("32", "Store"),
        ]}))
        with caplog.at_level(logging.WARNING, logger="heapguard.tracer"):
            result = trace(RetainerTracer(cache, 's'), "30")
        assert result.root_path[0] == "Store (@32)"
        assert any("@31" in record.getMessage() for record in caplog.records)

    def test_cycle_detected(self, tracer):
        result = trace(tracer, "20")
        assert result.retainer_info.has_circular_refs
        assert result.retainer_info.path_length == 2
        assert result.retainer_info.root_type == "unknown"

    def test_hop_limit(self):
        cache = ObjectDataCache(InMemoryProvider({'s': chain(10)}))
        result = trace(RetainerTracer(cache, 's', max_hops=3), "c0")
        assert result.retainer_info.path_length == 4
        assert result.root_path[0] == "Link 3 (@c3)"

    def test_hop_limit_logged(self, caplog):
        cache = ObjectDataCache(InMemoryProvider({'s': chain(10)}))
        with caplog.at_level(logging.DEBUG, logger="heapguard.tracer"):
            trace(RetainerTracer(cache, 's', max_hops=3), "c0")
        assert any("stopped at 3 hops" in record.getMessage() for record in caplog.records)

    def test_root_on_last_hop_not_logged_as_limit(self, caplog):
        cache = ObjectDataCache(InMemoryProvider({'s': [
            make_node("t", "Target", referrers=[("held", "m")]),
            make_node("m", "Holder", referrers=[("holder", "w")]),
            make_node("w", "Window"),
        ]}))
        with caplog.at_level(logging.DEBUG, logger="heapguard.tracer"):
            result = trace(RetainerTracer(cache, 's', max_hops=2), "t")
        assert result.root_path[0] == "Window (@w)"
        assert result.retainer_info.root_type == "global"
        assert not any("stopped at" in record.getMessage() for record in caplog.records)

    def test_unreadable_target_is_none(self, caplog):
        cache = ObjectDataCache(BrokenReferrerProvider({'s': [make_node("31", "Broken")]}))
        with caplog.at_level(logging.WARNING, logger="heapguard.tracer"):
            result = trace(RetainerTracer(cache, 's'), "31")
        assert result is None
        assert any("Cannot trace @31" in record.getMessage() for record in caplog.records)

    def test_invalid_hop_limit(self, tracer):
        with pytest.raises(ValueError):
            RetainerTracer(ObjectDataCache(InMemoryProvider({})), 's', max_hops=0)

    def test_unknown_id(self, tracer):
        assert trace(tracer, "@9999") is None

    def test_at_prefixed_id(self, tracer):
        assert trace(tracer, "@2").node.id == "2"


class TestLeakAssessment:

    def test_detached_element_is_likely_leak(self, tracer):
        result = trace(tracer, "5")
        assert result.retainer_info.is_detached
        assert result.confidence == pytest.approx(0.6)
        assert result.is_likely_leak
        assert result.actionable_advice.startswith("Detached object (2.0MB)")
        assert "detached from its owning structure" in result.explanation

    def test_transient_root_not_a_leak(self, tracer):
        result = trace(tracer, "8")
        assert result.retainer_info.root_type == "transient"
        assert result.confidence == 0.0
        assert not result.is_likely_leak
        assert "short-lived request/response" in result.actionable_advice

    def test_timer_closure_on_window(self, tracer):
        result = trace(tracer, "40")
        assert result.confidence == 1.0
        assert result.is_likely_leak
        assert result.actionable_advice.startswith("Timer/interval leak")

    def test_array_held_by_closure(self, tracer):
        result = trace(tracer, "50")
        assert result.retainer_info.root_type == "closure"
        assert result.confidence == pytest.approx(0.7)
        assert result.is_likely_leak
        assert "Array accumulation" in result.actionable_advice

    def test_small_plain_object(self, tracer):
        result = trace(tracer, "6")
        assert result.confidence == 0.0
        assert result.explanation == "Confidence: 0% - No strong leak indicators found"

    @pytest.mark.parametrize("size", [0, 60 * KB, 300 * KB, 2 * MB, 50 * MB])
    @pytest.mark.parametrize("root_type", ["global", "closure", "framework", "transient", "unknown"])
    def test_confidence_bounds(self, size, root_type):
        node = HeapNode(id="1", name="Detached timer Array closure", type="closure", self_size=size)
        info = RetainerInfo(root_type=root_type, path_length=12, is_detached=True)
        confidence, factors = RetainerTracer.assess(node, info, ["setInterval handler"])
        assert 0.0 <= confidence <= 1.0
        assert factors


class TestBatchTrace:

    def test_leak_totals(self, tracer):
        async def run():
            nodes = [await tracer._cache.get('s', node_id) for node_id in ("5", "8", "50")]
            return await tracer.batch_trace(nodes)

        report = asyncio.run(run())
        assert len(report.traces) == 3
        assert report.total_likely_leaks == 2
        assert report.total_retained_by_leaks == 2 * MB + 800 * KB
        assert report.leak_categories == {"global": 1, "closure": 1}

        summary = report.to_dict()['summary']
        assert summary['totalLikelyLeaks'] == 2
        assert summary['leakCategories'] == {"global": 1, "closure": 1}

    def test_one_warm_up_for_many_traces(self):
        provider = InMemoryProvider({'s': retention_graph()})
        tracer = RetainerTracer(ObjectDataCache(provider), 's')

        async def run():
            for node_id in ("2", "5", "8", "40", "50"):
                await tracer.trace_id(node_id)

        asyncio.run(run())
        assert provider.warm_up_calls == 1
