"""Integration tests for batched concurrent enrichment.

Tests critical behaviour:
- Output keeps line item order whatever the completion order
- One failing item never aborts its batch
- Batches honour batch_size and report progress to the observer
"""

import logging
import threading
import time
from dataclasses import replace

import responses
from responses import matchers

from conftest import load_json_fixture
from vendor_orders.batch_orchestrator import BatchOrchestrator, ProgressObserver
from vendor_orders.enrichment.base_client import BaseEnrichmentClient
from vendor_orders.enrichment.marchon import API_URL as MARCHON_API_URL
from vendor_orders.enrichment.marchon import MarchonClient, style_payload
from vendor_orders.logging_config import RUN_LOG_FILE, console_level, get_log_file_path, set_console_debug
from vendor_orders.models import CandidateVariant, EnrichmentOutcome, LookupResult, MatchResult, ParsedOrder


class RecordingObserver(ProgressObserver):
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def on_run_start(self, run_id, order):
        self.events.append(("start", run_id, len(order.items)))

    def on_batch_start(self, run_id, batch_number, total_batches, size):
        self.events.append(("batch", batch_number, total_batches, size))

    def on_item_complete(self, run_id, index, item, outcome):
        with self._lock:
            self.events.append(("item", index, outcome.found))

    def on_run_complete(self, run_id, stats):
        self.events.append(("complete", stats.processed))


class StubClient(BaseEnrichmentClient):
    """Finds every model except BOOM; earlier items finish last."""

    vendor_code = "stub"

    def enrich(self, item):
        if item.model == "BOOM":
            raise RuntimeError("catalog exploded")
        time.sleep(item.raw.get("delay", 0))
        variant = CandidateVariant(upc=f"UPC-{item.model}")
        lookup = LookupResult(found=True, candidates=[variant])
        match = MatchResult(variant=variant, confidence=100, validated=True, reason="stub")
        item.upc = variant.upc
        return EnrichmentOutcome(
            strategy="search", found=True, lookup=lookup, match=match, candidates_count=1
        )


def _order(make_item, models, **item_fields):
    return ParsedOrder(
        vendor="Marchon",
        vendor_code="marchon",
        order_number="M1",
        items=[make_item(model=model, raw={"frame": model}, **item_fields) for model in models],
    )


# ============================================================================
# ORDERING AND FAILURE ISOLATION
# ============================================================================


def test_batch_with_one_failing_item(mock_responses, fast_config, run_cache, make_item):
    """N items with one 503 give N ordered outcomes and exactly one failure."""
    models = ["CK5932", "BAD1", "CK5933", "CK5934", "CK5935"]
    for model in models:
        if model == "BAD1":
            mock_responses.add(
                responses.POST, MARCHON_API_URL, status=503,
                match=[matchers.json_params_matcher(style_payload(model))],
            )
        else:
            mock_responses.add(
                responses.POST, MARCHON_API_URL, json=load_json_fixture("marchon_sku.json"), status=200,
                match=[matchers.json_params_matcher(style_payload(model))],
            )

    order = _order(make_item, models, color_code="001", eye_size="54", bridge="17")
    client = MarchonClient(config=fast_config, cache=run_cache)

    result = BatchOrchestrator(client).process(order)

    assert len(result.outcomes) == len(models)
    assert [item.raw["frame"] for item in result.items] == models
    failures = [i for i, outcome in enumerate(result.outcomes) if not outcome.found]
    assert failures == [1]
    assert result.outcomes[1].error_type == "server_error"
    assert result.items[1].validated is False
    for index in (0, 2, 3, 4):
        assert result.outcomes[index].lookup.search_key == models[index]
        assert result.items[index].validated is True
    assert result.stats.failed == 1
    assert result.stats.enriched == 4
    assert result.stats.errors == {"server_error": 1}


def test_outcomes_follow_item_order_not_completion_order(fast_config, make_item):
    order = ParsedOrder(vendor="Stub", vendor_code="stub", items=[
        make_item(model="SLOW", raw={"delay": 0.2}),
        make_item(model="FAST", raw={"delay": 0}),
    ])

    result = BatchOrchestrator(StubClient(config=fast_config)).process(order)

    assert [o.lookup.candidates[0].upc for o in result.outcomes] == ["UPC-SLOW", "UPC-FAST"]


def test_exception_escaping_client_becomes_failed_outcome(fast_config, make_item):
    order = ParsedOrder(vendor="Stub", vendor_code="stub", items=[
        make_item(model="OK1"), make_item(model="BOOM"), make_item(model="OK2"),
    ])

    result = BatchOrchestrator(StubClient(config=fast_config)).process(order, run_id="run-42")

    assert result.run_id == "run-42"
    assert [o.found for o in result.outcomes] == [True, False, True]
    failed = result.outcomes[1]
    assert failed.error == "catalog exploded"
    assert failed.error_type == "unknown"
    assert order.items[1].validation_reason == "catalog exploded"
    assert order.items[1].enriched_data is None
    assert order.items[2].upc == "UPC-OK2"


# ============================================================================
# BATCHING AND PROGRESS
# ============================================================================


def test_batches_and_progress_events(fast_config, make_item):
    order = ParsedOrder(
        vendor="Stub", vendor_code="stub",
        items=[make_item(model=f"M{i}") for i in range(5)],
    )
    observer = RecordingObserver()

    BatchOrchestrator(StubClient(config=fast_config), observer=observer).process(order, run_id="r1")

    batches = [event for event in observer.events if event[0] == "batch"]
    assert batches == [("batch", 1, 3, 2), ("batch", 2, 3, 2), ("batch", 3, 3, 1)]
    assert observer.events[0] == ("start", "r1", 5)
    assert observer.events[-1] == ("complete", 5)
    assert sorted(e[1] for e in observer.events if e[0] == "item") == [0, 1, 2, 3, 4]


def test_empty_order(fast_config):
    order = ParsedOrder(vendor="Stub", vendor_code="stub")

    result = BatchOrchestrator(StubClient(config=fast_config)).process(order)

    assert result.outcomes == []
    assert result.stats.total_items == 0
    assert len(result.run_id) == 12


def test_enriched_order_to_dict(fast_config, make_item):
    order = ParsedOrder(vendor="Stub", vendor_code="stub", order_number="9", items=[make_item(model="A")])

    data = BatchOrchestrator(StubClient(config=fast_config)).process(order, run_id="r2").to_dict()

    assert data["runId"] == "r2"
    assert data["orderNumber"] == "9"
    assert data["items"][0]["upc"] == "UPC-A"
    assert data["enrichment"][0]["strategy"] == "search"
    assert data["stats"]["processed"] == 1


# ============================================================================
# DEBUG MODE
# ============================================================================


def _run_log() -> str:
    with open(get_log_file_path(RUN_LOG_FILE), encoding="utf-8") as f:
        return f.read()


def test_debug_run_logs_candidate_scoring(mock_responses, fast_config, run_cache, make_item):
    mock_responses.add(
        responses.POST, MARCHON_API_URL, json=load_json_fixture("marchon_sku.json"), status=200
    )
    config = replace(fast_config, debug=True)
    order = _order(make_item, ["CK5932"], color_code="001", eye_size="54", bridge="17")

    try:
        BatchOrchestrator(MarchonClient(config=config, cache=run_cache)).process(order, run_id="dbg-1")
        assert console_level() == logging.DEBUG
    finally:
        set_console_debug(False)

    log = _run_log()
    assert "run=dbg-1" in log
    assert "CK5932 candidate 1: upc=883121000011 color=001 size=54 score=90" in log
    assert "[1] candidate 1/3 upc=883121000011 score=90 agreed: colorCode, eyeSize, bridge" in log


def test_non_debug_run_keeps_console_at_info(fast_config, make_item):
    order = ParsedOrder(vendor="Stub", vendor_code="stub", items=[make_item(model="QUIET")])

    BatchOrchestrator(StubClient(config=fast_config)).process(order, run_id="quiet-1")

    assert console_level() == logging.INFO
    assert "QUIET candidate" not in _run_log()
