"""
Batch Orchestrator - Concurrent Enrichment of an Order's Line Items

Items are enriched in batches of config.batch_size on a ThreadPoolExecutor.
Batches run one after another with config.batch_pause between them to stay
under vendor rate limits. Results are collected by position, so the output
keeps the order's line item order whatever the completion order.

A failing item never aborts its batch: any exception escaping a client is
turned into a failed outcome for that item alone.

Progress reporting goes through a ProgressObserver instead of being logged
inline, so clients and the matcher stay free of progress output.
"""

import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Optional

from config import PipelineConfig
from vendor_orders.enrichment.base_client import BaseEnrichmentClient
from vendor_orders.error_tracking import ErrorStage, OrderError, classify_exception
from vendor_orders.logging_config import get_logger, set_console_debug
from vendor_orders.models import EnrichmentOutcome, LineItem, ParsedOrder
from vendor_orders.statistics_tracker import RunStatistics

logger = get_logger(__name__)


class ProgressObserver:
    """Receives run progress. Every hook is a no-op by default."""

    def on_run_start(self, run_id: str, order: ParsedOrder) -> None:
        pass

    def on_batch_start(self, run_id: str, batch_number: int, total_batches: int, size: int) -> None:
        pass

    def on_item_complete(self, run_id: str, index: int, item: LineItem, outcome: EnrichmentOutcome) -> None:
        pass

    def on_run_complete(self, run_id: str, stats: RunStatistics) -> None:
        pass


class LoggingObserver(ProgressObserver):
    """Writes run progress through the pipeline logger.

    With debug set, each found item also logs its match breakdown: which
    rules agreed for the selected candidate, and its position among them.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._batch: Optional[int] = None

    def on_run_start(self, run_id, order):
        logger.info(
            f"Enriching {len(order.items)} items for {order.vendor}",
            extra={"run_id": run_id, "vendor": order.vendor_code, "order_number": order.order_number},
        )

    def on_batch_start(self, run_id, batch_number, total_batches, size):
        self._batch = batch_number
        logger.info(
            f"Batch {batch_number}/{total_batches} ({size} items)",
            extra={"run_id": run_id, "batch": batch_number},
        )

    def on_item_complete(self, run_id, index, item, outcome):
        if outcome.found:
            status = "validated" if outcome.validated else "low confidence"
            message = f"[{index + 1}] {item.brand} {item.model}: {status} ({item.confidence_score}%)"
        else:
            message = f"[{index + 1}] {item.brand} {item.model}: {outcome.error}"
        context = {"run_id": run_id, "batch": self._batch, "strategy": outcome.strategy}
        logger.info(message, extra=context)

        match = outcome.match
        if self.debug and match is not None and match.variant is not None:
            agreed = ", ".join(name for name, ok in match.matches.items() if ok) or "none"
            logger.debug(
                f"[{index + 1}] candidate {(match.candidate_index or 0) + 1}/{outcome.candidates_count} "
                f"upc={match.variant.upc} score={match.confidence} agreed: {agreed} ({match.reason})",
                extra=context,
            )

    def on_run_complete(self, run_id, stats):
        summary = stats.to_dict()
        logger.info(
            f"Run complete: {summary['enriched']}/{summary['totalItems']} enriched, "
            f"{summary['validated']} validated, {summary['cacheHits']} cache hits "
            f"in {summary['elapsedSeconds']}s",
            extra={"run_id": run_id, "vendor": stats.vendor},
        )


@dataclass
class EnrichedOrder:
    """Parsed order after enrichment, with per-item outcomes and run statistics"""

    order: ParsedOrder
    outcomes: list[EnrichmentOutcome] = field(default_factory=list)
    stats: Optional[RunStatistics] = None
    run_id: str = ""

    @property
    def items(self) -> list[LineItem]:
        return self.order.items

    def to_dict(self) -> dict[str, Any]:
        data = self.order.to_dict()
        data["runId"] = self.run_id
        data["enrichment"] = [outcome.to_dict() for outcome in self.outcomes]
        data["stats"] = self.stats.to_dict() if self.stats else None
        return data


class BatchOrchestrator:
    """Runs one enrichment client over every line item of an order."""

    def __init__(
        self,
        client: BaseEnrichmentClient,
        config: Optional[PipelineConfig] = None,
        observer: Optional[ProgressObserver] = None,
    ):
        self.client = client
        self.config = config or client.config
        self.observer = observer or LoggingObserver(debug=self.config.debug)

    def process(self, order: ParsedOrder, run_id: Optional[str] = None) -> EnrichedOrder:
        """
        Enrich every item of the order in place.

        Returns:
            EnrichedOrder with one outcome per item, in item order
        """
        run_id = run_id or uuid.uuid4().hex[:12]
        set_console_debug(self.config.debug)
        items = order.items
        stats = RunStatistics(vendor=order.vendor_code, total_items=len(items))
        outcomes: list[Optional[EnrichmentOutcome]] = [None] * len(items)

        self.observer.on_run_start(run_id, order)

        batch_size = self.config.batch_size
        batches = [list(range(start, min(start + batch_size, len(items))))
                   for start in range(0, len(items), batch_size)]

        for number, indexes in enumerate(batches, start=1):
            self.observer.on_batch_start(run_id, number, len(batches), len(indexes))
            self._execute_batch(run_id, order, indexes, outcomes, stats)
            if number < len(batches) and self.config.batch_pause > 0:
                time.sleep(self.config.batch_pause)

        stats.finish()
        self.observer.on_run_complete(run_id, stats)
        return EnrichedOrder(order=order, outcomes=outcomes, stats=stats, run_id=run_id)

    def _execute_batch(
        self,
        run_id: str,
        order: ParsedOrder,
        indexes: list[int],
        outcomes: list[Optional[EnrichmentOutcome]],
        stats: RunStatistics,
    ) -> None:
        """Enrich one batch concurrently, storing outcomes by item position."""
        with ThreadPoolExecutor(max_workers=len(indexes)) as executor:
            futures = {index: executor.submit(self.client.enrich, order.items[index]) for index in indexes}

            for index, future in futures.items():
                item = order.items[index]
                try:
                    outcome = future.result()
                except Exception as e:
                    outcome = self._failed_outcome(run_id, order, item, e)
                outcomes[index] = outcome
                stats.record_outcome(outcome)
                self.observer.on_item_complete(run_id, index, item, outcome)

    def _failed_outcome(
        self, run_id: str, order: ParsedOrder, item: LineItem, exception: Exception
    ) -> EnrichmentOutcome:
        OrderError.from_exception(
            exception,
            ErrorStage.ENRICH,
            context={"vendor": order.vendor_code, "order_number": order.order_number, "model": item.model},
        ).log(run_id=run_id)

        message = getattr(exception, "message", None) or str(exception)
        item.enriched_data = None
        item.confidence_score = 0
        item.validated = False
        item.validation_reason = message
        return EnrichmentOutcome(error=message, error_type=classify_exception(exception).value)
