"""Run statistics for order enrichment.

This module aggregates per-item enrichment outcomes for one pipeline run:
- Total / enriched / validated / failed item counts
- Cache hits (lookups served without a network call)
- Per-strategy hit counts (search, page)
- Error type aggregation (not_found, network, timeout, ...)
- Elapsed time and enrichment rate

Usage:
    from vendor_orders.statistics_tracker import RunStatistics

    stats = RunStatistics(vendor='marchon', total_items=len(order.items))
    stats.record_outcome(outcome)
    stats.finish()
    summary = stats.to_dict()
"""

import time
from collections import defaultdict
from typing import Any

from vendor_orders.models import EnrichmentOutcome


class RunStatistics:
    """Tracks aggregate statistics during one enrichment run.

    Attributes:
        vendor: Vendor code for the run
        total_items: Items in the order
        by_strategy: Dict of {strategy: hits}
        errors: Dict of {error_type: count}
    """

    def __init__(self, vendor: str = "", total_items: int = 0):
        self.vendor = vendor
        self.total_items = total_items
        self.processed = 0
        self.enriched = 0
        self.validated = 0
        self.failed = 0
        self.cache_hits = 0
        self.fallbacks = 0

        # Example: {'search': 12, 'page': 3}
        self.by_strategy = defaultdict(int)

        # Example: {'not_found': 2, 'timeout': 1}
        self.errors = defaultdict(int)

        self.started_at = time.monotonic()
        self.finished_at: float | None = None

    def record_outcome(self, outcome: EnrichmentOutcome) -> None:
        """Record one item's enrichment outcome."""
        self.processed += 1

        if outcome.cache_hit:
            self.cache_hits += 1
        if outcome.fallback_used:
            self.fallbacks += 1

        if outcome.found and outcome.match is not None and outcome.match.variant is not None:
            self.enriched += 1
            self.by_strategy[outcome.strategy or "unknown"] += 1
            if outcome.validated:
                self.validated += 1
        else:
            self.failed += 1
            self.record_error(outcome.error_type or "unknown")

    def record_error(self, error_type: str) -> None:
        """Record an error by type.

        Args:
            error_type: Error type (not_found, network, timeout, ...)
        """
        self.errors[error_type] += 1

    def finish(self) -> None:
        self.finished_at = time.monotonic()

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return round(end - self.started_at, 3)

    @property
    def enrichment_rate(self) -> float:
        """Share of items that received catalog data, as a percentage."""
        if not self.total_items:
            return 0.0
        return round(self.enriched / self.total_items * 100, 1)

    def to_dict(self) -> dict[str, Any]:
        """Export statistics for the run summary.

        Returns:
            {
                "vendor": "marchon",
                "totalItems": 10,
                "enriched": 9,
                "validated": 8,
                "failed": 1,
                "cacheHits": 3,
                "byStrategy": {"search": 9},
                "errors": {"not_found": 1},
                "elapsedSeconds": 4.2,
                "enrichmentRate": 90.0
            }
        """
        return {
            "vendor": self.vendor,
            "totalItems": self.total_items,
            "processed": self.processed,
            "enriched": self.enriched,
            "validated": self.validated,
            "failed": self.failed,
            "cacheHits": self.cache_hits,
            "fallbacks": self.fallbacks,
            "byStrategy": dict(self.by_strategy),
            "errors": dict(self.errors),
            "elapsedSeconds": self.elapsed_seconds,
            "enrichmentRate": self.enrichment_rate,
        }
