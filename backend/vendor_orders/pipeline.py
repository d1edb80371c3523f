"""
Order Pipeline - End-to-End Entry Point

    document -> route -> parse -> validate -> enrich -> EnrichedOrder

Usage:
    from vendor_orders.document_router import RawDocument
    from vendor_orders.pipeline import process_document

    enriched = process_document(RawDocument(sender=sender, html=html))
    records = enriched.to_dict()['items']
"""

import uuid
from typing import Optional

import requests

from config import PipelineConfig, load_pipeline_config
from vendor_orders.batch_orchestrator import BatchOrchestrator, EnrichedOrder, ProgressObserver
from vendor_orders.cache import EnrichmentCache
from vendor_orders.document_router import RawDocument, parse_document
from vendor_orders.enrichment import get_enrichment_client
from vendor_orders.error_tracking import ErrorType, NoLineItemsError, classify_parse_status
from vendor_orders.logging_config import get_logger
from vendor_orders.models import EnrichmentOutcome, ParsedOrder
from vendor_orders.statistics_tracker import RunStatistics

logger = get_logger(__name__)


def pass_through(order: ParsedOrder, run_id: str) -> EnrichedOrder:
    """Return the order unenriched; its document data is all there is."""
    reason = f"No catalog lookup available for {order.vendor}"
    stats = RunStatistics(vendor=order.vendor_code, total_items=len(order.items))
    outcomes = []
    for item in order.items:
        item.validated = False
        item.confidence_score = 0
        item.validation_reason = reason
        outcome = EnrichmentOutcome(error=reason, error_type=ErrorType.NOT_FOUND.value)
        stats.record_outcome(outcome)
        outcomes.append(outcome)
    stats.finish()

    logger.info(
        f"{order.vendor} has no enrichment client, returning {len(order.items)} items as parsed",
        extra={"run_id": run_id, "vendor": order.vendor_code, "order_number": order.order_number},
    )
    return EnrichedOrder(order=order, outcomes=outcomes, stats=stats, run_id=run_id)


def process_document(
    document: RawDocument,
    config: Optional[PipelineConfig] = None,
    cache: Optional[EnrichmentCache] = None,
    session: Optional[requests.Session] = None,
    observer: Optional[ProgressObserver] = None,
) -> EnrichedOrder:
    """
    Parse one vendor order document and enrich its line items.

    Args:
        document: Raw email/PDF document
        config: Pipeline options (default: environment, with the vendor's defaults)
        cache: Shared lookup cache (default: fresh in-memory cache for the run)
        session: requests.Session for catalog calls
        observer: Progress observer for the enrichment run

    Returns:
        EnrichedOrder with one output record per line item

    Raises:
        UnsupportedVendorError: No parser is registered for the sender
        NoLineItemsError: The document yielded zero line items
    """
    run_id = uuid.uuid4().hex[:12]
    order = parse_document(document)

    status = classify_parse_status(order)
    if status == "failed":
        raise NoLineItemsError(
            f"No line items found in {order.vendor} order {order.order_number or '(no number)'}",
            order=order,
        )

    config = config or load_pipeline_config(order.vendor_code)
    client = get_enrichment_client(order.vendor_code, config=config, cache=cache, session=session)
    if client is None:
        return pass_through(order, run_id)

    orchestrator = BatchOrchestrator(client, config=config, observer=observer)
    return orchestrator.process(order, run_id=run_id)
