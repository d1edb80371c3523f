"""End-to-end tests: raw document in, enriched order records out."""

import pytest
import responses

from conftest import load_email_fixture, load_page_fixture
from vendor_orders.document_router import RawDocument
from vendor_orders.error_tracking import NoLineItemsError, UnsupportedVendorError
from vendor_orders.pipeline import process_document


def test_forwarded_europa_order_end_to_end(mock_responses, fast_config, run_cache):
    mock_responses.add(
        responses.GET,
        "https://europaeye.com/products/CDA310252-18",
        body=load_page_fixture("europa_product.html"),
        status=200,
    )
    document = RawDocument(
        sender="owner@gmail.com",
        subject="Fwd: Your Europa Order 778812",
        html=load_email_fixture("europa_forwarded.html"),
    )

    enriched = process_document(document, config=fast_config, cache=run_cache)

    assert enriched.order.vendor_code == "europa"
    assert len(enriched.items) == 1
    assert enriched.outcomes[0].found is True
    assert enriched.items[0].confidence_score == 50  # Colour agrees, eye size does not
    assert enriched.items[0].validated is True

    data = enriched.to_dict()
    assert data["orderNumber"] == "778812"
    assert data["runId"] == enriched.run_id
    assert data["stats"]["enriched"] == 1
    assert data["items"][0]["enrichedData"]["upc"] == "842868104252"


def test_kenmark_passes_through_unenriched():
    document = RawDocument(
        sender="receipts@kenmarkeyewear.com", html=load_email_fixture("kenmark_receipt.html")
    )

    enriched = process_document(document)

    item = enriched.items[0]
    assert len(enriched.outcomes) == len(enriched.items) == 1
    assert enriched.outcomes[0].found is False
    assert enriched.outcomes[0].error_type == "not_found"
    assert enriched.stats.processed == 1
    assert enriched.stats.failed == 1
    assert enriched.stats.errors == {"not_found": 1}
    assert len(enriched.to_dict()["enrichment"]) == 1
    assert item.upc == "883900123456"  # Document UPC kept
    assert item.validated is False
    assert item.confidence_score == 0
    assert item.validation_reason == "No catalog lookup available for Kenmark"


def test_document_without_line_items_raises():
    document = RawDocument(sender="orders@europaeye.com", html="<p>Thanks for your business</p>")

    with pytest.raises(NoLineItemsError) as exc_info:
        process_document(document)

    assert exc_info.value.order.vendor_code == "europa"
    assert "Order Items table not found" in exc_info.value.order.warnings


def test_unsupported_vendor_raises():
    with pytest.raises(UnsupportedVendorError):
        process_document(RawDocument(sender="sales@framesdirect.example", html="<p>Order</p>"))
