"""Unit tests for vendor detection and document routing."""

import pytest

from conftest import load_email_fixture, load_pdf_text_fixture
from vendor_orders import document_router
from vendor_orders.document_router import (
    Attachment,
    RawDocument,
    detect_vendor,
    extract_text_from_pdf,
    find_original_sender,
    parse_document,
)
from vendor_orders.error_tracking import UnsupportedVendorError
from vendor_orders.order_parsers import extract_domain, get_vendor_registration, guess_vendor_name


# ============================================================================
# VENDOR DETECTION
# ============================================================================


def test_extract_domain_from_display_address():
    assert extract_domain("Orders <noreply@Safilo.com>") == "safilo.com"
    assert extract_domain("not an address") == ""


def test_registration_matches_subdomains():
    registration = get_vendor_registration("orders.marchon.com")

    assert registration is not None
    assert registration.vendor_code == "marchon"


def test_guess_vendor_name():
    assert guess_vendor_name("modern-optical.com") == "Modern Optical"
    assert guess_vendor_name("") == "Unknown Vendor"


def test_find_original_sender_skips_personal_mailboxes():
    body = (
        "From: shop.owner@gmail.com\n"
        "---------- Forwarded message ---------\n"
        "From: Europa Orders <ORDERS@europaeye.com>\n"
        "To: shop.owner@gmail.com"
    )

    assert find_original_sender(body) == "orders@europaeye.com"


def test_find_original_sender_ignores_unregistered_domains():
    assert find_original_sender("From: someone@unknownframes.com") is None
    assert find_original_sender("") is None


def test_detect_vendor_by_sender_domain():
    registration, domain = detect_vendor(RawDocument(sender="orders@lamyamerica.com"))

    assert registration.vendor_code == "lamyamerica"
    assert domain == "lamyamerica.com"


def test_detect_vendor_in_forwarded_html():
    document = RawDocument(sender="owner@gmail.com", html=load_email_fixture("europa_forwarded.html"))

    registration, domain = detect_vendor(document)

    assert registration.vendor_code == "europa"
    assert domain == "europaeye.com"


# ============================================================================
# PARSE DISPATCH
# ============================================================================


def test_parse_document_unsupported_vendor():
    document = RawDocument(sender="sales@unknownframes.com", html="<p>Order</p>")

    with pytest.raises(UnsupportedVendorError) as exc_info:
        parse_document(document)

    assert exc_info.value.domain == "unknownframes.com"
    assert "Unknownframes" in exc_info.value.message


def test_parse_document_pdf_vendor_uses_attachment_text(monkeypatch):
    monkeypatch.setattr(
        document_router, "extract_text_from_pdf", lambda content: load_pdf_text_fixture("safilo_order.txt")
    )
    document = RawDocument(
        sender="noreply@safilo.com",
        attachments=[
            Attachment("logo.png", "image/png", b"\x89PNG"),
            Attachment("Order_8812345.PDF", "application/octet-stream", b"%PDF-1.4"),
        ],
    )

    order = parse_document(document)

    assert order.vendor_code == "safilo"
    assert order.order_number == "8812345"
    assert len(order.items) == 3


def test_parse_document_pdf_vendor_without_attachment():
    order = parse_document(RawDocument(sender="noreply@safilo.com", plain_text="See attached"))

    assert order.items == []
    assert "No readable PDF attachment found" in order.warnings


def test_extract_text_from_pdf_invalid_bytes_returns_none():
    assert extract_text_from_pdf(b"not a pdf") is None


def test_attachment_is_pdf():
    assert Attachment("order.pdf", "", b"").is_pdf()
    assert Attachment("order", "application/pdf", b"").is_pdf()
    assert not Attachment("order.html", "text/html", b"").is_pdf()
