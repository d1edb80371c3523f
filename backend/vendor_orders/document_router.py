"""
Document Router - Vendor Detection and Parser Dispatch

Turns a raw order document (email sender, subject, HTML/text bodies and
attachments) into a ParsedOrder:
1. Sender domain lookup in the parser registry
2. Forwarded mail: scan the body for the original vendor address
3. PDF vendors: extract attachment text with pdfplumber
4. Dispatch to the registered parser
"""

import io
import re
from dataclasses import dataclass, field
from typing import Optional

import pdfplumber

from vendor_orders.error_tracking import (
    ErrorStage,
    OrderError,
    UnsupportedVendorError,
)
from vendor_orders.logging_config import get_logger
from vendor_orders.models import ParsedOrder
from vendor_orders.order_parsers import (
    VendorRegistration,
    extract_domain,
    get_vendor_registration,
    guess_vendor_name,
)

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"[a-z0-9._+-]+@[a-z0-9.-]+\.[a-z]{2,}", re.IGNORECASE)

# Mailbox providers that forward orders but never send them
PERSONAL_DOMAINS = (
    "gmail.com",
    "yahoo.com",
    "outlook.com",
    "hotmail.com",
    "icloud.com",
    "aol.com",
    "live.com",
    "me.com",
)


@dataclass
class Attachment:
    filename: str
    content_type: str
    content: bytes

    def is_pdf(self) -> bool:
        return (
            (self.content_type or "").lower() == "application/pdf"
            or (self.filename or "").lower().endswith(".pdf")
        )


@dataclass
class RawDocument:
    """One inbound order document as received from the mail collaborator"""
    sender: str
    subject: str = ""
    html: str = ""
    plain_text: str = ""
    attachments: list[Attachment] = field(default_factory=list)


def _is_personal(domain: str) -> bool:
    return any(personal in domain for personal in PERSONAL_DOMAINS)


def find_original_sender(body: str) -> Optional[str]:
    """
    First vendor address quoted in a forwarded body.

    Every address in the body is collected (case-insensitive, first
    occurrence kept), personal mailbox domains are dropped, and the first
    address whose domain belongs to a registered vendor wins.
    """
    if not body:
        return None

    seen = []
    for address in EMAIL_PATTERN.findall(body):
        address = address.lower()
        if address not in seen:
            seen.append(address)

    for address in seen:
        domain = extract_domain(address)
        if not domain or _is_personal(domain):
            continue
        if get_vendor_registration(domain) is not None:
            return address
    return None


def detect_vendor(document: RawDocument) -> tuple[Optional[VendorRegistration], str]:
    """
    Resolve the vendor registration for a document.

    Returns:
        (registration or None, the domain that decided it)
    """
    domain = extract_domain(document.sender)
    registration = get_vendor_registration(domain)
    if registration is not None:
        return registration, domain

    original = find_original_sender(document.plain_text) or find_original_sender(document.html)
    if original:
        original_domain = extract_domain(original)
        logger.info(
            f"Forwarded document from {domain or 'unknown sender'}, original sender {original_domain}"
        )
        return get_vendor_registration(original_domain), original_domain

    return None, domain


def extract_text_from_pdf(pdf_bytes: bytes) -> Optional[str]:
    """
    Extract text content from a PDF file.

    Args:
        pdf_bytes: Raw PDF file content

    Returns:
        Extracted text (pages joined by newlines) or None if extraction fails
    """
    try:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            text_parts = []
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    text_parts.append(page_text)
            return "\n".join(text_parts)
    except Exception as e:
        OrderError.from_exception(e, ErrorStage.PDF_EXTRACT).log()
        return None


def _pdf_text(document: RawDocument) -> Optional[str]:
    for attachment in document.attachments:
        if attachment.is_pdf():
            return extract_text_from_pdf(attachment.content)
    return None


def parse_document(document: RawDocument) -> ParsedOrder:
    """
    Detect the vendor and run its parser.

    Raises:
        UnsupportedVendorError: No parser is registered for the sender
    """
    registration, domain = detect_vendor(document)
    if registration is None:
        vendor_name = guess_vendor_name(domain)
        raise UnsupportedVendorError(f"No parser registered for {vendor_name}", domain=domain)

    log_context = {"vendor": registration.vendor_code}

    if registration.document_type == "pdf":
        text = _pdf_text(document)
        if text is None:
            logger.warning(
                f"{registration.vendor_name} document has no readable PDF attachment",
                extra=log_context,
            )
            order = ParsedOrder(
                vendor=registration.vendor_name,
                vendor_code=registration.vendor_code,
                parse_method=f"vendor_{registration.vendor_code}_pdf",
            )
            order.add_warning("No readable PDF attachment found")
            return order
        order = registration.parser(text, document.plain_text)
    else:
        order = registration.parser(document.html, document.plain_text)

    logger.info(
        f"Parsed {registration.vendor_name} order {order.order_number or '(no number)'}: "
        f"{len(order.items)} items, {len(order.warnings)} warnings",
        extra={**log_context, "order_number": order.order_number},
    )
    return order
