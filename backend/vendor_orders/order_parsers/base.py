"""
Order Parser Base - Shared Utilities and Registry

Contains:
- Parser registry and decorator for vendor-specific parsers
- Vendor detection helpers (sender domain, vendor name guessing)
- Common helpers for sizes, quantities, image URLs and validation
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import parse_qs, unquote, urlparse

from bs4 import BeautifulSoup

from vendor_orders.models import ParsedOrder

# Parser signature: (html_or_text, plain_text) -> ParsedOrder
VendorParser = Callable[[str, str], ParsedOrder]


@dataclass
class VendorRegistration:
    vendor_code: str
    vendor_name: str
    parser: VendorParser
    document_type: str = "html"  # "html" or "pdf"


# Registry of sender domain -> registration
VENDOR_PARSERS: dict[str, VendorRegistration] = {}


def register_vendor(
    domains: list[str], vendor_code: str, vendor_name: str, document_type: str = "html"
):
    """Decorator to register a parser for specific sender domains."""
    def decorator(func: VendorParser):
        registration = VendorRegistration(vendor_code, vendor_name, func, document_type)
        for domain in domains:
            VENDOR_PARSERS[domain.lower()] = registration
        return func
    return decorator


def get_vendor_registration(sender_domain: str) -> Optional[VendorRegistration]:
    """
    Get the registration for a sender domain.

    Args:
        sender_domain: Email sender domain (e.g., 'europaeye.com')

    Returns:
        VendorRegistration or None if no specific parser exists
    """
    if not sender_domain:
        return None

    sender_domain = sender_domain.lower()

    if sender_domain in VENDOR_PARSERS:
        return VENDOR_PARSERS[sender_domain]

    # Partial match (e.g., 'orders.marchon.com' matches 'marchon.com')
    for domain, registration in VENDOR_PARSERS.items():
        if domain in sender_domain:
            return registration

    return None


def get_vendor_parser(sender_domain: str) -> Optional[VendorParser]:
    registration = get_vendor_registration(sender_domain)
    return registration.parser if registration else None


def extract_domain(address: str) -> str:
    """'Orders <noreply@Safilo.com>' -> 'safilo.com'"""
    if not address or "@" not in address:
        return ""
    domain = address.rsplit("@", 1)[1]
    return domain.strip().strip(">").strip().lower()


def guess_vendor_name(domain: str) -> str:
    """'modern-optical.com' -> 'Modern Optical'"""
    if not domain:
        return "Unknown Vendor"
    name = re.sub(r"\.(com|net|org|biz)$", "", domain.lower())
    parts = [p for p in re.split(r"[-.]", name) if p]
    return " ".join(p.capitalize() for p in parts) or "Unknown Vendor"


# ============================================================================
# TEXT HELPERS
# ============================================================================


def html_to_text(html: str) -> str:
    """Flatten markup to text, one line per block element."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    text = soup.get_text("\n")
    lines = [re.sub(r"[ \t\xa0]+", " ", line).strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def first_match(patterns: list[str], text: str, flags: int = 0, group: int = 1) -> str:
    """Try patterns in priority order and return the first captured group."""
    if not text:
        return ""
    for pattern in patterns:
        match = re.search(pattern, text, flags)
        if match:
            value = match.group(group)
            if value and value.strip():
                return value.strip()
    return ""


def parse_quantity(text: str) -> int:
    """Leading integer of the text; 1 when missing or not positive."""
    match = re.match(r"\s*(\d+)", text or "")
    if match:
        quantity = int(match.group(1))
        if quantity > 0:
            return quantity
    return 1


def has_quantity(text: str) -> bool:
    """Quantity cells carry at least one digit; subtotal/blank cells do not."""
    return bool(re.search(r"\d", text or ""))


def strict_quantity(text: str) -> Optional[int]:
    """Positive integer quantity, or None when the cell is not a quantity."""
    cleaned = (text or "").strip()
    if re.fullmatch(r"\d+", cleaned) and int(cleaned) > 0:
        return int(cleaned)
    return None


def split_size(size: str) -> tuple[str, str, str]:
    """
    Split a size descriptor into (eye, bridge, temple).

    '53-19-142' -> ('53', '19', '142')
    '53/19 140' -> ('53', '19', '140')
    '53' -> ('53', '', '')
    """
    if not size:
        return "", "", ""
    numbers = re.findall(r"\d+", size)
    if not numbers:
        return "", "", ""
    eye = numbers[0]
    bridge = numbers[1] if len(numbers) > 1 else ""
    temple = numbers[2] if len(numbers) > 2 else ""
    return eye, bridge, temple


def split_brand_model(text: str, default_brand: str) -> tuple[str, str]:
    """'MICHAEL RYEN - MR-104' -> ('MICHAEL RYEN', 'MR-104')"""
    if " - " in text:
        brand, model = text.split(" - ", 1)
        return brand.strip() or default_brand, model.strip()
    return default_brand, text.strip()


def split_color(text: str, code_pattern: str = r"^(\d+)\s+(.+)$") -> tuple[str, str]:
    """'1 BLACK' -> ('1', 'BLACK'); text without a code -> ('', text)"""
    text = (text or "").strip()
    match = re.match(code_pattern, text)
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return "", text


# ============================================================================
# IMAGE URL HELPERS
# ============================================================================


def unwrap_protected_url(url: str) -> str:
    """
    Undo percent-encoding and link-protection redirection.

    Barracuda link protection wraps the real address in an 'a' parameter:
    https://linkprotect.cudasvc.com/url?a=https%3a%2f%2fimages...%2f123&c=E,1
    """
    if not url:
        return ""
    decoded = unquote(url)
    if "linkprotect.cudasvc.com" in decoded:
        query = parse_qs(urlparse(url).query)
        wrapped = query.get("a", [None])[0]
        if wrapped is None:
            match = re.search(r"[?&]a=([^&]+)", decoded)
            wrapped = match.group(1) if match else None
        if wrapped:
            decoded = unquote(wrapped)
    return decoded


def upc_from_image_url(url: str, segment: str) -> Optional[str]:
    """
    UPC carried as the final path segment of a product image URL.

    'https://imageserver.jiecosystem.net/image/lamy/730638445897' -> '730638445897'
    """
    if not url:
        return None
    decoded = unwrap_protected_url(url)
    match = re.search(rf"/{re.escape(segment)}/(\d+)(?:[/?#]|$)", decoded, re.IGNORECASE)
    if not match:
        match = re.search(rf"{re.escape(segment)}%2f(\d+)", url, re.IGNORECASE)
    return match.group(1) if match else None


def url_params(url: str) -> dict[str, str]:
    """First value of each query parameter of an (unwrapped) URL."""
    if not url:
        return {}
    query = parse_qs(urlparse(unwrap_protected_url(url)).query)
    return {key: values[0] for key, values in query.items() if values}


# ============================================================================
# VALIDATION
# ============================================================================


def validate_parsed_order(order: ParsedOrder, expect_upc: bool = False) -> ParsedOrder:
    """
    Record data-quality errors and warnings on the order.

    Errors: missing order number, no items.
    Warnings: missing account/customer, back-ordered items, items without UPC
    (for vendors whose enrichment is keyed by UPC), total mismatch.
    """
    if not order.order_number and "Missing order number" not in order.errors:
        order.errors.append("Missing order number")
    if not order.items and "No items found in order" not in order.errors:
        order.errors.append("No items found in order")

    if not order.account_number:
        order.add_warning("Missing account number")
    if not order.customer.name:
        order.add_warning("Missing customer name")

    back_ordered = [item for item in order.items if item.in_stock is False]
    if back_ordered:
        order.add_warning(f"{len(back_ordered)} items are back-ordered")

    if expect_upc:
        missing_upc = [item for item in order.items if not item.upc]
        if missing_upc:
            order.add_warning(
                f"{len(missing_upc)} items missing UPC codes (web enrichment may fail)"
            )

    if order.stated_total_quantity is not None and order.stated_total_quantity != order.total_quantity():
        order.add_warning(
            f"Total pieces {order.stated_total_quantity} does not match "
            f"parsed quantity {order.total_quantity()}"
        )

    return order
