"""
Receipt-Template Parsers

Modern Optical, L'amy America and Kenmark send receipts generated from the
same ordering backend:
- "Order Number" / "Placed By Rep" / "Date" header lines
- <h3>Customer</h3> followed by a <p> block: "NAME (ACCOUNT)", address, phone
- <h3>Ship To</h3> block
- Item rows: image | "BRAND - MODEL" | colour | size | qty
- Product images served from imageserver.jiecosystem.net/image/<vendor>/<UPC>

Vendors differ in account number shape, colour code conventions and whether
the image URL carries a UPC, captured per vendor in a ReceiptProfile.
"""

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from vendor_orders.color_normalizer import normalize_color
from vendor_orders.models import Address, LineItem, ParsedOrder
from vendor_orders.table_locator import cell_text, direct_cells

from .base import (
    first_match,
    has_quantity,
    html_to_text,
    parse_quantity,
    register_vendor,
    split_brand_model,
    split_size,
    upc_from_image_url,
    validate_parsed_order,
)


@dataclass
class ReceiptProfile:
    vendor: str
    vendor_code: str
    order_patterns: list[str]
    account_pattern: str  # One capture group, matched inside "(...)"
    default_brand: str
    upc_segment: str | None = None  # Image server path segment before the UPC
    color_code_pattern: str | None = None
    normalize_colors: bool = False
    require_brand_delimiter: bool = False


MODERN_OPTICAL = ReceiptProfile(
    vendor="Modern Optical",
    vendor_code="modern_optical",
    order_patterns=[r"Order\s*(?:Number|#)\s*:?\s*(\d+)", r"Order\s*:?\s*(\d{4,})"],
    account_pattern=r"\d{4,6}",
    default_brand="Modern Optical",
    normalize_colors=True,
)

LAMY_AMERICA = ReceiptProfile(
    vendor="L'amy America",
    vendor_code="lamyamerica",
    order_patterns=[r"(?:EyeRep Order Number|Order Number)[:\s]*(\d+)"],
    account_pattern=r"[A-Z0-9]{8,10}",
    default_brand="L'amy America",
    upc_segment="lamy",
    color_code_pattern=r"^([A-Z0-9]{2,4})\s+(.+)$",
    require_brand_delimiter=True,
)

KENMARK = ReceiptProfile(
    vendor="Kenmark",
    vendor_code="kenmark",
    order_patterns=[r"(?:Receipt for Order Number|Order Number)[:\s]*(\d+)"],
    account_pattern=r"\d{5,10}",
    default_brand="Kenmark",
    upc_segment="kenmark",
    color_code_pattern=r"^([A-Z0-9]{2,4})\s+(.+)$",
)


def _block_after_heading(soup, titles: tuple[str, ...]) -> list[str]:
    """Lines of the <p> following an <h3> whose text is one of titles."""
    for heading in soup.find_all(["h3", "h4"]):
        if cell_text(heading).lower() in titles:
            block = heading.find_next_sibling("p")
            if block is None:
                continue
            for br in block.find_all("br"):
                br.replace_with("\n")
            return [line.strip() for line in block.get_text("\n").splitlines() if line.strip()]
    return []


def _extract_parties(order: ParsedOrder, soup, text: str, profile: ReceiptProfile) -> None:
    name_pattern = rf"([A-Z][A-Za-z0-9\s&.,'@-]+?)\s*\(({profile.account_pattern})\)"

    customer_lines = _block_after_heading(soup, ("customer",))
    if customer_lines:
        match = re.search(name_pattern, customer_lines[0])
        if match:
            order.customer.name = match.group(1).strip()
            order.account_number = match.group(2)
        address_lines = [
            line for line in customer_lines[1:]
            if not re.match(r"^Phone:", line, re.IGNORECASE)
            and not re.fullmatch(rf"\(({profile.account_pattern})\)", line)
        ]
        order.customer.address = ", ".join(address_lines)
        phone = first_match([r"Phone:\s*([0-9().\s-]+)"], "\n".join(customer_lines), re.IGNORECASE)
        order.customer.phone = phone

    ship_lines = _block_after_heading(soup, ("ship to",))
    if ship_lines:
        name_match = re.search(name_pattern, ship_lines[0])
        order.ship_to = Address(
            name=name_match.group(1).strip() if name_match else ship_lines[0],
            address=", ".join(
                line for line in ship_lines[1:] if not re.match(r"^Phone:", line, re.IGNORECASE)
            ),
        )

    # Plain-text fallbacks
    if not order.account_number:
        order.account_number = first_match(
            [rf"\(({profile.account_pattern})\)(?![\s\d-]*\d)", r"Account\s*#?\s*:?\s*(\d{4,6})\b"],
            text,
        )
    if not order.customer.name:
        match = re.search(
            rf"([A-Z][A-Z0-9\s&.,'@-]{{3,60}}?)\s*\(({profile.account_pattern})\)", text
        )
        if match:
            order.customer.name = match.group(1).strip()
            order.account_number = order.account_number or match.group(2)


def _extract_items(order: ParsedOrder, soup, profile: ReceiptProfile) -> None:
    for row in soup.find_all("tr"):
        cells = direct_cells(row)
        if len(cells) < 5:
            continue

        model_text = cell_text(cells[1])
        color_text = cell_text(cells[2]).replace("_", " ")
        size_text = cell_text(cells[3])
        qty_text = cell_text(cells[4])

        if not model_text or not has_quantity(qty_text):
            continue
        if profile.require_brand_delimiter and " - " not in model_text:
            continue

        brand, model = split_brand_model(model_text, profile.default_brand)

        color_code, color_name = "", color_text
        if profile.color_code_pattern:
            match = re.match(profile.color_code_pattern, color_text)
            if match:
                color_code, color_name = match.group(1), match.group(2).strip()
        if profile.normalize_colors:
            color_name = normalize_color(color_name)

        image = cells[0].find("img")
        image_url = image.get("src") if image else None
        upc = None
        if image_url and profile.upc_segment:
            upc = upc_from_image_url(image_url, profile.upc_segment)

        eye, bridge, temple = split_size(size_text)

        order.items.append(
            LineItem(
                brand=brand,
                model=model,
                color_code=color_code,
                color_name=color_name,
                color=color_text,
                size=size_text,
                eye_size=eye,
                bridge=bridge,
                temple=temple,
                quantity=parse_quantity(qty_text),
                upc=upc,
                image_url=image_url,
                raw={"frame_id": f"{brand}-{model}".upper()},
            )
        )


def parse_receipt(html: str, plain_text: str, profile: ReceiptProfile) -> ParsedOrder:
    """Parse one receipt with the vendor's profile."""
    order = ParsedOrder(
        vendor=profile.vendor,
        vendor_code=profile.vendor_code,
        parse_method=f"vendor_{profile.vendor_code}",
    )
    soup = BeautifulSoup(html or "", "html.parser")
    text = plain_text or html_to_text(html)

    for source in (text, html_to_text(html)):
        if not order.order_number:
            order.order_number = first_match(profile.order_patterns, source, re.IGNORECASE)
        if not order.rep_name:
            order.rep_name = first_match([r"Placed By Rep:\s*([^\n]+)"], source)
        if not order.order_date:
            order.order_date = first_match([r"\bDate:\s*([\d/]+)"], source)
        if order.stated_total_quantity is None:
            total = first_match([r"Total Pieces:\s*(\d+)"], source)
            order.stated_total_quantity = int(total) if total else None

    _extract_parties(order, soup, text, profile)
    _extract_items(order, soup, profile)

    if not order.items:
        order.add_warning("No item rows found in receipt table")

    return validate_parsed_order(order, expect_upc=profile.upc_segment is not None)


@register_vendor(
    ["modernoptical.com", "modern-optical.com"],
    vendor_code="modern_optical",
    vendor_name="Modern Optical",
)
def parse_modern_optical_order(html: str, plain_text: str = "") -> ParsedOrder:
    """Modern Optical receipt; colour names are normalized."""
    return parse_receipt(html, plain_text, MODERN_OPTICAL)


@register_vendor(
    ["lamyamerica.com", "lamy-america.com"],
    vendor_code="lamyamerica",
    vendor_name="L'amy America",
)
def parse_lamy_america_order(html: str, plain_text: str = "") -> ParsedOrder:
    """L'amy America receipt; UPCs come from the product image URLs."""
    return parse_receipt(html, plain_text, LAMY_AMERICA)


@register_vendor(["kenmarkeyewear.com"], vendor_code="kenmark", vendor_name="Kenmark")
def parse_kenmark_order(html: str, plain_text: str = "") -> ParsedOrder:
    return parse_receipt(html, plain_text, KENMARK)
