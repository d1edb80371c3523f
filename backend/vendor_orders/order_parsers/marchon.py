"""
Marchon Parsers

Marchon order confirmations (marchon.com, altaireyewear.com). Item rows have
three cells: image link, "MODEL COLOR" with "(NN eye)" on the next line, and
quantity. The image link points at the product detail page and carries the
colour code and eye/bridge size as query parameters.
"""

import re

from bs4 import BeautifulSoup

from vendor_orders.models import Address, LineItem, ParsedOrder
from vendor_orders.table_locator import cell_text, direct_cells

from .base import (
    first_match,
    html_to_text,
    register_vendor,
    strict_quantity,
    unwrap_protected_url,
    url_params,
    validate_parsed_order,
)

# Model prefix -> brand. Matched longest prefix first so "CKJ" beats "CK"
# and "CHLOE" beats "C".
PREFIX_TO_BRAND = {
    "SF": "Salvatore Ferragamo",
    "CK": "Calvin Klein",
    "CKJ": "Calvin Klein Jeans",
    "NK": "Nike",
    "NIKE": "Nike",
    "COL": "Columbia",
    "C": "Columbia",
    "DG": "Dragon",
    "DRAGON": "Dragon",
    "FL": "Flexon",
    "FLEXON": "Flexon",
    "L": "Lacoste",
    "LACOSTE": "Lacoste",
    "LO": "Longchamp",
    "MNY": "Marchon NYC",
    "MNYC": "Marchon NYC",
    "NW": "Nine West",
    "SKAGA": "Skaga",
    "SEAN": "Sean John",
    "JOE": "Joe by Joseph Abboud",
    "JSK": "JS Kids",
    "MCM": "MCM",
    "CHLOE": "Chloe",
    "CH": "Chloe",
    "LIU": "Liu Jo",
    "KARL": "Karl Lagerfeld",
    "KL": "Karl Lagerfeld",
    "DKNY": "DKNY",
    "DK": "Donna Karan",
}

HEADER_ROW_COLORS = ("#b2b4b2", "178, 180, 178")


def brand_from_model(model: str) -> str:
    upper = (model or "").upper()
    for prefix in sorted(PREFIX_TO_BRAND, key=len, reverse=True):
        if upper.startswith(prefix):
            return PREFIX_TO_BRAND[prefix]
    return "Marchon"


def _is_gray_header(row, cells) -> bool:
    markers = [
        (row.get("bgcolor") or "").lower(),
        (row.get("style") or "").lower(),
        (cells[0].get("style") or "").lower() if cells else "",
        (cells[0].get("bgcolor") or "").lower() if cells else "",
    ]
    return any(color in marker for marker in markers for color in HEADER_ROW_COLORS)


def _split_style_cell(cell) -> tuple[str, str]:
    """Return ("MODEL COLOR", eye) from the style cell."""
    lines = [line.strip() for line in cell.get_text("\n").splitlines() if line.strip()]
    if len(lines) == 1:
        match = re.match(r"^(.+?)\s*\((\d+)\s*eye\)\s*$", lines[0], re.IGNORECASE)
        if match:
            lines = [match.group(1).strip(), f"({match.group(2)} eye)"]
    if len(lines) < 2:
        return "", ""

    style_and_color = " ".join(lines[:-1]) if len(lines) > 2 else lines[0]
    eye = first_match([r"\((\d+)\s*eye\)"], lines[-1], re.IGNORECASE)
    return style_and_color, eye


def _extract_items(order: ParsedOrder, soup) -> None:
    seen = set()

    for row in soup.find_all("tr"):
        cells = direct_cells(row)
        if len(cells) != 3 or _is_gray_header(row, cells):
            continue

        quantity = strict_quantity(cell_text(cells[2]))
        if quantity is None:
            continue

        style_and_color, eye = _split_style_cell(cells[1])
        if not style_and_color:
            continue

        parts = style_and_color.split()
        model = parts[0]
        color = " ".join(parts[1:])

        link = cells[0].find("a")
        image = cells[0].find("img")
        product_url = unwrap_protected_url(link.get("href")) if link else ""
        params = url_params(product_url)

        pick_size = params.get("pickSize", "")
        bridge = pick_size[2:4] if len(pick_size) == 4 else ""

        key = (model, params.get("pickColor") or color, eye)
        if key in seen:
            # Nested layout tables repeat rows; duplicates are not extra quantity
            continue
        seen.add(key)

        order.items.append(
            LineItem(
                brand=brand_from_model(model),
                model=model,
                color_code=params.get("pickColor", ""),
                color_name=color,
                color=color,
                size=eye,
                eye_size=eye,
                bridge=bridge,
                quantity=quantity,
                image_url=unwrap_protected_url(image.get("src")) if image else None,
                raw={
                    "product_url": product_url,
                    "frame": params.get("frame") or model,
                    "collection": params.get("coll", ""),
                    "pick_color": params.get("pickColor", ""),
                    "pick_size": pick_size,
                },
            )
        )


def _extract_parties(order: ParsedOrder, text: str) -> None:
    customer = re.search(
        r"Customer[:\s]*\n\s*([^(\n]+?)\s*\((\d+)\)"
        r"(?:\s*\n\s*([^\n]+)\n\s*([^,\n]+),\s*([A-Z]{2})\s*(\d{5}))?",
        text,
        re.IGNORECASE,
    )
    if customer:
        order.account_number = customer.group(2)
        order.customer = Address(
            name=customer.group(1).strip(),
            address=(customer.group(3) or "").strip(),
            city=(customer.group(4) or "").strip(),
            state=customer.group(5) or "",
            postal_code=customer.group(6) or "",
        )

    ship_to = re.search(
        r"Ship To[:\s]*\n\s*([^(\n]+?)\s*\((\d+)\)\s*\n\s*([^\n]+)\n\s*([^,\n]+),\s*([A-Z]{2})\s*(\d{5})",
        text,
        re.IGNORECASE,
    )
    if ship_to:
        order.ship_to = Address(
            name=ship_to.group(1).strip(),
            address=ship_to.group(3).strip(),
            city=ship_to.group(4).strip(),
            state=ship_to.group(5),
            postal_code=ship_to.group(6),
        )


@register_vendor(
    ["marchon.com", "marchoneyewear.com", "altaireyewear.com"],
    vendor_code="marchon",
    vendor_name="Marchon",
)
def parse_marchon_order(html: str, plain_text: str = "") -> ParsedOrder:
    """Parse a Marchon order confirmation email."""
    order = ParsedOrder(vendor="Marchon", vendor_code="marchon", parse_method="vendor_marchon")
    text = html_to_text(html) if html else (plain_text or "")

    for source in (plain_text, text):
        if not order.order_number:
            order.order_number = first_match([r"Order ID[:\s]*([A-Z0-9]+)"], source, re.IGNORECASE)
        if not order.rep_name:
            order.rep_name = first_match([r"SALES REP[:\s]*([^\n<]+)"], source, re.IGNORECASE)
        if not order.order_date:
            order.order_date = first_match([r"\bDATE[:\s]*(\d[\d-]+\d)"], source, re.IGNORECASE)
        if not order.terms:
            order.terms = first_match([r"Terms Requested[:\s]*([^\n<]+)"], source, re.IGNORECASE)
        if not order.notes:
            order.notes = first_match(
                [r"Order Note[:\s]*(?:Note[:\s]*)?([^\n<]+)"], source, re.IGNORECASE
            )
        if not order.promotions:
            order.promotions = first_match(
                [r"Promotions Applied[:\s]*([^\n<]+)"], source, re.IGNORECASE
            )

    _extract_parties(order, text)

    if html:
        _extract_items(order, BeautifulSoup(html, "html.parser"))
    if not order.items:
        order.add_warning("No Marchon item rows found")

    return validate_parsed_order(order)
