"""
Ideal Optics Parsers

I-Deal Optics web order confirmations. Header values sit in the cell after a
bold label cell; Account Information, Shipping Address and the items table
(headed "Style Name") are separate tables. Forwarded copies are trimmed to
the block that starts at the vendor logo before parsing.
"""

import re

from bs4 import BeautifulSoup

from vendor_orders.models import Address, LineItem, ParsedOrder
from vendor_orders.table_locator import (
    cell_text,
    direct_cells,
    find_table_by_header,
    iter_data_rows,
)

from .base import (
    has_quantity,
    parse_quantity,
    register_vendor,
    split_size,
    validate_parsed_order,
)

LOGO_MARKER = "i-deal-optics-logo-mail.png"

# Bold label -> ParsedOrder attribute
HEADER_LABELS = [
    ("Web Order #", "order_number"),
    ("Order Date", "order_date"),
    ("Ordered By", "rep_name"),
    ("Purchase Order", "purchase_order"),
    ("Ship Method", "ship_method"),
    ("Promotional Code", "promotions"),
    ("Notes", "notes"),
]

ACCOUNT_LABELS = {"account", "account information", "contact name"}
SHIPPING_LABELS = {"shipping address", "address", "city", "state"}


def trim_forwarded(html: str) -> str:
    """Drop forwarding chrome above the block that holds the vendor logo."""
    marker = html.find(LOGO_MARKER)
    if marker == -1:
        return html
    before = html[:marker]
    start = max(before.rfind("<div"), before.rfind("<table"))
    return html[start:] if start > -1 else html


def _is_bold_label(cell) -> bool:
    return "x_boldtext" in (cell.get("class") or []) or cell.find("b") is not None


def _extract_header(order: ParsedOrder, soup) -> None:
    for cell in soup.find_all("td"):
        if not _is_bold_label(cell):
            continue
        label = cell_text(cell)
        value_cell = cell.find_next_sibling("td")
        if value_cell is None:
            continue
        for text, attribute in HEADER_LABELS:
            if text in label and not (text == "Notes" and "Style" in label):
                if not getattr(order, attribute):
                    setattr(order, attribute, cell_text(value_cell))
                break


def _first_labelled_row(table, min_cells: int, labels: set[str]):
    for cells in iter_data_rows(table, min_cells=min_cells):
        first = cells[0]
        if first.find("strong") is not None:
            continue
        if cell_text(first).lower() in labels:
            continue
        return [cell_text(cell) for cell in cells]
    return None


def _extract_account(order: ParsedOrder, soup) -> None:
    table = find_table_by_header(soup, "Account Information", require_marker=False)
    values = _first_labelled_row(table, 5, ACCOUNT_LABELS) if table is not None else None
    if not values:
        order.add_warning("Account Information table not found")
        return

    order.account_number = values[0]
    order.customer = Address(
        name=values[1],
        address=values[2],
        city=values[3],
        state=values[4],
        postal_code=values[5] if len(values) > 5 else "",
    )


def _extract_shipping(order: ParsedOrder, soup) -> None:
    table = find_table_by_header(soup, "Shipping Address", require_marker=False)
    values = _first_labelled_row(table, 4, SHIPPING_LABELS) if table is not None else None
    if not values:
        order.add_warning("Shipping Address table not found")
        return

    order.ship_to = Address(
        name=order.customer.name,
        address=values[0],
        city=values[1],
        state=values[2],
        postal_code=values[3],
    )


def _find_items_table(soup):
    table = find_table_by_header(soup, "Style Name")
    if table is None:
        table = find_table_by_header(soup, "Style Name", require_marker=False)
    return table


def _extract_items(order: ParsedOrder, soup) -> None:
    table = _find_items_table(soup)
    if table is None:
        order.add_warning("Style Name items table not found")
        return

    for cells in iter_data_rows(table, min_cells=4):
        style_name = cell_text(cells[0])
        color = cell_text(cells[1])
        size = cell_text(cells[2])
        qty_text = cell_text(cells[3])
        notes = cell_text(cells[4]) if len(cells) > 4 else ""

        lowered = style_name.lower()
        if not style_name or style_name == "Style Name":
            continue
        if "total" in lowered or "quantity" in lowered:
            continue
        if not has_quantity(qty_text):
            continue

        eye, bridge, temple = split_size(size)
        order.items.append(
            LineItem(
                brand="Ideal Optics",
                model=style_name,
                color_name=color,
                color=color,
                size=size,
                eye_size=eye,
                bridge=bridge,
                temple=temple,
                quantity=parse_quantity(qty_text),
                raw={"notes": notes} if notes else {},
            )
        )


@register_vendor(
    ["i-dealoptics.com", "idealoptics.com"],
    vendor_code="ideal_optics",
    vendor_name="Ideal Optics",
)
def parse_ideal_optics_order(html: str, plain_text: str = "") -> ParsedOrder:
    """Parse an I-Deal Optics web order confirmation."""
    order = ParsedOrder(
        vendor="Ideal Optics", vendor_code="ideal_optics", parse_method="vendor_ideal_optics"
    )
    soup = BeautifulSoup(trim_forwarded(html or ""), "html.parser")

    _extract_header(order, soup)
    if not order.order_number and plain_text:
        match = re.search(r"Web Order #[:\s]*(\w+)", plain_text)
        order.order_number = match.group(1) if match else ""

    _extract_account(order, soup)
    _extract_shipping(order, soup)
    _extract_items(order, soup)

    return validate_parsed_order(order)
