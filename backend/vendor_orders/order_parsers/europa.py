"""
Europa Parsers

Europa (europaeye.com) customer receipts. The receipt is a stack of tables
(Customer, Ship Address, Order Items) whose header rows use the dark navy
primary treatment and gray column-label rows. Forwarded copies wrap the
whole receipt in extra layout tables, so every section is found through the
structural table locator.
"""

import re

from bs4 import BeautifulSoup

from vendor_orders.models import Address, LineItem, ParsedOrder
from vendor_orders.table_locator import (
    cell_text,
    find_table_by_header,
    first_data_row,
    iter_data_rows,
)

from .base import (
    first_match,
    has_quantity,
    html_to_text,
    parse_quantity,
    register_vendor,
    split_brand_model,
    split_color,
    split_size,
    validate_parsed_order,
)

DEFAULT_BRAND = "Europa"


def _extract_header(order: ParsedOrder, texts: list[str]) -> None:
    for text in texts:
        if not order.order_number:
            order.order_number = first_match([r"Order\s*#[:\s]*(\d+)"], text, re.IGNORECASE)
        if not order.rep_name:
            order.rep_name = first_match([r"Order Placed By Rep[:\s]*([^\n<]+)"], text, re.IGNORECASE)
        if not order.order_date:
            order.order_date = first_match([r"\bDate[:\s]*(\d{1,2}/\d{1,2}/\d{2,4})"], text, re.IGNORECASE)
        if not order.terms:
            order.terms = first_match([r"Terms[:\s]*([^\n\r<]+)"], text, re.IGNORECASE)
        if not order.ship_method:
            order.ship_method = first_match([r"Ship Method[:\s]*([^\n\r<]+)"], text, re.IGNORECASE)
        if order.stated_total_quantity is None:
            total = first_match([r"Total Pieces[:\s]*(\d+)"], text, re.IGNORECASE)
            order.stated_total_quantity = int(total) if total else None


def _extract_customer(order: ParsedOrder, soup) -> None:
    table = find_table_by_header(soup, "Customer")
    row = first_data_row(table, min_cells=8)
    if row is None:
        order.add_warning("Customer table not found")
        return

    values = [cell_text(cell) for cell in row]
    order.account_number = values[0]
    order.customer = Address(
        name=values[1],
        address=values[2],
        address2=values[3],
        city=values[4],
        state=values[5],
        postal_code=values[6],
        phone=values[7],
    )


def _extract_ship_to(order: ParsedOrder, soup) -> None:
    table = find_table_by_header(soup, "Ship Address")
    row = first_data_row(table, min_cells=6)
    if row is None:
        order.add_warning("Ship Address table not found")
        return

    values = [cell_text(cell) for cell in row]
    order.ship_to = Address(
        name=values[0],
        address=values[1],
        address2=values[2],
        city=values[3],
        state=values[4],
        postal_code=values[5],
    )


def _extract_items(order: ParsedOrder, soup) -> None:
    table = find_table_by_header(soup, "Order Items")
    if table is None:
        order.add_warning("Order Items table not found")
        return

    for cells in iter_data_rows(table, min_cells=5):
        values = [cell_text(cell) for cell in cells]
        order_type, model_text, color_text, size_text, qty_text = values[:5]
        availability = values[5] if len(values) > 5 else ""

        if not model_text or "Displays / POP" in model_text:
            continue
        if not has_quantity(qty_text):
            continue

        brand, model = split_brand_model(model_text, DEFAULT_BRAND)
        color_code, color_name = split_color(color_text)
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
                in_stock=availability.lower().replace(" ", "-") != "back-ordered",
                availability=availability or None,
                raw={"order_type": order_type} if order_type else {},
            )
        )


@register_vendor(["europaeye.com"], vendor_code="europa", vendor_name="Europa")
def parse_europa_order(html: str, plain_text: str = "") -> ParsedOrder:
    """
    Parse a Europa customer receipt.

    Header fields come from the plain text part when present, falling back
    to the flattened HTML. Item rows need a model and a quantity; colour is
    "<number> <name>" and size is the eye size only.
    """
    order = ParsedOrder(vendor="Europa", vendor_code="europa", parse_method="vendor_europa")
    soup = BeautifulSoup(html or "", "html.parser")

    _extract_header(order, [plain_text, html_to_text(html)])
    _extract_customer(order, soup)
    _extract_ship_to(order, soup)
    _extract_items(order, soup)

    return validate_parsed_order(order)
