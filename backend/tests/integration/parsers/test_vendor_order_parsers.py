"""Integration tests for vendor order parsers.

Tests parser functionality using vendor email HTML and PDF text modelled on
real order documents. Validates extraction of:
- Order header (number, date, rep)
- Customer and ship-to blocks
- Line items (brand, model, colour, size, quantity, UPC)
- Data-quality warnings
"""

import pytest

from conftest import load_email_fixture, load_pdf_text_fixture
from vendor_orders.order_parsers.europa import parse_europa_order
from vendor_orders.order_parsers.ideal_optics import parse_ideal_optics_order, trim_forwarded
from vendor_orders.order_parsers.marchon import brand_from_model, parse_marchon_order
from vendor_orders.order_parsers.receipts import (
    parse_kenmark_order,
    parse_lamy_america_order,
    parse_modern_optical_order,
)
from vendor_orders.order_parsers.safilo import parse_frame_line, parse_safilo_order

# ============================================================================
# EUROPA
# ============================================================================


@pytest.fixture
def europa_order():
    return parse_europa_order(load_email_fixture("europa_receipt.html"))


def test_europa_header(europa_order):
    assert europa_order.order_number == "123456"
    assert europa_order.rep_name == "Jane Doe"
    assert europa_order.order_date == "03/14/2025"
    assert europa_order.terms == "Net 30"
    assert europa_order.ship_method == "UPS Ground"


def test_europa_customer_and_ship_to(europa_order):
    assert europa_order.account_number == "E10442"
    assert europa_order.customer.name == "Bright Eyes Optical"
    assert europa_order.customer.address2 == "Suite 2"
    assert europa_order.customer.phone == "555-123-4567"
    assert europa_order.ship_to.address == "200 Oak Ave"
    assert europa_order.ship_to.postal_code == "62702"


def test_europa_items(europa_order):
    items = europa_order.items

    assert len(items) == 2  # Displays / POP row is not a frame
    assert (items[0].brand, items[0].model) == ("MICHAEL RYEN", "MR-104")
    assert (items[0].color_code, items[0].color_name) == ("1", "BLACK")
    assert items[0].eye_size == "53"
    assert items[0].bridge == ""
    assert items[0].quantity == 2
    assert items[0].in_stock is True
    assert items[1].in_stock is False
    assert items[1].raw == {"order_type": "Frame"}


def test_europa_total_pieces_match_no_warning(europa_order):
    assert europa_order.stated_total_quantity == 3
    assert europa_order.total_quantity() == 3
    assert not any("does not match" in w for w in europa_order.warnings)
    assert "1 items are back-ordered" in europa_order.warnings


def test_europa_forwarded_email_uses_innermost_table():
    order = parse_europa_order(load_email_fixture("europa_forwarded.html"))

    assert order.order_number == "778812"
    assert len(order.items) == 1
    assert order.items[0].model == "CDA-310"
    assert order.items[0].color_code == "2"
    assert "Customer table not found" in order.warnings


def test_europa_three_row_table_yields_one_item():
    html = """
    <table>
      <tr>
        <td class="x_tableheader">Order Items</td><td class="x_tableheader">Model</td>
        <td class="x_tableheader">Color</td><td class="x_tableheader">Size</td>
        <td class="x_tableheader">Qty</td><td class="x_tableheader">Availability</td>
      </tr>
      <tr><td colspan="2">Subtotal</td><td></td><td></td><td>4</td><td></td></tr>
      <tr><td>Frame</td><td>MICHAEL RYEN - MR-104</td><td>1 BLACK</td><td>53</td><td>1</td><td></td></tr>
    </table>
    """

    order = parse_europa_order(html)

    assert len(order.items) == 1
    assert order.items[0].model == "MR-104"


def test_europa_empty_document_records_errors():
    order = parse_europa_order("<html><body><p>Nothing here</p></body></html>")

    assert order.items == []
    assert "No items found in order" in order.errors
    assert "Order Items table not found" in order.warnings


# ============================================================================
# MARCHON
# ============================================================================


@pytest.fixture
def marchon_order():
    return parse_marchon_order(load_email_fixture("marchon_order.html"))


def test_marchon_header(marchon_order):
    assert marchon_order.order_number == "M1234567"
    assert marchon_order.rep_name == "Pat Smith"
    assert marchon_order.order_date == "2025-03-14"
    assert marchon_order.terms == "Net 60"
    assert marchon_order.notes == "Rush delivery"
    assert marchon_order.promotions == "SPRING25"


def test_marchon_parties(marchon_order):
    assert marchon_order.account_number == "123456"
    assert marchon_order.customer.name == "Bright Eyes Optical"
    assert marchon_order.customer.city == "Springfield"
    assert marchon_order.ship_to.address == "200 Oak Ave"
    assert marchon_order.ship_to.postal_code == "62702"


def test_marchon_items_deduplicate_quoted_rows(marchon_order):
    items = marchon_order.items

    assert len(items) == 2
    assert marchon_order.total_quantity() == 3


def test_marchon_item_fields_from_product_link(marchon_order):
    first, second = marchon_order.items

    assert (first.brand, first.model, first.color_name) == ("Calvin Klein", "CK5932", "BLACK")
    assert first.color_code == "001"
    assert (first.eye_size, first.bridge) == ("54", "17")
    assert first.raw["frame"] == "CK5932"
    assert first.image_url == "https://images.marchon.com/frames/CK5932_001.jpg"

    # Link-protected URL is unwrapped before reading parameters
    assert (second.brand, second.model, second.color_name) == ("Nike", "NK7011", "MATTE BLACK")
    assert (second.color_code, second.eye_size, second.bridge) == ("002", "52", "18")


@pytest.mark.parametrize(
    "model, brand",
    [("CKJ18500", "Calvin Klein Jeans"), ("CK5932", "Calvin Klein"), ("CHLOE0012O", "Chloe"),
     ("C5040", "Columbia"), ("XYZ100", "Marchon")],
)
def test_marchon_brand_uses_longest_prefix(model, brand):
    assert brand_from_model(model) == brand


# ============================================================================
# RECEIPT TEMPLATE VENDORS
# ============================================================================


def test_modern_optical_receipt():
    order = parse_modern_optical_order(load_email_fixture("modern_optical_receipt.html"))

    assert order.order_number == "556677"
    assert order.rep_name == "Chris Lee"
    assert order.account_number == "12345"
    assert order.customer.name == "BRIGHT EYES OPTICAL"
    assert order.customer.address == "100 Main St, Springfield, IL 62701"
    assert order.customer.phone == "555-123-4567"
    assert len(order.items) == 2

    first, second = order.items
    assert (first.brand, first.model) == ("B.M.E.C.", "BIG BEAR")
    assert first.color_name == "Black/Gunmetal"
    assert (first.eye_size, first.bridge, first.temple) == ("56", "18", "145")
    assert second.color_name == "Tortoise"
    assert second.quantity == 2
    assert first.upc is None


def test_lamy_receipt_reads_upc_from_image_urls():
    order = parse_lamy_america_order(load_email_fixture("lamy_receipt.html"))

    assert order.order_number == "9901234"
    assert order.account_number == "LA1234567"
    assert len(order.items) == 2  # Subtotal row has no "BRAND - MODEL"
    assert order.items[0].upc == "730638445897"
    assert order.items[1].upc == "730638446009"
    assert (order.items[0].color_code, order.items[0].color_name) == ("C01", "BLACK")
    assert order.items[0].raw["frame_id"] == "NICOLE MILLER-KIMORA"
    assert not any("missing UPC" in w for w in order.warnings)


def test_kenmark_receipt():
    order = parse_kenmark_order(load_email_fixture("kenmark_receipt.html"))

    assert order.order_number == "4455667"
    assert order.account_number == "7654321"
    assert len(order.items) == 1
    assert order.items[0].upc == "883900123456"
    assert order.items[0].color_code == "NV"


# ============================================================================
# IDEAL OPTICS
# ============================================================================


def test_ideal_optics_order():
    order = parse_ideal_optics_order(load_email_fixture("ideal_optics_order.html"))

    assert order.order_number == "WO778899"
    assert order.order_date == "03/18/2025"
    assert order.rep_name == "Sam Taylor"
    assert order.purchase_order == "PO-5521"
    assert order.promotions == "FALL10"
    assert order.notes == "Leave at front desk"
    assert order.account_number == "IO-3321"
    assert order.customer.name == "Bright Eyes Optical"
    assert order.ship_to.address == "200 Oak Ave"
    assert order.ship_to.name == "Bright Eyes Optical"

    assert [item.model for item in order.items] == ["Jasmine", "Monarch"]
    assert order.items[0].color_name == "Black"
    assert (order.items[0].eye_size, order.items[0].bridge) == ("52", "17")
    assert order.items[1].raw == {"notes": "Demo"}


def test_ideal_optics_trim_forwarded_drops_forward_header():
    html = load_email_fixture("ideal_optics_order.html")

    trimmed = trim_forwarded(html)

    assert "Forwarded message" not in trimmed
    assert trimmed.startswith('<div class="order">')


# ============================================================================
# SAFILO (PDF TEXT)
# ============================================================================


@pytest.fixture
def safilo_order():
    return parse_safilo_order(load_pdf_text_fixture("safilo_order.txt"))


def test_safilo_header(safilo_order):
    assert safilo_order.account_number == "100234567"
    assert safilo_order.purchase_order == "5550001"
    assert safilo_order.order_number == "8812345"
    assert safilo_order.rep_name == "JANE REP"
    assert safilo_order.order_date == "03/12/2025"
    assert safilo_order.customer.name == "BRIGHT EYES OPTICAL"
    assert safilo_order.customer.address == "100 MAIN ST, SPRINGFIELD IL 62701"


def test_safilo_items_with_wrapped_lines(safilo_order):
    items = safilo_order.items

    assert len(items) == 3
    assert (items[0].brand, items[0].model, items[0].color_code) == ("CARRERA", "8860", "807")
    assert items[0].size == "54/18/145"
    assert (items[1].brand, items[1].model) == ("CHESTERFIELD", "CH 1006")
    assert items[1].color_name == "DARK HAVANA"
    assert items[1].temple == "140"  # Wrapped onto its own line
    assert (items[2].brand, items[2].model) == ("KATE SPADE", "KS ADELINE 2")
    assert "00001" not in items[2].raw["line"]


def test_safilo_unparseable_frame_line_is_a_warning(safilo_order):
    assert "Unparsed frame line: CARRERA 8860 807 BLACK" in safilo_order.warnings


def test_parse_frame_line_without_size():
    assert parse_frame_line("CARRERA 8860 807 BLACK") is None
