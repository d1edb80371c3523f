"""
Safilo Parsers

Safilo order confirmations arrive as PDF attachments. The text extracted from
the PDF lists header labels before their values, then one frame per line
after the "Item Description" heading:

    CARRERA 8860 807 BLACK 54/18 145

Long descriptions wrap, so a frame can span up to three more lines (a lone
three-digit line is the temple length that wrapped).
"""

import re

from vendor_orders.models import Address, LineItem, ParsedOrder

from .base import first_match, register_vendor, validate_parsed_order

FRAME_START = re.compile(r"^(CARRERA|VICTORY|CARDUC|CH\s|KS\s|CATRINA|JOLIET|MIS\s)")
CONTINUATION_STOP = re.compile(r"^(CARRERA|VICTORY|CARDUC|CH\s|KS\s|CATRINA|JOLIET|MIS\s|KSP\s|Total)")
SIZE_PATTERN = re.compile(r"(\d{2})/(\d{2})\s+(\d{3})")
DATE_STAMP = re.compile(r"\d{5}/\d{2}/\d{4}\.?")

# Line prefix -> (brand, number of leading tokens that make up the model).
# CARRERA is special-cased: the brand word is not part of the model.
BRAND_RULES = [
    ("CARRERA ", "CARRERA", None),
    ("VICTORY ", "CARRERA", 3),
    ("CARDUC ", "CARRERA DUCATI", 2),
    ("CH ", "CHESTERFIELD", 2),
    ("KS ", "KATE SPADE", 3),
    ("CATRINA", "KATE SPADE", 1),
    ("JOLIET", "KATE SPADE", 1),
    ("MIS ", "MISSONI", 2),
]


def _lines(text: str) -> list[str]:
    return [line.strip() for line in (text or "").split("\n")]


def _extract_header(order: ParsedOrder, text: str) -> None:
    lines = _lines(text)

    for i, line in enumerate(lines):
        # Labels are stacked, values follow in the same order
        if line == "Account Number:" and i + 5 < len(lines):
            order.account_number = lines[i + 3]
            order.order_number = lines[i + 5]
            order.purchase_order = lines[i + 4]  # EyeRep order number
            break
        if "Order Reference Number" in line and not order.order_number:
            order.order_number = first_match([r"Order Reference Number[:\s]*(\d+)"], line)
        if "EyeRep Order Number" in line and not order.purchase_order:
            order.purchase_order = first_match([r"EyeRep Order Number[:\s]*(\d+)"], line)
        if "Account" in line and not order.account_number:
            order.account_number = first_match([r"(\d{6,})"], line)

    for i, line in enumerate(lines):
        if line == "Placed By:" and i + 2 < len(lines):
            placed_by = lines[i + 2]
            match = re.match(r"^(\d+)\s+(.+)$", placed_by)
            order.rep_name = match.group(2) if match else placed_by
            break

    for i, line in enumerate(lines):
        if "Date:" not in line:
            continue
        candidates = [line] + lines[i + 1:i + 3] if line == "Date:" else [line]
        date = first_match([r"(\d{2}/\d{2}/\d{4})"], "\n".join(candidates))
        if date:
            order.order_date = date
            break

    customer = re.search(r"Customer:\s*([^(]+)\s*\(([^)]+)\)", text or "")
    if customer:
        order.customer = Address(name=customer.group(1).strip())
        if not order.account_number:
            order.account_number = customer.group(2).strip()
        address_lines = []
        start = next(
            (i for i, line in enumerate(lines) if line.startswith("Customer:")), None
        )
        if start is not None:
            for line in lines[start + 1:start + 4]:
                if not line or line.startswith("Phone:") or "Ship to:" in line:
                    break
                address_lines.append(line)
        order.customer.address = ", ".join(address_lines)
        # This document format ships to the ordering customer
        order.ship_to = Address(name=order.customer.name, address=order.customer.address)


def _collect_frame_lines(lines: list[str]) -> list[str]:
    start = next((i + 1 for i, line in enumerate(lines) if "Item Description" in line), None)
    if start is None:
        return []

    frames = []
    i = start
    while i < len(lines):
        line = lines[i]
        if not line or "Total" in line or "*Date Available" in line or not FRAME_START.match(line):
            i += 1
            continue

        joined = line
        j = i + 1
        while j < len(lines) and j < i + 4:
            following = lines[j]
            if CONTINUATION_STOP.match(following) or re.match(r"^\d+/\d+/\d+", following):
                break
            if re.fullmatch(r"\d{3}", following):
                joined += " " + following
            elif len(following) > 3 and not following.isdigit():
                joined += " " + following
            else:
                break
            j += 1

        frames.append(joined)
        i = j
    return frames


def parse_frame_line(line: str) -> LineItem | None:
    """Turn one joined frame line into a LineItem, or None when it has no size."""
    line = re.sub(r"\s+", " ", line).strip()
    line = re.sub(r"\s+", " ", DATE_STAMP.sub("", line)).strip()

    size = SIZE_PATTERN.search(line)
    if not size:
        return None
    eye, bridge, temple = size.groups()

    before_size = line[:size.start()].strip()
    parts = before_size.split()
    if len(parts) < 3:
        return None

    brand, model_tokens = parts[0], 2
    for prefix, rule_brand, tokens in BRAND_RULES:
        if before_size.startswith(prefix):
            brand, model_tokens = rule_brand, tokens
            break

    if model_tokens is None:
        model, rest = parts[1], parts[2:]
    else:
        model, rest = " ".join(parts[:model_tokens]), parts[model_tokens:]

    color_code = rest[0] if rest else ""
    color_name = re.sub(r"\s+", " ", " ".join(rest[1:]).replace("_", " ")).strip()

    return LineItem(
        brand=brand,
        model=model,
        color_code=color_code,
        color_name=color_name,
        color=f"{color_code} {color_name}".strip(),
        size=f"{eye}/{bridge}/{temple}",
        eye_size=eye,
        bridge=bridge,
        temple=temple,
        quantity=1,
        raw={"line": line},
    )


@register_vendor(
    ["safilo.com", "safilogroup.com", "mysafilo.com"],
    vendor_code="safilo",
    vendor_name="Safilo",
    document_type="pdf",
)
def parse_safilo_order(text: str, plain_text: str = "") -> ParsedOrder:
    """
    Parse text extracted from a Safilo order PDF.

    Each frame line is one piece; repeated frames are separate lines.
    """
    order = ParsedOrder(vendor="Safilo", vendor_code="safilo", parse_method="vendor_safilo_pdf")
    text = text or plain_text or ""

    _extract_header(order, text)

    for frame_line in _collect_frame_lines(_lines(text)):
        item = parse_frame_line(frame_line)
        if item is None:
            order.add_warning(f"Unparsed frame line: {frame_line}")
            continue
        order.items.append(item)

    return validate_parsed_order(order)
