"""
Structural Table Locator

Vendor emails are frequently quoted or forwarded, which wraps the real order
tables in outer layout tables that repeat the same header text. The locator
only trusts header cells on a table's own rows and prefers the most deeply
nested table that qualifies.

Header cells are recognised by an explicit class marker (x_tableheader,
x_secondaryheader) or by one of the two known inline header treatments:
- primary: dark navy background, rgb(11, 27, 87) / #0B1B57
- secondary: neutral gray background, rgb(204, 204, 204) / #CCCCCC
"""

import re
from typing import Iterator, Optional

from bs4 import BeautifulSoup, Tag

HEADER_CLASSES = {"x_tableheader", "tableheader"}
SECONDARY_HEADER_CLASSES = {"x_secondaryheader", "secondaryheader"}

PRIMARY_HEADER_COLORS = ("rgb(11, 27, 87)", "rgb(11,27,87)", "#0b1b57")
SECONDARY_HEADER_COLORS = ("rgb(204, 204, 204)", "rgb(204,204,204)", "#cccccc")

# Channel triples survive clients that rewrite rgb() into rgba() or add spacing
PRIMARY_HEADER_CHANNELS = re.compile(r"\b11,\s*27,\s*87\b")
SECONDARY_HEADER_CHANNELS = re.compile(r"\b204,\s*204,\s*204\b")


def clean_text(text: str) -> str:
    """Collapse whitespace (including nbsp) to single spaces."""
    return re.sub(r"\s+", " ", (text or "").replace("\xa0", " ")).strip()


def cell_text(cell: Tag) -> str:
    return clean_text(cell.get_text(" "))


def to_soup(markup) -> BeautifulSoup | Tag:
    """Accept raw HTML or an already parsed tree."""
    if isinstance(markup, Tag):
        return markup
    return BeautifulSoup(markup or "", "html.parser")


def _style(el: Tag) -> str:
    return (el.get("style") or "").lower()


def header_kind(cell: Tag) -> Optional[str]:
    """
    Classify a cell's header treatment.

    Returns:
        'primary', 'secondary' or None for ordinary cells
    """
    classes = set(cell.get("class") or [])
    if classes & HEADER_CLASSES:
        return "primary"
    if classes & SECONDARY_HEADER_CLASSES:
        return "secondary"

    style = _style(cell)
    bgcolor = (cell.get("bgcolor") or "").lower()

    if any(color in style for color in PRIMARY_HEADER_COLORS) or bgcolor == "#0b1b57":
        return "primary"
    if any(color in style for color in SECONDARY_HEADER_COLORS) or bgcolor == "#cccccc":
        return "secondary"

    if "background" in style:
        if PRIMARY_HEADER_CHANNELS.search(style):
            return "primary"
        if SECONDARY_HEADER_CHANNELS.search(style):
            return "secondary"

    return None


def is_header_cell(cell: Tag) -> bool:
    return header_kind(cell) is not None


def table_depth(table: Tag) -> int:
    """Number of ancestor tables."""
    return len(table.find_parents("table"))


def direct_rows(table: Tag) -> list[Tag]:
    """Rows that belong to this table, not to tables nested inside it."""
    rows = []
    for child in table.find_all(["tr", "tbody", "thead", "tfoot"], recursive=False):
        if child.name == "tr":
            rows.append(child)
        else:
            rows.extend(child.find_all("tr", recursive=False))
    return rows


def direct_cells(row: Tag) -> list[Tag]:
    return row.find_all(["td", "th"], recursive=False)


def header_label(cell: Tag) -> str:
    """Text of a header cell, preferring its bold run."""
    bold = cell.find(["strong", "b"])
    if bold is not None:
        label = cell_text(bold)
        if label:
            return label
    return cell_text(cell)


def _cell_matches(cell: Tag, wanted: str, require_marker: bool) -> bool:
    if cell.find("table") is not None:
        return False
    if require_marker and not is_header_cell(cell):
        return False
    return header_label(cell).casefold() == wanted or cell_text(cell).casefold() == wanted


def find_tables_by_header(root, header_text: str, require_marker: bool = True) -> list[Tag]:
    """
    All tables whose own rows carry a header cell labelled header_text,
    deepest first (document order among equal depths).
    """
    soup = to_soup(root)
    wanted = clean_text(header_text).casefold()
    matches = []

    for position, table in enumerate(soup.find_all("table")):
        for row in direct_rows(table):
            if any(_cell_matches(cell, wanted, require_marker) for cell in direct_cells(row)):
                matches.append((table_depth(table), position, table))
                break

    matches.sort(key=lambda entry: (-entry[0], entry[1]))
    return [table for _, _, table in matches]


def find_table_by_header(root, header_text: str, require_marker: bool = True) -> Optional[Tag]:
    """
    Find the most specific table labelled with header_text.

    Args:
        root: HTML string or parsed BeautifulSoup node
        header_text: Header label to look for (case-insensitive)
        require_marker: Only accept cells carrying a header treatment

    Returns:
        The deepest qualifying table, or None. Callers treat None as a parse
        gap for that section, not a failure of the whole document.
    """
    tables = find_tables_by_header(root, header_text, require_marker)
    return tables[0] if tables else None


def is_header_row(row: Tag) -> bool:
    if header_kind(row) is not None:
        return True
    return any(is_header_cell(cell) for cell in direct_cells(row))


def is_spanning_row(cells: list[Tag]) -> bool:
    """Subtotal and separator rows open with a colspan cell."""
    if not cells:
        return True
    try:
        return int(cells[0].get("colspan") or 1) > 1
    except ValueError:
        return False


def iter_data_rows(table: Tag, min_cells: int = 1) -> Iterator[list[Tag]]:
    """
    Yield the cell lists of a table's data rows.

    Header rows, colspan subtotal/separator rows, blank rows and rows with
    fewer than min_cells cells are skipped.
    """
    for row in direct_rows(table):
        cells = direct_cells(row)
        if len(cells) < min_cells:
            continue
        if is_header_row(row) or is_spanning_row(cells):
            continue
        if not any(cell_text(cell) for cell in cells) and not row.find("img"):
            continue
        yield cells


def first_data_row(table: Optional[Tag], min_cells: int = 1) -> Optional[list[Tag]]:
    if table is None:
        return None
    return next(iter_data_rows(table, min_cells), None)
