"""
Colour Name Normalizer

Vendors abbreviate colour names ("BLK", "GM", "TORT"). Names are normalized
token by token: each slash- or space-delimited token is looked up in a static
abbreviation table, unknown tokens are title-cased and passed through.

Every output token is either a table value or title-cased text, and every
table value maps to itself, so normalize_color is idempotent.
"""

import re

COLOR_ABBREVIATIONS = {
    "BLK": "Black",
    "BLACK": "Black",
    "GM": "Gunmetal",
    "GUN": "Gunmetal",
    "GUNMETAL": "Gunmetal",
    "SIL": "Silver",
    "SILVER": "Silver",
    "GLD": "Gold",
    "GOLD": "Gold",
    "BR": "Brown",
    "BRN": "Brown",
    "BROWN": "Brown",
    "BL": "Blue",
    "BLU": "Blue",
    "BLUE": "Blue",
    "GR": "Gray",
    "GRAY": "Gray",
    "GREY": "Grey",
    "GN": "Green",
    "GRN": "Green",
    "GREEN": "Green",
    "RD": "Red",
    "RED": "Red",
    "WH": "White",
    "WHT": "White",
    "WHITE": "White",
    "CL": "Clear",
    "CLEAR": "Clear",
    "TORT": "Tortoise",
    "TORTOISE": "Tortoise",
    "DEMI": "Demi",
    "NAVY": "Navy",
    "NVY": "Navy",
    "AQUA": "Aqua",
    "TEAL": "Teal",
    "PINK": "Pink",
    "PK": "Pink",
    "RUST": "Rust",
    "BURG": "Burgundy",
    "BURGUNDY": "Burgundy",
    "FADE": "Fade",
    "CRY": "Crystal",
    "CRYST": "Crystal",
    "CRYSTAL": "Crystal",
    "CLEO": "Cleo",
    "MATTE": "Matte",
    "MT": "Matte",
    "SHINY": "Shiny",
    "PURPLE": "Purple",
    "PUR": "Purple",
    "ROSE": "Rose",
    "HAVANA": "Havana",
    "HAV": "Havana",
}


def _normalize_token(token: str) -> str:
    upper = token.upper()
    if upper in COLOR_ABBREVIATIONS:
        return COLOR_ABBREVIATIONS[upper]
    # Title-case hyphenated parts separately ("rose-gold" -> "Rose-Gold")
    return "-".join(part[:1].upper() + part[1:].lower() for part in token.split("-"))


def normalize_color(color: str) -> str:
    """
    Expand colour abbreviations token by token.

    Examples:
        'BLK' -> 'Black'
        'CLEO BLACK CRY' -> 'Cleo Black Crystal'
        'GM/SIL' -> 'Gunmetal/Silver'
        'Sea Foam' -> 'Sea Foam'
    """
    if not color:
        return ""

    color = re.sub(r"\s+", " ", color).strip()

    # Slash-separated compound colours keep their separator
    if "/" in color:
        return "/".join(normalize_color(part) for part in color.split("/") if part.strip())

    return " ".join(_normalize_token(token) for token in color.split(" "))
