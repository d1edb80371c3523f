"""
Europa Product Page Client

Europa has no catalog search. Each colour/size has a product page addressed
by its stock number:

    https://europaeye.com/products/{shortCode}{colorNo}{eyeSize}-{bridge}
    MRX-104, colour 1, 53 eye, 18 bridge -> MRX104153-18

The page embeds every variation of the style as JSON in the
:init-variations attribute of its <router-view> component. Receipts rarely
print the bridge, so 18 mm is assumed and a 404 moves on to the other common
bridge widths.
"""

import json
import re
from typing import Optional

from bs4 import BeautifulSoup

from vendor_orders.error_tracking import NetworkError, NotFoundError
from vendor_orders.logging_config import get_logger
from vendor_orders.models import CandidateVariant, EnrichmentOutcome, LineItem, LookupResult
from vendor_orders.variant_matcher import ScoringRule

from .base_client import (
    HTML_HEADERS,
    BaseEnrichmentClient,
    float_value,
    require_dict,
    require_dicts,
    text_value,
)

logger = get_logger(__name__)

BASE_URL = "https://europaeye.com/products"
DEFAULT_BRIDGE = "18"
ALTERNATE_BRIDGES = ["16", "17", "18", "19", "20"]

EUROPA_SCORING = [
    ScoringRule("colorNo", "color_code", "color_code", 50, mode="numeric"),
    ScoringRule("eyeSize", "eye_size", "eye_size", 40, mode="numeric"),
]

# Brand name fragment -> stock number prefix
BRAND_CODES = [
    ("michael ryen", "MR"),
    ("scott harris", "SH"),
    ("cote d'azur", "CDA"),
    ("cote d azur", "CDA"),
    ("american optical", "AO"),
    ("cinzia", "CZ"),
]


def brand_code(brand: str) -> Optional[str]:
    lowered = (brand or "").lower()
    for fragment, code in BRAND_CODES:
        if fragment in lowered:
            return code
    return None


def extract_short_code(model: str, brand: str = "") -> Optional[str]:
    """
    'MRX-104' -> 'MRX104'
    'Sport 104' with brand 'Michael Ryen' -> 'MR104'
    'CIN-5080' -> 'CIN5080'
    """
    if not model:
        return None
    model = model.strip()

    match = re.match(r"^([A-Z]+)-?(\d+[A-Z]?)$", model, re.IGNORECASE)
    if match:
        return match.group(1).upper() + match.group(2)

    number = re.search(r"(\d+[A-Z]?)$", model)
    code = brand_code(brand)
    if number and code:
        return code + number.group(1)

    match = re.search(r"([A-Z]{2,4})[\s-]?(\d+[A-Z]?)", model, re.IGNORECASE)
    if match:
        return match.group(1).upper() + match.group(2)

    return None


def build_stock_number(item: LineItem) -> Optional[str]:
    short_code = extract_short_code(item.model, item.brand)
    if not short_code:
        return None

    eye = item.eye_size or (item.size or "").split("-")[0].strip()
    if not eye:
        return None

    color_no = item.color_code or "1"
    bridge = item.bridge or DEFAULT_BRIDGE
    return f"{short_code}{color_no}{eye}-{bridge}"


def alternate_stock_numbers(stock_no: str) -> list[str]:
    base = stock_no.split("-")[0]
    return [f"{base}-{bridge}" for bridge in ALTERNATE_BRIDGES if f"{base}-{bridge}" != stock_no]


def extract_variations(html: str) -> Optional[list]:
    """The :init-variations JSON payload, or None when the page has none."""
    soup = BeautifulSoup(html or "", "html.parser")
    router_view = soup.find("router-view", attrs={":init-variations": True})
    if router_view is None:
        return None
    payload = router_view.get(":init-variations")
    if not payload:
        return None
    return require_dicts(json.loads(payload), "product variation")


class EuropaClient(BaseEnrichmentClient):
    vendor_code = "europa"
    vendor_name = "Europa"
    headers = HTML_HEADERS
    scoring = EUROPA_SCORING
    strategy_order = ("page",)

    def page_lookup(self, item: LineItem, outcome: EnrichmentOutcome) -> LookupResult:
        stock_no = build_stock_number(item)
        if not stock_no:
            return LookupResult(
                found=False, reason="Could not construct stock number from parsed data"
            )
        return self.cached_lookup(stock_no, lambda: self.fetch_with_alternates(stock_no), outcome)

    def fetch_with_alternates(self, stock_no: str) -> LookupResult:
        """
        Fetch the stock number page; on 404 try the other bridge widths once each.

        The original stock number is never re-requested after its 404.
        """
        try:
            return self.fetch_page(stock_no)
        except NotFoundError:
            logger.info(f"{stock_no} not found, trying alternate bridges", extra={"vendor": self.vendor_code})

        for alternate in alternate_stock_numbers(stock_no):
            try:
                result = self.fetch_page(alternate, max_attempts=1)
            except (NotFoundError, NetworkError):
                continue
            if result.found:
                logger.info(f"Found with alternate bridge: {alternate}", extra={"vendor": self.vendor_code})
                return result

        return LookupResult(found=False, search_key=stock_no, reason="Product not found (404)")

    def fetch_page(self, stock_no: str, max_attempts: Optional[int] = None) -> LookupResult:
        url = f"{BASE_URL}/{stock_no}"
        return self._request(
            "GET",
            url,
            decode=lambda response: self.parse_page(response.text, stock_no, url),
            max_attempts=max_attempts,
        )

    def parse_page(self, html: str, stock_no: str, url: str) -> LookupResult:
        variations = extract_variations(html)
        if variations is None:
            return LookupResult(
                found=False, search_key=stock_no, url=url, reason="Could not find product data in page"
            )
        if not variations:
            return LookupResult(
                found=False, search_key=stock_no, url=url, reason="No product variations found"
            )

        first = variations[0]
        first_data = require_dict(first.get("data") or {}, "variation data")
        return LookupResult(
            found=True,
            candidates=[self.normalize_candidate(variation) for variation in variations],
            brand=text_value(first_data.get("collectionName")),
            model=text_value(first.get("productName") or first_data.get("productName")),
            search_key=stock_no,
            url=url,
        )

    def normalize_candidate(self, raw: dict) -> CandidateVariant:
        data = require_dict(raw.get("data") or {}, "variation data")
        return CandidateVariant(
            upc=text_value(data.get("upcCode")),
            sku=text_value(raw.get("id")),
            brand=text_value(data.get("collectionName")),
            model=text_value(data.get("productName") or raw.get("productName")),
            color_code=text_value(data.get("colorNo")),
            color_name=text_value(data.get("color")),
            eye_size=text_value(data.get("eyeSizeA")),
            bridge=text_value(data.get("bridgeDbl")),
            temple=text_value(data.get("templeTmp")),
            a=text_value(data.get("eyeSizeA")),
            b=text_value(data.get("eyeSizeB")),
            ed=text_value(data.get("effDiameter")),
            front_material=text_value(data.get("frontMaterial")),
            temple_material=text_value(data.get("templeMaterial")),
            shape=text_value(raw.get("front_shape")),
            frame_type=text_value(raw.get("product_type")),
            gender=text_value(raw.get("gender")),
            in_stock=raw.get("isAvailable"),
            availability=text_value(raw.get("availabilityText")),
            wholesale=float_value(data.get("customerPrice")),
            msrp=float_value(data.get("listPrice")),
            image_url=text_value(raw.get("frontImageUrl")),
            extra={
                "shortCode": text_value(data.get("shortCode") or raw.get("short_code")),
                "colorFamily": text_value(data.get("colorFamily") or raw.get("color_family")),
                "hinge": text_value(data.get("hinge")),
                "bridgeType": text_value(data.get("bridgeType")),
                "isOnBackOrder": raw.get("isOnBackOrder"),
                "profileImageUrl": text_value(raw.get("profileImageUrl")),
                "productUrl": text_value(raw.get("url")),
            },
        )
