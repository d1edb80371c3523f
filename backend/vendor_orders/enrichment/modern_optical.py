"""
Modern Optical Product Page Client

Modern Optical has no search endpoint; product pages live at
/Detail/{brand}/{model} with inconsistent spelling ("B.M.E.C." is served as
"BMEC", "BIG RIVER" as "BIG-RIVER"). Spellings are tried in order until a
page that is not a "not found" page comes back. Variants are the rows of the
product data table, each carrying its UPC in a label span.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup

from vendor_orders.color_normalizer import normalize_color
from vendor_orders.error_tracking import NotFoundError
from vendor_orders.models import CandidateVariant, EnrichmentOutcome, LineItem, LookupResult
from vendor_orders.table_locator import cell_text
from vendor_orders.variant_matcher import ScoringRule

from .base_client import HTML_HEADERS, BaseEnrichmentClient, text_value

BASE_URL = "https://www.modernoptical.com"

MODERN_OPTICAL_SCORING = [
    ScoringRule("colorName", "color_name", "color_name", 40, partial_weight=20),
    ScoringRule("eyeSize", "eye_size", "eye_size", 30, mode="numeric"),
    ScoringRule("bridge", "bridge", "bridge", 20, mode="numeric"),
    ScoringRule("temple", "temple", "temple", 10, mode="numeric"),
]

NOT_FOUND_MARKERS = [
    "page not found",
    "error 404",
    "http 404",
    "the resource you are looking for has been removed",
    "server error in",
    "does not exist",
]

PRODUCT_PAGE_MARKERS = [
    "product-data-table",
    "gallery_09",
    "lnkCollection",
    "MainContentArea",
    "label-custom-green",
]


def normalize_for_url(text: str) -> str:
    text = re.sub(r"[^a-zA-Z0-9\s\-_.]", "", text)
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-{2,}", "-", text)
    return text.strip("-")


def build_product_urls(brand: str, model: str) -> list[str]:
    """Candidate page URLs, most likely spelling first."""
    brands = [
        re.sub(r"[.\s]", "", brand),
        normalize_for_url(brand),
        brand.upper(),
        brand,
    ]
    models = [
        re.sub(r"\s+", "-", model),
        re.sub(r"\s+", "_", model),
        re.sub(r"\s+", "", model),
        re.sub(r"\s+", "-", model.lower()),
        model,
        model.upper(),
    ]

    urls = []
    for brand_variant in dict.fromkeys(brands):
        for model_variant in dict.fromkeys(models):
            url = f"{BASE_URL}/Detail/{brand_variant}/{normalize_for_url(model_variant)}"
            if url not in urls:
                urls.append(url)
    return urls


def is_page_not_found(html: str) -> bool:
    if not html or len(html) < 100:
        return True

    lowered = html.lower()
    if any(marker in lowered for marker in NOT_FOUND_MARKERS):
        return True
    if any(marker in html for marker in PRODUCT_PAGE_MARKERS):
        return False

    index = lowered.find("404")
    if index == -1:
        return False
    context = lowered[max(0, index - 50):index + 53]
    return any(word in context for word in ("error", "not found", "page"))


def _labelled_value(soup, label: str) -> Optional[str]:
    for element in soup.find_all(string=re.compile(rf"^\s*{label}\s*$", re.IGNORECASE)):
        parent = element.parent.parent if element.parent is not None else None
        if parent is None:
            continue
        for value in parent.find_all(["p", "span"]):
            text = cell_text(value)
            if text and text.lower() != label.lower():
                return text
    return None


def _is_shown(element) -> bool:
    style = (element.get("style") or "").replace(" ", "").lower()
    return "display:none" not in style


class ModernOpticalClient(BaseEnrichmentClient):
    vendor_code = "modern_optical"
    vendor_name = "Modern Optical"
    headers = HTML_HEADERS
    scoring = MODERN_OPTICAL_SCORING
    strategy_order = ("page",)

    def page_lookup(self, item: LineItem, outcome: EnrichmentOutcome) -> LookupResult:
        if not item.model:
            return LookupResult(found=False, reason="No model name available")
        brand = item.brand or "Modern Optical"
        key = f"{brand} {item.model}"
        return self.cached_lookup(key, lambda: self.fetch_product(brand, item.model), outcome)

    def fetch_product(self, brand: str, model: str) -> LookupResult:
        for url in build_product_urls(brand, model):
            try:
                html = self.get_text(url)
            except NotFoundError:
                continue
            if is_page_not_found(html):
                continue
            return self.parse_product_page(html, url, brand, model)

        return LookupResult(found=False, reason=f"No valid page found for {brand} - {model}")

    def parse_product_page(self, html: str, url: str, brand: str, model: str) -> LookupResult:
        soup = BeautifulSoup(html, "html.parser")

        title = soup.select_one("h1.label-custom-green")
        collection = soup.select_one('a[id*="lnkCollection"]')
        price_group = soup.select_one('a[id*="lnkPriceGroup"]')
        hinge = soup.select_one('a[id*="lnkHinge"]')

        out_of_stock = soup.find(id="ctl00_MainContentArea_outofstock")
        in_stock = not (out_of_stock is not None and _is_shown(out_of_stock))
        if "OutOfStock" in html or "out of stock" in html:
            in_stock = False
        pre_order = soup.find(id="ctl00_MainContentArea_PreOrder")

        shared = {
            "gender": _labelled_value(soup, "Gender"),
            "material": _labelled_value(soup, "Material"),
            "in_stock": in_stock,
            "brand": cell_text(collection) if collection else brand,
            "model": cell_text(title) if title else model,
            "priceGroup": cell_text(price_group) if price_group else None,
            "hinge": cell_text(hinge) if hinge else None,
            "preOrder": pre_order is not None and _is_shown(pre_order),
        }

        candidates = []
        table = soup.select_one(".product-data-table table.table")
        rows = table.select("tbody tr") if table is not None else []
        for row in rows:
            cells = row.find_all("td")
            if len(cells) < 7:
                continue
            upc_span = row.select_one('span[id*="Label1"], span[id*="UPC"], span[id*="upc"]')
            raw = {
                **shared,
                "color": cell_text(cells[0]),
                "eye": cell_text(cells[1]),
                "a": cell_text(cells[2]),
                "b": cell_text(cells[3]),
                "dbl": cell_text(cells[4]),
                "ed": cell_text(cells[5]),
                "temple": cell_text(cells[6]),
                "bridge": cell_text(cells[7]) if len(cells) > 7 else cell_text(cells[4]),
                "upc": cell_text(upc_span) if upc_span is not None else "",
            }
            if raw["color"] and raw["upc"]:
                candidates.append(self.normalize_candidate(raw))

        return LookupResult(
            found=bool(candidates),
            candidates=candidates,
            brand=shared["brand"],
            model=shared["model"],
            url=url,
            reason=None if candidates else "Product page has no variants with UPCs",
        )

    def normalize_candidate(self, raw: dict) -> CandidateVariant:
        return CandidateVariant(
            upc=text_value(raw.get("upc")),
            brand=text_value(raw.get("brand")),
            model=text_value(raw.get("model")),
            color_code=text_value(raw.get("color")),
            color_name=normalize_color(raw.get("color") or "") or None,
            eye_size=text_value(raw.get("eye")),
            bridge=text_value(raw.get("bridge")),
            temple=text_value(raw.get("temple")),
            a=text_value(raw.get("a")),
            b=text_value(raw.get("b")),
            ed=text_value(raw.get("ed")),
            material=text_value(raw.get("material")),
            gender=text_value(raw.get("gender")),
            in_stock=raw.get("in_stock"),
            extra={
                "dbl": text_value(raw.get("dbl")),
                "priceGroup": raw.get("priceGroup"),
                "hinge": raw.get("hinge"),
                "preOrder": raw.get("preOrder"),
            },
        )
