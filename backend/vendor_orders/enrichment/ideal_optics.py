"""
Ideal Optics Product Page Client

Search: the site's autocomplete endpoint (/Home/SearchFrames/?q=MODEL)
returns BrandUrl/CollectionUrl/StyleUrl slugs for the style page.
Fallback: guess the page under each known collection slug.

Style pages list one carousel image per colour; the image URL (or data-upc)
carries the UPC and SKU. Measurements are shared by every colour of a style.
Pricing and stock are not published on the site.
"""

import re
from typing import Optional
from urllib.parse import quote

from bs4 import BeautifulSoup

from vendor_orders.error_tracking import NotFoundError
from vendor_orders.models import CandidateVariant, EnrichmentOutcome, LineItem, LookupResult
from vendor_orders.table_locator import cell_text
from vendor_orders.variant_matcher import ScoringRule

from .base_client import HTML_HEADERS, BaseEnrichmentClient, require_dict, require_dicts, text_value

BASE_URL = "https://www.i-dealoptics.com"

# Clearance first: samples are most often clearance styles
COLLECTIONS = [
    "clearance",
    "casino",
    "elegante",
    "elevate",
    "focus-eyewear",
    "haggar",
    "jbx",
    "jelly-bean",
    "rafaella",
    "reflections",
    "rio-ray",
    "suntrends",
]

IDEAL_OPTICS_SCORING = [
    ScoringRule("colorName", "color_name", "color_name", 40, partial_weight=20),
    ScoringRule("eyeSize", "eye_size", "eye_size", 30, mode="numeric"),
    ScoringRule("bridge", "bridge", "bridge", 20, mode="numeric"),
    ScoringRule("temple", "temple", "temple", 10, mode="numeric"),
]

NOT_FOUND_MARKERS = ["page not found", "error 404", "http 404", "does not exist"]


def build_product_urls(model: str) -> list[str]:
    urls = []
    for collection in COLLECTIONS:
        for variant in dict.fromkeys([model.lower(), model.upper(), model]):
            urls.append(f"{BASE_URL}/catalog/{collection}/{collection}/{variant}")
            urls.append(f"{BASE_URL}/{collection}/{variant}")
    return urls


def is_page_not_found(html: str) -> bool:
    if not html or len(html) < 100:
        return True
    lowered = html.lower()
    return any(marker in lowered for marker in NOT_FOUND_MARKERS)


def _query_param(url: str, name: str) -> Optional[str]:
    match = re.search(rf"[?&]{name}=([^&]+)", url or "", re.IGNORECASE)
    return match.group(1) if match else None


def _measurements(soup) -> dict[str, str]:
    section = soup.select_one(".style-detail")
    if section is None:
        return {}
    paragraphs = section.select("p.text-small")
    if len(paragraphs) < 2:
        return {}
    values = [cell_text(span) for span in paragraphs[1].find_all("span")]
    if len(values) < 6:
        return {}
    keys = ["eye", "bridge", "temple", "a", "b", "ed"]
    return dict(zip(keys, values[:6]))


def _descriptions(soup) -> dict[str, object]:
    attributes: dict[str, object] = {"gender": None, "material": None, "springHinge": False}
    section = soup.find(id="styleDescriptions")
    if section is None:
        return attributes
    for element in section.select(".text-small"):
        text = cell_text(element)
        if re.search(r"womens|mens|unisex", text, re.IGNORECASE):
            attributes["gender"] = text
        elif re.search(r"acetate|metal|stainless|titanium|plastic", text, re.IGNORECASE):
            attributes["material"] = text
        elif "spring hinge" in text.lower():
            attributes["springHinge"] = True
    return attributes


def extract_fit_type(html: str) -> Optional[str]:
    match = re.search(r"fitTypeLookup\['(\d+)'\]\s*=\s*'([^']+)'", html or "")
    return match.group(2) if match else None


class IdealOpticsClient(BaseEnrichmentClient):
    vendor_code = "ideal_optics"
    vendor_name = "Ideal Optics"
    headers = HTML_HEADERS
    scoring = IDEAL_OPTICS_SCORING

    def search(self, item: LineItem, outcome: EnrichmentOutcome) -> LookupResult:
        model = (item.model or "").strip()
        if not model:
            return LookupResult(found=False, reason="No model name available")
        return self.cached_lookup(f"search {model}", lambda: self.fetch_via_autocomplete(model), outcome)

    def page_lookup(self, item: LineItem, outcome: EnrichmentOutcome) -> LookupResult:
        model = (item.model or "").strip()
        if not model:
            return LookupResult(found=False, reason="No model name available")
        return self.cached_lookup(f"page {model}", lambda: self.fetch_by_collection(model), outcome)

    def autocomplete_url(self, model: str) -> Optional[str]:
        return self._request(
            "GET",
            f"{BASE_URL}/Home/SearchFrames/?q={quote(model)}",
            decode=lambda response: self.parse_suggestions(response.json()),
            headers={"Accept": "application/json, text/javascript, */*; q=0.01",
                     "X-Requested-With": "XMLHttpRequest",
                     "Referer": BASE_URL},
        )

    def parse_suggestions(self, data) -> Optional[str]:
        """Style page URL from the first autocomplete suggestion."""
        suggestions = require_dicts(
            require_dict(data, "autocomplete response").get("suggestions"), "autocomplete suggestion"
        )
        if not suggestions:
            return None
        slugs = require_dict(suggestions[0].get("data") or {}, "suggestion data")
        if not all(slugs.get(key) for key in ("BrandUrl", "CollectionUrl", "StyleUrl")):
            return None
        return f"{BASE_URL}/catalog/{slugs['BrandUrl']}/{slugs['CollectionUrl']}/{slugs['StyleUrl']}"

    def fetch_via_autocomplete(self, model: str) -> LookupResult:
        url = self.autocomplete_url(model)
        if url is None:
            return LookupResult(found=False, reason=f"No autocomplete suggestion for {model}")
        html = self.get_text(url)
        if is_page_not_found(html):
            return LookupResult(found=False, url=url, reason=f"Autocomplete page not found for {model}")
        return self.parse_product_page(html, url, model)

    def fetch_by_collection(self, model: str) -> LookupResult:
        for url in build_product_urls(model):
            try:
                html = self.get_text(url)
            except NotFoundError:
                continue
            if not is_page_not_found(html):
                return self.parse_product_page(html, url, model)
        return LookupResult(found=False, reason=f"No valid page found for model: {model}")

    def parse_product_page(self, html: str, url: str, model: str) -> LookupResult:
        soup = BeautifulSoup(html, "html.parser")
        measurements = _measurements(soup)
        descriptions = _descriptions(soup)
        fit_type = extract_fit_type(html)

        color_names = [
            cell_text(link) for link in soup.select(".text-uppercase.top-margin a.goTo") if cell_text(link)
        ]

        raws = []
        for image in soup.select("#frameDetailOwlCarousel .item img"):
            src = image.get("src") or ""
            upc = image.get("data-upc") or _query_param(src, "upc")
            if upc:
                raws.append({"upc": upc, "sku": _query_param(src, "sku"), "image": src})

        # Colour links line up with carousel images only when the counts agree
        if len(color_names) == len(raws):
            for raw, name in zip(raws, color_names):
                raw["colorName"] = name

        candidates = [
            self.normalize_candidate(
                {**raw, **measurements, **descriptions, "fitType": fit_type, "model": model}
            )
            for raw in raws
        ]
        return LookupResult(
            found=bool(candidates),
            candidates=candidates,
            brand="Ideal Optics",
            model=model,
            url=url,
            reason=None if candidates else "No carousel variants with UPCs",
        )

    def normalize_candidate(self, raw: dict) -> CandidateVariant:
        color_name = text_value(raw.get("colorName"))
        image = text_value(raw.get("image"))
        return CandidateVariant(
            upc=text_value(raw.get("upc")),
            sku=text_value(raw.get("sku")),
            brand="Ideal Optics",
            model=text_value(raw.get("model")),
            color_code=color_name.upper() if color_name else None,
            color_name=color_name,
            eye_size=text_value(raw.get("eye")),
            bridge=text_value(raw.get("bridge")),
            temple=text_value(raw.get("temple")),
            a=text_value(raw.get("a")),
            b=text_value(raw.get("b")),
            ed=text_value(raw.get("ed")),
            material=text_value(raw.get("material")),
            gender=text_value(raw.get("gender")),
            fit=text_value(raw.get("fitType")),
            in_stock=True,  # Stock is not published on style pages
            image_url=f"{BASE_URL}{image}" if image and image.startswith("/") else image,
            extra={"springHinge": raw.get("springHinge") or None},
        )
