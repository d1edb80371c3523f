"""
Safilo Catalog Client

Safilo and L'amy America run the same catalog API: a POST of a filter body
whose "search" field is free text. The response is a list of styles; each
style's colorGroup[].sizes[] are the sellable variants.

Safilo searches by model with a few brand/model spellings. L'amy America
searches by the UPC embedded in the order email's image URLs.
"""

from typing import Optional

from vendor_orders.models import CandidateVariant, EnrichmentOutcome, LineItem, LookupResult, MatchResult
from vendor_orders.variant_matcher import ScoringRule

from .base_client import BaseEnrichmentClient, float_value, require_dict, require_dicts, text_value

SAFILO_API_URL = "https://www.mysafilo.com/US/api/CatalogAPI/filter"
LAMY_API_URL = "https://www.lamyamerica.com/US/api/CatalogAPI/filter"

SAFILO_SCORING = [
    ScoringRule("brand", "brand", "brand", 20, partial_weight=20),
    ScoringRule("model", "model", "model", 25, partial_weight=25),
    ScoringRule("colorCode", "color_code", "color_code", 20, partial_weight=20),
    ScoringRule("eyeSize", "eye_size", "eye_size", 10, mode="numeric"),
    ScoringRule("bridge", "bridge", "bridge", 10, mode="numeric"),
    ScoringRule("temple", "temple", "temple", 10, mode="numeric"),
]

LAMY_SCORING = [
    ScoringRule("upc", "upc", "upc", 50),
    ScoringRule("colorCode", "color_code", "color_code", 20, partial_weight=20),
    ScoringRule("eyeSize", "eye_size", "eye_size", 10, mode="numeric"),
    ScoringRule("bridge", "bridge", "bridge", 10, mode="numeric"),
    ScoringRule("temple", "temple", "temple", 10, mode="numeric"),
]

# Model prefixes the catalog indexes under the full collection name
COLLECTION_PREFIXES = {
    "CH ": "CHESTERFIELD",
    "KS ": "KATE SPADE",
    "MIS ": "MISSONI",
}


def filter_body(search: str) -> dict:
    """Catalog filter request with every facet left open."""
    return {
        "Collections": [],
        "ColorFamily": [],
        "Shapes": [],
        "FrameTypes": [],
        "Genders": [],
        "FrameMaterials": [],
        "FrontMaterials": [],
        "HingeTypes": [],
        "RimTypes": [],
        "TempleMaterials": [],
        "LensMaterials": [],
        "FITTING": [],
        "COUNTRYOFORIGIN": [],
        "NewStyles": False,
        "BestSellers": False,
        "RxAvailable": False,
        "InStock": False,
        "Readers": False,
        "ASizes": {"min": -1, "max": -1},
        "BSizes": {"min": -1, "max": -1},
        "EDSizes": {"min": -1, "max": -1},
        "DBLSizes": {"min": -1, "max": -1},
        "search": search,
    }


def search_variations(item: LineItem) -> list[str]:
    """
    Search terms in priority order, without duplicates.

    'CH 1006', brand 'CHESTERFIELD' ->
    ['CH 1006', 'CHESTERFIELD CH 1006', 'CHESTERFIELD 1006']
    """
    model = item.model.strip()
    brand = (item.brand or "").strip()
    first_brand_word = brand.split(" ")[0] if brand else ""
    terms = [model, f"{brand} {model}".strip()]

    if first_brand_word and not model.startswith(first_brand_word):
        terms.append(f"{first_brand_word} {model}")

    for prefix, collection in COLLECTION_PREFIXES.items():
        if model.startswith(prefix):
            terms.append(f"{collection} {model}")
            terms.append(f"{collection} {model[len(prefix):]}")

    unique = []
    for term in terms:
        if term and term not in unique:
            unique.append(term)
    return unique


def _additional(size: dict, name: str) -> Optional[str]:
    for entry in require_dicts(size.get("additionalData"), "additional data"):
        if entry.get("name") == name:
            return text_value(entry.get("value"))
    return None


class SafiloClient(BaseEnrichmentClient):
    """Safilo catalog search by model name."""

    vendor_code = "safilo"
    vendor_name = "Safilo"
    api_url = SAFILO_API_URL
    scoring = SAFILO_SCORING
    strategy_order = ("search",)

    def search_terms(self, item: LineItem) -> list[str]:
        return search_variations(item)

    def search(self, item: LineItem, outcome: EnrichmentOutcome) -> LookupResult:
        terms = self.search_terms(item)
        result = LookupResult(found=False, reason="No search terms for item")
        for term in terms:
            result = self.cached_lookup(term, lambda term=term: self.fetch_catalog(term), outcome)
            if result.found:
                return result
        if terms:
            result.reason = f"No API data found ({len(terms)} search attempts)"
        return result

    def fetch_catalog(self, term: str) -> LookupResult:
        return self._request(
            "POST",
            self.api_url,
            decode=lambda response: self.parse_catalog(response.json(), term),
            json=filter_body(term),
        )

    def parse_catalog(self, data, term: str) -> LookupResult:
        if data is not None and not isinstance(data, list):
            raise ValueError(f"Unexpected catalog response type: {type(data).__name__}")
        if not data:
            return LookupResult(found=False, search_key=term, reason="No results returned")

        product = require_dict(data[0], "catalog product")
        color_groups = require_dicts(product.get("colorGroup"), "colour group")
        if not color_groups:
            return LookupResult(found=False, search_key=term, reason="No color variants found")

        brand = text_value(product.get("collectionName"))
        model = text_value(product.get("styleCode"))
        candidates = []
        for group in color_groups:
            for size in require_dicts(group.get("sizes"), "colour size"):
                raw = {
                    **size,
                    "color": group.get("color"),
                    "colorName": group.get("colorName"),
                    "collectionName": brand,
                    "styleCode": model,
                }
                candidates.append(self.normalize_candidate(raw))

        return LookupResult(
            found=bool(candidates),
            candidates=candidates,
            brand=brand,
            model=model,
            search_key=term,
            reason=None if candidates else "No sizes listed for style",
        )

    def normalize_candidate(self, raw: dict) -> CandidateVariant:
        return CandidateVariant(
            upc=text_value(raw.get("upc")),
            sku=text_value(raw.get("sku")),
            brand=raw.get("collectionName"),
            model=raw.get("styleCode"),
            color_code=text_value(raw.get("color")),
            color_name=text_value(raw.get("colorName")),
            eye_size=text_value(raw.get("eyeSize") or raw.get("a")),
            bridge=text_value(raw.get("bridge") or raw.get("dbl")),
            temple=text_value(raw.get("temple")),
            a=text_value(raw.get("a")),
            b=text_value(raw.get("b")),
            ed=text_value(raw.get("ed")),
            material=text_value(raw.get("material")),
            front_material=text_value(raw.get("frontMaterial")),
            temple_material=text_value(raw.get("templeMaterial")),
            shape=text_value(raw.get("shape")),
            frame_type=text_value(raw.get("frameType")),
            gender=text_value(raw.get("gender")),
            fit=_additional(raw, "FITTING"),
            in_stock=bool(raw.get("isInStock", False)),
            availability=text_value(raw.get("availableStatus") or raw.get("availability")),
            available_date=text_value(raw.get("availableDate")),
            wholesale=float_value(raw.get("wholesale")) or float_value(raw.get("price")),
            msrp=float_value(raw.get("msrp")),
            extra={
                "ean": text_value(raw.get("ean") or raw.get("frameId")),
                "size": text_value(raw.get("size")),
                "alternateSize": text_value(raw.get("alternateFrameSize")),
                "countryOfOrigin": _additional(raw, "COUNTRY OF ORIGIN"),
            },
        )


class LamyAmericaClient(SafiloClient):
    """
    L'amy America catalog search by UPC.

    Items without a UPC fall back to the model spellings Safilo uses.
    """

    vendor_code = "lamyamerica"
    vendor_name = "L'amy America"
    api_url = LAMY_API_URL
    scoring = LAMY_SCORING

    def search_terms(self, item: LineItem) -> list[str]:
        if item.upc:
            return [item.upc]
        return search_variations(item)

    def apply_catalog_identity(
        self, item: LineItem, lookup: LookupResult, match: MatchResult
    ) -> None:
        item.brand = lookup.brand or item.brand
        item.model = lookup.model or item.model
