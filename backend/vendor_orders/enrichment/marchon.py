"""
Marchon Catalog Client

The Marchon catalog answers a POST style lookup with every SKU of the style
(skuDetail). The order email already carries the style (frame parameter),
the colour code (pickColor) and eye/bridge (pickSize), so a single lookup per
style is enough.
"""

from vendor_orders.models import CandidateVariant, EnrichmentOutcome, LineItem, LookupResult, MatchResult
from vendor_orders.variant_matcher import ScoringRule

from .base_client import BaseEnrichmentClient, float_value, require_dict, require_dicts, text_value

# The double slash is part of the published endpoint
API_URL = "https://www.mymarchon.com//ProductCatologWebWeb/Frame/sku"

MARCHON_SCORING = [
    ScoringRule("colorCode", "color_code", "color_code", 40, partial_weight=20),
    ScoringRule("eyeSize", "eye_size", "eye_size", 30, mode="numeric"),
    ScoringRule("bridge", "bridge", "bridge", 20, mode="numeric"),
    ScoringRule("temple", "temple", "temple", 10, mode="numeric"),
]


def style_payload(style: str) -> dict:
    return {
        "style": style,
        "itemType": "FRAME",
        "orderType": "STOCK",
        "salesOrg": "2010",
        "distChannel": "10",
        "userCredential": {"salesOrg": "2010", "language": "en_US", "countryCode": "US"},
    }


class MarchonClient(BaseEnrichmentClient):
    vendor_code = "marchon"
    vendor_name = "Marchon"
    scoring = MARCHON_SCORING
    strategy_order = ("search",)

    def search(self, item: LineItem, outcome: EnrichmentOutcome) -> LookupResult:
        style = (item.raw.get("frame") or item.model or "").strip()
        if not style:
            return LookupResult(found=False, reason="No model name available")
        return self.cached_lookup(style, lambda: self.fetch_style(style), outcome)

    def fetch_style(self, style: str) -> LookupResult:
        return self._request(
            "POST",
            API_URL,
            decode=lambda response: self.parse_style(response.json(), style),
            json=style_payload(style),
        )

    def parse_style(self, data: dict, style: str) -> LookupResult:
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected Marchon response type: {type(data).__name__}")
        status = require_dict(data.get("serviceStatus") or {}, "service status")
        if status.get("resultCode") != 0:
            return LookupResult(
                found=False, search_key=style, reason=status.get("message") or "API returned error"
            )

        skus = require_dicts(data.get("skuDetail"), "SKU detail")
        if not skus:
            return LookupResult(found=False, search_key=style, reason="No SKU details returned")

        first = skus[0]
        return LookupResult(
            found=True,
            candidates=[self.normalize_candidate(sku) for sku in skus],
            brand=text_value(first.get("marketingGroupDescription")),
            model=text_value(first.get("style")),
            search_key=style,
        )

    def normalize_candidate(self, raw: dict) -> CandidateVariant:
        stock_status = text_value(raw.get("stockStatus"))
        return CandidateVariant(
            upc=text_value(raw.get("upcNumber")),
            sku=text_value(raw.get("style")),
            brand=text_value(raw.get("marketingGroupDescription")),
            model=text_value(raw.get("styleName")),
            color_code=text_value(raw.get("color")),
            color_name=text_value(raw.get("colorDescription")),
            eye_size=text_value(raw.get("SSA")),
            bridge=text_value(raw.get("SSDBL")),
            temple=text_value(raw.get("templeLength")),
            a=text_value(raw.get("SSA")),
            b=text_value(raw.get("SSB")),
            ed=text_value(raw.get("SSED")),
            material=text_value(raw.get("planMaterial")),
            gender=text_value(raw.get("gender")),
            fit=text_value(raw.get("fit")),
            in_stock=stock_status == "Available",
            availability=stock_status,
            available_date=text_value(raw.get("backOrderDate")),
            wholesale=float_value(raw.get("retail")),
            msrp=float_value(raw.get("msrp")),
            image_url=text_value(raw.get("colorImageURL")),
            extra={
                "rimType": text_value(raw.get("rimType")),
                "circumference": text_value(raw.get("SSCIRC")),
                "familyColorCode": text_value(raw.get("familyColorCode")),
                "familyColorDesc": text_value(raw.get("familyColorDesc")),
                "marketingGroupCode": text_value(raw.get("marketingGroupCode")),
                "caseName": text_value(raw.get("caseName")),
                "styleImageUrl": text_value(raw.get("styleDefImageURL")),
            },
        )

    def apply_catalog_identity(
        self, item: LineItem, lookup: LookupResult, match: MatchResult
    ) -> None:
        # Validated catalog marketing group is the source of truth for brand
        if lookup.brand:
            item.brand = lookup.brand
