"""
Order Pipeline Data Models

Dataclasses passed between parsers, enrichment clients, the variant matcher
and the batch orchestrator.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any


@dataclass
class LineItem:
    """One ordered frame, as stated by the vendor document"""

    brand: str
    model: str
    color_code: str = ""
    color_name: str = ""
    color: str = ""  # Raw colour text from the document
    size: str = ""  # Raw size text, e.g. "53-19-142" or "53"
    eye_size: str = ""
    bridge: str = ""
    temple: str = ""
    quantity: int = 1
    upc: str | None = None  # Only when the document carries one
    image_url: str | None = None
    in_stock: bool | None = None
    availability: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)  # Vendor-specific identifiers

    # Filled in by enrichment
    enriched_data: dict[str, Any] | None = None
    confidence_score: int = 0
    validated: bool = False
    validation_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Output record for the persistence collaborator."""
        return {
            "brand": self.brand,
            "model": self.model,
            "colorCode": self.color_code,
            "colorName": self.color_name,
            "color": self.color,
            "size": self.size,
            "eyeSize": self.eye_size,
            "bridge": self.bridge,
            "temple": self.temple,
            "quantity": self.quantity,
            "upc": self.upc,
            "imageUrl": self.image_url,
            "inStock": self.in_stock,
            "availability": self.availability,
            "raw": self.raw,
            "enrichedData": self.enriched_data,
            "confidence_score": self.confidence_score,
            "validated": self.validated,
            "validation_reason": self.validation_reason,
        }


@dataclass
class Address:
    """Buyer or ship-to address block"""

    name: str = ""
    address: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    phone: str = ""

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


@dataclass
class ParsedOrder:
    """Normalized order header plus its ordered line items"""

    vendor: str
    vendor_code: str
    order_number: str = ""
    order_date: str = ""
    rep_name: str = ""
    account_number: str = ""
    customer: Address = field(default_factory=Address)
    ship_to: Address = field(default_factory=Address)
    terms: str = ""
    ship_method: str = ""
    notes: str = ""
    purchase_order: str = ""
    promotions: str = ""
    items: list[LineItem] = field(default_factory=list)
    stated_total_quantity: int | None = None  # "Total Pieces" when printed
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    parse_method: str = ""

    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def add_warning(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "vendor": self.vendor,
            "vendorCode": self.vendor_code,
            "orderNumber": self.order_number,
            "orderDate": self.order_date,
            "repName": self.rep_name,
            "accountNumber": self.account_number,
            "customer": asdict(self.customer),
            "shipTo": asdict(self.ship_to),
            "terms": self.terms,
            "shipMethod": self.ship_method,
            "notes": self.notes,
            "purchaseOrder": self.purchase_order,
            "promotions": self.promotions,
            "items": [item.to_dict() for item in self.items],
            "totalQuantity": self.total_quantity(),
            "totalItems": len(self.items),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "parseMethod": self.parse_method,
        }


@dataclass
class CandidateVariant:
    """One vendor-catalog colour/size record, in canonical form"""

    upc: str | None = None
    sku: str | None = None
    brand: str | None = None
    model: str | None = None
    color_code: str | None = None
    color_name: str | None = None
    eye_size: str | None = None
    bridge: str | None = None
    temple: str | None = None
    a: str | None = None
    b: str | None = None
    ed: str | None = None
    material: str | None = None
    front_material: str | None = None
    temple_material: str | None = None
    shape: str | None = None
    frame_type: str | None = None
    gender: str | None = None
    fit: str | None = None
    in_stock: bool | None = None
    availability: str | None = None
    available_date: str | None = None
    wholesale: float | None = None
    msrp: float | None = None
    image_url: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)  # Vendor-only attributes

    def to_dict(self) -> dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if k != "extra" and v is not None}
        data.update({k: v for k, v in self.extra.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CandidateVariant":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class LookupResult:
    """Outcome of one catalog search or product page lookup"""

    found: bool
    candidates: list[CandidateVariant] = field(default_factory=list)
    brand: str | None = None  # Catalog brand, source of truth once validated
    model: str | None = None
    search_key: str | None = None
    url: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["candidates"] = [asdict(c) for c in self.candidates]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LookupResult":
        return cls(
            found=data["found"],
            candidates=[CandidateVariant.from_dict(c) for c in data.get("candidates", [])],
            brand=data.get("brand"),
            model=data.get("model"),
            search_key=data.get("search_key"),
            url=data.get("url"),
            reason=data.get("reason"),
        )


@dataclass
class MatchResult:
    """Selected candidate with its confidence breakdown"""

    variant: CandidateVariant | None
    confidence: int
    validated: bool
    reason: str
    matches: dict[str, bool] = field(default_factory=dict)  # Attribute -> agreed
    candidate_index: int | None = None


@dataclass
class EnrichmentOutcome:
    """Per-item summary of an enrichment attempt"""

    strategy: str | None = None  # "search", "page" or None when nothing succeeded
    match: MatchResult | None = None
    found: bool = False
    cache_hit: bool = False
    fallback_used: bool = False  # Primary strategy tried and missed
    error: str | None = None
    error_type: str | None = None
    candidates_count: int = 0
    lookup: LookupResult | None = None

    @property
    def validated(self) -> bool:
        return bool(self.match and self.match.validated)

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy,
            "found": self.found,
            "cacheHit": self.cache_hit,
            "fallbackUsed": self.fallback_used,
            "error": self.error,
            "errorType": self.error_type,
            "candidates": self.candidates_count,
            "confidence": self.match.confidence if self.match else 0,
            "validated": self.validated,
            "reason": self.match.reason if self.match else self.error,
        }
