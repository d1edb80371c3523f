"""
Enrichment Client Base

Shared machinery for every vendor enrichment client:
- requests.Session with vendor headers
- Retry loop: linear backoff (attempt x retry_delay), 404 is terminal
- Run cache lookups keyed by the case-folded search term
- Strategy order: catalog search first, derived page lookup second
- Applying the selected variant back onto the line item

Vendor subclasses provide the network strategies, the schema adapter
(normalize_candidate) and the scoring table.
"""

import time
from typing import Any, Callable, Optional

import requests

from config import PipelineConfig, load_pipeline_config
from vendor_orders.cache import EnrichmentCache, InMemoryCache, normalize_key
from vendor_orders.error_tracking import (
    ErrorStage,
    ErrorType,
    NetworkError,
    NotFoundError,
    OrderError,
    classify_exception,
)
from vendor_orders.logging_config import get_logger
from vendor_orders.models import (
    CandidateVariant,
    EnrichmentOutcome,
    LineItem,
    LookupResult,
    MatchResult,
)
from vendor_orders.variant_matcher import ScoringRule, match_variant, score_candidate

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "User-Agent": USER_AGENT,
}

HTML_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "User-Agent": USER_AGENT,
}

STRATEGY_STAGES = {
    "search": ErrorStage.SEARCH,
    "page": ErrorStage.PAGE_LOOKUP,
}


def text_value(value: Any) -> Optional[str]:
    """Catalog scalar as trimmed text; None for missing or blank values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def float_value(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def require_dict(value: Any, what: str) -> dict:
    """Payload node that must be a JSON object; ValueError marks it malformed."""
    if not isinstance(value, dict):
        raise ValueError(f"Unexpected {what}: {type(value).__name__}")
    return value


def require_dicts(value: Any, what: str) -> list[dict]:
    """Payload node that must be a JSON array of objects (None reads as empty)."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"Unexpected {what}: {type(value).__name__}")
    return [require_dict(entry, what) for entry in value]


class BaseEnrichmentClient:
    """
    Base class for vendor enrichment clients.

    Subclasses set vendor_code, headers and scoring, and override search()
    and/or page_lookup(). A strategy returns a LookupResult; it may raise
    NetworkError, which is recorded on the outcome before the next strategy
    is tried.
    """

    vendor_code = ""
    vendor_name = ""
    headers: dict[str, str] = JSON_HEADERS
    scoring: list[ScoringRule] = []
    strategy_order = ("search", "page")

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        cache: Optional[EnrichmentCache] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or load_pipeline_config(self.vendor_code)
        self.cache = cache if cache is not None else InMemoryCache(self.config.cache_max_entries)
        self.session = session or requests.Session()
        self.session.headers.update(self.headers)

    # ========================================================================
    # NETWORK
    # ========================================================================

    def _request(
        self,
        method: str,
        url: str,
        decode: Callable[[requests.Response], Any],
        max_attempts: Optional[int] = None,
        **kwargs,
    ) -> Any:
        """
        Issue one logical request, retrying transient failures.

        decode runs inside the retry loop, so an undecodable body is retried
        like any other transport failure.

        Raises:
            NotFoundError: HTTP 404 (never retried)
            NetworkError: Retries exhausted
        """
        attempts = max_attempts or self.config.max_retries
        last_error: Optional[Exception] = None
        status_code = None

        for attempt in range(1, attempts + 1):
            try:
                response = self.session.request(
                    method, url, timeout=self.config.timeout, **kwargs
                )
                status_code = response.status_code
                if status_code == 404:
                    raise NotFoundError(f"Not found: {url}", url=url)
                response.raise_for_status()
                return decode(response)
            except NotFoundError:
                raise
            except (requests.RequestException, ValueError, KeyError, TypeError) as e:
                last_error = e
                logger.warning(
                    f"{method} {url} failed (attempt {attempt}/{attempts}): {e}",
                    extra={"vendor": self.vendor_code},
                )
                if attempt < attempts:
                    time.sleep(self.config.retry_delay * attempt)

        error_type = classify_exception(last_error) if last_error else ErrorType.NETWORK
        if error_type not in (ErrorType.TIMEOUT, ErrorType.SERVER_ERROR, ErrorType.MALFORMED_PAYLOAD):
            error_type = ErrorType.NETWORK
        raise NetworkError(
            f"Request failed after {attempts} attempts: {last_error}",
            error_type=error_type,
            status_code=status_code,
            url=url,
            attempts=attempts,
        )

    def get_json(self, url: str, **kwargs) -> Any:
        return self._request("GET", url, decode=lambda response: response.json(), **kwargs)

    def post_json(self, url: str, payload: dict, **kwargs) -> Any:
        return self._request(
            "POST", url, decode=lambda response: response.json(), json=payload, **kwargs
        )

    def get_text(self, url: str, **kwargs) -> str:
        return self._request("GET", url, decode=lambda response: response.text, **kwargs)

    # ========================================================================
    # CACHE
    # ========================================================================

    def cached_lookup(
        self,
        key: str,
        fetch: Callable[[], LookupResult],
        outcome: EnrichmentOutcome,
    ) -> LookupResult:
        """
        Serve a lookup from the run cache or fetch and store it.

        Found results are always stored; negative results only when
        cache_negative_results is set. Failures (exceptions) are never cached.
        """
        cache_key = normalize_key(self.vendor_code, key)
        cached = self.cache.get(cache_key)
        if cached is not None:
            outcome.cache_hit = True
            logger.debug(f"Cache HIT: {cache_key}", extra={"vendor": self.vendor_code})
            return cached

        result = fetch()
        if result.search_key is None:
            result.search_key = key
        if result.found or self.config.cache_negative_results:
            self.cache.put(cache_key, result)
        return result

    # ========================================================================
    # STRATEGIES (overridden per vendor)
    # ========================================================================

    def search(self, item: LineItem, outcome: EnrichmentOutcome) -> Optional[LookupResult]:
        """Primary catalog search. None when the vendor has no search endpoint."""
        return None

    def page_lookup(self, item: LineItem, outcome: EnrichmentOutcome) -> Optional[LookupResult]:
        """Fallback product page lookup. None when the vendor has no page strategy."""
        return None

    def normalize_candidate(self, raw: dict) -> CandidateVariant:
        raise NotImplementedError

    # ========================================================================
    # ENRICHMENT FLOW
    # ========================================================================

    def enrich(self, item: LineItem) -> EnrichmentOutcome:
        """
        Enrich one line item in place.

        Never raises for network or lookup failures; they are reported on the
        returned outcome and the item is left unvalidated.
        """
        outcome = EnrichmentOutcome()
        attempted = 0
        last_reason = None

        for name in self.strategy_order:
            strategy = self.search if name == "search" else self.page_lookup
            log_context = {"vendor": self.vendor_code, "strategy": name}
            try:
                lookup = strategy(item, outcome)
            except NotFoundError as e:
                attempted += 1
                last_reason = e.message
                logger.debug(f"{item.brand} {item.model}: {e.message}", extra=log_context)
                continue
            except NetworkError as e:
                attempted += 1
                outcome.error = e.message
                outcome.error_type = e.error_type.value
                OrderError.from_exception(
                    e,
                    STRATEGY_STAGES[name],
                    context={**log_context, "model": item.model},
                ).log()
                continue

            if lookup is None:
                continue
            attempted += 1

            if lookup.found and lookup.candidates:
                outcome.strategy = name
                outcome.found = True
                outcome.fallback_used = attempted > 1
                outcome.lookup = lookup
                outcome.candidates_count = len(lookup.candidates)
                outcome.error = None
                outcome.error_type = None
                outcome.match = match_variant(
                    item, lookup.candidates, self.scoring, self.config.min_confidence
                )
                if self.config.debug:
                    for position, candidate in enumerate(lookup.candidates, start=1):
                        score, _ = score_candidate(item, candidate, self.scoring)
                        logger.debug(
                            f"{item.model} candidate {position}: upc={candidate.upc} "
                            f"color={candidate.color_code} size={candidate.eye_size} score={score}",
                            extra=log_context,
                        )
                logger.debug(
                    f"{item.brand} {item.model}: {len(lookup.candidates)} candidates via {name}, "
                    f"confidence {outcome.match.confidence}",
                    extra=log_context,
                )
                break

            last_reason = lookup.reason or "No catalog data found"
            logger.debug(f"{item.brand} {item.model}: {last_reason}", extra=log_context)

        if not outcome.found and outcome.error is None:
            outcome.error = last_reason or "No catalog data found"
            outcome.error_type = ErrorType.NOT_FOUND.value

        self.apply_match(item, outcome)
        return outcome

    def enriched_data(self, variant: CandidateVariant, lookup: LookupResult) -> dict[str, Any]:
        """Vendor attribute bag attached to the item."""
        data = variant.to_dict()
        for key, value in (
            ("catalogBrand", lookup.brand),
            ("catalogModel", lookup.model),
            ("sourceUrl", lookup.url),
        ):
            if value:
                data.setdefault(key, value)
        return data

    def apply_catalog_identity(
        self, item: LineItem, lookup: LookupResult, match: MatchResult
    ) -> None:
        """Hook for vendors whose catalog brand/model replace the document's."""

    def apply_match(self, item: LineItem, outcome: EnrichmentOutcome) -> None:
        match = outcome.match
        if match is None or match.variant is None:
            item.enriched_data = None
            item.confidence_score = 0
            item.validated = False
            item.validation_reason = outcome.error or "No catalog data found"
            return

        item.confidence_score = match.confidence
        item.validated = match.validated
        item.validation_reason = match.reason

        if not match.validated and not self.config.attach_low_confidence:
            item.enriched_data = None
            item.validation_reason = f"{match.reason} (withheld)"
            return

        item.enriched_data = self.enriched_data(match.variant, outcome.lookup)
        if match.variant.upc and (match.validated or not item.upc):
            item.upc = match.variant.upc
        if match.validated:
            self.apply_catalog_identity(item, outcome.lookup, match)
