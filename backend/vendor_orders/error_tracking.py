"""Structured error tracking with automatic classification.

This module provides the error taxonomy for the order pipeline:
- Exceptions raised by routing, parsing and enrichment clients
- Automatic error classification by stage and type
- Retry decision support
- Integration with structured logging

Failures are scoped to the item or field that produced them. Only
NoLineItemsError and UnsupportedVendorError stop a whole document.

Usage:
    from vendor_orders.error_tracking import OrderError, ErrorStage

    try:
        client.fetch_search(key)
    except Exception as e:
        error = OrderError.from_exception(e, ErrorStage.SEARCH,
                                          context={'vendor': 'safilo'})
        error.log(run_id=run_id)
"""

import json
import traceback
from enum import Enum
from typing import Any

import requests

from vendor_orders.logging_config import get_logger

logger = get_logger(__name__)


class ErrorStage(Enum):
    """Error stage classification for the order pipeline."""

    ROUTE = "route"  # Vendor detection / document routing
    PDF_EXTRACT = "pdf_extract"  # PDF attachment text extraction
    PARSE = "parse"  # Vendor document parsing
    TABLE_LOCATE = "table_locate"  # Structural table lookup
    SEARCH = "search"  # Catalog search request
    PAGE_LOOKUP = "page_lookup"  # Derived product page request
    MATCH = "match"  # Variant cross-reference
    ENRICH = "enrich"  # Anything else inside an item's enrichment


class ErrorType(Enum):
    """Error type classification for retry and reporting."""

    PARSE_GAP = "parse_gap"  # Expected element absent (warning only)
    NETWORK = "network"  # Connection failures (retryable)
    TIMEOUT = "timeout"  # Request timeouts (retryable)
    SERVER_ERROR = "server_error"  # 5xx and unexpected statuses (retryable)
    MALFORMED_PAYLOAD = "malformed_payload"  # Undecodable response (retryable)
    NOT_FOUND = "not_found"  # Definitive negative result (fallback, no retry)
    LOW_CONFIDENCE = "low_confidence"  # Match below threshold (not an error)
    NO_LINE_ITEMS = "no_line_items"  # Document had nothing to enrich (fatal)
    UNSUPPORTED_VENDOR = "unsupported_vendor"  # No parser for sender (fatal)
    UNKNOWN = "unknown"


RETRYABLE_TYPES = {
    ErrorType.NETWORK,
    ErrorType.TIMEOUT,
    ErrorType.SERVER_ERROR,
    ErrorType.MALFORMED_PAYLOAD,
}


class PipelineError(Exception):
    """Base exception for the order pipeline."""

    error_type = ErrorType.UNKNOWN

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dict for result records."""
        return {
            "error": self.error_type.value,
            "message": self.message,
            "retry": self.error_type in RETRYABLE_TYPES,
            **self.context,
        }


class NetworkError(PipelineError):
    """Raised when a network call fails after exhausting its retries."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.NETWORK,
        status_code: int | None = None,
        url: str | None = None,
        attempts: int = 0,
    ):
        self.error_type = error_type
        self.status_code = status_code
        self.url = url
        self.attempts = attempts
        super().__init__(
            message,
            context={"status_code": status_code, "url": url, "attempts": attempts},
        )


class NotFoundError(PipelineError):
    """Raised on a definitive "not found" (HTTP 404). Never retried."""

    error_type = ErrorType.NOT_FOUND

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(message, context={"url": url})


class NoLineItemsError(PipelineError):
    """Raised when a document yields zero parseable line items."""

    error_type = ErrorType.NO_LINE_ITEMS

    def __init__(self, message: str, order: Any = None):
        self.order = order
        context = {}
        if order is not None:
            context = {
                "vendor": getattr(order, "vendor_code", None),
                "order_number": getattr(order, "order_number", None),
                "warnings": list(getattr(order, "warnings", [])),
            }
        super().__init__(message, context=context)


class UnsupportedVendorError(PipelineError):
    """Raised when no parser is registered for a document's sender."""

    error_type = ErrorType.UNSUPPORTED_VENDOR

    def __init__(self, message: str, domain: str | None = None):
        self.domain = domain
        super().__init__(message, context={"domain": domain})


def classify_exception(exception: Exception) -> ErrorType:
    """Map an exception raised during a network call to an ErrorType."""
    if isinstance(exception, PipelineError):
        return exception.error_type

    if isinstance(exception, requests.Timeout):
        return ErrorType.TIMEOUT

    if isinstance(exception, requests.ConnectionError):
        return ErrorType.NETWORK

    if isinstance(exception, requests.HTTPError):
        response = exception.response
        if response is not None and response.status_code == 404:
            return ErrorType.NOT_FOUND
        return ErrorType.SERVER_ERROR

    if isinstance(exception, (json.JSONDecodeError, ValueError, KeyError, TypeError)):
        return ErrorType.MALFORMED_PAYLOAD

    error_str = str(exception).lower()
    if "timeout" in error_str or "timed out" in error_str:
        return ErrorType.TIMEOUT
    if "connection" in error_str or "network" in error_str:
        return ErrorType.NETWORK

    return ErrorType.UNKNOWN


class OrderError:
    """Structured error record with logging.

    Attributes:
        stage: Error stage (where in the pipeline the error occurred)
        error_type: Error type (for retry and reporting decisions)
        message: Human-readable error message
        exception: Original exception (if any)
        context: Additional context (vendor, order_number, search_key, ...)
        is_retryable: Whether the operation is safe to retry
        stack_trace: Full stack trace string
    """

    def __init__(
        self,
        stage: ErrorStage,
        error_type: ErrorType,
        message: str,
        exception: Exception | None = None,
        context: dict[str, Any] | None = None,
        is_retryable: bool = False,
    ):
        self.stage = stage
        self.error_type = error_type
        self.message = message
        self.exception = exception
        self.context = context or {}
        self.is_retryable = is_retryable
        self.stack_trace = None

        if exception:
            self.stack_trace = "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            )

    def log(self, run_id: str | None = None) -> None:
        """Log error through the structured logger.

        Args:
            run_id: Pipeline run ID (optional)
        """
        logger.error(
            f"[{self.stage.value}] {self.message}",
            extra={
                "run_id": run_id,
                "vendor": self.context.get("vendor"),
                "order_number": self.context.get("order_number"),
                "strategy": self.context.get("strategy"),
            },
            exc_info=self.exception,
        )

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "error_type": self.error_type.value,
            "message": self.message,
            "is_retryable": self.is_retryable,
            "context": self.context,
        }

    @classmethod
    def from_exception(
        cls,
        exception: Exception,
        stage: ErrorStage,
        context: dict[str, Any] | None = None,
    ) -> "OrderError":
        """Auto-classify error from exception.

        Args:
            exception: Exception object to classify
            stage: Error stage where exception occurred
            context: Additional context dict

        Returns:
            OrderError instance with auto-classified type and retry flag
        """
        error_type = classify_exception(exception)

        # Outside a network call an unclassified failure is a parse problem
        if error_type == ErrorType.UNKNOWN and stage in (
            ErrorStage.PARSE,
            ErrorStage.TABLE_LOCATE,
            ErrorStage.PDF_EXTRACT,
        ):
            error_type = ErrorType.PARSE_GAP

        message = getattr(exception, "message", None) or str(exception)

        return cls(
            stage=stage,
            error_type=error_type,
            message=message,
            exception=exception,
            context=context,
            is_retryable=error_type in RETRYABLE_TYPES,
        )


def classify_parse_status(order: Any) -> str:
    """Classify parsing status for statistics tracking.

    Args:
        order: ParsedOrder or None if parsing failed

    Returns:
        Status string: 'parsed', 'partial', or 'failed'
    """
    if order is None or not getattr(order, "items", None):
        return "failed"

    if getattr(order, "errors", None) or getattr(order, "warnings", None):
        return "partial"

    return "parsed"
