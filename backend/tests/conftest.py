"""Core test fixtures for the order pipeline tests.

Provides reusable fixtures for fast pipeline configuration, HTTP mocking,
and loading vendor email, PDF text and product page fixtures.

Log files are written to a temporary directory: LOG_DIR must be set BEFORE
any vendor_orders module is imported.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import pytest
import responses
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# CRITICAL: Set log directory BEFORE importing pipeline modules
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="order_pipeline_logs_")

from config import PipelineConfig  # noqa: E402
from vendor_orders.cache import InMemoryCache  # noqa: E402
from vendor_orders.models import LineItem  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture
def fast_config() -> PipelineConfig:
    """Pipeline options with every delay removed.

    Retries are kept at 3 so retry behaviour stays observable.
    """
    return PipelineConfig(
        timeout=5,
        max_retries=3,
        retry_delay=0,
        batch_size=2,
        batch_pause=0,
    )


@pytest.fixture
def run_cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def clean_pipeline_env(monkeypatch):
    """Remove ORDER_PIPELINE_* variables so defaults are observable."""
    for name in list(os.environ):
        if name.startswith("ORDER_PIPELINE_"):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ============================================================================
# API MOCKING FIXTURES
# ============================================================================


@pytest.fixture
def mock_responses():
    """Enable HTTP request mocking.

    Provides a responses.RequestsMock context manager that intercepts
    all HTTP requests made with the requests library. Registered responses
    that a test never triggers are allowed (fallback URLs are often unused).

    Yields:
        RequestsMock: HTTP request mocking context manager

    Example:
        def test_lookup(mock_responses):
            mock_responses.add(
                responses.GET,
                'https://europaeye.com/products/MR104153-18',
                body=load_page_fixture('europa_product.html'),
                status=200
            )
    """
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


# ============================================================================
# LINE ITEM FACTORY
# ============================================================================


@pytest.fixture
def make_item():
    """Factory for LineItems with sensible defaults."""

    def _make(**overrides) -> LineItem:
        values = {"brand": "Test Brand", "model": "TB-100"}
        values.update(overrides)
        return LineItem(**values)

    return _make


# ============================================================================
# FIXTURE LOADERS
# ============================================================================


def _read(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(f"Fixture not found: {path}")

    with open(path, encoding="utf-8") as f:
        return f.read()


def load_email_fixture(fixture_name: str) -> str:
    """Load email HTML fixture from sample_emails directory.

    Args:
        fixture_name: Name of email fixture file (e.g., 'europa_receipt.html')

    Returns:
        str: HTML content of email fixture
    """
    return _read(FIXTURES_DIR / "sample_emails" / fixture_name)


def load_pdf_text_fixture(fixture_name: str) -> str:
    """Load text previously extracted from a vendor PDF attachment."""
    return _read(FIXTURES_DIR / "pdf_text" / fixture_name)


def load_page_fixture(fixture_name: str) -> str:
    """Load a vendor product page (HTML) fixture."""
    return _read(FIXTURES_DIR / "vendor_pages" / fixture_name)


def load_json_fixture(fixture_name: str) -> Any:
    """Load a vendor catalog API response fixture.

    Example:
        data = load_json_fixture('marchon_sku.json')
        assert data['serviceStatus']['resultCode'] == 0
    """
    return json.loads(_read(FIXTURES_DIR / "vendor_pages" / fixture_name))
