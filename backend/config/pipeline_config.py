"""
Order Pipeline Configuration Management
Handles environment variables, validation, and per-vendor client options
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load from .env in the backend directory (process env vars take precedence)
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path, override=False)


# Per-vendor overrides applied on top of the global defaults.
# Europa's product site throttles aggressively; Modern Optical pages are heavy.
VENDOR_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "europa": {"batch_size": 3, "batch_pause": 1.0},
    "modern_optical": {"batch_pause": 1.0},
    "ideal_optics": {"timeout": 15},
    "lamyamerica": {"batch_pause": 0.5},
}


@dataclass
class PipelineConfig:
    """Options shared by every enrichment client and the batch orchestrator"""
    timeout: float = 10  # Per network call, seconds
    max_retries: int = 3
    retry_delay: float = 1.0  # Base delay, multiplied by the attempt number
    batch_size: int = 5
    batch_pause: float = 0.5  # Pause between batches, seconds
    min_confidence: int = 50
    debug: bool = False
    cache_negative_results: bool = False
    cache_max_entries: Optional[int] = None  # None = unbounded for the run
    attach_low_confidence: bool = True  # Attach enriched data when validated=False

    def __post_init__(self):
        """Validate configuration after initialization"""
        self.validate()

    def validate(self):
        """Validate pipeline configuration"""
        if self.timeout <= 0:
            raise ValueError("ORDER_PIPELINE_TIMEOUT must be greater than 0")

        if self.max_retries < 1:
            raise ValueError("ORDER_PIPELINE_MAX_RETRIES must be at least 1")

        if self.retry_delay < 0:
            raise ValueError("ORDER_PIPELINE_RETRY_DELAY must not be negative")

        if self.batch_size <= 0:
            raise ValueError("ORDER_PIPELINE_BATCH_SIZE must be greater than 0")

        if self.batch_pause < 0:
            raise ValueError("ORDER_PIPELINE_BATCH_PAUSE must not be negative")

        if not 0 <= self.min_confidence <= 100:
            raise ValueError(
                f"ORDER_PIPELINE_MIN_CONFIDENCE must be between 0 and 100: {self.min_confidence}"
            )

        if self.cache_max_entries is not None and self.cache_max_entries <= 0:
            raise ValueError("ORDER_PIPELINE_CACHE_MAX_ENTRIES must be greater than 0")


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() in ("true", "1", "yes")


def load_pipeline_config(vendor_code: Optional[str] = None) -> PipelineConfig:
    """
    Load pipeline configuration from environment variables.

    Environment Variables:
    - ORDER_PIPELINE_TIMEOUT: Per-request timeout in seconds (default: 10)
    - ORDER_PIPELINE_MAX_RETRIES: Attempts per network call (default: 3)
    - ORDER_PIPELINE_RETRY_DELAY: Base retry delay in seconds (default: 1.0)
    - ORDER_PIPELINE_BATCH_SIZE: Items enriched concurrently (default: 5)
    - ORDER_PIPELINE_BATCH_PAUSE: Pause between batches in seconds (default: 0.5)
    - ORDER_PIPELINE_MIN_CONFIDENCE: Validation threshold (default: 50)
    - ORDER_PIPELINE_DEBUG: Debug mode (default: false)
    - ORDER_PIPELINE_CACHE_NEGATIVE: Cache failed lookups for the run (default: false)
    - ORDER_PIPELINE_CACHE_MAX_ENTRIES: LRU cap for the run cache (optional)
    - ORDER_PIPELINE_ATTACH_LOW_CONFIDENCE: Attach unvalidated matches (default: true)

    Args:
        vendor_code: Apply this vendor's defaults when the env does not override them

    Returns:
        PipelineConfig instance

    Raises:
        ValueError: If a variable is present but invalid
    """
    overrides = VENDOR_DEFAULTS.get(vendor_code or "", {})
    defaults = PipelineConfig.__dataclass_fields__

    def setting(field: str, env_name: str, cast):
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            try:
                return cast(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {env_name}: {raw!r}")
        if field in overrides:
            return overrides[field]
        return defaults[field].default

    max_entries = os.getenv("ORDER_PIPELINE_CACHE_MAX_ENTRIES")

    return PipelineConfig(
        timeout=setting("timeout", "ORDER_PIPELINE_TIMEOUT", float),
        max_retries=setting("max_retries", "ORDER_PIPELINE_MAX_RETRIES", int),
        retry_delay=setting("retry_delay", "ORDER_PIPELINE_RETRY_DELAY", float),
        batch_size=setting("batch_size", "ORDER_PIPELINE_BATCH_SIZE", int),
        batch_pause=setting("batch_pause", "ORDER_PIPELINE_BATCH_PAUSE", float),
        min_confidence=setting("min_confidence", "ORDER_PIPELINE_MIN_CONFIDENCE", int),
        debug=_env_bool("ORDER_PIPELINE_DEBUG", False),
        cache_negative_results=_env_bool("ORDER_PIPELINE_CACHE_NEGATIVE", False),
        cache_max_entries=int(max_entries) if max_entries else None,
        attach_low_confidence=_env_bool("ORDER_PIPELINE_ATTACH_LOW_CONFIDENCE", True),
    )
