"""Backend configuration module"""

from .pipeline_config import (
    VENDOR_DEFAULTS,
    PipelineConfig,
    load_pipeline_config,
)

__all__ = [
    "PipelineConfig",
    "VENDOR_DEFAULTS",
    "load_pipeline_config",
]
