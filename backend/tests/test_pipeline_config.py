"""Unit tests for pipeline configuration loading and validation."""

import pytest

from config import VENDOR_DEFAULTS, PipelineConfig, load_pipeline_config


def test_defaults(clean_pipeline_env):
    config = load_pipeline_config()

    assert config.timeout == 10
    assert config.max_retries == 3
    assert config.retry_delay == 1.0
    assert config.batch_size == 5
    assert config.batch_pause == 0.5
    assert config.min_confidence == 50
    assert config.debug is False
    assert config.cache_negative_results is False
    assert config.cache_max_entries is None
    assert config.attach_low_confidence is True


def test_environment_overrides(clean_pipeline_env):
    clean_pipeline_env.setenv("ORDER_PIPELINE_TIMEOUT", "15")
    clean_pipeline_env.setenv("ORDER_PIPELINE_MAX_RETRIES", "5")
    clean_pipeline_env.setenv("ORDER_PIPELINE_MIN_CONFIDENCE", "70")
    clean_pipeline_env.setenv("ORDER_PIPELINE_DEBUG", "true")
    clean_pipeline_env.setenv("ORDER_PIPELINE_CACHE_MAX_ENTRIES", "100")

    config = load_pipeline_config()

    assert config.timeout == 15.0
    assert config.max_retries == 5
    assert config.min_confidence == 70
    assert config.debug is True
    assert config.cache_max_entries == 100


def test_vendor_defaults_apply_when_env_is_silent(clean_pipeline_env):
    config = load_pipeline_config("europa")

    assert config.batch_size == VENDOR_DEFAULTS["europa"]["batch_size"]
    assert config.batch_pause == VENDOR_DEFAULTS["europa"]["batch_pause"]


def test_environment_beats_vendor_defaults(clean_pipeline_env):
    clean_pipeline_env.setenv("ORDER_PIPELINE_BATCH_SIZE", "8")

    assert load_pipeline_config("europa").batch_size == 8


def test_vendor_without_overrides_uses_global_defaults(clean_pipeline_env):
    assert load_pipeline_config("marchon") == PipelineConfig()
    assert load_pipeline_config(None) == PipelineConfig()


def test_invalid_environment_value(clean_pipeline_env):
    clean_pipeline_env.setenv("ORDER_PIPELINE_MAX_RETRIES", "many")

    with pytest.raises(ValueError, match="ORDER_PIPELINE_MAX_RETRIES"):
        load_pipeline_config()


@pytest.mark.parametrize(
    "overrides",
    [
        {"timeout": 0},
        {"max_retries": 0},
        {"retry_delay": -1},
        {"batch_size": 0},
        {"batch_pause": -0.5},
        {"min_confidence": 101},
        {"cache_max_entries": 0},
    ],
)
def test_validation_rejects_out_of_range_values(overrides):
    with pytest.raises(ValueError):
        PipelineConfig(**overrides)
