"""Unit tests for structured pipeline logging."""

import logging
import os

import pytest

from vendor_orders.logging_config import (
    LOG_DIR,
    PIPELINE_LOGGER,
    RUN_LOG_FILE,
    StructuredFormatter,
    console_level,
    get_log_file_path,
    get_logger,
    set_console_debug,
)


@pytest.fixture
def restore_console():
    yield
    set_console_debug(False)


def test_get_log_file_path_joins_log_dir():
    assert get_log_file_path(RUN_LOG_FILE) == os.path.join(LOG_DIR, "order_pipeline.log")


def test_handlers_live_on_the_pipeline_logger_only():
    module_logger = get_logger("vendor_orders.tests.handlers")
    parent = logging.getLogger(PIPELINE_LOGGER)

    assert module_logger.handlers == []
    assert module_logger.propagate is True
    assert len(parent.handlers) == 3
    assert parent.propagate is False

    get_logger("vendor_orders.tests.handlers")
    assert len(parent.handlers) == 3


def test_outside_names_are_nested_under_pipeline_logger():
    assert get_logger("tests.logging").name == "vendor_orders.tests.logging"
    assert get_logger(PIPELINE_LOGGER) is logging.getLogger(PIPELINE_LOGGER)


def test_structured_formatter_fills_missing_context():
    formatter = StructuredFormatter("[run:%(run_id)s vendor:%(vendor)s batch:%(batch)s] %(message)s")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)

    assert formatter.format(record) == "[run:- vendor:- batch:-] hello"


def test_context_fields_reach_run_log():
    logger = get_logger("vendor_orders.tests.context")
    logger.info(
        "context check",
        extra={"run_id": "abc123", "vendor": "europa", "order_number": "778812", "batch": 2},
    )

    with open(get_log_file_path(RUN_LOG_FILE), encoding="utf-8") as f:
        content = f.read()

    assert "run=abc123 vendor=europa order=778812 batch=2 | context check" in content


def test_set_console_debug_toggles_console_level(restore_console):
    set_console_debug(True)
    assert console_level() == logging.DEBUG

    set_console_debug(False)
    assert console_level() == logging.INFO
