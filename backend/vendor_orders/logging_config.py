"""Logging for order pipeline runs.

Every pipeline module logs through a child of the ``vendor_orders`` logger.
Handlers live on that parent only:

- console: progress lines, INFO (DEBUG while a run has config.debug set)
- order_pipeline.log: every record of every run, rotating
- order_pipeline_errors.log: ERROR and above, rotating

Records carry run context through ``extra``; absent fields print as ``-``.

Usage:
    from vendor_orders.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Batch 1/3 (5 items)", extra={'run_id': run_id, 'batch': 1})
"""

import logging
import os
from logging.handlers import RotatingFileHandler

PIPELINE_LOGGER = "vendor_orders"

RUN_LOG_FILE = "order_pipeline.log"
ERROR_LOG_FILE = "order_pipeline_errors.log"

# Log directory from environment or default (backend/logs)
LOG_DIR = os.getenv(
    "LOG_DIR", os.path.join(os.path.dirname(os.path.dirname(__file__)), "logs")
)

CONTEXT_FIELDS = ("run_id", "vendor", "order_number", "batch", "strategy")

CONSOLE_FORMAT = "[%(levelname)s] [%(run_id)s/%(batch)s] %(message)s"
RUN_FORMAT = (
    "%(asctime)s %(levelname)-7s %(name)s "
    "run=%(run_id)s vendor=%(vendor)s order=%(order_number)s batch=%(batch)s | %(message)s"
)
ERROR_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "run=%(run_id)s vendor=%(vendor)s strategy=%(strategy)s | %(message)s"
)

_MAX_BYTES = 10 * 1024 * 1024
_BACKUPS = 30


class StructuredFormatter(logging.Formatter):
    """Formatter that guarantees every run context field exists on the record.

    Context fields (pass via extra={}):
    - run_id: Pipeline run ID
    - vendor: Vendor code (europa, marchon, ...)
    - order_number: Vendor order number
    - batch: Batch number within the run
    - strategy: Enrichment strategy (search, page)
    """

    def format(self, record):
        for name in CONTEXT_FIELDS:
            if getattr(record, name, None) is None:
                setattr(record, name, "-")
        return super().format(record)


def _rotating(filename: str, level: int, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        get_log_file_path(filename), maxBytes=_MAX_BYTES, backupCount=_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter(fmt))
    return handler


def _pipeline_logger() -> logging.Logger:
    """The parent logger, with its three handlers attached on first use."""
    root = logging.getLogger(PIPELINE_LOGGER)
    if root.handlers:
        return root

    os.makedirs(LOG_DIR, exist_ok=True)
    root.setLevel(logging.DEBUG)
    root.propagate = False

    console = logging.StreamHandler()
    console.set_name("console")
    console.setLevel(logging.INFO)
    console.setFormatter(StructuredFormatter(CONSOLE_FORMAT))

    root.addHandler(console)
    root.addHandler(_rotating(RUN_LOG_FILE, logging.DEBUG, RUN_FORMAT))
    root.addHandler(_rotating(ERROR_LOG_FILE, logging.ERROR, ERROR_FORMAT))
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for a pipeline module.

    Names outside the ``vendor_orders`` package are nested under it so every
    caller shares the same handlers.
    """
    root = _pipeline_logger()
    if name == PIPELINE_LOGGER:
        return root
    if not name.startswith(PIPELINE_LOGGER + "."):
        name = f"{PIPELINE_LOGGER}.{name}"
    return logging.getLogger(name)


def set_console_debug(enabled: bool) -> None:
    """Show DEBUG records (per-candidate scoring, cache hits) on the console."""
    for handler in _pipeline_logger().handlers:
        if handler.get_name() == "console":
            handler.setLevel(logging.DEBUG if enabled else logging.INFO)


def console_level() -> int:
    for handler in _pipeline_logger().handlers:
        if handler.get_name() == "console":
            return handler.level
    return logging.NOTSET


def get_log_file_path(filename: str) -> str:
    """Full path of a pipeline log file, e.g. get_log_file_path(RUN_LOG_FILE)."""
    return os.path.join(LOG_DIR, filename)
