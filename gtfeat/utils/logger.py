"""Utilities for logging.

Every module obtains the same stdout logger through `get_logger()`. Log records are tagged with the identity of the
process emitting them, which is the Dask worker address when running inside a worker (e.g. when features are computed
in parallel) and `<hostname>-main` otherwise.

Authors: Ayush Baid, John Lambert
"""

import logging
import socket
import sys
from datetime import datetime, timezone
from logging import LoggerAdapter
from typing import Optional

from dask import distributed

LOGGER_NAME = "gtfeat"
LOG_FORMAT = "%(asctime)s [%(worker_id)s] [%(filename)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Set once per process, on the first log call.
_WORKER_ID_CACHE: Optional[str] = None


def _detect_worker_id() -> str:
    """Returns `<hostname>(<port>)` inside a Dask worker, `<hostname>-main` elsewhere."""
    hostname = socket.gethostname()
    try:
        worker = distributed.get_worker()
    except (ImportError, ValueError, AttributeError):
        return f"{hostname}-main"

    port = worker.address.split(":")[-1]
    return f"{hostname}({port})"


def get_worker_id() -> str:
    """Get the cached worker ID for the current process."""
    global _WORKER_ID_CACHE

    if _WORKER_ID_CACHE is None:
        _WORKER_ID_CACHE = _detect_worker_id()

    return _WORKER_ID_CACHE


class WorkerAwareAdapter(LoggerAdapter):
    """LoggerAdapter that injects the worker ID into every LogRecord.

    Detection is lazy: the Dask worker context is not available at import time.
    """

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__(logger, {})

    def process(self, msg, kwargs):
        kwargs.setdefault("extra", {})["worker_id"] = get_worker_id()
        return msg, kwargs


class UTCFormatter(logging.Formatter):
    """Formatter with UTC timestamps."""

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.strftime(datefmt or DATE_FORMAT)


def get_logger() -> LoggerAdapter:
    """Get the package logger, writing to stdout.

    Log format:
        "2025-10-28 00:00:45 [hornet-main] [image_describer_base.py] INFO: message"

    Returns:
        LoggerAdapter: Configured logger adapter instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(UTCFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

        # Silence noisy loggers
        logging.getLogger("PIL").setLevel(logging.ERROR)

    return WorkerAwareAdapter(logger)
