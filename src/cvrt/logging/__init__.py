"""Structured logging for cvrt.

Text or JSON output, optional rotating log file, and per-worker context
tags for parallel batch runs.
"""

from cvrt.logging.config import configure_logging
from cvrt.logging.context import (
    WorkerContextFilter,
    get_worker_context,
    worker_context,
)
from cvrt.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "WorkerContextFilter",
    "configure_logging",
    "get_worker_context",
    "worker_context",
]
