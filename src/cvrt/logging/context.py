"""Worker context for structured logging.

While a file is converted, the worker slot and file identifiers live in a
context variable so every record logged for that file can be tagged,
whichever module emits it.
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import NamedTuple


class WorkerInfo(NamedTuple):
    worker_id: str | None = None
    file_id: str | None = None
    file_path: str | None = None

    @property
    def tag(self) -> str:
        """Compact text prefix: ``[W01:F003] ``, ``[W01] `` or empty."""
        if not self.worker_id:
            return ""
        if self.file_id:
            return f"[W{self.worker_id}:{self.file_id}] "
        return f"[W{self.worker_id}] "


_NO_WORKER = WorkerInfo()
_current: contextvars.ContextVar[WorkerInfo] = contextvars.ContextVar(
    "cvrt_worker", default=_NO_WORKER
)


@contextmanager
def worker_context(
    worker_id: str,
    file_id: str | None = None,
    file_path: Path | str | None = None,
) -> Generator[None, None, None]:
    """Tag log records with worker/file identifiers for the enclosed block.

    Example:
        with worker_context("01", "F003", "/media/show.mkv"):
            logger.info("Encoding")  # rendered as [W01:F003] ...
    """
    info = WorkerInfo(
        worker_id, file_id, str(file_path) if file_path is not None else None
    )
    token = _current.set(info)
    try:
        yield
    finally:
        _current.reset(token)


def get_worker_context() -> WorkerInfo:
    """Return (worker_id, file_id, file_path) for the current context."""
    return _current.get()


class WorkerContextFilter(logging.Filter):
    """Copy the worker context onto each record it sees.

    ``worker_id``, ``file_id`` and ``file_path`` feed the JSON formatter;
    ``worker_tag`` feeds the text format.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        info = _current.get()
        record.worker_id = info.worker_id
        record.file_id = info.file_id
        record.file_path = info.file_path
        record.worker_tag = info.tag
        return True
