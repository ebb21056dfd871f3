"""Temporary storage for in-progress encodes.

A RAM-backed filesystem (``/dev/shm``) makes the encode's writes cheap, but
it is shared by every file in the batch and easily exhausted. Each file
reserves its input size there before use; when the reservation does not fit,
the file is staged on disk instead.
"""

from __future__ import annotations

import itertools
import logging
import os
import shutil
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_task_counter = itertools.count(1)


def next_task_token() -> str:
    """Process-unique token for temp file names: ``<pid>-<counter>``."""
    return f"{os.getpid()}-{next(_task_counter)}"


class StagingArea:
    """Chooses where temp outputs live and tracks RAM disk reservations.

    Args:
        ram_disk: RAM-backed directory, or None to never use one.
        temp_directory: Disk location for temp files; None means "next to
            the final output".
        use_ram_disk: Master switch for the RAM disk.
        disk_usage: ``shutil.disk_usage`` compatible callable.
    """

    def __init__(
        self,
        ram_disk: Path | None = Path("/dev/shm"),
        temp_directory: Path | None = None,
        use_ram_disk: bool = True,
        disk_usage: Callable[[Path], Any] = shutil.disk_usage,
    ) -> None:
        self._ram_disk = ram_disk if use_ram_disk else None
        self._temp_directory = temp_directory
        self._disk_usage = disk_usage
        self._lock = threading.Lock()
        self._reserved = 0

    @property
    def reserved_bytes(self) -> int:
        with self._lock:
            return self._reserved

    def _try_reserve(self, size_bytes: int) -> bool:
        if self._ram_disk is None or not self._ram_disk.is_dir():
            return False
        with self._lock:
            try:
                free = self._disk_usage(self._ram_disk).free
            except OSError as e:
                logger.debug("Cannot stat RAM disk %s: %s", self._ram_disk, e)
                return False
            if free - self._reserved <= size_bytes:
                logger.debug(
                    "RAM disk too small: free=%d reserved=%d needed=%d",
                    free,
                    self._reserved,
                    size_bytes,
                )
                return False
            self._reserved += size_bytes
            return True

    def _release(self, size_bytes: int) -> None:
        with self._lock:
            self._reserved = max(0, self._reserved - size_bytes)

    @contextmanager
    def reserve(self, size_bytes: int, output_dir: Path) -> Iterator[Path]:
        """Yield the directory to stage one file's temp outputs in.

        The RAM disk is chosen only when its free space, minus outstanding
        reservations, exceeds ``size_bytes``. The reservation is released
        when the block exits.
        """
        ram_disk = self._ram_disk
        if ram_disk is not None and self._try_reserve(size_bytes):
            logger.debug("Staging in RAM disk %s", ram_disk)
            try:
                yield ram_disk
            finally:
                self._release(size_bytes)
            return

        directory = self._temp_directory or output_dir
        logger.debug("Staging on disk in %s", directory)
        yield directory


def remove_quietly(*paths: Path | None) -> None:
    """Delete temp artifacts, logging (not raising) on failure."""
    for path in paths:
        if path is None:
            continue
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove temp file %s: %s", path, e)
