"""Per-file results and thread-safe batch statistics."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from cvrt.hardware.models import BackendKind


class FileStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class FileResult:
    """Outcome of converting one file."""

    source: Path
    status: FileStatus
    message: str | None = None
    output_path: Path | None = None
    backend: BackendKind | None = None
    attempted: tuple[BackendKind, ...] = ()

    @property
    def success(self) -> bool:
        return self.status is FileStatus.SUCCESS

    @classmethod
    def failed(
        cls, source: Path, message: str, attempted: tuple[BackendKind, ...] = ()
    ) -> FileResult:
        return cls(source, FileStatus.FAILED, message=message, attempted=attempted)

    @classmethod
    def skipped(cls, source: Path, message: str) -> FileResult:
        return cls(source, FileStatus.SKIPPED, message=message)

    def to_dict(self) -> dict[str, object]:
        return {
            "source": str(self.source),
            "status": self.status.value,
            "message": self.message,
            "output": str(self.output_path) if self.output_path else None,
            "encoder": self.backend.value if self.backend else None,
            "attempted": [b.value for b in self.attempted],
        }


@dataclass(frozen=True)
class BatchSummary:
    """Aggregate outcome of a batch run."""

    success: int
    failed: int
    skipped: int
    majority_encoder: BackendKind | None
    results: tuple[FileResult, ...] = field(default=())
    interrupted: bool = False

    @property
    def total(self) -> int:
        return self.success + self.failed + self.skipped

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "failed": self.failed,
            "skipped": self.skipped,
            "total": self.total,
            "encoder": self.majority_encoder.value if self.majority_encoder else None,
            "interrupted": self.interrupted,
            "files": [r.to_dict() for r in self.results],
        }


class BatchStats:
    """Mutex-guarded success/failed/skipped counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: Counter[FileStatus] = Counter()
        self._encoders: Counter[BackendKind] = Counter()
        self._results: list[FileResult] = []

    def record(self, result: FileResult) -> None:
        with self._lock:
            self._counts[result.status] += 1
            if result.success and result.backend is not None:
                self._encoders[result.backend] += 1
            self._results.append(result)

    def summary(self, interrupted: bool = False) -> BatchSummary:
        """Snapshot the counters.

        The majority encoder is the backend used by the most successful
        conversions; ties go to the backend that succeeded first.
        """
        with self._lock:
            top = self._encoders.most_common(1)
            return BatchSummary(
                success=self._counts[FileStatus.SUCCESS],
                failed=self._counts[FileStatus.FAILED],
                skipped=self._counts[FileStatus.SKIPPED],
                majority_encoder=top[0][0] if top else None,
                results=tuple(self._results),
                interrupted=interrupted,
            )
