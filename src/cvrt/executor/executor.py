"""Single encode attempts and downmix steps.

Each call runs one ffmpeg process and reports the outcome as a value;
deciding whether to retry with another backend is the pipeline's job.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from cvrt.core.subprocess_utils import ProcessRunner, SubprocessRunner
from cvrt.executor.command import build_downmix_command
from cvrt.executor.staging import remove_quietly
from cvrt.hardware.models import BackendKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodeAttempt:
    """Outcome of encoding one file with one backend."""

    backend: BackendKind
    success: bool
    returncode: int | None = None
    error_message: str | None = None
    timed_out: bool = False
    cancelled: bool = False


class EncodeExecutor:
    """Runs ffmpeg for downmix and encode steps.

    Args:
        ffmpeg_path: ffmpeg binary.
        runner: Process runner; defaults to a real subprocess runner.
        timeout: Per-process timeout in seconds, None for no limit.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        runner: ProcessRunner | None = None,
        timeout: float | None = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self._runner = runner if runner is not None else SubprocessRunner()
        self._timeout = timeout

    def downmix(
        self,
        input_path: Path,
        stream_index: int,
        output_path: Path,
        bitrate: str = "192k",
    ) -> bool:
        """Extract one 5.1 stream as a stereo AAC intermediate.

        Returns:
            True if ffmpeg succeeded and produced a non-empty file. On
            failure the partial intermediate is removed.
        """
        cmd = build_downmix_command(
            self.ffmpeg_path, input_path, stream_index, output_path, bitrate
        )
        result = self._runner.run(cmd, timeout=self._timeout)
        if result.ok and _non_empty(output_path):
            logger.debug("Downmixed stream %d to %s", stream_index, output_path.name)
            return True

        logger.warning(
            "Downmix of stream %d failed (exit %d): %s",
            stream_index,
            result.returncode,
            result.stderr_tail(3) or "no output produced",
        )
        remove_quietly(output_path)
        return False

    def encode(
        self, backend: BackendKind, command: Sequence[str], temp_output: Path
    ) -> EncodeAttempt:
        """Run one encode attempt writing to ``temp_output``.

        A non-zero exit, a timeout, a stop request or a missing/empty output
        file is a failure; the partial output is removed in every failure
        case.
        """
        result = self._runner.run(command, timeout=self._timeout)

        if result.cancelled:
            remove_quietly(temp_output)
            return EncodeAttempt(
                backend=backend,
                success=False,
                returncode=result.returncode,
                error_message="Encode cancelled",
                cancelled=True,
            )

        if result.timed_out:
            remove_quietly(temp_output)
            return EncodeAttempt(
                backend=backend,
                success=False,
                returncode=result.returncode,
                error_message=f"Encode timed out after {self._timeout}s",
                timed_out=True,
            )

        if result.returncode != 0:
            remove_quietly(temp_output)
            return EncodeAttempt(
                backend=backend,
                success=False,
                returncode=result.returncode,
                error_message=result.stderr_tail()
                or f"ffmpeg exited with status {result.returncode}",
            )

        if not _non_empty(temp_output):
            remove_quietly(temp_output)
            return EncodeAttempt(
                backend=backend,
                success=False,
                returncode=result.returncode,
                error_message="ffmpeg reported success but produced no output",
            )

        return EncodeAttempt(backend=backend, success=True, returncode=0)


def _non_empty(path: Path) -> bool:
    try:
        return path.stat().st_size > 0
    except OSError:
        return False
