"""FFprobe-based implementation of the MediaProbe protocol."""

import json
from pathlib import Path

from cvrt.core.subprocess_utils import ProcessRunner, SubprocessRunner
from cvrt.domain.models import ProbeResult
from cvrt.introspector.interface import MediaProbeError
from cvrt.introspector.parsers import parse_ffprobe_output

# Prevent hangs on corrupted files
PROBE_TIMEOUT = 60


class FFprobeIntrospector:
    """ffprobe-based implementation of the MediaProbe protocol.

    Args:
        ffprobe_path: ffprobe binary to run.
        runner: Process runner; defaults to a real subprocess runner.
        timeout: Seconds before a probe is abandoned.
    """

    def __init__(
        self,
        ffprobe_path: str | Path = "ffprobe",
        runner: ProcessRunner | None = None,
        timeout: float = PROBE_TIMEOUT,
    ) -> None:
        self._ffprobe_path = str(ffprobe_path)
        self._runner = runner if runner is not None else SubprocessRunner()
        self._timeout = timeout

    def inspect(self, path: Path) -> ProbeResult:
        """Extract stream metadata from a media file.

        Raises:
            MediaProbeError: If the file is missing, ffprobe fails or times
                out, or the output is not valid ffprobe JSON.
        """
        if not path.exists():
            raise MediaProbeError(f"File not found: {path}")

        return parse_ffprobe_output(path, self._run_ffprobe(path))

    def _run_ffprobe(self, path: Path) -> dict:
        result = self._runner.run(
            [
                self._ffprobe_path,
                "-v",
                "error",
                "-print_format",
                "json",
                "-show_streams",
                "-show_format",
                str(path),
            ],
            timeout=self._timeout,
        )
        if result.timed_out:
            raise MediaProbeError(
                f"ffprobe timed out for {path} after {self._timeout}s"
            )
        if result.returncode != 0:
            detail = result.stderr_tail(3) or f"exit status {result.returncode}"
            raise MediaProbeError(f"ffprobe failed for {path}: {detail}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise MediaProbeError(f"Invalid ffprobe output for {path}: {e}") from e

        if not isinstance(data, dict):
            raise MediaProbeError(f"Unexpected ffprobe output for {path}")
        # Validate required keys are present
        for key in ("streams", "format"):
            if key not in data:
                raise MediaProbeError(
                    f"Missing '{key}' in ffprobe output for {path}. "
                    "File may be corrupted or not a valid media file."
                )
        return data
