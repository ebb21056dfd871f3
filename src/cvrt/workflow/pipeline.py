"""Per-file conversion pipeline.

Sequences probe → analysis → routing → downmix → encode → finalize for one
file and owns the retry decision: a failed attempt with the primary backend
is retried exactly once with the fallback backend (SOFTWARE), reusing any
downmixed audio. Every outcome, including unexpected errors, is returned as
a FileResult so one bad file never stops the batch.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from cvrt.config.models import CvrtConfig, carries_bitmap_subtitles
from cvrt.core.codecs import video_codec_matches
from cvrt.domain.models import MediaFileAnalysis
from cvrt.executor.command import build_encode_command
from cvrt.executor.encoder_args import UnsupportedEncodeError, build_encoder_args
from cvrt.executor.estimate import estimate_encoding_time, format_duration
from cvrt.executor.executor import EncodeAttempt, EncodeExecutor
from cvrt.executor.staging import StagingArea, next_task_token, remove_quietly
from cvrt.hardware.models import BackendKind, HardwareProfile
from cvrt.hardware.selection import EncoderChoice
from cvrt.introspector.analysis import analyze
from cvrt.introspector.interface import MediaProbe, MediaProbeError
from cvrt.routing.router import AudioMode, EncodePlan, route_streams
from cvrt.workflow.discovery import CONVERTED_SUFFIX
from cvrt.workflow.results import FileResult, FileStatus

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".cvrt-temp-"
AUDIO_PREFIX = ".cvrt-audio-"

_MIB = 1024 * 1024


def output_path_for(source: Path, output_format: str, replace: bool) -> Path:
    """Final location for a converted file.

    ``movie.mkv`` becomes ``movie-converted.mkv``, or ``movie.<format>`` when
    replacing the original.
    """
    if replace:
        return source.with_suffix(f".{output_format}")
    return source.with_name(f"{source.stem}{CONVERTED_SUFFIX}.{output_format}")


class ConversionPipeline:
    """Converts single files using a fixed encoder choice.

    Args:
        config: Effective configuration.
        profile: Hardware profile detected once for the run.
        choice: Primary/fallback backends for every file.
        probe: Media probe collaborator.
        executor: Runs ffmpeg downmix and encode steps.
        staging: Temp storage chooser shared by all files.
        replace: Replace originals instead of writing ``-converted`` files.
        disk_usage: ``shutil.disk_usage`` compatible callable for the
            free-space check.
    """

    def __init__(
        self,
        config: CvrtConfig,
        profile: HardwareProfile,
        choice: EncoderChoice,
        probe: MediaProbe,
        executor: EncodeExecutor,
        staging: StagingArea,
        replace: bool = False,
        disk_usage: Callable[[Path], Any] = shutil.disk_usage,
    ) -> None:
        self.config = config
        self.profile = profile
        self.choice = choice
        self._probe = probe
        self._executor = executor
        self._staging = staging
        self._replace = replace
        self._disk_usage = disk_usage

    def process_file(self, source: Path) -> FileResult:
        """Convert one file, converting any unexpected error into a failure."""
        try:
            result = self._process(source)
        except Exception as e:
            logger.exception("Unexpected error converting %s", source)
            result = FileResult.failed(source, f"Unexpected error: {e}")

        self._log_outcome(result)
        return result

    def _process(self, source: Path) -> FileResult:
        shortage = self._free_space_shortage(source.parent)
        if shortage:
            return FileResult.failed(source, shortage)

        try:
            probe_result = self._probe.inspect(source)
            analysis = analyze(
                probe_result,
                self.config.analysis.medium_pixel_threshold,
                self.config.analysis.high_pixel_threshold,
            )
        except MediaProbeError as e:
            return FileResult.failed(source, f"Probe failed: {e}")

        skip_reason = self._skip_reason(analysis)
        if skip_reason:
            return FileResult.skipped(source, skip_reason)

        encoding = self.config.encoding
        plan = route_streams(
            analysis,
            keep_bitmap_subtitles=carries_bitmap_subtitles(encoding.output_format),
        )
        if plan.mode is AudioMode.NONE and self.config.processing.skip_without_audio:
            return FileResult.skipped(source, "No audio streams found")

        final_path = output_path_for(source, encoding.output_format, self._replace)
        conflict = self._output_conflict(source, final_path)
        if conflict:
            return FileResult.failed(source, conflict)
        token = next_task_token()

        with self._staging.reserve(analysis.size_bytes, final_path.parent) as stage:
            temp_output = stage / f"{TEMP_PREFIX}{token}-{final_path.name}"
            intermediates: list[Path] = []
            try:
                downmixed: list[Path] = []
                if plan.mode is AudioMode.DOWNMIX:
                    for index in plan.downmix_indices:
                        target = stage / f"{AUDIO_PREFIX}{token}-{index}.m4a"
                        intermediates.append(target)
                        if self._executor.downmix(
                            source, index, target, encoding.stereo_bitrate
                        ):
                            downmixed.append(target)
                    if not downmixed:
                        return FileResult.failed(source, "Audio downmix failed")

                attempts = self._encode_with_fallback(
                    source, analysis, plan, downmixed, temp_output
                )
                attempted = tuple(a.backend for a in attempts)
                last = attempts[-1]
                if last.cancelled:
                    return FileResult.failed(source, "Cancelled", attempted=attempted)
                if not last.success:
                    return FileResult.failed(
                        source,
                        f"Encode failed: {last.error_message}",
                        attempted=attempted,
                    )
                return self._finalize(source, temp_output, final_path, last, attempted)
            finally:
                remove_quietly(*intermediates)
                remove_quietly(temp_output)

    def _free_space_shortage(self, directory: Path) -> str | None:
        """Failure message when ``directory`` is below the free-space floor."""
        required_mb = self.config.processing.min_free_space_mb
        if not required_mb:
            return None
        try:
            free_mb = self._disk_usage(directory).free // _MIB
        except OSError as e:
            logger.warning("Cannot check free space in %s: %s", directory, e)
            return None
        if free_mb < required_mb:
            return (
                f"Insufficient disk space: {free_mb}MB available, "
                f"{required_mb}MB required"
            )
        return None

    def _output_conflict(self, source: Path, final_path: Path) -> str | None:
        # Replacing must never clobber another file, e.g. movie.mkv when
        # converting movie.mp4 in the same directory
        if self._replace and final_path != source and final_path.exists():
            return f"Output already exists: {final_path}"
        return None

    def _skip_reason(self, analysis: MediaFileAnalysis) -> str | None:
        target = self.config.encoding.video_codec
        if self.config.processing.skip_target_codec and video_codec_matches(
            analysis.video_codec, target
        ):
            return f"Already encoded as {target}"
        return None

    def _encode_with_fallback(
        self,
        source: Path,
        analysis: MediaFileAnalysis,
        plan: EncodePlan,
        downmixed: Sequence[Path],
        temp_output: Path,
    ) -> list[EncodeAttempt]:
        """Attempt the primary backend, then the fallback once if needed."""
        attempts: list[EncodeAttempt] = []
        for backend in self.choice.attempts:
            if attempts:
                logger.warning(
                    "%s encode failed (%s), retrying with %s",
                    attempts[-1].backend.value,
                    attempts[-1].error_message,
                    backend.value,
                )
            attempt = self._attempt(
                source, backend, analysis, plan, downmixed, temp_output
            )
            attempts.append(attempt)
            if attempt.success or attempt.cancelled:
                break
        return attempts

    def _attempt(
        self,
        source: Path,
        backend: BackendKind,
        analysis: MediaFileAnalysis,
        plan: EncodePlan,
        downmixed: Sequence[Path],
        temp_output: Path,
    ) -> EncodeAttempt:
        encoding = self.config.encoding
        try:
            encoder = build_encoder_args(backend, analysis, self.profile, encoding)
        except UnsupportedEncodeError as e:
            return EncodeAttempt(backend=backend, success=False, error_message=str(e))

        estimate = estimate_encoding_time(
            analysis.duration_seconds, backend, analysis.complexity
        )
        logger.info(
            "Encoding %s with %s (%s, %s complexity, %d-bit)%s",
            source.name,
            encoder.encoder,
            plan.mode.value,
            analysis.complexity.value,
            10 if encoder.ten_bit else 8,
            f", estimated {format_duration(estimate)}" if estimate else "",
        )

        command = build_encode_command(
            self._executor.ffmpeg_path,
            source,
            plan,
            encoder,
            temp_output,
            encoding.output_format,
            downmixed,
        )
        return self._executor.encode(backend, command, temp_output)

    def _finalize(
        self,
        source: Path,
        temp_output: Path,
        final_path: Path,
        attempt: EncodeAttempt,
        attempted: tuple[BackendKind, ...],
    ) -> FileResult:
        """Move the temp output into place; a failed move fails the file.

        Outputs staged on another filesystem are first copied beside the
        final path so the last step is always an atomic rename.
        """
        conflict = self._output_conflict(source, final_path)
        if conflict:
            return FileResult.failed(source, conflict, attempted=attempted)

        sibling = final_path.parent / temp_output.name
        try:
            if temp_output.parent != final_path.parent:
                shutil.move(str(temp_output), str(sibling))
            os.replace(sibling, final_path)
        except OSError as e:
            remove_quietly(sibling)
            return FileResult.failed(
                source,
                f"Could not move output to {final_path}: {e}",
                attempted=attempted,
            )

        if self._replace and final_path != source:
            try:
                source.unlink()
            except OSError as e:
                logger.warning(
                    "Converted %s but could not remove original: %s", source, e
                )

        return FileResult(
            source=source,
            status=FileStatus.SUCCESS,
            output_path=final_path,
            backend=attempt.backend,
            attempted=attempted,
        )

    def _log_outcome(self, result: FileResult) -> None:
        name = result.source.name
        if result.status is FileStatus.SUCCESS:
            logger.info(
                "Converted %s -> %s (%s)",
                name,
                result.output_path.name if result.output_path else "?",
                result.backend.value if result.backend else "?",
            )
        elif result.status is FileStatus.SKIPPED:
            logger.info("Skipped %s: %s", name, result.message)
        else:
            logger.error("Failed %s: %s", name, result.message)
