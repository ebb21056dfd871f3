"""CLI convert command: batch-convert a directory of media files."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import click

from cvrt.cli.config_loader import load_config_or_exit
from cvrt.cli.exit_codes import ExitCode
from cvrt.cli.output import error_exit, json_output_data, warning_output
from cvrt.config.models import OUTPUT_FORMATS, VIDEO_CODECS, CvrtConfig
from cvrt.core.subprocess_utils import ProcessRunner, SubprocessRunner
from cvrt.executor import EncodeExecutor, StagingArea
from cvrt.hardware import (
    EncoderChoice,
    EncoderOverride,
    HardwareProfile,
    detect_hardware_profile,
    find_missing_tools,
    select_encoder,
)
from cvrt.introspector import FFprobeIntrospector
from cvrt.workflow import (
    BatchSummary,
    ConversionPipeline,
    FileResult,
    FileStatus,
    discover_files,
    run_batch,
)

logger = logging.getLogger(__name__)

_output_lock = threading.Lock()

_STATUS_LABELS = {
    FileStatus.SUCCESS: "OK",
    FileStatus.FAILED: "FAILED",
    FileStatus.SKIPPED: "SKIPPED",
}


def _resolve_override(flags: dict[EncoderOverride, bool]) -> EncoderOverride | None:
    chosen = [override for override, enabled in flags.items() if enabled]
    if len(chosen) > 1:
        names = ", ".join(f"--{o.value}" for o in chosen)
        raise click.UsageError(f"Options {names} are mutually exclusive.")
    return chosen[0] if chosen else None


def build_pipeline(
    config: CvrtConfig,
    profile: HardwareProfile,
    choice: EncoderChoice,
    replace: bool = False,
    runner: ProcessRunner | None = None,
    stop_event: threading.Event | None = None,
) -> ConversionPipeline:
    """Wire the pipeline's collaborators from configuration.

    Setting ``stop_event`` kills the ffmpeg/ffprobe processes the default
    runner has in flight.
    """
    runner = runner if runner is not None else SubprocessRunner(stop_event)
    storage = config.storage
    return ConversionPipeline(
        config=config,
        profile=profile,
        choice=choice,
        probe=FFprobeIntrospector(config.tools.ffprobe, runner=runner),
        executor=EncodeExecutor(
            config.tools.ffmpeg,
            runner=runner,
            timeout=config.processing.encode_timeout,
        ),
        staging=StagingArea(
            ram_disk=storage.ram_disk,
            temp_directory=storage.temp_directory,
            use_ram_disk=storage.use_ram_disk,
        ),
        replace=replace,
    )


def format_result_line(result: FileResult) -> str:
    label = _STATUS_LABELS[result.status]
    name = result.source.name
    if result.status is FileStatus.SUCCESS:
        output = result.output_path.name if result.output_path else "?"
        backend = result.backend.value if result.backend else "?"
        return f"[{label}] {name} -> {output} ({backend})"
    return f"[{label}] {name}: {result.message}"


def format_summary(summary: BatchSummary) -> list[str]:
    lines = [
        f"Success: {summary.success}",
        f"Failed:  {summary.failed}",
        f"Skipped: {summary.skipped}",
        f"Total:   {summary.total}",
    ]
    if summary.majority_encoder is not None:
        lines.append(f"Encoder: {summary.majority_encoder.value}")
    return lines


@click.command("convert")
@click.argument(
    "directory",
    type=click.Path(path_type=Path),
    default=".",
    required=False,
)
@click.option("--gpu", is_flag=True, help="Use the first available GPU encoder.")
@click.option("--cpu", is_flag=True, help="Use software encoding only.")
@click.option("--nvenc", is_flag=True, help="Force NVIDIA NVENC.")
@click.option("--vaapi", is_flag=True, help="Force VAAPI.")
@click.option("--qsv", is_flag=True, help="Force Intel Quick Sync.")
@click.option(
    "--replace",
    "-r",
    is_flag=True,
    help="Replace originals instead of writing -converted files.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(list(OUTPUT_FORMATS)),
    default=None,
    help="Output container (default: mkv).",
)
@click.option(
    "--codec",
    type=click.Choice(VIDEO_CODECS),
    default=None,
    help="Target video codec (default: hevc).",
)
@click.option(
    "--quality",
    type=click.IntRange(0, 51),
    default=None,
    help="Quality value (CRF/CQ/QP, lower is better; default: 24).",
)
@click.option(
    "--threads",
    type=click.IntRange(min=0),
    default=None,
    help="Encoder thread count (default: 0, let ffmpeg decide).",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Files to convert concurrently (default: 1).",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-encode timeout in seconds (default: none).",
)
@click.option(
    "--recursive",
    is_flag=True,
    help="Descend into subdirectories.",
)
@click.option(
    "--profile",
    "profile_name",
    default=None,
    help="Named profile from ~/.cvrt/profiles/.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output the batch summary as JSON.",
)
@click.pass_context
def convert_command(
    ctx: click.Context,
    directory: Path,
    gpu: bool,
    cpu: bool,
    nvenc: bool,
    vaapi: bool,
    qsv: bool,
    replace: bool,
    output_format: str | None,
    codec: str | None,
    quality: int | None,
    threads: int | None,
    workers: int | None,
    timeout: float | None,
    recursive: bool,
    profile_name: str | None,
    json_output: bool,
) -> None:
    """Convert every media file in DIRECTORY (default: current directory).

    Files whose conversion fails are reported and counted but do not stop
    the batch; the command still exits 0.

    Examples:

        cvrt convert ~/Videos

        cvrt convert --cpu --codec h264 --format mp4 .

        cvrt convert --workers 2 --profile archive /media/shows
    """
    override = _resolve_override(
        {
            EncoderOverride.GPU: gpu,
            EncoderOverride.CPU: cpu,
            EncoderOverride.NVENC: nvenc,
            EncoderOverride.VAAPI: vaapi,
            EncoderOverride.QSV: qsv,
        }
    )

    if not directory.is_dir():
        error_exit(
            f"Directory not found: {directory}", ExitCode.TARGET_NOT_FOUND, json_output
        )

    overrides: dict[str, dict[str, Any]] = {
        "encoding": {
            "output_format": output_format,
            "video_codec": codec,
            "quality": quality,
            "threads": threads,
        },
        "processing": {
            "workers": workers,
            "encode_timeout": timeout,
            "recursive": True if recursive else None,
        },
    }
    config = load_config_or_exit(ctx, profile_name, overrides, json_output)

    missing = find_missing_tools(config.tools)
    if missing:
        error_exit(
            f"Missing required tools: {', '.join(missing)}. "
            "Install ffmpeg (which provides ffprobe) or set their paths in "
            "config.toml.",
            ExitCode.TOOL_NOT_AVAILABLE,
            json_output,
        )

    profile = detect_hardware_profile(config.tools)
    choice = select_encoder(profile, override)
    if choice.warning:
        warning_output(choice.warning, json_output)

    processing = config.processing
    files = discover_files(directory, processing.extensions, processing.recursive)
    if not files and not json_output:
        click.echo(f"No media files found in {directory}")

    stop_event = threading.Event()
    pipeline = build_pipeline(
        config, profile, choice, replace=replace, stop_event=stop_event
    )

    def on_result(result: FileResult) -> None:
        if json_output:
            return
        with _output_lock:
            click.echo(format_result_line(result))

    logger.info(
        "Converting %d file(s) with %s (workers=%d)",
        len(files),
        choice.primary.value,
        processing.workers,
    )
    summary = run_batch(
        pipeline,
        files,
        processing.workers,
        on_result=on_result,
        stop_event=stop_event,
    )

    if json_output:
        data = summary.to_dict()
        data["selected_encoder"] = choice.primary.value
        data["fallback_encoder"] = choice.fallback.value if choice.fallback else None
        json_output_data(data)
    else:
        click.echo("")
        for line in format_summary(summary):
            click.echo(line)
        if summary.interrupted:
            click.echo("Interrupted before all files were converted.")

    if summary.interrupted:
        ctx.exit(ExitCode.INTERRUPTED)
