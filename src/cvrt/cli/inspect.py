"""CLI inspect command: show how a single file would be converted."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from cvrt.cli.config_loader import load_config_or_exit
from cvrt.cli.exit_codes import ExitCode
from cvrt.cli.output import error_exit, json_output_data
from cvrt.config.models import carries_bitmap_subtitles
from cvrt.domain.models import MediaFileAnalysis
from cvrt.introspector import FFprobeIntrospector, MediaProbeError, analyze
from cvrt.routing import EncodePlan, route_streams


def format_human(analysis: MediaFileAnalysis, plan: EncodePlan) -> str:
    """Format an analysis and its routing plan for terminal output."""
    lines = [f"File: {analysis.path}"]
    if analysis.video_width and analysis.video_height:
        resolution = f"{analysis.video_width}x{analysis.video_height}"
    else:
        resolution = "unknown"
    lines.append(
        f"Video: {analysis.video_codec} {resolution} "
        f"{analysis.pixel_format} ({analysis.bit_depth}-bit)"
    )
    lines.append(f"Complexity: {analysis.complexity.value}")

    lines.append("Audio:")
    if not analysis.audio_streams:
        lines.append("  (none)")
    for stream in analysis.audio_streams:
        lines.append(
            f"  #{stream.index}: {stream.codec or 'unknown'}, "
            f"{stream.channels} channel(s)"
        )

    lines.append("")
    lines.append(f"Audio handling: {plan.mode.value}")
    lines.append(f"Copy streams: {', '.join(map(str, plan.copy_indices)) or 'none'}")
    if plan.downmix_indices:
        lines.append(
            f"Downmix to stereo: {', '.join(map(str, plan.downmix_indices))}"
        )
    return "\n".join(lines)


def format_json(analysis: MediaFileAnalysis, plan: EncodePlan) -> dict[str, Any]:
    return {
        "file": str(analysis.path),
        "video": {
            "codec": analysis.video_codec,
            "width": analysis.video_width,
            "height": analysis.video_height,
            "pixel_format": analysis.pixel_format,
            "bit_depth": analysis.bit_depth,
        },
        "complexity": analysis.complexity.value,
        "audio": [
            {"index": a.index, "codec": a.codec, "channels": a.channels}
            for a in analysis.audio_streams
        ],
        "plan": {
            "mode": plan.mode.value,
            "copy": list(plan.copy_indices),
            "downmix": list(plan.downmix_indices),
        },
    }


@click.command("inspect")
@click.argument("file", type=click.Path(path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def inspect_command(ctx: click.Context, file: Path, json_output: bool) -> None:
    """Probe FILE and show its analysis and stream routing."""
    if not file.is_file():
        error_exit(f"File not found: {file}", ExitCode.TARGET_NOT_FOUND, json_output)

    config = load_config_or_exit(ctx, json_output=json_output)
    introspector = FFprobeIntrospector(config.tools.ffprobe)
    try:
        analysis = analyze(
            introspector.inspect(file),
            config.analysis.medium_pixel_threshold,
            config.analysis.high_pixel_threshold,
        )
    except MediaProbeError as e:
        error_exit(str(e), ExitCode.ANALYSIS_ERROR, json_output)

    plan = route_streams(
        analysis,
        keep_bitmap_subtitles=carries_bitmap_subtitles(config.encoding.output_format),
    )
    if json_output:
        json_output_data(format_json(analysis, plan))
    else:
        click.echo(format_human(analysis, plan))
