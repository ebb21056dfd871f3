"""FFmpeg command construction for downmix and encode steps."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from cvrt.config.models import OUTPUT_FORMATS
from cvrt.executor.encoder_args import EncoderArgs
from cvrt.routing.router import EncodePlan

DOWNMIX_CODEC = "aac"
DOWNMIX_CHANNELS = 2


def build_downmix_command(
    ffmpeg_path: str,
    input_path: Path,
    stream_index: int,
    output_path: Path,
    bitrate: str = "192k",
) -> list[str]:
    """Build the command extracting one 5.1 stream as stereo AAC.

    Args:
        ffmpeg_path: ffmpeg binary.
        input_path: Source media file.
        stream_index: Absolute index of the 5.1 audio stream.
        output_path: Intermediate .m4a file to write.
        bitrate: Stereo AAC bitrate.
    """
    return [
        ffmpeg_path,
        "-y",
        "-hide_banner",
        "-nostdin",
        "-v",
        "warning",
        "-i",
        str(input_path),
        "-map",
        f"0:{stream_index}",
        "-c:a",
        DOWNMIX_CODEC,
        "-ac",
        str(DOWNMIX_CHANNELS),
        "-b:a",
        bitrate,
        str(output_path),
    ]


def build_encode_command(
    ffmpeg_path: str,
    input_path: Path,
    plan: EncodePlan,
    encoder: EncoderArgs,
    output_path: Path,
    output_format: str = "mkv",
    downmixed: Sequence[Path] = (),
) -> list[str]:
    """Build the full encode command for one attempt.

    Copied streams are mapped by absolute index from the source. Each
    downmixed intermediate is added as an extra input and its audio mapped
    after the copied streams, so it becomes the output's audio.

    Args:
        ffmpeg_path: ffmpeg binary.
        input_path: Source media file.
        plan: Stream routing for the file.
        encoder: Encoder options for the backend being attempted.
        output_path: Where ffmpeg writes (the temp path).
        output_format: Key of OUTPUT_FORMATS.
        downmixed: Stereo intermediates, in stream order.
    """
    muxer, subtitle_codec = OUTPUT_FORMATS[output_format]

    cmd = [
        ffmpeg_path,
        "-y",
        "-hide_banner",
        "-nostdin",
        "-nostats",
        "-v",
        "warning",
        *encoder.global_args,
        "-i",
        str(input_path),
    ]
    for extra in downmixed:
        cmd.extend(["-i", str(extra)])

    for index in plan.copy_indices:
        cmd.extend(["-map", f"0:{index}"])
    for input_number in range(1, len(downmixed) + 1):
        cmd.extend(["-map", f"{input_number}:a"])

    cmd.extend(["-map_metadata", "0"])
    cmd.extend(encoder.output_args)
    cmd.extend(["-c:a", "copy", "-c:s", subtitle_codec])
    cmd.extend(["-f", muxer, str(output_path)])
    return cmd
