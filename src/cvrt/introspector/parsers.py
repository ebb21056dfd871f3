"""Pure parsing functions for ffprobe JSON output.

These functions transform ffprobe JSON data into cvrt domain objects.
All functions are pure (no I/O, no side effects) for easy testing.
"""

import logging
from pathlib import Path
from typing import Any

from cvrt.domain.models import ProbeResult, StreamInfo, StreamType

logger = logging.getLogger(__name__)

_STREAM_TYPES: dict[str, StreamType] = {
    "video": StreamType.VIDEO,
    "audio": StreamType.AUDIO,
    "subtitle": StreamType.SUBTITLE,
    "attachment": StreamType.ATTACHMENT,
    "data": StreamType.DATA,
}


def map_stream_type(codec_type: str | None) -> StreamType:
    """Map an ffprobe codec_type to a StreamType."""
    return _STREAM_TYPES.get((codec_type or "").casefold(), StreamType.OTHER)


def parse_int(value: Any, field_name: str, file_path: str | None = None) -> int | None:
    """Parse a positive integer field, tolerating ffprobe's string numbers.

    Args:
        value: Raw value (int, numeric string or None).
        field_name: Field name for warning messages.
        file_path: File path context for warnings.

    Returns:
        Parsed value, or None if absent, non-numeric or negative.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        context = f" in {file_path}" if file_path else ""
        logger.warning("Expected int for %s%s, got %r", field_name, context, value)
        return None
    if parsed < 0:
        context = f" in {file_path}" if file_path else ""
        logger.warning("Invalid negative %s%s: %d", field_name, context, parsed)
        return None
    return parsed


def parse_duration(value: str | None) -> float | None:
    """Parse duration string from ffprobe into seconds."""
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def parse_stream(stream: dict, file_path: str | None = None) -> StreamInfo:
    """Parse a single ffprobe stream dict into a StreamInfo."""
    stream_type = map_stream_type(stream.get("codec_type"))
    disposition = stream.get("disposition") or {}
    tags = stream.get("tags") or {}

    return StreamInfo(
        index=parse_int(stream.get("index"), "index", file_path) or 0,
        stream_type=stream_type,
        codec=stream.get("codec_name"),
        width=parse_int(stream.get("width"), "width", file_path),
        height=parse_int(stream.get("height"), "height", file_path),
        pixel_format=stream.get("pix_fmt"),
        bits_per_raw_sample=parse_int(
            stream.get("bits_per_raw_sample"), "bits_per_raw_sample", file_path
        ),
        channels=parse_int(stream.get("channels"), "channels", file_path),
        language=tags.get("language"),
        attached_pic=disposition.get("attached_pic", 0) == 1,
    )


def parse_streams(
    streams: list[dict], file_path: str | None = None
) -> list[StreamInfo]:
    """Parse ffprobe streams, dropping duplicate indices."""
    parsed: list[StreamInfo] = []
    seen: set[int] = set()
    for stream in streams:
        info = parse_stream(stream, file_path)
        if info.index in seen:
            logger.warning(
                "Duplicate stream index %d%s, ignoring",
                info.index,
                f" in {file_path}" if file_path else "",
            )
            continue
        seen.add(info.index)
        parsed.append(info)
    return parsed


def parse_ffprobe_output(path: Path, data: dict) -> ProbeResult:
    """Parse full ffprobe JSON output into a ProbeResult.

    Args:
        path: Path of the probed file.
        data: Parsed JSON with "streams" and "format" keys.

    Returns:
        ProbeResult domain object.
    """
    fmt = data.get("format") or {}
    streams = parse_streams(data.get("streams") or [], str(path))
    return ProbeResult(
        path=path,
        container_format=fmt.get("format_name"),
        duration_seconds=parse_duration(fmt.get("duration")),
        streams=tuple(streams),
    )
