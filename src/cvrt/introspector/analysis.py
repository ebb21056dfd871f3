"""Per-file analysis derived from probe results.

Turns a ProbeResult into the MediaFileAnalysis consumed by stream routing
and encoder argument construction.
"""

from __future__ import annotations

import logging
import re

from cvrt.core.codecs import is_bitmap_subtitle
from cvrt.domain.models import (
    AudioStream,
    ComplexityClass,
    MediaFileAnalysis,
    ProbeResult,
)
from cvrt.introspector.interface import MediaProbeError

logger = logging.getLogger(__name__)

DEFAULT_MEDIUM_THRESHOLD = 2_000_000
DEFAULT_HIGH_THRESHOLD = 8_000_000

# yuv420p10le, p010le, yuv444p12be, gbrp10le ...
_HIGH_DEPTH_PIX_FMT = re.compile(r"(p01[026](le|be)?|p1[0246](le|be))$")


def classify_complexity(
    width: int | None,
    height: int | None,
    medium_threshold: int = DEFAULT_MEDIUM_THRESHOLD,
    high_threshold: int = DEFAULT_HIGH_THRESHOLD,
) -> ComplexityClass:
    """Bucket a resolution by pixel count.

    Unknown or non-positive dimensions fall back to MEDIUM.
    """
    if not isinstance(width, int) or not isinstance(height, int):
        return ComplexityClass.MEDIUM
    if width <= 0 or height <= 0:
        return ComplexityClass.MEDIUM

    pixels = width * height
    if pixels >= high_threshold:
        return ComplexityClass.HIGH
    if pixels >= medium_threshold:
        return ComplexityClass.MEDIUM
    return ComplexityClass.LOW


def detect_bit_depth(pixel_format: str | None, bits_per_raw_sample: int | None) -> int:
    """Return 10 if either signal indicates high bit depth, else 8.

    The pixel format and the explicit sample depth are checked independently;
    they do not need to agree.
    """
    if pixel_format and _HIGH_DEPTH_PIX_FMT.search(pixel_format.casefold()):
        return 10
    if bits_per_raw_sample is not None and bits_per_raw_sample >= 10:
        return 10
    return 8


def analyze(
    probe: ProbeResult,
    medium_threshold: int = DEFAULT_MEDIUM_THRESHOLD,
    high_threshold: int = DEFAULT_HIGH_THRESHOLD,
    size_bytes: int | None = None,
) -> MediaFileAnalysis:
    """Derive the routing/encoding facts for one file.

    Args:
        probe: Probe result for the file.
        medium_threshold: Pixel count at which complexity becomes MEDIUM.
        high_threshold: Pixel count at which complexity becomes HIGH.
        size_bytes: File size; read from disk when None.

    Raises:
        MediaProbeError: If the file has neither video nor audio streams.
    """
    video = probe.video_streams
    audio = probe.audio_streams
    if not video and not audio:
        raise MediaProbeError(f"No video or audio streams found in {probe.path}")

    primary = video[0] if video else None
    width = primary.width if primary and primary.width else None
    height = primary.height if primary and primary.height else None
    pixel_format = (primary.pixel_format if primary else None) or ""

    if size_bytes is None:
        try:
            size_bytes = probe.path.stat().st_size
        except OSError:
            size_bytes = 0

    analysis = MediaFileAnalysis(
        path=probe.path,
        video_codec=(primary.codec if primary else None) or "",
        pixel_format=pixel_format,
        bit_depth=detect_bit_depth(
            pixel_format, primary.bits_per_raw_sample if primary else None
        ),
        complexity=classify_complexity(
            width, height, medium_threshold, high_threshold
        ),
        video_width=width,
        video_height=height,
        audio_streams=tuple(
            AudioStream(index=s.index, channels=s.channels or 0, codec=s.codec)
            for s in audio
        ),
        video_stream_indices=tuple(s.index for s in video),
        subtitle_stream_indices=tuple(s.index for s in probe.subtitle_streams),
        bitmap_subtitle_indices=tuple(
            s.index for s in probe.subtitle_streams if is_bitmap_subtitle(s.codec)
        ),
        duration_seconds=probe.duration_seconds,
        size_bytes=size_bytes,
    )
    logger.debug(
        "Analyzed %s: %s %sx%s %d-bit, %s complexity, audio channels %s",
        probe.path.name,
        analysis.video_codec or "no video",
        width or "?",
        height or "?",
        analysis.bit_depth,
        analysis.complexity.value,
        [a.channels for a in analysis.audio_streams],
    )
    return analysis
