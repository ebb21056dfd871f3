"""Codec name helpers.

ffprobe reports codec names that differ from the names users type on the
command line ("hevc" vs "h265" vs "hvc1"); these helpers treat the aliases
as equivalent.
"""

from __future__ import annotations

VIDEO_CODEC_ALIASES: dict[str, frozenset[str]] = {
    "hevc": frozenset({"hevc", "h265", "h.265", "x265", "hvc1", "hev1"}),
    "h265": frozenset({"hevc", "h265", "h.265", "x265", "hvc1", "hev1"}),
    "h264": frozenset({"h264", "h.264", "avc", "avc1", "x264"}),
    "avc": frozenset({"h264", "h.264", "avc", "avc1", "x264"}),
    "av1": frozenset({"av1", "av01", "libaom-av1", "libsvtav1"}),
}


def normalize_codec(codec: str | None) -> str:
    """Normalize a codec name for comparison."""
    if codec is None:
        return ""
    return codec.casefold().strip()


def video_codec_matches(current_codec: str | None, target: str) -> bool:
    """Check if a video codec matches the target (case-insensitive, alias-aware).

    Args:
        current_codec: Current video codec from ffprobe.
        target: Target codec to match against.

    Returns:
        True if codec matches.
    """
    if current_codec is None:
        return False

    current = normalize_codec(current_codec)
    wanted = normalize_codec(target)
    if current == wanted:
        return True
    return current in VIDEO_CODEC_ALIASES.get(wanted, frozenset())


# Image-based subtitle formats; only text subtitles convert to mov_text
BITMAP_SUBTITLE_CODECS = frozenset(
    {"hdmv_pgs_subtitle", "pgssub", "dvd_subtitle", "dvdsub", "dvb_subtitle", "xsub"}
)


def is_bitmap_subtitle(codec: str | None) -> bool:
    return normalize_codec(codec) in BITMAP_SUBTITLE_CODECS
