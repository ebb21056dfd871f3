"""Domain models for probed media files."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class StreamType(Enum):
    """Container stream types the orchestrator cares about."""

    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"
    ATTACHMENT = "attachment"
    DATA = "data"
    OTHER = "other"


class ComplexityClass(Enum):
    """Resolution bucket used to tune encoder speed/quality presets."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class StreamInfo:
    """One stream as reported by the media probe."""

    index: int
    stream_type: StreamType
    codec: str | None = None
    width: int | None = None
    height: int | None = None
    pixel_format: str | None = None
    bits_per_raw_sample: int | None = None
    channels: int | None = None
    language: str | None = None
    attached_pic: bool = False


@dataclass(frozen=True)
class ProbeResult:
    """Structured stream metadata for a single file."""

    path: Path
    container_format: str | None
    duration_seconds: float | None
    streams: tuple[StreamInfo, ...]

    def streams_of(self, stream_type: StreamType) -> tuple[StreamInfo, ...]:
        return tuple(s for s in self.streams if s.stream_type is stream_type)

    @property
    def video_streams(self) -> tuple[StreamInfo, ...]:
        """Real video streams, excluding embedded cover art."""
        return tuple(
            s for s in self.streams_of(StreamType.VIDEO) if not s.attached_pic
        )

    @property
    def audio_streams(self) -> tuple[StreamInfo, ...]:
        return self.streams_of(StreamType.AUDIO)

    @property
    def subtitle_streams(self) -> tuple[StreamInfo, ...]:
        return self.streams_of(StreamType.SUBTITLE)


@dataclass(frozen=True)
class AudioStream:
    """Audio stream summary used for routing."""

    index: int
    channels: int
    codec: str | None = None


@dataclass(frozen=True)
class MediaFileAnalysis:
    """Per-file facts derived from a probe, consumed by routing and encoding.

    ``video_width``/``video_height`` are None when the probe did not report
    usable dimensions. ``bitmap_subtitle_indices`` is the subset of subtitle
    streams stored as images (PGS, VobSub), which mp4 cannot carry.
    """

    path: Path
    video_codec: str
    pixel_format: str
    bit_depth: int
    complexity: ComplexityClass
    video_width: int | None = None
    video_height: int | None = None
    audio_streams: tuple[AudioStream, ...] = ()
    video_stream_indices: tuple[int, ...] = ()
    subtitle_stream_indices: tuple[int, ...] = ()
    bitmap_subtitle_indices: tuple[int, ...] = ()
    duration_seconds: float | None = None
    size_bytes: int = 0

    @property
    def is_ten_bit(self) -> bool:
        return self.bit_depth >= 10

    @property
    def pixel_count(self) -> int | None:
        if self.video_width is None or self.video_height is None:
            return None
        return self.video_width * self.video_height
