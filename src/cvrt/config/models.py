"""Configuration data models for cvrt.

This module defines the configuration structure for cvrt, including
tool paths, encoding settings, analysis thresholds, batch processing,
temporary storage and logging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

VALID_LOG_LEVELS = ("debug", "info", "warning", "error")
VALID_LOG_FORMATS = ("text", "json")

# Output format -> (ffmpeg muxer, subtitle codec)
OUTPUT_FORMATS: dict[str, tuple[str, str]] = {
    "mkv": ("matroska", "copy"),
    "mp4": ("mp4", "mov_text"),
}
VIDEO_CODECS = ("hevc", "h264", "av1")

DEFAULT_EXTENSIONS: tuple[str, ...] = (
    "mkv",
    "mp4",
    "avi",
    "mov",
    "m4v",
    "webm",
    "ts",
    "wmv",
)


def carries_bitmap_subtitles(output_format: str) -> bool:
    """True when the container keeps image subtitles as-is (no conversion)."""
    return OUTPUT_FORMATS[output_format][1] == "copy"


@dataclass(frozen=True)
class ToolPathsConfig:
    """External tool locations. Bare names are resolved via PATH."""

    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"
    vainfo: str = "vainfo"
    lspci: str = "lspci"
    nvidia_smi: str = "nvidia-smi"
    detection_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.detection_timeout <= 0:
            raise ValueError(
                f"detection_timeout must be positive, got {self.detection_timeout}"
            )


@dataclass(frozen=True)
class EncodingConfig:
    """Output codec, container and quality settings."""

    video_codec: str = "hevc"
    output_format: str = "mkv"
    quality: int = 24
    stereo_bitrate: str = "192k"
    max_bitrate: str = "50M"
    buffer_size: str = "100M"
    threads: int = 0  # 0 = let ffmpeg decide

    def __post_init__(self) -> None:
        if self.video_codec not in VIDEO_CODECS:
            raise ValueError(
                f"video_codec must be one of {', '.join(VIDEO_CODECS)}, "
                f"got '{self.video_codec}'"
            )
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"output_format must be one of {', '.join(OUTPUT_FORMATS)}, "
                f"got '{self.output_format}'"
            )
        if not 0 <= self.quality <= 51:
            raise ValueError(f"quality must be between 0 and 51, got {self.quality}")
        if self.threads < 0:
            raise ValueError(f"threads must be >= 0, got {self.threads}")


@dataclass(frozen=True)
class AnalysisConfig:
    """Pixel-count thresholds for complexity classes."""

    medium_pixel_threshold: int = 2_000_000
    high_pixel_threshold: int = 8_000_000

    def __post_init__(self) -> None:
        if self.medium_pixel_threshold <= 0:
            raise ValueError("medium_pixel_threshold must be positive")
        if self.high_pixel_threshold < self.medium_pixel_threshold:
            raise ValueError(
                "high_pixel_threshold must be >= medium_pixel_threshold"
            )


@dataclass(frozen=True)
class ProcessingConfig:
    """Batch processing behavior."""

    workers: int = 1
    encode_timeout: float | None = None  # seconds; None waits forever
    skip_without_audio: bool = True
    skip_target_codec: bool = False
    recursive: bool = False
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    min_free_space_mb: int = 1000  # per file, in the output directory; 0 = off

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.encode_timeout is not None and self.encode_timeout <= 0:
            raise ValueError(
                f"encode_timeout must be positive, got {self.encode_timeout}"
            )
        if self.min_free_space_mb < 0:
            raise ValueError(
                f"min_free_space_mb must be >= 0, got {self.min_free_space_mb}"
            )
        # Normalize extensions: lowercase, no leading dot
        object.__setattr__(
            self,
            "extensions",
            tuple(ext.casefold().lstrip(".") for ext in self.extensions),
        )


@dataclass(frozen=True)
class StorageConfig:
    """Temporary storage for in-progress encodes.

    The RAM disk is used when it has room for the input file; otherwise the
    temp directory (or the output's own directory) is used.
    """

    ram_disk: Path | None = Path("/dev/shm")
    use_ram_disk: bool = True
    temp_directory: Path | None = None


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    file: Path | None = None
    format: str = "text"
    include_stderr: bool = True
    max_bytes: int = 10_485_760  # 10 MiB
    backup_count: int = 5

    def __post_init__(self) -> None:
        if self.level.casefold() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{self.level}'. "
                f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        if self.format.casefold() not in VALID_LOG_FORMATS:
            raise ValueError(
                f"Invalid log format '{self.format}'. "
                f"Must be one of: {', '.join(VALID_LOG_FORMATS)}"
            )
        if self.max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        if self.backup_count < 0:
            raise ValueError("backup_count must be >= 0")


@dataclass(frozen=True)
class CvrtConfig:
    """Main configuration container."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
