"""Pydantic models validating config files and profiles.

Both ``config.toml`` and profile YAML files are validated here before their
values are layered into CvrtConfig. Unknown keys are rejected.
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cvrt.config.models import OUTPUT_FORMATS, VIDEO_CODECS

_BITRATE = re.compile(r"^\d+(\.\d+)?[kKmM]?$")


def _check_bitrate(value: str | None) -> str | None:
    if value is not None and not _BITRATE.match(value):
        raise ValueError(
            f"Invalid bitrate '{value}'. "
            "Must be a number optionally followed by k or M (e.g., '192k', '50M')."
        )
    return value


class ToolsSection(BaseModel):
    """[tools] section."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    ffmpeg: str | None = None
    ffprobe: str | None = None
    vainfo: str | None = None
    lspci: str | None = None
    nvidia_smi: str | None = None
    detection_timeout: float | None = Field(default=None, gt=0)


class EncodingSection(BaseModel):
    """[encoding] section."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    video_codec: str | None = None
    output_format: str | None = None
    quality: int | None = Field(default=None, ge=0, le=51)
    stereo_bitrate: str | None = None
    max_bitrate: str | None = None
    buffer_size: str | None = None
    threads: int | None = Field(default=None, ge=0)

    @field_validator("video_codec")
    @classmethod
    def validate_codec(cls, v: str | None) -> str | None:
        if v is not None and v.casefold() not in VIDEO_CODECS:
            raise ValueError(
                f"Invalid video_codec '{v}'. Must be one of: {', '.join(VIDEO_CODECS)}"
            )
        return v.casefold() if v else v

    @field_validator("output_format")
    @classmethod
    def validate_format(cls, v: str | None) -> str | None:
        if v is not None and v.casefold() not in OUTPUT_FORMATS:
            raise ValueError(
                f"Invalid output_format '{v}'. "
                f"Must be one of: {', '.join(OUTPUT_FORMATS)}"
            )
        return v.casefold() if v else v

    @field_validator("stereo_bitrate", "max_bitrate", "buffer_size")
    @classmethod
    def validate_bitrate(cls, v: str | None) -> str | None:
        return _check_bitrate(v)


class AnalysisSection(BaseModel):
    """[analysis] section."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    medium_pixel_threshold: int | None = Field(default=None, gt=0)
    high_pixel_threshold: int | None = Field(default=None, gt=0)


class ProcessingSection(BaseModel):
    """[processing] section."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    workers: int | None = Field(default=None, ge=1)
    encode_timeout: float | None = Field(default=None, gt=0)
    skip_without_audio: bool | None = None
    skip_target_codec: bool | None = None
    recursive: bool | None = None
    extensions: list[str] | None = None
    min_free_space_mb: int | None = Field(default=None, ge=0)


class StorageSection(BaseModel):
    """[storage] section."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    ram_disk: str | None = None
    use_ram_disk: bool | None = None
    temp_directory: str | None = None


class LoggingSection(BaseModel):
    """[logging] section."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    level: Literal["debug", "info", "warning", "error"] | None = None
    file: str | None = None
    format: Literal["text", "json"] | None = None
    include_stderr: bool | None = None
    max_bytes: int | None = Field(default=None, gt=0)
    backup_count: int | None = Field(default=None, ge=0)


class ConfigFileModel(BaseModel):
    """Top-level config.toml layout."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tools: ToolsSection = Field(default_factory=ToolsSection)
    encoding: EncodingSection = Field(default_factory=EncodingSection)
    analysis: AnalysisSection = Field(default_factory=AnalysisSection)
    processing: ProcessingSection = Field(default_factory=ProcessingSection)
    storage: StorageSection = Field(default_factory=StorageSection)
    logging: LoggingSection = Field(default_factory=LoggingSection)


class ProfileModel(BaseModel):
    """Named profile layout: a description plus encoding/processing overrides."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str | None = None
    description: str | None = None
    encoding: EncodingSection = Field(default_factory=EncodingSection)
    processing: ProcessingSection = Field(default_factory=ProcessingSection)


def format_validation_error(error: Exception, what: str) -> str:
    """Format a Pydantic validation error into a user-friendly message."""
    from pydantic import ValidationError

    if isinstance(error, ValidationError):
        errors = error.errors()
        if errors:
            first_error = errors[0]
            loc = ".".join(str(x) for x in first_error.get("loc", []))
            msg = first_error.get("msg", str(error))
            if loc:
                return f"{what} validation failed: {loc}: {msg}"
            return f"{what} validation failed: {msg}"

    return f"{what} validation failed: {error}"
