"""Domain models shared across cvrt packages."""

from cvrt.domain.models import (
    AudioStream,
    ComplexityClass,
    MediaFileAnalysis,
    ProbeResult,
    StreamInfo,
    StreamType,
)

__all__ = [
    "AudioStream",
    "ComplexityClass",
    "MediaFileAnalysis",
    "ProbeResult",
    "StreamInfo",
    "StreamType",
]
