"""Media introspection: ffprobe wrapper and per-file analysis."""

from cvrt.introspector.analysis import (
    analyze,
    classify_complexity,
    detect_bit_depth,
)
from cvrt.introspector.ffprobe import FFprobeIntrospector
from cvrt.introspector.interface import MediaProbe, MediaProbeError

__all__ = [
    "FFprobeIntrospector",
    "MediaProbe",
    "MediaProbeError",
    "analyze",
    "classify_complexity",
    "detect_bit_depth",
]
