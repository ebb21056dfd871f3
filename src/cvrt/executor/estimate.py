"""Rough encode duration estimates for progress logging."""

from cvrt.domain.models import ComplexityClass
from cvrt.hardware.models import BackendKind

# Encode time as a multiple of the media duration
TIME_MULTIPLIERS: dict[BackendKind, dict[ComplexityClass, float]] = {
    BackendKind.NVENC: {
        ComplexityClass.HIGH: 0.3,
        ComplexityClass.MEDIUM: 0.2,
        ComplexityClass.LOW: 0.1,
    },
    BackendKind.QSV: {
        ComplexityClass.HIGH: 0.4,
        ComplexityClass.MEDIUM: 0.3,
        ComplexityClass.LOW: 0.2,
    },
    BackendKind.VAAPI: {
        ComplexityClass.HIGH: 0.5,
        ComplexityClass.MEDIUM: 0.4,
        ComplexityClass.LOW: 0.3,
    },
    BackendKind.SOFTWARE: {
        ComplexityClass.HIGH: 2.0,
        ComplexityClass.MEDIUM: 1.5,
        ComplexityClass.LOW: 1.0,
    },
}


def estimate_encoding_time(
    duration_seconds: float | None,
    backend: BackendKind,
    complexity: ComplexityClass,
) -> float | None:
    """Estimate wall-clock seconds to encode, or None if duration is unknown."""
    if duration_seconds is None or duration_seconds <= 0:
        return None
    return duration_seconds * TIME_MULTIPLIERS[backend][complexity]


def format_duration(seconds: float) -> str:
    """Format seconds as ``HhMMm`` / ``MmSSs``."""
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes:02d}m"
    return f"{minutes}m{secs:02d}s"
