"""Encoder backend selection.

Pure functions from a HardwareProfile (plus an optional user override) to an
EncoderChoice. Automatic mode ranks backends by score; forced overrides use
their own, simpler rules.

Scores: NVENC 100, QSV 90, VAAPI 80, SOFTWARE 50. A backend earns +2 for
10-bit encode support and +3 for AV1 support. The combined bonus (5) stays
within half of the smallest gap between adjacent tiers (10), so feature
flags only break ties within a tier and never reorder tiers.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum

from cvrt.hardware.models import (
    CANDIDATE_ORDER,
    BackendCapability,
    BackendKind,
    HardwareProfile,
)

logger = logging.getLogger(__name__)

BASE_SCORES: dict[BackendKind, int] = {
    BackendKind.NVENC: 100,
    BackendKind.QSV: 90,
    BackendKind.VAAPI: 80,
    BackendKind.SOFTWARE: 50,
}
TEN_BIT_BONUS = 2
NEXT_GEN_CODEC_BONUS = 3

# Priority used by the GPU override, independent of scores
GPU_PRIORITY: tuple[BackendKind, ...] = (
    BackendKind.NVENC,
    BackendKind.QSV,
    BackendKind.VAAPI,
)


class EncoderOverride(Enum):
    """User-forced backend selection."""

    GPU = "gpu"
    CPU = "cpu"
    NVENC = "nvenc"
    QSV = "qsv"
    VAAPI = "vaapi"


_NAMED_OVERRIDES: dict[EncoderOverride, BackendKind] = {
    EncoderOverride.NVENC: BackendKind.NVENC,
    EncoderOverride.QSV: BackendKind.QSV,
    EncoderOverride.VAAPI: BackendKind.VAAPI,
}


@dataclass(frozen=True)
class EncoderChoice:
    """Result of encoder backend selection."""

    primary: BackendKind
    """Backend used for the first encode attempt."""

    fallback: BackendKind | None = None
    """SOFTWARE when primary is a hardware backend, otherwise None."""

    forced: bool = False
    """True when a user override produced this choice."""

    warning: str | None = None
    """Set when an override could not be honored."""

    def __post_init__(self) -> None:
        expected = BackendKind.SOFTWARE if self.primary.is_hardware else None
        if self.fallback is not expected:
            raise ValueError(
                f"fallback for {self.primary.value} must be "
                f"{expected.value if expected else None}, got {self.fallback}"
            )

    @classmethod
    def for_backend(
        cls, primary: BackendKind, forced: bool = False, warning: str | None = None
    ) -> EncoderChoice:
        fallback = BackendKind.SOFTWARE if primary.is_hardware else None
        return cls(primary=primary, fallback=fallback, forced=forced, warning=warning)

    @property
    def attempts(self) -> tuple[BackendKind, ...]:
        """Backends in the order they will be attempted."""
        if self.fallback is None or self.fallback is self.primary:
            return (self.primary,)
        return (self.primary, self.fallback)


def score_backend(kind: BackendKind, capability: BackendCapability) -> float:
    """Score a backend; unavailable backends score negative infinity."""
    if not capability.available:
        return -math.inf
    score = BASE_SCORES[kind]
    if capability.supports_ten_bit:
        score += TEN_BIT_BONUS
    if capability.supports_next_gen_codec:
        score += NEXT_GEN_CODEC_BONUS
    return float(score)


def rank_backends(profile: HardwareProfile) -> list[tuple[BackendKind, float]]:
    """Return (backend, score) pairs in candidate order."""
    return [
        (kind, score_backend(kind, profile.capability(kind)))
        for kind in CANDIDATE_ORDER
    ]


def select_automatic(profile: HardwareProfile) -> EncoderChoice:
    """Pick the highest-scoring available backend.

    Ties go to the earlier backend in candidate order.
    """
    best_kind = BackendKind.SOFTWARE
    best_score = -math.inf
    for kind, score in rank_backends(profile):
        if score > best_score:
            best_kind, best_score = kind, score
    return EncoderChoice.for_backend(best_kind)


def select_forced(
    profile: HardwareProfile, override: EncoderOverride
) -> EncoderChoice:
    """Apply a user override.

    CPU always yields SOFTWARE. A named hardware backend is used if available,
    otherwise SOFTWARE with a warning. GPU takes the first available of
    NVENC, QSV, VAAPI.
    """
    if override is EncoderOverride.CPU:
        return EncoderChoice.for_backend(BackendKind.SOFTWARE, forced=True)

    if override is EncoderOverride.GPU:
        for kind in GPU_PRIORITY:
            if profile.is_available(kind):
                return EncoderChoice.for_backend(kind, forced=True)
        message = "No hardware encoder available, using software encoding"
        logger.warning(message)
        return EncoderChoice.for_backend(
            BackendKind.SOFTWARE, forced=True, warning=message
        )

    kind = _NAMED_OVERRIDES[override]
    if profile.is_available(kind):
        return EncoderChoice.for_backend(kind, forced=True)

    message = f"{kind.value.upper()} requested but not available, using software"
    logger.warning(message)
    return EncoderChoice.for_backend(
        BackendKind.SOFTWARE, forced=True, warning=message
    )


def select_encoder(
    profile: HardwareProfile, override: EncoderOverride | None = None
) -> EncoderChoice:
    """Select the encoder backend for a batch run.

    Args:
        profile: Detected hardware profile.
        override: Optional user override; None selects automatically.

    Returns:
        EncoderChoice with primary and fallback backends.
    """
    if override is None:
        choice = select_automatic(profile)
    else:
        choice = select_forced(profile, override)

    logger.info(
        "Selected encoder: %s (fallback: %s)",
        choice.primary.value,
        choice.fallback.value if choice.fallback else "none",
        extra={"forced": choice.forced},
    )
    return choice
