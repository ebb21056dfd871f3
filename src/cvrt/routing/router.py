"""Stream routing decisions.

Surround (5.1, six channel) audio is only kept when it is the sole kind of
audio in the file, and then it is downmixed to stereo. When any other audio
track exists, every 5.1 track is dropped: it is neither copied nor
downmixed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from cvrt.domain.models import MediaFileAnalysis

logger = logging.getLogger(__name__)

SURROUND_CHANNELS = 6


class AudioMode(Enum):
    """How audio reaches the output file."""

    COPY = "copy"
    DOWNMIX = "downmix"
    NONE = "none"


@dataclass(frozen=True)
class EncodePlan:
    """Per-file stream selection.

    ``streams_to_downmix`` is non-empty only if ``streams_to_copy`` holds no
    audio stream.
    """

    streams_to_copy: frozenset[int]
    streams_to_downmix: frozenset[int]
    audio_indices: frozenset[int] = frozenset()
    """Every audio stream index in the source, for classifying the sets."""

    def __post_init__(self) -> None:
        if self.streams_to_downmix and self.copied_audio:
            raise ValueError("downmix is only allowed when no audio is copied")

    @property
    def copied_audio(self) -> frozenset[int]:
        return self.streams_to_copy & self.audio_indices

    @property
    def copy_indices(self) -> tuple[int, ...]:
        """Copied stream indices in container order."""
        return tuple(sorted(self.streams_to_copy))

    @property
    def downmix_indices(self) -> tuple[int, ...]:
        return tuple(sorted(self.streams_to_downmix))

    @property
    def mode(self) -> AudioMode:
        if self.streams_to_downmix:
            return AudioMode.DOWNMIX
        if self.copied_audio:
            return AudioMode.COPY
        return AudioMode.NONE

    @property
    def has_audio(self) -> bool:
        return self.mode is not AudioMode.NONE


def route_streams(
    analysis: MediaFileAnalysis, keep_bitmap_subtitles: bool = True
) -> EncodePlan:
    """Compute the EncodePlan for one analyzed file.

    A file without audio yields a valid video-only plan; whether that is
    worth converting is left to the caller. Image-based subtitles are left
    out when ``keep_bitmap_subtitles`` is False.
    """
    subtitles = set(analysis.subtitle_stream_indices)
    if not keep_bitmap_subtitles and analysis.bitmap_subtitle_indices:
        subtitles -= set(analysis.bitmap_subtitle_indices)
        logger.info(
            "Dropping image subtitle streams %s from %s (not supported by output)",
            list(analysis.bitmap_subtitle_indices),
            analysis.path.name,
        )
    base = set(analysis.video_stream_indices) | subtitles
    audio_indices = frozenset(a.index for a in analysis.audio_streams)
    non_surround = [
        a.index for a in analysis.audio_streams if a.channels != SURROUND_CHANNELS
    ]
    surround = [
        a.index for a in analysis.audio_streams if a.channels == SURROUND_CHANNELS
    ]

    if non_surround:
        plan = EncodePlan(
            streams_to_copy=frozenset(base | set(non_surround)),
            streams_to_downmix=frozenset(),
            audio_indices=audio_indices,
        )
        if surround:
            logger.info(
                "Dropping 5.1 audio streams %s from %s (stereo track present)",
                surround,
                analysis.path.name,
            )
    elif surround:
        plan = EncodePlan(
            streams_to_copy=frozenset(base),
            streams_to_downmix=frozenset(surround),
            audio_indices=audio_indices,
        )
    else:
        plan = EncodePlan(
            streams_to_copy=frozenset(base),
            streams_to_downmix=frozenset(),
            audio_indices=audio_indices,
        )

    logger.debug(
        "Routing for %s: copy=%s downmix=%s mode=%s",
        analysis.path.name,
        plan.copy_indices,
        plan.downmix_indices,
        plan.mode.value,
    )
    return plan
