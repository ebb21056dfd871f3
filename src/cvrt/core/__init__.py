"""Core utilities package.

Subprocess invocation and codec name helpers shared by the rest of cvrt.
"""

from cvrt.core.codecs import (
    VIDEO_CODEC_ALIASES,
    normalize_codec,
    video_codec_matches,
)
from cvrt.core.subprocess_utils import (
    CommandResult,
    ProcessRunner,
    SubprocessRunner,
    format_command,
)

__all__ = [
    "CommandResult",
    "ProcessRunner",
    "SubprocessRunner",
    "VIDEO_CODEC_ALIASES",
    "format_command",
    "normalize_codec",
    "video_codec_matches",
]
