"""Exit codes for cvrt CLI commands.

Exit code ranges:
    0: Success (including batches where individual files failed)
    1-9: General errors
    10-19: Validation errors (config, profile, arguments)
    20-29: Target/file errors
    30-39: Tool errors
    50-59: Analysis errors
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for cvrt CLI commands."""

    SUCCESS = 0

    GENERAL_ERROR = 1
    INTERRUPTED = 2  # Ctrl+C

    CONFIG_ERROR = 11
    PROFILE_NOT_FOUND = 12

    TARGET_NOT_FOUND = 20

    TOOL_NOT_AVAILABLE = 30

    ANALYSIS_ERROR = 50
