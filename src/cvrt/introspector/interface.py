"""MediaProbe interface for stream metadata extraction."""

from pathlib import Path
from typing import Protocol

from cvrt.domain.models import ProbeResult


class MediaProbeError(Exception):
    """Raised when a file cannot be probed (unreadable, corrupt, not media)."""

    pass


class MediaProbe(Protocol):
    """Protocol for media probe implementations."""

    def inspect(self, path: Path) -> ProbeResult:
        """Extract stream metadata from a media file.

        Args:
            path: Path to the media file.

        Returns:
            ProbeResult with per-stream metadata.

        Raises:
            MediaProbeError: If the file cannot be probed.
        """
        ...
