"""Input file discovery."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

CONVERTED_SUFFIX = "-converted"


def is_candidate(path: Path, extensions: frozenset[str]) -> bool:
    """True for visible media files that are not our own outputs."""
    if path.name.startswith("."):
        return False
    if path.suffix.casefold().lstrip(".") not in extensions:
        return False
    return not path.stem.endswith(CONVERTED_SUFFIX)


def discover_files(
    directory: Path, extensions: Iterable[str], recursive: bool = False
) -> list[Path]:
    """List convertible media files in ``directory``, sorted by path.

    Hidden files and directories, previous ``-converted`` outputs and
    in-progress temp files are skipped.
    """
    wanted = frozenset(ext.casefold().lstrip(".") for ext in extensions)
    root = directory.expanduser().resolve()
    candidates = root.rglob("*") if recursive else root.glob("*")

    files = []
    for path in candidates:
        relative = path.relative_to(root)
        if any(part.startswith(".") for part in relative.parts[:-1]):
            continue
        if path.is_file() and is_candidate(path, wanted):
            files.append(path)

    logger.debug("Discovered %d file(s) in %s", len(files), root)
    return sorted(files)
