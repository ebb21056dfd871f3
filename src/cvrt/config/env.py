"""Typed access to CVRT_* environment variables.

EnvReader takes an optional mapping in place of os.environ so configuration
code can be exercised without touching the real environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


class EnvReader:
    """Environment variable reader with type conversion.

    Unset and empty variables both yield the caller's default. Values that
    fail to convert are logged and also yield the default, so a typo in the
    environment never aborts a run.

    Example:
        reader = EnvReader(env={"CVRT_WORKERS": "4"})
        reader.get_int("CVRT_WORKERS")  # 4
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        raw = self._env.get(var)
        return raw if raw else default

    def _convert(
        self,
        var: str,
        default: _T | None,
        convert: Callable[[str], _T],
        kind: str,
    ) -> _T | None:
        raw = self.get_str(var)
        if raw is None:
            return default
        try:
            return convert(raw.strip())
        except ValueError:
            logger.warning("Invalid %s value for %s: %s", kind, var, raw)
            return default

    def get_int(self, var: str, default: int | None = None) -> int | None:
        return self._convert(var, default, int, "integer")

    def get_float(self, var: str, default: float | None = None) -> float | None:
        return self._convert(var, default, float, "float")

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Anything outside "true", "1", "yes" and "on" reads as False."""
        return self._convert(
            var, default, lambda raw: raw.casefold() in _TRUE_VALUES, "boolean"
        )

    def get_path(
        self, var: str, must_exist: bool = True, default: Path | None = None
    ) -> Path | None:
        """Read a path, expanding ``~``.

        With ``must_exist`` a path that is not there is reported and
        replaced by ``default``.
        """
        raw = self.get_str(var)
        if raw is None:
            return default

        path = Path(raw).expanduser()
        if must_exist and not path.exists():
            logger.warning("%s points to a missing path: %s", var, raw)
            return default
        return path
