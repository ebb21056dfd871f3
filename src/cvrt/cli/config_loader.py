"""Effective configuration for CLI commands."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import click

from cvrt.cli.exit_codes import ExitCode
from cvrt.cli.output import error_exit
from cvrt.config import (
    ConfigError,
    CvrtConfig,
    ProfileNotFoundError,
    get_config,
    load_profile,
)


def load_config_or_exit(
    ctx: click.Context,
    profile_name: str | None = None,
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
    json_output: bool = False,
) -> CvrtConfig:
    """Resolve configuration for a command, exiting on any config error.

    Global options stored on the context by ``main`` (``--config`` and the
    logging flags) are combined with the command's own overrides.
    """
    obj = ctx.find_root().obj or {}
    combined: dict[str, dict[str, Any]] = {
        section: dict(values)
        for section, values in obj.get("overrides", {}).items()
    }
    for section, values in (overrides or {}).items():
        combined.setdefault(section, {}).update(values)

    profile = None
    if profile_name:
        try:
            profile = load_profile(profile_name)
        except ProfileNotFoundError as e:
            error_exit(str(e), ExitCode.PROFILE_NOT_FOUND, json_output)
        except ConfigError as e:
            error_exit(str(e), ExitCode.CONFIG_ERROR, json_output)

    try:
        return get_config(
            config_path=obj.get("config_path"),
            profile=profile,
            overrides=combined,
        )
    except ConfigError as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR, json_output)
