"""CLI module for cvrt."""

import logging
from pathlib import Path

import click

from cvrt.config.models import VALID_LOG_LEVELS
from cvrt.logging import configure_logging

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="cvrt")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Config file to use instead of ~/.cvrt/config.toml.",
)
@click.option(
    "--log-level",
    type=click.Choice(VALID_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.option(
    "-d",
    "--debug",
    is_flag=True,
    default=False,
    help="Shortcut for --log-level debug.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
    debug: bool,
) -> None:
    """cvrt - Convert video libraries with the best available encoder."""
    from cvrt.cli.config_loader import load_config_or_exit

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {
        "logging": {
            "level": "debug" if debug else log_level,
            "file": log_file,
            "format": "json" if log_json else None,
        }
    }

    config = load_config_or_exit(ctx)
    configure_logging(config.logging)
    logger.debug(
        "cvrt starting: config=%s log_level=%s",
        config_path or "default",
        config.logging.level,
    )


# Defer import to avoid circular dependency
def _register_commands():
    from cvrt.cli.convert import convert_command
    from cvrt.cli.hardware import hardware_command
    from cvrt.cli.inspect import inspect_command
    from cvrt.cli.list import list_group

    main.add_command(convert_command)
    main.add_command(hardware_command)
    main.add_command(inspect_command)
    main.add_command(list_group)


_register_commands()
