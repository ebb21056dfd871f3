"""Shared CLI output helpers for JSON and human-readable modes.

Command results go to stdout; errors and warnings go to stderr so that
``--json`` output stays machine-readable.
"""

from __future__ import annotations

import json
import sys
from typing import Any, NoReturn

import click

from cvrt.cli.exit_codes import ExitCode


def error_payload(message: str, code: ExitCode | int) -> dict[str, Any]:
    """JSON body describing a fatal error."""
    name = code.name if isinstance(code, ExitCode) else "UNKNOWN_ERROR"
    return {"status": "failed", "error": {"code": name, "message": message}}


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Report a fatal error and exit with ``code``; never returns."""
    if json_output:
        click.echo(json.dumps(error_payload(message, code)), err=True)
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(int(code))


def warning_output(message: str, json_output: bool = False) -> None:
    """Print a warning to stderr; warnings are omitted in JSON mode."""
    if not json_output:
        click.echo(f"Warning: {message}", err=True)


def json_output_data(data: dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2))
