"""Subprocess utilities for external tool invocation.

This module provides the process runner used across the codebase for
consistent timeout handling, encoding and error handling when invoking
external tools like ffmpeg, ffprobe, vainfo and lspci.

Every command is started in its own session so that a timeout or a user
interrupt can terminate the whole process group, including any helper
processes the tool spawned. Because of that, Ctrl-C never reaches a child
started from a worker thread; a runner given a stop event polls it and
kills the group once the event is set.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# Seconds to wait after SIGTERM before escalating to SIGKILL
TERMINATE_GRACE_PERIOD = 5.0

# How often a running command checks its timeout and stop event
POLL_INTERVAL = 0.5


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        """True when the command exited with status 0."""
        return self.returncode == 0 and not (self.timed_out or self.cancelled)

    def stderr_tail(self, lines: int = 10) -> str:
        """Return the last non-empty lines of stderr for diagnostics."""
        kept = [line for line in self.stderr.splitlines() if line.strip()]
        return "\n".join(kept[-lines:])


class ProcessRunner(Protocol):
    """Executes external commands.

    Implementations must never raise for a missing binary or non-zero exit;
    those are reported through the returned CommandResult.
    """

    def run(
        self, args: Sequence[str | Path], timeout: float | None = None
    ) -> CommandResult:
        """Run a command to completion and capture its output."""
        ...


def format_command(args: Sequence[str | Path]) -> str:
    """Render an argument list as a single loggable string."""
    return " ".join(str(arg) for arg in args)


def _terminate_process_group(process: subprocess.Popen[str]) -> None:
    """Terminate a command's process group, escalating to SIGKILL."""
    try:
        os.killpg(process.pid, signal.SIGTERM)
    except ProcessLookupError:
        return
    try:
        process.wait(timeout=TERMINATE_GRACE_PERIOD)
    except subprocess.TimeoutExpired:
        logger.warning("Process %d ignored SIGTERM, sending SIGKILL", process.pid)
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            return
        process.wait()


class SubprocessRunner:
    """ProcessRunner backed by subprocess.Popen.

    Args:
        stop_event: When set, running commands are killed and reported as
            cancelled, and new commands are not started.
    """

    def __init__(self, stop_event: threading.Event | None = None) -> None:
        self._stop_event = stop_event

    def _stopped(self) -> bool:
        return self._stop_event is not None and self._stop_event.is_set()

    def run(
        self, args: Sequence[str | Path], timeout: float | None = None
    ) -> CommandResult:
        """Run external command with standard error handling.

        Args:
            args: Command and arguments. Path objects are converted to strings.
            timeout: Timeout in seconds, or None to wait indefinitely.

        Returns:
            CommandResult. A binary that cannot be executed yields returncode
            -1; a timeout yields returncode -1 with ``timed_out`` set, and a
            stop request returncode -1 with ``cancelled`` set.

        Raises:
            KeyboardInterrupt: Re-raised after the process group is killed.
        """
        str_args = tuple(str(arg) for arg in args)
        command_name = Path(str_args[0]).name if str_args else "unknown"

        if self._stopped():
            return CommandResult(
                args=str_args, returncode=-1, stderr="cancelled", cancelled=True
            )

        logger.debug(
            "Executing command: %s",
            " ".join(str_args),
            extra={"command": command_name, "arg_count": len(str_args)},
        )

        start_time = time.monotonic()
        try:
            process = subprocess.Popen(  # nosec B603 - args built internally
                str_args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                start_new_session=True,
            )
        except OSError as e:
            logger.debug(
                "Command could not be started: %s",
                e,
                extra={"command": command_name},
            )
            return CommandResult(args=str_args, returncode=-1, stderr=str(e))

        deadline = None if timeout is None else start_time + timeout
        try:
            while True:
                wait = POLL_INTERVAL
                if deadline is not None:
                    wait = max(0.0, min(wait, deadline - time.monotonic()))
                try:
                    stdout, stderr = process.communicate(timeout=wait)
                    break
                except subprocess.TimeoutExpired:
                    if self._stopped():
                        return self._cancel(process, str_args, command_name)
                    if deadline is not None and time.monotonic() >= deadline:
                        raise
        except subprocess.TimeoutExpired:
            _terminate_process_group(process)
            stdout, stderr = process.communicate()
            elapsed = time.monotonic() - start_time
            logger.warning(
                "Command timed out after %ss: %s",
                timeout,
                " ".join(str_args[:3]) + ("..." if len(str_args) > 3 else ""),
                extra={
                    "command": command_name,
                    "timeout_seconds": timeout,
                    "elapsed_seconds": round(elapsed, 3),
                },
            )
            return CommandResult(
                args=str_args,
                returncode=-1,
                stdout=stdout or "",
                stderr=stderr or "",
                timed_out=True,
            )
        except KeyboardInterrupt:
            logger.warning("Interrupted, terminating %s", command_name)
            _terminate_process_group(process)
            raise

        elapsed = time.monotonic() - start_time
        logger.debug(
            "Command completed",
            extra={
                "command": command_name,
                "elapsed_seconds": round(elapsed, 3),
                "returncode": process.returncode,
            },
        )
        return CommandResult(
            args=str_args,
            returncode=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
        )

    def _cancel(
        self,
        process: subprocess.Popen[str],
        str_args: tuple[str, ...],
        command_name: str,
    ) -> CommandResult:
        logger.warning("Stop requested, terminating %s", command_name)
        _terminate_process_group(process)
        stdout, stderr = process.communicate()
        return CommandResult(
            args=str_args,
            returncode=-1,
            stdout=stdout or "",
            stderr=stderr or "",
            cancelled=True,
        )
