"""Tests for core subprocess utilities."""

import threading
import time
from pathlib import Path

from cvrt.core.subprocess_utils import CommandResult, SubprocessRunner, format_command


class TestCommandResult:
    """Tests for CommandResult."""

    def test_ok_requires_zero_exit(self):
        """ok is True only for exit status 0."""
        assert CommandResult(args=("true",), returncode=0).ok
        assert not CommandResult(args=("false",), returncode=1).ok

    def test_timed_out_is_never_ok(self):
        """A timed-out command is not ok even with status 0."""
        assert not CommandResult(args=("x",), returncode=0, timed_out=True).ok

    def test_cancelled_is_never_ok(self):
        """A cancelled command is not ok even with status 0."""
        assert not CommandResult(args=("x",), returncode=0, cancelled=True).ok

    def test_stderr_tail_skips_blank_lines(self):
        """stderr_tail returns the last non-empty lines."""
        result = CommandResult(
            args=("ffmpeg",), returncode=1, stderr="one\n\ntwo\nthree\n\n"
        )
        assert result.stderr_tail(2) == "two\nthree"

    def test_stderr_tail_empty(self):
        """stderr_tail of empty stderr is an empty string."""
        assert CommandResult(args=("x",), returncode=1).stderr_tail() == ""


class TestSubprocessRunner:
    """Tests for SubprocessRunner against real commands."""

    def test_successful_command(self):
        """Captures stdout and status of a successful command."""
        result = SubprocessRunner().run(["echo", "hello"])

        assert result.returncode == 0
        assert result.stdout.strip() == "hello"
        assert not result.timed_out

    def test_path_args_are_converted(self):
        """Path arguments are passed as strings."""
        result = SubprocessRunner().run(["ls", Path("/")])

        assert result.ok
        assert result.args == ("ls", "/")

    def test_failure_returns_status_and_stderr(self):
        """A failing command reports its status and stderr without raising."""
        result = SubprocessRunner().run(["sh", "-c", "echo broken >&2; exit 3"])

        assert result.returncode == 3
        assert "broken" in result.stderr

    def test_missing_binary_does_not_raise(self):
        """A binary that cannot be started yields returncode -1."""
        result = SubprocessRunner().run(["/nonexistent/cvrt-test-binary"])

        assert result.returncode == -1
        assert not result.ok
        assert not result.timed_out

    def test_timeout_kills_process(self):
        """A command exceeding its timeout is terminated and flagged."""
        result = SubprocessRunner().run(["sleep", "10"], timeout=0.5)

        assert result.timed_out
        assert result.returncode == -1

    def test_stop_event_kills_running_command(self):
        """Setting the stop event terminates the command and flags it."""
        stop_event = threading.Event()
        timer = threading.Timer(0.2, stop_event.set)
        timer.start()
        start = time.monotonic()

        result = SubprocessRunner(stop_event).run(["sleep", "30"])

        timer.join()
        assert result.cancelled
        assert not result.ok
        assert result.returncode == -1
        assert time.monotonic() - start < 10

    def test_stopped_runner_starts_nothing(self):
        """Commands requested after a stop are not started."""
        stop_event = threading.Event()
        stop_event.set()

        result = SubprocessRunner(stop_event).run(["echo", "hello"])

        assert result.cancelled
        assert result.stdout == ""


def test_format_command():
    """format_command joins arguments with spaces."""
    assert format_command(["ffmpeg", "-i", Path("/a b.mkv")]) == "ffmpeg -i /a b.mkv"
