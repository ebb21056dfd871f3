"""Shared test fixtures for cvrt."""

import json
import logging
import os
from collections.abc import Callable, Sequence
from pathlib import Path
from unittest.mock import patch

import pytest

from cvrt.core.subprocess_utils import CommandResult
from cvrt.domain.models import ProbeResult, StreamInfo, StreamType
from cvrt.introspector.interface import MediaProbeError


class FakeRunner:
    """ProcessRunner returning canned results.

    Rules are matched in the order they were added; a rule matches when
    every one of its needles occurs in the space-joined command line.
    Unmatched commands fail with ``default_returncode``.
    """

    def __init__(self, default_returncode: int = 1) -> None:
        self.default_returncode = default_returncode
        self.rules: list[tuple[tuple[str, ...], CommandResult, bool]] = []
        self.calls: list[tuple[str, ...]] = []

    def add(
        self,
        *needles: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        timed_out: bool = False,
        cancelled: bool = False,
        creates_output: bool = False,
    ) -> "FakeRunner":
        """Register a canned result.

        ``creates_output`` writes a few bytes to the command's last argument,
        standing in for the file ffmpeg would produce.
        """
        result = CommandResult(
            args=(),
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
            cancelled=cancelled,
        )
        self.rules.append((needles, result, creates_output))
        return self

    def run(self, args: Sequence, timeout: float | None = None) -> CommandResult:
        str_args = tuple(str(arg) for arg in args)
        self.calls.append(str_args)
        joined = " ".join(str_args)
        for needles, result, creates_output in self.rules:
            if all(needle in joined for needle in needles):
                if creates_output:
                    Path(str_args[-1]).write_bytes(b"\x00" * 64)
                return CommandResult(
                    args=str_args,
                    returncode=result.returncode,
                    stdout=result.stdout,
                    stderr=result.stderr,
                    timed_out=result.timed_out,
                    cancelled=result.cancelled,
                )
        return CommandResult(
            args=str_args, returncode=self.default_returncode, stderr="not found"
        )

    def calls_containing(self, *needles: str) -> list[tuple[str, ...]]:
        return [
            call for call in self.calls if all(n in " ".join(call) for n in needles)
        ]


class FakeProbe:
    """MediaProbe returning canned results keyed by file name."""

    def __init__(self, results: dict[str, ProbeResult | Exception]) -> None:
        self.results = results
        self.inspected: list[Path] = []

    def inspect(self, path: Path) -> ProbeResult:
        self.inspected.append(path)
        result = self.results.get(path.name)
        if result is None:
            raise MediaProbeError(f"File not found: {path}")
        if isinstance(result, Exception):
            raise result
        return result


def build_probe_result(
    path: Path,
    video_codec: str | None = "h264",
    width: int | None = 1920,
    height: int | None = 1080,
    pix_fmt: str | None = "yuv420p",
    bits_per_raw_sample: int | None = None,
    audio_channels: Sequence[int] = (2,),
    subtitles: int = 0,
    subtitle_codec: str = "subrip",
    duration: float | None = 600.0,
) -> ProbeResult:
    """Build a ProbeResult: video at index 0, then audio, then subtitles."""
    streams: list[StreamInfo] = []
    if video_codec is not None:
        streams.append(
            StreamInfo(
                index=0,
                stream_type=StreamType.VIDEO,
                codec=video_codec,
                width=width,
                height=height,
                pixel_format=pix_fmt,
                bits_per_raw_sample=bits_per_raw_sample,
            )
        )
    for channels in audio_channels:
        streams.append(
            StreamInfo(
                index=len(streams),
                stream_type=StreamType.AUDIO,
                codec="aac" if channels == 2 else "ac3",
                channels=channels,
            )
        )
    for _ in range(subtitles):
        streams.append(
            StreamInfo(
                index=len(streams),
                stream_type=StreamType.SUBTITLE,
                codec=subtitle_codec,
            )
        )
    return ProbeResult(
        path=path,
        container_format="matroska,webm",
        duration_seconds=duration,
        streams=tuple(streams),
    )


def ffprobe_json(
    video_codec: str = "h264",
    width: int = 1920,
    height: int = 1080,
    pix_fmt: str = "yuv420p",
    audio_channels: Sequence[int] = (2,),
    duration: str = "600.000000",
) -> str:
    """Render ffprobe ``-show_streams -show_format`` JSON output."""
    streams: list[dict] = [
        {
            "index": 0,
            "codec_name": video_codec,
            "codec_type": "video",
            "width": width,
            "height": height,
            "pix_fmt": pix_fmt,
            "disposition": {"default": 1, "attached_pic": 0},
        }
    ]
    for channels in audio_channels:
        streams.append(
            {
                "index": len(streams),
                "codec_name": "aac" if channels == 2 else "ac3",
                "codec_type": "audio",
                "channels": channels,
                "tags": {"language": "eng"},
            }
        )
    return json.dumps(
        {
            "streams": streams,
            "format": {"format_name": "matroska,webm", "duration": duration},
        }
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A FakeRunner whose unmatched commands fail."""
    return FakeRunner()


@pytest.fixture
def make_probe_result() -> Callable[..., ProbeResult]:
    """Factory building synthetic ProbeResults."""
    return build_probe_result


@pytest.fixture
def make_fake_probe() -> Callable[[dict], FakeProbe]:
    """Factory building a FakeProbe from {file name: result or exception}."""
    return FakeProbe


@pytest.fixture
def make_ffprobe_json() -> Callable[..., str]:
    """Factory rendering ffprobe JSON output."""
    return ffprobe_json


@pytest.fixture
def media_dir(tmp_path: Path) -> Path:
    """Directory with three (empty) media files plus noise to ignore."""
    directory = tmp_path / "media"
    directory.mkdir()
    for name in ("movie.mkv", "show.mp4", "broken.avi"):
        (directory / name).write_bytes(b"\x00" * 1024)
    (directory / "notes.txt").write_text("not media")
    (directory / "movie-converted.mkv").write_bytes(b"\x00")
    (directory / ".hidden.mkv").write_bytes(b"\x00")
    return directory


@pytest.fixture(autouse=True)
def cvrt_data_dir(tmp_path: Path):
    """Point CVRT_DATA_DIR at a temp directory and clear other CVRT_* vars.

    The fixture is autouse=True so no test reads the user's own config file
    or profiles.
    """
    data_dir = tmp_path / ".cvrt"
    data_dir.mkdir(parents=True, exist_ok=True)
    env = {k: v for k, v in os.environ.items() if not k.startswith("CVRT_")}
    env["CVRT_DATA_DIR"] = str(data_dir)
    with patch.dict(os.environ, env, clear=True):
        yield data_dir


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler and level changes made by configure_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
