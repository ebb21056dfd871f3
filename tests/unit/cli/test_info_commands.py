"""Tests for the hardware, inspect and list CLI commands."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cvrt.cli import main
from cvrt.cli.exit_codes import ExitCode
from cvrt.hardware.models import (
    BackendCapability,
    BackendKind,
    CpuVendor,
    GpuHint,
    HardwareProfile,
)
from cvrt.introspector import FFprobeIntrospector

PROFILE = HardwareProfile(
    cpu_vendor=CpuVendor.AMD,
    cpu_cores=16,
    gpu_hints=frozenset({GpuHint.NVIDIA_DISCRETE}),
    backends={
        BackendKind.NVENC: BackendCapability(available=True, supports_ten_bit=True)
    },
)


@pytest.fixture
def detected():
    with patch(
        "cvrt.cli.hardware.detect_hardware_profile", return_value=PROFILE
    ) as detect:
        yield detect


@pytest.fixture
def probe_with(fake_runner):
    """Route the inspect command's ffprobe calls through the FakeRunner."""
    with patch(
        "cvrt.cli.inspect.FFprobeIntrospector",
        side_effect=lambda path: FFprobeIntrospector(path, runner=fake_runner),
    ):
        yield fake_runner


class TestHardwareCommand:
    def test_table(self, detected):
        result = CliRunner().invoke(main, ["hardware"])

        assert result.exit_code == 0, result.output
        assert "CPU: amd (16 cores)" in result.stdout
        assert "GPUs: nvidia_discrete" in result.stdout
        lines = result.stdout.splitlines()
        nvenc = next(line for line in lines if line.startswith("nvenc"))
        qsv = next(line for line in lines if line.startswith("qsv"))
        assert nvenc.split() == ["nvenc", "yes", "yes", "no", "102"]
        assert qsv.split()[-1] == "-"
        assert "Selected encoder: nvenc (fallback: software)" in result.stdout

    def test_json(self, detected):
        result = CliRunner().invoke(main, ["hardware", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["cpu"] == {"vendor": "amd", "cores": 16}
        assert data["backends"]["nvenc"]["score"] == 102.0
        assert data["backends"]["vaapi"]["score"] is None
        assert data["backends"]["software"]["score"] == 55.0
        assert data["selected"] == "nvenc"
        assert data["fallback"] == "software"

    def test_uses_configured_tools(self, detected, tmp_path):
        config = tmp_path / "config.toml"
        config.write_text('[tools]\nvainfo = "/opt/vainfo"\n')

        CliRunner().invoke(main, ["--config", str(config), "hardware"])

        tools = detected.call_args.args[0]
        assert tools.vainfo == "/opt/vainfo"


class TestInspectCommand:
    def test_human_output(self, probe_with, media_dir, make_ffprobe_json):
        probe_with.add(
            "ffprobe",
            stdout=make_ffprobe_json(width=3840, height=2160, audio_channels=[6]),
        )

        result = CliRunner().invoke(main, ["inspect", str(media_dir / "movie.mkv")])

        assert result.exit_code == 0, result.output
        assert "Video: h264 3840x2160 yuv420p (8-bit)" in result.stdout
        assert "Complexity: high" in result.stdout
        assert "#1: ac3, 6 channel(s)" in result.stdout
        assert "Audio handling: downmix" in result.stdout
        assert "Downmix to stereo: 1" in result.stdout

    def test_json_output(self, probe_with, media_dir, make_ffprobe_json):
        probe_with.add("ffprobe", stdout=make_ffprobe_json(audio_channels=[6, 2]))

        result = CliRunner().invoke(
            main, ["inspect", "--json", str(media_dir / "movie.mkv")]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["complexity"] == "medium"
        assert data["plan"] == {"mode": "copy", "copy": [0, 2], "downmix": []}

    def test_missing_file(self, probe_with, tmp_path):
        result = CliRunner().invoke(main, ["inspect", str(tmp_path / "nope.mkv")])

        assert result.exit_code == ExitCode.TARGET_NOT_FOUND
        assert probe_with.calls == []

    def test_probe_failure(self, probe_with, media_dir):
        probe_with.add("ffprobe", returncode=1, stderr="Invalid data found")

        result = CliRunner().invoke(
            main, ["inspect", "--json", str(media_dir / "broken.avi")]
        )

        assert result.exit_code == ExitCode.ANALYSIS_ERROR
        error = json.loads(result.stderr)["error"]
        assert error["code"] == "ANALYSIS_ERROR"
        assert "Invalid data found" in error["message"]


class TestListCommands:
    def test_formats(self):
        result = CliRunner().invoke(main, ["list", "formats"])

        assert result.exit_code == 0
        assert "mkv   muxer=matroska subtitles=copy" in result.stdout
        assert "mp4   muxer=mp4 subtitles=mov_text" in result.stdout

    def test_codecs_json(self):
        result = CliRunner().invoke(main, ["list", "codecs", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["hevc"]["software"] == "libx265"
        assert data["av1"]["nvenc"] == "av1_nvenc"
        assert data["h264"]["vaapi"] == "h264_vaapi"
