"""Tests for the convert CLI command."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cvrt.cli import main
from cvrt.cli.exit_codes import ExitCode
from cvrt.hardware.models import BackendCapability, BackendKind, HardwareProfile
from cvrt.workflow.results import BatchSummary

NVENC_PROFILE = HardwareProfile(
    backends={
        BackendKind.NVENC: BackendCapability(available=True, supports_ten_bit=True)
    }
)


@pytest.fixture(autouse=True)
def no_ram_disk(monkeypatch):
    monkeypatch.setenv("CVRT_USE_RAM_DISK", "false")
    monkeypatch.setenv("CVRT_MIN_FREE_SPACE_MB", "0")


@pytest.fixture
def host(fake_runner, make_ffprobe_json):
    """Patch hardware detection and subprocesses for the convert command."""
    fake_runner.add("ffprobe", "movie.mkv", stdout=make_ffprobe_json())
    fake_runner.add(
        "ffprobe", "show.mp4", stdout=make_ffprobe_json(audio_channels=[6])
    )
    fake_runner.add("-ac 2", creates_output=True)
    fake_runner.add("hevc_nvenc", creates_output=True)
    fake_runner.add("libx265", creates_output=True)
    with (
        patch(
            "cvrt.cli.convert.detect_hardware_profile", return_value=NVENC_PROFILE
        ) as detect,
        patch("cvrt.cli.convert.SubprocessRunner", return_value=fake_runner),
        patch("cvrt.cli.convert.find_missing_tools", return_value=[]),
    ):
        yield detect


class TestConvertCommand:
    def test_text_output(self, host, media_dir):
        result = CliRunner().invoke(main, ["convert", str(media_dir)])

        assert result.exit_code == 0, result.output
        assert "[OK] movie.mkv -> movie-converted.mkv (nvenc)" in result.stdout
        assert "[OK] show.mp4 -> show-converted.mkv (nvenc)" in result.stdout
        assert "[FAILED] broken.avi: Probe failed" in result.stdout
        assert "Success: 2" in result.stdout
        assert "Failed:  1" in result.stdout
        assert "Total:   3" in result.stdout
        assert "Encoder: nvenc" in result.stdout

    def test_json_output(self, host, media_dir):
        result = CliRunner().invoke(main, ["convert", "--json", str(media_dir)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["success"] == 2
        assert data["failed"] == 1
        assert data["total"] == 3
        assert data["selected_encoder"] == "nvenc"
        assert data["fallback_encoder"] == "software"
        assert {f["status"] for f in data["files"]} == {"success", "failed"}

    def test_cpu_override(self, host, media_dir, fake_runner):
        result = CliRunner().invoke(main, ["convert", "--cpu", str(media_dir)])

        assert result.exit_code == 0, result.output
        assert fake_runner.calls_containing("hevc_nvenc") == []
        assert len(fake_runner.calls_containing("libx265")) == 2

    def test_unavailable_override_warns(self, host, media_dir, fake_runner):
        result = CliRunner().invoke(main, ["convert", "--vaapi", str(media_dir)])

        assert result.exit_code == 0, result.output
        assert "VAAPI requested but not available" in result.stderr
        assert "(software)" in result.stdout

    def test_codec_format_and_workers(self, host, media_dir, fake_runner):
        fake_runner.add("h264_nvenc", creates_output=True)

        result = CliRunner().invoke(
            main,
            [
                "convert",
                "--codec",
                "h264",
                "--format",
                "mp4",
                "--workers",
                "2",
                "--quality",
                "30",
                str(media_dir),
            ],
        )

        assert result.exit_code == 0, result.output
        encode = fake_runner.calls_containing("h264_nvenc", "movie.mkv")[0]
        assert "mov_text" in encode
        assert "30" in encode
        assert (media_dir / "movie-converted.mp4").exists()

    def test_threads(self, host, media_dir, fake_runner):
        result = CliRunner().invoke(
            main, ["convert", "--threads", "6", str(media_dir)]
        )

        assert result.exit_code == 0, result.output
        encode = fake_runner.calls_containing("hevc_nvenc", "movie.mkv")[0]
        assert encode[encode.index("-threads") + 1] == "6"

    def test_replace(self, host, media_dir):
        result = CliRunner().invoke(main, ["convert", "-r", str(media_dir)])

        assert result.exit_code == 0, result.output
        assert (media_dir / "show.mkv").exists()
        assert not (media_dir / "show.mp4").exists()
        assert (media_dir / "movie.mkv").stat().st_size == 64

    def test_empty_directory(self, host, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()

        result = CliRunner().invoke(main, ["convert", str(empty)])

        assert result.exit_code == 0
        assert "No media files found" in result.stdout
        assert "Total:   0" in result.stdout

    def test_interrupted_exit_code(self, host, media_dir):
        summary = BatchSummary(
            success=1, failed=0, skipped=0, majority_encoder=None, interrupted=True
        )
        with patch("cvrt.cli.convert.run_batch", return_value=summary):
            result = CliRunner().invoke(main, ["convert", str(media_dir)])

        assert result.exit_code == ExitCode.INTERRUPTED
        assert "Interrupted" in result.stdout


class TestConvertErrors:
    def test_mutually_exclusive_overrides(self, host, media_dir):
        result = CliRunner().invoke(
            main, ["convert", "--gpu", "--cpu", str(media_dir)]
        )

        assert result.exit_code == 2
        assert "mutually exclusive" in result.output
        host.assert_not_called()

    def test_missing_directory(self, host, tmp_path):
        result = CliRunner().invoke(main, ["convert", str(tmp_path / "nope")])

        assert result.exit_code == ExitCode.TARGET_NOT_FOUND
        assert "Directory not found" in result.stderr

    def test_missing_directory_json(self, host, tmp_path):
        result = CliRunner().invoke(
            main, ["convert", "--json", str(tmp_path / "nope")]
        )

        assert result.exit_code == ExitCode.TARGET_NOT_FOUND
        error = json.loads(result.stderr)["error"]
        assert error["code"] == "TARGET_NOT_FOUND"

    def test_unknown_profile(self, host, media_dir):
        result = CliRunner().invoke(
            main, ["convert", "--profile", "ghost", str(media_dir)]
        )

        assert result.exit_code == ExitCode.PROFILE_NOT_FOUND
        assert "Profile not found: ghost" in result.stderr

    def test_profile_applied(self, host, media_dir, cvrt_data_dir, fake_runner):
        profiles = cvrt_data_dir / "profiles"
        profiles.mkdir()
        (profiles / "archive.yaml").write_text("encoding:\n  quality: 17\n")

        result = CliRunner().invoke(
            main, ["convert", "--profile", "archive", str(media_dir)]
        )

        assert result.exit_code == 0, result.output
        encode = fake_runner.calls_containing("hevc_nvenc", "movie.mkv")[0]
        assert "17" in encode

    def test_invalid_config_file(self, host, media_dir, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text("[encoding]\nquality = 99\n")

        result = CliRunner().invoke(
            main, ["--config", str(config), "convert", str(media_dir)]
        )

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "validation failed" in result.stderr

    def test_invalid_workers(self, host, media_dir):
        result = CliRunner().invoke(
            main, ["convert", "--workers", "0", str(media_dir)]
        )

        assert result.exit_code == 2

    def test_missing_tools(self, host, media_dir, fake_runner):
        with patch(
            "cvrt.cli.convert.find_missing_tools", return_value=["ffmpeg", "ffprobe"]
        ):
            result = CliRunner().invoke(main, ["convert", str(media_dir)])

        assert result.exit_code == ExitCode.TOOL_NOT_AVAILABLE
        assert "Missing required tools: ffmpeg, ffprobe" in result.stderr
        assert fake_runner.calls == []
        host.assert_not_called()

    def test_missing_tools_json(self, host, media_dir):
        with patch("cvrt.cli.convert.find_missing_tools", return_value=["ffprobe"]):
            result = CliRunner().invoke(main, ["convert", "--json", str(media_dir)])

        assert result.exit_code == 30
        error = json.loads(result.stderr)["error"]
        assert error["code"] == "TOOL_NOT_AVAILABLE"
