"""Whole-batch run over a directory with ffprobe/ffmpeg faked out."""

from cvrt.cli.convert import build_pipeline
from cvrt.config.loader import build_config
from cvrt.hardware.models import BackendCapability, BackendKind, HardwareProfile
from cvrt.hardware.selection import select_encoder
from cvrt.workflow import discover_files, run_batch


def test_mixed_directory(media_dir, fake_runner, make_ffprobe_json):
    """1080p stereo h264, 4K 5.1 hevc and a corrupt file on an NVENC host."""
    fake_runner.add("ffprobe", "movie.mkv", stdout=make_ffprobe_json())
    fake_runner.add(
        "ffprobe",
        "show.mp4",
        stdout=make_ffprobe_json(
            video_codec="hevc", width=3840, height=2160, audio_channels=[6]
        ),
    )
    fake_runner.add(
        "ffprobe",
        "broken.avi",
        returncode=1,
        stderr="broken.avi: Invalid data found when processing input",
    )
    fake_runner.add("-ac 2", creates_output=True)
    fake_runner.add("hevc_nvenc", creates_output=True)

    config = build_config(
        {
            "storage": {"use_ram_disk": False},
            "processing": {"min_free_space_mb": 0},
        }
    )
    profile = HardwareProfile(
        backends={
            BackendKind.NVENC: BackendCapability(
                available=True, supports_ten_bit=True
            )
        }
    )
    choice = select_encoder(profile)
    pipeline = build_pipeline(config, profile, choice, runner=fake_runner)
    files = discover_files(media_dir, config.processing.extensions)

    summary = run_batch(pipeline, files, workers=2)

    assert (summary.success, summary.failed, summary.skipped) == (2, 1, 0)
    assert summary.total == 3
    assert summary.majority_encoder is BackendKind.NVENC

    failed = [r for r in summary.results if not r.success]
    assert failed[0].source.name == "broken.avi"
    assert "Invalid data found" in failed[0].message

    downmix = fake_runner.calls_containing("-ac 2")
    assert len(downmix) == 1
    assert "0:1" in downmix[0]

    (show_encode,) = fake_runner.calls_containing("hevc_nvenc", "show.mp4")
    assert "-multipass" in show_encode
    assert "1:a" in show_encode
    (movie_encode,) = fake_runner.calls_containing("hevc_nvenc", "movie.mkv")
    assert "-multipass" not in movie_encode
    assert "0:1" in movie_encode

    assert (media_dir / "movie-converted.mkv").stat().st_size == 64
    assert (media_dir / "show-converted.mkv").stat().st_size == 64
    assert not (media_dir / "broken-converted.mkv").exists()
    assert not [p for p in media_dir.iterdir() if p.name.startswith(".cvrt-")]
