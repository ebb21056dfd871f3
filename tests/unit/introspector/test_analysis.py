"""Tests for per-file analysis."""

from pathlib import Path

import pytest

from cvrt.domain.models import ComplexityClass
from cvrt.introspector import (
    MediaProbeError,
    analyze,
    classify_complexity,
    detect_bit_depth,
)


class TestClassifyComplexity:
    """Tests for resolution bucketing."""

    @pytest.mark.parametrize(
        ("width", "height", "expected"),
        [
            (3840, 2160, ComplexityClass.HIGH),
            (4096, 2160, ComplexityClass.HIGH),
            (1920, 1080, ComplexityClass.MEDIUM),
            (2560, 1440, ComplexityClass.MEDIUM),
            (1280, 720, ComplexityClass.LOW),
            (720, 480, ComplexityClass.LOW),
        ],
    )
    def test_buckets(self, width, height, expected):
        """Pixel counts map onto LOW/MEDIUM/HIGH."""
        assert classify_complexity(width, height) is expected

    def test_threshold_boundaries(self):
        """Thresholds are inclusive."""
        assert classify_complexity(1000, 2000) is ComplexityClass.MEDIUM
        assert classify_complexity(2000, 4000) is ComplexityClass.HIGH
        assert classify_complexity(1000, 1999) is ComplexityClass.LOW

    @pytest.mark.parametrize(
        ("width", "height"), [(None, 1080), (1920, None), (0, 1080), (1920, -1)]
    )
    def test_unknown_dimensions_are_medium(self, width, height):
        """Missing or non-positive dimensions fall back to MEDIUM."""
        assert classify_complexity(width, height) is ComplexityClass.MEDIUM

    def test_custom_thresholds(self):
        """Configured thresholds replace the defaults."""
        assert classify_complexity(1920, 1080, 100, 1_000_000) is ComplexityClass.HIGH


class TestDetectBitDepth:
    """Tests for bit depth detection."""

    @pytest.mark.parametrize(
        "pix_fmt", ["yuv420p10le", "p010le", "yuv444p12be", "gbrp10le", "p016"]
    )
    def test_high_depth_pixel_formats(self, pix_fmt):
        """High bit depth pixel formats give 10."""
        assert detect_bit_depth(pix_fmt, None) == 10

    @pytest.mark.parametrize("pix_fmt", ["yuv420p", "nv12", "yuvj420p", "", None])
    def test_eight_bit_pixel_formats(self, pix_fmt):
        """Ordinary pixel formats give 8."""
        assert detect_bit_depth(pix_fmt, None) == 8

    def test_either_signal_is_enough(self):
        """bits_per_raw_sample alone marks the stream as 10-bit."""
        assert detect_bit_depth("yuv420p", 10) == 10
        assert detect_bit_depth("yuv420p10le", 8) == 10
        assert detect_bit_depth("yuv420p", 8) == 8


class TestAnalyze:
    """Tests for analyze()."""

    def test_4k_hevc_surround(self, make_probe_result):
        """A 4K 5.1 file is HIGH complexity with one 6-channel audio stream."""
        probe = make_probe_result(
            Path("/m/a.mkv"),
            video_codec="hevc",
            width=3840,
            height=2160,
            pix_fmt="yuv420p10le",
            audio_channels=[6],
            subtitles=1,
        )

        analysis = analyze(probe, size_bytes=1000)

        assert analysis.video_codec == "hevc"
        assert analysis.complexity is ComplexityClass.HIGH
        assert analysis.is_ten_bit
        assert [(a.index, a.channels) for a in analysis.audio_streams] == [(1, 6)]
        assert analysis.video_stream_indices == (0,)
        assert analysis.subtitle_stream_indices == (2,)
        assert analysis.bitmap_subtitle_indices == ()
        assert analysis.size_bytes == 1000
        assert analysis.pixel_count == 3840 * 2160

    def test_size_read_from_disk(self, tmp_path, make_probe_result):
        """Without an explicit size the file is stat'ed."""
        path = tmp_path / "a.mkv"
        path.write_bytes(b"\x00" * 321)

        assert analyze(make_probe_result(path)).size_bytes == 321

    def test_image_subtitles_flagged(self, make_probe_result):
        """PGS subtitle streams are listed as image subtitles."""
        probe = make_probe_result(
            Path("/m/a.mkv"), subtitles=2, subtitle_codec="hdmv_pgs_subtitle"
        )

        analysis = analyze(probe, size_bytes=0)

        assert analysis.subtitle_stream_indices == (2, 3)
        assert analysis.bitmap_subtitle_indices == (2, 3)

    def test_audio_only_file(self, make_probe_result):
        """An audio-only file is analyzable with unknown dimensions."""
        analysis = analyze(make_probe_result(Path("a.mka"), video_codec=None))

        assert analysis.video_codec == ""
        assert analysis.complexity is ComplexityClass.MEDIUM
        assert analysis.pixel_count is None

    def test_no_video_no_audio_is_probe_error(self, make_probe_result):
        """A file with neither video nor audio streams is rejected."""
        probe = make_probe_result(Path("a.mkv"), video_codec=None, audio_channels=[])

        with pytest.raises(MediaProbeError):
            analyze(probe)
