"""Per-backend video encoder arguments.

Builds the ffmpeg video-encoder options for one backend from the target
codec, the file's complexity class and bit depth, the quality setting and
the host's hardware profile. Options that must precede the inputs (VAAPI
device initialisation) are kept apart from the output options.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cvrt.config.models import EncodingConfig
from cvrt.domain.models import ComplexityClass, MediaFileAnalysis
from cvrt.hardware.models import BackendKind, CpuVendor, GpuHint, HardwareProfile

logger = logging.getLogger(__name__)

ENCODERS: dict[str, dict[BackendKind, str]] = {
    "hevc": {
        BackendKind.NVENC: "hevc_nvenc",
        BackendKind.QSV: "hevc_qsv",
        BackendKind.VAAPI: "hevc_vaapi",
        BackendKind.SOFTWARE: "libx265",
    },
    "h264": {
        BackendKind.NVENC: "h264_nvenc",
        BackendKind.QSV: "h264_qsv",
        BackendKind.VAAPI: "h264_vaapi",
        BackendKind.SOFTWARE: "libx264",
    },
    "av1": {
        BackendKind.NVENC: "av1_nvenc",  # RTX 40 series only
        BackendKind.QSV: "av1_qsv",  # Intel Arc / newer iGPU
        BackendKind.VAAPI: "av1_vaapi",
        BackendKind.SOFTWARE: "libaom-av1",
    },
}

# codec -> (8-bit profile, 10-bit profile); None omits -profile:v
_PROFILES: dict[str, tuple[str | None, str | None]] = {
    "hevc": ("main", "main10"),
    "h264": ("high", None),
    "av1": (None, None),
}
# Codecs whose 10-bit output is not attempted
_EIGHT_BIT_ONLY = frozenset({"h264"})

_NVENC_PRESETS: dict[ComplexityClass, tuple[str, ...]] = {
    ComplexityClass.HIGH: ("-preset", "p4", "-rc", "vbr", "-multipass", "2"),
    ComplexityClass.MEDIUM: ("-preset", "p3", "-rc", "vbr"),
    ComplexityClass.LOW: ("-preset", "p2", "-rc", "vbr"),
}
_QSV_PRESETS: dict[ComplexityClass, tuple[str, ...]] = {
    ComplexityClass.HIGH: ("-preset", "veryslow", "-look_ahead", "1"),
    ComplexityClass.MEDIUM: ("-preset", "medium", "-look_ahead", "1"),
    ComplexityClass.LOW: ("-preset", "fast"),
}
# (b-frames, reference frames)
_VAAPI_AMD_FRAMES: dict[ComplexityClass, tuple[int, int]] = {
    ComplexityClass.HIGH: (3, 3),
    ComplexityClass.MEDIUM: (2, 2),
    ComplexityClass.LOW: (0, 1),
}
_SOFTWARE_PRESETS: dict[ComplexityClass, str] = {
    ComplexityClass.HIGH: "slow",
    ComplexityClass.MEDIUM: "medium",
    ComplexityClass.LOW: "fast",
}
_AOM_CPU_USED: dict[ComplexityClass, str] = {
    ComplexityClass.HIGH: "4",
    ComplexityClass.MEDIUM: "6",
    ComplexityClass.LOW: "8",
}


class UnsupportedEncodeError(Exception):
    """The backend cannot produce the requested output on this host."""

    pass


@dataclass(frozen=True)
class EncoderArgs:
    """ffmpeg options selecting and tuning one video encoder."""

    backend: BackendKind
    encoder: str
    global_args: tuple[str, ...] = ()
    """Options placed before the first input."""

    output_args: tuple[str, ...] = ()
    """Options placed with the output (codec, profile, rate control)."""

    ten_bit: bool = False


def _profile_args(codec: str, ten_bit: bool) -> list[str]:
    profile = _PROFILES[codec][1 if ten_bit else 0]
    return ["-profile:v", profile] if profile else []


def _nvenc_args(
    codec: str, ten_bit: bool, complexity: ComplexityClass, encoding: EncodingConfig
) -> list[str]:
    args = _profile_args(codec, ten_bit)
    args += ["-pix_fmt", "p010le" if ten_bit else "yuv420p"]
    args += ["-cq", str(encoding.quality), *_NVENC_PRESETS[complexity]]
    args += [
        "-b:v",
        "0",
        "-maxrate",
        encoding.max_bitrate,
        "-bufsize",
        encoding.buffer_size,
        "-spatial_aq",
        "1",
        "-temporal_aq",
        "1",
    ]
    return args


def _qsv_args(
    codec: str, ten_bit: bool, complexity: ComplexityClass, encoding: EncodingConfig
) -> list[str]:
    args = _profile_args(codec, ten_bit)
    args += ["-pix_fmt", "p010le" if ten_bit else "nv12"]
    args += ["-global_quality", str(encoding.quality), *_QSV_PRESETS[complexity]]
    if codec == "hevc":
        args += ["-load_plugin", "hevc_hw"]
    return args


def _vaapi_args(
    codec: str,
    ten_bit: bool,
    complexity: ComplexityClass,
    encoding: EncodingConfig,
    hints: frozenset[GpuHint],
) -> list[str]:
    upload = "format=p010le,hwupload" if ten_bit else "format=nv12,hwupload"
    args = ["-vf", upload, *_profile_args(codec, ten_bit)]
    args += ["-qp", str(encoding.quality), "-g", "250", "-keyint_min", "25"]

    if any(h.is_amd for h in hints):
        bframes, refs = _VAAPI_AMD_FRAMES[complexity]
        args += ["-quality", "1", "-compression_level", "1"]
    elif any(h.is_intel for h in hints):
        bframes, refs = (4, 4) if complexity is ComplexityClass.HIGH else (2, 2)
        args += ["-quality", "4"]
    else:
        return args
    args += ["-bf", str(bframes), "-refs", str(refs)]
    return args


def x265_params(
    complexity: ComplexityClass, cores: int, vendor: CpuVendor
) -> tuple[str, str]:
    """Return (preset, x265-params) for libx265.

    High-complexity sources get more frame threads on bigger machines; AMD
    hosts let x265 spread thread pools across all NUMA nodes.
    """
    pools = "+" if vendor is CpuVendor.AMD else str(cores)
    if complexity is ComplexityClass.HIGH:
        if cores > 12:
            return "slow", f"pools={pools}:frame-threads=4"
        if cores > 8:
            return "medium", f"pools={pools}:frame-threads=3"
        return "medium", f"pools={pools}:frame-threads=2"
    return _SOFTWARE_PRESETS[complexity], f"pools={pools}"


def _software_args(
    codec: str,
    ten_bit: bool,
    complexity: ComplexityClass,
    encoding: EncodingConfig,
    profile: HardwareProfile,
) -> list[str]:
    pix_fmt = "yuv420p10le" if ten_bit else "yuv420p"
    if codec == "hevc":
        preset, params = x265_params(complexity, profile.cpu_cores, profile.cpu_vendor)
        return [
            *_profile_args(codec, ten_bit),
            "-pix_fmt",
            pix_fmt,
            "-crf",
            str(encoding.quality),
            "-preset",
            preset,
            "-x265-params",
            params,
        ]
    if codec == "h264":
        return [
            *_profile_args(codec, ten_bit),
            "-pix_fmt",
            pix_fmt,
            "-crf",
            str(encoding.quality),
            "-preset",
            _SOFTWARE_PRESETS[complexity],
        ]
    return [
        "-pix_fmt",
        pix_fmt,
        "-crf",
        str(encoding.quality),
        "-b:v",
        "0",
        "-cpu-used",
        _AOM_CPU_USED[complexity],
        "-row-mt",
        "1",
    ]


def build_encoder_args(
    backend: BackendKind,
    analysis: MediaFileAnalysis,
    profile: HardwareProfile,
    encoding: EncodingConfig,
) -> EncoderArgs:
    """Build the encoder options for one backend and one file.

    Args:
        backend: Backend to encode with.
        analysis: The source file's analysis (complexity, bit depth).
        profile: Host hardware profile (feature flags, device, CPU).
        encoding: Encoding settings (codec, quality, bitrate caps).

    Raises:
        UnsupportedEncodeError: If the backend is unavailable, cannot encode
            the target codec, or lacks a required device.
    """
    codec = encoding.video_codec
    if codec not in ENCODERS:
        raise UnsupportedEncodeError(f"Unknown target codec: {codec}")

    capability = profile.capability(backend)
    if not capability.available:
        raise UnsupportedEncodeError(f"{backend.value} is not available")
    if codec == "av1" and not capability.supports_next_gen_codec:
        raise UnsupportedEncodeError(f"{backend.value} cannot encode AV1 here")

    ten_bit = (
        analysis.is_ten_bit
        and capability.supports_ten_bit
        and codec not in _EIGHT_BIT_ONLY
    )
    if analysis.is_ten_bit and not ten_bit:
        logger.info(
            "10-bit source %s will be encoded as 8-bit with %s",
            analysis.path.name,
            backend.value,
        )

    encoder = ENCODERS[codec][backend]
    global_args: list[str] = []
    complexity = analysis.complexity

    if backend is BackendKind.NVENC:
        options = _nvenc_args(codec, ten_bit, complexity, encoding)
    elif backend is BackendKind.QSV:
        options = _qsv_args(codec, ten_bit, complexity, encoding)
    elif backend is BackendKind.VAAPI:
        if not capability.device_handle:
            raise UnsupportedEncodeError("No VAAPI render device detected")
        global_args = [
            "-init_hw_device",
            f"vaapi=hw:{capability.device_handle}",
            "-filter_hw_device",
            "hw",
        ]
        options = _vaapi_args(codec, ten_bit, complexity, encoding, profile.gpu_hints)
    else:
        options = _software_args(codec, ten_bit, complexity, encoding, profile)

    output_args = ["-c:v", encoder, *options]
    if encoding.threads > 0:
        output_args += ["-threads", str(encoding.threads)]

    return EncoderArgs(
        backend=backend,
        encoder=encoder,
        global_args=tuple(global_args),
        output_args=tuple(output_args),
        ten_bit=ten_bit,
    )
