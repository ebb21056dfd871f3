"""Hardware capability detection and encoder backend selection."""

from cvrt.hardware.detection import (
    HardwareCapabilityDetector,
    detect_hardware_profile,
    find_missing_tools,
)
from cvrt.hardware.models import (
    BackendCapability,
    BackendKind,
    CpuInfo,
    CpuVendor,
    GpuHint,
    HardwareProfile,
)
from cvrt.hardware.selection import (
    EncoderChoice,
    EncoderOverride,
    score_backend,
    select_encoder,
)

__all__ = [
    "BackendCapability",
    "BackendKind",
    "CpuInfo",
    "CpuVendor",
    "EncoderChoice",
    "EncoderOverride",
    "GpuHint",
    "HardwareCapabilityDetector",
    "HardwareProfile",
    "detect_hardware_profile",
    "find_missing_tools",
    "score_backend",
    "select_encoder",
]
