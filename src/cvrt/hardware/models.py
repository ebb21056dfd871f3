"""Data models for host hardware capabilities.

The HardwareProfile is built once per process by the detector and is
treated as read-only afterwards; selection and argument building receive it
explicitly.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


class BackendKind(Enum):
    """Encode backends, in fixed candidate order."""

    NVENC = "nvenc"
    QSV = "qsv"
    VAAPI = "vaapi"
    SOFTWARE = "software"

    @property
    def is_hardware(self) -> bool:
        return self is not BackendKind.SOFTWARE


# Candidate order used for tie-breaking and exhaustive iteration
CANDIDATE_ORDER: tuple[BackendKind, ...] = (
    BackendKind.NVENC,
    BackendKind.QSV,
    BackendKind.VAAPI,
    BackendKind.SOFTWARE,
)


class CpuVendor(Enum):
    """CPU vendor as reported by the OS."""

    AMD = "amd"
    INTEL = "intel"
    UNKNOWN = "unknown"


class GpuHint(Enum):
    """Coarse GPU classification from device listings."""

    NVIDIA_DISCRETE = "nvidia_discrete"
    AMD_DISCRETE = "amd_discrete"
    AMD_INTEGRATED = "amd_integrated"
    INTEL_DISCRETE = "intel_discrete"
    INTEL_INTEGRATED = "intel_integrated"

    @property
    def is_nvidia(self) -> bool:
        return self is GpuHint.NVIDIA_DISCRETE

    @property
    def is_amd(self) -> bool:
        return self in (GpuHint.AMD_DISCRETE, GpuHint.AMD_INTEGRATED)

    @property
    def is_intel(self) -> bool:
        return self in (GpuHint.INTEL_DISCRETE, GpuHint.INTEL_INTEGRATED)


@dataclass(frozen=True)
class CpuInfo:
    """CPU vendor, logical core count and model string."""

    vendor: CpuVendor = CpuVendor.UNKNOWN
    cores: int = 1
    model: str = ""


@dataclass(frozen=True)
class BackendCapability:
    """What a single backend can do on this host.

    An unavailable backend is never eligible, whatever its feature flags say.
    """

    available: bool = False
    supports_ten_bit: bool = False
    supports_next_gen_codec: bool = False
    device_handle: str | None = None


UNAVAILABLE = BackendCapability()
SOFTWARE_CAPABILITY = BackendCapability(
    available=True, supports_ten_bit=True, supports_next_gen_codec=True
)


@dataclass(frozen=True)
class HardwareProfile:
    """Immutable snapshot of the host's encode capabilities.

    Missing backends are filled in as unavailable and SOFTWARE is always
    present and available.
    """

    cpu_vendor: CpuVendor = CpuVendor.UNKNOWN
    cpu_cores: int = 1
    gpu_hints: frozenset[GpuHint] = frozenset()
    backends: Mapping[BackendKind, BackendCapability] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        if self.cpu_cores < 1:
            raise ValueError(f"cpu_cores must be positive, got {self.cpu_cores}")

        backends = {kind: UNAVAILABLE for kind in CANDIDATE_ORDER}
        backends.update(self.backends)
        software = backends[BackendKind.SOFTWARE]
        if not software.available:
            software = SOFTWARE_CAPABILITY
        backends[BackendKind.SOFTWARE] = software

        # Frozen dataclass: bypass __setattr__ to store the normalized mapping
        object.__setattr__(self, "gpu_hints", frozenset(self.gpu_hints))
        object.__setattr__(self, "backends", MappingProxyType(backends))

    def capability(self, kind: BackendKind) -> BackendCapability:
        """Return the capability record for a backend."""
        return self.backends[kind]

    def is_available(self, kind: BackendKind) -> bool:
        return self.backends[kind].available

    @property
    def available_backends(self) -> tuple[BackendKind, ...]:
        """Available backends in candidate order."""
        return tuple(kind for kind in CANDIDATE_ORDER if self.is_available(kind))

    @classmethod
    def software_only(
        cls, cpu_vendor: CpuVendor = CpuVendor.UNKNOWN, cpu_cores: int = 1
    ) -> HardwareProfile:
        """Profile for a host with no usable GPU tooling."""
        return cls(cpu_vendor=cpu_vendor, cpu_cores=cpu_cores)
