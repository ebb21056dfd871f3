"""Hardware capability detection.

Builds a HardwareProfile from read-only system queries (``/proc/cpuinfo``,
``lspci``, ``nvidia-smi``, ``vainfo``) and short synthetic test encodes
through ffmpeg. Every probe failure (non-zero exit, timeout, missing binary)
means "capability absent"; detection itself never raises.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from cvrt.core.subprocess_utils import ProcessRunner, SubprocessRunner
from cvrt.hardware.models import (
    SOFTWARE_CAPABILITY,
    UNAVAILABLE,
    BackendCapability,
    BackendKind,
    CpuInfo,
    CpuVendor,
    GpuHint,
    HardwareProfile,
)

if TYPE_CHECKING:
    from cvrt.config.models import ToolPathsConfig

logger = logging.getLogger(__name__)

# Timeout for detection commands (seconds)
DETECTION_TIMEOUT = 10

DEFAULT_CPUINFO_PATH = Path("/proc/cpuinfo")
DEFAULT_DRI_DIR = Path("/dev/dri")

# One-second synthetic source used for test encodes
TEST_SOURCE = "testsrc2=duration=1:size=320x240:rate=1"

_GPU_LINE = re.compile(r"\b(vga|3d|display)\b", re.IGNORECASE)
_AMD_VENDOR = re.compile(r"\b(amd|ati|radeon)\b", re.IGNORECASE)
_INTEL_DISCRETE = re.compile(r"\b(arc|dg1|dg2)\b", re.IGNORECASE)
# Codenames of AMD APU graphics blocks as they appear in lspci output
_AMD_APU = re.compile(
    r"renoir|cezanne|lucienne|barcelo|rembrandt|phoenix|hawk point|raphael|"
    r"raven|picasso|dali|mendocino|van gogh|strix",
    re.IGNORECASE,
)
# Ryzen model names with integrated graphics ("Ryzen 5 5600G", "Radeon Graphics")
_AMD_CPU_IGPU = re.compile(r"radeon|ryzen\s+\d\s+\d{4}g", re.IGNORECASE)

_VAAPI_HEVC_ENCODE = re.compile(r"VAProfileHEVCMain\s*:\s*VAEntrypointEncSlice")
_VAAPI_HEVC10_ENCODE = re.compile(r"VAProfileHEVCMain10\s*:\s*VAEntrypointEncSlice")
_VAAPI_AV1_ENCODE = re.compile(r"VAProfileAV1Profile0\s*:\s*VAEntrypointEncSlice")


def parse_cpuinfo(text: str) -> tuple[CpuVendor, str]:
    """Extract vendor and model name from /proc/cpuinfo contents."""
    vendor_id = ""
    model = ""
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if key == "vendor_id" and not vendor_id:
            vendor_id = value.strip()
        elif key == "model name" and not model:
            model = value.strip()
        if vendor_id and model:
            break

    haystack = f"{vendor_id} {model}".casefold()
    if "authenticamd" in haystack or "amd" in haystack:
        return CpuVendor.AMD, model
    if "genuineintel" in haystack or "intel" in haystack:
        return CpuVendor.INTEL, model
    return CpuVendor.UNKNOWN, model


def classify_gpu_line(line: str) -> GpuHint | None:
    """Classify one lspci line into a GPU hint, or None if not a GPU."""
    if not _GPU_LINE.search(line):
        return None

    lowered = line.casefold()
    if "nvidia" in lowered:
        return GpuHint.NVIDIA_DISCRETE
    if _AMD_VENDOR.search(line):
        if _AMD_APU.search(line):
            return GpuHint.AMD_INTEGRATED
        return GpuHint.AMD_DISCRETE
    if "intel" in lowered:
        if _INTEL_DISCRETE.search(line):
            return GpuHint.INTEL_DISCRETE
        return GpuHint.INTEL_INTEGRATED
    return None


def parse_vainfo(output: str) -> tuple[bool, bool, bool]:
    """Parse vainfo output into (hevc_encode, ten_bit, av1) flags."""
    return (
        bool(_VAAPI_HEVC_ENCODE.search(output)),
        bool(_VAAPI_HEVC10_ENCODE.search(output)),
        bool(_VAAPI_AV1_ENCODE.search(output)),
    )


class HardwareCapabilityDetector:
    """Probes the host for available encode backends.

    Args:
        runner: Process runner used for every external command.
        ffmpeg_path: ffmpeg binary used for NVENC/QSV test encodes.
        vainfo_path: vainfo binary used for VAAPI device queries.
        lspci_path: lspci binary used for GPU enumeration.
        nvidia_smi_path: nvidia-smi binary, an extra NVIDIA signal.
        cpuinfo_path: Location of the cpuinfo file.
        dri_dir: Directory containing DRM render nodes.
        timeout: Timeout for each detection command in seconds.
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        ffmpeg_path: str | Path = "ffmpeg",
        vainfo_path: str | Path = "vainfo",
        lspci_path: str | Path = "lspci",
        nvidia_smi_path: str | Path = "nvidia-smi",
        cpuinfo_path: Path = DEFAULT_CPUINFO_PATH,
        dri_dir: Path = DEFAULT_DRI_DIR,
        timeout: float = DETECTION_TIMEOUT,
    ) -> None:
        self._runner = runner if runner is not None else SubprocessRunner()
        self._ffmpeg = str(ffmpeg_path)
        self._vainfo = str(vainfo_path)
        self._lspci = str(lspci_path)
        self._nvidia_smi = str(nvidia_smi_path)
        self._cpuinfo_path = cpuinfo_path
        self._dri_dir = dri_dir
        self._timeout = timeout

    def detect_cpu(self) -> CpuInfo:
        """Read CPU vendor and logical core count. Never fails."""
        vendor, model = CpuVendor.UNKNOWN, ""
        try:
            text = self._cpuinfo_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Cannot read %s: %s", self._cpuinfo_path, e)
        else:
            vendor, model = parse_cpuinfo(text)

        cores = os.cpu_count() or 1
        logger.debug("Detected CPU: %s (%s), %d cores", vendor.value, model, cores)
        return CpuInfo(vendor=vendor, cores=max(cores, 1), model=model)

    def detect_gpus(self, cpu: CpuInfo | None = None) -> frozenset[GpuHint]:
        """Classify GPUs from lspci, nvidia-smi and the CPU model string.

        An empty result is not an error.
        """
        hints: set[GpuHint] = set()

        result = self._runner.run([self._lspci], timeout=self._timeout)
        if result.ok:
            for line in result.stdout.splitlines():
                hint = classify_gpu_line(line)
                if hint is not None:
                    logger.debug("GPU device: %s -> %s", line.strip(), hint.value)
                    hints.add(hint)
        else:
            logger.debug("lspci unavailable (exit %d)", result.returncode)

        if GpuHint.NVIDIA_DISCRETE not in hints:
            smi = self._runner.run(
                [self._nvidia_smi, "--query-gpu=name", "--format=csv,noheader"],
                timeout=self._timeout,
            )
            if smi.ok and smi.stdout.strip():
                logger.debug("nvidia-smi reports: %s", smi.stdout.strip())
                hints.add(GpuHint.NVIDIA_DISCRETE)

        if (
            cpu is not None
            and cpu.vendor is CpuVendor.AMD
            and _AMD_CPU_IGPU.search(cpu.model)
        ):
            hints.add(GpuHint.AMD_INTEGRATED)

        return frozenset(hints)

    def _test_encode(self, encoder: str, extra: Iterable[str] = ()) -> bool:
        cmd = [
            self._ffmpeg,
            "-hide_banner",
            "-v",
            "error",
            "-f",
            "lavfi",
            "-i",
            TEST_SOURCE,
            "-frames:v",
            "1",
            "-c:v",
            encoder,
            *extra,
            "-f",
            "null",
            "-",
        ]
        result = self._runner.run(cmd, timeout=self._timeout)
        if not result.ok:
            logger.debug(
                "Test encode with %s failed: %s", encoder, result.stderr_tail(3)
            )
        return result.ok

    def _probe_test_encodes(self, suffix: str) -> BackendCapability:
        """Run baseline, 10-bit and AV1 test encodes for nvenc/qsv.

        Each test stands alone; the 10-bit and AV1 tests only refine an
        available backend.
        """
        if not self._test_encode(f"hevc_{suffix}"):
            return UNAVAILABLE
        ten_bit = self._test_encode(
            f"hevc_{suffix}", ["-profile:v", "main10", "-pix_fmt", "p010le"]
        )
        av1 = self._test_encode(f"av1_{suffix}")
        return BackendCapability(
            available=True, supports_ten_bit=ten_bit, supports_next_gen_codec=av1
        )

    def _render_devices(self) -> list[Path]:
        try:
            return sorted(self._dri_dir.glob("renderD*"))
        except OSError as e:
            logger.debug("Cannot list %s: %s", self._dri_dir, e)
            return []

    def _probe_vaapi(self) -> BackendCapability:
        for device in self._render_devices():
            result = self._runner.run(
                [self._vainfo, "--display", "drm", "--device", str(device)],
                timeout=self._timeout,
            )
            if not result.ok:
                logger.debug("vainfo failed for %s", device)
                continue
            # vainfo prints its profile table on stdout or stderr by version
            hevc, ten_bit, av1 = parse_vainfo(result.stdout + result.stderr)
            if hevc:
                return BackendCapability(
                    available=True,
                    supports_ten_bit=ten_bit,
                    supports_next_gen_codec=av1,
                    device_handle=str(device),
                )
            logger.debug("%s has no HEVC encode entrypoint", device)
        return UNAVAILABLE

    def probe_backend(
        self, kind: BackendKind, hints: frozenset[GpuHint] = frozenset()
    ) -> BackendCapability:
        """Probe a single backend, gated by the GPU hints that make it plausible."""
        if kind is BackendKind.SOFTWARE:
            return SOFTWARE_CAPABILITY
        if kind is BackendKind.NVENC:
            if not any(h.is_nvidia for h in hints):
                return UNAVAILABLE
            return self._probe_test_encodes("nvenc")
        if kind is BackendKind.QSV:
            if not any(h.is_intel for h in hints):
                return UNAVAILABLE
            return self._probe_test_encodes("qsv")
        if not any(h.is_amd or h.is_intel for h in hints):
            return UNAVAILABLE
        return self._probe_vaapi()

    def detect(self) -> HardwareProfile:
        """Run every probe and assemble the profile."""
        cpu = self.detect_cpu()
        hints = self.detect_gpus(cpu)
        backends = {kind: self.probe_backend(kind, hints) for kind in BackendKind}

        profile = HardwareProfile(
            cpu_vendor=cpu.vendor,
            cpu_cores=cpu.cores,
            gpu_hints=hints,
            backends=backends,
        )
        logger.info(
            "Hardware detected: cpu=%s cores=%d gpus=[%s] backends=[%s]",
            cpu.vendor.value,
            cpu.cores,
            ", ".join(sorted(h.value for h in hints)),
            ", ".join(k.value for k in profile.available_backends),
        )
        return profile


def detect_hardware_profile(
    tools: ToolPathsConfig | None = None,
    runner: ProcessRunner | None = None,
) -> HardwareProfile:
    """Build a detector from configured tool paths and run it once."""
    if tools is None:
        return HardwareCapabilityDetector(runner).detect()
    return HardwareCapabilityDetector(
        runner,
        ffmpeg_path=tools.ffmpeg,
        vainfo_path=tools.vainfo,
        lspci_path=tools.lspci,
        nvidia_smi_path=tools.nvidia_smi,
        timeout=tools.detection_timeout,
    ).detect()


def find_missing_tools(tools: ToolPathsConfig) -> list[str]:
    """Return the configured ffmpeg/ffprobe entries that cannot be executed.

    Each entry may be a bare name looked up on PATH or a path to the binary.
    """
    missing = []
    for configured in (tools.ffmpeg, tools.ffprobe):
        if shutil.which(configured) is None:
            logger.debug("Required tool not found: %s", configured)
            missing.append(configured)
    return missing
