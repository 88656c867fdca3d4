"""
Resource preflight - will this model fit before we try to load it?

Estimates runtime memory from the model's size on disk and compares it with
what the target device has free. Used by InferenceSession.load when
resources.preflight is enabled in runtime.yaml.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import psutil

from .config_loader import get_config

DRM_ROOT = Path("/sys/class/drm")

SAFE_RATIO = 0.80
TIGHT_RATIO = 0.95

SUFFICIENT = "sufficient"
WARNING = "warning"
INSUFFICIENT = "insufficient"


@dataclass(frozen=True)
class GpuResource:
    name: str
    total_vram_bytes: int
    available_vram_bytes: int


@dataclass(frozen=True)
class SystemResources:
    total_ram_bytes: int
    available_ram_bytes: int
    gpu_resources: List[GpuResource] = field(default_factory=list)


@dataclass(frozen=True)
class ResourceCheck:
    status: str
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status != INSUFFICIENT


def model_size_on_disk(model_path: Path) -> int:
    """Total size of a model file or of every file under a model directory"""
    model_path = Path(model_path)
    if model_path.is_file():
        return model_path.stat().st_size
    return sum(p.stat().st_size for p in model_path.rglob("*") if p.is_file())


def estimate_model_memory(model_path: Path, multiplier: Optional[float] = None) -> int:
    """
    Ballpark runtime memory for a model

    Weights plus KV cache and overhead come to roughly 1.5x the file size.
    """
    if multiplier is None:
        multiplier = get_config().memory_multiplier
    return int(model_size_on_disk(model_path) * multiplier)


def _read_int(path: Path) -> Optional[int]:
    try:
        return int(path.read_text().strip())
    except (OSError, ValueError):
        return None


def detect_gpu_resources(drm_root: Path = DRM_ROOT) -> List[GpuResource]:
    """Discrete GPU VRAM as reported through DRM sysfs (first card that has it)"""
    for card in range(10):
        device_dir = drm_root / f"card{card}" / "device"
        total = _read_int(device_dir / "mem_info_vram_total")
        used = _read_int(device_dir / "mem_info_vram_used")
        if total is not None and used is not None:
            return [GpuResource("GPU", total, max(total - used, 0))]
    return []


def detect_system_resources(drm_root: Path = DRM_ROOT) -> SystemResources:
    memory = psutil.virtual_memory()
    return SystemResources(
        total_ram_bytes=int(memory.total),
        available_ram_bytes=int(memory.available),
        gpu_resources=detect_gpu_resources(drm_root),
    )


def _gb(value: int) -> float:
    return value / 1_000_000_000


def validate_model_load(
    estimated_bytes: int,
    device: str,
    resources: SystemResources,
    mode: Optional[str] = None,
) -> ResourceCheck:
    """
    Compare a memory estimate with what the device has available

    Args:
        estimated_bytes: Output of estimate_model_memory()
        device: Target device selector
        resources: Output of detect_system_resources()
        mode: "strict" or "loose" (defaults to resources.mode from runtime.yaml);
            loose downgrades insufficient memory to a warning

    Returns:
        ResourceCheck with status sufficient, warning or insufficient
    """
    if mode is None:
        mode = get_config().resource_mode

    if "GPU" in device.upper():
        if not resources.gpu_resources:
            return ResourceCheck(INSUFFICIENT, "GPU not found but device is set to GPU")
        available = resources.gpu_resources[0].available_vram_bytes
        resource_name = "GPU VRAM"
    else:
        available = resources.available_ram_bytes
        resource_name = "RAM"

    if estimated_bytes <= available * SAFE_RATIO:
        return ResourceCheck(SUFFICIENT)

    if estimated_bytes <= available * TIGHT_RATIO:
        return ResourceCheck(
            WARNING,
            f"Memory is tight: need {_gb(estimated_bytes):.1f} GB, "
            f"available {_gb(available):.1f} GB {resource_name}",
        )

    message = (
        f"Insufficient memory: need {_gb(estimated_bytes):.1f} GB, "
        f"only {_gb(available):.1f} GB {resource_name} available"
    )
    if mode == "loose":
        return ResourceCheck(WARNING, message)
    return ResourceCheck(INSUFFICIENT, message)
