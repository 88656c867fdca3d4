"""
Device discovery and selection

Finds the execution devices present on this host and picks one according to
the configured preference. The engine still has the final say when a
pipeline is constructed on the chosen device.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from .config_loader import get_config

GPU_DEVICE_NODE = Path("/dev/dri")
NPU_DEVICE_NODE = Path("/dev/accel")


class DeviceType(str, Enum):
    CPU = "CPU"
    GPU = "GPU"
    NPU = "NPU"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class DeviceInfo:
    name: str
    device_type: DeviceType
    available: bool = True


# Order used when the preference is "auto"
AUTO_PRIORITY = (DeviceType.GPU, DeviceType.NPU, DeviceType.CPU)


def detect_devices(
    gpu_node: Path = GPU_DEVICE_NODE, npu_node: Path = NPU_DEVICE_NODE
) -> List[DeviceInfo]:
    """
    List devices present on this host

    CPU is always present; GPU and NPU are detected from their device nodes.
    """
    devices = [DeviceInfo("CPU", DeviceType.CPU)]
    if gpu_node.exists():
        devices.append(DeviceInfo("GPU", DeviceType.GPU))
    if npu_node.exists():
        devices.append(DeviceInfo("NPU", DeviceType.NPU))
    return devices


def _find_by_type(devices: Sequence[DeviceInfo], device_type: DeviceType) -> Optional[str]:
    for device in devices:
        if device.device_type == device_type and device.available:
            return device.name
    return None


def select_best_device(
    devices: Sequence[DeviceInfo], preference: Optional[str] = None
) -> Optional[str]:
    """
    Choose a device name

    Args:
        devices: Candidates, usually from detect_devices()
        preference: "auto", "cpu", "gpu" or "npu" (defaults to
            engine.device_preference from runtime.yaml)

    Returns:
        Device name, or None when an explicit preference is not available
    """
    preference = (preference or get_config().device_preference).lower()

    if preference == "auto":
        for device_type in AUTO_PRIORITY:
            name = _find_by_type(devices, device_type)
            if name is not None:
                return name
        return devices[0].name if devices else None

    try:
        wanted = DeviceType(preference.upper())
    except ValueError:
        raise ValueError(f"Unknown device preference: {preference}") from None
    return _find_by_type(devices, wanted)
