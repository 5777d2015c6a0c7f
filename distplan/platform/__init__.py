"""Platform abstraction layer."""

from .detection import Arch, Platform, PlatformInfo, detect
from .process import ProbeError, run
from .toolchain import CargoInfo, Tool, Tools, tool_info

__all__ = [
    # detection
    "Arch",
    "Platform",
    "PlatformInfo",
    "detect",
    # process
    "ProbeError",
    "run",
    # toolchain
    "CargoInfo",
    "Tool",
    "Tools",
    "tool_info",
]
