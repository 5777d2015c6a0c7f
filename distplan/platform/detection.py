"""Guess the host's target triple without asking the toolchain.

`cargo -vV` is the authority on the host triple; this is the fallback when
cargo isn't installed (planning a release on a machine that won't build it).
"""

from __future__ import annotations

import os
import platform as _platform
import sys
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

__all__ = ["Arch", "Platform", "PlatformInfo", "detect", "detect_arch", "detect_platform"]


class Platform(Enum):
    """Host OS; the value is the vendor-os-abi tail of its default triple."""

    LINUX = "unknown-linux-gnu"
    MACOS = "apple-darwin"
    WINDOWS = "pc-windows-msvc"
    UNKNOWN = "unknown-unknown"

    def __str__(self) -> str:
        return self.name.lower()


class Arch(Enum):
    """Host CPU; the value is the first component of its triple."""

    X64 = "x86_64"
    X86 = "i686"
    ARM64 = "aarch64"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.name.lower()


_MACHINE_ALIASES = {
    "x86_64": Arch.X64,
    "amd64": Arch.X64,
    "x64": Arch.X64,
    "i386": Arch.X86,
    "i686": Arch.X86,
    "x86": Arch.X86,
    "aarch64": Arch.ARM64,
    "arm64": Arch.ARM64,
}


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    platform: Platform
    arch: Arch

    @property
    def target_triple(self) -> str:
        return f"{self.arch.value}-{self.platform.value}"

    def __str__(self) -> str:
        return f"{self.platform}-{self.arch}"


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    # sys.platform, not platform.system(): the latter can query WMI on Windows
    if sys.platform.startswith("linux"):
        return Platform.LINUX
    if sys.platform == "darwin":
        return Platform.MACOS
    if sys.platform in ("win32", "cygwin", "msys"):
        return Platform.WINDOWS
    return Platform.UNKNOWN


@lru_cache(maxsize=1)
def detect_arch() -> Arch:
    if detect_platform() == Platform.WINDOWS:
        # A 32-bit Python on 64-bit Windows reports the real CPU in W6432
        machine = os.environ.get("PROCESSOR_ARCHITEW6432") or os.environ.get(
            "PROCESSOR_ARCHITECTURE", ""
        )
    else:
        machine = _platform.machine()
    return _MACHINE_ALIASES.get(machine.lower(), Arch.UNKNOWN)


@lru_cache(maxsize=1)
def detect() -> PlatformInfo:
    return PlatformInfo(platform=detect_platform(), arch=detect_arch())
