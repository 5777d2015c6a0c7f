"""Target triple classification.

Planning only ever needs coarse facts about a triple (is it Windows, is it
Apple, which OS/CPU does it name). These helpers keep the substring checks
in one place.
"""

from __future__ import annotations

__all__ = [
    "ARM64_MACOS",
    "X64_MACOS",
    "TargetTriple",
    "exe_suffix",
    "is_apple",
    "is_linux_gnu",
    "is_windows",
    "is_windows_msvc",
    "triple_to_display_name",
]

type TargetTriple = str

X64_MACOS: TargetTriple = "x86_64-apple-darwin"
ARM64_MACOS: TargetTriple = "aarch64-apple-darwin"

_DISPLAY_NAMES: dict[str, str] = {
    "aarch64-apple-darwin": "Apple Silicon macOS",
    "x86_64-apple-darwin": "Intel macOS",
    "aarch64-pc-windows-msvc": "ARM64 Windows",
    "i686-pc-windows-msvc": "x86 Windows",
    "x86_64-pc-windows-msvc": "x64 Windows",
    "x86_64-pc-windows-gnu": "x64 Windows (MinGW)",
    "aarch64-unknown-linux-gnu": "ARM64 Linux",
    "aarch64-unknown-linux-musl": "ARM64 MUSL Linux",
    "armv7-unknown-linux-gnueabihf": "ARMv7 Linux",
    "i686-unknown-linux-gnu": "x86 Linux",
    "x86_64-unknown-linux-gnu": "x64 Linux",
    "x86_64-unknown-linux-musl": "x64 MUSL Linux",
    "x86_64-unknown-freebsd": "x64 FreeBSD",
}


def is_windows(target: TargetTriple) -> bool:
    return "windows" in target


def is_windows_msvc(target: TargetTriple) -> bool:
    return "windows-msvc" in target


def is_apple(target: TargetTriple) -> bool:
    return target.endswith("apple-darwin")


def is_linux_gnu(target: TargetTriple) -> bool:
    return "linux-gnu" in target


def exe_suffix(target: TargetTriple) -> str:
    """Executable file suffix binaries get on `target`."""
    return ".exe" if is_windows(target) else ""


def triple_to_display_name(target: TargetTriple) -> str | None:
    """Human-friendly platform name, or None for unrecognized triples."""
    return _DISPLAY_NAMES.get(target)
