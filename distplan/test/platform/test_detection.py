"""Tests for host platform detection."""

import pytest

import distplan.platform.detection as detection
from distplan.platform.detection import Arch, Platform, PlatformInfo, detect


class TestPlatformInfo:
    def test_target_triples(self) -> None:
        assert PlatformInfo(Platform.LINUX, Arch.X64).target_triple == "x86_64-unknown-linux-gnu"
        assert PlatformInfo(Platform.MACOS, Arch.ARM64).target_triple == "aarch64-apple-darwin"
        assert PlatformInfo(Platform.WINDOWS, Arch.X64).target_triple == "x86_64-pc-windows-msvc"
        assert PlatformInfo(Platform.WINDOWS, Arch.X86).target_triple == "i686-pc-windows-msvc"
        assert PlatformInfo(Platform.UNKNOWN, Arch.UNKNOWN).target_triple == "unknown-unknown-unknown"

    def test_str(self) -> None:
        assert str(PlatformInfo(Platform.MACOS, Arch.ARM64)) == "macos-arm64"


class TestDetect:
    def test_detect_is_cached(self) -> None:
        assert detect() is detect()

    def test_detect_returns_platform_info(self) -> None:
        info = detect()
        assert isinstance(info.platform, Platform)
        assert isinstance(info.arch, Arch)

    @pytest.mark.parametrize(
        ("machine", "expected"),
        [("AMD64", Arch.X64), ("arm64", Arch.ARM64), ("i686", Arch.X86), ("riscv64", Arch.UNKNOWN)],
    )
    def test_machine_aliases(
        self, monkeypatch: pytest.MonkeyPatch, machine: str, expected: Arch
    ) -> None:
        monkeypatch.setattr(detection, "detect_platform", lambda: Platform.LINUX)
        monkeypatch.setattr(detection._platform, "machine", lambda: machine)
        detection.detect_arch.cache_clear()
        try:
            assert detection.detect_arch() == expected
        finally:
            detection.detect_arch.cache_clear()
