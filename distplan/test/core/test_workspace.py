"""Tests for workspace manifest discovery and loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from distplan.core.config import ChecksumStyle, InstallerStyle
from distplan.core.result import Err, Ok
from distplan.core.semver import SemVer
from distplan.core.workspace import (
    MANIFEST_NAME,
    PackageIdx,
    WorkspaceInfo,
    detect_workspace,
    find_workspace_upward,
    load_workspace,
)

MANIFEST = """\
[workspace]
repository = "https://github.com/acme/tools.git/"

[dist]
targets = ["x86_64-unknown-linux-gnu", "x86_64-pc-windows-msvc"]
installers = ["shell", "powershell"]
checksum = "sha256"

[[package]]
name = "my-app"
version = "1.2.3"
binaries = ["my-app"]
description = "An app"
readme = "README.md"

[package.dist]
installers = ["shell"]
checksum = "sha512"

[[package]]
name = "my-lib"
version = "0.1.0"
root = "crates/lib"
publish = false
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / MANIFEST_NAME
    path.write_text(text, encoding="utf-8")
    return path


def _load(tmp_path: Path, text: str) -> WorkspaceInfo:
    result = load_workspace(_write(tmp_path, text))
    assert isinstance(result, Ok), result
    return result.value


class TestLoadWorkspace:
    def test_packages(self, tmp_path: Path) -> None:
        ws = _load(tmp_path, MANIFEST)
        assert [p.name for p in ws.packages] == ["my-app", "my-lib"]
        app = ws.package(PackageIdx(0))
        assert app.version == SemVer(1, 2, 3)
        assert app.binaries == ("my-app",)
        assert app.pkg_id == "my-app@1.2.3"
        assert app.readme_file == tmp_path / "README.md"
        lib = ws.package(PackageIdx(1))
        assert lib.root == tmp_path / "crates/lib"
        assert lib.publish is False
        assert ws.package_indices() == [PackageIdx(0), PackageIdx(1)]

    def test_package_config_is_merged(self, tmp_path: Path) -> None:
        ws = _load(tmp_path, MANIFEST)
        app = ws.config(PackageIdx(0))
        assert app.installers == (InstallerStyle.SHELL,)
        assert app.checksum == ChecksumStyle.SHA512
        assert app.targets == ("x86_64-unknown-linux-gnu", "x86_64-pc-windows-msvc")
        lib = ws.config(PackageIdx(1))
        assert lib.installers == (InstallerStyle.SHELL, InstallerStyle.POWERSHELL)
        assert lib.checksum == ChecksumStyle.SHA256

    def test_web_url_strips_git_suffix(self, tmp_path: Path) -> None:
        ws = _load(tmp_path, MANIFEST)
        assert ws.web_url() == Ok("https://github.com/acme/tools")

    def test_web_url_falls_back_to_package(self, tmp_path: Path) -> None:
        ws = _load(
            tmp_path,
            '[[package]]\nname = "a"\nversion = "1.0.0"\nrepository = "https://example.com/a"\n',
        )
        assert ws.web_url() == Ok("https://example.com/a")

    def test_web_url_none(self, tmp_path: Path) -> None:
        ws = _load(tmp_path, '[[package]]\nname = "a"\nversion = "1.0.0"\n')
        assert ws.web_url() == Ok(None)

    def test_web_url_packages_must_agree(self, tmp_path: Path) -> None:
        ws = _load(
            tmp_path,
            '[[package]]\nname = "a"\nversion = "1.0.0"\nrepository = "https://example.com/a"\n'
            '[[package]]\nname = "b"\nversion = "1.0.0"\nrepository = "https://example.com/b.git"\n',
        )
        result = ws.web_url()
        assert isinstance(result, Err)
        assert result.error.message == (
            "packages declare different repositories: https://example.com/a, https://example.com/b"
        )

    def test_web_url_same_repository_spelled_differently(self, tmp_path: Path) -> None:
        ws = _load(
            tmp_path,
            '[[package]]\nname = "a"\nversion = "1.0.0"\nrepository = "https://example.com/a"\n'
            '[[package]]\nname = "b"\nversion = "1.0.0"\nrepository = "https://example.com/a.git/"\n',
        )
        assert ws.web_url() == Ok("https://example.com/a")

    def test_asset_dirs(self, tmp_path: Path) -> None:
        (tmp_path / "docs").mkdir()
        (tmp_path / "NOTES.txt").write_text("hi", encoding="utf-8")
        ws = _load(
            tmp_path,
            '[[package]]\nname = "a"\nversion = "1.0.0"\n'
            '[package.dist]\ninclude = ["docs", "NOTES.txt"]\n',
        )
        assert ws.asset_dirs == frozenset({tmp_path / "docs"})

    def test_duplicate_names(self, tmp_path: Path) -> None:
        text = '[[package]]\nname = "a"\nversion = "1.0.0"\n' * 2
        result = load_workspace(_write(tmp_path, text))
        assert isinstance(result, Err)
        assert "duplicate package names: a" in result.error.message

    @pytest.mark.parametrize(
        ("text", "needle"),
        [
            ('[[package]]\nversion = "1.0.0"\n', "without a name"),
            ('[[package]]\nname = "a"\n', "has no version"),
            ('[[package]]\nname = "a"\nversion = "one"\n', "invalid version"),
            ('[dist]\ninstallers = ["pkg"]\n', "invalid dist config"),
            ("[dist\n", "invalid TOML syntax"),
            ('package = ["a"]\n', "entries must be tables"),
        ],
    )
    def test_errors(self, tmp_path: Path, text: str, needle: str) -> None:
        result = load_workspace(_write(tmp_path, text))
        assert isinstance(result, Err)
        assert needle in result.error.message

    def test_missing_manifest(self, tmp_path: Path) -> None:
        result = load_workspace(tmp_path / MANIFEST_NAME)
        assert isinstance(result, Err)
        assert "manifest not found" in result.error.message


class TestDiscovery:
    def test_find_upward(self, tmp_path: Path) -> None:
        manifest = _write(tmp_path, MANIFEST)
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_workspace_upward(nested) == manifest.resolve()

    def test_detect_from_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path, MANIFEST)
        monkeypatch.chdir(tmp_path)
        result = detect_workspace()
        assert isinstance(result, Ok)
        assert len(result.value.packages) == 2

    def test_detect_explicit(self, tmp_path: Path) -> None:
        result = detect_workspace(_write(tmp_path, MANIFEST))
        assert isinstance(result, Ok)
