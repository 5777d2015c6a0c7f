"""Tests for announcement info and GitHub release notes."""

from __future__ import annotations

from pathlib import Path

from distplan.core.config import CiStyle, DistMetadata, InstallerStyle, merge_workspace_config
from distplan.core.semver import SemVer
from distplan.core.workspace import MANIFEST_NAME, PackageInfo, WorkspaceInfo
from distplan.plan.diagnostics import Diagnostics
from distplan.plan.gather import PlanRequest, gather_work
from distplan.plan.model import DistGraph
from distplan.plan.notes import render_github_body
from distplan.platform.toolchain import CargoInfo, Tools

ROOT = Path("/ws")
LINUX = "x86_64-unknown-linux-gnu"
URL = "https://github.com/acme/tools/releases/download/v1.0.0"

TOOLS = Tools(cargo=CargoInfo(cmd="cargo", version_line=None, host_target=LINUX))


def _graph(*names: str, targets: tuple[str, ...] = (LINUX,)) -> DistGraph:
    metadata = DistMetadata(
        targets=targets, installers=(InstallerStyle.SHELL,), ci=(CiStyle.GITHUB,)
    )
    packages = tuple(
        PackageInfo(name=n, version=SemVer(1, 0, 0), root=ROOT / n, binaries=(n,)) for n in names
    )
    ws = WorkspaceInfo(
        root=ROOT,
        manifest_path=ROOT / MANIFEST_NAME,
        packages=packages,
        metadata=metadata,
        package_metadata=tuple(merge_workspace_config(DistMetadata(), metadata) for _ in packages),
        repository_url="https://github.com/acme/tools",
    )
    return gather_work(ws, TOOLS, PlanRequest(), Diagnostics()).unwrap()


def test_single_release_body() -> None:
    graph = _graph("app")
    tarball = f"app-v1.0.0-{LINUX}.tar.xz"
    assert graph.announcement_github_body == "\n".join(
        [
            "## Install app 1.0.0",
            "",
            "### Install prebuilt binaries via shell script",
            "",
            "```sh",
            f"curl --proto '=https' --tlsv1.2 -LsSf {URL}/app-v1.0.0-installer.sh | sh",
            "```",
            "",
            "## Download app 1.0.0",
            "",
            "|  File  | Platform | Checksum |",
            "|--------|----------|----------|",
            f"| [{tarball}]({URL}/{tarball}) | x64 Linux | [checksum]({URL}/{tarball}.sha256) |",
            "",
        ]
    ) + "\n"


def test_multiple_releases_get_headings() -> None:
    body = render_github_body(_graph("a", "b"))
    assert "# a 1.0.0\n" in body
    assert "# b 1.0.0\n" in body
    assert body.index("# a 1.0.0") < body.index("# b 1.0.0")


def test_release_notes_come_first() -> None:
    graph = _graph("app")
    graph.announcement_changelog = "- fixed a bug"
    body = render_github_body(graph)
    assert body.startswith("## Release Notes\n\n- fixed a bug\n\n## Install app 1.0.0")


def test_unknown_platform() -> None:
    body = render_github_body(_graph("app", targets=("riscv64gc-unknown-linux-gnu",)))
    assert "| Unknown |" in body


def test_checksums_are_not_listed_as_files() -> None:
    body = render_github_body(_graph("app"))
    assert f"[app-v1.0.0-{LINUX}.tar.xz.sha256](" not in body
