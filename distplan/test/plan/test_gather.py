"""End-to-end planning from a workspace and a request."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from distplan.core.config import (
    ArtifactMode,
    CiStyle,
    DistMetadata,
    InstallerStyle,
    merge_workspace_config,
)
from distplan.core.result import Err, Ok
from distplan.core.semver import SemVer
from distplan.core.workspace import MANIFEST_NAME, PackageInfo, WorkspaceInfo
from distplan.plan.diagnostics import Diagnostics
from distplan.plan.errors import PlanError
from distplan.plan.gather import PlanRequest, gather_work, select_targets
from distplan.plan.model import CargoBuildStep, DistGraph, Installer, MsiInstaller, ShellInstaller
from distplan.platform.toolchain import CargoInfo, Tools

ROOT = Path("/ws")
LINUX = "x86_64-unknown-linux-gnu"
WINDOWS = "x86_64-pc-windows-msvc"
MAC = "aarch64-apple-darwin"
REPO = "https://github.com/acme/tools"

TOOLS = Tools(cargo=CargoInfo(cmd="cargo", version_line=None, host_target=MAC))

METADATA = DistMetadata(
    targets=(LINUX, WINDOWS),
    installers=(InstallerStyle.SHELL, InstallerStyle.POWERSHELL, InstallerStyle.MSI),
    ci=(CiStyle.GITHUB,),
)


def _workspace(
    *packages: PackageInfo,
    metadata: DistMetadata = METADATA,
    configs: dict[str, DistMetadata] | None = None,
) -> WorkspaceInfo:
    configs = configs or {}
    return WorkspaceInfo(
        root=ROOT,
        manifest_path=ROOT / MANIFEST_NAME,
        packages=packages,
        metadata=metadata,
        package_metadata=tuple(
            merge_workspace_config(configs.get(p.name, DistMetadata()), metadata)
            for p in packages
        ),
        repository_url=REPO,
    )


def _pkg(name: str, version: SemVer = SemVer(1, 0, 0)) -> PackageInfo:
    return PackageInfo(name=name, version=version, root=ROOT / name, binaries=(name,))


def _gather(
    ws: WorkspaceInfo, request: PlanRequest | None = None
) -> tuple[DistGraph | PlanError, Diagnostics]:
    diagnostics = Diagnostics()
    match gather_work(ws, TOOLS, request or PlanRequest(), diagnostics):
        case Ok(graph):
            return graph, diagnostics
        case Err(error):
            return error, diagnostics


def _graph(ws: WorkspaceInfo, request: PlanRequest | None = None) -> DistGraph:
    graph, _ = _gather(ws, request)
    assert isinstance(graph, DistGraph), graph
    return graph


class TestGatherWork:
    def test_full_plan(self) -> None:
        graph = _graph(_workspace(_pkg("app")))
        assert graph.announcement_tag == "v1.0.0"
        assert graph.announcement_title == "v1.0.0"
        assert graph.artifact_download_url == f"{REPO}/releases/download/v1.0.0"
        assert graph.ci_style == [CiStyle.GITHUB]
        assert graph.announcement_github_body is not None

        [release] = graph.releases
        assert release.id == "app-v1.0.0"
        assert [graph.variant(v).target for v in release.variants] == [WINDOWS, LINUX]
        assert [graph.artifact(a).id for a in release.global_artifacts] == [
            "app-v1.0.0-installer.sh",
            "app-v1.0.0-installer.ps1",
        ]
        windows = graph.variant(release.variants[0])
        assert [graph.artifact(a).id for a in windows.local_artifacts] == [
            f"app-v1.0.0-{WINDOWS}.zip",
            f"app-v1.0.0-{WINDOWS}.zip.sha256",
            f"app-v1.0.0-{WINDOWS}.msi",
            f"app-v1.0.0-{WINDOWS}.msi.sha256",
        ]
        assert graph.build_steps

    def test_explicit_targets_intersect_package_targets(self) -> None:
        graph = _graph(_workspace(_pkg("app")), PlanRequest(targets=(LINUX, MAC)))
        [release] = graph.releases
        assert release.targets == [LINUX]

    def test_host_mode_ignores_package_targets(self) -> None:
        graph = _graph(_workspace(_pkg("app")), PlanRequest(artifact_mode=ArtifactMode.HOST))
        assert graph.releases[0].targets == [MAC]

    def test_package_targets_limit_variants(self) -> None:
        ws = _workspace(_pkg("a"), _pkg("b"), configs={"b": DistMetadata(targets=(LINUX,))})
        graph = _graph(ws)
        assert [r.targets for r in graph.releases] == [[WINDOWS, LINUX], [LINUX]]

    def test_no_targets(self) -> None:
        ws = _workspace(_pkg("app"), metadata=DistMetadata())
        error, _ = _gather(ws)
        assert isinstance(error, PlanError)
        assert error.kind == "no_targets"

    def test_requested_installers_must_be_enabled(self) -> None:
        request = PlanRequest(installers=(InstallerStyle.SHELL, InstallerStyle.NPM))
        graph = _graph(_workspace(_pkg("app")), request)
        installers = [a.kind.installer for a in graph.artifacts if isinstance(a.kind, Installer)]
        assert len(installers) == 1
        assert isinstance(installers[0], ShellInstaller)

    def test_package_installer_override(self) -> None:
        ws = _workspace(_pkg("app"), configs={"app": DistMetadata(installers=(InstallerStyle.MSI,))})
        graph = _graph(ws)
        installers = [a.kind.installer for a in graph.artifacts if isinstance(a.kind, Installer)]
        assert [type(i) for i in installers] == [MsiInstaller]

    def test_requested_ci_narrows(self) -> None:
        ws = _workspace(_pkg("app"), metadata=DistMetadata(targets=(LINUX,)))
        graph, diagnostics = _gather(ws, PlanRequest(ci=(CiStyle.GITHUB,)))
        assert isinstance(graph, DistGraph)
        assert graph.ci_style == []
        assert graph.announcement_github_body is None
        assert "not publishing to Github, skipping Github Release Notes" in diagnostics.infos

    def test_no_repository_means_no_script_installers(self) -> None:
        ws = WorkspaceInfo(
            root=ROOT,
            manifest_path=ROOT / MANIFEST_NAME,
            packages=(_pkg("app"),),
            metadata=METADATA,
            package_metadata=(METADATA,),
        )
        graph, diagnostics = _gather(ws)
        assert isinstance(graph, DistGraph)
        assert graph.artifact_download_url is None
        assert graph.global_artifacts() == []
        assert diagnostics.has_warning("skipping shell installer")

    def test_disagreeing_package_repositories_skip_installers(self) -> None:
        ws = WorkspaceInfo(
            root=ROOT,
            manifest_path=ROOT / MANIFEST_NAME,
            packages=(
                replace(_pkg("a"), repository_url="https://github.com/acme/a"),
                replace(_pkg("b"), repository_url="https://github.com/acme/b"),
            ),
            metadata=METADATA,
            package_metadata=(METADATA, METADATA),
        )
        graph, diagnostics = _gather(ws)
        assert isinstance(graph, DistGraph)
        assert graph.artifact_download_url is None
        assert graph.global_artifacts() == []
        assert diagnostics.has_warning("packages declare different repositories")

    def test_global_and_local_artifacts_live_in_one_place(self) -> None:
        ws = _workspace(_pkg("a"), _pkg("b"))
        graph = _graph(ws, PlanRequest(targets=(LINUX, WINDOWS, MAC)))
        assert graph.global_artifacts() and graph.local_artifacts()

        for idx, artifact in enumerate(graph.artifacts):
            in_releases = [r.id for r in graph.releases if idx in r.global_artifacts]
            in_variants = [v.id for v in graph.variants if idx in v.local_artifacts]
            if artifact.is_global:
                assert len(in_releases) == 1, artifact.id
                assert in_variants == [], artifact.id
            else:
                assert len(in_variants) == 1, artifact.id
                assert in_releases == [], artifact.id

    def test_announcement_errors_propagate(self) -> None:
        ws = _workspace(_pkg("a"), _pkg("b", SemVer(2, 0, 0)))
        error, _ = _gather(ws)
        assert isinstance(error, PlanError)
        assert error.kind == "too_many_unrelated_apps"

    def test_incoherent_request_plans_everything(self) -> None:
        ws = _workspace(_pkg("a"), _pkg("b", SemVer(2, 0, 0)))
        graph = _graph(ws, PlanRequest(needs_coherent_announcement_tag=False))
        assert graph.announcement_tag == "v1.0.0-FAKEVER"
        assert graph.announcement_is_prerelease
        assert [r.id for r in graph.releases] == ["a-v1.0.0", "b-v2.0.0"]

    def test_precise_builds_error_propagates(self) -> None:
        metadata = DistMetadata(targets=(LINUX,), precise_builds=False)
        ws = _workspace(
            _pkg("a"), metadata=metadata, configs={"a": DistMetadata(features=("x",))}
        )
        error, _ = _gather(ws)
        assert isinstance(error, PlanError)
        assert error.kind == "precise_impossible"

    def test_rustflags_reach_builds(self) -> None:
        graph = _graph(_workspace(_pkg("app")), PlanRequest(rustflags="-Copt-level=3"))
        step = graph.build_steps[0]
        assert isinstance(step, CargoBuildStep)
        assert step.rustflags == "-Copt-level=3 -Ctarget-feature=+crt-static"


class TestSelectTargets:
    def test_explicit(self) -> None:
        result = select_targets(
            _workspace(_pkg("app")), TOOLS, PlanRequest(targets=(MAC,)), Diagnostics()
        )
        assert result == Ok(([MAC], False))

    def test_host(self) -> None:
        result = select_targets(
            _workspace(_pkg("app")),
            TOOLS,
            PlanRequest(artifact_mode=ArtifactMode.HOST),
            Diagnostics(),
        )
        assert result == Ok(([MAC], True))

    def test_union_of_package_targets_sorted(self) -> None:
        ws = _workspace(
            _pkg("a"), _pkg("b"), configs={"b": DistMetadata(targets=(MAC,))}
        )
        result = select_targets(ws, TOOLS, PlanRequest(), Diagnostics())
        assert result == Ok(([MAC, WINDOWS, LINUX], False))
