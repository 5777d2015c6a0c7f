"""Tests for compiling a graph into build steps."""

from __future__ import annotations

from pathlib import Path

from distplan.core.config import (
    ArtifactMode,
    DistMetadata,
    InstallerStyle,
    merge_workspace_config,
)
from distplan.core.semver import SemVer
from distplan.core.workspace import MANIFEST_NAME, PackageIdx, PackageInfo, WorkspaceInfo
from distplan.plan.builder import DistGraphBuilder
from distplan.plan.compiler import compute_build_steps, compute_cargo_builds, rustflags_for_target
from distplan.plan.diagnostics import Diagnostics
from distplan.plan.model import (
    PROFILE_DIST,
    BuildStep,
    CargoBuildStep,
    ChecksumStep,
    CopyDirStep,
    CopyFileStep,
    DistGraph,
    GenerateInstallerStep,
    RustupStep,
    ZipDirStep,
)
from distplan.platform.targets import ARM64_MACOS, X64_MACOS
from distplan.platform.toolchain import CargoInfo, Tool, Tools

ROOT = Path("/ws")
DIST = ROOT / "target" / "distrib"
LINUX = "x86_64-unknown-linux-gnu"
WINDOWS = "x86_64-pc-windows-msvc"
URL = "https://example.com/releases/download/v1.0.0"
RUSTUP = Tool(cmd="rustup", version="rustup 1.27.1")


def _tools(host: str = LINUX, *, rustup: Tool | None = None) -> Tools:
    return Tools(cargo=CargoInfo(cmd="cargo", version_line=None, host_target=host), rustup=rustup)


def _plan(
    packages: list[PackageInfo],
    targets: list[str],
    *,
    metadata: DistMetadata | None = None,
    configs: dict[str, DistMetadata] | None = None,
    installers: tuple[InstallerStyle, ...] = (),
    mode: ArtifactMode = ArtifactMode.ALL,
    tools: Tools | None = None,
    asset_dirs: frozenset[Path] = frozenset(),
) -> DistGraph:
    metadata = metadata or DistMetadata()
    configs = configs or {}
    ws = WorkspaceInfo(
        root=ROOT,
        manifest_path=ROOT / MANIFEST_NAME,
        packages=tuple(packages),
        metadata=metadata,
        package_metadata=tuple(
            merge_workspace_config(configs.get(p.name, DistMetadata()), metadata)
            for p in packages
        ),
        asset_dirs=asset_dirs,
    )
    builder = DistGraphBuilder.new(
        tools=tools or _tools(), workspace=ws, artifact_mode=mode, diagnostics=Diagnostics()
    ).unwrap()
    builder.graph.artifact_download_url = URL
    for i, package in enumerate(packages):
        pkg_idx = PackageIdx(i)
        release_idx = builder.add_release(pkg_idx)
        for binary in package.binaries:
            builder.add_binary(release_idx, pkg_idx, binary)
        for target in targets:
            builder.add_variant(release_idx, target)
        builder.add_executable_zip(release_idx)
        for installer in installers:
            builder.add_installer(release_idx, installer).unwrap()
    return builder.graph


def _pkg(name: str, **kwargs: object) -> PackageInfo:
    return PackageInfo(
        name=name,
        version=SemVer(1, 0, 0),
        root=ROOT / name,
        binaries=(name,),
        **kwargs,  # type: ignore[arg-type]
    )


def _builds(steps: list[BuildStep]) -> list[CargoBuildStep]:
    return [s for s in steps if isinstance(s, CargoBuildStep)]


class TestRustflags:
    def test_msvc_links_crt_statically(self) -> None:
        assert rustflags_for_target(WINDOWS, "-Cfoo") == "-Cfoo -Ctarget-feature=+crt-static"

    def test_other_targets_keep_ambient(self) -> None:
        assert rustflags_for_target(LINUX, "-Cfoo") == "-Cfoo"
        assert rustflags_for_target("x86_64-pc-windows-gnu", "") == ""


class TestCargoBuilds:
    def test_one_workspace_build_per_target(self) -> None:
        graph = _plan([_pkg("a"), _pkg("b")], [LINUX, WINDOWS])
        builds = _builds(compute_cargo_builds(graph, rustflags="-Cx", diagnostics=Diagnostics()))
        assert [b.target_triple for b in builds] == [WINDOWS, LINUX]
        assert all(b.package is None for b in builds)
        assert all(b.profile == PROFILE_DIST for b in builds)
        windows, linux = builds
        assert windows.rustflags == "-Cx -Ctarget-feature=+crt-static"
        assert linux.rustflags == "-Cx"
        assert [graph.binary(b).id for b in linux.expected_binaries] == [
            f"a-v1.0.0-{LINUX}",
            f"b-v1.0.0-{LINUX}",
        ]

    def test_precise_builds_group_by_package(self) -> None:
        graph = _plan(
            [_pkg("b"), _pkg("a")],
            [LINUX],
            configs={"a": DistMetadata(features=("fast",))},
        )
        assert graph.precise_builds
        builds = _builds(compute_cargo_builds(graph, diagnostics=Diagnostics()))
        assert [(b.package, b.features.features) for b in builds] == [("a", ("fast",)), ("b", ())]
        assert [len(b.expected_binaries) for b in builds] == [1, 1]

    def test_unrequired_binaries_are_not_built(self) -> None:
        graph = _plan([_pkg("a")], [LINUX], mode=ArtifactMode.GLOBAL)
        assert compute_cargo_builds(graph, diagnostics=Diagnostics()) == []

    def test_rustup_for_mac_cross_compile(self) -> None:
        graph = _plan([_pkg("a")], [X64_MACOS], tools=_tools(ARM64_MACOS, rustup=RUSTUP))
        steps = compute_cargo_builds(graph, diagnostics=Diagnostics())
        assert steps[0] == RustupStep(rustup=RUSTUP, target=X64_MACOS)
        assert isinstance(steps[1], CargoBuildStep)

    def test_no_rustup_for_native_build(self) -> None:
        graph = _plan([_pkg("a")], [ARM64_MACOS], tools=_tools(ARM64_MACOS, rustup=RUSTUP))
        steps = compute_cargo_builds(graph, diagnostics=Diagnostics())
        assert not any(isinstance(s, RustupStep) for s in steps)

    def test_missing_rustup_warns(self) -> None:
        diagnostics = Diagnostics()
        graph = _plan([_pkg("a")], [X64_MACOS], tools=_tools(ARM64_MACOS))
        steps = compute_cargo_builds(graph, diagnostics=diagnostics)
        assert len(steps) == 1
        assert diagnostics.has_warning("can't find rustup")


class TestBuildSteps:
    def test_order(self) -> None:
        readme = ROOT / "a" / "README.md"
        docs = ROOT / "a" / "docs"
        graph = _plan(
            [_pkg("a", readme_file=readme)],
            [LINUX],
            configs={"a": DistMetadata(include=(docs,))},
            installers=(InstallerStyle.SHELL,),
            asset_dirs=frozenset({docs}),
        )
        steps = compute_build_steps(graph, diagnostics=Diagnostics())
        variant_dir = DIST / f"a-v1.0.0-{LINUX}"
        tarball = DIST / f"a-v1.0.0-{LINUX}.tar.xz"

        assert [type(s) for s in steps] == [
            CargoBuildStep,
            CopyFileStep,
            CopyDirStep,
            ZipDirStep,
            ChecksumStep,
            GenerateInstallerStep,
        ]
        assert steps[1] == CopyFileStep(src_path=readme, dest_path=variant_dir / "README.md")
        assert steps[2] == CopyDirStep(src_path=docs, dest_path=variant_dir / "docs")
        zip_step = steps[3]
        assert isinstance(zip_step, ZipDirStep)
        assert zip_step.src_path == variant_dir
        assert zip_step.dest_path == tarball
        assert zip_step.with_root == f"a-v1.0.0-{LINUX}"
        checksum_step = steps[4]
        assert isinstance(checksum_step, ChecksumStep)
        assert checksum_step.checksum.src_path == tarball

    def test_msi_steps_follow_the_archives(self) -> None:
        graph = _plan([_pkg("a")], [WINDOWS], installers=(InstallerStyle.MSI,))
        steps = compute_build_steps(graph, diagnostics=Diagnostics())
        kinds = [type(s).__name__ for s in steps]
        assert kinds == [
            "CargoBuildStep",
            "ZipDirStep",
            "ChecksumStep",
            "GenerateInstallerStep",
            "ZipDirStep",
            "ChecksumStep",
        ]

    def test_global_only_run(self) -> None:
        graph = _plan(
            [_pkg("a")], [LINUX], mode=ArtifactMode.GLOBAL, installers=(InstallerStyle.SHELL,)
        )
        steps = compute_build_steps(graph, diagnostics=Diagnostics())
        assert [type(s) for s in steps] == [GenerateInstallerStep]

    def test_deterministic_and_pure(self) -> None:
        graph = _plan(
            [_pkg("a"), _pkg("b")],
            [WINDOWS, LINUX, X64_MACOS],
            installers=(InstallerStyle.SHELL, InstallerStyle.POWERSHELL),
        )
        first = compute_build_steps(graph, diagnostics=Diagnostics())
        second = compute_build_steps(graph, diagnostics=Diagnostics())
        assert first == second
        assert graph.build_steps == []

    def test_every_built_binary_has_a_destination(self) -> None:
        graph = _plan([_pkg("a"), _pkg("b")], [LINUX, WINDOWS])
        steps = compute_build_steps(graph, diagnostics=Diagnostics())
        built = {b for s in _builds(steps) for b in s.expected_binaries}
        for i, binary in enumerate(graph.binaries):
            assert (i in built) == bool(binary.copy_exe_to or binary.copy_symbols_to)
