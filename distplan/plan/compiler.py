"""Turn a finished graph into the ordered steps an executor runs.

Order: toolchain setup and builds first (grouped per target), then packaging
steps for local artifacts, then for global artifacts. Within an artifact,
static asset copies come before the archive step.
"""

from __future__ import annotations

from distplan.platform.targets import TargetTriple, is_apple, is_windows_msvc

from .diagnostics import Diagnostics
from .model import (
    PROFILE_DIST,
    Artifact,
    BinaryIdx,
    BuildStep,
    CargoBuildStep,
    CargoTargetFeatures,
    Checksum,
    ChecksumStep,
    CopyDirStep,
    CopyFileStep,
    DistGraph,
    ExecutableZip,
    GenerateInstallerStep,
    Installer,
    RustupStep,
    Symbols,
    ZipDirStep,
)

__all__ = ["compute_build_steps", "compute_cargo_builds", "rustflags_for_target"]


def rustflags_for_target(target: TargetTriple, ambient: str) -> str:
    """Extra compiler flags for `target`, layered over the ambient RUSTFLAGS."""
    rustflags = ambient
    # The MSVC ABI should link the C runtime statically
    if is_windows_msvc(target):
        rustflags += " -Ctarget-feature=+crt-static"
    return rustflags


def compute_cargo_builds(
    graph: DistGraph, *, rustflags: str = "", diagnostics: Diagnostics
) -> list[BuildStep]:
    """One build per target (or per package+features with precise builds).

    Binaries nobody copies anywhere are not built.
    """
    by_target: dict[TargetTriple, list[BinaryIdx]] = {}
    for i, binary in enumerate(graph.binaries):
        if binary.copy_exe_to or binary.copy_symbols_to:
            by_target.setdefault(binary.target, []).append(BinaryIdx(i))

    host = graph.tools.cargo.host_target
    steps: list[BuildStep] = []
    for target in sorted(by_target):
        binaries = by_target[target]
        target_flags = rustflags_for_target(target, rustflags)

        # Cross-compiling between macs needs the other target's std installed
        if is_apple(target) and is_apple(host) and target != host:
            if graph.tools.rustup is not None:
                steps.append(RustupStep(rustup=graph.tools.rustup, target=target))
            else:
                diagnostics.warn(
                    "You're trying to cross-compile on macOS, but I can't find rustup "
                    "to ensure you have the rust toolchains for it!"
                )

        if graph.precise_builds:
            groups: dict[tuple[str, CargoTargetFeatures], list[BinaryIdx]] = {}
            for binary_idx in binaries:
                binary = graph.binary(binary_idx)
                groups.setdefault((binary.pkg_spec, binary.features), []).append(binary_idx)
            for pkg_spec, features in sorted(groups):
                steps.append(
                    CargoBuildStep(
                        target_triple=target,
                        features=features,
                        package=pkg_spec,
                        profile=PROFILE_DIST,
                        rustflags=target_flags,
                        expected_binaries=tuple(groups[(pkg_spec, features)]),
                    )
                )
        else:
            # Workspace builds only happen when every package agrees on features
            steps.append(
                CargoBuildStep(
                    target_triple=target,
                    features=graph.binary(binaries[0]).features,
                    package=None,
                    profile=PROFILE_DIST,
                    rustflags=target_flags,
                    expected_binaries=tuple(binaries),
                )
            )
    return steps


def _artifact_steps(artifact: Artifact) -> list[BuildStep]:
    steps: list[BuildStep] = []
    match artifact.kind:
        case ExecutableZip():
            # Covered by the builds and the archive below
            pass
        case Symbols():
            # pdb and dwp are usable as-is
            # TODO: dSYM bundles are directories and need archiving once symbols are enabled
            pass
        case Installer(installer=installer):
            steps.append(GenerateInstallerStep(installer))
        case Checksum(checksum=checksum):
            steps.append(ChecksumStep(checksum))

    if artifact.archive is not None:
        archive = artifact.archive
        for asset in archive.static_assets:
            dest_path = archive.dir_path / asset.path.name
            if asset.is_dir:
                steps.append(CopyDirStep(src_path=asset.path, dest_path=dest_path))
            else:
                steps.append(CopyFileStep(src_path=asset.path, dest_path=dest_path))
        steps.append(
            ZipDirStep(
                src_path=archive.dir_path,
                dest_path=artifact.file_path,
                with_root=archive.with_root,
                zip_style=archive.zip_style,
            )
        )
    return steps


def compute_build_steps(
    graph: DistGraph, *, rustflags: str = "", diagnostics: Diagnostics
) -> list[BuildStep]:
    """Compile the graph into build steps. The graph is not modified."""
    steps = compute_cargo_builds(graph, rustflags=rustflags, diagnostics=diagnostics)
    for artifact in graph.local_artifacts():
        steps.extend(_artifact_steps(artifact))
    for artifact in graph.global_artifacts():
        steps.extend(_artifact_steps(artifact))
    return steps
