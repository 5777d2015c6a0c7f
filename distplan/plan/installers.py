"""The five installer generators.

Script installers (shell, powershell, npm, homebrew) are global: one per
release, covering every variant they can run on. MSI installers are local:
one per Windows variant.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from distplan.core.config import ChecksumStyle, DependencyKind, PublishStyle, ZipStyle
from distplan.core.result import Err, Ok, Result
from distplan.platform.targets import ARM64_MACOS, X64_MACOS, is_linux_gnu, is_windows

from .errors import PlanError
from .model import (
    Archive,
    Artifact,
    ExecutableZipFragment,
    HomebrewInstaller,
    Installer,
    InstallerInfo,
    MsiInstaller,
    NpmInstaller,
    PowershellInstaller,
    ReleaseIdx,
    ReleaseVariantIdx,
    ShellInstaller,
)

if TYPE_CHECKING:
    from .builder import DistGraphBuilder

__all__ = [
    "add_homebrew_installer",
    "add_msi_installer",
    "add_npm_installer",
    "add_powershell_installer",
    "add_shell_installer",
    "to_class_case",
]


def to_class_case(name: str) -> str:
    """`my-app_cli` -> `MyAppCli` (Homebrew formula class names)."""
    return "".join(part[:1].upper() + part[1:] for part in re.split(r"[^0-9A-Za-z]+", name) if part)


def _zip_fragment(
    builder: DistGraphBuilder, release_idx: ReleaseIdx, variant_idx: ReleaseVariantIdx
) -> ExecutableZipFragment:
    artifact, binaries = builder.make_executable_zip_for_variant(release_idx, variant_idx)
    assert artifact.archive is not None
    return ExecutableZipFragment(
        id=artifact.id,
        target_triples=tuple(artifact.target_triples),
        zip_style=artifact.archive.zip_style,
        binaries=tuple(dest_path.name for _, dest_path in binaries),
    )


def _needs_rosetta_fallback(builder: DistGraphBuilder, release_idx: ReleaseIdx) -> bool:
    """An x64 mac build without an arm64 one: offer it to arm64 macs too."""
    graph = builder.graph
    targets = {graph.variant(v).target for v in graph.release(release_idx).variants}
    return X64_MACOS in targets and ARM64_MACOS not in targets


def _download_url(builder: DistGraphBuilder, what: str) -> str | None:
    url = builder.graph.artifact_download_url
    if url is None:
        builder.diagnostics.warn(
            f"skipping {what}: couldn't compute a URL to download artifacts from"
        )
    return url


def _skip_unsupported(builder: DistGraphBuilder, what: str) -> None:
    builder.diagnostics.warn(
        f"skipping {what}: not building any supported platforms (use --artifacts=global)"
    )


def add_shell_installer(builder: DistGraphBuilder, to_release: ReleaseIdx) -> None:
    if not builder.global_artifacts_enabled():
        return
    graph = builder.graph
    release = graph.release(to_release)
    download_url = _download_url(builder, "shell installer")
    if download_url is None:
        return

    artifact_name = f"{release.id}-installer.sh"
    artifact_path = graph.dist_dir / artifact_name
    hint = f"curl --proto '=https' --tlsv1.2 -LsSf {download_url}/{artifact_name} | sh"

    rosetta = _needs_rosetta_fallback(builder, to_release)
    fragments: list[ExecutableZipFragment] = []
    targets: set[str] = set()
    for variant_idx in release.variants:
        target = graph.variant(variant_idx).target
        if is_windows(target):
            continue
        fragment = _zip_fragment(builder, to_release, variant_idx)
        targets.add(target)
        if rosetta and target == X64_MACOS:
            fragments.append(
                ExecutableZipFragment(
                    id=fragment.id,
                    target_triples=(ARM64_MACOS,),
                    zip_style=fragment.zip_style,
                    binaries=fragment.binaries,
                )
            )
        fragments.append(fragment)

    if not fragments:
        _skip_unsupported(builder, "shell installer")
        return

    info = InstallerInfo(
        dest_path=artifact_path,
        app_name=release.app_name,
        app_version=str(release.version),
        install_path=release.install_path,
        base_url=download_url,
        artifacts=tuple(fragments),
        hint=hint,
        desc="Install prebuilt binaries via shell script",
    )
    builder.add_global_artifact(
        to_release,
        Artifact(
            id=artifact_name,
            target_triples=sorted(targets),
            file_path=artifact_path,
            kind=Installer(ShellInstaller(info)),
            is_global=True,
        ),
    )


def add_homebrew_installer(builder: DistGraphBuilder, to_release: ReleaseIdx) -> None:
    if not builder.global_artifacts_enabled():
        return
    graph = builder.graph
    release = graph.release(to_release)
    download_url = _download_url(builder, "Homebrew formula")
    if download_url is None:
        return

    artifact_name = f"{release.id}.rb"
    artifact_path = graph.dist_dir / artifact_name
    install_target = f"{graph.tap}/{release.app_name}" if graph.tap else release.app_name

    rosetta = _needs_rosetta_fallback(builder, to_release)
    arm64: ExecutableZipFragment | None = None
    x86_64: ExecutableZipFragment | None = None
    fragments: list[ExecutableZipFragment] = []
    targets: set[str] = set()
    for variant_idx in release.variants:
        target = graph.variant(variant_idx).target
        if is_windows(target) or is_linux_gnu(target):
            continue
        fragment = _zip_fragment(builder, to_release, variant_idx)
        targets.add(target)
        if target == X64_MACOS:
            x86_64 = fragment
        if target == ARM64_MACOS:
            arm64 = fragment
        if rosetta and target == X64_MACOS:
            arm64 = ExecutableZipFragment(
                id=fragment.id,
                target_triples=(ARM64_MACOS,),
                zip_style=fragment.zip_style,
                binaries=fragment.binaries,
            )
            fragments.append(arm64)
        fragments.append(fragment)

    if not fragments:
        _skip_unsupported(builder, "Homebrew installer")
        return

    publishes_homebrew = PublishStyle.HOMEBREW in graph.publish_jobs
    if release.tap is not None and not publishes_homebrew:
        builder.diagnostics.warn(
            "A Homebrew tap was specified but the Homebrew publish job is disabled\n"
            '  consider adding "homebrew" to publish-jobs in dist-workspace.toml'
        )
    if publishes_homebrew and release.tap is None:
        builder.diagnostics.warn(
            "The Homebrew publish job is enabled but no tap was specified\n"
            "  consider setting the tap field in dist-workspace.toml"
        )

    dependencies = tuple(
        name
        for name, dep in release.system_dependencies.homebrew
        if dep.stage_wanted(DependencyKind.RUN)
    )

    info = InstallerInfo(
        dest_path=artifact_path,
        app_name=release.app_name,
        app_version=str(release.version),
        install_path=release.install_path,
        base_url=download_url,
        artifacts=tuple(fragments),
        hint=f"brew install {install_target}",
        desc="Install prebuilt binaries via Homebrew",
    )
    builder.add_global_artifact(
        to_release,
        Artifact(
            id=artifact_name,
            target_triples=sorted(targets),
            file_path=artifact_path,
            kind=Installer(
                HomebrewInstaller(
                    name=release.app_name,
                    formula_class=to_class_case(release.app_name),
                    desc=release.app_desc,
                    license=release.app_license,
                    homepage=release.app_homepage_url,
                    tap=release.tap,
                    dependencies=dependencies,
                    arm64=arm64,
                    x86_64=x86_64,
                    info=info,
                )
            ),
            is_global=True,
        ),
    )


def add_powershell_installer(builder: DistGraphBuilder, to_release: ReleaseIdx) -> None:
    if not builder.global_artifacts_enabled():
        return
    graph = builder.graph
    release = graph.release(to_release)
    download_url = _download_url(builder, "powershell installer")
    if download_url is None:
        return

    artifact_name = f"{release.id}-installer.ps1"
    artifact_path = graph.dist_dir / artifact_name

    fragments: list[ExecutableZipFragment] = []
    targets: set[str] = set()
    for variant_idx in release.variants:
        target = graph.variant(variant_idx).target
        if not is_windows(target):
            continue
        fragments.append(_zip_fragment(builder, to_release, variant_idx))
        targets.add(target)

    if not fragments:
        _skip_unsupported(builder, "powershell installer")
        return

    info = InstallerInfo(
        dest_path=artifact_path,
        app_name=release.app_name,
        app_version=str(release.version),
        install_path=release.install_path,
        base_url=download_url,
        artifacts=tuple(fragments),
        hint=f"irm {download_url}/{artifact_name} | iex",
        desc="Install prebuilt binaries via powershell script",
    )
    builder.add_global_artifact(
        to_release,
        Artifact(
            id=artifact_name,
            target_triples=sorted(targets),
            file_path=artifact_path,
            kind=Installer(PowershellInstaller(info)),
            is_global=True,
        ),
    )


def add_npm_installer(builder: DistGraphBuilder, to_release: ReleaseIdx) -> None:
    if not builder.global_artifacts_enabled():
        return
    graph = builder.graph
    release = graph.release(to_release)
    download_url = _download_url(builder, "npm installer")
    if download_url is None:
        return

    if len(release.bins) > 1:
        builder.diagnostics.warn(
            "skipping npm installer: packages with multiple binaries are unsupported\n"
            "  let us know if you have a use for this, and what should happen!"
        )
        return
    if not release.bins:
        builder.diagnostics.warn("skipping npm installer: the release has no binaries")
        return
    bin_name = release.bins[0][1]

    if release.npm_scope is not None:
        package_name = f"{release.npm_scope}/{release.app_name}"
    else:
        package_name = release.app_name
    package_version = str(release.version)

    dir_name = f"{release.id}-npm-package"
    dir_path = graph.dist_dir / dir_name
    zip_style = ZipStyle.TAR_GZ
    artifact_name = f"{dir_name}{zip_style.ext}"
    artifact_path = graph.dist_dir / artifact_name

    fragments: list[ExecutableZipFragment] = []
    targets: set[str] = set()
    has_sketchy_archives = False
    for variant_idx in release.variants:
        fragment = _zip_fragment(builder, to_release, variant_idx)
        targets.add(graph.variant(variant_idx).target)
        if fragment.zip_style != ZipStyle.TAR_GZ:
            has_sketchy_archives = True
        fragments.append(fragment)

    if has_sketchy_archives:
        builder.diagnostics.warn(
            "the npm installer currently only knows how to unpack .tar.gz archives\n"
            "  consider setting windows-archive and unix-archive to .tar.gz in your config"
        )
    if not fragments:
        _skip_unsupported(builder, "npm installer")
        return

    info = InstallerInfo(
        dest_path=artifact_path,
        app_name=release.app_name,
        app_version=package_version,
        install_path=release.install_path,
        base_url=download_url,
        artifacts=tuple(fragments),
        hint=f"npm install {package_name}@{package_version}",
        desc="Install prebuilt binaries into your npm project",
    )
    builder.add_global_artifact(
        to_release,
        Artifact(
            id=artifact_name,
            target_triples=sorted(targets),
            file_path=artifact_path,
            kind=Installer(
                NpmInstaller(
                    npm_package_name=package_name,
                    npm_package_version=package_version,
                    npm_package_desc=release.app_desc,
                    npm_package_authors=release.app_authors,
                    npm_package_license=release.app_license,
                    npm_package_repository_url=release.app_repository_url,
                    npm_package_homepage_url=release.app_homepage_url,
                    npm_package_keywords=release.app_keywords,
                    package_dir=dir_path,
                    bin=bin_name,
                    info=info,
                )
            ),
            # npm expects the tarball's top-level directory to be "package"
            archive=Archive(
                dir_path=dir_path,
                zip_style=zip_style,
                with_root="package",
                static_assets=release.static_assets,
            ),
            is_global=True,
        ),
    )


def add_msi_installer(builder: DistGraphBuilder, to_release: ReleaseIdx) -> Result[None, PlanError]:
    """Add one MSI per Windows variant.

    Each MSI packages exactly one package's binaries; anything else is an error.
    """
    if not builder.local_artifacts_enabled():
        return Ok(None)
    graph = builder.graph
    release = graph.release(to_release)
    checksum = release.checksum

    for variant_idx in list(release.variants):
        variant = graph.variant(variant_idx)
        if not is_windows(variant.target):
            continue

        artifact_name = f"{variant.id}.msi"
        artifact_path = graph.dist_dir / artifact_name
        dir_path = graph.dist_dir / f"{variant.id}_msi"

        owner: tuple[str, int] | None = None
        for binary_idx in variant.binaries:
            binary = graph.binary(binary_idx)
            if owner is None:
                owner = (binary.pkg_spec, binary.pkg_idx)
            elif owner[0] != binary.pkg_spec:
                return Err(
                    PlanError(
                        kind="multi_package_msi",
                        message=(
                            f"{artifact_name} would include binaries from multiple packages "
                            f"({owner[0]} and {binary.pkg_spec})"
                        ),
                        hint="Only enable the msi installer on packages that own every binary.",
                    )
                )
        if owner is None:
            return Err(
                PlanError(
                    kind="no_package_msi",
                    message=f"{artifact_name} has no binaries, so it can't be tied to a package",
                )
            )

        pkg_spec, pkg_idx = owner
        package = builder.workspace.packages[pkg_idx]
        installer_idx = builder.add_local_artifact(
            variant_idx,
            Artifact(
                id=artifact_name,
                target_triples=[variant.target],
                file_path=artifact_path,
                kind=Installer(
                    MsiInstaller(
                        package_dir=dir_path,
                        pkg_spec=pkg_spec,
                        target=variant.target,
                        file_path=artifact_path,
                        wxs_path=package.root / "wix" / "main.wxs",
                        manifest_path=builder.workspace.manifest_path,
                    )
                ),
                archive=Archive(dir_path=dir_path, zip_style=ZipStyle.TEMP_DIR),
            ),
        )
        for binary_idx in variant.binaries:
            builder.require_binary(
                installer_idx,
                variant_idx,
                binary_idx,
                dir_path / graph.binary(binary_idx).file_name,
            )
        if checksum != ChecksumStyle.FALSE:
            builder.add_artifact_checksum(variant_idx, installer_idx, checksum)

    return Ok(None)
