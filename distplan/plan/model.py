"""The release graph: releases, variants, binaries, artifacts and build steps.

Hierarchy (all references are integer handles into `DistGraph`'s arenas):

* Release: one version of one app (`my-app-v1.0.0`)
  * global artifacts: one per release regardless of platform (shell installer)
  * ReleaseVariant: the release for one target (`my-app-v1.0.0-x86_64-apple-darwin`)
    * local artifacts: one per variant (archives, msi, checksums, symbols)
    * binaries: executables this variant ships
* build steps: the ordered actions an executor runs to produce everything

Binaries are shared between variants by id, which is why nothing here holds
a direct reference to another entity. Arenas only grow; handles are never
reused.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NewType

from distplan.core.config import (
    ChecksumStyle,
    CiStyle,
    InstallPathStrategy,
    PublishStyle,
    SystemDependencies,
    ZipStyle,
)
from distplan.core.semver import SemVer
from distplan.core.workspace import PackageIdx
from distplan.platform.targets import TargetTriple
from distplan.platform.toolchain import Tool, Tools

ArtifactIdx = NewType("ArtifactIdx", int)
ReleaseVariantIdx = NewType("ReleaseVariantIdx", int)
ReleaseIdx = NewType("ReleaseIdx", int)
BinaryIdx = NewType("BinaryIdx", int)

# The build profile binaries are compiled with
PROFILE_DIST = "dist"


class StaticAssetKind(Enum):
    README = "readme"
    LICENSE = "license"
    CHANGELOG = "changelog"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class StaticAsset:
    """A file or directory copied verbatim into archives."""

    kind: StaticAssetKind
    path: Path
    is_dir: bool = False


@dataclass(frozen=True, slots=True, order=True)
class CargoTargetFeatures:
    """Feature selection for a build. `features` is ignored when `all_features`."""

    default_features: bool = True
    all_features: bool = False
    features: tuple[str, ...] = ()


class SymbolKind(Enum):
    PDB = "pdb"
    DSYM = "dSYM"
    DWP = "dwp"

    @property
    def ext(self) -> str:
        return self.value


# -----------------------------------------------------------------------------
# Installer descriptors
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExecutableZipFragment:
    """What an installer needs to know about one archive it may download."""

    id: str
    target_triples: tuple[TargetTriple, ...]
    zip_style: ZipStyle
    binaries: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class InstallerInfo:
    """Fields shared by the script-style installers."""

    dest_path: Path
    app_name: str
    app_version: str
    install_path: InstallPathStrategy
    base_url: str
    artifacts: tuple[ExecutableZipFragment, ...]
    hint: str
    desc: str


@dataclass(frozen=True, slots=True)
class ShellInstaller:
    info: InstallerInfo


@dataclass(frozen=True, slots=True)
class PowershellInstaller:
    info: InstallerInfo


@dataclass(frozen=True, slots=True)
class NpmInstaller:
    npm_package_name: str
    npm_package_version: str
    npm_package_desc: str | None
    npm_package_authors: tuple[str, ...]
    npm_package_license: str | None
    npm_package_repository_url: str | None
    npm_package_homepage_url: str | None
    npm_package_keywords: tuple[str, ...] | None
    package_dir: Path
    bin: str
    info: InstallerInfo


@dataclass(frozen=True, slots=True)
class HomebrewInstaller:
    name: str
    formula_class: str
    desc: str | None
    license: str | None
    homepage: str | None
    tap: str | None
    dependencies: tuple[str, ...]
    arm64: ExecutableZipFragment | None
    x86_64: ExecutableZipFragment | None
    info: InstallerInfo
    # Filled in by the executor once archives exist
    arm64_sha256: str | None = None
    x86_64_sha256: str | None = None


@dataclass(frozen=True, slots=True)
class MsiInstaller:
    package_dir: Path
    pkg_spec: str
    target: TargetTriple
    file_path: Path
    wxs_path: Path
    manifest_path: Path


type InstallerImpl = (
    ShellInstaller | PowershellInstaller | NpmInstaller | HomebrewInstaller | MsiInstaller
)


def installer_info(installer: InstallerImpl) -> InstallerInfo | None:
    """The shared script-installer fields, or None for MSI."""
    match installer:
        case ShellInstaller(info=info) | PowershellInstaller(info=info):
            return info
        case NpmInstaller(info=info) | HomebrewInstaller(info=info):
            return info
        case MsiInstaller():
            return None


@dataclass(frozen=True, slots=True)
class ChecksumImpl:
    checksum: ChecksumStyle
    src_path: Path
    dest_path: Path


# -----------------------------------------------------------------------------
# Artifacts
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExecutableZip:
    """An archive of binaries (everything it needs lives on the Artifact)."""


@dataclass(frozen=True, slots=True)
class Symbols:
    kind: SymbolKind


@dataclass(frozen=True, slots=True)
class Installer:
    installer: InstallerImpl


@dataclass(frozen=True, slots=True)
class Checksum:
    checksum: ChecksumImpl


type ArtifactKind = ExecutableZip | Symbols | Installer | Checksum


@dataclass(frozen=True, slots=True)
class Archive:
    """Stage files into `dir_path`, then pack it into the artifact's file_path."""

    dir_path: Path
    zip_style: ZipStyle
    # Directory name everything is nested under inside the archive (None: flat)
    with_root: str | None = None
    static_assets: tuple[StaticAsset, ...] = ()


@dataclass(slots=True)
class Artifact:
    """One deliverable file. `id` is its final file name."""

    id: str
    target_triples: list[TargetTriple]
    file_path: Path
    kind: ArtifactKind
    archive: Archive | None = None
    # Insertion ordered, so iteration is deterministic
    required_binaries: dict[BinaryIdx, Path] = field(default_factory=dict)
    checksum: ArtifactIdx | None = None
    is_global: bool = False


@dataclass(slots=True)
class Binary:
    """One executable built for one target, shared by every variant that needs it.

    A Binary whose `copy_exe_to` and `copy_symbols_to` are empty by the time
    build steps are computed is never built.
    """

    id: str
    pkg_id: str
    pkg_spec: str
    pkg_idx: PackageIdx
    name: str
    file_name: str
    target: TargetTriple
    features: CargoTargetFeatures
    symbols_artifact: ArtifactIdx | None = None
    copy_exe_to: list[Path] = field(default_factory=list)
    copy_symbols_to: list[Path] = field(default_factory=list)


@dataclass(slots=True)
class ReleaseVariant:
    target: TargetTriple
    id: str
    binaries: list[BinaryIdx] = field(default_factory=list)
    static_assets: tuple[StaticAsset, ...] = ()
    local_artifacts: list[ArtifactIdx] = field(default_factory=list)


@dataclass(slots=True)
class Release:
    app_name: str
    version: SemVer
    id: str
    app_desc: str | None = None
    app_authors: tuple[str, ...] = ()
    app_license: str | None = None
    app_repository_url: str | None = None
    app_homepage_url: str | None = None
    app_keywords: tuple[str, ...] | None = None
    targets: list[TargetTriple] = field(default_factory=list)
    # (package, binary name without extension) every variant should provide
    bins: list[tuple[PackageIdx, str]] = field(default_factory=list)
    global_artifacts: list[ArtifactIdx] = field(default_factory=list)
    variants: list[ReleaseVariantIdx] = field(default_factory=list)
    windows_archive: ZipStyle = ZipStyle.ZIP
    unix_archive: ZipStyle = ZipStyle.TAR_XZ
    checksum: ChecksumStyle = ChecksumStyle.SHA256
    npm_scope: str | None = None
    static_assets: tuple[StaticAsset, ...] = ()
    install_path: InstallPathStrategy = field(default_factory=InstallPathStrategy.cargo_home)
    tap: str | None = None
    system_dependencies: SystemDependencies = field(default_factory=SystemDependencies)


# -----------------------------------------------------------------------------
# Build steps
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CargoBuildStep:
    """Compile binaries for one target.

    `package` is the package spec to build, or None to build the workspace.
    """

    target_triple: TargetTriple
    features: CargoTargetFeatures
    package: str | None
    profile: str
    rustflags: str
    expected_binaries: tuple[BinaryIdx, ...]


@dataclass(frozen=True, slots=True)
class RustupStep:
    """Install the toolchain component for `target` before building it."""

    rustup: Tool
    target: TargetTriple


@dataclass(frozen=True, slots=True)
class CopyFileStep:
    src_path: Path
    dest_path: Path


@dataclass(frozen=True, slots=True)
class CopyDirStep:
    src_path: Path
    dest_path: Path


@dataclass(frozen=True, slots=True)
class ZipDirStep:
    src_path: Path
    dest_path: Path
    with_root: str | None
    zip_style: ZipStyle


@dataclass(frozen=True, slots=True)
class GenerateInstallerStep:
    installer: InstallerImpl


@dataclass(frozen=True, slots=True)
class ChecksumStep:
    checksum: ChecksumImpl


type BuildStep = (
    CargoBuildStep
    | RustupStep
    | CopyFileStep
    | CopyDirStep
    | ZipDirStep
    | GenerateInstallerStep
    | ChecksumStep
)


# -----------------------------------------------------------------------------
# The graph
# -----------------------------------------------------------------------------


@dataclass
class DistGraph:
    """All the work this invocation would do, computed up front."""

    tools: Tools
    workspace_dir: Path
    dist_dir: Path
    precise_builds: bool = False
    merge_tasks: bool = False
    fail_fast: bool = False
    create_release: bool = True
    ci_style: list[CiStyle] = field(default_factory=list)
    publish_jobs: list[PublishStyle] = field(default_factory=list)
    user_publish_jobs: list[str] = field(default_factory=list)
    publish_prereleases: bool = False
    # Workspace-level tap (the formula hint uses it)
    tap: str | None = None

    announcement_tag: str | None = None
    announcement_is_prerelease: bool = False
    announcement_title: str | None = None
    # Planning never extracts changelogs; a caller that does sets this before
    # rendering the release body
    announcement_changelog: str | None = None
    announcement_github_body: str | None = None
    # Artifacts are downloadable from "{artifact_download_url}/{artifact.id}"
    artifact_download_url: str | None = None

    releases: list[Release] = field(default_factory=list)
    variants: list[ReleaseVariant] = field(default_factory=list)
    binaries: list[Binary] = field(default_factory=list)
    artifacts: list[Artifact] = field(default_factory=list)
    build_steps: list[BuildStep] = field(default_factory=list)

    def release(self, idx: ReleaseIdx) -> Release:
        return self.releases[idx]

    def variant(self, idx: ReleaseVariantIdx) -> ReleaseVariant:
        return self.variants[idx]

    def binary(self, idx: BinaryIdx) -> Binary:
        return self.binaries[idx]

    def artifact(self, idx: ArtifactIdx) -> Artifact:
        return self.artifacts[idx]

    def local_artifacts(self) -> list[Artifact]:
        return [a for a in self.artifacts if not a.is_global]

    def global_artifacts(self) -> list[Artifact]:
        return [a for a in self.artifacts if a.is_global]
