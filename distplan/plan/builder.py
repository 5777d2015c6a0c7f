"""Grow a `DistGraph` one release at a time.

`DistGraphBuilder` owns the graph while it is under construction. Every
mutation goes through it so the bookkeeping stays consistent: binaries are
deduplicated by id, local artifacts land on a variant, global artifacts land
on a release, and checksums/symbols are derived as artifacts get registered.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from distplan.core.config import (
    ArtifactMode,
    ChecksumStyle,
    CiStyle,
    InstallerStyle,
    InstallPathStrategy,
    PublishStyle,
    SystemDependencies,
    ZipStyle,
)
from distplan.core.result import Err, Ok, Result
from distplan.core.workspace import PackageIdx, WorkspaceInfo
from distplan.platform.targets import TargetTriple, exe_suffix, is_windows
from distplan.platform.toolchain import Tools

from . import installers
from .diagnostics import Diagnostics
from .errors import PlanError
from .model import (
    Archive,
    Artifact,
    ArtifactIdx,
    Binary,
    BinaryIdx,
    CargoTargetFeatures,
    Checksum,
    ChecksumImpl,
    DistGraph,
    ExecutableZip,
    Release,
    ReleaseIdx,
    ReleaseVariant,
    ReleaseVariantIdx,
    StaticAsset,
    StaticAssetKind,
    SymbolKind,
    Symbols,
)

__all__ = ["DistGraphBuilder", "SymbolPolicy", "target_symbol_kind"]

# Where artifacts are staged, relative to the workspace root
DIST_DIR = Path("target") / "distrib"

type SymbolPolicy = Callable[[TargetTriple], SymbolKind | None]


def target_symbol_kind(target: TargetTriple) -> SymbolKind | None:
    """Which debug-symbol artifact a target produces, if any.

    Every platform is switched off for now: pdb needs the symbol handling
    redesign, dSYM bundles are directories, and cargo doesn't uplift dwp files.
    """
    del target
    return None


class DistGraphBuilder:
    def __init__(
        self,
        *,
        graph: DistGraph,
        workspace: WorkspaceInfo,
        artifact_mode: ArtifactMode,
        diagnostics: Diagnostics,
        symbol_policy: SymbolPolicy = target_symbol_kind,
    ) -> None:
        self._graph = graph
        self._workspace = workspace
        self._artifact_mode = artifact_mode
        self._diagnostics = diagnostics
        self._symbol_policy = symbol_policy
        self._binaries_by_id: dict[str, BinaryIdx] = {}

    @classmethod
    def new(
        cls,
        *,
        tools: Tools,
        workspace: WorkspaceInfo,
        artifact_mode: ArtifactMode,
        diagnostics: Diagnostics,
        symbol_policy: SymbolPolicy = target_symbol_kind,
    ) -> Result[DistGraphBuilder, PlanError]:
        """Lower the workspace-level settings onto an empty graph.

        Fails if packages disagree on build features while precise builds
        are explicitly turned off.
        """
        meta = workspace.metadata

        mismatched: list[str] = []
        for idx in workspace.package_indices():
            config = workspace.config(idx)
            if (
                config.features != meta.features
                or config.all_features != meta.all_features
                or config.default_features != meta.default_features
            ):
                mismatched.append(workspace.package(idx).name)

        requires_precise = bool(mismatched)
        if meta.precise_builds is None:
            precise_builds = requires_precise
            if requires_precise:
                diagnostics.info("force-enabling precise-builds to handle your build features")
        elif not meta.precise_builds and requires_precise:
            return Err(
                PlanError(
                    kind="precise_impossible",
                    message=(
                        "precise-builds = false was set, but some packages have custom "
                        f"build features: {', '.join(mismatched)}"
                    ),
                    hint="Remove precise-builds = false or make the packages agree on features.",
                )
            )
        else:
            precise_builds = meta.precise_builds

        publish_jobs: list[PublishStyle] = []
        user_publish_jobs: list[str] = []
        for job in meta.publish_jobs or ():
            if job.startswith("./"):
                user_publish_jobs.append(job.removeprefix("./"))
            else:
                publish_jobs.append(PublishStyle(job))

        graph = DistGraph(
            tools=tools,
            workspace_dir=workspace.root,
            dist_dir=workspace.root / DIST_DIR,
            precise_builds=precise_builds,
            merge_tasks=bool(meta.merge_tasks),
            fail_fast=bool(meta.fail_fast),
            create_release=True if meta.create_release is None else meta.create_release,
            publish_jobs=publish_jobs,
            user_publish_jobs=user_publish_jobs,
            publish_prereleases=bool(meta.publish_prereleases),
            tap=meta.tap,
        )
        return Ok(
            cls(
                graph=graph,
                workspace=workspace,
                artifact_mode=artifact_mode,
                diagnostics=diagnostics,
                symbol_policy=symbol_policy,
            )
        )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def graph(self) -> DistGraph:
        return self._graph

    @property
    def workspace(self) -> WorkspaceInfo:
        return self._workspace

    @property
    def diagnostics(self) -> Diagnostics:
        return self._diagnostics

    def local_artifacts_enabled(self) -> bool:
        return self._artifact_mode.local_enabled

    def global_artifacts_enabled(self) -> bool:
        return self._artifact_mode.global_enabled

    def set_ci_style(self, styles: list[CiStyle]) -> None:
        self._graph.ci_style = list(styles)

    # -------------------------------------------------------------------------
    # Releases, variants, binaries
    # -------------------------------------------------------------------------

    def add_release(self, pkg_idx: PackageIdx) -> ReleaseIdx:
        package = self._workspace.package(pkg_idx)
        config = self._workspace.config(pkg_idx)

        static_assets: list[StaticAsset] = []
        if config.auto_includes is not False:
            if package.readme_file is not None:
                static_assets.append(self._static_asset(StaticAssetKind.README, package.readme_file))
            if package.changelog_file is not None:
                static_assets.append(
                    self._static_asset(StaticAssetKind.CHANGELOG, package.changelog_file)
                )
            for license_file in package.license_files:
                static_assets.append(self._static_asset(StaticAssetKind.LICENSE, license_file))
        for include in config.include or ():
            static_assets.append(self._static_asset(StaticAssetKind.OTHER, include))

        idx = ReleaseIdx(len(self._graph.releases))
        release_id = f"{package.name}-v{package.version}"
        self._diagnostics.info(f"added release {release_id}")
        self._graph.releases.append(
            Release(
                app_name=package.name,
                version=package.version,
                id=release_id,
                app_desc=package.description,
                app_authors=package.authors,
                app_license=package.license,
                app_repository_url=package.repository_url,
                app_homepage_url=package.homepage_url,
                app_keywords=package.keywords,
                windows_archive=config.windows_archive or ZipStyle.ZIP,
                unix_archive=config.unix_archive or ZipStyle.TAR_XZ,
                checksum=config.checksum or ChecksumStyle.SHA256,
                npm_scope=config.npm_scope,
                static_assets=tuple(static_assets),
                install_path=config.install_path or InstallPathStrategy.cargo_home(),
                tap=config.tap,
                system_dependencies=config.system_dependencies or SystemDependencies(),
            )
        )
        return idx

    def _static_asset(self, kind: StaticAssetKind, path: Path) -> StaticAsset:
        return StaticAsset(kind=kind, path=path, is_dir=path in self._workspace.asset_dirs)

    def add_binary(self, to_release: ReleaseIdx, pkg_idx: PackageIdx, binary_name: str) -> None:
        """Declare that every variant of the release ships `binary_name`."""
        self._graph.release(to_release).bins.append((pkg_idx, binary_name))

    def add_variant(self, to_release: ReleaseIdx, target: TargetTriple) -> ReleaseVariantIdx:
        release = self._graph.release(to_release)
        idx = ReleaseVariantIdx(len(self._graph.variants))
        variant_id = f"{release.id}-{target}"
        self._diagnostics.info(f"added variant {variant_id}")

        release.variants.append(idx)
        release.targets.append(target)

        binaries = [
            self._get_or_add_binary(pkg_idx, binary_name, target)
            for pkg_idx, binary_name in release.bins
        ]

        self._graph.variants.append(
            ReleaseVariant(
                target=target,
                id=variant_id,
                binaries=binaries,
                static_assets=release.static_assets,
            )
        )
        return idx

    def _get_or_add_binary(
        self, pkg_idx: PackageIdx, binary_name: str, target: TargetTriple
    ) -> BinaryIdx:
        package = self._workspace.package(pkg_idx)
        binary_id = f"{binary_name}-v{package.version}-{target}"
        existing = self._binaries_by_id.get(binary_id)
        if existing is not None:
            return existing

        config = self._workspace.config(pkg_idx)
        features = CargoTargetFeatures(
            default_features=config.default_features is not False,
            all_features=bool(config.all_features),
            features=() if config.all_features else tuple(config.features or ()),
        )

        idx = BinaryIdx(len(self._graph.binaries))
        self._diagnostics.info(f"added binary {binary_id}")
        self._graph.binaries.append(
            Binary(
                id=binary_id,
                pkg_id=package.pkg_id,
                pkg_spec=package.pkg_spec,
                pkg_idx=pkg_idx,
                name=binary_name,
                file_name=f"{binary_name}{exe_suffix(target)}",
                target=target,
                features=features,
            )
        )
        self._binaries_by_id[binary_id] = idx
        return idx

    # -------------------------------------------------------------------------
    # Artifacts
    # -------------------------------------------------------------------------

    def add_executable_zip(self, to_release: ReleaseIdx) -> None:
        if not self.local_artifacts_enabled():
            return
        release = self._graph.release(to_release)
        self._diagnostics.info(f"adding executable zip to release {release.id}")

        for variant_idx in list(release.variants):
            artifact, built_assets = self.make_executable_zip_for_variant(to_release, variant_idx)
            artifact_idx = self.add_local_artifact(variant_idx, artifact)
            for binary_idx, dest_path in built_assets:
                self.require_binary(artifact_idx, variant_idx, binary_idx, dest_path)
            if release.checksum != ChecksumStyle.FALSE:
                self.add_artifact_checksum(variant_idx, artifact_idx, release.checksum)

    def make_executable_zip_for_variant(
        self, release_idx: ReleaseIdx, variant_idx: ReleaseVariantIdx
    ) -> tuple[Artifact, list[tuple[BinaryIdx, Path]]]:
        """Describe the archive a variant would produce, without registering it.

        Installers use this to learn archive names for variants whose archives
        may not be built in this run.
        """
        dist_dir = self._graph.dist_dir
        release = self._graph.release(release_idx)
        variant = self._graph.variant(variant_idx)

        zip_style = release.windows_archive if is_windows(variant.target) else release.unix_archive
        dir_name = variant.id
        dir_path = dist_dir / dir_name
        artifact_name = f"{dir_name}{zip_style.ext}"

        built_assets = [
            (binary_idx, dir_path / self._graph.binary(binary_idx).file_name)
            for binary_idx in variant.binaries
        ]

        # Zips are flat; tarballs get a top-level directory
        with_root = None if zip_style == ZipStyle.ZIP else dir_name

        artifact = Artifact(
            id=artifact_name,
            target_triples=[variant.target],
            file_path=dist_dir / artifact_name,
            kind=ExecutableZip(),
            archive=Archive(
                dir_path=dir_path,
                zip_style=zip_style,
                with_root=with_root,
                static_assets=variant.static_assets,
            ),
        )
        return artifact, built_assets

    def require_binary(
        self,
        for_artifact: ArtifactIdx,
        for_variant: ReleaseVariantIdx,
        binary_idx: BinaryIdx,
        dest_path: Path,
    ) -> None:
        """Record that `for_artifact` needs `binary_idx` copied to `dest_path`.

        The first requirement of a binary also creates its symbols artifact
        when the target has one. A binary shared across releases keeps the
        symbols artifact under whichever variant required it first.
        """
        binary = self._graph.binary(binary_idx)
        binary.copy_exe_to.append(dest_path)

        if binary.symbols_artifact is None:
            symbol_kind = self._symbol_policy(binary.target)
            if symbol_kind is not None:
                symbol_name = f"{binary.id}.{symbol_kind.ext}"
                symbol_path = self._graph.dist_dir / symbol_name
                symbols_idx = self.add_local_artifact(
                    for_variant,
                    Artifact(
                        id=symbol_name,
                        target_triples=[binary.target],
                        file_path=symbol_path,
                        kind=Symbols(kind=symbol_kind),
                    ),
                )
                binary.symbols_artifact = symbols_idx
                binary.copy_symbols_to.append(symbol_path)

        self._graph.artifact(for_artifact).required_binaries[binary_idx] = dest_path

    def add_artifact_checksum(
        self,
        to_variant: ReleaseVariantIdx,
        artifact_idx: ArtifactIdx,
        checksum: ChecksumStyle,
    ) -> ArtifactIdx:
        artifact = self._graph.artifact(artifact_idx)
        if isinstance(artifact.kind, Checksum):
            raise AssertionError(f"refusing to checksum a checksum: {artifact.id}")

        checksum_id = f"{artifact.id}.{checksum.ext}"
        checksum_path = artifact.file_path.parent / checksum_id
        checksum_idx = self.add_local_artifact(
            to_variant,
            Artifact(
                id=checksum_id,
                target_triples=list(artifact.target_triples),
                file_path=checksum_path,
                kind=Checksum(
                    ChecksumImpl(
                        checksum=checksum,
                        src_path=artifact.file_path,
                        dest_path=checksum_path,
                    )
                ),
            ),
        )
        artifact.checksum = checksum_idx
        return checksum_idx

    def add_installer(
        self, to_release: ReleaseIdx, installer: InstallerStyle
    ) -> Result[None, PlanError]:
        match installer:
            case InstallerStyle.SHELL:
                installers.add_shell_installer(self, to_release)
            case InstallerStyle.POWERSHELL:
                installers.add_powershell_installer(self, to_release)
            case InstallerStyle.NPM:
                installers.add_npm_installer(self, to_release)
            case InstallerStyle.HOMEBREW:
                installers.add_homebrew_installer(self, to_release)
            case InstallerStyle.MSI:
                return installers.add_msi_installer(self, to_release)
        return Ok(None)

    def add_local_artifact(self, to_variant: ReleaseVariantIdx, artifact: Artifact) -> ArtifactIdx:
        assert self.local_artifacts_enabled(), "local artifacts are disabled for this run"
        assert not artifact.is_global, f"{artifact.id} is global"

        idx = ArtifactIdx(len(self._graph.artifacts))
        self._graph.variant(to_variant).local_artifacts.append(idx)
        self._graph.artifacts.append(artifact)
        return idx

    def add_global_artifact(self, to_release: ReleaseIdx, artifact: Artifact) -> ArtifactIdx:
        assert self.global_artifacts_enabled(), "global artifacts are disabled for this run"
        assert artifact.is_global, f"{artifact.id} is not global"

        idx = ArtifactIdx(len(self._graph.artifacts))
        self._graph.release(to_release).global_artifacts.append(idx)
        self._graph.artifacts.append(artifact)
        return idx
