"""JSON description of a plan, for executors and CI."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from distplan import __version__
from distplan.core.config import ZipStyle
from distplan.core.result import Err, Ok, Result

from .model import (
    Artifact,
    ArtifactKind,
    Binary,
    BuildStep,
    CargoBuildStep,
    Checksum,
    ChecksumStep,
    CopyDirStep,
    CopyFileStep,
    DistGraph,
    ExecutableZip,
    ExecutableZipFragment,
    GenerateInstallerStep,
    HomebrewInstaller,
    Installer,
    InstallerImpl,
    InstallerInfo,
    MsiInstaller,
    NpmInstaller,
    PowershellInstaller,
    RustupStep,
    ShellInstaller,
    Symbols,
    ZipDirStep,
    installer_info,
)

__all__ = ["ManifestWriteError", "build_manifest", "step_to_json", "write_manifest"]

MANIFEST_SCHEMA = 1


@dataclass(frozen=True, slots=True)
class ManifestWriteError:
    message: str
    path: Path


def _installer_kind(installer: InstallerImpl) -> str:
    match installer:
        case ShellInstaller():
            return "shell"
        case PowershellInstaller():
            return "powershell"
        case NpmInstaller():
            return "npm"
        case HomebrewInstaller():
            return "homebrew"
        case MsiInstaller():
            return "msi"


def _artifact_kind(kind: ArtifactKind) -> str:
    match kind:
        case ExecutableZip():
            return "executable-zip"
        case Symbols():
            return "symbols"
        case Installer():
            return "installer"
        case Checksum():
            return "checksum"


def _zip_style(style: ZipStyle) -> str:
    return style.ext or "temp-dir"


def _paths(paths: list[Path]) -> list[str]:
    return [str(p) for p in paths]


def _fragment_to_json(fragment: ExecutableZipFragment) -> dict[str, object]:
    return {
        "id": fragment.id,
        "target_triples": list(fragment.target_triples),
        "zip_style": _zip_style(fragment.zip_style),
        "binaries": list(fragment.binaries),
    }


def _info_to_json(info: InstallerInfo) -> dict[str, object]:
    return {
        "dest_path": str(info.dest_path),
        "app_name": info.app_name,
        "app_version": info.app_version,
        "install_path": info.install_path.to_template(),
        "base_url": info.base_url,
        "artifacts": [_fragment_to_json(f) for f in info.artifacts],
        "hint": info.hint,
        "desc": info.desc,
    }


def _installer_to_json(installer: InstallerImpl) -> dict[str, object]:
    """Everything an executor needs to render the installer."""
    match installer:
        case ShellInstaller(info=info) | PowershellInstaller(info=info):
            return {"kind": _installer_kind(installer), "info": _info_to_json(info)}
        case NpmInstaller():
            return {
                "kind": "npm",
                "package_name": installer.npm_package_name,
                "package_version": installer.npm_package_version,
                "desc": installer.npm_package_desc,
                "authors": list(installer.npm_package_authors),
                "license": installer.npm_package_license,
                "repository_url": installer.npm_package_repository_url,
                "homepage_url": installer.npm_package_homepage_url,
                "keywords": (
                    list(installer.npm_package_keywords)
                    if installer.npm_package_keywords is not None
                    else None
                ),
                "package_dir": str(installer.package_dir),
                "bin": installer.bin,
                "info": _info_to_json(installer.info),
            }
        case HomebrewInstaller(arm64=arm64, x86_64=x86_64):
            return {
                "kind": "homebrew",
                "name": installer.name,
                "formula_class": installer.formula_class,
                "desc": installer.desc,
                "license": installer.license,
                "homepage": installer.homepage,
                "tap": installer.tap,
                "dependencies": list(installer.dependencies),
                "arm64": _fragment_to_json(arm64) if arm64 is not None else None,
                "x86_64": _fragment_to_json(x86_64) if x86_64 is not None else None,
                "info": _info_to_json(installer.info),
            }
        case MsiInstaller():
            return {
                "kind": "msi",
                "package_dir": str(installer.package_dir),
                "pkg_spec": installer.pkg_spec,
                "target": installer.target,
                "file_path": str(installer.file_path),
                "wxs_path": str(installer.wxs_path),
                "manifest_path": str(installer.manifest_path),
            }


def _binary_to_json(binary: Binary) -> dict[str, object]:
    return {
        "name": binary.name,
        "target": binary.target,
        "file_name": binary.file_name,
        "pkg_spec": binary.pkg_spec,
        "copy_exe_to": _paths(binary.copy_exe_to),
        "copy_symbols_to": _paths(binary.copy_symbols_to),
    }


def _artifact_to_json(graph: DistGraph, artifact: Artifact) -> dict[str, object]:
    out: dict[str, object] = {
        "name": artifact.id,
        "kind": _artifact_kind(artifact.kind),
        "target_triples": list(artifact.target_triples),
        "path": str(artifact.file_path),
        "is_global": artifact.is_global,
    }
    if artifact.checksum is not None:
        out["checksum"] = graph.artifact(artifact.checksum).id
    if artifact.required_binaries:
        # Where each binary must be copied before the archive step runs
        out["required_binaries"] = {
            graph.binary(b).id: str(dest) for b, dest in artifact.required_binaries.items()
        }
    if isinstance(artifact.kind, Installer):
        installer = artifact.kind.installer
        out["installer"] = _installer_to_json(installer)
        info = installer_info(installer)
        if info is not None:
            out["install_hint"] = info.hint
            out["description"] = info.desc
    return out


def step_to_json(graph: DistGraph, step: BuildStep) -> dict[str, object]:
    match step:
        case CargoBuildStep():
            return {
                "kind": "cargo-build",
                "target_triple": step.target_triple,
                "package": step.package,
                "profile": step.profile,
                "rustflags": step.rustflags,
                "default_features": step.features.default_features,
                "all_features": step.features.all_features,
                "features": list(step.features.features),
                "expected_binaries": [graph.binary(b).id for b in step.expected_binaries],
            }
        case RustupStep():
            return {"kind": "rustup", "rustup": step.rustup.cmd, "target": step.target}
        case CopyFileStep():
            return {"kind": "copy-file", "src": str(step.src_path), "dest": str(step.dest_path)}
        case CopyDirStep():
            return {"kind": "copy-dir", "src": str(step.src_path), "dest": str(step.dest_path)}
        case ZipDirStep():
            return {
                "kind": "zip",
                "src": str(step.src_path),
                "dest": str(step.dest_path),
                "with_root": step.with_root,
                "zip_style": _zip_style(step.zip_style),
            }
        case GenerateInstallerStep():
            return {"kind": "generate-installer", "installer": _installer_to_json(step.installer)}
        case ChecksumStep():
            return {
                "kind": "checksum",
                "style": str(step.checksum.checksum),
                "src": str(step.checksum.src_path),
                "dest": str(step.checksum.dest_path),
            }


def build_manifest(graph: DistGraph) -> dict[str, object]:
    """Plain dict (str/int/bool/list/dict/None only) describing the plan."""
    releases: list[dict[str, object]] = []
    for release in graph.releases:
        artifact_ids = [graph.artifact(a).id for a in release.global_artifacts]
        for variant_idx in release.variants:
            artifact_ids += [graph.artifact(a).id for a in graph.variant(variant_idx).local_artifacts]
        releases.append(
            {
                "app_name": release.app_name,
                "app_version": str(release.version),
                "id": release.id,
                "targets": list(release.targets),
                "variants": [graph.variant(v).id for v in release.variants],
                "artifacts": artifact_ids,
            }
        )

    return {
        "schema": MANIFEST_SCHEMA,
        "dist_version": __version__,
        "announcement_tag": graph.announcement_tag,
        "announcement_is_prerelease": graph.announcement_is_prerelease,
        "announcement_title": graph.announcement_title,
        "announcement_github_body": graph.announcement_github_body,
        "artifact_download_url": graph.artifact_download_url,
        "precise_builds": graph.precise_builds,
        "ci": [str(c) for c in graph.ci_style],
        "publish_jobs": [str(p) for p in graph.publish_jobs] + graph.user_publish_jobs,
        "releases": releases,
        "binaries": {b.id: _binary_to_json(b) for b in graph.binaries},
        "artifacts": {a.id: _artifact_to_json(graph, a) for a in graph.artifacts},
        "build_steps": [step_to_json(graph, s) for s in graph.build_steps],
    }


def write_manifest(path: Path, graph: DistGraph) -> Result[None, ManifestWriteError]:
    """Write the manifest as JSON, replacing `path` atomically."""
    content = json.dumps(build_manifest(graph), indent=2) + "\n"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(content)
            os.replace(tmp_path, path)
        finally:
            tmp_path.unlink(missing_ok=True)
    except OSError as e:
        return Err(ManifestWriteError(message=f"failed to write manifest: {e}", path=path))
    return Ok(None)
