"""Workspace manifest discovery and loading.

A workspace is described by a `dist-workspace.toml` file:

    [workspace]
    repository = "https://github.com/owner/repo"

    [dist]
    targets = ["x86_64-unknown-linux-gnu", "x86_64-pc-windows-msvc"]
    installers = ["shell", "powershell"]

    [[package]]
    name = "my-app"
    version = "1.2.3"
    binaries = ["my-app"]

    [package.dist]
    installers = ["shell"]

Loading parses everything into immutable dataclasses and merges each
package's dist table over the workspace one, so planning never touches
TOML or the file system.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import NewType

from .config import ConfigError, DistMetadata, merge_workspace_config, parse_metadata
from .result import Err, Ok, Result
from .semver import SemVer, parse_version
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_str,
    get_str_list,
    get_table,
    get_table_list,
)

__all__ = [
    "MANIFEST_NAME",
    "PackageIdx",
    "PackageInfo",
    "WorkspaceError",
    "WorkspaceInfo",
    "detect_workspace",
    "find_workspace_upward",
    "load_workspace",
]

MANIFEST_NAME = "dist-workspace.toml"

PackageIdx = NewType("PackageIdx", int)


@dataclass(frozen=True)
class WorkspaceError:
    """Error when the workspace cannot be found or loaded."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class PackageInfo:
    """Everything the planner needs to know about one package."""

    name: str
    version: SemVer
    root: Path
    binaries: tuple[str, ...] = ()
    description: str | None = None
    authors: tuple[str, ...] = ()
    license: str | None = None
    repository_url: str | None = None
    homepage_url: str | None = None
    keywords: tuple[str, ...] | None = None
    publish: bool = True
    readme_file: Path | None = None
    changelog_file: Path | None = None
    license_files: tuple[Path, ...] = ()

    @property
    def pkg_id(self) -> str:
        """Opaque identity of the package (stable within one workspace)."""
        return f"{self.name}@{self.version}"

    @property
    def pkg_spec(self) -> str:
        """The name a build tool accepts to select this package."""
        return self.name


@dataclass(frozen=True, slots=True)
class WorkspaceInfo:
    """A loaded workspace: packages plus raw and merged dist configs."""

    root: Path
    manifest_path: Path
    packages: tuple[PackageInfo, ...]
    metadata: DistMetadata = field(default_factory=DistMetadata)
    # Indexed like `packages`, already merged over `metadata`
    package_metadata: tuple[DistMetadata, ...] = ()
    repository_url: str | None = None
    # Static asset paths that are directories on disk (decided at load time)
    asset_dirs: frozenset[Path] = frozenset()

    def package(self, idx: PackageIdx) -> PackageInfo:
        return self.packages[idx]

    def config(self, idx: PackageIdx) -> DistMetadata:
        return self.package_metadata[idx]

    def package_indices(self) -> list[PackageIdx]:
        return [PackageIdx(i) for i in range(len(self.packages))]

    def web_url(self) -> Result[str | None, WorkspaceError]:
        """The repository's browsable URL, if one is known.

        `[workspace] repository` wins. Otherwise every package that declares a
        repository must agree on it.
        """
        if self.repository_url is not None:
            return Ok(_normalize_repo_url(self.repository_url))
        declared = sorted(
            {_normalize_repo_url(p.repository_url) for p in self.packages if p.repository_url}
        )
        if len(declared) > 1:
            return Err(
                WorkspaceError(
                    f"packages declare different repositories: {', '.join(declared)}",
                    self.manifest_path,
                )
            )
        return Ok(declared[0] if declared else None)


def _normalize_repo_url(url: str) -> str:
    url = url.rstrip("/")
    return url.removesuffix(".git")


def find_workspace_upward(start: Path) -> Path | None:
    """Walk up from `start` looking for a workspace manifest."""
    current = start.resolve()
    while True:
        candidate = current / MANIFEST_NAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def _parse_package(
    table: StrDict, *, workspace_root: Path, manifest_path: Path
) -> Result[tuple[PackageInfo, StrDict | None], WorkspaceError]:
    name = get_str(table, "name")
    if name is None:
        return Err(WorkspaceError(f"[[package]] without a name in {manifest_path}"))
    raw_version = get_str(table, "version")
    if raw_version is None:
        return Err(WorkspaceError(f"package {name} has no version"))
    version = parse_version(raw_version)
    if version is None:
        return Err(WorkspaceError(f"package {name} has an invalid version: {raw_version!r}"))

    root = workspace_root / (get_str(table, "root") or ".")

    def _opt_path(key: str) -> Path | None:
        raw = get_str(table, key)
        return root / raw if raw is not None else None

    keywords = get_str_list(table, "keywords")
    publish = get_bool(table, "publish")

    info = PackageInfo(
        name=name,
        version=version,
        root=root,
        binaries=tuple(get_str_list(table, "binaries") or ()),
        description=get_str(table, "description"),
        authors=tuple(get_str_list(table, "authors") or ()),
        license=get_str(table, "license"),
        repository_url=get_str(table, "repository"),
        homepage_url=get_str(table, "homepage"),
        keywords=tuple(keywords) if keywords is not None else None,
        publish=True if publish is None else publish,
        readme_file=_opt_path("readme"),
        changelog_file=_opt_path("changelog"),
        license_files=tuple(root / p for p in get_str_list(table, "license-files") or ()),
    )
    return Ok((info, get_table(table, "dist")))


def _collect_asset_dirs(
    packages: tuple[PackageInfo, ...], configs: tuple[DistMetadata, ...]
) -> frozenset[Path]:
    candidates: list[Path] = []
    for package, config in zip(packages, configs, strict=True):
        if package.readme_file is not None:
            candidates.append(package.readme_file)
        if package.changelog_file is not None:
            candidates.append(package.changelog_file)
        candidates.extend(package.license_files)
        candidates.extend(config.include or ())
    return frozenset(p for p in candidates if p.is_dir())


def _config_error(e: ConfigError) -> WorkspaceError:
    where = f" ({e.path})" if e.path else ""
    return WorkspaceError(f"invalid dist config: {e.message}{where}", searched_from=e.path)


def load_workspace(manifest_path: Path) -> Result[WorkspaceInfo, WorkspaceError]:
    """Load and merge a workspace manifest."""
    import tomllib

    try:
        data_obj: object = tomllib.loads(manifest_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(WorkspaceError(f"manifest not found: {manifest_path}", manifest_path))
    except PermissionError:
        return Err(WorkspaceError(f"permission denied reading: {manifest_path}", manifest_path))
    except tomllib.TOMLDecodeError as e:
        return Err(WorkspaceError(f"invalid TOML syntax: {e}", manifest_path))
    except UnicodeDecodeError as e:
        return Err(WorkspaceError(f"error reading manifest: {e}", manifest_path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(WorkspaceError("manifest root must be a TOML table", manifest_path))

    root = manifest_path.parent
    workspace_table = get_table(data, "workspace") or {}

    ws_meta = parse_metadata(get_table(data, "dist"), base_dir=root, path=manifest_path)
    if isinstance(ws_meta, Err):
        return Err(_config_error(ws_meta.error))

    packages: list[PackageInfo] = []
    configs: list[DistMetadata] = []
    package_tables = get_table_list(data, "package")
    if package_tables is None:
        return Err(WorkspaceError("[[package]] entries must be tables", manifest_path))
    for table in package_tables:
        parsed = _parse_package(table, workspace_root=root, manifest_path=manifest_path)
        if isinstance(parsed, Err):
            return parsed
        info, dist_table = parsed.value
        pkg_meta = parse_metadata(dist_table, base_dir=info.root, path=manifest_path)
        if isinstance(pkg_meta, Err):
            return Err(_config_error(pkg_meta.error))
        packages.append(info)
        configs.append(merge_workspace_config(pkg_meta.value, ws_meta.value))

    names = [p.name for p in packages]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        return Err(WorkspaceError(f"duplicate package names: {', '.join(dupes)}", manifest_path))

    return Ok(
        WorkspaceInfo(
            root=root,
            manifest_path=manifest_path,
            packages=tuple(packages),
            metadata=ws_meta.value,
            package_metadata=tuple(configs),
            repository_url=get_str(workspace_table, "repository"),
            asset_dirs=_collect_asset_dirs(tuple(packages), tuple(configs)),
        )
    )


def detect_workspace(manifest: Path | None = None) -> Result[WorkspaceInfo, WorkspaceError]:
    """Load the workspace from an explicit manifest or by searching upward from CWD."""
    if manifest is not None:
        return load_workspace(manifest)
    cwd = Path(os.getcwd())
    found = find_workspace_upward(cwd)
    if found is None:
        return Err(WorkspaceError(f"no {MANIFEST_NAME} found", searched_from=cwd))
    return load_workspace(found)
