"""Typed dist configuration.

The `[dist]` table of `dist-workspace.toml` (and each `[package.dist]` table)
is parsed into a `DistMetadata` where every field is optional. Package
tables are then merged over the workspace table field by field, producing
one flattened config per package before any planning happens.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Literal

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_str, get_str_list, get_table

__all__ = [
    "ArtifactMode",
    "ChecksumStyle",
    "CiStyle",
    "ConfigError",
    "DependencyKind",
    "DistMetadata",
    "InstallPathStrategy",
    "InstallerStyle",
    "PublishStyle",
    "SystemDependencies",
    "SystemDependency",
    "ZipStyle",
    "merge_workspace_config",
    "parse_metadata",
]


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when a dist table cannot be parsed."""

    message: str
    path: Path | None = None


class ZipStyle(Enum):
    """Archive format (the value is the file extension)."""

    ZIP = ".zip"
    TAR_GZ = ".tar.gz"
    TAR_XZ = ".tar.xz"
    TAR_ZSTD = ".tar.zst"
    # Not a real archive: contents are staged in a directory for another tool
    TEMP_DIR = ""

    def __str__(self) -> str:
        return self.value

    @property
    def ext(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw: str) -> ZipStyle | None:
        return {
            ".zip": cls.ZIP,
            ".tar.gz": cls.TAR_GZ,
            ".tar.xz": cls.TAR_XZ,
            ".tar.zst": cls.TAR_ZSTD,
            ".tar.zstd": cls.TAR_ZSTD,
        }.get(raw)


class ChecksumStyle(Enum):
    SHA256 = "sha256"
    SHA512 = "sha512"
    FALSE = "false"

    def __str__(self) -> str:
        return self.value

    @property
    def ext(self) -> str:
        return self.value


class InstallerStyle(Enum):
    SHELL = "shell"
    POWERSHELL = "powershell"
    NPM = "npm"
    HOMEBREW = "homebrew"
    MSI = "msi"

    def __str__(self) -> str:
        return self.value


class CiStyle(Enum):
    GITHUB = "github"

    def __str__(self) -> str:
        return self.value


class PublishStyle(Enum):
    """Built-in publish jobs. User jobs (`./name`) are kept as plain strings."""

    HOMEBREW = "homebrew"
    NPM = "npm"

    def __str__(self) -> str:
        return self.value


class ArtifactMode(Enum):
    """Which artifacts this run should produce."""

    LOCAL = "local"
    GLOBAL = "global"
    HOST = "host"
    ALL = "all"

    def __str__(self) -> str:
        return self.value

    @property
    def local_enabled(self) -> bool:
        return self != ArtifactMode.GLOBAL

    @property
    def global_enabled(self) -> bool:
        return self != ArtifactMode.LOCAL


@dataclass(frozen=True, slots=True)
class InstallPathStrategy:
    """Where installers put binaries on the user's machine.

    - `CARGO_HOME`: $CARGO_HOME/bin (or ~/.cargo/bin)
    - `~/some/dir`: a subdirectory of the home directory
    - `$SOME_VAR/some/dir`: a subdirectory of an environment variable
    """

    kind: Literal["cargo_home", "home_subdir", "env_subdir"]
    subdir: str = ""
    env_key: str = ""

    @classmethod
    def cargo_home(cls) -> InstallPathStrategy:
        return cls(kind="cargo_home")

    @classmethod
    def parse(cls, raw: str) -> InstallPathStrategy | None:
        if raw == "CARGO_HOME":
            return cls.cargo_home()
        if raw.startswith("~/"):
            subdir = raw[2:].strip("/")
            return cls(kind="home_subdir", subdir=subdir)
        if raw.startswith("$"):
            env_key, sep, subdir = raw[1:].partition("/")
            if not env_key:
                return None
            return cls(kind="env_subdir", env_key=env_key, subdir=subdir.strip("/") if sep else "")
        return None

    def to_template(self) -> dict[str, str]:
        """Flatten into the shape installer templates consume."""
        out = {"kind": self.kind}
        if self.subdir:
            out["subdir"] = self.subdir
        if self.env_key:
            out["env_key"] = self.env_key
        return out

    def __str__(self) -> str:
        match self.kind:
            case "cargo_home":
                return "CARGO_HOME"
            case "home_subdir":
                return f"~/{self.subdir}"
            case "env_subdir":
                return f"${self.env_key}/{self.subdir}" if self.subdir else f"${self.env_key}"
            case _:
                raise AssertionError(f"unexpected install path kind: {self.kind}")


class DependencyKind(Enum):
    BUILD = "build"
    RUN = "run"


@dataclass(frozen=True, slots=True)
class SystemDependency:
    version: str | None = None
    stage: tuple[DependencyKind, ...] = ()

    def stage_wanted(self, kind: DependencyKind) -> bool:
        # No explicit stage means the package is needed to build and to run
        if not self.stage:
            return True
        return kind in self.stage


@dataclass(frozen=True, slots=True)
class SystemDependencies:
    """Packages to pull from system package managers, sorted by name."""

    homebrew: tuple[tuple[str, SystemDependency], ...] = ()


@dataclass(frozen=True, slots=True)
class DistMetadata:
    """One `[dist]` table. None means "not set here"."""

    # Package-overridable
    targets: tuple[str, ...] | None = None
    installers: tuple[InstallerStyle, ...] | None = None
    dist: bool | None = None
    auto_includes: bool | None = None
    include: tuple[Path, ...] | None = None
    windows_archive: ZipStyle | None = None
    unix_archive: ZipStyle | None = None
    checksum: ChecksumStyle | None = None
    install_path: InstallPathStrategy | None = None
    npm_scope: str | None = None
    tap: str | None = None
    system_dependencies: SystemDependencies | None = None
    features: tuple[str, ...] | None = None
    all_features: bool | None = None
    default_features: bool | None = None

    # Workspace-only
    precise_builds: bool | None = None
    merge_tasks: bool | None = None
    fail_fast: bool | None = None
    create_release: bool | None = None
    ci: tuple[CiStyle, ...] | None = None
    publish_jobs: tuple[str, ...] | None = None
    publish_prereleases: bool | None = None


_WORKSPACE_ONLY = frozenset(
    {
        "precise_builds",
        "merge_tasks",
        "fail_fast",
        "create_release",
        "ci",
        "publish_jobs",
        "publish_prereleases",
    }
)


def merge_workspace_config(package: DistMetadata, workspace: DistMetadata) -> DistMetadata:
    """Fill every unset package-overridable field from the workspace table."""
    updates: dict[str, object] = {}
    for f in fields(DistMetadata):
        if f.name in _WORKSPACE_ONLY:
            updates[f.name] = getattr(workspace, f.name)
            continue
        if getattr(package, f.name) is None:
            updates[f.name] = getattr(workspace, f.name)
    return replace(package, **updates)


def _parse_enum_list[T: Enum](
    table: Mapping[str, object], key: str, enum: type[T], path: Path | None
) -> Result[tuple[T, ...] | None, ConfigError]:
    raw = get_str_list(table, key)
    if raw is None:
        return Ok(None)
    out: list[T] = []
    for item in raw:
        try:
            out.append(enum(item))
        except ValueError:
            return Err(ConfigError(f"unknown {key} value: {item!r}", path=path))
    return Ok(tuple(out))


def _parse_archive(
    table: Mapping[str, object], key: str, path: Path | None
) -> Result[ZipStyle | None, ConfigError]:
    raw = get_str(table, key)
    if raw is None:
        return Ok(None)
    style = ZipStyle.parse(raw)
    if style is None:
        return Err(
            ConfigError(
                f"unknown {key}: {raw!r} (expected .zip, .tar.gz, .tar.xz, .tar.zstd)",
                path=path,
            )
        )
    return Ok(style)


def _parse_system_dependencies(
    table: Mapping[str, object], path: Path | None
) -> Result[SystemDependencies | None, ConfigError]:
    sysdeps = get_table(table, "system-dependencies")
    if sysdeps is None:
        return Ok(None)
    homebrew = get_table(sysdeps, "homebrew") or {}
    out: list[tuple[str, SystemDependency]] = []
    for name in sorted(homebrew):
        value = homebrew[name]
        if isinstance(value, str):
            version = None if value.strip() in ("", "*") else value.strip()
            out.append((name, SystemDependency(version=version)))
            continue
        entry = as_str_dict(value)
        if entry is None:
            return Err(ConfigError(f"invalid homebrew dependency: {name}", path=path))
        stages: list[DependencyKind] = []
        for raw_stage in get_str_list(entry, "stage") or []:
            try:
                stages.append(DependencyKind(raw_stage))
            except ValueError:
                return Err(
                    ConfigError(f"unknown dependency stage for {name}: {raw_stage!r}", path=path)
                )
        out.append((name, SystemDependency(version=get_str(entry, "version"), stage=tuple(stages))))
    return Ok(SystemDependencies(homebrew=tuple(out)))


def _parse_publish_jobs(
    table: Mapping[str, object], path: Path | None
) -> Result[tuple[str, ...] | None, ConfigError]:
    raw = get_str_list(table, "publish-jobs")
    if raw is None:
        return Ok(None)
    known = {s.value for s in PublishStyle}
    for job in raw:
        if job not in known and not job.startswith("./"):
            return Err(ConfigError(f"unknown publish job: {job!r}", path=path))
    return Ok(tuple(raw))


def parse_metadata(
    table: StrDict | None,
    *,
    base_dir: Path,
    path: Path | None = None,
) -> Result[DistMetadata, ConfigError]:
    """Parse one `[dist]` table.

    Args:
        table: The raw table, or None if absent (yields an all-unset config).
        base_dir: Directory that relative `include` paths are resolved against.
        path: Manifest path, for error messages.
    """
    if table is None:
        return Ok(DistMetadata())

    installers = _parse_enum_list(table, "installers", InstallerStyle, path)
    if isinstance(installers, Err):
        return installers
    ci = _parse_enum_list(table, "ci", CiStyle, path)
    if isinstance(ci, Err):
        return ci
    windows_archive = _parse_archive(table, "windows-archive", path)
    if isinstance(windows_archive, Err):
        return windows_archive
    unix_archive = _parse_archive(table, "unix-archive", path)
    if isinstance(unix_archive, Err):
        return unix_archive

    checksum: ChecksumStyle | None = None
    raw_checksum = table.get("checksum")
    if isinstance(raw_checksum, bool) and not raw_checksum:
        checksum = ChecksumStyle.FALSE
    elif isinstance(raw_checksum, str):
        try:
            checksum = ChecksumStyle(raw_checksum.strip())
        except ValueError:
            return Err(ConfigError(f"unknown checksum: {raw_checksum!r}", path=path))

    install_path: InstallPathStrategy | None = None
    raw_install_path = get_str(table, "install-path")
    if raw_install_path is not None:
        install_path = InstallPathStrategy.parse(raw_install_path)
        if install_path is None:
            return Err(
                ConfigError(
                    f"invalid install-path: {raw_install_path!r} "
                    "(expected CARGO_HOME, ~/subdir or $ENV_VAR/subdir)",
                    path=path,
                )
            )

    sysdeps = _parse_system_dependencies(table, path)
    if isinstance(sysdeps, Err):
        return sysdeps
    publish_jobs = _parse_publish_jobs(table, path)
    if isinstance(publish_jobs, Err):
        return publish_jobs

    targets = get_str_list(table, "targets")
    features = get_str_list(table, "features")
    include = get_str_list(table, "include")

    return Ok(
        DistMetadata(
            targets=tuple(targets) if targets is not None else None,
            installers=installers.value,
            dist=get_bool(table, "dist"),
            auto_includes=get_bool(table, "auto-includes"),
            include=tuple(base_dir / p for p in include) if include is not None else None,
            windows_archive=windows_archive.value,
            unix_archive=unix_archive.value,
            checksum=checksum,
            install_path=install_path,
            npm_scope=get_str(table, "npm-scope"),
            tap=get_str(table, "tap"),
            system_dependencies=sysdeps.value,
            features=tuple(features) if features is not None else None,
            all_features=get_bool(table, "all-features"),
            default_features=get_bool(table, "default-features"),
            precise_builds=get_bool(table, "precise-builds"),
            merge_tasks=get_bool(table, "merge-tasks"),
            fail_fast=get_bool(table, "fail-fast"),
            create_release=get_bool(table, "create-release"),
            ci=ci.value,
            publish_jobs=publish_jobs.value,
            publish_prereleases=get_bool(table, "publish-prereleases"),
        )
    )
