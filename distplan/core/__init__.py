"""Core domain types: results, exit codes, config and workspace loading."""

from .config import ConfigError, DistMetadata, merge_workspace_config, parse_metadata
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok
from .semver import SemVer, parse_version
from .workspace import PackageIdx, PackageInfo, WorkspaceError, WorkspaceInfo, detect_workspace

__all__ = [
    # config
    "ConfigError",
    "DistMetadata",
    "merge_workspace_config",
    "parse_metadata",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # semver
    "SemVer",
    "parse_version",
    # workspace
    "PackageIdx",
    "PackageInfo",
    "WorkspaceError",
    "WorkspaceInfo",
    "detect_workspace",
]
