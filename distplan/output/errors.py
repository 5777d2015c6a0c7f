"""Presenting planning results and failures."""

from __future__ import annotations

from typing import TYPE_CHECKING

from distplan.core.config import ConfigError
from distplan.core.errors import ErrorCode
from distplan.core.workspace import WorkspaceError
from distplan.output.console import Style
from distplan.plan.diagnostics import Diagnostics
from distplan.plan.errors import PlanError

if TYPE_CHECKING:
    from distplan.output.console import ConsoleProtocol

__all__ = [
    "plan_error_exit_code",
    "print_config_error",
    "print_diagnostics",
    "print_plan_error",
    "print_workspace_error",
]


def print_diagnostics(diagnostics: Diagnostics, console: ConsoleProtocol, *, verbose: bool) -> None:
    """Replay what planning recorded. Info lines only show up with `verbose`."""
    for record in diagnostics.records:
        if record.level == "warning":
            console.warning(record.message)
        elif verbose:
            console.info(record.message)


def print_plan_error(error: PlanError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    if error.hint:
        for line in error.hint.rstrip().splitlines():
            console.print(line, Style.DIM)


def print_workspace_error(error: WorkspaceError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    if error.searched_from is not None:
        console.print(f"searched from: {error.searched_from}", Style.DIM)


def print_config_error(error: ConfigError, console: ConsoleProtocol) -> None:
    where = f" ({error.path})" if error.path else ""
    console.error(f"{error.message}{where}")


def plan_error_exit_code(error: PlanError) -> int:
    match error.kind:
        case "tag_version_parse" | "contradictory_tag_version" | "no_tag_match":
            return int(ErrorCode.USER_ERROR)
        case "too_many_unrelated_apps" | "nothing_to_release" | "no_targets":
            return int(ErrorCode.USER_ERROR)
        case "precise_impossible" | "multi_package_msi" | "no_package_msi":
            return int(ErrorCode.PLAN_ERROR)
