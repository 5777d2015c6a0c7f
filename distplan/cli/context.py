from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from distplan.core.errors import ErrorCode
from distplan.core.result import Err
from distplan.core.workspace import WorkspaceInfo, detect_workspace
from distplan.output.console import ConsoleProtocol, RichConsole
from distplan.output.errors import print_workspace_error
from distplan.platform.toolchain import Tools, tool_info


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace: WorkspaceInfo
    tools: Tools
    console: ConsoleProtocol


def build_context(manifest: Path | None = None, *, stderr: bool = False) -> CLIContext:
    """Load the workspace and probe the toolchain, or exit with ENV_ERROR."""
    console = RichConsole(stderr=stderr)
    workspace_result = detect_workspace(manifest)
    if isinstance(workspace_result, Err):
        print_workspace_error(workspace_result.error, console)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        workspace=workspace_result.value,
        tools=tool_info(),
        console=console,
    )
