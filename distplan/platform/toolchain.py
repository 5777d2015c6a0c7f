"""Probe the build toolchain installed on this machine.

The planner needs to know the host target triple (to decide when a cross
compile needs an extra toolchain component) and whether `rustup` is around
to install one.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from distplan.core.result import Err

from .detection import detect
from .process import run

__all__ = ["CargoInfo", "Tool", "Tools", "find_tool", "get_host_target", "tool_info"]


@dataclass(frozen=True, slots=True)
class Tool:
    """A tool found on PATH."""

    cmd: str
    version: str


@dataclass(frozen=True, slots=True)
class CargoInfo:
    cmd: str
    version_line: str | None
    host_target: str


@dataclass(frozen=True, slots=True)
class Tools:
    cargo: CargoInfo
    rustup: Tool | None = None


def cargo_cmd() -> str:
    return os.environ.get("CARGO") or "cargo"


def get_host_target(cargo: str, *, cwd: Path | None = None) -> CargoInfo:
    """Ask cargo for the host triple, falling back to platform detection."""
    result = run([cargo, "-vV"], cwd=cwd or Path.cwd())
    if isinstance(result, Err):
        return CargoInfo(cmd=cargo, version_line=None, host_target=detect().target_triple)

    lines = result.value.splitlines()
    version_line = lines[0] if lines else None
    for line in lines[1:]:
        if line.startswith("host: "):
            return CargoInfo(
                cmd=cargo,
                version_line=version_line,
                host_target=line.removeprefix("host: ").strip(),
            )
    return CargoInfo(cmd=cargo, version_line=version_line, host_target=detect().target_triple)


def find_tool(name: str, *, cwd: Path | None = None) -> Tool | None:
    result = run([name, "-V"], cwd=cwd or Path.cwd())
    if isinstance(result, Err):
        return None
    lines = result.value.splitlines()
    if not lines:
        return None
    return Tool(cmd=name, version=lines[0])


def tool_info() -> Tools:
    return Tools(cargo=get_host_target(cargo_cmd()), rustup=find_tool("rustup"))
