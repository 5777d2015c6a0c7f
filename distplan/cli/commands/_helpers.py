"""Shared helpers for CLI commands."""

from __future__ import annotations

import os
from enum import Enum
from typing import NoReturn

import typer

from distplan.core.config import ArtifactMode, CiStyle, InstallerStyle
from distplan.core.errors import ErrorCode
from distplan.output.console import ConsoleProtocol, Style
from distplan.plan.gather import PlanRequest


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)


def _parse_choice[T: Enum](
    raw: str, enum: type[T], option: str, console: ConsoleProtocol
) -> T:
    try:
        return enum(raw)
    except ValueError:
        console.error(f"invalid {option}: {raw!r}")
        console.print(f"expected one of: {', '.join(str(m.value) for m in enum)}", Style.DIM)
        exit_with_code(int(ErrorCode.USER_ERROR))


def build_request(
    console: ConsoleProtocol,
    *,
    tag: str | None,
    targets: list[str] | None,
    installers: list[str] | None,
    ci: list[str] | None,
    artifacts: str,
    allow_incoherent: bool,
) -> PlanRequest:
    """Validate command line selections into a PlanRequest (exits on bad input)."""
    return PlanRequest(
        artifact_mode=_parse_choice(artifacts, ArtifactMode, "--artifacts", console),
        targets=tuple(targets or ()),
        installers=tuple(
            _parse_choice(i, InstallerStyle, "--installer", console) for i in installers or ()
        ),
        ci=tuple(_parse_choice(c, CiStyle, "--ci", console) for c in ci or ()),
        announcement_tag=tag,
        needs_coherent_announcement_tag=not allow_incoherent,
        rustflags=os.environ.get("RUSTFLAGS", ""),
    )
