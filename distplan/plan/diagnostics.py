"""Diagnostics sink threaded through planning.

Planning stays a pure function of its inputs: instead of printing, every
step records what it decided (and what it had to skip) here. The CLI replays
the records onto a console afterwards; tests just inspect them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

__all__ = ["Diagnostic", "Diagnostics"]


@dataclass(frozen=True, slots=True)
class Diagnostic:
    level: Literal["info", "warning"]
    message: str


def _empty_records() -> list[Diagnostic]:
    return []


@dataclass
class Diagnostics:
    records: list[Diagnostic] = field(default_factory=_empty_records)

    def info(self, message: str) -> None:
        self.records.append(Diagnostic("info", message))

    def warn(self, message: str) -> None:
        self.records.append(Diagnostic("warning", message))

    @property
    def warnings(self) -> list[str]:
        return [r.message for r in self.records if r.level == "warning"]

    @property
    def infos(self) -> list[str]:
        return [r.message for r in self.records if r.level == "info"]

    def has_warning(self, substring: str) -> bool:
        return any(substring in w for w in self.warnings)
