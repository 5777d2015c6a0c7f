"""Error types for planning."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

PlanErrorKind = Literal[
    "precise_impossible",
    "no_targets",
    "tag_version_parse",
    "contradictory_tag_version",
    "no_tag_match",
    "too_many_unrelated_apps",
    "nothing_to_release",
    "multi_package_msi",
    "no_package_msi",
]


@dataclass(frozen=True, slots=True)
class PlanError:
    """A fatal planning error.

    No partial plan is produced when one of these is returned. `hint` carries
    the actionable part (often a generated list of tags that would work).
    """

    kind: PlanErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
