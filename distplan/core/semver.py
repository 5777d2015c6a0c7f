from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering


_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


@total_ordering
@dataclass(frozen=True, slots=True)
class SemVer:
    """A semantic version (MAJOR.MINOR.PATCH[-PRE][+BUILD]).

    Ordering follows semver precedence: a prerelease sorts before its release,
    numeric identifiers sort numerically and before alphanumeric ones. Build
    metadata only breaks ties so the order stays total.
    """

    major: int
    minor: int
    patch: int
    pre: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)

    def to_tag(self) -> str:
        return f"v{self}"

    def __str__(self) -> str:
        out = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            out += "-" + ".".join(self.pre)
        if self.build:
            out += "+" + ".".join(self.build)
        return out

    def _key(self) -> tuple[object, ...]:
        # A release (no pre) outranks every prerelease of the same triple
        pre_key: tuple[object, ...]
        if self.pre:
            pre_key = (0, tuple(_ident_key(p) for p in self.pre))
        else:
            pre_key = (1, ())
        return (self.major, self.minor, self.patch, pre_key, self.build)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() < other._key()


def _ident_key(ident: str) -> tuple[int, int, str]:
    if ident.isdigit():
        return (0, int(ident), "")
    return (1, 0, ident)


def parse_version(raw: str) -> SemVer | None:
    """Parse a strict semver string (no leading `v`)."""
    m = _SEMVER_RE.match(raw)
    if m is None:
        return None
    pre = tuple(m.group(4).split(".")) if m.group(4) else ()
    build = tuple(m.group(5).split(".")) if m.group(5) else ()
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), pre, build)
