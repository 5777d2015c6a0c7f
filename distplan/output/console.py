"""Where command output goes.

Commands only see `ConsoleProtocol`. `RichConsole` writes to the terminal
(stdout, or stderr when stdout carries a JSON manifest); `MockConsole` keeps
the lines so tests can assert on exactly what a user would read.

Plan output is full of brackets (`[bin]`, `[package.dist]`), so nothing is
ever parsed as rich markup.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    """Semantic style; the value is the rich style it renders as."""

    DEFAULT = ""
    SUCCESS = "green"
    ERROR = "red bold"
    WARNING = "yellow"
    INFO = "cyan"
    DIM = "dim"
    BOLD = "bold"
    HEADER = "blue bold"

    def __str__(self) -> str:
        return self.name.lower()


# Leading word for one-line notices
_PREFIX = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
    Style.INFO: "info:",
}


class ConsoleProtocol(Protocol):
    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...


class _Notices:
    """success/error/warning/info in terms of one `_notice` hook."""

    def _notice(self, style: Style, message: str) -> None:
        raise NotImplementedError

    def success(self, message: str) -> None:
        self._notice(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._notice(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._notice(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._notice(Style.INFO, message)


class RichConsole(_Notices):
    def __init__(self, *, stderr: bool = False) -> None:
        # Imported here so the planning core never pulls rich in
        from rich.console import Console

        self._console = Console(stderr=stderr, highlight=False)

    def _notice(self, style: Style, message: str) -> None:
        from rich.text import Text

        self._console.print(Text.assemble((_PREFIX[style], style.value), " ", message))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._console.print(message, style=style.value or None, markup=False)

    def header(self, message: str) -> None:
        self._console.print()
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole(_Notices):
    """Records output instead of printing it; notices keep their prefix."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def _notice(self, style: Style, message: str) -> None:
        self.outputs.append(OutputRecord(f"{_PREFIX[style]} {message}", style))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def header(self, message: str) -> None:
        self.print(message, Style.HEADER)

    def newline(self) -> None:
        self.print("")

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return self.count(Style.ERROR) > 0

    def has_warning(self) -> bool:
        return self.count(Style.WARNING) > 0

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
