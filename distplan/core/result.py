"""Ok/Err values for failures the planner expects.

A bad tag or a contradictory config is part of normal operation, so it comes
back as `Err(...)` rather than an exception. Callers either `match` on the
result or check `isinstance(result, Err)` and return it upwards unchanged:

    match select_tag(workspace, tag, diagnostics=diagnostics):
        case Ok(announcing):
            ...
        case Err(error):
            print(error.pretty())

Exceptions stay reserved for bugs (broken graph invariants).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Never, TypeGuard

__all__ = ["Err", "Ok", "Result", "is_err", "is_ok"]


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def unwrap(self) -> Never:
        """Only for tests and setup code that knows it can't fail."""
        raise ValueError(f"unwrapped an Err: {self.error}")


type Result[T, E] = Ok[T] | Err[E]


def is_ok[T, E](result: Result[T, E]) -> TypeGuard[Ok[T]]:
    return isinstance(result, Ok)


def is_err[T, E](result: Result[T, E]) -> TypeGuard[Err[E]]:
    return isinstance(result, Err)
