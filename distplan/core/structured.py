"""Typed reads out of a parsed `dist-workspace.toml`.

`tomllib` hands back plain dicts and lists of unknown shape. Config and
workspace loading go through these readers so that a wrong-typed value is
treated like a missing one and the checker sees narrowed types.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

__all__ = [
    "StrDict",
    "as_str_dict",
    "get_bool",
    "get_str",
    "get_str_list",
    "get_table",
    "get_table_list",
]

StrDict = dict[str, object]


def as_str_dict(obj: object) -> StrDict | None:
    """`obj` as a TOML table, or None if it isn't one."""
    if isinstance(obj, dict) and all(isinstance(k, str) for k in cast(dict[object, object], obj)):
        return cast(StrDict, obj)
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """A stripped, non-empty string."""
    match table.get(key):
        case str(value) if value.strip():
            return value.strip()
        case _:
            return None


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    return value if isinstance(value, bool) else None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def get_table_list(table: Mapping[str, object], key: str) -> list[StrDict] | None:
    """An array of tables (`[[key]]`).

    Missing means an empty list; None means the key holds something that
    isn't an array of tables.
    """
    value = table.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        return None
    tables = [as_str_dict(item) for item in cast(list[object], value)]
    if any(t is None for t in tables):
        return None
    return cast(list[StrDict], tables)


def get_str_list(table: Mapping[str, object], key: str) -> list[str] | None:
    """A list of stripped strings; blank and non-string items are skipped."""
    value = table.get(key)
    if not isinstance(value, list):
        return None
    items = cast(list[object], value)
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]
