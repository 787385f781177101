"""Typed accessors over parsed TOML tables.

``tomllib`` hands back plain ``dict``/``list`` trees. Release and step
configuration is read through these helpers so that shape checks happen once,
at load time, and everything downstream works with narrowed types.

Accessors return ``None`` for a missing key and for a value of the wrong
type; callers that must tell the two apart check ``key in table`` first.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    if not isinstance(obj, dict):
        return False
    return all(isinstance(k, str) for k in cast(dict[object, object], obj))


def as_str_dict(obj: object) -> StrDict | None:
    return obj if is_str_dict(obj) else None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Stripped string value; blank strings count as missing."""
    raw = get_raw_str(table, key)
    if raw is None:
        return None
    return raw.strip() or None


def get_raw_str(table: Mapping[str, object], key: str) -> str | None:
    """String value as written. Templates keep their whitespace and newlines."""
    value = table.get(key)
    return value if isinstance(value, str) else None


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    return value if isinstance(value, bool) else None


def get_number(table: Mapping[str, object], key: str) -> float | None:
    value = table.get(key)
    # TOML booleans load as bool, which is an int subclass.
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def get_list(table: Mapping[str, object], key: str) -> ObjList | None:
    value = table.get(key)
    return cast(ObjList, value) if isinstance(value, list) else None


def get_str_list(table: Mapping[str, object], key: str) -> list[str] | None:
    """List of strings (step assets, image tags, phases). Any non-string item rejects the list."""
    items = get_list(table, key)
    if items is None or not all(isinstance(item, str) for item in items):
        return None
    return [cast(str, item) for item in items]
