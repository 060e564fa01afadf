"""Typed accessors over loosely-typed JSON values.

Gateway frames arrive as plain ``dict``/``list`` trees.  These helpers pull a
field out with the expected type and return ``None`` on mismatch instead of
raising, so frame handling never crashes on a malformed peer.
"""

from __future__ import annotations

from typing import Any


def as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def as_bool(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def as_list(value: Any) -> list[Any] | None:
    return value if isinstance(value, list) else None


def as_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def dig(value: Any, *keys: str) -> Any:
    """Walk nested mappings, returning ``None`` as soon as a level is missing."""
    for key in keys:
        mapping = as_dict(value)
        if mapping is None:
            return None
        value = mapping.get(key)
    return value
