"""Coerce loosely typed request fields into canonical string lists."""

from typing import Any


def ensure_list(value: Any) -> list[str]:
    """Normalize *value* into an ordered list of trimmed, non-empty strings.

    Accepts ``None``, a single string, a comma-separated string, or a
    list/tuple of values.  Order and duplicates are preserved.  Anything
    else degrades to an empty list instead of raising.
    """
    if not value:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = [str(item) for item in value if item is not None]
    else:
        return []
    return [p.strip() for p in parts if p.strip()]


def first_name(full_name: str | None) -> str:
    """Return the first whitespace-separated token of *full_name*."""
    if not full_name:
        return ""
    tokens = str(full_name).split()
    return tokens[0] if tokens else ""
