"""Coercion of loosely typed values read from YAML settings."""

from __future__ import annotations

from typing import SupportsIndex, SupportsInt


def safe_int(
    value: SupportsInt | SupportsIndex | str | None,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Return ``value`` as an int, or ``default`` when it is unusable.

    Booleans, blanks and anything :func:`int` rejects are unusable, and so is
    a number outside the optional ``min_value``/``max_value`` bounds.
    """
    if value is None or isinstance(value, bool):
        return default
    raw = value.strip() if isinstance(value, str) else value
    if raw == "":
        return default
    try:
        number = int(raw)
    except (TypeError, ValueError):
        return default
    below = min_value is not None and number < min_value
    above = max_value is not None and number > max_value
    return default if below or above else number


__all__ = ["safe_int"]
