"""Utility helpers shared across the Unsplash MCP server modules."""

from __future__ import annotations

import sys
from typing import Any, Optional, Union


def _coalesce(*values: Optional[Any]) -> Optional[Any]:
    """Return the first non-None value from the provided sequence."""

    for value in values:
        if value is not None:
            return value
    return None


def _coerce_int(value: Any) -> Optional[int]:
    """Parse tool input as an integer, returning None when it is not one.

    Accepts ints, integral floats and numeric strings ("2", " 3 ", "4.0").
    Booleans are rejected even though they subclass int.
    """

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value) if value.is_integer() else None

    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return int(stripped)
        except ValueError:
            pass
        try:
            parsed = float(stripped)
        except ValueError:
            return None
        return _coerce_int(parsed)

    return None


def _match_choice(value: Any, choices: tuple[str, ...]) -> Optional[str]:
    """Case-insensitive lookup of ``value`` among ``choices``."""

    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized if normalized in choices else None


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _try_parse_int(value: Optional[Union[str, int]]) -> Optional[int]:
    """Safely parse integers from environment values."""

    if value is None:
        return None

    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        print(f"Warning: unable to parse integer from value '{value}'", file=sys.stderr)
        return None


def _try_parse_float(value: Optional[Union[str, float]]) -> Optional[float]:
    """Safely parse floats from environment values."""

    if value is None:
        return None

    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        print(f"Warning: unable to parse float from value '{value}'", file=sys.stderr)
        return None


__all__ = [name for name in globals() if name.startswith("_") and not name.startswith("__")]
