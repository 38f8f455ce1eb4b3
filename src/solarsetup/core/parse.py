"""Lenient numeric parsing for text-valued component properties.

Component properties are stored as free text so a half-typed value never
blocks editing. Every numeric read in the engine goes through
:func:`parse_number`, which keeps "absent" (``nan``) distinct from zero.
"""
from __future__ import annotations

import math
import re
from typing import Any

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_number(value: Any) -> float:
    """Parse ``value`` to a finite float, or ``nan`` when absent.

    Numbers pass through. Strings are read from their leading numeric prefix,
    so ``"12V"`` gives 12.0 and ``"abc"`` gives ``nan``. Booleans, ``None``
    and non-finite results are treated as absent.
    """

    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        match = _LEADING_NUMBER.match(str(value))
        if not match:
            return math.nan
        try:
            num = float(match.group(0))
        except (OverflowError, ValueError):
            return math.nan
    return num if math.isfinite(num) else math.nan


def is_present(value: float) -> bool:
    return not math.isnan(value)


def format_number(value: float) -> str:
    """Shortest text form of a number: ``150.0`` -> ``"150"``, ``0.5`` -> ``"0.5"``."""

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def fixed(value: float, digits: int) -> str:
    return f"{value:.{digits}f}"


__all__ = ["parse_number", "is_present", "format_number", "fixed"]
