"""
Value normalization for pricing expressions.

Widget values can be anything a widget holds (strings, numbers, booleans,
lists, dicts). Expressions see a fixed-shape projection instead so they
never have to type-check raw values themselves.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional, Union

Number = Union[int, float]


@dataclass(frozen=True)
class NormalizedValue:
    """A widget value as seen by pricing expressions."""

    raw: Any
    s: str                # trimmed, lower-cased text ("" for None)
    n: Optional[Number]   # finite number, or None
    b: Optional[bool]     # boolean, or None


def value_text(value: Any) -> str:
    """Render a scalar the way declarations spell it (true/false, 1 not 1.0)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def as_finite_number(value: Any) -> Optional[Number]:
    """
    Project a value onto a finite number.

    Numbers pass through when finite; strings are trimmed and parsed.
    Booleans and objects are never coerced.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return value if math.isfinite(value) else None
        except OverflowError:
            # int beyond float range
            return None

    if isinstance(value, str):
        text = value.strip()
        if text == "" or "_" in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None

    return None


def as_boolean(value: Any) -> Optional[bool]:
    """Only real booleans and the strings "true"/"false" become booleans."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
    return None


def normalize_widget_value(raw: Any) -> NormalizedValue:
    """Build the normalized projection of a raw widget value."""
    s = "" if raw is None else value_text(raw).strip().lower()
    return NormalizedValue(raw=raw, s=s, n=as_finite_number(raw), b=as_boolean(raw))
