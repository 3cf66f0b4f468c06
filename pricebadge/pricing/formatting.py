"""
Result formatting - turn an evaluated pricing result into a badge label.

Expressions return one of four tagged shapes:

    {"type": "text", "text": "Free"}
    {"type": "usd", "usd": 0.04}
    {"type": "range_usd", "min_usd": 0.02, "max_usd": 0.08}
    {"type": "list_usd", "usd": [0.02, 0.04]}

Any usd shape may carry a "format" dict (suffix, note, approximate,
separator) which overrides the rule's result_defaults, which in turn
override the global defaults from PricingConfig. Anything else formats
as "" - a missing badge, never an error.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from ..config import PricingConfig, get_config
from .normalize import as_finite_number

FORMAT_KEYS = ("suffix", "note", "approximate", "separator")


def credits_from_usd(usd: float, credits_per_usd: float) -> str:
    """Whole credits for a USD amount, half-up rounded, with thousands separators."""
    try:
        credits = (Decimal(repr(usd)) * Decimal(repr(credits_per_usd))).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
    except InvalidOperation:
        return ""
    return f"{int(credits):,}"


def _format_options(
    result: Mapping,
    defaults: Optional[Mapping],
    config: PricingConfig,
) -> dict[str, Any]:
    options: dict[str, Any] = {
        "suffix": config.default_suffix,
        "separator": config.default_separator,
    }
    for layer in (defaults, result.get("format")):
        if not isinstance(layer, Mapping):
            continue
        for key in FORMAT_KEYS:
            if layer.get(key) is not None:
                options[key] = layer[key]
    return options


def _credits_label(value: str, options: dict[str, Any]) -> str:
    if not value:
        return ""
    prefix = "~" if options.get("approximate") else ""
    note = options.get("note")
    note_text = f" {note}" if note else ""
    return f"{prefix}{value} credits{options['suffix']}{note_text}"


def format_pricing_result(
    result: Any,
    defaults: Optional[Mapping] = None,
    config: Optional[PricingConfig] = None,
) -> str:
    """Format an evaluation result. Returns "" for anything unrecognized."""
    if not isinstance(result, Mapping):
        return ""

    config = config if config is not None else get_config()
    rate = config.credits_per_usd
    kind = result.get("type")

    if kind == "text":
        text = result.get("text")
        return "" if text is None else str(text)

    if kind == "usd":
        usd = as_finite_number(result.get("usd"))
        if usd is None:
            return ""
        options = _format_options(result, defaults, config)
        return _credits_label(credits_from_usd(usd, rate), options)

    if kind == "range_usd":
        min_usd = as_finite_number(result.get("min_usd"))
        max_usd = as_finite_number(result.get("max_usd"))
        if min_usd is None or max_usd is None:
            return ""
        low = credits_from_usd(min_usd, rate)
        high = credits_from_usd(max_usd, rate)
        if not low or not high:
            return ""
        options = _format_options(result, defaults, config)
        return _credits_label(low if low == high else f"{low}-{high}", options)

    if kind == "list_usd":
        values = result.get("usd")
        if not isinstance(values, (list, tuple)):
            return ""
        usd_values = [v for v in map(as_finite_number, values) if v is not None]
        if not usd_values:
            return ""
        options = _format_options(result, defaults, config)
        parts = [p for p in (credits_from_usd(v, rate) for v in usd_values) if p]
        return _credits_label(str(options["separator"]).join(parts), options)

    return ""
