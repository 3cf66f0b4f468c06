"""
Evaluation context and signature building.

The context is the only view of a node a pricing expression gets: the
declared widgets (normalized) and the declared inputs (connected or not).
The signature fingerprints exactly the same declared values, so anything
an expression can observe is also something that invalidates its cache.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from .normalize import NormalizedValue, normalize_widget_value, value_text
from .rules import PricingRule

SIGNATURE_SEPARATOR = "|"


@dataclass(frozen=True)
class InputState:
    connected: bool


@dataclass(frozen=True)
class EvaluationContext:
    """Snapshot of a node's declared dependencies."""

    w: Mapping[str, NormalizedValue]
    i: Mapping[str, InputState]

    def as_dict(self) -> dict[str, Any]:
        """Shape handed to expression engines."""
        return {"w": self.w, "i": self.i}


def _find_named(items: Optional[Iterable[Any]], name: str) -> Any:
    for item in items or ():
        if getattr(item, "name", None) == name:
            return item
    return None


def build_context(node: Any, rule: PricingRule) -> EvaluationContext:
    """Read the rule's declared widgets and inputs off a node."""
    widgets: dict[str, NormalizedValue] = {}
    for name in rule.widgets:
        widget = _find_named(getattr(node, "widgets", None), name)
        widgets[name] = normalize_widget_value(getattr(widget, "value", None))

    inputs: dict[str, InputState] = {}
    for name in rule.inputs:
        slot = _find_named(getattr(node, "inputs", None), name)
        inputs[name] = InputState(connected=getattr(slot, "link", None) is not None)

    return EvaluationContext(w=MappingProxyType(widgets), i=MappingProxyType(inputs))


def safe_value_for_signature(value: Any) -> str:
    """Stable text for any widget value. Never raises."""
    if value is None:
        return ""
    if isinstance(value, (str, int, float, bool)):
        return value_text(value)
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


def build_signature(ctx: EvaluationContext, rule: PricingRule) -> str:
    """Fingerprint the declared dependency values of a context."""
    parts: list[str] = []
    for name in rule.widgets:
        value = ctx.w.get(name)
        parts.append(f"w:{name}={safe_value_for_signature(value.raw if value else None)}")
    for name in rule.inputs:
        state = ctx.i.get(name)
        parts.append(f"i:{name}={'1' if state and state.connected else '0'}")
    return SIGNATURE_SEPARATOR.join(parts)
