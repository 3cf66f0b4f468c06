"""
Pricing rules - the immutable, engine-agnostic form of a price badge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..engines.base import ExpressionEngine
from ..nodes.definitions import PriceBadge


@dataclass(frozen=True)
class PricingRule:
    """A node type's pricing rule as read from its declaration."""

    engine: str
    expr: str
    widgets: tuple[str, ...] = ()
    inputs: tuple[str, ...] = ()
    result_defaults: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_badge(cls, badge: PriceBadge) -> PricingRule:
        defaults = badge.result_defaults.overrides() if badge.result_defaults else {}
        return cls(
            engine=badge.engine,
            expr=badge.expr,
            widgets=tuple(dict.fromkeys(badge.depends_on.widgets)),
            inputs=tuple(dict.fromkeys(badge.depends_on.inputs)),
            result_defaults=defaults,
        )

    def dependency_names(self) -> list[str]:
        """Widget then input names, deduplicated, in declaration order."""
        return list(dict.fromkeys(self.widgets + self.inputs))

    def to_dict(self) -> dict:
        """Declaration shape, without any compiled state."""
        return {
            "engine": self.engine,
            "depends_on": {
                "widgets": list(self.widgets),
                "inputs": list(self.inputs),
            },
            "result_defaults": dict(self.result_defaults),
            "expr": self.expr,
        }


@dataclass(frozen=True)
class CompiledRule:
    """
    A rule plus its compiled handle.

    ``handle is None`` marks a permanent compile failure for the node type.
    """

    rule: PricingRule
    engine: Optional[ExpressionEngine] = None
    handle: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.handle is not None
