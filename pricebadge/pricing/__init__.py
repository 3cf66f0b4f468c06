"""
Node Pricing - price badge labels for priced node types.

Compiles each node type's price badge once, fingerprints each node's
declared dependencies, evaluates asynchronously and caches the label
until those dependencies change.
"""

from .normalize import NormalizedValue, normalize_widget_value, as_finite_number
from .rules import PricingRule, CompiledRule
from .context import (
    InputState,
    EvaluationContext,
    build_context,
    build_signature,
)
from .compiler import (
    RuleCompiler,
    get_rule_compiler,
    set_rule_compiler,
    reset_rule_compiler,
)
from .formatting import format_pricing_result, credits_from_usd
from .signal import InvalidationSignal, ReadOnlySignal
from .scheduler import (
    NodePricing,
    get_node_pricing,
    set_node_pricing,
    reset_node_pricing,
)

__all__ = [
    # Normalizer
    "NormalizedValue",
    "normalize_widget_value",
    "as_finite_number",
    # Rules
    "PricingRule",
    "CompiledRule",
    # Context / signature
    "InputState",
    "EvaluationContext",
    "build_context",
    "build_signature",
    # Compiler
    "RuleCompiler",
    "get_rule_compiler",
    "set_rule_compiler",
    "reset_rule_compiler",
    # Formatter
    "format_pricing_result",
    "credits_from_usd",
    # Signal
    "InvalidationSignal",
    "ReadOnlySignal",
    # Scheduler
    "NodePricing",
    "get_node_pricing",
    "set_node_pricing",
    "reset_node_pricing",
]
