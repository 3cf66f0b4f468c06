"""
Expression engines for pricing rules.
"""

from .base import (
    PricingError,
    DeclarationError,
    EvaluationError,
    ExpressionEngine,
)
from .expr import ExprEngine, ExpressionProgram, ALLOWED_FUNCTIONS
from .jsonata_engine import JsonataEngine, JsonataProgram
from .registry import (
    EngineRegistry,
    get_engine_registry,
    set_engine_registry,
    reset_engine_registry,
)

__all__ = [
    # Base
    "PricingError",
    "DeclarationError",
    "EvaluationError",
    "ExpressionEngine",
    # expr-v1
    "ExprEngine",
    "ExpressionProgram",
    "ALLOWED_FUNCTIONS",
    # jsonata
    "JsonataEngine",
    "JsonataProgram",
    # Registry
    "EngineRegistry",
    "get_engine_registry",
    "set_engine_registry",
    "reset_engine_registry",
]
