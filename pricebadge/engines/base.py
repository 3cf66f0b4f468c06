"""
Base classes for pricing expression engines.

An engine turns declared expression text into an opaque handle once,
then evaluates that handle against an evaluation context any number
of times. Evaluation is always a coroutine so engines that need I/O
or a slow interpreter never block the caller.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class PricingError(Exception):
    """Base exception for pricing errors."""

    def __init__(self, message: str, code: str = "PRICING_ERROR"):
        super().__init__(message)
        self.code = code


class DeclarationError(PricingError):
    """Raised when an expression cannot be compiled. Permanent per node type."""

    def __init__(self, message: str, expr: Optional[str] = None):
        super().__init__(message, code="DECLARATION_ERROR")
        self.expr = expr


class EvaluationError(PricingError):
    """Raised when a compiled expression fails for a specific node state."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="EVALUATION_ERROR")
        self.cause = cause


class ExpressionEngine(ABC):
    """
    Pluggable expression dialect.

    Subclasses set ``engine_id`` (the value of ``engine`` in a price
    badge declaration) and implement compile/evaluate.
    """

    engine_id: str = ""

    @abstractmethod
    def compile(self, expr: str) -> Any:
        """
        Compile expression text into a reusable handle.

        Raises:
            DeclarationError: if the expression is malformed
        """

    @abstractmethod
    async def evaluate(self, handle: Any, context: Dict[str, Any]) -> Any:
        """
        Evaluate a compiled handle against a context.

        Args:
            handle: Value previously returned by compile()
            context: Evaluation context ({"w": ..., "i": ...})

        Raises:
            EvaluationError: if evaluation fails for this context
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(engine_id={self.engine_id!r})"
