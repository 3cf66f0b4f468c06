"""
Rule compilation, memoized per node type.

A node type's price badge is compiled at most once per process. A badge
that fails to compile is remembered as a failure and never retried, so a
bad declaration costs one log line rather than one per render.
"""

import logging
from typing import Dict, Optional

from ..engines.base import DeclarationError
from ..engines.registry import EngineRegistry, get_engine_registry
from ..nodes.definitions import PriceBadge
from .rules import CompiledRule, PricingRule

logger = logging.getLogger(__name__)


class RuleCompiler:
    """
    Process-wide cache of compiled rules, keyed by node type name.

    Declarations are treated as load-time immutable: once a type name is
    compiled, later badges for the same name reuse that result until
    reset() is called.
    """

    def __init__(self, engines: Optional[EngineRegistry] = None):
        self._engines = engines
        self._compiled: Dict[str, CompiledRule] = {}

    @property
    def engines(self) -> EngineRegistry:
        return self._engines if self._engines is not None else get_engine_registry()

    def get(self, node_type_name: str, badge: Optional[PriceBadge]) -> Optional[CompiledRule]:
        """Get or compile the rule for a node type. None if it has no badge."""
        if badge is None:
            return None

        cached = self._compiled.get(node_type_name)
        if cached is not None:
            return cached

        compiled = self.compile(node_type_name, PricingRule.from_badge(badge))
        # setdefault keeps whichever compile landed first
        return self._compiled.setdefault(node_type_name, compiled)

    def compile(self, node_type_name: str, rule: PricingRule) -> CompiledRule:
        """Compile a rule without touching the cache. Never raises."""
        engine = self.engines.get(rule.engine)
        if engine is None:
            error = f"unknown engine {rule.engine!r}"
            logger.error(f"[pricing] {node_type_name}: {error}")
            return CompiledRule(rule=rule, error=error)

        try:
            handle = engine.compile(rule.expr)
        except DeclarationError as e:
            logger.error(f"[pricing] {node_type_name}: failed to compile expr {rule.expr!r}: {e}")
            return CompiledRule(rule=rule, engine=engine, error=str(e))
        except Exception as e:
            logger.error(
                f"[pricing] {node_type_name}: engine {rule.engine} crashed compiling {rule.expr!r}",
                exc_info=True,
            )
            return CompiledRule(rule=rule, engine=engine, error=f"{type(e).__name__}: {e}")

        if handle is None:
            return CompiledRule(rule=rule, engine=engine, error="engine returned no handle")

        return CompiledRule(rule=rule, engine=engine, handle=handle)

    def peek(self, node_type_name: str) -> Optional[CompiledRule]:
        """Cached result for a type name, without compiling."""
        return self._compiled.get(node_type_name)

    def reset(self) -> None:
        """Forget every compiled rule."""
        self._compiled.clear()

    def stats(self) -> dict:
        failed = sum(1 for c in self._compiled.values() if not c.ok)
        return {
            "compiled": len(self._compiled) - failed,
            "failed": failed,
        }


# Global compiler
_compiler: Optional[RuleCompiler] = None


def get_rule_compiler() -> RuleCompiler:
    """Get the global rule compiler."""
    global _compiler
    if _compiler is None:
        _compiler = RuleCompiler()
    return _compiler


def set_rule_compiler(compiler: RuleCompiler) -> None:
    """Set the global rule compiler."""
    global _compiler
    _compiler = compiler


def reset_rule_compiler() -> None:
    """Reset the global rule compiler."""
    global _compiler
    _compiler = None
