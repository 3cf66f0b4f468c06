"""
Node Pricing - synchronous price labels backed by async evaluation.

Rendering code asks for a node's label on every frame and cannot wait.
get_display_label() therefore answers from a per-node cache keyed by the
node's dependency signature, and on a miss schedules an evaluation task
on the running event loop and returns the last-known label meanwhile.

Per node instance:

    no entry --miss--> pending --settle--> cached
                          ^                  |
                          +---new signature--+

A task whose signature is no longer the node's desired signature when it
settles is discarded. Stale tasks are never cancelled, only ignored.
"""

import asyncio
import inspect
import logging
import weakref
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..config import PricingConfig, get_config
from ..nodes.definitions import NodeDefinitionStore, get_definition_store
from .compiler import RuleCompiler, get_rule_compiler
from .context import EvaluationContext, build_context, build_signature
from .formatting import format_pricing_result
from .rules import CompiledRule
from .signal import InvalidationSignal, ReadOnlySignal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    sig: str
    label: str


@dataclass(frozen=True)
class InFlight:
    sig: str
    task: "asyncio.Task[None]"


class NodePricing:
    """
    Price labels for node instances.

    Usage:
        pricing = NodePricing(definitions=store)

        # In a render loop (inside a running event loop)
        label = pricing.get_display_label(node)

        # Redraw when a deferred label lands
        pricing.invalidation_signal.subscribe(lambda version: redraw())
    """

    def __init__(
        self,
        definitions: Optional[NodeDefinitionStore] = None,
        compiler: Optional[RuleCompiler] = None,
        config: Optional[PricingConfig] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._definitions = definitions
        self._compiler = compiler
        self._config = config
        self._loop = loop
        self._signal = InvalidationSignal()

        # Weakly keyed so pricing state never outlives its node
        self._cache: "weakref.WeakKeyDictionary[Any, CacheEntry]" = weakref.WeakKeyDictionary()
        self._desired: "weakref.WeakKeyDictionary[Any, str]" = weakref.WeakKeyDictionary()
        self._inflight: "weakref.WeakKeyDictionary[Any, InFlight]" = weakref.WeakKeyDictionary()

    @property
    def definitions(self) -> NodeDefinitionStore:
        return self._definitions if self._definitions is not None else get_definition_store()

    @property
    def compiler(self) -> RuleCompiler:
        return self._compiler if self._compiler is not None else get_rule_compiler()

    @property
    def config(self) -> PricingConfig:
        return self._config if self._config is not None else get_config()

    @property
    def invalidation_signal(self) -> ReadOnlySignal:
        """Bumped once per settled (or superseded) evaluation."""
        return self._signal.readonly()

    # === Public API ===

    def get_display_label(self, node: Any) -> str:
        """
        Current price label for a node. Never blocks, never raises.

        Returns the cached label when the node's dependencies are unchanged;
        otherwise schedules an evaluation and returns the last-known label
        (or "" if there is none yet).
        """
        try:
            return self._get_display_label(node)
        except Exception:
            logger.exception(f"[pricing] label lookup failed for {node!r}")
            return ""

    def get_pricing_config(self, node: Any) -> Optional[Dict[str, Any]]:
        """The node's pricing declaration, without compiled state. For debugging."""
        compiled = self._rule_for_node(node)
        if compiled is None:
            return None
        return compiled.rule.to_dict()

    def get_relevant_dependency_names(self, node_type_name: str) -> List[str]:
        """Widget and input names a node type's price depends on, deduplicated."""
        definition = self.definitions.get(node_type_name)
        if definition is None or definition.price_badge is None:
            return []

        depends_on = definition.price_badge.depends_on
        return list(dict.fromkeys([*depends_on.widgets, *depends_on.inputs]))

    async def settle(self, node: Any) -> str:
        """Wait until no evaluation is pending for a node and return its label."""
        label = self.get_display_label(node)
        while True:
            running = self._inflight.get(node)
            if running is None:
                return label
            await running.task
            label = self.get_display_label(node)

    def forget(self, node: Any) -> None:
        """Drop all pricing state for a node (explicit teardown hook)."""
        self._cache.pop(node, None)
        self._desired.pop(node, None)
        self._inflight.pop(node, None)

    def is_pending(self, node: Any) -> bool:
        return node in self._inflight

    def stats(self) -> dict:
        return {
            "cached": len(self._cache),
            "pending": len(self._inflight),
            "version": self._signal.version,
        }

    # === Internals ===

    def _rule_for_node(self, node: Any) -> Optional[CompiledRule]:
        definition = getattr(node, "definition", None)
        if definition is None or not getattr(definition, "api_node", False):
            return None

        badge = getattr(definition, "price_badge", None)
        if badge is None:
            return None

        return self.compiler.get(definition.name, badge)

    def _get_display_label(self, node: Any) -> str:
        compiled = self._rule_for_node(node)
        if compiled is None or not compiled.ok:
            return ""

        ctx = build_context(node, compiled.rule)
        sig = build_signature(ctx, compiled.rule)

        cached = self._cache.get(node)
        if cached is not None and cached.sig == sig:
            return cached.label

        self._schedule(node, compiled, ctx, sig)
        return cached.label if cached is not None else ""

    def _event_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _schedule(self, node: Any, compiled: CompiledRule, ctx: EvaluationContext, sig: str) -> None:
        self._desired[node] = sig

        running = self._inflight.get(node)
        if running is not None and running.sig == sig:
            return

        loop = self._event_loop()
        if loop is None:
            logger.debug(f"[pricing] no event loop, not evaluating {node!r}")
            return

        type_name = getattr(getattr(node, "definition", None), "name", "")
        task = loop.create_task(self._evaluate(weakref.ref(node), type_name, compiled, ctx, sig))
        self._inflight[node] = InFlight(sig=sig, task=task)

    def _commit(self, node_ref: "weakref.ref[Any]", sig: str, label: str) -> bool:
        node = node_ref()
        if node is None or self._desired.get(node) != sig:
            return False
        self._cache[node] = CacheEntry(sig=sig, label=label)
        return True

    async def _evaluate(
        self,
        node_ref: "weakref.ref[Any]",
        type_name: str,
        compiled: CompiledRule,
        ctx: EvaluationContext,
        sig: str,
    ) -> None:
        config = self.config
        try:
            result = compiled.engine.evaluate(compiled.handle, ctx.as_dict())
            if inspect.isawaitable(result):
                result = await result

            label = format_pricing_result(result, compiled.rule.result_defaults, config)
            committed = self._commit(node_ref, sig, label)

            if config.debug:
                state = "resolved" if committed else "superseded"
                logger.debug(f"[pricing] {state} {type_name} sig={sig!r} result={result!r} label={label!r}")
        except Exception as e:
            if config.development:
                logger.warning(f"[pricing] evaluation failed for {type_name}: {e}")
            # Cache "" so the same failing state isn't retried every frame
            self._commit(node_ref, sig, "")
        finally:
            node = node_ref()
            if node is not None:
                current = self._inflight.get(node)
                if current is not None and current.sig == sig:
                    del self._inflight[node]
            self._signal.bump()


# Global instance
_pricing: Optional[NodePricing] = None


def get_node_pricing() -> NodePricing:
    """Get the global NodePricing instance."""
    global _pricing
    if _pricing is None:
        _pricing = NodePricing()
    return _pricing


def set_node_pricing(pricing: NodePricing) -> None:
    """Set the global NodePricing instance."""
    global _pricing
    _pricing = pricing


def reset_node_pricing() -> None:
    """Reset the global NodePricing instance."""
    global _pricing
    _pricing = None
