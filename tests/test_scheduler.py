"""
Tests for NodePricing - cached labels backed by async evaluation.
"""

import asyncio
import gc

import pytest

from pricebadge.config import PricingConfig
from pricebadge.engines import EngineRegistry, EvaluationError, ExprEngine, ExpressionEngine, JsonataEngine
from pricebadge.nodes import (
    DependsOn,
    Node,
    NodeDefinition,
    NodeDefinitionStore,
    PriceBadge,
    Widget,
    reset_definition_store,
    set_definition_store,
)
from pricebadge.pricing import NodePricing, RuleCompiler


class ControlledEngine(ExpressionEngine):
    """
    Engine whose evaluations stay pending until the test resolves them.

    Every evaluate() call is recorded as (context, future).
    """

    engine_id = "controlled"

    def __init__(self):
        self.calls = []

    def compile(self, expr):
        return expr

    async def evaluate(self, handle, context):
        future = asyncio.get_running_loop().create_future()
        self.calls.append((context, future))
        return await future

    def resolve(self, index, result):
        self.calls[index][1].set_result(result)

    def reject(self, index, error=None):
        self.calls[index][1].set_exception(error or EvaluationError("boom"))


async def drain():
    """Let scheduled tasks run until they block or finish."""
    for _ in range(5):
        await asyncio.sleep(0)


def usd(amount):
    return {"type": "usd", "usd": amount}


def make_definition(name="PricedNode", widgets=("quality",), inputs=(), expr="rule",
                    engine="controlled", api_node=True):
    return NodeDefinition(
        name=name,
        api_node=api_node,
        price_badge=PriceBadge(
            engine=engine,
            depends_on=DependsOn(widgets=list(widgets), inputs=list(inputs)),
            expr=expr,
        ),
    )


@pytest.fixture
def engine():
    return ControlledEngine()


@pytest.fixture
def store():
    return NodeDefinitionStore([
        make_definition(),
        make_definition("Broken", expr="{'type': ", engine="expr-v1"),
        make_definition(
            "Scenario",
            engine="expr-v1",
            expr="{'type': 'usd', 'usd': 5 if w.quality.s == 'high' else 1}",
        ),
        make_definition("Local", api_node=False),
        make_definition("Seeded", widgets=("seed",), engine="expr-v1", expr="{'type': 'usd', 'usd': 1}"),
        make_definition("ImageNode", widgets=(), inputs=("image",)),
        make_definition(
            "JsonataScenario",
            engine="jsonata",
            expr='{"type": "usd", "usd": w.quality.s = "high" ? 5 : 1}',
        ),
    ])


@pytest.fixture
def pricing(engine, store):
    compiler = RuleCompiler(engines=EngineRegistry([engine, ExprEngine(), JsonataEngine()]))
    return NodePricing(definitions=store, compiler=compiler, config=PricingConfig())


def make_node(store, name="PricedNode", **widgets):
    return Node(
        definition=store.get(name),
        widgets=[Widget(k, v) for k, v in widgets.items()],
    )


class TestDisplayLabel:
    """Tests for the cache-hit / cache-miss paths."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, pricing, engine, store):
        """First call schedules an evaluation; the label appears once it settles."""
        node = make_node(store, quality="low")

        assert pricing.get_display_label(node) == ""
        await drain()
        assert len(engine.calls) == 1
        assert pricing.is_pending(node)

        engine.resolve(0, usd(1))
        await drain()

        assert not pricing.is_pending(node)
        assert pricing.get_display_label(node) == "211 credits/Run"

    @pytest.mark.asyncio
    async def test_stability(self, pricing, engine, store):
        """Unchanged dependencies return the same label without re-evaluating."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()
        engine.resolve(0, usd(1))
        await drain()

        first = pricing.get_display_label(node)
        second = pricing.get_display_label(node)
        await drain()

        assert first == second == "211 credits/Run"
        assert len(engine.calls) == 1

    @pytest.mark.asyncio
    async def test_coalescing(self, pricing, engine, store):
        """Repeated calls for a pending signature start one evaluation."""
        node = make_node(store, quality="low")

        pricing.get_display_label(node)
        pricing.get_display_label(node)
        await drain()
        pricing.get_display_label(node)
        await drain()

        assert len(engine.calls) == 1

    @pytest.mark.asyncio
    async def test_context_passed_to_engine(self, pricing, engine, store):
        """The engine receives the normalized declared widgets."""
        node = make_node(store, quality=" High ", seed=7)
        pricing.get_display_label(node)
        await drain()

        context, _ = engine.calls[0]
        assert set(context["w"]) == {"quality"}
        assert context["w"]["quality"].s == "high"


class TestChangeDetection:
    """Tests for signature-driven re-evaluation."""

    @pytest.mark.asyncio
    async def test_declared_change_reevaluates(self, pricing, engine, store):
        """Changing a declared widget triggers exactly one new evaluation."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()
        engine.resolve(0, usd(1))
        await drain()

        node.set_widget_value("quality", "high")
        pricing.get_display_label(node)
        pricing.get_display_label(node)
        await drain()

        assert len(engine.calls) == 2

    @pytest.mark.asyncio
    async def test_undeclared_change_ignored(self, pricing, engine, store):
        """Changing an undeclared widget never re-evaluates."""
        node = make_node(store, quality="low", seed=1)
        pricing.get_display_label(node)
        await drain()
        engine.resolve(0, usd(1))
        await drain()

        node.set_widget_value("seed", 2)
        assert pricing.get_display_label(node) == "211 credits/Run"
        await drain()

        assert len(engine.calls) == 1

    @pytest.mark.asyncio
    async def test_no_flicker(self, pricing, engine, store):
        """While re-evaluating, the last-known label is returned."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()
        engine.resolve(0, usd(1))
        await drain()

        node.set_widget_value("quality", "high")
        assert pricing.get_display_label(node) == "211 credits/Run"
        await drain()
        assert pricing.get_display_label(node) == "211 credits/Run"

        engine.resolve(1, usd(5))
        await drain()
        assert pricing.get_display_label(node) == "1,055 credits/Run"

    @pytest.mark.asyncio
    async def test_input_link_changes(self, pricing, engine, store):
        """Connecting or disconnecting a declared input re-evaluates exactly once."""
        node = make_node(store, "ImageNode")
        pricing.get_display_label(node)
        await drain()
        engine.resolve(0, usd(1))
        await drain()
        assert engine.calls[0][0]["i"]["image"].connected is False

        node.connect("image", 1)
        pricing.get_display_label(node)
        pricing.get_display_label(node)
        await drain()
        assert len(engine.calls) == 2
        assert engine.calls[1][0]["i"]["image"].connected is True

        engine.resolve(1, usd(2))
        await drain()
        assert pricing.get_display_label(node) == "422 credits/Run"

        node.disconnect("image")
        pricing.get_display_label(node)
        await drain()
        assert len(engine.calls) == 3


class TestStaleness:
    """Tests for discarding superseded evaluations."""

    @pytest.mark.asyncio
    async def test_stale_result_settles_last(self, pricing, engine, store):
        """An older evaluation settling after a newer one never overwrites it."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()

        node.set_widget_value("quality", "high")
        pricing.get_display_label(node)
        await drain()
        assert len(engine.calls) == 2

        engine.resolve(1, usd(5))
        await drain()
        engine.resolve(0, usd(1))
        await drain()

        assert pricing.get_display_label(node) == "1,055 credits/Run"
        assert len(engine.calls) == 2

    @pytest.mark.asyncio
    async def test_stale_result_settles_first(self, pricing, engine, store):
        """A superseded evaluation settling first is discarded."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()

        node.set_widget_value("quality", "high")
        pricing.get_display_label(node)
        await drain()

        engine.resolve(0, usd(1))
        await drain()
        assert pricing.get_display_label(node) == ""
        assert pricing.is_pending(node)

        engine.resolve(1, usd(5))
        await drain()
        assert pricing.get_display_label(node) == "1,055 credits/Run"
        assert len(engine.calls) == 2

    @pytest.mark.asyncio
    async def test_stale_failure_discarded(self, pricing, engine, store):
        """A superseded evaluation failing doesn't blank the newer label."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()

        node.set_widget_value("quality", "high")
        pricing.get_display_label(node)
        await drain()

        engine.resolve(1, usd(5))
        await drain()
        engine.reject(0)
        await drain()

        assert pricing.get_display_label(node) == "1,055 credits/Run"


class TestFailures:
    """Tests for evaluation and compile failures."""

    @pytest.mark.asyncio
    async def test_evaluation_failure_cached(self, pricing, engine, store):
        """A failing evaluation caches '' and isn't retried for the same state."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()
        engine.reject(0)
        await drain()

        assert pricing.get_display_label(node) == ""
        await drain()
        assert len(engine.calls) == 1

        node.set_widget_value("quality", "high")
        pricing.get_display_label(node)
        await drain()
        assert len(engine.calls) == 2

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, pricing, engine, store):
        """Non-engine exceptions are handled like evaluation failures."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()
        engine.reject(0, RuntimeError("engine bug"))
        await drain()

        assert pricing.get_display_label(node) == ""
        assert not pricing.is_pending(node)

    @pytest.mark.asyncio
    async def test_huge_int_widget(self, pricing, store):
        """A declared widget holding an integer beyond float range still prices."""
        node = make_node(store, "Seeded", seed=10**400)

        assert await pricing.settle(node) == "211 credits/Run"

    @pytest.mark.asyncio
    async def test_malformed_result(self, pricing, engine, store):
        """A malformed result formats as ''."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()
        engine.resolve(0, {"type": "usd", "usd": "lots"})
        await drain()

        assert pricing.get_display_label(node) == ""
        assert len(engine.calls) == 1

    @pytest.mark.asyncio
    async def test_compile_failure_isolated(self, pricing, engine, store):
        """A broken node type prices as '' without affecting other types."""
        broken = make_node(store, "Broken", quality="low")
        fine = make_node(store, quality="low")

        assert pricing.get_display_label(broken) == ""
        assert pricing.get_pricing_config(broken) is not None
        pricing.get_display_label(fine)
        await drain()

        assert not pricing.is_pending(broken)
        assert len(engine.calls) == 1

        engine.resolve(0, usd(2))
        await drain()
        assert pricing.get_display_label(fine) == "422 credits/Run"
        assert pricing.get_display_label(broken) == ""

    @pytest.mark.asyncio
    async def test_unpriced_nodes(self, pricing, engine, store):
        """Non-API nodes and nodes without a definition price as ''."""
        local = make_node(store, "Local", quality="low")

        assert pricing.get_display_label(local) == ""
        assert pricing.get_display_label(object()) == ""
        assert pricing.get_pricing_config(local) is None
        await drain()
        assert engine.calls == []

    def test_no_event_loop(self, pricing, engine, store):
        """Without a running loop the getter still answers, without evaluating."""
        node = make_node(store, quality="low")

        assert pricing.get_display_label(node) == ""
        assert not pricing.is_pending(node)

    def test_evaluated_once_a_loop_runs(self, pricing, store):
        """A lookup made without a loop is evaluated by the first lookup inside one."""
        node = make_node(store, "Scenario", quality="low")

        assert pricing.get_display_label(node) == ""
        assert pricing.stats()["pending"] == 0

        assert asyncio.run(pricing.settle(node)) == "211 credits/Run"
        assert pricing.get_display_label(node) == "211 credits/Run"


class TestInvalidationSignal:
    """Tests for the invalidation signal."""

    @pytest.mark.asyncio
    async def test_bumped_per_settlement(self, pricing, engine, store):
        """Each settled task, including superseded ones, bumps the version once."""
        seen = []
        pricing.invalidation_signal.subscribe(seen.append)
        node = make_node(store, quality="low")

        pricing.get_display_label(node)
        await drain()
        node.set_widget_value("quality", "high")
        pricing.get_display_label(node)
        await drain()
        assert pricing.invalidation_signal.version == 0

        engine.resolve(0, usd(1))
        engine.resolve(1, usd(5))
        await drain()

        assert pricing.invalidation_signal.version == 2
        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, pricing, engine, store):
        """Unsubscribed listeners stop receiving versions."""
        seen = []
        unsubscribe = pricing.invalidation_signal.subscribe(seen.append)
        unsubscribe()

        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()
        engine.resolve(0, usd(1))
        await drain()

        assert seen == []
        assert pricing.invalidation_signal.version == 1

    def test_readonly(self, pricing):
        """Consumers cannot bump the signal."""
        assert not hasattr(pricing.invalidation_signal, "bump")


class TestIntrospection:
    """Tests for get_pricing_config and get_relevant_dependency_names."""

    def test_pricing_config(self, pricing, store):
        """The declaration is returned without compiled state."""
        config = pricing.get_pricing_config(make_node(store))
        assert config == {
            "engine": "controlled",
            "depends_on": {"widgets": ["quality"], "inputs": []},
            "result_defaults": {},
            "expr": "rule",
        }

    def test_dependency_names(self, engine):
        """Widget and input names are merged in order without duplicates."""
        store = NodeDefinitionStore([
            make_definition("Video", widgets=("duration", "resolution", "image"), inputs=("image", "audio")),
        ])
        pricing = NodePricing(definitions=store, compiler=RuleCompiler(EngineRegistry([engine])))

        assert pricing.get_relevant_dependency_names("Video") == ["duration", "resolution", "image", "audio"]
        assert pricing.get_relevant_dependency_names("Unknown") == []

    def test_injected_empty_store(self, engine):
        """An injected store is used even when empty."""
        set_definition_store(NodeDefinitionStore([make_definition("X", widgets=("other",))]))
        try:
            pricing = NodePricing(definitions=NodeDefinitionStore(), compiler=RuleCompiler(EngineRegistry([engine])))
            assert pricing.get_relevant_dependency_names("X") == []
            assert NodePricing().get_relevant_dependency_names("X") == ["other"]
        finally:
            reset_definition_store()


class TestLifecycle:
    """Tests for per-node state lifetime."""

    @pytest.mark.asyncio
    async def test_scenario(self, pricing, store):
        """Real expr-v1 rule: low then high quality."""
        node = make_node(store, "Scenario", quality="low")
        assert await pricing.settle(node) == "211 credits/Run"

        node.set_widget_value("quality", "high")
        assert pricing.get_display_label(node) == "211 credits/Run"
        assert await pricing.settle(node) == "1,055 credits/Run"

    @pytest.mark.asyncio
    async def test_jsonata_scenario(self, pricing, store):
        """JSONata rule: low then high quality."""
        node = make_node(store, "JsonataScenario", quality="low")
        assert await pricing.settle(node) == "211 credits/Run"

        node.set_widget_value("quality", "High")
        assert await pricing.settle(node) == "1,055 credits/Run"

    @pytest.mark.asyncio
    async def test_weak_cache(self, pricing, store):
        """Cache entries disappear with their node."""
        node = make_node(store, "Scenario", quality="low")
        await pricing.settle(node)
        assert pricing.stats()["cached"] == 1

        del node
        gc.collect()

        assert pricing.stats()["cached"] == 0

    @pytest.mark.asyncio
    async def test_forget(self, pricing, engine, store):
        """forget() drops a node's state so the next lookup re-evaluates."""
        node = make_node(store, quality="low")
        pricing.get_display_label(node)
        await drain()
        engine.resolve(0, usd(1))
        await drain()

        pricing.forget(node)
        assert pricing.get_display_label(node) == ""
        await drain()
        assert len(engine.calls) == 2
