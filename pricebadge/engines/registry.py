"""
Engine Registry - maps declared engine ids to expression engines.
"""

import logging
from typing import Dict, List, Optional

from .base import ExpressionEngine
from .expr import ExprEngine
from .jsonata_engine import JsonataEngine

logger = logging.getLogger(__name__)


class EngineRegistry:
    """
    Registry for expression engines.

    Usage:
        registry = EngineRegistry()
        registry.register(MyEngine())

        engine = registry.get("my-engine")
    """

    def __init__(self, engines: Optional[List[ExpressionEngine]] = None):
        self._engines: Dict[str, ExpressionEngine] = {}
        for engine in engines or []:
            self.register(engine)

    def register(self, engine: ExpressionEngine) -> None:
        """Register an engine under its engine_id, replacing any previous one."""
        if not engine.engine_id:
            raise ValueError(f"Engine {engine!r} has no engine_id")
        self._engines[engine.engine_id] = engine
        logger.debug(f"Registered expression engine: {engine.engine_id}")

    def unregister(self, engine_id: str) -> None:
        """Remove an engine."""
        self._engines.pop(engine_id, None)

    def get(self, engine_id: str) -> Optional[ExpressionEngine]:
        """Get an engine by id."""
        return self._engines.get(engine_id)

    def list_ids(self) -> List[str]:
        """List registered engine ids."""
        return sorted(self._engines)


def default_engines() -> List[ExpressionEngine]:
    """Engines available without any registration."""
    return [ExprEngine(), JsonataEngine()]


# Global registry
_registry: Optional[EngineRegistry] = None


def get_engine_registry() -> EngineRegistry:
    """Get the global engine registry, creating it with the default engines."""
    global _registry
    if _registry is None:
        _registry = EngineRegistry(default_engines())
    return _registry


def set_engine_registry(registry: EngineRegistry) -> None:
    """Set the global engine registry."""
    global _registry
    _registry = registry


def reset_engine_registry() -> None:
    """Reset the global engine registry."""
    global _registry
    _registry = None
