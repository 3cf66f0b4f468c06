"""
Node definitions and their price badge declarations.

Definitions arrive as JSON from the node-definition provider, one object
per node type. Only ``api_node`` definitions carrying a ``price_badge``
take part in pricing.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "expr-v1"


class FormatOptions(BaseModel):
    """Label decorations. Unset fields fall through to the next layer of defaults."""
    suffix: Optional[str] = None
    note: Optional[str] = None
    approximate: Optional[bool] = None
    separator: Optional[str] = None

    def overrides(self) -> Dict[str, Any]:
        """Only the options that were actually set."""
        return self.model_dump(exclude_none=True)


class DependsOn(BaseModel):
    """Widget and input names a price badge is allowed to observe."""
    widgets: List[str] = Field(default_factory=list)
    inputs: List[str] = Field(default_factory=list)

    @field_validator("widgets", "inputs", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class PriceBadge(BaseModel):
    """A node type's pricing declaration."""
    engine: str = Field(default=DEFAULT_ENGINE, description="Expression engine id")
    depends_on: DependsOn = Field(default_factory=DependsOn)
    result_defaults: Optional[FormatOptions] = None
    expr: str = Field(..., description="Expression text")

    @field_validator("engine", mode="before")
    @classmethod
    def default_engine(cls, value: Any) -> Any:
        return DEFAULT_ENGINE if value is None else value

    @field_validator("depends_on", mode="before")
    @classmethod
    def default_depends_on(cls, value: Any) -> Any:
        return {} if value is None else value


class NodeDefinition(BaseModel):
    """A node type as published by the definition provider."""
    name: str
    display_name: Optional[str] = None
    api_node: bool = False
    price_badge: Optional[PriceBadge] = None

    @property
    def is_priced(self) -> bool:
        return self.api_node and self.price_badge is not None


class NodeDefinitionStore:
    """
    Lookup of node definitions by type name.

    Usage:
        store = NodeDefinitionStore.load(Path("object_info.json"))
        definition = store.get("FluxProNode")
    """

    def __init__(self, definitions: Optional[List[NodeDefinition]] = None):
        self._definitions: Dict[str, NodeDefinition] = {}
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: NodeDefinition) -> None:
        """Register (or replace) a definition."""
        self._definitions[definition.name] = definition

    def register_raw(self, name: str, data: Dict[str, Any]) -> Optional[NodeDefinition]:
        """Validate and register a raw definition dict. Returns None if invalid."""
        try:
            definition = NodeDefinition.model_validate({"name": name, **data})
        except ValidationError as e:
            logger.warning(f"Skipping invalid node definition {name}: {e.error_count()} error(s)")
            logger.debug(str(e))
            return None

        self.register(definition)
        return definition

    def get(self, name: str) -> Optional[NodeDefinition]:
        return self._definitions.get(name)

    def list_names(self) -> List[str]:
        return sorted(self._definitions)

    def list_priced(self) -> List[NodeDefinition]:
        """Definitions that carry an applicable price badge."""
        return [d for d in self._definitions.values() if d.is_priced]

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeDefinitionStore":
        store = cls()
        for name, raw in data.items():
            if not isinstance(raw, dict):
                logger.warning(f"Skipping node definition {name}: expected an object")
                continue
            store.register_raw(name, raw)
        return store

    @classmethod
    def load(cls, path: Path) -> "NodeDefinitionStore":
        """Load definitions from a JSON file of {type_name: definition}."""
        with open(path, 'r') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object of node definitions")

        store = cls.from_dict(data)
        logger.debug(f"Loaded {len(store)} node definitions from {path}")
        return store


# Global store
_store: Optional[NodeDefinitionStore] = None


def get_definition_store() -> NodeDefinitionStore:
    """Get the global definition store."""
    global _store
    if _store is None:
        _store = NodeDefinitionStore()
    return _store


def set_definition_store(store: NodeDefinitionStore) -> None:
    """Set the global definition store."""
    global _store
    _store = store


def reset_definition_store() -> None:
    """Reset the global definition store."""
    global _store
    _store = None
