"""
Node types, their price badge declarations, and live node instances.
"""

from .definitions import (
    FormatOptions,
    DependsOn,
    PriceBadge,
    NodeDefinition,
    NodeDefinitionStore,
    get_definition_store,
    set_definition_store,
    reset_definition_store,
)
from .graph import Widget, InputSlot, Node

__all__ = [
    # Definitions
    "FormatOptions",
    "DependsOn",
    "PriceBadge",
    "NodeDefinition",
    "NodeDefinitionStore",
    "get_definition_store",
    "set_definition_store",
    "reset_definition_store",
    # Instances
    "Widget",
    "InputSlot",
    "Node",
]
