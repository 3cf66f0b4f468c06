"""
pricebadge - price labels for configurable compute nodes

Node types declare a price badge (an expression plus the widgets and
inputs it reads). pricebadge compiles each badge once, evaluates it
against a node's live configuration off the render path, and caches the
label until that configuration changes.

Example:
    >>> from pricebadge import NodeDefinitionStore, NodePricing, Node
    >>> store = NodeDefinitionStore.load(Path("object_info.json"))
    >>> pricing = NodePricing(definitions=store)
    >>> node = Node(definition=store.get("FluxProNode"))
    >>> label = await pricing.settle(node)
"""

__version__ = "1.0.0"

from .config import PricingConfig, get_config
from .nodes import Node, NodeDefinition, NodeDefinitionStore, PriceBadge
from .pricing import NodePricing, get_node_pricing, format_pricing_result

__all__ = [
    "__version__",
    "PricingConfig",
    "get_config",
    "Node",
    "NodeDefinition",
    "NodeDefinitionStore",
    "PriceBadge",
    "NodePricing",
    "get_node_pricing",
    "format_pricing_result",
]
