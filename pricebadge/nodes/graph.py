"""
Runtime node instances.

A node is one placed instance of a node type: it carries the live widget
values and input links that pricing rules read. Nodes hash by identity so
per-node pricing state can be held weakly against them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .definitions import NodeDefinition


@dataclass
class Widget:
    """A named, user-editable value on a node."""
    name: str
    value: Any = None


@dataclass
class InputSlot:
    """A named input socket. ``link`` is the id of the connected link, if any."""
    name: str
    link: Optional[int] = None

    @property
    def connected(self) -> bool:
        return self.link is not None


@dataclass(eq=False)
class Node:
    """A node instance in a graph."""

    definition: NodeDefinition
    widgets: list[Widget] = field(default_factory=list)
    inputs: list[InputSlot] = field(default_factory=list)
    id: Optional[int] = None

    @property
    def type_name(self) -> str:
        return self.definition.name

    def find_widget(self, name: str) -> Optional[Widget]:
        for widget in self.widgets:
            if widget.name == name:
                return widget
        return None

    def find_input(self, name: str) -> Optional[InputSlot]:
        for slot in self.inputs:
            if slot.name == name:
                return slot
        return None

    def set_widget_value(self, name: str, value: Any) -> None:
        """Set a widget value, adding the widget if the node doesn't have it yet."""
        widget = self.find_widget(name)
        if widget is None:
            self.widgets.append(Widget(name, value))
        else:
            widget.value = value

    def connect(self, name: str, link: int) -> None:
        """Attach a link to an input, adding the slot if needed."""
        slot = self.find_input(name)
        if slot is None:
            self.inputs.append(InputSlot(name, link))
        else:
            slot.link = link

    def disconnect(self, name: str) -> None:
        slot = self.find_input(name)
        if slot is not None:
            slot.link = None

    def __repr__(self) -> str:
        return f"Node(type={self.type_name!r}, id={self.id!r})"
