"""
jsonata - price badge expressions written in JSONata.

The context is handed to JSONata as plain JSON data:

    {"w": {"quality": {"raw": "High", "s": "high", "n": null, "b": null}},
     "i": {"image": {"connected": true}}}

Example:
    {"type": "usd", "usd": w.quality.s = "high" ? 5 : 1}
"""

import asyncio
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict

import jsonata

from .base import DeclarationError, EvaluationError, ExpressionEngine

logger = logging.getLogger(__name__)


@dataclass
class JsonataProgram:
    """A parsed JSONata expression. One evaluation at a time per program."""

    source: str
    expression: Any
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


def _context_data(context: Mapping) -> Dict[str, Any]:
    widgets = context.get("w", {})
    inputs = context.get("i", {})
    return {
        "w": {
            name: {"raw": value.raw, "s": value.s, "n": value.n, "b": value.b}
            for name, value in widgets.items()
        },
        "i": {name: {"connected": bool(state.connected)} for name, state in inputs.items()},
    }


class JsonataEngine(ExpressionEngine):
    """JSONata expressions evaluated off the event loop."""

    engine_id = "jsonata"

    def compile(self, expr: str) -> JsonataProgram:
        if not isinstance(expr, str) or not expr.strip():
            raise DeclarationError("Empty expression", expr=expr)

        try:
            expression = jsonata.Jsonata(expr)
        except Exception as e:
            raise DeclarationError(f"Invalid JSONata: {e}", expr=expr) from e

        return JsonataProgram(source=expr, expression=expression)

    def _run(self, handle: JsonataProgram, data: Dict[str, Any]) -> Any:
        with handle.lock:
            return handle.expression.evaluate(data)

    async def evaluate(self, handle: JsonataProgram, context: Mapping) -> Any:
        data = _context_data(context)
        try:
            return await asyncio.to_thread(self._run, handle, data)
        except Exception as e:
            raise EvaluationError(f"{type(e).__name__}: {e}", cause=e) from e
