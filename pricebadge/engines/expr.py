"""
expr-v1 - the bundled pricing expression dialect.

A single Python-syntax expression, validated against an AST whitelist
before it is compiled. The evaluation context is exposed as two names:

    w   declared widgets, e.g. ``w.quality.s`` or ``w["steps"].n``
    i   declared inputs, e.g. ``i.image.connected``

Example:
    {"type": "usd", "usd": 5 if w.quality.s == "high" else 1}
"""

from __future__ import annotations

import ast
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from .base import DeclarationError, EvaluationError, ExpressionEngine

logger = logging.getLogger(__name__)

ALLOWED_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "bool": bool,
    "ceil": math.ceil,
    "float": float,
    "floor": math.floor,
    "int": int,
    "len": len,
    "max": max,
    "min": min,
    "round": round,
    "str": str,
}

CONTEXT_NAMES = ("w", "i")

# Largest literal exponent accepted by `**`
MAX_EXPONENT = 64

ALLOWED_NODES = (
    ast.Expression,
    ast.Dict,
    ast.List,
    ast.Tuple,
    ast.IfExp,
    ast.BoolOp,
    ast.BinOp,
    ast.UnaryOp,
    ast.Compare,
    ast.Name,
    ast.Load,
    ast.Constant,
    ast.Attribute,
    ast.Subscript,
    ast.Slice,
    ast.Call,
    ast.And,
    ast.Or,
    ast.Not,
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.FloorDiv,
    ast.Mod,
    ast.Pow,
    ast.USub,
    ast.UAdd,
    ast.Eq,
    ast.NotEq,
    ast.Gt,
    ast.GtE,
    ast.Lt,
    ast.LtE,
    ast.In,
    ast.NotIn,
    ast.Is,
    ast.IsNot,
)


@dataclass(frozen=True)
class ExpressionProgram:
    """Validated, compiled expression that can be reused safely."""

    source: str
    code: Any


class _Namespace:
    """Read-only view over a context mapping with attribute and item access."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]):
        self._data = data

    def __getattr__(self, name: str) -> Any:
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"undeclared dependency: {name}") from None

    def __getitem__(self, name: str) -> Any:
        return self._data[name]

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"_Namespace({sorted(self._data)})"


def _constant_exponent(node: ast.AST) -> Any:
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
        node = node.operand
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return node.value
    return None


def _validate_ast(tree: ast.AST, allowed_names: set[str]) -> None:
    for node in ast.walk(tree):
        if not isinstance(node, ALLOWED_NODES):
            raise DeclarationError(f"Unsupported expression node: {type(node).__name__}")
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.Pow):
            exponent = _constant_exponent(node.right)
            if exponent is None or abs(exponent) > MAX_EXPONENT:
                raise DeclarationError(f"Exponent must be a number literal within +/-{MAX_EXPONENT}")
            if any(isinstance(n, ast.BinOp) and isinstance(n.op, ast.Pow) for n in ast.walk(node.left)):
                raise DeclarationError("Nested exponentiation")
        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in ALLOWED_FUNCTIONS:
                raise DeclarationError("Unsupported function call")
        elif isinstance(node, ast.Attribute):
            if node.attr.startswith("_"):
                raise DeclarationError(f"Private attribute access: {node.attr}")
        elif isinstance(node, ast.Name):
            if node.id not in allowed_names:
                raise DeclarationError(f"Unknown name: {node.id}")


class ExprEngine(ExpressionEngine):
    """AST-whitelisted Python expression engine."""

    engine_id = "expr-v1"

    def compile(self, expr: str) -> ExpressionProgram:
        if not isinstance(expr, str) or not expr.strip():
            raise DeclarationError("Empty expression", expr=expr)

        try:
            tree = ast.parse(expr.strip(), mode="eval")
        except SyntaxError as e:
            raise DeclarationError(f"Syntax error: {e.msg}", expr=expr) from e

        try:
            _validate_ast(tree, set(ALLOWED_FUNCTIONS) | set(CONTEXT_NAMES))
        except DeclarationError as e:
            e.expr = expr
            raise

        return ExpressionProgram(source=expr, code=compile(tree, "<pricing>", "eval"))

    async def evaluate(self, handle: ExpressionProgram, context: dict[str, Any]) -> Any:
        scope = {name: _Namespace(context.get(name, {})) for name in CONTEXT_NAMES}
        try:
            return eval(handle.code, {"__builtins__": {}, **ALLOWED_FUNCTIONS}, scope)
        except Exception as e:
            raise EvaluationError(f"{type(e).__name__}: {e}", cause=e) from e
