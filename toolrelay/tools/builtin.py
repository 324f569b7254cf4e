"""
Built-in demo tools.

A small set of self-contained tools so the CLI and the server are usable
out of the box:

- current_time: local date and time
- roll_dice(count, sides): roll ``count`` dice with ``sides`` faces
- calculate(expression): evaluate an arithmetic expression

calculate walks the expression's AST and only allows numeric literals,
arithmetic operators and parentheses. It never calls eval().
"""

from __future__ import annotations

import ast
import operator
import random
from datetime import datetime
from typing import Any

from toolrelay.tools.models import ArgValue, Tool, ToolArg
from toolrelay.tools.registry import ToolRegistry

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}
_MAX_EXPONENT = 100


def _evaluate(node: ast.AST) -> int | float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left, right = _evaluate(node.left), _evaluate(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            raise ValueError(f"Exponent {right} is too large")
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"Unsupported expression element: {ast.dump(node)[:40]}")


def calculate(args: dict[str, ArgValue]) -> str:
    expression = str(args["expression"]).replace("×", "*").replace("÷", "/")
    try:
        tree = ast.parse(expression, mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid expression {expression!r}") from e
    return f"{expression} = {_evaluate(tree)}"


def roll_dice(args: dict[str, ArgValue]) -> str:
    count, sides = int(args["count"]), int(args["sides"])
    rolls = [random.randint(1, sides) for _ in range(count)]
    return f"Rolled {count}d{sides}: {rolls} = {sum(rolls)}"


def current_time(args: dict[str, Any]) -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S %Z")


BUILTIN_TOOLS: list[Tool] = [
    Tool(
        name="current_time",
        description="Get the current local date and time",
        perform=current_time,
    ),
    Tool(
        name="roll_dice",
        description="Roll dice and return each roll and the total",
        params=[
            ToolArg(type="int", name="count", description="Number of dice", domain=(1, 100)),
            ToolArg(type="int", name="sides", description="Faces per die", domain=(2, 1000)),
        ],
        perform=roll_dice,
    ),
    Tool(
        name="calculate",
        description="Evaluate an arithmetic expression (+ - * / // % ** and parentheses)",
        params=[
            ToolArg(type="string", name="expression", description="Expression, e.g. \"15 * 23 + 7\""),
        ],
        perform=calculate,
    ),
]


def register_builtin_tools(registry: ToolRegistry) -> None:
    """Add every built-in tool to ``registry``."""
    registry.add_tools(BUILTIN_TOOLS)
