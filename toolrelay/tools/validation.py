"""
Argument coercion and validation.

Turns the raw argument strings of a parsed call into typed values according
to the tool's declared parameters, and enforces numeric domains. Any problem
raises ArgumentError with a message written for the model to read, since it
is sent back to the model as the call's result.
"""

from __future__ import annotations

import re

from toolrelay.tools.errors import ArgumentError
from toolrelay.tools.models import ArgType, ArgValue, Tool, ToolArg
from toolrelay.tools.parser import Invocation

_INT_RE = re.compile(r"[-+]?\d+", re.ASCII)
_FLOAT_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)

_QUOTE_PAIRS = (('"', '"'), ("'", "'"), ("“", "”"), ("‘", "’"))


def unquote(value: str) -> str:
    """Trim whitespace and strip one layer of matching quotes."""
    value = value.strip()
    if len(value) >= 2:
        for left, right in _QUOTE_PAIRS:
            if value.startswith(left) and value.endswith(right):
                return value[1:-1]
    return value


def parse_int(raw: str) -> int:
    value = unquote(raw)
    if not _INT_RE.fullmatch(value):
        raise ValueError(f'"{value}" is not an integer')
    return int(value)


def parse_float(raw: str) -> float:
    value = unquote(raw)
    if not _FLOAT_RE.fullmatch(value):
        raise ValueError(f'"{value}" is not a float')
    return float(value)


def parse_bool(raw: str) -> bool:
    value = unquote(raw).lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise ValueError(f'"{value}" is not a bool')


_PARSERS = {
    ArgType.INT: parse_int,
    ArgType.FLOAT: parse_float,
    ArgType.BOOL: parse_bool,
    ArgType.STRING: unquote,
}


def coerce_argument(raw: str, param: ToolArg, position: int, tool_name: str) -> ArgValue:
    """
    Coerce one raw argument and check its domain.

    Args:
        raw: Raw argument text as written by the model
        param: Declared parameter
        position: 1-based position, used in error messages
        tool_name: Tool name, used in error messages

    Raises:
        ArgumentError: If the text does not parse as the declared type or
            the value falls outside the declared domain
    """
    try:
        value = _PARSERS[param.type](raw)
    except ValueError as e:
        raise ArgumentError(
            f'Argument {position} of tool "{tool_name}" must be of type "{param.type.value}", but {e}'
        ) from e

    domain = param.domain
    if domain is not None and not domain.contains(value):
        raise ArgumentError(
            f'Argument {position} of tool "{tool_name}" must be in {domain.endpoint.description} '
            f"{domain.notation()}, but got {value}"
        )
    return value


def coerce_arguments(invocation: Invocation, tool: Tool) -> list[ArgValue]:
    """
    Coerce all raw arguments of a call, in declared parameter order.

    Raises:
        ArgumentError: On an argument count mismatch or any per-argument failure
    """
    params = tool.params or []
    if len(invocation.raw_args) != len(params):
        raise ArgumentError(
            f'Tool "{tool.name}" requires {len(params)} arguments, '
            f"but got {len(invocation.raw_args)}"
        )
    return [
        coerce_argument(raw, param, position, tool.name)
        for position, (raw, param) in enumerate(zip(invocation.raw_args, params), start=1)
    ]
