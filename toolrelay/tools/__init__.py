"""
Tool Integration Layer.

Registry, call parser, argument validation and execution for tools the model
invokes through the textual call syntax (``※name(arg, ...)``).
"""

from toolrelay.tools.errors import (
    ArgumentError,
    MalformedArgumentListError,
    MultipleInvocationsError,
    ToolCallParseError,
    ToolError,
    ToolNotFoundError,
)
from toolrelay.tools.executor import execute_tool
from toolrelay.tools.models import ArgType, Domain, Endpoint, Tool, ToolArg
from toolrelay.tools.parser import Invocation, parse_invocation
from toolrelay.tools.registry import ToolRegistry
from toolrelay.tools.validation import coerce_arguments

__all__ = [
    "ArgType",
    "ArgumentError",
    "Domain",
    "Endpoint",
    "Invocation",
    "MalformedArgumentListError",
    "MultipleInvocationsError",
    "Tool",
    "ToolArg",
    "ToolCallParseError",
    "ToolError",
    "ToolNotFoundError",
    "ToolRegistry",
    "coerce_arguments",
    "execute_tool",
    "parse_invocation",
]
