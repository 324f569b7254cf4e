"""
Tool execution.

Arguments reaching this point have already been coerced and validated; the
executor only binds them to parameter names and runs the tool.
"""

from __future__ import annotations

import inspect
from collections.abc import Sequence
from typing import Any

from toolrelay.tools.models import ArgValue, Tool


def bind_arguments(tool: Tool, values: Sequence[ArgValue]) -> dict[str, ArgValue]:
    """Map positional values onto parameter names in declared order."""
    return {param.name: value for param, value in zip(tool.params or [], values)}


async def execute_tool(tool: Tool, values: Sequence[ArgValue]) -> Any:
    """
    Run a tool and return its result, awaiting it if the tool is async.

    Exceptions raised by the tool propagate unchanged.
    """
    result = tool.perform(bind_arguments(tool, values))
    if inspect.isawaitable(result):
        result = await result
    return result
