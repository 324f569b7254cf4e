"""
Tool registry and prompt documentation.

The registry is a plain object: build one at startup, add tools to it, and
hand it to every ToolCallingLLM that should be able to use them. Separate
registries never share state, which keeps tests independent.

The documentation generated here is appended to the system prompt so the
model knows which tools exist and how to call them:

    # 工具文档
    ...primer describing the call syntax...
    ※roll_dice(count,sides):Roll dice
    count(int){参数范围:[1,100]}:How many dice
    sides(int){参数范围:[2,1000]}:Faces per die
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from functools import cache
from pathlib import Path

from toolrelay.tools.errors import ToolNotFoundError
from toolrelay.tools.models import Tool, ToolArg, ToolFunc

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "※"

_PRIMER_PATH = Path(__file__).parent.parent / "prompts" / "tool_primer.txt"


@cache
def _primer_template() -> str:
    return _PRIMER_PATH.read_text(encoding="utf-8")


def tool_call_primer(prefix: str = DEFAULT_PREFIX) -> str:
    """The fixed syntax primer that precedes every tool listing."""
    return _primer_template().replace("{prefix}", prefix)


def format_tool_arg(arg: ToolArg) -> str:
    """
    Render one parameter line: ``name(type){参数范围:[low,high]}:description``.

    The range and description parts are omitted when not declared.
    """
    line = f"{arg.name}({arg.type.value})"
    if arg.domain is not None:
        line += f"{{参数范围:{arg.domain.notation(sep=',')}}}"
    if arg.description:
        line += f":{arg.description}"
    return line + "\n"


def format_tool(tool: Tool, prefix: str = "") -> str:
    """
    Render a tool header plus one line per parameter.

    ``{prefix}name(p1,p2):description`` or ``{prefix}name:description`` for a
    tool without parameters.
    """
    if not tool.params:
        return f"{prefix}{tool.name}:{tool.description}\n"
    names = ",".join(p.name for p in tool.params)
    lines = "".join(format_tool_arg(p) for p in tool.params)
    return f"{prefix}{tool.name}({names}):{tool.description}\n{lines}"


class ToolRegistry:
    """
    Catalog of tools available to the model.

    Tools are only ever added; adding a tool under an existing name replaces
    the earlier one.

    Args:
        prefix_char: Marker character that starts a tool call in model output

    Example:
        >>> registry = ToolRegistry()
        >>> registry.add_tool(Tool(
        ...     name="get_weather",
        ...     description="Get current weather for a location",
        ...     params=[ToolArg(type="string", name="location", description="City name")],
        ...     perform=lambda args: f"Weather in {args['location']}: Sunny, 25°C",
        ... ))
        >>> registry.get_tool_doc(["get_weather"])
    """

    def __init__(self, prefix_char: str = DEFAULT_PREFIX):
        if len(prefix_char) != 1 or prefix_char.isspace() or prefix_char.isalnum() or prefix_char == "_":
            raise ValueError(f"prefix_char must be a single non-word character, got {prefix_char!r}")
        self.prefix_char = prefix_char
        self._tools: dict[str, Tool] = {}

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def tool_names(self) -> list[str]:
        """Registered names in registration order."""
        return list(self._tools)

    def add_tool(self, tool: Tool) -> None:
        """Register a tool."""
        if tool.name in self._tools:
            logger.warning(f"Replacing already registered tool '{tool.name}'")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool '{tool.name}' ({tool.param_count} params)")

    def add_tools(self, tools: Iterable[Tool]) -> None:
        """Register several tools."""
        for tool in tools:
            self.add_tool(tool)

    def tool(
        self,
        name: str | None = None,
        description: str = "",
        params: list[ToolArg] | None = None,
    ) -> Callable[[ToolFunc], ToolFunc]:
        """
        Decorator form of add_tool.

        The decorated function is registered unchanged and returned as-is.
        Name and description default to the function's name and docstring.

        Example:
            >>> @registry.tool(params=[ToolArg(type="int", name="n")])
            ... async def square(args):
            ...     '''Square a number'''
            ...     return args["n"] ** 2
        """

        def decorator(func: ToolFunc) -> ToolFunc:
            doc_lines = (func.__doc__ or "").strip().splitlines()
            self.add_tool(Tool(
                name=name or func.__name__,
                description=description or (doc_lines[0].strip() if doc_lines else ""),
                params=params,
                perform=func,
            ))
            return func

        return decorator

    def has_tool(self, tool_name: str) -> bool:
        """Whether a tool with this name is registered."""
        return tool_name in self._tools

    def get_tool(self, tool_name: str) -> Tool:
        """
        Look up a tool by name.

        Raises:
            ToolNotFoundError: If no tool with that name is registered
        """
        try:
            return self._tools[tool_name]
        except KeyError:
            raise ToolNotFoundError(tool_name) from None

    def get_tool_doc(self, tool_names: Iterable[str]) -> str:
        """
        Documentation block for the given tools, primer first.

        Raises:
            ToolNotFoundError: If any name is not registered
        """
        body = "".join(format_tool(self.get_tool(n), self.prefix_char) for n in tool_names)
        return tool_call_primer(self.prefix_char) + body

    def get_all_tool_doc(self) -> str:
        """Documentation block for every registered tool."""
        return self.get_tool_doc(self._tools)
