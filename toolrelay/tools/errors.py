"""
Tool-call error hierarchy.

Every failure that can happen between "the model wrote something that looks
like a tool call" and "the tool returned" derives from ToolError. The tool
loop catches these (and anything a tool raises), stringifies them, and feeds
them back to the model as the call's result.
"""


class ToolError(Exception):
    """Base class for tool-call failures."""


class ToolNotFoundError(ToolError, KeyError):
    """The requested tool name is not registered."""

    def __init__(self, tool_name: str):
        super().__init__(f'Tool "{tool_name}" is not registered')
        self.tool_name = tool_name

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class ToolCallParseError(ToolError):
    """Model output contains a tool call that cannot be parsed."""


class MultipleInvocationsError(ToolCallParseError):
    """More than one tool call appears in a single reply."""

    def __init__(self, count: int):
        super().__init__(f"Only one tool call is allowed per reply, but found {count}.")
        self.count = count


class MalformedArgumentListError(ToolCallParseError):
    """The argument list of a tool call is not well formed."""


class ArgumentError(ToolError):
    """Arguments do not match the tool's declared parameters."""
