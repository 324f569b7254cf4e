"""
Tool schema models.

A Tool is a name, a description shown to the model, an ordered list of
typed parameters (their order is the positional call order), and the
callable that performs it.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Coerced argument values. Python's own int/float/bool/str are the tags.
ArgValue = Union[int, float, bool, str]

ToolFunc = Callable[[dict[str, ArgValue]], Union[Any, Awaitable[Any]]]


class ArgType(str, Enum):
    """Declared type of a tool parameter."""

    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"

    @property
    def is_numeric(self) -> bool:
        return self in (ArgType.INT, ArgType.FLOAT)


class Endpoint(str, Enum):
    """Inclusivity of a numeric domain, written in interval notation."""

    CLOSED = "[]"
    OPEN = "()"
    LEFT_OPEN = "(]"
    RIGHT_OPEN = "[)"

    @property
    def description(self) -> str:
        return {
            Endpoint.CLOSED: "closed interval",
            Endpoint.OPEN: "open interval",
            Endpoint.LEFT_OPEN: "half-open interval",
            Endpoint.RIGHT_OPEN: "half-open interval",
        }[self]


class Domain(NamedTuple):
    """Numeric range constraint ``(low, high, endpoint)``."""

    low: float
    high: float
    endpoint: Endpoint = Endpoint.CLOSED

    def contains(self, value: float) -> bool:
        left_ok = value >= self.low if self.endpoint.value[0] == "[" else value > self.low
        right_ok = value <= self.high if self.endpoint.value[1] == "]" else value < self.high
        return left_ok and right_ok

    def notation(self, sep: str = ", ") -> str:
        """Render as e.g. ``[0, 10)``."""
        left, right = self.endpoint.value
        return f"{left}{_num(self.low)}{sep}{_num(self.high)}{right}"


def _num(value: float) -> str:
    # 10.0 -> "10" so integer bounds read naturally in prompts and errors
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ToolArg(BaseModel):
    """
    A single tool parameter.

    Example:
        >>> ToolArg(type="int", name="count", description="How many dice", domain=(1, 100))
        >>> ToolArg(type="float", name="ratio", domain=(0, 1, "[)"))
    """

    type: ArgType
    name: str = Field(min_length=1)
    description: str | None = None
    domain: Domain | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("domain", mode="before")
    @classmethod
    def _fill_endpoint(cls, value: Any) -> Any:
        # Accept (low, high) as shorthand for a closed interval
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return (value[0], value[1], Endpoint.CLOSED)
        return value

    @model_validator(mode="after")
    def _check_domain(self) -> ToolArg:
        if self.domain is None:
            return self
        if not self.type.is_numeric:
            raise ValueError(f'Parameter "{self.name}" of type {self.type.value} cannot have a domain')
        if self.domain.low > self.domain.high:
            raise ValueError(
                f'Domain of parameter "{self.name}" has low {self.domain.low} > high {self.domain.high}'
            )
        return self


class Tool(BaseModel):
    """
    A callable the model may invoke.

    ``perform`` receives a dict mapping parameter names to coerced values and
    may return a plain value or an awaitable.
    """

    name: str = Field(pattern=r"^\w+$")
    description: str
    params: list[ToolArg] | None = None
    perform: ToolFunc

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("name")
    @classmethod
    def _ascii_name(cls, value: str) -> str:
        if not value.isascii():
            raise ValueError(f'Tool name "{value}" must use ASCII word characters only')
        return value

    @model_validator(mode="after")
    def _unique_param_names(self) -> Tool:
        names = [p.name for p in self.params or []]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f'Tool "{self.name}" has duplicate parameter names: {sorted(duplicates)}')
        return self

    @property
    def param_count(self) -> int:
        return len(self.params) if self.params else 0
