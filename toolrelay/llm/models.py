"""
Data models for the LLM layer.

- LLMConfig: immutable endpoint + sampling configuration for LLMClient
- ChatMessage: one plain-text conversation turn
- ChatCompletion (+ choice/message/usage): OpenAI-shaped completion response
- LLMError: raised when an LLM call cannot produce an answer
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class LLMError(Exception):
    """
    Raised when an LLM call fails in a way the caller should see.

    Args:
        message: Human-readable description
        cause: The underlying exception, if any
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class LLMConfig(BaseModel):
    """
    Endpoint and sampling configuration. Constructed once, never mutated.

    Example:
        >>> config = LLMConfig(
        ...     base_url="https://api.openai.com/v1",
        ...     api_keys=["sk-a", "sk-b"],
        ...     model="gpt-4o",
        ... )
    """

    base_url: str = Field(description="Base URL of the OpenAI-compatible endpoint")
    api_keys: list[str] = Field(min_length=1, description="Keys rotated on every attempt")
    model: str = Field(min_length=1, description="Model identifier")
    provider: str = Field(default="openai", description="LiteLLM provider routing hint")
    temperature: float = 0.7
    top_p: float = 1.0
    frequency_penalty: float = 0.2
    presence_penalty: float = 0.0
    max_tokens: int = Field(default=2000, gt=0)

    model_config = ConfigDict(frozen=True)

    def chat_params(self) -> dict[str, Any]:
        """Request parameters sent with every chat call (a fresh dict each time)."""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
            "max_tokens": self.max_tokens,
            "stream": False,
        }


class ChatMessage(BaseModel):
    """A single conversation turn. Order within a conversation is chronological."""

    role: Literal["system", "user", "assistant"]
    content: str


class CompletionUsage(BaseModel):
    """Token usage as reported by the provider."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    model_config = ConfigDict(extra="allow")


class CompletionMessage(BaseModel):
    """Message inside a completion choice."""

    role: str = "assistant"
    content: str | None = None

    model_config = ConfigDict(extra="allow")


class CompletionChoice(BaseModel):
    """One choice of a completion response."""

    index: int = 0
    message: CompletionMessage = Field(default_factory=CompletionMessage)
    finish_reason: str | None = None

    model_config = ConfigDict(extra="allow")


class ChatCompletion(BaseModel):
    """
    OpenAI-shaped chat completion.

    Unknown provider fields are kept so the HTTP server can return the
    response verbatim. A default-constructed instance (no choices) is the
    placeholder returned when the tool loop runs out of turns.
    """

    id: str = ""
    object: str = "chat.completion"
    created: int = 0
    model: str = ""
    choices: list[CompletionChoice] = Field(default_factory=list)
    usage: CompletionUsage | None = None

    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_provider(cls, response: Any) -> ChatCompletion:
        """Convert a LiteLLM ModelResponse (or a plain dict) into a ChatCompletion."""
        data = response if isinstance(response, dict) else response.model_dump()
        return cls.model_validate(data)

    @property
    def content(self) -> str | None:
        """Text of the first choice, or None when there is none."""
        if not self.choices:
            return None
        return self.choices[0].message.content
