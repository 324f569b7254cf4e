"""Pydantic request/response models for the OpenAI-compatible API."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from toolrelay.llm.models import ChatMessage


class ChatCompletionRequest(BaseModel):
    """
    Body of POST /v1/chat/completions.

    Only the fields the server acts on are declared; everything else
    (temperature, seed, ...) is passed through to the model call.
    """

    messages: list[ChatMessage]
    model: str | None = None
    stream: bool = False

    model_config = ConfigDict(extra="allow")

    def to_request(self) -> dict[str, Any]:
        """Parameters forwarded to raw_request (server-only fields dropped)."""
        return self.model_dump(exclude={"stream"}, exclude_none=True)


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: str
    model: str
    api_usage: int
    failed_api_calls: int


class ModelCard(BaseModel):
    id: str
    object: Literal["model"] = "model"


class ModelList(BaseModel):
    object: Literal["list"] = "list"
    data: list[ModelCard] = Field(default_factory=list)
