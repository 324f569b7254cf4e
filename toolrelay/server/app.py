"""
FastAPI app exposing an LLMClient or ToolCallingLLM as an OpenAI-style API.

Endpoints:
    GET  /health                liveness plus model name and call counters
    POST /v1/chat/completions   chat completion (stream=true yields one chunk)
    GET  /v1/models             the single model served
"""

from __future__ import annotations

import json
import logging
import time
from datetime import UTC, datetime
from typing import Any, Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from toolrelay import __version__
from toolrelay.llm.client import LLMClient
from toolrelay.llm.models import ChatCompletion
from toolrelay.llm.orchestrator import ToolCallingLLM
from toolrelay.server.models import ChatCompletionRequest, HealthResponse, ModelCard, ModelList

logger = logging.getLogger(__name__)

ChatBackend = Union[LLMClient, ToolCallingLLM]


def completion_chunk(response: ChatCompletion) -> dict[str, Any]:
    """Repackage a full completion as a single ``chat.completion.chunk``."""
    return {
        "id": response.id,
        "object": "chat.completion.chunk",
        "created": int(time.time()),
        "model": response.model,
        "usage": response.usage.model_dump() if response.usage else None,
        "choices": [
            {
                "index": choice.index,
                "delta": choice.message.model_dump(),
                "finish_reason": choice.finish_reason,
            }
            for choice in response.choices
        ],
    }


def _backend(request: Request) -> ChatBackend:
    return request.app.state.llm


def create_app(llm: ChatBackend) -> FastAPI:
    """
    Build the server app around a chat backend.

    Args:
        llm: Backend handling every chat completion request
    """
    app = FastAPI(title="toolrelay", version=__version__)
    app.state.llm = llm

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        backend = _backend(request)
        return HealthResponse(
            timestamp=datetime.now(UTC).isoformat(),
            model=backend.model_name,
            api_usage=backend.api_usage,
            failed_api_calls=backend.failed_api_calls,
        )

    @app.post("/v1/chat/completions")
    async def chat_completions(body: ChatCompletionRequest, request: Request):
        backend = _backend(request)
        try:
            response = await backend.raw_request(body.to_request())
        except ValueError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            return JSONResponse(status_code=500, content={"error": str(e) or e.__class__.__name__})

        if not body.stream:
            return JSONResponse(content=response.model_dump(mode="json"))

        async def event_stream():
            data = json.dumps(completion_chunk(response), ensure_ascii=False, default=str)
            yield f"data: {data}\n\n"
            yield "data: [DONE]\n\n"

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )

    @app.get("/v1/models", response_model=ModelList)
    async def list_models(request: Request) -> ModelList:
        return ModelList(data=[ModelCard(id=_backend(request).model_name)])

    return app
