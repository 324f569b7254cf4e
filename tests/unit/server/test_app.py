"""
Unit tests for the OpenAI-compatible HTTP server.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from toolrelay.llm.models import ChatCompletion
from toolrelay.server import create_app
from toolrelay.server.app import completion_chunk
from toolrelay.server.models import ChatCompletionRequest


def _completion(text: str = "Hello!") -> ChatCompletion:
    return ChatCompletion.model_validate({
        "id": "chatcmpl-abc",
        "created": 1700000000,
        "model": "gpt-test",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": "stop"}
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        "system_fingerprint": "fp_1",
    })


@pytest.fixture
def backend():
    """Stand-in for LLMClient / ToolCallingLLM."""
    llm = MagicMock()
    llm.model_name = "gpt-test"
    llm.api_usage = 7
    llm.failed_api_calls = 2
    llm.raw_request = AsyncMock(return_value=_completion())
    return llm


@pytest.fixture
def http(backend):
    return TestClient(create_app(backend))


BODY = {"messages": [{"role": "user", "content": "Hi"}]}


class TestHealth:

    def test_health(self, http):
        response = http.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["model"] == "gpt-test"
        assert data["api_usage"] == 7
        assert data["failed_api_calls"] == 2
        assert data["timestamp"]


class TestModels:

    def test_lists_backend_model(self, http):
        response = http.get("/v1/models")
        assert response.status_code == 200
        assert response.json() == {"object": "list", "data": [{"id": "gpt-test", "object": "model"}]}


class TestChatCompletions:

    def test_returns_backend_response(self, http, backend):
        response = http.post("/v1/chat/completions", json=BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "chatcmpl-abc"
        assert data["choices"][0]["message"]["content"] == "Hello!"
        assert data["usage"]["total_tokens"] == 15
        assert data["system_fingerprint"] == "fp_1"
        backend.raw_request.assert_awaited_once_with({"messages": [{"role": "user", "content": "Hi"}]})

    def test_extra_parameters_forwarded(self, http, backend):
        http.post(
            "/v1/chat/completions",
            json={**BODY, "model": "gpt-test", "temperature": 0.2, "seed": 1, "stream": False},
        )

        request = backend.raw_request.await_args.args[0]
        assert request["temperature"] == 0.2
        assert request["seed"] == 1
        assert request["model"] == "gpt-test"
        assert "stream" not in request

    def test_value_error_is_bad_request(self, http, backend):
        backend.raw_request.side_effect = ValueError("Messages array is empty. At least one message is required.")

        response = http.post("/v1/chat/completions", json={"messages": []})

        assert response.status_code == 400
        assert response.json() == {"error": "Messages array is empty. At least one message is required."}

    def test_backend_failure_is_server_error(self, http, backend):
        backend.raw_request.side_effect = ConnectionError("upstream unreachable")

        response = http.post("/v1/chat/completions", json=BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "upstream unreachable"}

    def test_failure_without_message_reports_type(self, http, backend):
        backend.raw_request.side_effect = RuntimeError()

        response = http.post("/v1/chat/completions", json=BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "RuntimeError"}

    def test_invalid_role_rejected(self, http, backend):
        response = http.post("/v1/chat/completions", json={"messages": [{"role": "tool", "content": "x"}]})

        assert response.status_code == 422
        backend.raw_request.assert_not_awaited()

    def test_stream_yields_single_chunk_then_done(self, http):
        response = http.post("/v1/chat/completions", json={**BODY, "stream": True})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = [line for line in response.text.split("\n\n") if line]
        assert len(events) == 2
        assert events[1] == "data: [DONE]"

        chunk = json.loads(events[0][len("data: "):])
        assert chunk["object"] == "chat.completion.chunk"
        assert chunk["id"] == "chatcmpl-abc"
        assert chunk["choices"][0]["delta"] == {"role": "assistant", "content": "Hello!"}
        assert chunk["choices"][0]["finish_reason"] == "stop"

    def test_stream_keeps_non_ascii_text(self, http, backend):
        backend.raw_request.return_value = _completion("晴天")

        response = http.post("/v1/chat/completions", json={**BODY, "stream": True})

        assert "晴天" in response.text


class TestHelpers:

    def test_completion_chunk_of_placeholder(self):
        chunk = completion_chunk(ChatCompletion())
        assert chunk["choices"] == []
        assert chunk["usage"] is None

    def test_request_to_request_drops_stream_and_nulls(self):
        body = ChatCompletionRequest.model_validate({**BODY, "stream": True, "top_p": 0.5})
        assert body.to_request() == {"messages": [{"role": "user", "content": "Hi"}], "top_p": 0.5}
