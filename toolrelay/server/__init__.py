"""
HTTP Layer.

OpenAI-compatible FastAPI server in front of an LLMClient or ToolCallingLLM,
so existing OpenAI SDK clients can use key rotation and tool calling
without code changes.
"""

from toolrelay.server.app import create_app

__all__ = ["create_app"]
