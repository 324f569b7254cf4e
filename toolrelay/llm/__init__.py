"""
LLM Layer.

Two entry points with the same request/accessor surface:

    LLMClient        one request -> one completion, rotating API keys and
                     retrying on the next key when an attempt fails
    ToolCallingLLM   multi-turn loop on top of LLMClient that lets the model
                     call registered tools through the ※name(args) syntax

    caller -> ToolCallingLLM.chat(messages)
                   |
                   +--> LLMClient.raw_request()  <->  LiteLLM acompletion()
                   |
                   +--> parse -> validate -> execute tool -> feed result back
                   |
              ChatCompletion (tool chain embedded in the answer)
"""

from toolrelay.llm.client import LLMClient
from toolrelay.llm.models import (
    ChatCompletion,
    ChatMessage,
    CompletionChoice,
    CompletionMessage,
    CompletionUsage,
    LLMConfig,
    LLMError,
)
from toolrelay.llm.orchestrator import ChainFormat, ToolCallingLLM

__all__ = [
    "ChainFormat",
    "ChatCompletion",
    "ChatMessage",
    "CompletionChoice",
    "CompletionMessage",
    "CompletionUsage",
    "LLMClient",
    "LLMConfig",
    "LLMError",
    "ToolCallingLLM",
]
