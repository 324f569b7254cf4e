"""
Tool-calling orchestrator.

Adds tool use to any plain chat model. The model is told, in the system
prompt, which tools exist and how to write a call (``※name(args)``). Each
turn, the orchestrator looks for a call in the model's reply, runs it, and
feeds the result back as a user message:

    messages + tool docs  ->  LLMClient.raw_request()
                                      |
                       reply contains ※tool(...)?
                         |                      |
                        yes                     no
                         |                      |
      parse -> validate -> execute        final answer
                         |                      |
      append reply + "工具X调用结果: ..."   embed tool chain, return
                         |
                  next turn (after call_delay)

Design decisions:
- At most one call per reply. A reply with two calls is treated as a
  malformed call, not silently truncated.
- Parse, validation and tool failures never abort the loop. The error text
  becomes the call's result so the model can correct itself next turn.
- A reply without content is fatal: there is nothing to parse or return.
- max_tool_calls bounds the number of turns. When every turn is a tool call
  the last result carries a cap notice and the caller gets an empty
  placeholder completion.
- The record of calls and results (the "tool chain") is prepended to the
  final answer as a <tool> block or a ```tool fence, or dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any

from toolrelay.llm.client import LLMClient
from toolrelay.llm.models import ChatCompletion, ChatMessage, LLMError
from toolrelay.tools.executor import execute_tool
from toolrelay.tools.parser import parse_invocation
from toolrelay.tools.registry import ToolRegistry
from toolrelay.tools.validation import coerce_arguments

logger = logging.getLogger(__name__)

CAP_NOTICE = "\n已经达到最大工具次数"


class ChainFormat(str, Enum):
    """How the tool-call chain is embedded in the final answer."""

    XML = "XML"
    MARKDOWN = "markdown"
    REMOVE = "remove"


def format_tool_result(result: str, tool_name: str | None = None) -> str:
    """The user-role message reporting a call's result back to the model."""
    if tool_name:
        return f"工具{tool_name}调用结果: {result}"
    return f"工具调用结果: {result}"


def render_chain(chain: Iterable[ChatMessage], answer: str, chain_format: ChainFormat) -> str:
    """Prefix ``answer`` with the tool chain in the requested format."""
    body = "".join(m.content if m.content.endswith("\n") else m.content + "\n" for m in chain)
    if chain_format is ChainFormat.XML:
        return f"<tool>\n{body}</tool>\n{answer}"
    if chain_format is ChainFormat.MARKDOWN:
        return f"```tool\n{body}```\n{answer}"
    return answer


def _error_text(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


class ToolCallingLLM:
    """
    Runs the tool-use loop on top of an LLMClient.

    Exposes the same request/accessor surface as LLMClient, so either can back
    the OpenAI-compatible server.

    Args:
        client: Client used for every model call
        registry: Registry the enabled tools are looked up in
        tool_names: Tools exposed to the model (at least one, all registered)
        chain_format: Embedding of the tool chain in the final answer
        call_delay: Seconds to wait between turns (default: 1.0)
        max_tool_calls: Maximum number of turns (default: 10)

    Raises:
        ValueError: If tool_names is empty or max_tool_calls is not positive
        ToolNotFoundError: If a tool name is not registered
    """

    def __init__(
        self,
        client: LLMClient,
        registry: ToolRegistry,
        tool_names: Sequence[str],
        chain_format: ChainFormat | str = ChainFormat.XML,
        call_delay: float = 1.0,
        max_tool_calls: int = 10,
    ):
        if not tool_names:
            raise ValueError("tool_names is required and must contain at least one tool name.")
        if max_tool_calls < 1:
            raise ValueError("max_tool_calls must be a positive integer")
        self._client = client
        self._registry = registry
        self._tool_names = list(tool_names)
        self._tool_doc = registry.get_tool_doc(self._tool_names)
        self._chain_format = ChainFormat(chain_format)
        self._call_delay = call_delay
        self._max_tool_calls = max_tool_calls

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def tool_doc(self) -> str:
        """Documentation appended to the system prompt."""
        return self._tool_doc

    @property
    def tool_names(self) -> list[str]:
        return list(self._tool_names)

    @property
    def model_name(self) -> str:
        return self._client.model_name

    @property
    def api_usage(self) -> int:
        return self._client.api_usage

    @property
    def failed_api_calls(self) -> int:
        return self._client.failed_api_calls

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _prepare_messages(self, messages: Sequence[ChatMessage | dict[str, Any]]) -> list[ChatMessage]:
        """Copy the conversation and append the tool docs to its system message."""
        working = [ChatMessage.model_validate(m, from_attributes=True) for m in messages]
        if working[0].role != "system":
            working.insert(0, ChatMessage(role="system", content=""))
        working[0] = ChatMessage(role="system", content=working[0].content + self._tool_doc)
        return working

    async def _run_call(self, content: str, turn: int) -> tuple[str, str | None] | None:
        """
        Handle the tool call in one reply.

        Returns:
            ``(result_text, tool_name)`` for a reply with a call (tool_name is
            None if the call could not be resolved to a tool), or None when
            the reply contains no call.
        """
        tool_name: str | None = None
        try:
            invocation = parse_invocation(content, self._registry.prefix_char)
            if invocation is None:
                return None
            tool = self._registry.get_tool(invocation.tool_name)
            tool_name = tool.name
            values = coerce_arguments(invocation, tool)
            result = str(await execute_tool(tool, values))
        except Exception as e:
            # Fed back to the model, not raised
            result = _error_text(e)
        logger.debug(f"Turn {turn}/{self._max_tool_calls}: called {tool_name or 'unresolved tool'}")
        return result, tool_name

    async def raw_request(self, request: dict[str, Any]) -> ChatCompletion:
        """
        Run the tool loop for an OpenAI-style request body.

        Args:
            request: Chat completion parameters with a non-empty ``messages``
                     list of system/user/assistant text messages

        Returns:
            The final completion with the tool chain embedded and tool-turn
            completion tokens added to its usage, or an empty placeholder
            completion if the turn limit was reached first

        Raises:
            ValueError: If ``messages`` is missing or empty
            LLMError: If a model reply has no content
            Exception: Transport failures from LLMClient after retries
        """
        messages = request.get("messages")
        if not messages:
            raise ValueError("Messages array is empty. At least one message is required.")

        working = self._prepare_messages(messages)
        chain: list[ChatMessage] = []
        completion_tokens = 0
        final: ChatCompletion | None = None

        for turn in range(1, self._max_tool_calls + 1):
            response = await self._client.raw_request({**request, "messages": working})
            content = response.content
            if not content:
                raise LLMError("content not exist")

            outcome = await self._run_call(content, turn)
            if outcome is None:
                final = response
                break

            result, tool_name = outcome
            if turn == self._max_tool_calls:
                result += CAP_NOTICE
            exchange = [
                ChatMessage(role="assistant", content=content),
                ChatMessage(role="user", content=format_tool_result(result, tool_name)),
            ]
            working.extend(exchange)
            chain.extend(exchange)

            if response.usage is not None and response.usage.completion_tokens:
                completion_tokens += response.usage.completion_tokens

            if turn < self._max_tool_calls:
                await asyncio.sleep(self._call_delay)

        if final is None:
            logger.warning(
                f"No final answer after {self._max_tool_calls} tool calls; returning empty response"
            )
            return ChatCompletion()

        usage = final.usage
        if usage is not None:
            if usage.completion_tokens is not None:
                usage.completion_tokens += completion_tokens
            if usage.total_tokens is not None:
                usage.total_tokens += completion_tokens

        if chain:
            message = final.choices[0].message
            message.content = render_chain(chain, message.content, self._chain_format)

        logger.debug(f"Final answer after {len(chain) // 2} tool call(s)")
        return final

    async def chat(
        self,
        messages: Sequence[ChatMessage | dict[str, Any]],
        seed: int | None = None,
    ) -> ChatCompletion:
        """
        Run the tool loop on a conversation with the client's configured parameters.

        Args:
            messages: Conversation so far, oldest first
            seed: Sampling seed, for backends that support it
        """
        params: dict[str, Any] = {**self._client.chat_config(), "messages": messages}
        if seed is not None:
            params["seed"] = seed
        return await self.raw_request(params)

    async def simply_chat(
        self,
        messages: Sequence[ChatMessage | dict[str, Any]],
        seed: int | None = None,
    ) -> str:
        """
        Run the tool loop and return only the final text.

        Raises:
            LLMError: If anything fails or there is no final text (including
                      when the turn limit was reached)
        """
        try:
            response = await self.chat(messages, seed)
            content = response.content
            if not content:
                raise LLMError("content not exist")
            return content
        except Exception as e:
            raise LLMError(f"LLM call failed: {e}", cause=e) from e
