"""
Key-rotating, retrying LLM client.

Wraps LiteLLM's ``acompletion`` for one OpenAI-compatible endpoint reached
with a pool of API keys:

    attempt 1 -> key[i]      fails
    attempt 2 -> key[i + 1]  fails
    attempt 3 -> key[i + 2]  succeeds -> response
    (next request starts at key[i + 3])

The rotation index moves forward on every attempt, successful or not, so load
spreads across the pool and a bad key is skipped on the retry. After
``retries + 1`` failed attempts the last provider exception is re-raised
unchanged.

The index and the usage/failure counters live on the client instance for its
whole lifetime. Each attempt claims its key and advances the index in a
single locked step, so concurrent requests (e.g. from the HTTP server) never
share a rotation slot.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from litellm import acompletion

from toolrelay.llm.models import ChatCompletion, ChatMessage, LLMConfig, LLMError

logger = logging.getLogger(__name__)

_CLIENT_OWNED_PARAMS = ("api_key", "api_base", "base_url", "custom_llm_provider", "stream_options")


def _dump_messages(messages: Sequence[ChatMessage | dict[str, Any]]) -> list[dict[str, Any]]:
    return [m.model_dump() if isinstance(m, ChatMessage) else dict(m) for m in messages]


class LLMClient:
    """
    Sends chat requests through a rotating pool of API keys.

    Args:
        config: Endpoint, keys, model and sampling parameters
        retries: Extra attempts after the first one fails (default: 3)

    Raises:
        ValueError: If retries is negative
    """

    def __init__(self, config: LLMConfig, retries: int = 3):
        if retries < 0:
            raise ValueError("Retries must be a non-negative integer")
        self._config = config
        self._retries = retries
        self._key_index = 0
        self._api_usage = 0
        self._failed_api_calls = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def model_name(self) -> str:
        return self._config.model

    @property
    def api_usage(self) -> int:
        """Total attempts made, successful or not."""
        return self._api_usage

    @property
    def failed_api_calls(self) -> int:
        """Total attempts that raised."""
        return self._failed_api_calls

    @property
    def key_index(self) -> int:
        """Index of the key the next attempt will use."""
        return self._key_index

    @property
    def retries(self) -> int:
        return self._retries

    def chat_config(self) -> dict[str, Any]:
        """A copy of the request parameters sent with every chat call."""
        return self._config.chat_params()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _claim_key(self) -> str:
        """Take the key for one attempt and move the rotation forward."""
        with self._lock:
            key = self._config.api_keys[self._key_index]
            self._key_index = (self._key_index + 1) % len(self._config.api_keys)
            self._api_usage += 1
            return key

    def _record_failure(self) -> None:
        with self._lock:
            self._failed_api_calls += 1

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def raw_request(self, request: dict[str, Any]) -> ChatCompletion:
        """
        Send an OpenAI-style request body, retrying on the next key on failure.

        Parameters missing from ``request`` (model, sampling parameters) are
        taken from the config. Streaming is always disabled.

        Args:
            request: Chat completion parameters; must contain a non-empty
                     ``messages`` list

        Returns:
            The first successful completion

        Raises:
            ValueError: If ``messages`` is missing or empty
            Exception: Whatever the provider raised on the last attempt
        """
        messages = request.get("messages")
        if not messages:
            raise ValueError("Messages array is empty. At least one message is required.")

        params: dict[str, Any] = {**self.chat_config(), **request}
        params["messages"] = _dump_messages(messages)
        params["stream"] = False
        # Credentials and routing always come from the client
        for name in _CLIENT_OWNED_PARAMS:
            params.pop(name, None)

        attempts = self._retries + 1
        for attempt in range(1, attempts + 1):
            key = self._claim_key()
            try:
                response = await acompletion(
                    **params,
                    api_key=key,
                    api_base=self._config.base_url,
                    custom_llm_provider=self._config.provider,
                )
            except Exception as e:
                self._record_failure()
                if attempt == attempts:
                    logger.error(f"LLM request failed after {attempts} attempts: {e}")
                    raise
                logger.warning(
                    f"LLM request attempt {attempt}/{attempts} failed, "
                    f"retrying with next key: {e}"
                )
                continue
            return ChatCompletion.from_provider(response)

        # Unreachable: the last attempt either returns or raises
        raise AssertionError("retry loop exited without a result")

    async def chat(
        self,
        messages: Sequence[ChatMessage | dict[str, Any]],
        seed: int | None = None,
    ) -> ChatCompletion:
        """
        Send a conversation with the configured model and sampling parameters.

        Args:
            messages: Conversation so far, oldest first
            seed: Sampling seed, for backends that support it
        """
        params: dict[str, Any] = {**self.chat_config(), "messages": messages}
        if seed is not None:
            params["seed"] = seed
        return await self.raw_request(params)

    async def simply_chat(
        self,
        messages: Sequence[ChatMessage | dict[str, Any]],
        seed: int | None = None,
    ) -> str:
        """
        Send a conversation and return only the answer text.

        Raises:
            LLMError: If the call fails or the answer has no content
        """
        try:
            response = await self.chat(messages, seed)
            content = response.content
            if not content:
                raise LLMError("content not exist")
            return content
        except Exception as e:
            raise LLMError(f"LLM call failed: {e}", cause=e) from e
