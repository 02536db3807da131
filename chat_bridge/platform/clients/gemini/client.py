"""Core Gemini client.

Provides the provider implementation used by the orchestration loop: it
serializes the conversation, issues the ``streamGenerateContent`` call and
turns the streamed response into parts, either forwarded one by one
(streaming mode) or collected into a complete turn (turn mode).
"""

import json
import logging
from collections.abc import AsyncIterator, Sequence
from time import monotonic
from typing import Any

import httpx

from chat_bridge.platform.agent.messages import Message, Part, Turn
from chat_bridge.platform.clients.gemini.config import GeminiClientConfig, ResponseMode
from chat_bridge.platform.clients.gemini.exceptions import (
    ProviderConnectionError,
    ProviderError,
    ProviderHTTPError,
    ProviderTimeoutError,
)
from chat_bridge.platform.clients.gemini.parsing import (
    JsonArrayDecoder,
    ParsedElement,
    navigate,
    parse_response_element,
)
from chat_bridge.platform.clients.gemini.payload import build_payload
from chat_bridge.platform.clients.gemini.strategies import StreamingStrategy, TurnStrategy
from chat_bridge.platform.constants import USER_AGENT
from chat_bridge.platform.observability.metrics import (
    ProviderCallLabels,
    record_provider_call,
    record_provider_tokens,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-goog-api-key"


def create_http_client(config: GeminiClientConfig) -> httpx.AsyncClient:
    """Create the shared HTTP client used for provider calls."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout_seconds, connect=config.connect_timeout_seconds),
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
        headers={"user-agent": USER_AGENT},
    )


def _error_message(body: bytes) -> str:
    """Pull a readable message out of an error response body."""
    text = body.decode("utf-8", errors="replace").strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text[:500] or "empty response body"
    # Error bodies are either an object or a one-element array around it
    message = navigate(data, "error", "message") or navigate(data, 0, "error", "message")
    return message if isinstance(message, str) else text[:500]


class GeminiClient:
    """Function-calling provider client for the Gemini API.

    Implements the Provider protocol consumed by the orchestration loop.
    No request is retried; every failure surfaces as a ProviderError.
    """

    def __init__(
        self,
        config: GeminiClientConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            config: Provider configuration
            http_client: Optional shared HTTP client; one is created (and owned) otherwise
        """
        self._config = config
        self._http_client = http_client or create_http_client(config)
        self._owns_http_client = http_client is None

    def __repr__(self) -> str:
        return f"GeminiClient(model={self._config.model!r}, base_url={self._config.base_url!r})"

    @property
    def model_name(self) -> str:
        return self._config.model

    @property
    def config(self) -> GeminiClientConfig:
        return self._config

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def generate_turn(
        self,
        conversation: Sequence[Message],
        tools: Sequence[dict[str, Any]] = (),
        system_prompt: str | None = None,
    ) -> Turn:
        """Send the conversation and collect one complete provider turn.

        Args:
            conversation: Ordered conversation messages
            tools: Function declarations offered to the model
            system_prompt: Optional system instructions

        Returns:
            The complete turn, parts in provider order

        Raises:
            ProviderError: On transport, status or parse failures
        """
        payload = build_payload(self._config, conversation, tools, system_prompt)
        start_time = monotonic()
        outcome = "error"
        try:
            turn = await TurnStrategy(self).execute(payload)
            outcome = "ok"
        finally:
            record_provider_call(
                ProviderCallLabels(self.model_name, ResponseMode.TURN, outcome),
                duration=monotonic() - start_time,
            )

        record_provider_tokens(self.model_name, turn.usage.input_tokens, turn.usage.output_tokens)
        logger.debug(
            "Provider turn: %d part(s), %d function call(s), finish_reason=%s",
            len(turn.parts),
            len(turn.tool_calls),
            turn.finish_reason,
        )
        return turn

    async def stream_parts(
        self,
        conversation: Sequence[Message],
        tools: Sequence[dict[str, Any]] = (),
        system_prompt: str | None = None,
    ) -> AsyncIterator[Part]:
        """Send the conversation and yield parts as soon as they are parsed.

        Args:
            conversation: Ordered conversation messages
            tools: Function declarations offered to the model
            system_prompt: Optional system instructions

        Yields:
            TextPart and ToolCall objects in provider order

        Raises:
            ProviderError: On transport, status or parse failures
        """
        payload = build_payload(self._config, conversation, tools, system_prompt)
        start_time = monotonic()
        outcome = "error"
        try:
            async for part in StreamingStrategy(self).execute_stream(payload):
                yield part
            outcome = "ok"
        finally:
            record_provider_call(
                ProviderCallLabels(self.model_name, ResponseMode.STREAMING, outcome),
                duration=monotonic() - start_time,
            )

    async def elements(self, payload: dict[str, Any]) -> AsyncIterator[ParsedElement]:
        """Issue the provider call and yield each parsed response element.

        Leaving the iterator early closes the upstream connection.

        Raises:
            ProviderConnectionError: If the provider is unreachable or the connection drops
            ProviderTimeoutError: If the provider does not answer in time
            ProviderHTTPError: On a non-success status
            ProviderProtocolError: On a malformed stream or an in-stream error object
        """
        url = self._config.stream_url
        headers = {
            API_KEY_HEADER: self._config.api_key,
            "content-type": "application/json",
        }
        try:
            async with self._http_client.stream("POST", url, json=payload, headers=headers) as response:
                if not response.is_success:
                    body = await response.aread()
                    raise ProviderHTTPError(response.status_code, _error_message(body))

                decoder = JsonArrayDecoder()
                async for text in response.aiter_text():
                    for element in decoder.feed(text):
                        yield parse_response_element(element)
                for element in decoder.close():
                    yield parse_response_element(element)
        except ProviderError:
            raise
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                str(e) or type(e).__name__, timeout_seconds=self._config.timeout_seconds
            ) from e
        except httpx.HTTPError as e:
            raise ProviderConnectionError(str(e) or type(e).__name__, url=url) from e
