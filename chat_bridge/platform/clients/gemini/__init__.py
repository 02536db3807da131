"""Gemini client module for the upstream LLM provider.

The module includes:
- Request payload construction (conversation, tools, generation parameters)
- Incremental decoding of the streamed JSON array response
- Streaming and turn-accumulation response strategies
"""

from chat_bridge.platform.clients.gemini.client import GeminiClient, create_http_client
from chat_bridge.platform.clients.gemini.config import GeminiClientConfig, ResponseMode
from chat_bridge.platform.clients.gemini.exceptions import (
    ProviderConnectionError,
    ProviderError,
    ProviderHTTPError,
    ProviderProtocolError,
    ProviderTimeoutError,
)

__all__ = [
    # Client
    "GeminiClient",
    "GeminiClientConfig",
    "ResponseMode",
    "create_http_client",
    # Exceptions
    "ProviderError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "ProviderHTTPError",
    "ProviderProtocolError",
]
