"""HTTP clients for external services.

This module provides clients for communicating with external services,
currently the upstream Gemini provider.
"""

from chat_bridge.platform.clients.gemini import (
    GeminiClient,
    GeminiClientConfig,
    ProviderConnectionError,
    ProviderError,
    ProviderHTTPError,
    ProviderProtocolError,
    ProviderTimeoutError,
)

__all__ = [
    "GeminiClient",
    "GeminiClientConfig",
    "ProviderError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "ProviderHTTPError",
    "ProviderProtocolError",
]
