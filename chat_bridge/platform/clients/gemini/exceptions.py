"""Custom exception hierarchy for the Gemini client.

This module defines a structured exception hierarchy for handling errors
that can occur when talking to the upstream provider. Every provider error
is surfaced to the chat client as a single error event.
"""


class ProviderError(Exception):
    """Base exception for all provider client errors."""


class ProviderConnectionError(ProviderError):
    """Raised when the provider cannot be reached."""

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(f"Connection failed{f' to {url}' if url else ''}: {message}")


class ProviderTimeoutError(ProviderError):
    """Raised when the provider does not answer in time."""

    def __init__(self, message: str, timeout_seconds: float | None = None):
        self.timeout_seconds = timeout_seconds
        timeout_info = f" after {timeout_seconds}s" if timeout_seconds else ""
        super().__init__(f"Provider request timed out{timeout_info}: {message}")


class ProviderHTTPError(ProviderError):
    """Raised when the provider answers with a non-success status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.upstream_message = message
        super().__init__(f"Provider returned HTTP {status_code}: {message}")


class ProviderProtocolError(ProviderError):
    """Raised when the provider's response stream is malformed or reports an error."""

    def __init__(self, message: str, error_code: int | None = None):
        self.error_code = error_code
        code_info = f" (code: {error_code})" if error_code else ""
        super().__init__(f"Protocol error{code_info}: {message}")
