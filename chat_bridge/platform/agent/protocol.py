"""Provider protocol definitions.

This module defines the framework-agnostic protocol the orchestration loop
uses to talk to an upstream LLM, so the loop can be exercised with any
implementation (the Gemini client in production, fakes in tests).
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol

from chat_bridge.platform.agent.messages import Message, Part, Turn


class Provider(Protocol):
    """Protocol for an upstream function-calling LLM."""

    @property
    def model_name(self) -> str:
        """The model identifier."""
        ...

    async def generate_turn(
        self,
        conversation: Sequence[Message],
        tools: Sequence[dict[str, Any]],
        system_prompt: str | None = None,
    ) -> Turn:
        """Send the conversation and collect one complete provider turn.

        Args:
            conversation: Ordered conversation messages
            tools: Function declarations offered to the model
            system_prompt: Optional system instructions

        Raises:
            ProviderError: On transport, status or parse failures
        """
        ...

    def stream_parts(
        self,
        conversation: Sequence[Message],
        tools: Sequence[dict[str, Any]],
        system_prompt: str | None = None,
    ) -> AsyncIterator[Part]:
        """Send the conversation and yield parts as soon as they are parsed.

        Raises:
            ProviderError: On transport, status or parse failures
        """
        ...
