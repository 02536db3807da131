"""Turn-accumulation response strategy.

Collects every part of one provider turn before handing it back, so the
caller sees function calls and trailing text together.
"""

from typing import Any

from chat_bridge.platform.agent.messages import Part, TokenUsage, Turn
from chat_bridge.platform.clients.gemini.strategies.base import ElementSource


class TurnStrategy:
    """Accumulate a whole provider turn."""

    def __init__(self, source: ElementSource):
        """Initialize the strategy.

        Args:
            source: The element source to read from.
        """
        self._source = source

    async def execute(self, payload: dict[str, Any]) -> Turn:
        """Send the payload and return the complete turn.

        Usage metadata is cumulative across elements, so the last reported
        value wins.

        Args:
            payload: Request body

        Returns:
            Turn with all parts in provider order
        """
        parts: list[Part] = []
        usage = TokenUsage()
        finish_reason: str | None = None

        async for element in self._source.elements(payload):
            parts.extend(element.parts)
            if element.usage is not None:
                usage = element.usage
            if element.finish_reason is not None:
                finish_reason = element.finish_reason

        return Turn(parts=tuple(parts), usage=usage, finish_reason=finish_reason)
