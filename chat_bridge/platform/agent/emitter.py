"""Client-facing event stream.

The EventEmitter is the write end of a pipe between the orchestration loop
(producer) and the HTTP response (consumer). Each event is serialized as one
SSE-style ``data: <json>`` message and handed to the response as soon as it
is emitted.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator

from chat_bridge.platform.agent.messages import (
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    ToolResultEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_CHARS = 200
ELLIPSIS = "..."


def encode_event(event: StreamEvent) -> str:
    """Serialize an event into its wire form."""
    return f"data: {json.dumps(event.to_wire(), ensure_ascii=False, separators=(',', ':'))}\n\n"


def preview(text: str, limit: int) -> tuple[str, bool]:
    """Cut text down to at most ``limit`` characters, ellipsis included.

    Returns:
        Tuple of (preview_text, was_truncated)
    """
    if len(text) <= limit:
        return text, False
    if limit <= len(ELLIPSIS):
        return text[:limit], True
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS, True


class EventEmitter:
    """Single-request event channel guaranteeing exactly one trailing Done.

    Emits after ``close()`` (client gone) or after Done are no-ops that
    return False, so producers never fail because the consumer went away.
    """

    def __init__(self, preview_chars: int = DEFAULT_PREVIEW_CHARS) -> None:
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._preview_chars = preview_chars
        self._closed = False
        self._finished = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def finished(self) -> bool:
        """True once the Done event has been emitted."""
        return self._finished

    def emit(self, event: StreamEvent) -> bool:
        """Queue an event for the client.

        ToolResult payloads are cut to the preview length; the full text is
        meant for the model, not the user.

        Returns:
            False if the event was dropped (client gone or stream finished)
        """
        if self._closed or self._finished:
            return False
        if isinstance(event, ToolResultEvent):
            summary, cut = preview(event.summary, self._preview_chars)
            event = ToolResultEvent(
                name=event.name, summary=summary, truncated=event.truncated or cut
            )
        if isinstance(event, DoneEvent):
            self._finished = True
        self._queue.put_nowait(event)
        return True

    def error(self, message: str) -> bool:
        return self.emit(ErrorEvent(message))

    def finish(self) -> bool:
        """Emit the terminating Done event unless it was already sent."""
        return self.emit(DoneEvent())

    def close(self) -> None:
        """Mark the consumer as gone; later emits become no-ops."""
        if not self._closed:
            logger.debug("Event stream closed by consumer")
        self._closed = True

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield queued events until Done has been delivered."""
        while True:
            event = await self._queue.get()
            yield event
            if isinstance(event, DoneEvent):
                return

    async def stream(self) -> AsyncIterator[str]:
        """Yield wire-encoded events until Done has been delivered."""
        async for event in self.events():
            yield encode_event(event)
