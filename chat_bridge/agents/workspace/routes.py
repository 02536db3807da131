"""Workspace chat HTTP endpoints.

``POST /chat/stream`` accepts a conversation plus optional workspace hints and
answers with a stream of ``data: <json>`` events produced by the
orchestration loop. Requests that fail validation are answered with a single
Error event followed by Done, without any upstream call.
"""

import asyncio
import json
from collections.abc import AsyncIterator, Callable, Coroutine
from functools import partial
from typing import Any, Literal

import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from chat_bridge.agents.workspace.agent import (
    GENERIC_ERROR_MESSAGE,
    LoopOutcome,
    OrchestrationLoop,
)
from chat_bridge.agents.workspace.context import resolve_workspace_context
from chat_bridge.agents.workspace.tools import ToolContext, ToolRegistry
from chat_bridge.platform.agent.config import LoopConfig, SandboxConfig
from chat_bridge.platform.agent.emitter import EventEmitter, encode_event
from chat_bridge.platform.agent.messages import DoneEvent, ErrorEvent, Message
from chat_bridge.platform.agent.protocol import Provider
from chat_bridge.platform.observability.logging import bind_chat_context
from chat_bridge.platform.server.dependencies.clients import get_provider
from chat_bridge.platform.server.dependencies.settings import get_settings
from chat_bridge.platform.settings import Settings

logger = structlog.get_logger(__name__)

chat_router = APIRouter(tags=["chat"])

CHAT_PATH = "/chat/stream"
EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
# Every standard method except POST and OPTIONS
REFUSED_METHODS = ("GET", "HEAD", "PUT", "PATCH", "DELETE", "TRACE", "CONNECT")
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable proxy buffering
    **CORS_HEADERS,
}


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatContext(BaseModel):
    """Workspace hints sent by the client.

    Attributes:
        working_directory: Directory the client considers its workspace
        current_file: File open in the client's editor
    """

    model_config = ConfigDict(populate_by_name=True)

    working_directory: str | None = Field(None, alias="workingDirectory")
    current_file: str | None = Field(None, alias="currentFile")


class ChatRequest(BaseModel):
    """Request payload for the chat stream endpoint.

    Attributes:
        messages: Conversation so far, oldest first; at least one message
        context: Optional workspace hints
    """

    messages: list[ChatMessage] = Field(min_length=1)
    context: ChatContext | None = None

    def conversation(self) -> list[Message]:
        return [Message(role=message.role, content=message.content) for message in self.messages]


class RequestRejected(Exception):
    """Raised when a request fails validation before any processing."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def rejection_response(message: str, status_code: int, headers: dict[str, str] | None = None) -> Response:
    """Error event followed by Done, as a complete event-stream body."""
    body = encode_event(ErrorEvent(message)) + encode_event(DoneEvent())
    return Response(
        content=body,
        status_code=status_code,
        media_type=EVENT_STREAM_MEDIA_TYPE,
        headers={**STREAM_HEADERS, **(headers or {})},
    )


def _is_json_content_type(value: str | None) -> bool:
    if not value:
        return False
    media_type = value.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


async def read_limited_body(request: Request, max_bytes: int) -> bytes:
    """Read the request body, refusing anything over ``max_bytes``.

    A declared Content-Length over the bound is refused before reading; the
    running total is also checked as chunks arrive.

    Raises:
        RequestRejected: If the body is, or declares itself, too large
    """
    too_large = RequestRejected(
        f"Request body too large: the limit is {max_bytes} bytes", status_code=413
    )
    declared = request.headers.get("content-length")
    if declared is not None:
        try:
            declared_size = int(declared)
        except ValueError:
            raise RequestRejected("Invalid Content-Length header") from None
        if declared_size > max_bytes:
            raise too_large

    received = bytearray()
    async for chunk in request.stream():
        received.extend(chunk)
        if len(received) > max_bytes:
            raise too_large
    return bytes(received)


def parse_chat_request(body: bytes) -> ChatRequest:
    """Decode and validate a chat request body.

    Raises:
        RequestRejected: On malformed JSON or a schema violation
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RequestRejected(f"Malformed JSON request body: {e}") from e
    if not isinstance(data, dict):
        raise RequestRejected("Request body must be a JSON object")
    if not isinstance(data.get("messages"), list):
        raise RequestRejected("Request body must contain a 'messages' array")
    try:
        return ChatRequest.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise RequestRejected(f"Invalid chat request: {details}") from e


async def run_chat(
    loop: OrchestrationLoop,
    conversation: list[Message],
    tool_context: ToolContext,
    emitter: EventEmitter,
    model: str,
) -> LoopOutcome:
    """Run one chat request with its workspace and model bound to every log line."""
    workspace = tool_context.workspace
    bind_chat_context(workspace.root, model, workspace.current_file)
    return await loop.run(conversation, tool_context, emitter)


def _on_loop_done(emitter: EventEmitter, task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Chat request failed outside the loop", exc_info=exc)
        emitter.error(GENERIC_ERROR_MESSAGE)
    emitter.finish()


async def stream_events(
    run: Callable[[], Coroutine[Any, Any, Any]], emitter: EventEmitter
) -> AsyncIterator[str]:
    """Start ``run()`` as a producer task and yield the emitter's encoded events.

    When the consumer stops early (client disconnect) the emitter is closed
    and the producer is cancelled without waiting for it, which abandons any
    in-flight upstream call.
    """
    task = asyncio.create_task(run())
    task.add_done_callback(partial(_on_loop_done, emitter))
    try:
        async for chunk in emitter.stream():
            yield chunk
    finally:
        emitter.close()
        if not task.done():
            logger.info("Client went away, abandoning the chat request")
            task.cancel()


@chat_router.post(CHAT_PATH)
async def chat_stream_handler(
    request: Request,
    settings: Settings = Depends(get_settings),
    provider: Provider = Depends(get_provider),
):
    """Run one chat request and stream its events.

    Args:
        request: Raw request; the body is read here to enforce the size bound
        settings: Application settings (injected)
        provider: Upstream LLM client (injected)

    Returns:
        StreamingResponse of SSE-style events, or a rejection stream
    """
    try:
        if not _is_json_content_type(request.headers.get("content-type")):
            raise RequestRejected("Content-Type must be application/json", status_code=415)
        body = await read_limited_body(request, settings.bridge.max_request_bytes)
        payload = parse_chat_request(body)
    except RequestRejected as e:
        logger.info("Rejected chat request", reason=e.message, status_code=e.status_code)
        return rejection_response(e.message, e.status_code)

    hints = payload.context or ChatContext()
    workspace = resolve_workspace_context(
        hints.working_directory, hints.current_file, settings.workspace
    )
    tool_context = ToolContext.for_workspace(workspace, SandboxConfig.from_settings(settings))
    loop = OrchestrationLoop(provider, ToolRegistry.default(), LoopConfig.from_settings(settings))
    emitter = EventEmitter(preview_chars=settings.bridge.tool_result_preview_chars)

    logger.info(
        "Starting chat request",
        messages=len(payload.messages),
        workspace_root=str(workspace.root),
    )
    return StreamingResponse(
        stream_events(
            partial(
                run_chat,
                loop,
                payload.conversation(),
                tool_context,
                emitter,
                settings.provider.model,
            ),
            emitter,
        ),
        media_type=EVENT_STREAM_MEDIA_TYPE,
        headers=STREAM_HEADERS,
    )


@chat_router.options(CHAT_PATH)
async def chat_stream_preflight():
    """CORS preflight: no body, permissive headers."""
    return Response(status_code=204, headers=CORS_HEADERS)


@chat_router.api_route(CHAT_PATH, methods=list(REFUSED_METHODS), include_in_schema=False)
async def chat_stream_method_not_allowed(request: Request):
    return rejection_response(
        f"Method Not Allowed: {request.method} {CHAT_PATH}; use POST",
        status_code=405,
        headers={"Allow": "POST, OPTIONS"},
    )
