"""Agent infrastructure module.

This module provides the core abstractions shared by the chat bridge:
- Conversation, turn and stream-event types
- The provider protocol consumed by the orchestration loop
- Configuration dataclasses
- The client-facing event emitter
"""

from chat_bridge.platform.agent.config import LoopConfig, SandboxConfig
from chat_bridge.platform.agent.emitter import EventEmitter, encode_event
from chat_bridge.platform.agent.messages import (
    DoneEvent,
    ErrorEvent,
    Message,
    StreamEvent,
    TextEvent,
    TextPart,
    ToolCall,
    ToolResult,
    ToolResultEvent,
    ToolUseEvent,
    Turn,
    WorkspaceContext,
)
from chat_bridge.platform.agent.protocol import Provider

__all__ = [
    "Provider",
    "LoopConfig",
    "SandboxConfig",
    "EventEmitter",
    "encode_event",
    "Message",
    "TextPart",
    "ToolCall",
    "ToolResult",
    "Turn",
    "WorkspaceContext",
    "StreamEvent",
    "TextEvent",
    "ToolUseEvent",
    "ToolResultEvent",
    "ErrorEvent",
    "DoneEvent",
]
