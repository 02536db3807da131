"""Platform infrastructure module.

This module provides the infrastructure the chat bridge runs on:
- Conversation, turn and event types, and the client-facing event emitter
- The Gemini provider client
- FastAPI server configuration
- Settings and observability utilities
"""

from chat_bridge.platform.agent.config import LoopConfig, SandboxConfig
from chat_bridge.platform.agent.emitter import EventEmitter
from chat_bridge.platform.agent.messages import Message, StreamEvent, ToolCall, ToolResult
from chat_bridge.platform.agent.protocol import Provider
from chat_bridge.platform.settings import Settings

__all__ = [
    # Core protocols
    "Provider",
    # Configuration
    "LoopConfig",
    "SandboxConfig",
    "Settings",
    # Message types
    "Message",
    "ToolCall",
    "ToolResult",
    "StreamEvent",
    "EventEmitter",
]
