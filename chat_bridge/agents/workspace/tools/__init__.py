"""Sandboxed workspace tools exposed to the model."""

from chat_bridge.agents.workspace.tools.context import ToolContext
from chat_bridge.agents.workspace.tools.registry import Tool, ToolParameter, ToolRegistry
from chat_bridge.agents.workspace.tools.sandbox import (
    AccessDeniedError,
    Sandbox,
    SandboxError,
    TooLargeError,
)

__all__ = [
    "ToolContext",
    "ToolRegistry",
    "Tool",
    "ToolParameter",
    "Sandbox",
    "SandboxError",
    "AccessDeniedError",
    "TooLargeError",
]
