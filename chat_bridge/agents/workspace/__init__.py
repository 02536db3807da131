"""Workspace assistant: sandboxed file tools driven by a bounded provider loop."""

from chat_bridge.agents.workspace.agent import LoopOutcome, LoopState, OrchestrationLoop
from chat_bridge.agents.workspace.context import resolve_workspace_context
from chat_bridge.agents.workspace.routes import chat_router

__all__ = [
    "OrchestrationLoop",
    "LoopOutcome",
    "LoopState",
    "resolve_workspace_context",
    "chat_router",
]
