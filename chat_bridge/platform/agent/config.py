"""Configuration dataclasses for agent components.

This module provides immutable configuration objects derived from the
application settings once at startup and passed explicitly to the
components that need them.
"""

from dataclasses import dataclass

from chat_bridge.platform.settings import Settings


@dataclass(frozen=True)
class LoopConfig:
    """Configuration for the orchestration loop.

    Attributes:
        max_iterations: Provider round-trips allowed per request
        text_chunk_delay_seconds: Pause between word-sized text chunks
        tools_enabled: Offer tools to the provider (turn mode); otherwise stream text
        system_prompt: Base instructions sent with every provider call
    """

    max_iterations: int = 3
    text_chunk_delay_seconds: float = 0.02
    tools_enabled: bool = True
    system_prompt: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "LoopConfig":
        return cls(
            max_iterations=settings.bridge.max_iterations,
            text_chunk_delay_seconds=settings.bridge.text_chunk_delay_seconds,
            tools_enabled=settings.bridge.tools_enabled,
            system_prompt=settings.bridge.system_prompt,
        )


@dataclass(frozen=True)
class SandboxConfig:
    """Limits applied to tool-mediated filesystem access.

    Attributes:
        max_file_bytes: Largest file that read_file returns
        max_search_results: Cap on search_files matches
        excluded_dirs: Directory names search_files never enters
    """

    max_file_bytes: int = 100_000
    max_search_results: int = 20
    excluded_dirs: frozenset[str] = frozenset()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SandboxConfig":
        return cls(
            max_file_bytes=settings.workspace.max_file_bytes,
            max_search_results=settings.workspace.max_search_results,
            excluded_dirs=settings.workspace.excluded_dirs,
        )
