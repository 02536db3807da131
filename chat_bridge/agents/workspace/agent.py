"""Orchestration loop for the workspace assistant.

The loop drives a bounded conversation with the provider: each iteration
sends the conversation, executes any function calls the model issued,
feeds their results back and stops as soon as the model answers with text.
Everything the client sees goes through the EventEmitter, which receives
exactly one Done at the end of every run.
"""

import asyncio
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum

import structlog
from opentelemetry import trace

from chat_bridge.agents.workspace.prompt import build_system_prompt
from chat_bridge.agents.workspace.tools import ToolContext, ToolRegistry
from chat_bridge.platform.agent.config import LoopConfig
from chat_bridge.platform.agent.emitter import EventEmitter
from chat_bridge.platform.agent.messages import (
    Message,
    TextEvent,
    TextPart,
    ToolCall,
    ToolResultEvent,
    ToolUseEvent,
    Turn,
)
from chat_bridge.platform.agent.protocol import Provider
from chat_bridge.platform.clients.gemini.exceptions import ProviderError
from chat_bridge.platform.observability.metrics import record_loop_iterations

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

GENERIC_ERROR_MESSAGE = "Internal error while processing the request"

_WORD_CHUNK = re.compile(r"\s*\S+\s*")


class LoopState(StrEnum):
    SENDING = "sending"
    AWAITING_TOOL_RESULTS = "awaiting_tool_results"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class LoopOutcome:
    """Summary of one loop run.

    Attributes:
        state: Final state, DONE or FAILED
        iterations: Provider round-trips made
        text: All text emitted to the client, concatenated
    """

    state: LoopState
    iterations: int
    text: str = ""


def chunk_words(text: str) -> list[str]:
    """Split text into word-sized chunks whose concatenation is the original text."""
    return _WORD_CHUNK.findall(text) or [text]


class OrchestrationLoop:
    """Bounded provider/tool feedback loop for one chat request."""

    def __init__(
        self,
        provider: Provider,
        registry: ToolRegistry,
        config: LoopConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the loop.

        Args:
            provider: Upstream function-calling LLM
            registry: Tools offered to the model
            config: Iteration cap, pacing and mode settings
            sleep: Pacing function between text chunks
        """
        self._provider = provider
        self._registry = registry
        self._config = config
        self._sleep = sleep

    async def run(
        self,
        conversation: Sequence[Message],
        tool_context: ToolContext,
        emitter: EventEmitter,
    ) -> LoopOutcome:
        """Run the loop to completion, emitting events as they occur.

        Provider failures end the run in FAILED with one Error event. Reaching
        the iteration cap without text is not a failure. Done is always emitted
        last unless the consumer has gone away.

        Args:
            conversation: Client conversation; copied, never mutated
            tool_context: Workspace, sandbox and limits for this request
            emitter: Event channel to the client

        Returns:
            LoopOutcome describing how the run ended
        """
        history = list(conversation)
        tools = self._registry.describe() if self._config.tools_enabled else ()
        system_prompt = build_system_prompt(
            self._config.system_prompt, tool_context.workspace, tools
        )
        state = LoopState.SENDING
        iterations = 0
        emitted: list[str] = []

        with tracer.start_as_current_span("orchestration_loop") as span:
            try:
                for iterations in range(1, self._config.max_iterations + 1):
                    state = LoopState.SENDING
                    if self._config.tools_enabled:
                        spoke = await self._turn_iteration(
                            history, tool_context, emitter, system_prompt, emitted
                        )
                    else:
                        spoke = await self._streaming_iteration(
                            history, emitter, system_prompt, emitted
                        )
                    if spoke:
                        break
                else:
                    logger.info(
                        "Iteration cap reached without a text turn",
                        max_iterations=self._config.max_iterations,
                    )
                state = LoopState.DONE
            except ProviderError as e:
                state = LoopState.FAILED
                logger.warning("Provider call failed", error=str(e), iteration=iterations)
                emitter.error(str(e))
            except Exception:
                state = LoopState.FAILED
                logger.exception("Orchestration loop failed", iteration=iterations)
                emitter.error(GENERIC_ERROR_MESSAGE)
            finally:
                emitter.finish()
                span.set_attribute("loop.iterations", iterations)
                span.set_attribute("loop.final_state", str(state))
                record_loop_iterations(str(state), iterations)

        return LoopOutcome(state=state, iterations=iterations, text="".join(emitted))

    async def _turn_iteration(
        self,
        history: list[Message],
        tool_context: ToolContext,
        emitter: EventEmitter,
        system_prompt: str,
        emitted: list[str],
    ) -> bool:
        """One round-trip in turn-accumulation mode. Returns True once the model spoke."""
        turn = await self._provider.generate_turn(
            history, self._registry.declarations(), system_prompt
        )
        if turn.is_empty:
            logger.info("Provider returned an empty turn", finish_reason=turn.finish_reason)
            return False

        # The model must see its own function calls before their responses
        history.append(turn.to_message())

        if turn.tool_calls:
            self._run_tools(turn, history, tool_context, emitter)

        if not turn.texts:
            return False

        for text in turn.texts:
            await self._emit_paced(text, emitter)
            emitted.append(text)
        return True

    def _run_tools(
        self,
        turn: Turn,
        history: list[Message],
        tool_context: ToolContext,
        emitter: EventEmitter,
    ) -> None:
        for call in turn.tool_calls:
            emitter.emit(ToolUseEvent(call.name, call.arguments_dict()))
            result = self._registry.execute(call, tool_context)
            emitter.emit(ToolResultEvent(call.name, result.text, result.truncated))
            history.append(Message.tool_response(call, result))

    async def _streaming_iteration(
        self,
        history: list[Message],
        emitter: EventEmitter,
        system_prompt: str,
        emitted: list[str],
    ) -> bool:
        """One round-trip in streaming mode: text is forwarded as it is parsed."""
        texts: list[str] = []
        async for part in self._provider.stream_parts(history, (), system_prompt):
            if isinstance(part, TextPart) and part.text:
                emitter.emit(TextEvent(part.text))
                texts.append(part.text)
            elif isinstance(part, ToolCall):
                logger.warning("Ignoring function call while tools are disabled", tool_name=part.name)

        if not texts:
            return False
        history.append(Message(role="assistant", content="".join(texts)))
        emitted.extend(texts)
        return True

    async def _emit_paced(self, text: str, emitter: EventEmitter) -> None:
        delay = self._config.text_chunk_delay_seconds
        for index, chunk in enumerate(chunk_words(text)):
            if index and delay > 0:
                await self._sleep(delay)
            if not emitter.emit(TextEvent(chunk)):
                return
