"""Unit tests for the orchestration loop.

The provider is a scripted fake so that every test controls exactly which
turns the loop sees; tools run against the on-disk workspace fixture.
"""

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from chat_bridge.agents.workspace.agent import (
    GENERIC_ERROR_MESSAGE,
    LoopState,
    OrchestrationLoop,
    chunk_words,
)
from chat_bridge.agents.workspace.tools import ToolContext, ToolRegistry
from chat_bridge.platform.agent.config import LoopConfig
from chat_bridge.platform.agent.emitter import EventEmitter
from chat_bridge.platform.agent.messages import (
    DoneEvent,
    ErrorEvent,
    Message,
    Part,
    StreamEvent,
    TextEvent,
    TextPart,
    ToolCall,
    ToolResultEvent,
    ToolUseEvent,
    Turn,
)
from chat_bridge.platform.clients.gemini.exceptions import ProviderHTTPError


@dataclass
class RecordedCall:
    conversation: list[Message]
    tools: list[dict[str, Any]]
    system_prompt: str | None


class ScriptedProvider:
    """Fake provider returning scripted turns in order.

    Once the script is exhausted ``default`` is returned for every further
    call. Exceptions in the script are raised instead of returned.
    """

    model_name = "fake-model"

    def __init__(self, turns: Sequence[Turn | Exception] = (), default: Turn | None = None):
        self._turns = list(turns)
        self._default = default if default is not None else Turn()
        self.calls: list[RecordedCall] = []

    async def generate_turn(self, conversation, tools, system_prompt=None) -> Turn:
        self.calls.append(RecordedCall(list(conversation), list(tools), system_prompt))
        item = self._turns.pop(0) if self._turns else self._default
        if isinstance(item, Exception):
            raise item
        return item

    async def stream_parts(self, conversation, tools, system_prompt=None) -> AsyncIterator[Part]:
        turn = await self.generate_turn(conversation, tools, system_prompt)
        for part in turn.parts:
            yield part


def text_turn(*texts: str) -> Turn:
    return Turn(parts=tuple(TextPart(text) for text in texts))


def call_turn(*calls: tuple[str, dict[str, Any]]) -> Turn:
    return Turn(parts=tuple(ToolCall.create(name, args) for name, args in calls))


async def drain(emitter: EventEmitter) -> list[StreamEvent]:
    return [event async for event in emitter.events()]


def joined_text(events: list[StreamEvent]) -> str:
    return "".join(event.fragment for event in events if isinstance(event, TextEvent))


@pytest.fixture
def loop_config() -> LoopConfig:
    return LoopConfig(
        max_iterations=3,
        text_chunk_delay_seconds=0.0,
        tools_enabled=True,
        system_prompt="Be brief.",
    )


@pytest.fixture
def user_request() -> list[Message]:
    return [Message(role="user", content="list files")]


def make_loop(provider: ScriptedProvider, config: LoopConfig) -> OrchestrationLoop:
    return OrchestrationLoop(provider, ToolRegistry.default(), config)


class TestChunkWords:
    """Tests for chunk_words()."""

    def test_splits_on_word_boundaries_keeping_whitespace(self):
        assert chunk_words("hello big world") == ["hello ", "big ", "world"]

    def test_chunks_reassemble_to_the_original(self):
        text = "  Line one.\n\nLine   two\tends here.  "
        assert "".join(chunk_words(text)) == text

    def test_whitespace_only_and_empty_text(self):
        assert chunk_words("   ") == ["   "]
        assert chunk_words("") == [""]


class TestTextOnlyTurn:
    """A turn with only text goes straight to Done."""

    async def test_hello_produces_text_then_done(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([text_turn("hello")])
        emitter = EventEmitter()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert events == [TextEvent("hello"), DoneEvent()]
        assert outcome.state == LoopState.DONE
        assert outcome.iterations == 1
        assert outcome.text == "hello"
        assert len(provider.calls) == 1

    async def test_multiword_text_is_chunked_and_paced(
        self, tool_context: ToolContext, user_request: list[Message]
    ):
        delays: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            delays.append(seconds)

        config = LoopConfig(max_iterations=3, text_chunk_delay_seconds=0.25)
        provider = ScriptedProvider([text_turn("one two three")])
        emitter = EventEmitter()

        await OrchestrationLoop(provider, ToolRegistry.default(), config, sleep=fake_sleep).run(
            user_request, tool_context, emitter
        )
        events = await drain(emitter)

        assert events[:-1] == [TextEvent("one "), TextEvent("two "), TextEvent("three")]
        assert delays == [0.25, 0.25]

    async def test_conversation_argument_is_not_mutated(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([call_turn(("list_directory", {})), text_turn("done")])

        await make_loop(provider, loop_config).run(user_request, tool_context, EventEmitter())

        assert user_request == [Message(role="user", content="list files")]

    async def test_system_prompt_lists_tools_and_root(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([text_turn("hi")])

        await make_loop(provider, loop_config).run(user_request, tool_context, EventEmitter())

        prompt = provider.calls[0].system_prompt
        assert prompt.startswith("Be brief.")
        assert str(tool_context.workspace.root) in prompt
        assert "read_file" in prompt
        assert [d["name"] for d in provider.calls[0].tools] == [
            "read_file",
            "list_directory",
            "search_files",
        ]


class TestToolTurns:
    """Function-call turns execute tools and feed the results back."""

    async def test_list_directory_scenario(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider(
            [
                call_turn(("list_directory", {"path": ""})),
                text_turn("The workspace has A.java and B.java."),
            ]
        )
        emitter = EventEmitter()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert events[0] == ToolUseEvent("list_directory", {"path": ""})
        assert isinstance(events[1], ToolResultEvent)
        assert events[1].name == "list_directory"
        assert "A.java" in events[1].summary
        assert "B.java" in events[1].summary
        assert all(isinstance(event, TextEvent) for event in events[2:-1])
        assert joined_text(events) == "The workspace has A.java and B.java."
        assert events[-1] == DoneEvent()
        assert outcome.iterations == 2

    async def test_model_sees_its_own_call_before_the_tool_response(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([call_turn(("list_directory", {"path": ""})), text_turn("ok")])

        await make_loop(provider, loop_config).run(user_request, tool_context, EventEmitter())

        second = provider.calls[1].conversation
        assert [message.role for message in second] == ["user", "assistant", "tool"]
        assert second[1].tool_calls == (ToolCall.create("list_directory", {"path": ""}),)
        assert second[2].name == "list_directory"
        assert "[FILE] A.java" in second[2].content

    async def test_tool_result_preview_is_truncated_for_the_client_only(
        self, tool_context: ToolContext, workspace_root: Path, user_request: list[Message]
    ):
        (workspace_root / "Long.java").write_text("// filler\n" * 60)
        config = LoopConfig(max_iterations=3, text_chunk_delay_seconds=0.0)
        provider = ScriptedProvider([call_turn(("read_file", {"path": "Long.java"})), text_turn("ok")])
        emitter = EventEmitter(preview_chars=200)

        await make_loop(provider, config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        result_event = events[1]
        assert isinstance(result_event, ToolResultEvent)
        assert result_event.truncated is True
        assert len(result_event.summary) == 200
        assert result_event.summary.endswith("...")
        tool_message = provider.calls[1].conversation[-1]
        assert tool_message.content.count("// filler") == 60

    async def test_traversal_attempt_continues_the_loop(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider(
            [call_turn(("read_file", {"path": "../../etc/passwd"})), text_turn("I can't read that.")]
        )
        emitter = EventEmitter()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert isinstance(events[1], ToolResultEvent)
        assert events[1].summary.startswith("Access denied")
        assert len(provider.calls) == 2
        assert outcome.state == LoopState.DONE
        assert not any(isinstance(event, ErrorEvent) for event in events)

    async def test_unknown_tool_result_is_fed_back(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([call_turn(("run_shell", {"cmd": "ls"})), text_turn("Sorry.")])
        emitter = EventEmitter()

        await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert events[0] == ToolUseEvent("run_shell", {"cmd": "ls"})
        assert "unknown function 'run_shell'" in events[1].summary
        assert "unknown function 'run_shell'" in provider.calls[1].conversation[-1].content

    async def test_parallel_calls_run_in_order(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider(
            [
                call_turn(("read_file", {"path": "A.java"}), ("read_file", {"path": "B.java"})),
                text_turn("Both read."),
            ]
        )
        emitter = EventEmitter()

        await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        kinds = [type(event).__name__ for event in events[:4]]
        assert kinds == ["ToolUseEvent", "ToolResultEvent", "ToolUseEvent", "ToolResultEvent"]
        assert events[0].arguments == {"path": "A.java"}
        assert events[2].arguments == {"path": "B.java"}
        roles = [message.role for message in provider.calls[1].conversation]
        assert roles == ["user", "assistant", "tool", "tool"]

    async def test_turn_with_calls_and_text_finishes(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        mixed = Turn(
            parts=(
                TextPart("Let me look."),
                ToolCall.create("list_directory", {"path": ""}),
            )
        )
        provider = ScriptedProvider([mixed, text_turn("never requested")])
        emitter = EventEmitter()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert len(provider.calls) == 1
        assert isinstance(events[0], ToolUseEvent)
        assert isinstance(events[1], ToolResultEvent)
        assert joined_text(events) == "Let me look."
        assert outcome.state == LoopState.DONE


class TestIterationCap:
    """The loop always terminates within max_iterations."""

    async def test_provider_that_always_calls_tools_is_capped(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider(default=call_turn(("list_directory", {"path": ""})))
        emitter = EventEmitter()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert len(provider.calls) == 3
        assert outcome.state == LoopState.DONE
        assert outcome.iterations == 3
        assert outcome.text == ""
        assert events[-1] == DoneEvent()
        assert sum(isinstance(event, DoneEvent) for event in events) == 1
        assert not any(isinstance(event, (TextEvent, ErrorEvent)) for event in events)

    @pytest.mark.parametrize("max_iterations", [1, 2, 5])
    async def test_cap_is_configurable(
        self, tool_context: ToolContext, user_request: list[Message], max_iterations: int
    ):
        provider = ScriptedProvider(default=call_turn(("search_files", {"pattern": "java"})))
        config = LoopConfig(max_iterations=max_iterations, text_chunk_delay_seconds=0.0)

        outcome = await make_loop(provider, config).run(user_request, tool_context, EventEmitter())

        assert len(provider.calls) == max_iterations
        assert outcome.iterations == max_iterations

    async def test_empty_turn_is_a_no_op(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([Turn(), text_turn("", "answer")])
        emitter = EventEmitter()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert len(provider.calls) == 2
        assert provider.calls[1].conversation == user_request
        assert events == [TextEvent("answer"), DoneEvent()]
        assert outcome.iterations == 2

    async def test_only_empty_turns_end_with_done(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider()
        emitter = EventEmitter()

        await make_loop(provider, loop_config).run(user_request, tool_context, emitter)

        assert await drain(emitter) == [DoneEvent()]
        assert len(provider.calls) == 3


class TestFailures:
    """Provider and unexpected failures end in one Error followed by Done."""

    async def test_provider_error_emits_error_then_done(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([ProviderHTTPError(503, "overloaded")])
        emitter = EventEmitter()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert events == [ErrorEvent("Provider returned HTTP 503: overloaded"), DoneEvent()]
        assert outcome.state == LoopState.FAILED

    async def test_provider_error_after_tool_turn(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider(
            [call_turn(("list_directory", {})), ProviderHTTPError(500, "boom")]
        )
        emitter = EventEmitter()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert [type(event) for event in events] == [
            ToolUseEvent,
            ToolResultEvent,
            ErrorEvent,
            DoneEvent,
        ]
        assert outcome.iterations == 2

    async def test_unexpected_exception_is_generic(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([KeyError("internal detail")])
        emitter = EventEmitter()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert events == [ErrorEvent(GENERIC_ERROR_MESSAGE), DoneEvent()]
        assert outcome.state == LoopState.FAILED

    async def test_closed_emitter_does_not_break_the_loop(
        self, loop_config: LoopConfig, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([call_turn(("list_directory", {})), text_turn("a b c")])
        emitter = EventEmitter()
        emitter.close()

        outcome = await make_loop(provider, loop_config).run(user_request, tool_context, emitter)

        assert outcome.state == LoopState.DONE
        assert emitter.finished is False


class TestStreamingMode:
    """With tools disabled, text is forwarded as parts arrive."""

    async def test_parts_are_forwarded_unchunked(
        self, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider([text_turn("Hel", "lo there")])
        config = LoopConfig(max_iterations=3, text_chunk_delay_seconds=1.0, tools_enabled=False)
        emitter = EventEmitter()

        outcome = await make_loop(provider, config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert events == [TextEvent("Hel"), TextEvent("lo there"), DoneEvent()]
        assert provider.calls[0].tools == []
        assert "read_file" not in provider.calls[0].system_prompt
        assert outcome.text == "Hello there"

    async def test_function_calls_are_ignored(
        self, tool_context: ToolContext, user_request: list[Message]
    ):
        provider = ScriptedProvider(
            [Turn(parts=(ToolCall.create("read_file", {"path": "A.java"}),)), text_turn("fine")]
        )
        config = LoopConfig(max_iterations=3, text_chunk_delay_seconds=0.0, tools_enabled=False)
        emitter = EventEmitter()

        await make_loop(provider, config).run(user_request, tool_context, emitter)
        events = await drain(emitter)

        assert events == [TextEvent("fine"), DoneEvent()]
        assert len(provider.calls) == 2
