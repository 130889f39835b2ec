"""Integration tests: full turns through CanvasSession with mocked chat models."""

from contextlib import ExitStack
from unittest.mock import MagicMock, patch

import pytest
from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage
from langgraph.checkpoint.memory import MemorySaver

from canvas.agents import reflect as reflection
from canvas.artifacts import current_content
from canvas.errors import ModelInvocationError, TurnValidationError
from canvas.graph import compile_graph
from canvas.main import CanvasSession, _parse_action
from canvas.memory import ReflectionStore
from canvas.persistence import CheckpointThreadStore, DebouncedArtifactWriter
from conftest import text_llm, tool_llm

_MODEL_MODULES = (
    "canvas.agents.router",
    "canvas.agents.generate_artifact",
    "canvas.agents.rewrite_theme",
    "canvas.agents.followup",
    "canvas.agents.reflect",
    "canvas.agents.respond",
)


class FakeModels:
    """Hands out one mock chat model per role and records which roles were asked for."""

    def __init__(self, **models):
        self.models = models
        self.requested: list[str] = []

    def __call__(self, role):
        self.requested.append(role)
        return self.models[role]


@pytest.fixture
def session(mock_config, store, timers, clock):
    thread_store = CheckpointThreadStore(compile_graph(store, checkpointer=MemorySaver()))
    writer = DebouncedArtifactWriter(thread_store, timer_factory=timers, clock=clock)
    session = CanvasSession(store=store, thread_store=thread_store, writer=writer)
    yield session
    writer.shutdown()
    reflection.shutdown(wait=True)


def _run(session, models, *args, **kwargs):
    """Run one turn with every node's model factory patched, waiting for reflection."""
    with ExitStack() as stack:
        for module in _MODEL_MODULES:
            stack.enter_context(patch(f"{module}.get_chat_model", side_effect=models))
        events = list(session.stream_turn(*args, **kwargs))
        reflection.shutdown(wait=True)
    return events


def _haiku_models():
    return FakeModels(
        router=tool_llm("route_query", {"route": "generateArtifact"}),
        primary=tool_llm("generate_artifact", {
            "type": "text", "title": "Rain Haiku", "language": "other",
            "artifact": "Soft rain on tin roofs\nthe gutter hums its one song\nnight holds its breath",
        }),
        small=text_llm("Here's a quiet haiku about rain. Want a different mood?"),
        reflection=tool_llm("generate_reflections", {"style_rules": [], "content": ["Enjoys haiku"]}),
    )


class TestNewArtifactTurn:
    def test_haiku_creates_first_version(self, session, timers, store):
        models = _haiku_models()

        events = _run(session, models, "thread-1", "assistant-1", [
            {"role": "user", "content": "write a haiku about rain"},
        ])

        artifact_event = next(e for e in events if e["event"] == "artifact")
        assert artifact_event["current_index"] == 1
        content = current_content(artifact_event["artifact"])
        assert content["type"] == "text"
        assert content["title"] == "Rain Haiku"

        final_state = events[-1]["state"]
        assert events[-1]["event"] == "end"
        assert isinstance(final_state["messages"][-1], AIMessage)
        assert final_state["next"] is None
        assert models.requested[:3] == ["router", "primary", "small"]
        assert ReflectionStore(store).get("assistant-1")["content"] == ["Enjoys haiku"]

    def test_result_persisted_after_quiet_period(self, session, timers):
        _run(session, _haiku_models(), "thread-1", "assistant-1", [
            {"role": "user", "content": "write a haiku about rain"},
        ])

        assert session.thread_store.get_state("thread-1") == {}
        timers.last.fire()
        stored = session.thread_store.get_state("thread-1")["artifact"]
        assert stored["current_index"] == 1


class TestQuickActionTurn:
    def test_reading_level_bypasses_router(self, session, text_document):
        models = FakeModels(
            primary=text_llm("Arr, ABCDEF be the word, matey"),
            small=text_llm("Yer artifact be ready."),
            reflection=tool_llm("generate_reflections", {"style_rules": [], "content": []}),
        )

        events = _run(
            session, models, "thread-1", "assistant-1", [],
            artifact=text_document, reading_level="pirate",
        )

        assert "router" not in models.requested
        final_state = events[-1]["state"]
        assert final_state["artifact"]["current_index"] == 4
        assert current_content(final_state["artifact"])["full_markdown"].startswith("Arr")
        assert final_state["reading_level"] is None


class TestRejectedTurns:
    def test_two_directives_rejected_before_any_work(self, session, code_document, timers):
        models = FakeModels()

        with pytest.raises(TurnValidationError):
            _run(
                session, models, "thread-1", "assistant-1", [],
                artifact=code_document, add_comments=True, fix_bugs=True,
            )

        assert models.requested == []
        assert timers.timers == []
        assert session.writer.pending("thread-1") is None

    def test_unknown_directive_rejected(self, session):
        with pytest.raises(TurnValidationError, match="make_it_pop"):
            list(session.stream_turn("thread-1", "assistant-1", [{"role": "user", "content": "hi"}],
                                     make_it_pop=True))

    def test_model_failure_surfaces(self, session):
        failing = MagicMock()
        failing.bind_tools.return_value.invoke.side_effect = RuntimeError("provider down")
        models = FakeModels(router=failing)

        with pytest.raises(ModelInvocationError, match="provider down"):
            _run(session, models, "thread-1", "assistant-1", [
                {"role": "user", "content": "write a haiku"},
            ])

        assert session.writer.pending("thread-1") is None

    def test_bad_highlight_hint_rejected_before_any_model_call(self, session, code_document):
        models = FakeModels()
        session.writer.schedule("thread-1", code_document, respect_guard=False)

        with pytest.raises(TurnValidationError, match="start_char_index"):
            _run(
                session, models, "thread-1", "assistant-1", [],
                highlighted_code={"selected_text": "a - b", "start_char_index": "19"},
            )

        assert models.requested == []
        assert session.writer.pending("thread-1") == code_document


class TestInterruptedTurns:
    def test_model_failure_keeps_pending_write(self, session, text_document, timers):
        session.writer.schedule("thread-1", text_document, respect_guard=False)
        failing = MagicMock()
        failing.bind_tools.return_value.invoke.side_effect = RuntimeError("provider down")

        with pytest.raises(ModelInvocationError):
            _run(session, FakeModels(router=failing), "thread-1", "assistant-1", [
                {"role": "user", "content": "make it shorter"},
            ])

        assert session.writer.pending("thread-1") == text_document
        timers.last.fire()
        assert session.thread_store.get_state("thread-1")["artifact"] == text_document

    def test_abandoned_stream_keeps_pending_write(self, session, text_document):
        session.writer.schedule("thread-1", text_document, respect_guard=False)
        models = FakeModels(
            router=tool_llm("route_query", {"route": "respondToQuery"}),
            primary=GenericFakeChatModel(messages=iter([AIMessage(content="Rain falls softly on the roof")])),
        )

        with ExitStack() as stack:
            for module in _MODEL_MODULES:
                stack.enter_context(patch(f"{module}.get_chat_model", side_effect=models))
            turn = session.stream_turn("thread-1", "assistant-1", [
                {"role": "user", "content": "what is this poem about?"},
            ])
            first = next(turn)
            turn.close()

        assert first["event"] == "message_delta"
        assert first["node"] == "respond_to_query"
        assert session.writer.pending("thread-1") == text_document


class TestRewind:
    def test_rewind_schedules_write(self, session, text_document, timers):
        rewound = session.rewind("thread-1", text_document, 1)

        assert rewound["current_index"] == 1
        assert session.writer.pending("thread-1") == rewound
        timers.last.fire()
        assert session.thread_store.get_state("thread-1")["artifact"]["current_index"] == 1


class TestParseAction:
    def test_flag_action(self):
        assert _parse_action("/action fix_bugs") == {"fix_bugs": True}

    def test_valued_action(self):
        assert _parse_action("/action port_language rust") == {"port_language": "rust"}

    def test_missing_directive(self):
        with pytest.raises(TurnValidationError):
            _parse_action("/action")
