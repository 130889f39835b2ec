"""Shared fixtures for the canvas test suite."""

from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage
from langgraph.store.memory import InMemoryStore

from canvas.artifacts import append_version, code_content, new_document, text_content


def tool_response(name: str, args: dict) -> AIMessage:
    """An AIMessage carrying a single tool call, as a bound chat model returns it."""
    return AIMessage(content="", tool_calls=[{"name": name, "args": args, "id": "call_1"}])


def tool_llm(name: str, args: dict) -> MagicMock:
    """A mock chat model whose bind_tools(...).invoke returns one tool call."""
    llm = MagicMock()
    llm.bind_tools.return_value.invoke.return_value = tool_response(name, args)
    return llm


def text_llm(content: str) -> MagicMock:
    """A mock chat model whose invoke returns a plain AIMessage."""
    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content=content)
    return llm


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def runnable_config():
    return {"configurable": {"thread_id": "thread-1", "assistant_id": "assistant-1", "user_id": "user-1"}}


@pytest.fixture
def base_state():
    """Minimal CanvasState for a new thread."""
    return {
        "messages": [HumanMessage(content="write a haiku about rain")],
        "artifact": None,
    }


@pytest.fixture
def text_document():
    """A text artifact with three versions, current index 3."""
    document = new_document(text_content("Rain", "Soft rain on the roof"))
    document = append_version(document, text_content("Rain", "Cold rain on the roof"))
    return append_version(document, text_content("Rain", "ABCDEF"))


@pytest.fixture
def code_document():
    return new_document(code_content("Adder", "def add(a, b):\n    return a - b\n", "python"))


@pytest.fixture
def mock_config():
    """Patch the config singleton with test-friendly values."""
    test_config = {
        "models": {
            "primary": {"provider": "anthropic", "model": "test-model", "temperature": 0.5},
            "router": {"provider": "anthropic", "model": "test-model", "temperature": 0},
            "small": {"provider": "google", "model": "test-small", "temperature": 0.5, "max_tokens": 250},
            "reflection": {"provider": "anthropic", "model": "test-model", "temperature": 0},
        },
        "llm_max_retries": 0,
        "router": {"recent_messages": 3},
        "rewrite": {"meta_snapshot_chars": 500},
        "custom_actions": {"recent_messages": 5},
        "persistence": {"debounce_seconds": 5, "thread_switch_guard_seconds": 1},
        "reflection": {"enabled": True, "max_workers": 1},
    }
    with patch("canvas.config._config", test_config):
        yield test_config


class FakeTimer:
    """Stands in for threading.Timer; fires only when a test calls fire()."""

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


class FakeTimerFactory:
    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, interval, function, args=()):
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def clock():
    return FakeClock()
