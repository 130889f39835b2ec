"""Reflect — re-derives the assistant's complete Reflections after a turn.

The graph node only schedules the work; `reflect` itself runs detached on a
thread pool so the user-visible reply never waits on it. Any failure stays
inside the job and is logged. This module is the only writer of the
Reflection Store.
"""

import sys
from concurrent.futures import Future, ThreadPoolExecutor

from langchain_core.messages import BaseMessage
from langchain_core.runnables import RunnableConfig
from langgraph.store.base import BaseStore

from canvas.artifacts import content_body, current_content
from canvas.config import get_config
from canvas.errors import StructuredOutputError
from canvas.memory import ReflectionStore, assistant_id_from, format_reflections
from canvas.state import ArtifactDocument, CanvasState, Reflections
from canvas.utils.formatter import format_messages
from canvas.utils.models import get_chat_model
from canvas.utils.parsing import invoke_tool

GENERATE_REFLECTIONS_TOOL = {
    "name": "generate_reflections",
    "description": "Generate reflections based on the context provided.",
    "parameters": {
        "type": "object",
        "properties": {
            "style_rules": {
                "type": "array",
                "items": {"type": "string"},
                "description": "The complete new list of style rules and guidelines.",
            },
            "content": {
                "type": "array",
                "items": {"type": "string"},
                "description": "The complete new list of memories/facts about the user.",
            },
        },
        "required": ["style_rules", "content"],
    },
}

SYSTEM_PROMPT = """\
You are an expert assistant and writing assistant. Your task is to generate reflections, or \
"memories", on the conversation between you and the user, so future generations follow their \
preferences.

Here is the artifact currently being worked on:
<artifact>
{artifact}
</artifact>

Here are the reflections you generated previously:
<reflections>
{reflections}
</reflections>

There are two kinds of reflections:
- Style rules: guidelines on how the user wants their artifacts written, e.g. tone, structure, \
formatting, or code style. Only add a rule when the conversation shows the user cares about it.
- Content: facts and memories about the user, e.g. their name, role, interests, or the \
projects they work on. Only add facts the user stated or clearly implied.

Rules:
- Return the COMPLETE new list for both kinds, including previous reflections you want to keep.
- Remove or rewrite reflections the conversation contradicts.
- Keep every reflection short and specific. Do not duplicate entries.
- Call the `generate_reflections` tool with your result."""

USER_PROMPT = """\
Here is my conversation:

{conversation}"""

_executor: ThreadPoolExecutor | None = None


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        workers = get_config().get("reflection", {}).get("max_workers", 2)
        _executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="canvas-reflect")
    return _executor


def shutdown(wait: bool = True) -> None:
    """Stop the reflection pool, optionally waiting for queued jobs."""
    global _executor
    if _executor is not None:
        _executor.shutdown(wait=wait)
        _executor = None


def parse_reflections(args: dict) -> Reflections:
    """Validate the generate_reflections tool arguments."""
    style_rules = args.get("style_rules")
    content = args.get("content")
    if not isinstance(style_rules, list) or not isinstance(content, list):
        raise StructuredOutputError(
            "generate_reflections must return 'style_rules' and 'content' lists."
        )
    return {
        "style_rules": [str(rule) for rule in style_rules],
        "content": [str(fact) for fact in content],
    }


def reflect(
    messages: list[BaseMessage],
    artifact: ArtifactDocument | None,
    assistant_id: str,
    store: BaseStore,
) -> Reflections:
    """Derive the complete Reflections from the conversation and store them."""
    reflection_store = ReflectionStore(store)
    previous = reflection_store.get(assistant_id)

    artifact_body = content_body(current_content(artifact)) if artifact else "No artifact found."
    system_content = SYSTEM_PROMPT.format(
        artifact=artifact_body,
        reflections=format_reflections(previous),
    )
    llm = get_chat_model("reflection")
    args = invoke_tool(
        llm,
        [
            {"role": "system", "content": system_content},
            {"role": "user", "content": USER_PROMPT.format(conversation=format_messages(messages))},
        ],
        GENERATE_REFLECTIONS_TOOL,
        "generate_reflections",
    )
    reflections = parse_reflections(args)

    reflection_store.put(assistant_id, reflections)
    return reflections


def _log_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        print(f"[Canvas] Reflection failed: {exc!r}", file=sys.stderr)


def schedule_reflection(
    messages: list[BaseMessage],
    artifact: ArtifactDocument | None,
    assistant_id: str,
    store: BaseStore,
) -> Future:
    """Submit a detached reflection job and return its future."""
    future = _get_executor().submit(reflect, list(messages), artifact, assistant_id, store)
    future.add_done_callback(_log_failure)
    return future


def reflect_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Reflect node for the StateGraph. Schedules the job and returns immediately."""
    schedule_reflection(
        state["messages"], state.get("artifact"), assistant_id_from(config), store
    )
    return {}
