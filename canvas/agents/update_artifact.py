"""Update Artifact — targeted edit of a highlighted region.

Code artifacts are highlighted by excerpt, text artifacts by character span.
The model only ever returns the replacement for the span; the node splices it
back so every character outside the span is left byte-identical.
"""

import re

from langchain_core.runnables import RunnableConfig
from langgraph.store.base import BaseStore

from canvas.artifacts import append_version, content_body, current_content, locate_excerpt, splice, with_body
from canvas.memory import format_reflections, load_reflections
from canvas.state import CanvasState
from canvas.utils.formatter import latest_user_message
from canvas.utils.models import get_chat_model
from canvas.utils.parsing import invoke_with_retry, message_text, strip_fences

# Characters of surrounding context shown on each side of the highlight
HIGHLIGHT_CONTEXT_CHARS = 500

SYSTEM_PROMPT = """\
You are an AI assistant, and the user has requested you make an update to a specific part of \
an artifact you generated in the past.

Here is the relevant part of the artifact, with the highlighted text between <highlight> tags:

{before}<highlight>{highlighted}</highlight>{after}

Please update the highlighted text based on the user's request.

Follow these rules and guidelines:
<rules-guidelines>
- ONLY respond with the updated text, not the entire artifact.
- Do not include the <highlight> tags, or extra content in your response.
- Do not wrap it in any XML tags you see in this prompt.
- Do NOT wrap in markdown blocks (e.g. triple backticks) unless the highlighted content was \
already wrapped in markdown blocks.
- If the user asked for a single word change, only respond with the updated word and not the entire sentence.
</rules-guidelines>

You also have the following reflections on style guidelines and general memories/facts about \
the user to use when generating your response.
<reflections>
{reflections}
</reflections>"""

_LEADING_WS = re.compile(r"^\s*")
_TRAILING_WS = re.compile(r"\s*$")


def fit_replacement(selected: str, reply: str) -> str:
    """Trim the model reply and restore the selection's own outer whitespace."""
    leading = _LEADING_WS.match(selected).group(0)
    trailing = _TRAILING_WS.search(selected).group(0) if selected.strip() else ""
    return f"{leading}{reply.strip()}{trailing}"


def _rewrite_span(state: CanvasState, config: RunnableConfig, store: BaseStore, start: int, end: int) -> dict:
    current = current_content(state["artifact"])
    body = content_body(current)
    selected = body[start:end]

    reflections = load_reflections(store, config)
    system_content = SYSTEM_PROMPT.format(
        before=body[max(0, start - HIGHLIGHT_CONTEXT_CHARS):start],
        highlighted=selected,
        after=body[end:end + HIGHLIGHT_CONTEXT_CHARS],
        reflections=format_reflections(reflections),
    )

    llm = get_chat_model("primary")
    response = invoke_with_retry(
        llm,
        [
            {"role": "system", "content": system_content},
            {"role": "user", "content": latest_user_message(state["messages"])},
        ],
    )
    reply = message_text(response)
    if current["type"] == "code" and "```" not in selected:
        reply = strip_fences(reply)

    new_body = splice(body, start, end, fit_replacement(selected, reply))
    return {"artifact": append_version(state["artifact"], with_body(current, new_body))}


def update_artifact_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Update the highlighted excerpt of a code artifact."""
    highlight = state["highlighted_code"]
    body = content_body(current_content(state["artifact"]))
    start, end = locate_excerpt(body, highlight["selected_text"], highlight.get("start_char_index"))
    return _rewrite_span(state, config, store, start, end)


def update_highlighted_text_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Update the highlighted character span of a text artifact."""
    highlight = state["highlighted_text"]
    return _rewrite_span(
        state, config, store, highlight["start_char_index"], highlight["end_char_index"]
    )
