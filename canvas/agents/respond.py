"""Respond To Query — conversational reply, the artifact is only read."""

from langchain_core.runnables import RunnableConfig
from langgraph.store.base import BaseStore

from canvas.artifacts import current_content
from canvas.memory import format_reflections, load_reflections
from canvas.state import CanvasState
from canvas.utils.formatter import format_artifact
from canvas.utils.models import get_chat_model
from canvas.utils.parsing import invoke_with_retry

SYSTEM_PROMPT = """\
You are an AI assistant tasked with responding to the user's question.

The user has generated artifacts in the past. Use the following artifacts as context when \
responding to the user's question.

You also have the following reflections on style guidelines and general memories/facts about \
the user to use when generating your response.
<reflections>
{reflections}
</reflections>

{artifact_section}"""

CURRENT_ARTIFACT_SECTION = """\
This artifact is the one the user is currently viewing.
<artifact>
{artifact}
</artifact>"""

NO_ARTIFACT_SECTION = """\
The user has not generated an artifact yet."""


def respond_to_query_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Respond To Query node for the StateGraph. Appends the model's reply."""
    reflections = load_reflections(store, config)

    artifact = state.get("artifact")
    if artifact:
        artifact_section = CURRENT_ARTIFACT_SECTION.format(
            artifact=format_artifact(current_content(artifact))
        )
    else:
        artifact_section = NO_ARTIFACT_SECTION

    system_content = SYSTEM_PROMPT.format(
        reflections=format_reflections(reflections),
        artifact_section=artifact_section,
    )
    llm = get_chat_model("primary")
    response = invoke_with_retry(llm, [{"role": "system", "content": system_content}, *state["messages"]])

    return {"messages": [response]}
