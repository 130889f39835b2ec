"""Generate Followup — a short message telling the user the artifact is ready.

Runs on the small model after an artifact-mutating node. This step is best
effort: a model failure is logged and the turn continues without a followup.
"""

import sys

from langchain_core.runnables import RunnableConfig
from langgraph.store.base import BaseStore

from canvas.artifacts import content_body, current_content
from canvas.errors import ModelInvocationError
from canvas.memory import format_reflections, load_reflections
from canvas.state import CanvasState
from canvas.utils.formatter import format_messages
from canvas.utils.models import get_chat_model
from canvas.utils.parsing import invoke_with_retry

FOLLOWUP_PROMPT = """\
You are an AI assistant tasked with generating a followup to the artifact the user just generated.
The context is you're having a conversation with the user, and you've just generated an artifact \
for them. Now you should follow up with a message that notifies them you're done. Make this \
message creative!

I've provided some examples of what your followup might be, but please feel free to get creative here!

<examples>
<example id="1">
Here's a comedic twist on your poem about Bernese Mountain dogs. Let me know if this captures \
the humor you were aiming for, or if you'd like me to adjust anything!
</example>

<example id="2">
Here's a poem celebrating the warmth and gentle nature of pandas. Let me know if you'd like \
any adjustments or a different style!
</example>

<example id="3">
Does this capture what you had in mind, or is there a different direction you'd like to explore?
</example>
</examples>

Here is the artifact you generated:
<artifact>
{artifact}
</artifact>

You also have the following reflections on general memories/facts about the user to use when \
generating your response.
<reflections>
{reflections}
</reflections>

Finally, here is the chat history between you and the user:
<conversation>
{conversation}
</conversation>

This message should be very short. Never generate more than 2-3 short sentences. Your tone \
should be somewhat formal, but still friendly. Remember, you're an AI assistant.

Do NOT include any tags, or extra text before or after your response. Do NOT prefix your response. \
Your response to this message should ONLY contain the description/followup message."""


def generate_followup_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Generate Followup node for the StateGraph."""
    reflections = load_reflections(store, config)

    artifact = state.get("artifact")
    artifact_body = (
        content_body(current_content(artifact)) if artifact else "No artifacts generated yet."
    )
    prompt = FOLLOWUP_PROMPT.format(
        artifact=artifact_body,
        reflections=format_reflections(reflections, only_content=True),
        conversation=format_messages(state["messages"]),
    )

    llm = get_chat_model("small")
    try:
        response = invoke_with_retry(llm, [{"role": "user", "content": prompt}])
    except ModelInvocationError as exc:
        print(f"[Canvas] Followup skipped: {exc}", file=sys.stderr)
        return {}

    return {"messages": [response]}
