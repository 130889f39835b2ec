"""Custom quick actions — user-defined rewrite instructions stored per user."""

from langchain_core.runnables import RunnableConfig
from langgraph.store.base import BaseStore

from canvas.artifacts import append_version, content_body, current_content, with_body
from canvas.config import get_config
from canvas.errors import TurnValidationError
from canvas.memory import format_reflections, load_reflections
from canvas.quick_actions import get_custom_action
from canvas.state import CanvasState, CustomQuickAction
from canvas.utils.formatter import format_messages, recent_messages
from canvas.utils.models import get_chat_model
from canvas.utils.parsing import invoke_with_retry, message_text, strip_fences

PREFIX_PROMPT = """\
You are an AI assistant tasked with rewriting a user's generated artifact.
They have provided custom instructions on how you should manage rewriting the artifact. \
The custom instructions are wrapped inside the <custom-instructions> tags.

Use this context about the application the user is interacting with when generating your response:
<app-context>
The application is a chat interface with a canvas beside it. The canvas holds a single \
artifact, which is either text (e.g. an essay, email or blog post) or code.
</app-context>"""

CUSTOM_INSTRUCTIONS_SECTION = """\
<custom-instructions>
{prompt}
</custom-instructions>"""

REFLECTIONS_SECTION = """\
The following are reflections on the user's style guidelines and general memories/facts about the user.
Use these reflections as context when generating your response.
<reflections>
{reflections}
</reflections>"""

CONVERSATION_SECTION = """\
Here are the last {count} (or less) messages in the chat history between you and the user:
<conversation>
{conversation}
</conversation>"""

ARTIFACT_SECTION = """\
Here is the full artifact content the user has generated, and is requesting you rewrite \
according to their custom instructions:
<artifact>
{artifact}
</artifact>"""

POSTFIX = """\
Ensure you ONLY respond with the rewritten artifact and NO other content, and do not wrap \
code in triple backticks."""


def build_custom_action_prompt(action: CustomQuickAction, state: CanvasState, reflections: str) -> str:
    """Assemble the prompt from the sections the action opts into."""
    sections = []
    if action.get("include_prefix"):
        sections.append(PREFIX_PROMPT)
    sections.append(CUSTOM_INSTRUCTIONS_SECTION.format(prompt=action["prompt"]))
    if action.get("include_reflections"):
        sections.append(REFLECTIONS_SECTION.format(reflections=reflections))
    if action.get("include_recent_history"):
        count = get_config().get("custom_actions", {}).get("recent_messages", 5)
        sections.append(CONVERSATION_SECTION.format(
            count=count,
            conversation=format_messages(recent_messages(state.get("messages", []), count)),
        ))
    sections.append(ARTIFACT_SECTION.format(
        artifact=content_body(current_content(state["artifact"]))
    ))
    sections.append(POSTFIX)
    return "\n\n".join(sections)


def custom_action_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Run the user's custom quick action against the current artifact."""
    action_id = state["custom_quick_action_id"]
    user_id = (config or {}).get("configurable", {}).get("user_id")
    action = get_custom_action(store, user_id, action_id) if user_id else None
    if action is None:
        raise TurnValidationError(f"Custom quick action '{action_id}' not found.")

    reflections = load_reflections(store, config)
    prompt = build_custom_action_prompt(action, state, format_reflections(reflections))

    llm = get_chat_model("primary")
    response = invoke_with_retry(llm, [{"role": "user", "content": prompt}])
    body = message_text(response)

    current = current_content(state["artifact"])
    body = strip_fences(body) if current["type"] == "code" else body.strip()
    return {"artifact": append_version(state["artifact"], with_body(current, body))}
