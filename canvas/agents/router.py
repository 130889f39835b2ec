"""Query Router — picks the generation node that handles the turn.

An explicit directive (highlighted edit or quick action) always decides the
node. Otherwise the router model classifies the latest message as either
generateArtifact or respondToQuery, forced through the `route_query` tool.
"""

from canvas.artifacts import current_content
from canvas.config import get_config
from canvas.errors import StructuredOutputError
from canvas.quick_actions import (
    CODE_QUICK_ACTIONS,
    TEXT_QUICK_ACTIONS,
    active_directives,
)
from canvas.state import ArtifactDocument, CanvasState
from canvas.utils.formatter import format_artifact, format_messages, recent_messages
from canvas.utils.models import get_chat_model
from canvas.utils.parsing import invoke_tool

ROUTES = ("generateArtifact", "respondToQuery")

ROUTE_QUERY_TOOL = {
    "name": "route_query",
    "description": "The route to take based on the user's most recent message.",
    "parameters": {
        "type": "object",
        "properties": {
            "route": {"type": "string", "enum": list(ROUTES)},
        },
        "required": ["route"],
    },
}

ROUTE_QUERY_PROMPT = """\
You are an assistant tasked with routing the user's query based on their most recent message.
You should look at this message in isolation and determine where to best route their query.

Use this context about the application and its features when determining where to route to:
<app-context>
The application is a chat interface with a canvas beside it. The canvas holds a single \
artifact, which is either text (e.g. an essay, email or blog post) or code, and the user \
edits it together with you.
</app-context>

Your options are as follows:
<options>
{artifact_options}
- 'respondToQuery': The user submitted a general input which does not require making an \
update, edit or generating a new artifact. This should ONLY be used if you are ABSOLUTELY \
sure the user does NOT want to make an edit, update or generate a new artifact.
</options>

A few of the recent messages in the chat history are:
<recent-messages>
{recent_messages}
</recent-messages>
{current_artifact}"""

NO_ARTIFACT_OPTIONS = """\
- 'generateArtifact': The user has inputted a request which requires generating an artifact."""

ARTIFACT_OPTIONS = """\
- 'generateArtifact': The user has requested some sort of change, or revision to the \
artifact, or to write a completely new artifact independent of the current artifact. Use \
their recent message and the currently selected artifact (if any) to determine what to do. \
You should ONLY select this if the user has clearly requested a change to the artifact, \
otherwise you should lean towards either generating a new artifact or responding to their query.
It is very important you do not edit the artifact unless clearly requested by the user."""

CURRENT_ARTIFACT_SECTION = """
If you have previously generated an artifact and the user asks a question that seems \
actionable, the likely choice is to take that action and rewrite the artifact.

<artifact>
{artifact}
</artifact>"""

# Directive field -> node that handles it
DIRECTIVE_ROUTES = {
    "highlighted_code": "update_artifact",
    "highlighted_text": "update_highlighted_text",
    "custom_quick_action_id": "custom_action",
    **{kind: "rewrite_artifact_theme" for kind in TEXT_QUICK_ACTIONS},
    **{kind: "rewrite_code_artifact_theme" for kind in CODE_QUICK_ACTIONS},
}


def build_router_prompt(messages, artifact: ArtifactDocument | None) -> str:
    """Build the classification prompt.

    The artifact snapshot section (and the option text that refers to it) is
    included only when an artifact exists.
    """
    config = get_config()
    count = config.get("router", {}).get("recent_messages", 3)

    if artifact:
        artifact_options = ARTIFACT_OPTIONS
        current_artifact = CURRENT_ARTIFACT_SECTION.format(
            artifact=format_artifact(current_content(artifact))
        )
    else:
        artifact_options = NO_ARTIFACT_OPTIONS
        current_artifact = ""

    return ROUTE_QUERY_PROMPT.format(
        artifact_options=artifact_options,
        recent_messages=format_messages(recent_messages(messages, count)),
        current_artifact=current_artifact,
    )


def classify_query(messages, artifact: ArtifactDocument | None) -> str:
    """Return 'generateArtifact' or 'respondToQuery' for the conversation tail."""
    llm = get_chat_model("router")
    prompt = build_router_prompt(messages, artifact)

    args = invoke_tool(
        llm,
        [{"role": "user", "content": prompt}],
        ROUTE_QUERY_TOOL,
        "route_query",
    )
    route = args.get("route")
    if route not in ROUTES:
        raise StructuredOutputError(
            f"Invalid route '{route}'. Must be one of: {', '.join(ROUTES)}"
        )
    return route


def route_node(state: CanvasState) -> dict:
    """Route node for the StateGraph.

    Directive presence dominates classification. A generateArtifact decision
    rewrites the existing artifact when there is one.
    """
    directives = active_directives(state)
    if directives:
        return {"next": DIRECTIVE_ROUTES[directives[0]]}

    artifact = state.get("artifact")
    route = classify_query(state["messages"], artifact)

    if route == "respondToQuery":
        return {"next": "respond_to_query"}
    if artifact:
        return {"next": "rewrite_artifact"}
    return {"next": "generate_artifact"}
