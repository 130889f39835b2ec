"""Generate Artifact — writes the first artifact of a thread.

The model classifies the request as text or code itself, through the
`generate_artifact` tool arguments.
"""

from langchain_core.runnables import RunnableConfig
from langgraph.store.base import BaseStore

from canvas.artifacts import append_version, code_content, text_content
from canvas.errors import StructuredOutputError
from canvas.memory import format_reflections, load_reflections
from canvas.state import ArtifactContent, CanvasState
from canvas.utils.models import get_chat_model
from canvas.utils.parsing import invoke_tool, strip_fences

GENERATE_ARTIFACT_TOOL = {
    "name": "generate_artifact",
    "description": "Generate an artifact based on the user's request.",
    "parameters": {
        "type": "object",
        "properties": {
            "type": {
                "type": "string",
                "enum": ["text", "code"],
                "description": "The content type of the artifact generated.",
            },
            "language": {
                "type": "string",
                "description": (
                    "The language of the artifact to generate. If generating code, "
                    "it should be the programming language. For text, it should be 'other'."
                ),
            },
            "title": {
                "type": "string",
                "description": "A short title to give to the artifact. Should be less than 5 words.",
            },
            "artifact": {
                "type": "string",
                "description": "The content of the artifact to generate.",
            },
        },
        "required": ["type", "title", "artifact"],
    },
}

SYSTEM_PROMPT = """\
You are an AI assistant tasked with generating a new artifact based on the user's request.
Ensure you use markdown syntax when appropriate, as the text you generate will be rendered in markdown.

Use the full chat history as context when generating the artifact.

Follow these rules and guidelines:
<rules-guidelines>
- Do not wrap it in any XML tags you see in this prompt.
- If writing code, do not add inline comments unless the user has specifically requested them. \
This is very important as we don't want to clutter the code.
- If writing code, never wrap it in triple backticks.
</rules-guidelines>

You also have the following reflections on style guidelines and general memories/facts about \
the user to use when generating your response.
<reflections>
{reflections}
</reflections>
"""


def content_from_tool_args(args: dict, fallback_title: str = "Untitled") -> ArtifactContent:
    """Build an artifact version from generate_artifact style tool arguments."""
    ctype = args.get("type")
    title = (args.get("title") or "").strip() or fallback_title
    body = args.get("artifact")
    if not isinstance(body, str):
        raise StructuredOutputError("Tool call is missing the 'artifact' body.")

    if ctype == "text":
        return text_content(title, body)
    if ctype == "code":
        language = (args.get("language") or "other").strip().lower()
        return code_content(title, strip_fences(body), language)
    raise StructuredOutputError(f"Invalid artifact type '{ctype}'. Must be 'text' or 'code'.")


def generate_artifact_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Generate Artifact node for the StateGraph.

    Returns the new artifact document with the generated content at index 1.
    """
    reflections = load_reflections(store, config)
    llm = get_chat_model("primary")

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT.format(reflections=format_reflections(reflections))},
        *state["messages"],
    ]
    args = invoke_tool(llm, messages, GENERATE_ARTIFACT_TOOL, "generate_artifact")
    content = content_from_tool_args(args)

    return {"artifact": append_version(state.get("artifact"), content)}
