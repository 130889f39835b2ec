"""Rewrite Artifact — regenerates the entire body of the current artifact.

A cheap classification step first decides whether the title or the content
type should change. It only sees the first `rewrite.meta_snapshot_chars`
characters of the artifact plus the latest request, so a long document whose
topic is only signalled further down may keep its old title.
"""

from langchain_core.runnables import RunnableConfig
from langgraph.store.base import BaseStore

from canvas.artifacts import append_version, code_content, current_content, text_content
from canvas.config import get_config
from canvas.memory import format_reflections, load_reflections
from canvas.state import ArtifactContent, CanvasState
from canvas.utils.formatter import format_artifact, latest_user_message
from canvas.utils.models import get_chat_model
from canvas.utils.parsing import invoke_tool, invoke_with_retry, message_text, strip_fences

UPDATE_META_TOOL = {
    "name": "update_artifact_meta",
    "description": "Update the artifact meta information, if necessary.",
    "parameters": {
        "type": "object",
        "properties": {
            "type": {
                "type": "string",
                "enum": ["text", "code"],
                "description": "The type of the artifact.",
            },
            "title": {
                "type": "string",
                "description": (
                    "The new title to give the artifact. ONLY update this if the user "
                    "is making a request which changes the subject/topic of the artifact."
                ),
            },
            "language": {
                "type": "string",
                "description": (
                    "The language of the code artifact. This should be populated with the "
                    "programming language if the user is requesting code to be written, or "
                    "'other', in all other cases."
                ),
            },
        },
        "required": ["type"],
    },
}

META_PROMPT = """\
You are an AI assistant who has been tasked with analyzing the user's request to rewrite an artifact.

Your task is to determine what the title and type of the artifact should be based on the user's request.
You should NOT modify the title unless the user's request indicates the artifact subject/topic has changed.
You do NOT need to change the type unless it is clear the user is asking for their artifact to be a different type.
Use this context about the application when making your decision:
<app-context>
The application is a chat interface with a canvas beside it. The canvas holds a single \
artifact, which is either text (e.g. an essay, email or blog post) or code.
</app-context>

The types you can choose from are:
- 'text': This is a general text artifact. This could be a poem, story, email, or any other type of writing.
- 'code': This is a code artifact. This could be a code snippet, a full file, or any other type of code.

Be careful when selecting the 'code' type, as it is used for code of any language, never for prose.

Here is the current artifact (only the first {max_chars} characters, or less if the artifact is shorter):
<artifact>
{artifact}
</artifact>

The user's message below is the most recent message they sent. Use this to determine what the \
title and type of the artifact should be."""

SYSTEM_PROMPT = """\
You are an AI assistant, and the user has requested you make an update to an artifact you generated in the past.

Here is the current content of the artifact:
<artifact>
{artifact}
</artifact>

You also have the following reflections on style guidelines and general memories/facts about \
the user to use when generating your response.
<reflections>
{reflections}
</reflections>

Please update the artifact based on the user's request.

Follow these rules and guidelines:
<rules-guidelines>
- You should respond with the ENTIRE updated artifact, with no additional text before and after.
- Do not wrap it in any XML tags you see in this prompt.
- You should use proper markdown syntax when appropriate, as the text you generate will be \
rendered in markdown. UNLESS YOU ARE WRITING CODE.
- When you generate code, a markdown renderer is NOT used, so never wrap the code in triple \
backticks or prefix/suffix it with plain text. ONLY respond with the code.
{meta_rules}
</rules-guidelines>

Ensure you ONLY reply with the rewritten artifact and NO other content."""

TYPE_CHANGE_RULE = (
    "- The user has requested the artifact be changed from {old} to {new}. "
    "Rewrite it as {new} content{language_hint}."
)


def resolve_meta(current: ArtifactContent, args: dict) -> dict:
    """Merge the meta tool arguments with the current version's metadata.

    The title is carried over unless the model supplied a new one; an
    unusable type keeps the current variant.
    """
    new_type = args.get("type") if args.get("type") in ("text", "code") else current["type"]
    title = (args.get("title") or "").strip() or current["title"]

    if new_type == "code":
        language = (args.get("language") or "").strip().lower()
        if not language or language == "other":
            language = current.get("language", "other") if current["type"] == "code" else "other"
    else:
        language = None

    return {"type": new_type, "title": title, "language": language}


def _classify_meta(state: CanvasState, current: ArtifactContent) -> dict:
    max_chars = get_config().get("rewrite", {}).get("meta_snapshot_chars", 500)
    prompt = META_PROMPT.format(
        max_chars=max_chars,
        artifact=format_artifact(current, max_chars=max_chars),
    )
    llm = get_chat_model("router")
    args = invoke_tool(
        llm,
        [
            {"role": "system", "content": prompt},
            {"role": "user", "content": latest_user_message(state["messages"])},
        ],
        UPDATE_META_TOOL,
        "update_artifact_meta",
    )
    return resolve_meta(current, args)


def rewrite_artifact_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Rewrite Artifact node for the StateGraph."""
    current = current_content(state["artifact"])
    meta = _classify_meta(state, current)
    reflections = load_reflections(store, config)

    meta_rules = ""
    if meta["type"] != current["type"]:
        language_hint = f" written in {meta['language']}" if meta["type"] == "code" else ""
        meta_rules = TYPE_CHANGE_RULE.format(
            old=current["type"], new=meta["type"], language_hint=language_hint
        )

    system_content = SYSTEM_PROMPT.format(
        artifact=format_artifact(current),
        reflections=format_reflections(reflections),
        meta_rules=meta_rules,
    )
    llm = get_chat_model("primary")
    response = invoke_with_retry(llm, [{"role": "system", "content": system_content}, *state["messages"]])
    body = message_text(response)

    if meta["type"] == "code":
        new_content = code_content(meta["title"], strip_fences(body), meta["language"])
    else:
        new_content = text_content(meta["title"], body.strip())

    return {"artifact": append_version(state["artifact"], new_content)}
