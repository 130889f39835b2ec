"""Prompt formatting — renders conversation history and artifact snapshots as text."""

from langchain_core.messages import BaseMessage

from canvas.artifacts import content_body, current_content
from canvas.state import ArtifactContent, ArtifactDocument
from canvas.utils.parsing import message_text


def format_messages(messages: list[BaseMessage]) -> str:
    """Render messages as <type>...</type> blocks separated by blank lines."""
    blocks = []
    for msg in messages:
        kind = msg.type
        blocks.append(f"<{kind}>\n{message_text(msg)}\n</{kind}>")
    return "\n\n".join(blocks)


def recent_messages(messages: list[BaseMessage], count: int) -> list[BaseMessage]:
    """Return the last `count` messages (all of them when count <= 0)."""
    if count <= 0:
        return list(messages)
    return list(messages[-count:])


def latest_user_message(messages: list[BaseMessage]) -> str:
    """Return the text of the most recent human message, or an empty string."""
    for msg in reversed(messages):
        if msg.type == "human":
            return message_text(msg)
    return ""


def format_artifact(content: ArtifactContent, max_chars: int | None = None) -> str:
    """Render an artifact version for a prompt.

    When max_chars is given only that many characters of the body are
    included.
    """
    body = content_body(content)
    if max_chars is not None:
        body = body[:max_chars]

    lines = [f"Title: {content['title']}", f"Artifact type: {content['type']}"]
    if content["type"] == "code":
        lines.append(f"Language: {content['language']}")
    lines.append("")
    lines.append(body)
    return "\n".join(lines)


def render_artifact(document: ArtifactDocument) -> str:
    """Render the current version of a document for terminal display."""
    content = current_content(document)
    total = len(document["contents"])

    lines = [f"# {content['title']}", ""]
    lines.append(f"_Version {content['index']} of {total} ({content['type']})_")
    lines.append("")
    if content["type"] == "code":
        lines.append(f"```{content['language']}")
        lines.append(content["code"])
        lines.append("```")
    else:
        lines.append(content_body(content))
    return "\n".join(lines)
