"""Canvas State — the shared record threaded through the graph for one turn."""

from typing import Annotated, Literal, NotRequired, TypedDict, Union

from langchain_core.messages import BaseMessage
from langgraph.graph.message import add_messages


class ArtifactText(TypedDict):
    index: int  # 1-based, unique within the document.
    type: Literal["text"]
    title: str
    full_markdown: str


class ArtifactCode(TypedDict):
    index: int
    type: Literal["code"]
    title: str
    code: str
    language: str  # Free-text label, e.g. "python".


ArtifactContent = Union[ArtifactText, ArtifactCode]


class ArtifactDocument(TypedDict):
    current_index: int  # Always the index of some element of contents.
    contents: list[ArtifactContent]  # Append-only, ascending by index.


class Reflections(TypedDict):
    style_rules: list[str]
    content: list[str]  # Facts about the user.


class HighlightedCode(TypedDict):
    selected_text: str
    start_char_index: NotRequired[int]
    end_char_index: NotRequired[int]


class HighlightedText(TypedDict):
    start_char_index: int
    end_char_index: int  # Exclusive.
    selected_text: NotRequired[str]


class CustomQuickAction(TypedDict):
    id: str
    title: str
    prompt: str
    include_reflections: bool
    include_prefix: bool
    include_recent_history: bool


class CanvasState(TypedDict, total=False):
    messages: Annotated[list[BaseMessage], add_messages]
    artifact: ArtifactDocument | None
    # Directives. At most one is set per turn.
    highlighted_code: HighlightedCode | None
    highlighted_text: HighlightedText | None
    language: str | None
    artifact_length: str | None
    reading_level: str | None
    regenerate_with_emojis: bool | None
    add_comments: bool | None
    add_logs: bool | None
    fix_bugs: bool | None
    port_language: str | None
    custom_quick_action_id: str | None
    next: str | None  # Node chosen by the route step. Cleared every turn.


DIRECTIVE_FIELDS = (
    "highlighted_code",
    "highlighted_text",
    "language",
    "artifact_length",
    "reading_level",
    "regenerate_with_emojis",
    "add_comments",
    "add_logs",
    "fix_bugs",
    "port_language",
    "custom_quick_action_id",
)
