"""Turn validation — rejects malformed turns before any model call is made."""

from canvas.artifacts import current_content, locate_excerpt, validate_document
from canvas.errors import ArtifactError, TurnValidationError
from canvas.quick_actions import (
    ARTIFACT_LENGTHS,
    CODE_QUICK_ACTIONS,
    READING_LEVELS,
    TEXT_QUICK_ACTIONS,
    active_directives,
)
from canvas.state import CanvasState


def _require_id(value, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise TurnValidationError(f"{name} must be a non-empty string.")
    return value.strip()


def validate_turn(
    thread_id: str,
    assistant_id: str,
    state: CanvasState,
    user_id: str | None = None,
) -> None:
    """Validate identities, directive exclusivity and directive preconditions.

    Raises TurnValidationError with a user-facing message on the first
    problem found. Nothing is mutated.
    """
    _require_id(thread_id, "thread_id")
    _require_id(assistant_id, "assistant_id")

    directives = active_directives(state)
    if len(directives) > 1:
        raise TurnValidationError(
            f"Only one directive may be set per turn, got: {', '.join(directives)}."
        )

    has_user_message = any(msg.type == "human" for msg in state.get("messages", []))
    if not directives and not has_user_message:
        raise TurnValidationError("A turn needs a user message or a directive.")

    artifact = state.get("artifact")
    content = None
    if artifact:
        try:
            validate_document(artifact)
            content = current_content(artifact)
        except ArtifactError as exc:
            raise TurnValidationError(f"Invalid artifact snapshot: {exc}") from exc

    if not directives:
        return

    directive = directives[0]
    if content is None:
        raise TurnValidationError(f"'{directive}' requires an existing artifact.")

    value = state[directive]

    if directive == "highlighted_code":
        if content["type"] != "code":
            raise TurnValidationError("highlighted_code requires a code artifact.")
        if not isinstance(value, dict) or not value.get("selected_text"):
            raise TurnValidationError("highlighted_code requires selected_text.")
        body = content["code"]
        hint = value.get("start_char_index")
        if hint is not None and (
            not isinstance(hint, int) or isinstance(hint, bool) or not 0 <= hint <= len(body)
        ):
            raise TurnValidationError(
                f"highlighted_code start_char_index must be an integer between 0 and {len(body)}."
            )
        try:
            locate_excerpt(body, value["selected_text"], hint)
        except ArtifactError as exc:
            raise TurnValidationError(str(exc)) from exc

    elif directive == "highlighted_text":
        if content["type"] != "text":
            raise TurnValidationError("highlighted_text requires a text artifact.")
        start = value.get("start_char_index") if isinstance(value, dict) else None
        end = value.get("end_char_index") if isinstance(value, dict) else None
        if not isinstance(start, int) or not isinstance(end, int) or not 0 <= start < end:
            raise TurnValidationError(
                "highlighted_text requires integer start_char_index < end_char_index."
            )
        if end > len(content["full_markdown"]):
            raise TurnValidationError("highlighted_text span is outside the artifact.")

    elif directive in TEXT_QUICK_ACTIONS and content["type"] != "text":
        raise TurnValidationError(f"'{directive}' can only be applied to a text artifact.")

    elif directive in CODE_QUICK_ACTIONS and content["type"] != "code":
        raise TurnValidationError(f"'{directive}' can only be applied to a code artifact.")

    elif directive == "custom_quick_action_id" and not user_id:
        raise TurnValidationError("Custom quick actions require a user_id.")

    if directive in ("language", "port_language") and (not isinstance(value, str) or not value.strip()):
        raise TurnValidationError(f"'{directive}' requires a language name.")
    if directive == "reading_level" and value not in READING_LEVELS:
        raise TurnValidationError(
            f"Unknown reading level '{value}'. Must be one of: {', '.join(READING_LEVELS)}"
        )
    if directive == "artifact_length" and value not in ARTIFACT_LENGTHS:
        raise TurnValidationError(
            f"Unknown artifact length '{value}'. Must be one of: {', '.join(ARTIFACT_LENGTHS)}"
        )
