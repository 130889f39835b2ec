"""Tests for canvas.utils.validator.validate_turn."""

import pytest
from langchain_core.messages import HumanMessage

from canvas.artifacts import code_content, new_document
from canvas.errors import TurnValidationError
from canvas.utils.validator import validate_turn


def _turn(artifact=None, messages=None, **directives):
    return {
        "messages": messages if messages is not None else [HumanMessage(content="hi")],
        "artifact": artifact,
        **directives,
    }


class TestIdentity:
    def test_valid_turn_passes(self):
        validate_turn("t1", "a1", _turn())

    def test_missing_thread_id_raises(self):
        with pytest.raises(TurnValidationError):
            validate_turn("", "a1", _turn())

    def test_missing_assistant_id_raises(self):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", None, _turn())

    def test_validation_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_turn("t1", "  ", _turn())


class TestDirectiveExclusivity:
    def test_two_directives_rejected(self, code_document):
        with pytest.raises(TurnValidationError, match="add_comments, fix_bugs"):
            validate_turn("t1", "a1", _turn(code_document, add_comments=True, fix_bugs=True))

    def test_false_directive_does_not_count(self, code_document):
        validate_turn("t1", "a1", _turn(code_document, add_comments=True, fix_bugs=False))

    def test_highlight_plus_quick_action_rejected(self, text_document):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(
                text_document,
                highlighted_text={"start_char_index": 0, "end_char_index": 2},
                language="french",
            ))


class TestDirectivePreconditions:
    def test_quick_action_without_artifact_rejected(self):
        with pytest.raises(TurnValidationError, match="requires an existing artifact"):
            validate_turn("t1", "a1", _turn(None, reading_level="child"))

    def test_no_message_and_no_directive_rejected(self):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(messages=[]))

    def test_directive_without_new_message_allowed(self, text_document):
        validate_turn("t1", "a1", _turn(text_document, messages=[], reading_level="college"))

    def test_text_action_on_code_rejected(self, code_document):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(code_document, reading_level="child"))

    def test_code_action_on_text_rejected(self, text_document):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(text_document, add_logs=True))

    def test_unknown_reading_level_rejected(self, text_document):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(text_document, reading_level="toddler"))

    def test_unknown_artifact_length_rejected(self, text_document):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(text_document, artifact_length="huge"))

    def test_highlighted_text_span_checked(self, text_document):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(
                text_document, highlighted_text={"start_char_index": 4, "end_char_index": 2}
            ))

    def test_highlighted_text_beyond_body_rejected(self, text_document):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(
                text_document, highlighted_text={"start_char_index": 0, "end_char_index": 99}
            ))

    def test_highlighted_code_requires_excerpt(self, code_document):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(code_document, highlighted_code={"selected_text": ""}))

    def test_custom_action_requires_user_id(self, text_document):
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(text_document, custom_quick_action_id="abc"))

    def test_custom_action_with_user_id_passes(self, text_document):
        validate_turn("t1", "a1", _turn(text_document, custom_quick_action_id="abc"), user_id="u1")

    def test_broken_artifact_snapshot_rejected(self, text_document):
        broken = {**text_document, "current_index": 99}
        with pytest.raises(TurnValidationError):
            validate_turn("t1", "a1", _turn(broken))


class TestHighlightedCode:
    def test_valid_hint_passes(self, code_document):
        validate_turn("t1", "a1", _turn(
            code_document, highlighted_code={"selected_text": "a - b", "start_char_index": 26}
        ))

    def test_string_hint_rejected(self, code_document):
        with pytest.raises(TurnValidationError, match="start_char_index"):
            validate_turn("t1", "a1", _turn(
                code_document, highlighted_code={"selected_text": "a - b", "start_char_index": "19"}
            ))

    def test_bool_hint_rejected(self, code_document):
        with pytest.raises(TurnValidationError, match="start_char_index"):
            validate_turn("t1", "a1", _turn(
                code_document, highlighted_code={"selected_text": "a - b", "start_char_index": True}
            ))

    def test_negative_hint_rejected(self):
        document = new_document(code_content("Pairs", "bcbc", "other"))
        with pytest.raises(TurnValidationError, match="start_char_index"):
            validate_turn("t1", "a1", _turn(
                document, highlighted_code={"selected_text": "bc", "start_char_index": -4}
            ))

    def test_hint_past_end_rejected(self, code_document):
        with pytest.raises(TurnValidationError, match="start_char_index"):
            validate_turn("t1", "a1", _turn(
                code_document, highlighted_code={"selected_text": "a - b", "start_char_index": 500}
            ))

    def test_excerpt_missing_from_code_rejected(self, code_document):
        with pytest.raises(TurnValidationError, match="not found"):
            validate_turn("t1", "a1", _turn(
                code_document, highlighted_code={"selected_text": "a * b"}
            ))


class TestLanguageValues:
    def test_language_name_passes(self, text_document):
        validate_turn("t1", "a1", _turn(text_document, language="french"))

    def test_flag_port_language_rejected(self, code_document):
        with pytest.raises(TurnValidationError, match="requires a language name"):
            validate_turn("t1", "a1", _turn(code_document, port_language=True))

    def test_blank_language_rejected(self, text_document):
        with pytest.raises(TurnValidationError, match="requires a language name"):
            validate_turn("t1", "a1", _turn(text_document, language="  "))
