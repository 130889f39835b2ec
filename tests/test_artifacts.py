"""Tests for canvas.artifacts: versioning, lookup, rewind and span splicing."""

import pytest

from canvas.artifacts import (
    append_version,
    code_content,
    content_body,
    current_content,
    get_version,
    locate_excerpt,
    new_document,
    rewind,
    splice,
    text_content,
    validate_document,
    with_body,
)
from canvas.errors import ArtifactError


class TestAppendVersion:
    def test_first_version_gets_index_one(self):
        document = append_version(None, text_content("Title", "body"))
        assert document["current_index"] == 1
        assert [c["index"] for c in document["contents"]] == [1]

    def test_index_is_max_plus_one_and_becomes_current(self, text_document):
        result = append_version(text_document, text_content("Rain", "new"))
        assert result["current_index"] == 4
        assert result["contents"][-1]["index"] == 4
        assert content_body(current_content(result)) == "new"

    def test_input_document_not_mutated(self, text_document):
        before = [dict(c) for c in text_document["contents"]]
        append_version(text_document, text_content("Rain", "new"))
        assert text_document["contents"] == before
        assert text_document["current_index"] == 3

    def test_contents_never_shortened(self, text_document):
        result = append_version(text_document, text_content("Rain", "x"))
        assert len(result["contents"]) == len(text_document["contents"]) + 1

    def test_variant_switch_creates_new_version(self, text_document):
        result = append_version(text_document, code_content("Rain", "print('rain')", "python"))
        assert current_content(result)["type"] == "code"
        assert get_version(result, 3)["type"] == "text"


class TestRewind:
    def test_rewind_changes_only_current_index(self, text_document):
        result = rewind(text_document, 1)
        assert result["current_index"] == 1
        assert result["contents"] == text_document["contents"]

    def test_rewind_then_append_allocates_next_highest(self, text_document):
        original_first = dict(get_version(text_document, 1))
        rewound = rewind(text_document, 1)
        result = append_version(rewound, text_content("Rain", "edited from v1"))

        assert result["current_index"] == 4
        assert [c["index"] for c in result["contents"]] == [1, 2, 3, 4]
        assert get_version(result, 1) == original_first

    def test_rewind_to_missing_index_raises(self, text_document):
        with pytest.raises(ArtifactError):
            rewind(text_document, 9)


class TestCurrentContent:
    def test_returns_current_version(self, text_document):
        assert current_content(text_document)["index"] == 3

    def test_dangling_current_index_raises(self, text_document):
        broken = {**text_document, "current_index": 42}
        with pytest.raises(ArtifactError):
            current_content(broken)


class TestContentBody:
    def test_text_body(self):
        assert content_body(text_content("t", "hello")) == "hello"

    def test_code_body(self):
        assert content_body(code_content("t", "x = 1", "python")) == "x = 1"

    def test_unknown_tag_fails_closed(self):
        with pytest.raises(ArtifactError):
            content_body({"index": 1, "type": "image", "title": "t"})

    def test_with_body_keeps_variant_metadata(self):
        result = with_body(code_content("Adder", "old", "rust"), "new")
        assert result["type"] == "code"
        assert result["language"] == "rust"
        assert result["title"] == "Adder"
        assert result["code"] == "new"


class TestValidateDocument:
    def test_valid_document_passes(self, text_document):
        validate_document(text_document)

    def test_empty_contents_rejected(self):
        with pytest.raises(ArtifactError):
            validate_document({"current_index": 1, "contents": []})

    def test_duplicate_indices_rejected(self):
        first = {**text_content("t", "a"), "index": 1}
        with pytest.raises(ArtifactError):
            validate_document({"current_index": 1, "contents": [first, dict(first)]})

    def test_unsorted_indices_rejected(self):
        a = {**text_content("t", "a"), "index": 2}
        b = {**text_content("t", "b"), "index": 1}
        with pytest.raises(ArtifactError):
            validate_document({"current_index": 1, "contents": [a, b]})

    def test_current_index_out_of_range_rejected(self):
        document = new_document(text_content("t", "a"))
        document["current_index"] = 5
        with pytest.raises(ArtifactError):
            validate_document(document)


class TestSplice:
    def test_replaces_only_the_span(self):
        assert splice("ABCDEF", 2, 4, "XY") == "ABXYEF"

    def test_replacement_can_change_length(self):
        assert splice("ABCDEF", 2, 4, "") == "ABEF"

    def test_span_outside_body_raises(self):
        with pytest.raises(ArtifactError):
            splice("ABC", 1, 10, "x")


class TestLocateExcerpt:
    def test_first_occurrence(self):
        assert locate_excerpt("abcabc", "bc") == (1, 3)

    def test_start_hint_disambiguates(self):
        assert locate_excerpt("abcabc", "bc", start_hint=4) == (4, 6)

    def test_wrong_hint_falls_back_to_search(self):
        assert locate_excerpt("abcabc", "bc", start_hint=0) == (1, 3)

    def test_missing_excerpt_raises(self):
        with pytest.raises(ArtifactError):
            locate_excerpt("abc", "zz")

    def test_unusable_hints_fall_back_to_search(self):
        assert locate_excerpt("bcbc", "bc", start_hint=-4) == (0, 2)
        assert locate_excerpt("abcabc", "bc", start_hint="4") == (1, 3)
        assert locate_excerpt("abcabc", "bc", start_hint=True) == (1, 3)
