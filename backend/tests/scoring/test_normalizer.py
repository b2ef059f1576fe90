"""
Tests for student answer normalization.
"""
import copy

import pytest

from ieltsmock.core.scoring.normalizer import (
    UNANSWERED,
    canonical_text,
    flatten_parts,
    is_multi_part,
    normalize_answer,
)
from ieltsmock.models import QuestionType


class TestCanonicalText:
    """Tests for canonical_text."""

    def test_trims_and_lowercases(self):
        assert canonical_text("  The Library ") == "the library"

    @pytest.mark.parametrize("value", [None, "", "   ", {}, [], {"a": 1}])
    def test_empty_or_non_scalar_is_unanswered(self, value):
        assert canonical_text(value) is UNANSWERED

    def test_numbers_are_stringified(self):
        assert canonical_text(1998) == "1998"

    def test_booleans_become_words(self):
        assert canonical_text(True) == "true"
        assert canonical_text(False) == "false"


class TestSinglePartNormalization:
    """Tests for normalize_answer on single-part question types."""

    def test_fill_in_blank(self):
        result = normalize_answer("  Photosynthesis ", QuestionType.FILL_IN_BLANK)
        assert result == "photosynthesis"

    def test_multiple_choice_letter_extracted(self):
        result = normalize_answer("B) The second option", QuestionType.MULTIPLE_CHOICE)
        assert result == "b"

    def test_multiple_choice_plain_letter(self):
        assert normalize_answer("C", QuestionType.MULTIPLE_CHOICE) == "c"

    def test_letter_extraction_only_for_multiple_choice(self):
        result = normalize_answer("a) not an option", QuestionType.FILL_IN_BLANK)
        assert result == "a) not an option"

    def test_letter_outside_range_not_extracted(self):
        result = normalize_answer("E) Fifth", QuestionType.MULTIPLE_CHOICE)
        assert result == "e) fifth"

    def test_wrapped_answer_unwrapped(self):
        result = normalize_answer({"answer": "NOT GIVEN"}, QuestionType.TRUE_FALSE_NOT_GIVEN)
        assert result == "not given"

    def test_single_element_list_unwrapped(self):
        assert normalize_answer(["True"], QuestionType.TRUE_FALSE_NOT_GIVEN) == "true"

    def test_multi_element_list_is_unanswered(self):
        result = normalize_answer(["a", "b"], QuestionType.MULTIPLE_CHOICE)
        assert result is UNANSWERED

    def test_unrecognized_map_is_unanswered(self):
        result = normalize_answer({"choice": "a"}, QuestionType.MULTIPLE_CHOICE)
        assert result is UNANSWERED

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing_answer_is_unanswered(self, raw):
        assert normalize_answer(raw, QuestionType.FILL_IN_BLANK) is UNANSWERED


class TestMultiPartNormalization:
    """Tests for normalize_answer on multi-part question types."""

    def test_keyed_map(self):
        result = normalize_answer(
            {"1": " iv ", "2": "II", "3": None}, QuestionType.MATCHING_HEADINGS
        )
        assert result == {"1": "iv", "2": "ii", "3": UNANSWERED}

    def test_nested_map_flattened_with_dotted_ids(self):
        result = normalize_answer(
            {"notes": {"1": "Oxygen", "2": "Carbon"}, "3": "Water"},
            QuestionType.NOTES_COMPLETION,
        )
        assert result == {"notes.1": "oxygen", "notes.2": "carbon", "3": "water"}

    def test_list_indexed_from_zero(self):
        result = normalize_answer(["A", "C"], QuestionType.MATCHING)
        assert result == {"0": "a", "1": "c"}

    def test_scalar_becomes_single_part(self):
        assert normalize_answer("B", QuestionType.MATCHING) == {"0": "b"}

    def test_none_is_empty_map(self):
        assert normalize_answer(None, QuestionType.SUMMARY_COMPLETION) == {}

    def test_input_not_mutated(self):
        raw = {"notes": {"1": " Oxygen "}, "2": ["x"]}
        snapshot = copy.deepcopy(raw)

        normalize_answer(raw, QuestionType.NOTES_COMPLETION)

        assert raw == snapshot


class TestHelpers:
    """Tests for flatten_parts and is_multi_part."""

    def test_flatten_parts_deeply_nested(self):
        assert flatten_parts({"a": {"b": {"c": 1}}}) == {"a.b.c": 1}

    @pytest.mark.parametrize(
        "question_type,expected",
        [
            (QuestionType.MULTIPLE_CHOICE, False),
            (QuestionType.FILL_IN_BLANK, False),
            (QuestionType.TRUE_FALSE_NOT_GIVEN, False),
            (QuestionType.MATCHING, True),
            (QuestionType.MATCHING_HEADINGS, True),
            (QuestionType.NOTES_COMPLETION, True),
            (QuestionType.SUMMARY_COMPLETION, True),
        ],
    )
    def test_is_multi_part(self, question_type, expected):
        assert is_multi_part(question_type) is expected

    def test_accepts_string_question_type(self):
        assert normalize_answer("B) x", "MULTIPLE_CHOICE") == "b"
