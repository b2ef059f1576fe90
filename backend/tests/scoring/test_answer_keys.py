"""
Tests for decoding stored correct answers into typed answer keys.
"""
import copy

import pytest

from ieltsmock.core.exceptions import UnscorableQuestion
from ieltsmock.core.scoring.answer_keys import (
    MultiPartAnswerKey,
    SingleAnswerKey,
    decode_answer_key,
)
from ieltsmock.core.scoring.normalizer import UNANSWERED
from ieltsmock.models import QuestionType


class TestSinglePartKeys:
    """Tests for single-part question types."""

    def test_scalar_key(self):
        key = decode_answer_key(QuestionType.FILL_IN_BLANK, " Library ")

        assert isinstance(key, SingleAnswerKey)
        assert key.accepted == ("library",)

    def test_list_key_is_alternatives(self):
        key = decode_answer_key(
            QuestionType.FILL_IN_BLANK, ["Library", "the library", "LIBRARY"]
        )

        assert key.accepted == ("library", "the library")

    def test_multiple_choice_key_reduced_to_letter(self):
        key = decode_answer_key(QuestionType.MULTIPLE_CHOICE, "B) Second option")

        assert key.accepted == ("b",)

    def test_matches(self):
        key = decode_answer_key(QuestionType.TRUE_FALSE_NOT_GIVEN, "NOT GIVEN")

        assert key.matches("not given")
        assert not key.matches("false")
        assert not key.matches(UNANSWERED)

    def test_missing_key_is_unscorable(self):
        with pytest.raises(UnscorableQuestion) as exc_info:
            decode_answer_key(QuestionType.MULTIPLE_CHOICE, None, question_id=7)

        assert exc_info.value.question_id == 7
        assert "missing" in exc_info.value.reason

    @pytest.mark.parametrize("raw", ["", "   ", [], [""]])
    def test_empty_key_is_unscorable(self, raw):
        with pytest.raises(UnscorableQuestion):
            decode_answer_key(QuestionType.FILL_IN_BLANK, raw)

    def test_map_key_is_unscorable(self):
        with pytest.raises(UnscorableQuestion):
            decode_answer_key(QuestionType.MULTIPLE_CHOICE, {"1": "a"})


class TestMultiPartKeys:
    """Tests for multi-part question types."""

    def test_keyed_map(self):
        key = decode_answer_key(
            QuestionType.MATCHING_HEADINGS, {"1": "iv", "2": "II", "3": "vi"}
        )

        assert isinstance(key, MultiPartAnswerKey)
        assert dict(key.parts) == {"1": ("iv",), "2": ("ii",), "3": ("vi",)}
        assert key.total_parts == 3

    def test_nested_map_with_alternatives(self):
        key = decode_answer_key(
            QuestionType.NOTES_COMPLETION,
            {"notes": {"1": "oxygen", "2": ["CO2", "carbon dioxide"]}},
        )

        assert dict(key.parts) == {
            "notes.1": ("oxygen",),
            "notes.2": ("co2", "carbon dioxide"),
        }

    def test_list_key_indexed(self):
        key = decode_answer_key(QuestionType.SUMMARY_COMPLETION, ["river", "bank"])

        assert dict(key.parts) == {"0": ("river",), "1": ("bank",)}

    def test_scalar_key_is_single_part(self):
        key = decode_answer_key(QuestionType.MATCHING, "C")

        assert dict(key.parts) == {"0": ("c",)}

    def test_empty_map_is_unscorable(self):
        with pytest.raises(UnscorableQuestion, match="no parts"):
            decode_answer_key(QuestionType.MATCHING, {})

    def test_empty_part_is_unscorable(self):
        with pytest.raises(UnscorableQuestion, match="part '2'"):
            decode_answer_key(QuestionType.MATCHING, {"1": "a", "2": "  "})

    def test_stored_value_not_mutated(self):
        raw = {"notes": {"1": " Oxygen ", "2": ["CO2"]}}
        snapshot = copy.deepcopy(raw)

        decode_answer_key(QuestionType.NOTES_COMPLETION, raw)

        assert raw == snapshot
