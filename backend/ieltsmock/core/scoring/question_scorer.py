"""
Per-question scoring.

Single-part questions (multiple choice, fill in the blank, true/false/not
given) are binary: full points on a match, nothing otherwise. Multi-part
questions (matching, matching headings, notes and summary completion) earn
fractional credit:

    earned = (correct parts / parts in the key) * points

The denominator always comes from the answer key, so a student who answers
nothing still has a well-defined score. A question whose key cannot be
decoded is unscorable: it contributes zero earned points out of its full
points and is logged, never raised.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ieltsmock.core.exceptions import UnscorableQuestion
from ieltsmock.core.scoring.answer_keys import (
    AnswerKey,
    MultiPartAnswerKey,
    SingleAnswerKey,
    decode_answer_key,
)
from ieltsmock.core.scoring.normalizer import (
    UNANSWERED,
    normalize_parts,
    normalize_scalar,
)
from ieltsmock.models.models import Question, QuestionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionScore:
    """Points earned on one question out of its maximum."""

    earned: float
    max: int

    @property
    def is_full_credit(self) -> bool:
        return self.max > 0 and self.earned >= self.max


@dataclass(frozen=True)
class ScorableQuestion:
    """
    A question decoded at the storage boundary.

    `answer_key` is None when the stored correct answer could not be decoded;
    `unscorable_reason` then says why.
    """

    id: Any
    question_type: QuestionType
    points: int
    answer_key: Optional[AnswerKey]
    unscorable_reason: Optional[str] = None
    part: int = 1  # Listening part or Reading passage

    @classmethod
    def build(
        cls,
        question_id: Any,
        question_type: QuestionType,
        correct_answer: Any,
        points: int = 1,
        part: int = 1,
    ) -> "ScorableQuestion":
        """Decode a raw correct answer, recording rather than raising failures."""
        question_type = QuestionType(question_type)
        try:
            key: Optional[AnswerKey] = decode_answer_key(
                question_type, correct_answer, question_id=question_id
            )
            reason = None
        except UnscorableQuestion as e:
            key = None
            reason = e.reason
        return cls(
            id=question_id,
            question_type=question_type,
            points=points,
            answer_key=key,
            unscorable_reason=reason,
            part=part,
        )

    @classmethod
    def from_model(cls, question: Question) -> "ScorableQuestion":
        return cls.build(
            question_id=question.id,
            question_type=question.question_type,
            correct_answer=question.correct_answer,
            points=question.points or 1,
            part=question.part or 1,
        )


def _score_single(key: SingleAnswerKey, raw: Any, question: ScorableQuestion) -> float:
    normalized = normalize_scalar(raw, question.question_type)
    return float(question.points) if key.matches(normalized) else 0.0


def _score_multi_part(
    key: MultiPartAnswerKey, raw: Any, question: ScorableQuestion
) -> float:
    answered = normalize_parts(raw, question.question_type)
    correct_parts = 0
    for part_id, accepted in key.parts.items():
        given = answered.get(part_id, UNANSWERED)
        if given is not UNANSWERED and given in accepted:
            correct_parts += 1
    return correct_parts / key.total_parts * question.points


def score_question(question: ScorableQuestion, student_answer: Any) -> QuestionScore:
    """
    Score one question.

    Args:
        question: The decoded question
        student_answer: The raw answer submitted for it (None if unanswered)

    Returns:
        QuestionScore with `max` always equal to the question's points
    """
    key = question.answer_key
    if key is None:
        logger.warning(
            f"Question {question.id} is unscorable ({question.unscorable_reason}); "
            "awarding zero credit"
        )
        return QuestionScore(earned=0.0, max=question.points)

    if isinstance(key, SingleAnswerKey):
        earned = _score_single(key, student_answer, question)
    elif isinstance(key, MultiPartAnswerKey):
        earned = _score_multi_part(key, student_answer, question)
    else:  # pragma: no cover - AnswerKey is a closed union
        raise TypeError(f"Unsupported answer key type: {type(key).__name__}")

    return QuestionScore(earned=earned, max=question.points)
