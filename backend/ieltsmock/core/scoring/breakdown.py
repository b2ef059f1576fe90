"""
Detailed scoring: the module total split by part and by question type.

Each slice is scored with the same per-question rules as the module total
and converted to a band-equivalent with the converter the module itself
uses, so a slice reads as "the band this performance would earn over a
whole test". Parts are reported in ascending order; question types in
`QuestionType` declaration order. Parts and types with no questions are
omitted.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

from ieltsmock.core.config import settings
from ieltsmock.core.scoring.bands import band_from_raw_score
from ieltsmock.core.scoring.module_scorer import ModuleScoreResult, summarize_scores
from ieltsmock.core.scoring.question_scorer import (
    QuestionScore,
    ScorableQuestion,
    score_question,
)
from ieltsmock.models.models import QuestionType

BandConverter = Callable[[ModuleScoreResult], float]


def default_band_converter(score: ModuleScoreResult) -> float:
    """Band from the default Listening/Reading table over the standard scale."""
    return band_from_raw_score(score.scaled_score(settings.BAND_TABLE_SCALE))


@dataclass(frozen=True)
class SliceScore:
    """Score and band-equivalent of a subset of a module's questions."""

    score: ModuleScoreResult
    band: float


@dataclass(frozen=True)
class ModuleBreakdown:
    overall: SliceScore
    parts: dict[int, SliceScore]
    question_types: dict[QuestionType, SliceScore]


def score_module_breakdown(
    questions: Iterable[ScorableQuestion],
    student_answers: Mapping[str, Any],
    to_band: Optional[BandConverter] = None,
) -> ModuleBreakdown:
    """
    Score a module and break the result down by part and question type.

    Args:
        questions: Decoded questions of the test
        student_answers: Answers keyed by question id (as a string)
        to_band: Converts a slice score to a band (default table when None)

    Returns:
        ModuleBreakdown whose overall entry equals `score_module` on the
        same input
    """
    convert = to_band or default_band_converter
    answers = student_answers or {}

    scored: list[tuple[ScorableQuestion, QuestionScore]] = [
        (question, score_question(question, answers.get(str(question.id))))
        for question in questions
    ]

    def _slice(scores: Iterable[QuestionScore]) -> SliceScore:
        total = summarize_scores(scores)
        return SliceScore(score=total, band=convert(total))

    parts = {
        part: _slice(s for q, s in scored if q.part == part)
        for part in sorted({q.part for q, _ in scored})
    }
    present_types = {q.question_type for q, _ in scored}
    question_types = {
        question_type: _slice(s for q, s in scored if q.question_type == question_type)
        for question_type in QuestionType
        if question_type in present_types
    }

    return ModuleBreakdown(
        overall=_slice(s for _, s in scored),
        parts=parts,
        question_types=question_types,
    )
