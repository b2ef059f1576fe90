"""
Module-level scoring: sums per-question credit across a whole test.

`total_questions` is the point-weighted maximum, not a count of questions,
so multi-point questions weigh accordingly. For the fixed 40-item
Listening/Reading band tables the raw score is rescaled with
`scaled_score(40)` before lookup.

Everything here is pure: no I/O, no shared state, identical output for
identical input.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from ieltsmock.core.scoring.question_scorer import (
    QuestionScore,
    ScorableQuestion,
    score_question,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (never to even)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class ModuleScoreResult:
    """Aggregate score for one module attempt."""

    correct_count: int  # questions that earned full credit
    total_questions: int  # sum of question points
    raw_score: float  # sum of earned points

    @property
    def fraction(self) -> float:
        """Earned share of available points, 0.0 when nothing is scorable."""
        if self.total_questions <= 0:
            return 0.0
        return self.raw_score / self.total_questions

    @property
    def percentage(self) -> float:
        return self.fraction * 100

    def scaled_score(self, scale: int) -> int:
        """
        Rescale the raw score onto a fixed item scale.

        Args:
            scale: Item count the target band table is defined against (40)

        Returns:
            round_half_up(raw_score / total_questions * scale), or 0 when the
            module has no points
        """
        if self.total_questions <= 0:
            return 0
        return round_half_up(self.fraction * scale)


def score_module(
    questions: Iterable[ScorableQuestion],
    student_answers: Mapping[str, Any],
) -> ModuleScoreResult:
    """
    Score every question of a module against the student's answers.

    Args:
        questions: Decoded questions of the test
        student_answers: Answers keyed by question id (as a string)

    Returns:
        ModuleScoreResult with point-weighted totals
    """
    answers = student_answers or {}
    return summarize_scores(
        score_question(question, answers.get(str(question.id)))
        for question in questions
    )


def summarize_scores(scores: Iterable[QuestionScore]) -> ModuleScoreResult:
    """Total a set of per-question scores."""
    correct_count = 0
    total_points = 0
    earned_points = 0.0

    for result in scores:
        earned_points += result.earned
        total_points += result.max
        if result.is_full_credit:
            correct_count += 1

    return ModuleScoreResult(
        correct_count=correct_count,
        total_questions=total_points,
        raw_score=earned_points,
    )
