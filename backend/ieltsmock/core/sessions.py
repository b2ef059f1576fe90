"""
Test-session lifecycle.

A session moves NOT_STARTED -> IN_PROGRESS -> COMPLETED and never back.
Sessions are keyed by (student_id, test_id, test_type, item_wise_test_id);
the database enforces one row per key with a unique constraint, so retakes
are rejected rather than recorded.

Race handling:
- Creation flushes the new row and, on IntegrityError, rolls back and
  re-reads the row the concurrent request created.
- Completion is a conditional UPDATE ... WHERE is_completed = false. When two
  completions race, the first to commit wins and the other sees zero updated
  rows and gets RetakeNotAllowed.

Writing and Speaking are submitted without a band; an instructor sets it
later through `grade`. After every band-affecting write the assignment's
Result is re-materialized on a best-effort basis.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ieltsmock.core.config import settings
from ieltsmock.core.datetime_utils import Clock, utc_now
from ieltsmock.core.exceptions import (
    AssignmentConflict,
    AssignmentNotFound,
    BreakdownUnavailable,
    ExamNotFound,
    InvalidBandScore,
    RetakeNotAllowed,
    SessionNotFound,
    SessionNotGradable,
    SessionNotInProgress,
)
from ieltsmock.core.results import materialize_result_safely
from ieltsmock.core.scoring import (
    BandConverter,
    BandThresholdTable,
    ModuleBreakdown,
    ScorableQuestion,
    band_from_percentage,
    band_from_raw_score,
    score_module,
    score_module_breakdown,
    table_from_models,
    validate_band,
    writing_band_from_criteria,
    writing_band_from_tasks,
)
from ieltsmock.models import (
    Assignment,
    AssignmentStatus,
    Exam,
    ModuleType,
    Result,
    ScoringMode,
    TestSession,
)
from ieltsmock.observability import metrics

logger = logging.getLogger(__name__)

MANUALLY_GRADED_MODULES = frozenset({ModuleType.WRITING, ModuleType.SPEAKING})

CRITERIA_FIELDS = (
    "task_achievement",
    "coherence_cohesion",
    "lexical_resource",
    "grammar_accuracy",
)


@dataclass(frozen=True)
class SessionKey:
    """Natural key of a test session."""

    student_id: str
    test_id: int
    test_type: ModuleType
    item_wise_test_id: Optional[str] = None

    @property
    def stored_item_wise_test_id(self) -> str:
        # Stored as "" when absent so the unique constraint covers it
        return self.item_wise_test_id or ""

    def log_extra(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "test_type": ModuleType(self.test_type).value,
        }


@dataclass
class CompletionOutcome:
    """A session write plus the best-effort result materialization after it."""

    session: TestSession
    result: Optional[Result] = None
    warnings: list[str] = field(default_factory=list)


class TestSessionService:
    """Start, save, complete and grade test sessions."""

    __test__ = False  # not a pytest test class

    def __init__(self, db: Session, clock: Clock = utc_now):
        self.db = db
        self.clock = clock

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, key: SessionKey) -> Optional[TestSession]:
        """Session for a key, or None if it was never started."""
        return (
            self.db.query(TestSession)
            .filter(
                TestSession.student_id == key.student_id,
                TestSession.test_id == key.test_id,
                TestSession.test_type == ModuleType(key.test_type),
                TestSession.item_wise_test_id == key.stored_item_wise_test_id,
            )
            .first()
        )

    def get_by_id(self, session_id: int) -> TestSession:
        session = self.db.query(TestSession).filter(TestSession.id == session_id).first()
        if session is None:
            raise SessionNotFound(
                f"Test session {session_id} not found", session_id=session_id
            )
        return session

    def _load_exam(self, key: SessionKey) -> Exam:
        exam = (
            self.db.query(Exam)
            .filter(Exam.id == key.test_id, Exam.is_active.is_(True))
            .first()
        )
        if exam is None or exam.module != ModuleType(key.test_type):
            raise ExamNotFound(
                f"No active {ModuleType(key.test_type).value} exam with id "
                f"{key.test_id}",
                test_id=key.test_id,
            )
        return exam

    def _check_assignment(self, key: SessionKey, assignment_id: Optional[int]) -> None:
        if assignment_id is None:
            return
        assignment = (
            self.db.query(Assignment).filter(Assignment.id == assignment_id).first()
        )
        if assignment is None or assignment.student_id != key.student_id:
            raise AssignmentNotFound(
                f"Assignment {assignment_id} not found for student {key.student_id}",
                assignment_id=assignment_id,
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _get_or_create(
        self, key: SessionKey, assignment_id: Optional[int]
    ) -> tuple[TestSession, bool]:
        """
        Find the session for a key or insert it.

        Returns:
            Tuple of (session, created). A created session is flushed but not
            committed.
        """
        existing = self.get(key)
        if existing is not None:
            return existing, False

        session = TestSession(
            student_id=key.student_id,
            test_id=key.test_id,
            test_type=ModuleType(key.test_type),
            item_wise_test_id=key.stored_item_wise_test_id,
            assignment_id=assignment_id,
            started_at=self.clock(),
            is_completed=False,
            answers={},
        )
        self.db.add(session)

        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            existing = self.get(key)
            if existing is None:
                raise
            logger.info(
                f"Session for student {key.student_id} on test {key.test_id} "
                "was created concurrently; reusing it",
                extra={**key.log_extra(), "session_id": existing.id},
            )
            return existing, False

        return session, True

    def _check_link(self, session: TestSession, assignment_id: Optional[int]) -> None:
        # A session belongs to at most one assignment; the first link is kept
        if (
            assignment_id is not None
            and session.assignment_id is not None
            and session.assignment_id != assignment_id
        ):
            metrics.record_error("AssignmentConflict")
            raise AssignmentConflict(session.id, session.assignment_id, assignment_id)

    def _mark_assignment_started(self, assignment_id: Optional[int]) -> None:
        if assignment_id is None:
            return
        assignment = self.db.get(Assignment, assignment_id)
        if assignment is not None and assignment.status == AssignmentStatus.PENDING:
            assignment.status = AssignmentStatus.IN_PROGRESS

    def start(self, key: SessionKey, assignment_id: Optional[int] = None) -> TestSession:
        """
        Start a session, or return the in-progress one for the key unchanged.

        Raises:
            ExamNotFound: If the exam is unknown, inactive or of another module
            AssignmentNotFound: If the assignment is not the student's
            RetakeNotAllowed: If the key's session is already completed
            AssignmentConflict: If the session belongs to another assignment
        """
        self._load_exam(key)
        self._check_assignment(key, assignment_id)

        session, created = self._get_or_create(key, assignment_id)
        if session.is_completed:
            metrics.record_error("RetakeNotAllowed")
            raise RetakeNotAllowed(session.id)
        self._check_link(session, assignment_id)
        if not created:
            return session

        self._mark_assignment_started(assignment_id)
        self.db.commit()
        self.db.refresh(session)

        logger.info(
            f"Started {session.test_type.value} session {session.id} for "
            f"student {key.student_id}",
            extra={**key.log_extra(), "session_id": session.id},
        )
        metrics.record_session_started(session.test_type.value)
        return session

    def save_progress(self, key: SessionKey, answers: Mapping[str, Any]) -> TestSession:
        """
        Overwrite the answers of an in-progress session.

        Raises:
            SessionNotFound: If the key has no session
            SessionNotInProgress: If the session is already completed
        """
        session = self.get(key)
        if session is None:
            raise SessionNotFound(
                f"No session for student {key.student_id} on test {key.test_id}",
                test_id=key.test_id,
            )
        if session.is_completed:
            raise SessionNotInProgress(session.id)

        updated = self.db.execute(
            update(TestSession)
            .where(TestSession.id == session.id, TestSession.is_completed.is_(False))
            .values(answers=dict(answers), updated_at=self.clock())
            .execution_options(synchronize_session=False)
        ).rowcount
        if updated == 0:
            self.db.rollback()
            raise SessionNotInProgress(session.id)

        self.db.commit()
        self.db.refresh(session)
        return session

    def _band_table(self, exam: Exam) -> tuple[Optional[BandThresholdTable], int]:
        """The exam's band table (None for the default) and its item scale."""
        table = table_from_models(exam.band_thresholds)
        scale = exam.total_items if table is not None else settings.BAND_TABLE_SCALE
        return table, scale

    def _band_converter(self, exam: Exam) -> BandConverter:
        if exam.scoring_mode == ScoringMode.PERCENTAGE:
            return lambda score: band_from_percentage(score.percentage)
        table, scale = self._band_table(exam)
        return lambda score: band_from_raw_score(score.scaled_score(scale), table)

    def _score(
        self, exam: Exam, answers: Mapping[str, Any]
    ) -> tuple[Optional[float], Optional[float]]:
        """Score and band for a submission, both None for manual grading."""
        if exam.scoring_mode == ScoringMode.MANUAL:
            return None, None

        questions = [ScorableQuestion.from_model(q) for q in exam.questions]
        if not questions:
            logger.warning(f"Exam {exam.id} has no questions; scoring as zero")
        module_score = score_module(questions, answers)
        band = self._band_converter(exam)(module_score)

        if exam.scoring_mode == ScoringMode.PERCENTAGE:
            return module_score.percentage, band
        _, scale = self._band_table(exam)
        return float(module_score.scaled_score(scale)), band

    def breakdown(self, session_id: int) -> tuple[TestSession, ModuleBreakdown]:
        """
        Per-part and per-question-type scores of a completed session.

        The breakdown is recomputed from the stored answers with the same
        rules and band conversion as the submission itself.

        Raises:
            SessionNotFound: If the session does not exist
            BreakdownUnavailable: If the session is in progress or its exam is
                manually graded
        """
        session = self.get_by_id(session_id)
        exam = session.exam
        if (
            not session.is_completed
            or exam is None
            or exam.scoring_mode == ScoringMode.MANUAL
        ):
            raise BreakdownUnavailable(
                f"Session {session_id} has no automatic score to break down",
                session_id=session_id,
            )

        questions = [ScorableQuestion.from_model(q) for q in exam.questions]
        return session, score_module_breakdown(
            questions, session.answers or {}, to_band=self._band_converter(exam)
        )

    def _materialize(self, session: TestSession) -> tuple[Optional[Result], list[str]]:
        if session.assignment_id is None:
            return None, []
        return materialize_result_safely(
            self.db, session.assignment_id, clock=self.clock
        )

    def complete(
        self,
        key: SessionKey,
        answers: Mapping[str, Any],
        assignment_id: Optional[int] = None,
    ) -> CompletionOutcome:
        """
        Submit final answers, score them and close the session.

        A missing session is created on the fly. The assignment Result is
        then re-materialized; a failure there is returned as a warning.

        Raises:
            ExamNotFound: If the exam is unknown, inactive or of another module
            AssignmentNotFound: If the assignment is not the student's
            RetakeNotAllowed: If the session is (or concurrently became) completed
            AssignmentConflict: If the session belongs to another assignment
        """
        exam = self._load_exam(key)
        self._check_assignment(key, assignment_id)

        session, created = self._get_or_create(key, assignment_id)
        if created:
            logger.info(
                f"No session for student {key.student_id} on test {key.test_id}; "
                "created one at submission",
                extra={**key.log_extra(), "session_id": session.id},
            )
        if session.is_completed:
            metrics.record_error("RetakeNotAllowed")
            raise RetakeNotAllowed(session.id)
        self._check_link(session, assignment_id)

        score, band = self._score(exam, answers)
        now = self.clock()
        values: dict[str, Any] = {
            "answers": dict(answers),
            "score": score,
            "band": band,
            "is_completed": True,
            "completed_at": now,
            "updated_at": now,
        }
        if session.assignment_id is None and assignment_id is not None:
            values["assignment_id"] = assignment_id

        session_id = session.id
        updated = self.db.execute(
            update(TestSession)
            .where(TestSession.id == session_id, TestSession.is_completed.is_(False))
            .values(**values)
            .execution_options(synchronize_session=False)
        ).rowcount
        if updated == 0:
            self.db.rollback()
            logger.warning(
                f"Session {session_id} was completed by a concurrent request",
                extra={**key.log_extra(), "session_id": session_id},
            )
            metrics.record_error("RetakeNotAllowed")
            raise RetakeNotAllowed(session_id)

        self._mark_assignment_started(values.get("assignment_id", session.assignment_id))
        self.db.commit()
        self.db.refresh(session)

        logger.info(
            f"Completed {session.test_type.value} session {session.id}: "
            f"score={score}, band={band}",
            extra={**key.log_extra(), "session_id": session.id},
        )
        metrics.record_session_completed(session.test_type.value, band)

        result, warnings = self._materialize(session)
        return CompletionOutcome(session=session, result=result, warnings=warnings)

    def _resolve_band(
        self,
        band: Optional[float],
        criteria: Optional[Mapping[str, float]],
        task1_band: Optional[float],
        task2_band: Optional[float],
    ) -> float:
        if band is not None:
            return validate_band(band)
        if criteria is not None:
            missing = [name for name in CRITERIA_FIELDS if criteria.get(name) is None]
            if missing:
                raise InvalidBandScore(
                    f"Missing criteria: {', '.join(missing)}", missing=missing
                )
            return writing_band_from_criteria(
                **{name: criteria[name] for name in CRITERIA_FIELDS}
            )
        return writing_band_from_tasks(task1_band, task2_band)

    def grade(
        self,
        session_id: int,
        band: Optional[float] = None,
        criteria: Optional[Mapping[str, float]] = None,
        task1_band: Optional[float] = None,
        task2_band: Optional[float] = None,
    ) -> CompletionOutcome:
        """
        Set the band of a completed Writing or Speaking session.

        The band comes from, in order of precedence: an explicit band, the
        four criteria, or the Task 1 / Task 2 bands.

        Raises:
            SessionNotFound: If the session does not exist
            SessionNotGradable: If it is not a completed Writing/Speaking session
            InvalidBandScore: If no usable band input is given
        """
        session = self.get_by_id(session_id)
        test_type = ModuleType(session.test_type)
        if test_type not in MANUALLY_GRADED_MODULES or not session.is_completed:
            raise SessionNotGradable(
                f"Session {session_id} ({test_type.value}, "
                f"completed={session.is_completed}) cannot be graded",
                session_id=session_id,
            )

        resolved = self._resolve_band(band, criteria, task1_band, task2_band)
        session.band = resolved
        session.score = resolved
        session.updated_at = self.clock()
        self.db.commit()
        self.db.refresh(session)

        logger.info(
            f"Graded {test_type.value} session {session_id}: band={resolved}",
            extra={
                "session_id": session_id,
                "student_id": session.student_id,
                "test_type": test_type.value,
            },
        )
        metrics.record_session_graded(test_type.value)

        if not settings.MATERIALIZE_ON_GRADE:
            return CompletionOutcome(session=session)
        result, warnings = self._materialize(session)
        return CompletionOutcome(session=session, result=result, warnings=warnings)
