"""
Database models for the IELTS mock exam scoring backend.

Exams, questions and band threshold rows are owned by the test-authoring
side and treated as read-only here. Test sessions and results are written by
the session lifecycle and the result materializer.
"""
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum

from .base import Base


class ModuleType(str, enum.Enum):
    """IELTS module (also the test type of a session)."""

    LISTENING = "LISTENING"
    READING = "READING"
    WRITING = "WRITING"
    SPEAKING = "SPEAKING"


class QuestionType(str, enum.Enum):
    """Question type enumeration."""

    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    FILL_IN_BLANK = "FILL_IN_BLANK"
    MATCHING = "MATCHING"
    MATCHING_HEADINGS = "MATCHING_HEADINGS"
    TRUE_FALSE_NOT_GIVEN = "TRUE_FALSE_NOT_GIVEN"
    NOTES_COMPLETION = "NOTES_COMPLETION"
    SUMMARY_COMPLETION = "SUMMARY_COMPLETION"


class ScoringMode(str, enum.Enum):
    """How a completed session's score is turned into a band."""

    BAND_TABLE = "BAND_TABLE"  # raw score on the 40-item scale, table lookup
    PERCENTAGE = "PERCENTAGE"  # remedial tests without a stored table
    MANUAL = "MANUAL"  # instructor grading (Writing/Speaking)


class AssignmentStatus(str, enum.Enum):
    """Assignment progress enumeration."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Exam(Base):
    """A single-module test (e.g. one Reading test) that students attempt."""

    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    module = Column(Enum(ModuleType), nullable=False, index=True)
    scoring_mode = Column(
        Enum(ScoringMode), nullable=False, default=ScoringMode.BAND_TABLE
    )
    # Scale the stored band table is defined against (40 for IELTS L/R)
    total_items = Column(Integer, nullable=False, default=40)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True),
        default=_utc_now,
        nullable=False,
    )

    # Relationships
    questions = relationship(
        "Question",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="Question.order",
    )
    band_thresholds = relationship(
        "BandThreshold",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="BandThreshold.min_score.desc()",
    )

    __table_args__ = (
        CheckConstraint("total_items > 0", name="ck_exams_total_items_positive"),
    )


class Question(Base):
    """Question model. Immutable once the owning exam is published."""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(
        Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_type = Column(Enum(QuestionType), nullable=False)
    points = Column(Integer, nullable=False, default=1)
    # Shape depends on question_type: string, list of strings, or a keyed map
    # (possibly nested) for multi-part questions.
    correct_answer = Column(JSON, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    # Listening part or Reading passage the question belongs to (1-based)
    part = Column(Integer, nullable=False, default=1)

    exam = relationship("Exam", back_populates="questions")

    __table_args__ = (
        CheckConstraint("points > 0", name="ck_questions_points_positive"),
        CheckConstraint("part > 0", name="ck_questions_part_positive"),
    )


class BandThreshold(Base):
    """One row of an exam's raw-score → band conversion table."""

    __tablename__ = "band_thresholds"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(
        Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    min_score = Column(Float, nullable=False)
    band = Column(Float, nullable=False)

    exam = relationship("Exam", back_populates="band_thresholds")

    __table_args__ = (
        UniqueConstraint("exam_id", "min_score", name="uq_band_threshold_exam_score"),
        CheckConstraint(
            "band >= 0 AND band <= 9", name="ck_band_thresholds_band_range"
        ),
    )


class Assignment(Base):
    """A set of modules assigned to one student; owns the aggregate Result."""

    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="")
    # List of ModuleType values the student is expected to sit
    required_modules = Column(JSON, nullable=False, default=list)
    status = Column(
        Enum(AssignmentStatus), default=AssignmentStatus.PENDING, nullable=False
    )
    created_at = Column(
        DateTime(timezone=True),
        default=_utc_now,
        nullable=False,
    )

    test_sessions = relationship("TestSession", back_populates="assignment")
    result = relationship(
        "Result",
        back_populates="assignment",
        uselist=False,
        cascade="all, delete-orphan",
    )


class TestSession(Base):
    """One student's attempt at one exam.

    Keyed by (student_id, test_id, test_type, item_wise_test_id). The
    item-wise discriminator is stored as an empty string when absent so the
    unique constraint covers standalone attempts too.
    """

    __tablename__ = "test_sessions"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String(64), nullable=False, index=True)
    test_id = Column(
        Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_type = Column(Enum(ModuleType), nullable=False)
    item_wise_test_id = Column(String(64), nullable=False, default="")
    assignment_id = Column(
        Integer,
        ForeignKey("assignments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    is_completed = Column(Boolean, default=False, nullable=False)
    answers = Column(JSON, nullable=False, default=dict)
    score = Column(Float, nullable=True)  # module-specific scale
    band = Column(Float, nullable=True)  # NULL until scored or graded
    created_at = Column(
        DateTime(timezone=True),
        default=_utc_now,
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utc_now,
        onupdate=_utc_now,
        nullable=False,
    )

    exam = relationship("Exam")
    assignment = relationship("Assignment", back_populates="test_sessions")

    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "test_id",
            "test_type",
            "item_wise_test_id",
            name="uq_test_sessions_attempt_key",
        ),
        Index("ix_test_sessions_student_completed", "student_id", "is_completed"),
        CheckConstraint(
            "band IS NULL OR (band >= 0 AND band <= 9)",
            name="ck_test_sessions_band_range",
        ),
    )


class Result(Base):
    """Cached aggregate band result for an assignment.

    Always recomputable from session data; see ieltsmock.core.results.
    """

    __tablename__ = "results"

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(
        Integer,
        ForeignKey("assignments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    listening_band = Column(Float, nullable=True)
    reading_band = Column(Float, nullable=True)
    writing_band = Column(Float, nullable=True)
    speaking_band = Column(Float, nullable=True)
    overall_band = Column(Float, nullable=False, default=0.0)
    # True once every required module of the assignment has been graded
    is_final = Column(Boolean, default=False, nullable=False)
    generated_at = Column(
        DateTime(timezone=True),
        default=_utc_now,
        nullable=False,
    )

    assignment = relationship("Assignment", back_populates="result")
