"""
Models package for the IELTS mock exam backend.
"""
from .base import Base, engine, SessionLocal, get_db
from .models import (
    Assignment,
    AssignmentStatus,
    BandThreshold,
    Exam,
    ModuleType,
    Question,
    QuestionType,
    Result,
    ScoringMode,
    TestSession,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "Assignment",
    "AssignmentStatus",
    "BandThreshold",
    "Exam",
    "ModuleType",
    "Question",
    "QuestionType",
    "Result",
    "ScoringMode",
    "TestSession",
]
