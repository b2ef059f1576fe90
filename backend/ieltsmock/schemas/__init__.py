"""
Pydantic schemas for request/response validation.
"""
from .results import AssignmentProgressResponse, ResultResponse
from .test_sessions import (
    CompleteSessionRequest,
    GradeSessionRequest,
    PartScoreResponse,
    QuestionTypeScoreResponse,
    SaveProgressRequest,
    ScoreBreakdownResponse,
    SessionKeyRequest,
    SessionOutcomeResponse,
    SliceScoreResponse,
    StartSessionRequest,
    TestSessionResponse,
    WritingCriteria,
)

__all__ = [
    "AssignmentProgressResponse",
    "ResultResponse",
    "CompleteSessionRequest",
    "GradeSessionRequest",
    "PartScoreResponse",
    "QuestionTypeScoreResponse",
    "SaveProgressRequest",
    "SessionKeyRequest",
    "SessionOutcomeResponse",
    "ScoreBreakdownResponse",
    "SliceScoreResponse",
    "StartSessionRequest",
    "TestSessionResponse",
    "WritingCriteria",
]
