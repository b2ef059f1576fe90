"""
Domain exceptions raised by the scoring engine and session lifecycle.

These are raised by core code that has no HTTP context. The API layer maps
them to status codes in ieltsmock.main; storage-layer errors
(SQLAlchemyError) are never wrapped here and propagate unchanged.
"""

from typing import Any, Optional


class ScoringEngineError(Exception):
    """Base class for all domain errors raised by the core."""

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)


class UnscorableQuestion(ScoringEngineError):
    """A question's stored correct answer is missing or unusable.

    Recovered locally by the question scorer as zero credit; never surfaced
    to the student.
    """

    def __init__(self, question_id: Optional[Any], reason: str):
        self.question_id = question_id
        self.reason = reason
        super().__init__(
            f"Question {question_id} is unscorable: {reason}",
            question_id=question_id,
        )


class RetakeNotAllowed(ScoringEngineError):
    """A start/complete was attempted on a key whose session is completed."""

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(
            f"Test session {session_id} is already completed", session_id=session_id
        )


class SessionNotFound(ScoringEngineError):
    """No session exists for the requested key or id."""


class SessionNotInProgress(ScoringEngineError):
    """An intermediate save was attempted on a completed session."""

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(
            f"Test session {session_id} is not in progress", session_id=session_id
        )


class SessionNotGradable(ScoringEngineError):
    """Manual grading was requested for a session that cannot take it."""


class ExamNotFound(ScoringEngineError):
    """The exam does not exist, is inactive, or is not of the requested type."""


class AssignmentNotFound(ScoringEngineError):
    """The assignment referenced by a session or result does not exist."""


class MaterializationFailure(ScoringEngineError):
    """Recomputing or persisting an assignment Result failed.

    Caught at the result materializer boundary and downgraded to a warning.
    """

    def __init__(self, assignment_id: int, original_error: Exception):
        self.assignment_id = assignment_id
        self.original_error = original_error
        super().__init__(
            f"Failed to materialize result for assignment {assignment_id}: "
            f"{original_error}",
            assignment_id=assignment_id,
        )


class InvalidBandScore(ScoringEngineError, ValueError):
    """A band or criterion score is outside [0, 9] or not a half-point step."""


class InvalidBandTable(ScoringEngineError, ValueError):
    """A band threshold table violates the monotonicity invariant."""


class BreakdownUnavailable(ScoringEngineError):
    """A score breakdown was requested for a session with no automatic score."""


class AssignmentConflict(ScoringEngineError):
    """A session already linked to one assignment was submitted under another."""

    def __init__(self, session_id: int, linked_id: int, requested_id: int):
        self.session_id = session_id
        self.linked_id = linked_id
        self.requested_id = requested_id
        super().__init__(
            f"Test session {session_id} belongs to assignment {linked_id}, "
            f"not {requested_id}",
            session_id=session_id,
            assignment_id=requested_id,
        )
