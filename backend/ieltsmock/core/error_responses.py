"""
Standardized error response messages and builders.

User-facing messages live here, separate from the log messages the core
writes. Message format:
- Sentence case, ending with a period
- Relevant IDs in parentheses when they help the client: "(ID: 123)"

Usage:
    from ieltsmock.core.error_responses import ErrorMessages, raise_not_found

    if session is None:
        raise_not_found(ErrorMessages.TEST_SESSION_NOT_FOUND)
"""

from typing import NoReturn

from fastapi import HTTPException, status

from ieltsmock.core.exceptions import (
    AssignmentConflict,
    AssignmentNotFound,
    BreakdownUnavailable,
    ExamNotFound,
    InvalidBandScore,
    InvalidBandTable,
    RetakeNotAllowed,
    ScoringEngineError,
    SessionNotFound,
    SessionNotGradable,
    SessionNotInProgress,
)


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    TEST_SESSION_NOT_FOUND = "Test session not found."
    EXAM_NOT_FOUND = "Exam not found."
    ASSIGNMENT_NOT_FOUND = "Assignment not found."
    RESULT_NOT_FOUND = "Result not found. It is generated once a module is graded."

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    SESSION_NOT_IN_PROGRESS = "Only in-progress sessions can be modified."
    SESSION_NOT_GRADABLE = (
        "Only completed Writing or Speaking sessions can be graded."
    )
    INVALID_BAND_TABLE = "The exam's band table is invalid."
    BREAKDOWN_UNAVAILABLE = (
        "A score breakdown is only available for completed, automatically "
        "scored sessions."
    )

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def retake_not_allowed(session_id: int) -> str:
        """Message for a start or complete on an already completed session."""
        return (
            f"Test session is already completed (ID: {session_id}). "
            "Retaking a finished test is not allowed."
        )

    @staticmethod
    def assignment_conflict(session_id: int) -> str:
        """Message for a submission under an assignment the session is not part of."""
        return (
            f"Test session belongs to a different assignment (ID: {session_id})."
        )

    @staticmethod
    def invalid_band(detail: str) -> str:
        """Message for an out-of-range or off-grid band."""
        return f"Invalid band score: {detail}."

    @staticmethod
    def database_operation_failed(operation: str) -> str:
        """Generic message for database operation failures."""
        return f"Failed to {operation}. Please try again later."


def http_error_for(error: ScoringEngineError) -> HTTPException:
    """Map a domain error onto the HTTPException the API returns for it."""
    if isinstance(error, RetakeNotAllowed):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=ErrorMessages.retake_not_allowed(error.session_id),
        )
    if isinstance(error, AssignmentConflict):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=ErrorMessages.assignment_conflict(error.session_id),
        )
    if isinstance(error, SessionNotFound):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ErrorMessages.TEST_SESSION_NOT_FOUND,
        )
    if isinstance(error, ExamNotFound):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ErrorMessages.EXAM_NOT_FOUND,
        )
    if isinstance(error, AssignmentNotFound):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ErrorMessages.ASSIGNMENT_NOT_FOUND,
        )
    if isinstance(error, SessionNotInProgress):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorMessages.SESSION_NOT_IN_PROGRESS,
        )
    if isinstance(error, SessionNotGradable):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorMessages.SESSION_NOT_GRADABLE,
        )
    if isinstance(error, BreakdownUnavailable):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorMessages.BREAKDOWN_UNAVAILABLE,
        )
    if isinstance(error, InvalidBandScore):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorMessages.invalid_band(error.message.rstrip(".")),
        )
    if isinstance(error, InvalidBandTable):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ErrorMessages.INVALID_BAND_TABLE,
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=ErrorMessages.database_operation_failed("process the request"),
    )


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def raise_not_found(detail: str) -> NoReturn:
    """Raise a 404 Not Found exception.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 404 Not Found
    """
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )
