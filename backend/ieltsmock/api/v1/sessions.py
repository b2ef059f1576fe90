"""
Test session endpoints.

Handlers are thin: they translate request bodies into a SessionKey, call
TestSessionService and wrap storage errors with handle_db_error. Domain
errors propagate to the exception handler registered in main.py.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ieltsmock.core.db_error_handling import handle_db_error
from ieltsmock.core.error_responses import ErrorMessages, raise_not_found
from ieltsmock.core.sessions import CompletionOutcome, SessionKey, TestSessionService
from ieltsmock.models import ModuleType, get_db
from ieltsmock.schemas.results import ResultResponse
from ieltsmock.schemas.test_sessions import (
    CompleteSessionRequest,
    GradeSessionRequest,
    SaveProgressRequest,
    ScoreBreakdownResponse,
    SessionKeyRequest,
    SessionOutcomeResponse,
    StartSessionRequest,
    TestSessionResponse,
)

router = APIRouter()


def _key(exam_id: int, request: SessionKeyRequest) -> SessionKey:
    return SessionKey(
        student_id=request.student_id,
        test_id=exam_id,
        test_type=request.test_type,
        item_wise_test_id=request.item_wise_test_id,
    )


def _outcome_response(outcome: CompletionOutcome) -> SessionOutcomeResponse:
    return SessionOutcomeResponse(
        session=TestSessionResponse.model_validate(outcome.session),
        result=(
            ResultResponse.model_validate(outcome.result)
            if outcome.result is not None
            else None
        ),
        warnings=outcome.warnings,
    )


@router.post("/exams/{exam_id}/session/start", response_model=TestSessionResponse)
def start_session(
    exam_id: int,
    request: StartSessionRequest,
    db: Session = Depends(get_db),
):
    """
    Start a test session, or resume the in-progress one for the same key.

    Repeated calls return the same session unchanged. Starting a test the
    student already completed is rejected with 409.
    """
    service = TestSessionService(db)
    with handle_db_error(db, "start test session"):
        session = service.start(
            _key(exam_id, request), assignment_id=request.assignment_id
        )
        return TestSessionResponse.model_validate(session)


@router.get("/exams/{exam_id}/session", response_model=TestSessionResponse)
def get_session(
    exam_id: int,
    student_id: str = Query(..., min_length=1, max_length=64),
    test_type: ModuleType = Query(...),
    item_wise_test_id: Optional[str] = Query(None, max_length=64),
    db: Session = Depends(get_db),
):
    """Get the session for a key."""
    key = SessionKey(
        student_id=student_id,
        test_id=exam_id,
        test_type=test_type,
        item_wise_test_id=item_wise_test_id,
    )
    session = TestSessionService(db).get(key)
    if session is None:
        raise_not_found(ErrorMessages.TEST_SESSION_NOT_FOUND)
    return TestSessionResponse.model_validate(session)


@router.put("/exams/{exam_id}/session/progress", response_model=TestSessionResponse)
def save_progress(
    exam_id: int,
    request: SaveProgressRequest,
    db: Session = Depends(get_db),
):
    """Save answers of an in-progress session without scoring them."""
    service = TestSessionService(db)
    with handle_db_error(db, "save test progress"):
        session = service.save_progress(_key(exam_id, request), request.answers)
        return TestSessionResponse.model_validate(session)


@router.post(
    "/exams/{exam_id}/session/complete", response_model=SessionOutcomeResponse
)
def complete_session(
    exam_id: int,
    request: CompleteSessionRequest,
    db: Session = Depends(get_db),
):
    """
    Submit final answers.

    Listening and Reading are scored immediately; Writing and Speaking wait
    for instructor grading. A failed result recomputation is reported in
    `warnings` and does not fail the submission.
    """
    service = TestSessionService(db)
    with handle_db_error(db, "complete test session"):
        outcome = service.complete(
            _key(exam_id, request),
            request.answers,
            assignment_id=request.assignment_id,
        )
        return _outcome_response(outcome)


@router.put("/sessions/{session_id}/grade", response_model=SessionOutcomeResponse)
def grade_session(
    session_id: int,
    request: GradeSessionRequest,
    db: Session = Depends(get_db),
):
    """Set the band of a completed Writing or Speaking session."""
    service = TestSessionService(db)
    with handle_db_error(db, "grade test session"):
        outcome = service.grade(
            session_id,
            band=request.band,
            criteria=request.criteria.model_dump() if request.criteria else None,
            task1_band=request.task1_band,
            task2_band=request.task2_band,
        )
        return _outcome_response(outcome)


@router.get(
    "/sessions/{session_id}/breakdown", response_model=ScoreBreakdownResponse
)
def get_session_breakdown(session_id: int, db: Session = Depends(get_db)):
    """
    Score of a completed Listening or Reading session per part and per
    question type, each with a band-equivalent.
    """
    session, breakdown = TestSessionService(db).breakdown(session_id)
    return ScoreBreakdownResponse.from_breakdown(
        session.id, ModuleType(session.test_type), breakdown
    )
