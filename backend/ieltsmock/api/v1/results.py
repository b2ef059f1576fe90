"""
Assignment result endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ieltsmock.core.db_error_handling import handle_db_error
from ieltsmock.core.error_responses import ErrorMessages, raise_not_found
from ieltsmock.core.results import get_assignment_progress, materialize_result
from ieltsmock.models import Assignment, Result, get_db
from ieltsmock.schemas.results import AssignmentProgressResponse, ResultResponse

router = APIRouter()


@router.get("/assignments/{assignment_id}/result", response_model=ResultResponse)
def get_result(assignment_id: int, db: Session = Depends(get_db)):
    """Get the cached result of an assignment."""
    if db.get(Assignment, assignment_id) is None:
        raise_not_found(ErrorMessages.ASSIGNMENT_NOT_FOUND)

    result = db.query(Result).filter(Result.assignment_id == assignment_id).first()
    if result is None:
        raise_not_found(ErrorMessages.RESULT_NOT_FOUND)
    return ResultResponse.model_validate(result)


@router.post("/assignments/{assignment_id}/result", response_model=ResultResponse)
def recompute_result(assignment_id: int, db: Session = Depends(get_db)):
    """
    Recompute the result of an assignment from its sessions.

    Unlike the recomputation that follows a submission, failures here are
    returned to the caller.
    """
    with handle_db_error(db, "recompute assignment result"):
        result = materialize_result(db, assignment_id)
        return ResultResponse.model_validate(result)


@router.get(
    "/assignments/{assignment_id}/progress", response_model=AssignmentProgressResponse
)
def get_progress(assignment_id: int, db: Session = Depends(get_db)):
    """Get the status of each required module of an assignment."""
    assignment, modules = get_assignment_progress(db, assignment_id)
    return AssignmentProgressResponse(
        assignment_id=assignment.id,
        status=assignment.status,
        modules=modules,
    )
