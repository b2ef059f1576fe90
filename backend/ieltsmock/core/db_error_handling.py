"""
Database error handling for API endpoints.

Centralizes the pattern every write endpoint follows:
1. Roll back the database session on a storage error
2. Log the error with the operation name
3. Raise an HTTPException

Domain errors (ScoringEngineError) and HTTPExceptions pass through untouched
so the application's exception handlers can map them to 4xx responses.

Usage:
    from ieltsmock.core.db_error_handling import handle_db_error

    with handle_db_error(db, "complete test session"):
        outcome = service.complete(key, answers)
        return outcome
"""

import logging
from contextlib import contextmanager
from typing import Generator

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ieltsmock.core.error_responses import ErrorMessages
from ieltsmock.core.exceptions import ScoringEngineError

logger = logging.getLogger(__name__)


@contextmanager
def handle_db_error(db: Session, operation_name: str) -> Generator[None, None, None]:
    """Context manager for handling database errors consistently.

    Args:
        db: The SQLAlchemy database session to rollback on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "start test session").

    Raises:
        HTTPException: 500 on a storage error, with the session rolled back.

    Note:
        The endpoint's return statement belongs inside the block so response
        construction failures are logged with the operation name too.
    """
    try:
        yield
    except (HTTPException, ScoringEngineError):
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )
        # Driver messages can carry SQL and parameters; keep them in logs only
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ErrorMessages.database_operation_failed(operation_name),
        )
