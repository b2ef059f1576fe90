"""
Graceful failure utilities.

This module provides the context manager used wherever a non-critical
operation must not block the main execution flow. The scoring core has one
such boundary: recomputing the cached assignment Result after a session write.
A failed recomputation must never roll back the submission that triggered it.

The pattern is:
1. Attempt the operation
2. Log any exception with context
3. Continue execution without raising, exposing the error to the caller

This is distinct from `db_error_handling.py` which handles critical errors
that require rollback and HTTP error responses.

Usage:
    from ieltsmock.core.graceful_failure import graceful_failure

    with graceful_failure("materialize result", logger) as outcome:
        materialize_result(db, assignment_id)
    if outcome.failed:
        warnings.append(str(outcome.error))
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator, Optional

from ieltsmock.observability import metrics


@dataclass
class FailureOutcome:
    """Records whether the wrapped block raised, and what it raised."""

    error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@contextmanager
def graceful_failure(
    operation_name: str,
    logger: logging.Logger,
    *,
    log_level: int = logging.WARNING,
    exc_info: bool = False,
    context: Optional[dict[str, Any]] = None,
) -> Generator[FailureOutcome, None, None]:
    """Context manager for non-critical operations that should not block execution.

    Unlike `handle_db_error`, this does NOT:
    - Raise HTTPException
    - Rollback the database session
    - Stop execution

    Args:
        operation_name: Human-readable name of the operation for logging
            (e.g., "materialize result").
        logger: The logger instance to use for logging errors.
        log_level: Logging level for error messages. Defaults to WARNING.
        exc_info: Whether to include exception traceback in log. Defaults to False.
        context: Optional dictionary of additional context to include in log message
            (e.g., {"assignment_id": 12, "session_id": 456}).

    Yields:
        FailureOutcome whose `error` is set if the block raised.

    Example:
        >>> with graceful_failure(
        ...     "materialize result",
        ...     logger,
        ...     context={"assignment_id": 12},
        ... ) as outcome:
        ...     materialize_result(db, 12)
        >>> outcome.failed
        False
    """
    outcome = FailureOutcome()
    try:
        yield outcome
    except Exception as e:
        outcome.error = e

        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            message = f"Failed to {operation_name} ({context_str}): {e}"
        else:
            message = f"Failed to {operation_name}: {e}"

        logger.log(log_level, message, exc_info=exc_info)

        # Safe: record_error never raises
        metrics.record_error(error_type="GracefulFailure")
