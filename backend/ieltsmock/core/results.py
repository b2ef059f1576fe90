"""
Result materialization.

The Result row of an assignment is a cache: it is recomputed from the
current session rows every time, never updated incrementally. A module
counts towards the overall band only once it is graded, meaning its session
is completed and carries a band. Listening and Reading are graded at
submission; Writing and Speaking only after an instructor sets the band.

Materialization is the core's single failure-isolation boundary: callers use
`materialize_result_safely`, which downgrades any failure to a warning so the
submission that triggered it stays accepted.
"""

import enum
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ieltsmock.core.datetime_utils import Clock, ensure_timezone_aware, utc_now
from ieltsmock.core.exceptions import AssignmentNotFound, MaterializationFailure
from ieltsmock.core.graceful_failure import graceful_failure
from ieltsmock.core.scoring.aggregation import aggregate_overall_band
from ieltsmock.models import (
    Assignment,
    AssignmentStatus,
    ModuleType,
    Result,
    TestSession,
)
from ieltsmock.observability import metrics

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_BAND_COLUMNS = {
    ModuleType.LISTENING: "listening_band",
    ModuleType.READING: "reading_band",
    ModuleType.WRITING: "writing_band",
    ModuleType.SPEAKING: "speaking_band",
}


class ModuleStatus(str, enum.Enum):
    """Dashboard status of one module within an assignment."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"  # completed, awaiting instructor grading
    GRADED = "GRADED"


def get_module_status(session: Optional[TestSession]) -> ModuleStatus:
    """Status of a module given its session (None when never started)."""
    if session is None:
        return ModuleStatus.NOT_STARTED
    if not session.is_completed:
        return ModuleStatus.IN_PROGRESS
    if session.band is None:
        return ModuleStatus.SUBMITTED
    return ModuleStatus.GRADED


def get_assignment_progress(
    db: Session, assignment_id: int
) -> tuple[Assignment, dict[ModuleType, ModuleStatus]]:
    """
    Status of every required module of an assignment.

    Each module reports the status of its most recently started session.

    Raises:
        AssignmentNotFound: If the assignment does not exist
    """
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if assignment is None:
        raise AssignmentNotFound(
            f"Assignment {assignment_id} not found", assignment_id=assignment_id
        )

    latest: dict[ModuleType, TestSession] = {}
    for session in assignment.test_sessions:
        module = ModuleType(session.test_type)
        current = latest.get(module)
        if current is None or _started_key(session) > _started_key(current):
            latest[module] = session

    modules = {
        module: get_module_status(latest.get(module))
        for module in ModuleType
        if module in _required_modules(assignment)
    }
    return assignment, modules


def _started_key(session: TestSession) -> tuple[datetime, int]:
    return ensure_timezone_aware(session.started_at or _EPOCH), session.id


def _latest_graded_band(sessions: Iterable[TestSession]) -> Optional[float]:
    graded = [s for s in sessions if s.is_completed and s.band is not None]
    if not graded:
        return None
    latest = max(
        graded,
        key=lambda s: (ensure_timezone_aware(s.completed_at or _EPOCH), s.id),
    )
    return latest.band


def _required_modules(assignment: Assignment) -> set[ModuleType]:
    # An assignment without an explicit module list covers the full test
    required = assignment.required_modules or [m.value for m in ModuleType]
    return {ModuleType(module) for module in required}


def _find_result(db: Session, assignment_id: int) -> Optional[Result]:
    return db.query(Result).filter(Result.assignment_id == assignment_id).first()


def _get_or_create_result(db: Session, assignment_id: int) -> Result:
    result = _find_result(db, assignment_id)
    if result is not None:
        return result

    result = Result(assignment_id=assignment_id)
    db.add(result)
    try:
        db.flush()
    except IntegrityError:
        # A concurrent materialization inserted the row first; use theirs
        db.rollback()
        logger.info(
            f"Result for assignment {assignment_id} created concurrently; updating it",
            extra={"assignment_id": assignment_id},
        )
        result = _find_result(db, assignment_id)
        if result is None:
            raise
    return result


def materialize_result(
    db: Session,
    assignment_id: int,
    *,
    clock: Clock = utc_now,
) -> Result:
    """
    Recompute and upsert the Result of an assignment from its sessions.

    Args:
        db: Database session
        assignment_id: Assignment whose result is recomputed
        clock: Source of the generated_at timestamp

    Returns:
        The committed Result row

    Raises:
        AssignmentNotFound: If the assignment does not exist
    """
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if assignment is None:
        raise AssignmentNotFound(
            f"Assignment {assignment_id} not found", assignment_id=assignment_id
        )

    # populate_existing discards any stale in-memory state for these rows
    sessions = (
        db.query(TestSession)
        .filter(TestSession.assignment_id == assignment_id)
        .populate_existing()
        .all()
    )

    by_module: dict[ModuleType, list[TestSession]] = {m: [] for m in ModuleType}
    for session in sessions:
        by_module[ModuleType(session.test_type)].append(session)

    bands = {
        module: _latest_graded_band(module_sessions)
        for module, module_sessions in by_module.items()
    }
    overall_band = aggregate_overall_band(
        {module.value.lower(): band for module, band in bands.items()}
    )

    required = _required_modules(assignment)
    is_final = all(bands[module] is not None for module in required)

    result = _get_or_create_result(db, assignment_id)
    for module, column in _BAND_COLUMNS.items():
        setattr(result, column, bands[module])
    result.overall_band = overall_band
    result.is_final = is_final
    result.generated_at = clock()

    submitted = all(
        any(s.is_completed for s in by_module[module]) for module in required
    )
    if submitted:
        assignment.status = AssignmentStatus.COMPLETED
    elif sessions and assignment.status == AssignmentStatus.PENDING:
        assignment.status = AssignmentStatus.IN_PROGRESS

    db.commit()
    db.refresh(result)

    logger.info(
        f"Materialized result for assignment {assignment_id}: "
        f"overall={overall_band}, final={is_final}",
        extra={"assignment_id": assignment_id},
    )
    metrics.record_materialization(success=True)
    return result


def materialize_result_safely(
    db: Session,
    assignment_id: int,
    *,
    clock: Clock = utc_now,
) -> tuple[Optional[Result], list[str]]:
    """
    Materialize a result without letting a failure escape.

    Returns:
        Tuple of (result or None, warnings). On failure the session is rolled
        back and the warning describes what went wrong.
    """
    result: Optional[Result] = None
    warnings: list[str] = []

    with graceful_failure(
        "materialize result",
        logger,
        exc_info=True,
        context={"assignment_id": assignment_id},
    ) as outcome:
        result = materialize_result(db, assignment_id, clock=clock)

    if outcome.failed:
        db.rollback()
        metrics.record_materialization(success=False)
        failure = MaterializationFailure(assignment_id, outcome.error)
        warnings.append(failure.message)

    return result, warnings
