"""
Custom application metrics instrumentation for OpenTelemetry.

This module provides counters for the scoring engine and session lifecycle:
- Session transitions (started, completed, graded)
- Result materialization outcomes
- Error rates

Instruments are created from the global OpenTelemetry meter provider. Without
an SDK provider installed they are no-ops, so recording is always safe.

Usage:
    from ieltsmock.observability import metrics

    metrics.record_session_started("READING")
    metrics.record_materialization(success=False)
"""
import logging
from typing import Any, Optional

from opentelemetry import metrics as otel_metrics

from ieltsmock.core.config import settings

logger = logging.getLogger(__name__)


class ApplicationMetrics:
    """
    Application-level metrics using OpenTelemetry.

    All methods are no-ops until initialize() has been called with
    OTEL_METRICS_ENABLED set.
    """

    def __init__(self) -> None:
        """Initialize ApplicationMetrics with empty state."""
        self._initialized = False
        self._counters: dict[str, Any] = {}

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """
        Create the metric instruments.

        Should be called during application startup after any OpenTelemetry
        SDK meter provider has been configured.
        """
        if not settings.OTEL_METRICS_ENABLED:
            logger.info("Application metrics not enabled (OTEL_METRICS_ENABLED=False)")
            return

        if self._initialized:
            logger.warning("Application metrics already initialized")
            return

        meter = otel_metrics.get_meter(settings.OTEL_SERVICE_NAME)
        self._counters = {
            "sessions.started": meter.create_counter(
                "test.sessions.started", unit="1", description="Sessions started"
            ),
            "sessions.completed": meter.create_counter(
                "test.sessions.completed", unit="1", description="Sessions completed"
            ),
            "sessions.graded": meter.create_counter(
                "test.sessions.graded", unit="1", description="Sessions graded"
            ),
            "results.materialized": meter.create_counter(
                "results.materialized", unit="1", description="Result upserts"
            ),
            "results.materialization_failures": meter.create_counter(
                "results.materialization_failures",
                unit="1",
                description="Result upserts that failed and were downgraded",
            ),
            "errors": meter.create_counter(
                "app.errors", unit="1", description="Application errors"
            ),
        }
        self._initialized = True
        logger.info("Application metrics initialized successfully")

    def _add(self, name: str, labels: Optional[dict[str, str]] = None) -> None:
        if not self._initialized:
            return
        try:
            self._counters[name].add(1, attributes=labels or {})
        except Exception as e:
            logger.debug(f"Failed to record metric {name}: {e}")

    def record_session_started(self, test_type: str) -> None:
        """Record a newly created test session."""
        self._add("sessions.started", {"test.type": test_type})

    def record_session_completed(self, test_type: str, band: Optional[float]) -> None:
        """
        Record a session completion.

        Args:
            test_type: Module of the completed session
            band: Band assigned at completion (None for manually graded modules)
        """
        self._add(
            "sessions.completed",
            {"test.type": test_type, "graded": str(band is not None).lower()},
        )

    def record_session_graded(self, test_type: str) -> None:
        """Record an instructor grading a Writing/Speaking session."""
        self._add("sessions.graded", {"test.type": test_type})

    def record_materialization(self, success: bool) -> None:
        """Record the outcome of a result materialization."""
        if success:
            self._add("results.materialized")
        else:
            self._add("results.materialization_failures")

    def record_error(self, error_type: str, path: Optional[str] = None) -> None:
        """
        Record an application error.

        Args:
            error_type: Type of error (e.g., "RetakeNotAllowed", "GracefulFailure")
            path: Optional request path where error occurred
        """
        labels: dict[str, str] = {"error.type": error_type}
        if path:
            labels["http.route"] = path
        self._add("errors", labels)


metrics = ApplicationMetrics()
