"""
Tests for exception handlers in main.py and the domain error mapping.
"""
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from ieltsmock.core.error_responses import (
    ErrorMessages,
    http_error_for,
    raise_not_found,
)
from ieltsmock.core.exceptions import (
    AssignmentConflict,
    AssignmentNotFound,
    BreakdownUnavailable,
    ExamNotFound,
    InvalidBandScore,
    InvalidBandTable,
    MaterializationFailure,
    RetakeNotAllowed,
    SessionNotFound,
    SessionNotGradable,
    SessionNotInProgress,
)


class TestHttpErrorFor:
    """Tests for the domain error to HTTP status mapping."""

    @pytest.mark.parametrize(
        "error,status_code",
        [
            (RetakeNotAllowed(3), 409),
            (AssignmentConflict(3, 1, 2), 409),
            (SessionNotFound("missing"), 404),
            (ExamNotFound("missing"), 404),
            (AssignmentNotFound("missing"), 404),
            (SessionNotInProgress(3), 400),
            (SessionNotGradable("reading"), 400),
            (BreakdownUnavailable("in progress"), 400),
            (InvalidBandScore("6.3 is not a half band"), 400),
            (InvalidBandTable("not monotonic"), 500),
            (MaterializationFailure(1, RuntimeError("x")), 500),
        ],
    )
    def test_status_codes(self, error, status_code):
        assert http_error_for(error).status_code == status_code

    def test_retake_detail_names_session(self):
        detail = http_error_for(RetakeNotAllowed(17)).detail

        assert detail == ErrorMessages.retake_not_allowed(17)
        assert "(ID: 17)" in detail

    def test_invalid_band_detail(self):
        detail = http_error_for(InvalidBandScore("Band 6.3 is not a half step.")).detail

        assert detail == "Invalid band score: Band 6.3 is not a half step."

    def test_server_errors_hide_internals(self):
        detail = http_error_for(MaterializationFailure(1, RuntimeError("SQL..."))).detail

        assert "SQL" not in detail


class TestRaiseHelpers:
    """Tests for the HTTPException builders."""

    def test_raise_not_found(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_not_found(ErrorMessages.EXAM_NOT_FOUND)

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Exam not found."


class TestExceptionHandlers:
    """Tests for the handlers registered on the application."""

    def test_handlers_registered(self):
        from fastapi.exceptions import RequestValidationError
        from starlette.exceptions import HTTPException as StarletteHTTPException

        from ieltsmock.core.exceptions import ScoringEngineError
        from ieltsmock.main import app

        for exc_class in (
            ScoringEngineError,
            StarletteHTTPException,
            RequestValidationError,
            Exception,
        ):
            assert exc_class in app.exception_handlers

    def test_domain_error_recorded_as_metric(self, client, db_session):
        with patch("ieltsmock.main.metrics") as mock_metrics:
            response = client.post(
                "/v1/exams/999/session/start",
                json={"student_id": "student-1", "test_type": "READING"},
            )

        assert response.status_code == 404
        mock_metrics.record_error.assert_called_once_with(
            "ExamNotFound", path="/v1/exams/999/session/start"
        )

    def test_unhandled_error_returns_error_id(self, db_session):
        from ieltsmock.main import app

        with patch(
            "ieltsmock.api.v1.sessions.TestSessionService.start",
            side_effect=RuntimeError("unexpected"),
        ):
            with TestClient(app, raise_server_exceptions=False) as test_client:
                response = test_client.post(
                    "/v1/exams/1/session/start",
                    json={"student_id": "student-1", "test_type": "READING"},
                )

        assert response.status_code == 500
        data = response.json()
        assert data["detail"] == "Internal server error"
        assert "error_id" in data
        assert "unexpected" not in response.text

    def test_validation_error_shape(self, client):
        response = client.post(
            "/v1/exams/1/session/start", json={"test_type": "READING"}
        )

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail[0]["loc"] == ["body", "student_id"]
        assert detail[0]["type"] == "missing"
