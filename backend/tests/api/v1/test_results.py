"""
Tests for assignment result endpoints.
"""


def complete(client, exam, answers, assignment_id):
    return client.post(
        f"/v1/exams/{exam.id}/session/complete",
        json={
            "student_id": "student-1",
            "test_type": exam.module.value,
            "answers": answers,
            "assignment_id": assignment_id,
        },
    )


class TestGetResult:
    """Tests for GET /v1/assignments/{assignment_id}/result."""

    def test_unknown_assignment(self, client, db_session):
        response = client.get("/v1/assignments/999/result")

        assert response.status_code == 404
        assert response.json()["detail"] == "Assignment not found."

    def test_not_materialized_yet(self, client, assignment):
        response = client.get(f"/v1/assignments/{assignment.id}/result")

        assert response.status_code == 404
        assert response.json()["detail"].startswith("Result not found")

    def test_full_assignment(
        self, client, assignment, listening_exam, reading_exam, writing_exam, make_answers
    ):
        """Listening 6.0, Reading 7.0 and Writing 6.5 give a final 6.5."""
        complete(
            client,
            listening_exam,
            make_answers(listening_exam, 8, right_answer="library"),
            assignment.id,
        )
        complete(client, reading_exam, make_answers(reading_exam, 32), assignment.id)
        writing = complete(client, writing_exam, {"task2": "..."}, assignment.id).json()

        pending = client.get(f"/v1/assignments/{assignment.id}/result").json()
        assert pending["is_final"] is False
        assert pending["overall_band"] == 6.5

        client.put(
            f"/v1/sessions/{writing['session']['id']}/grade", json={"band": 6.5}
        )
        response = client.get(f"/v1/assignments/{assignment.id}/result")

        assert response.status_code == 200
        data = response.json()
        assert data["listening_band"] == 6.0
        assert data["reading_band"] == 7.0
        assert data["writing_band"] == 6.5
        assert data["speaking_band"] is None
        assert data["overall_band"] == 6.5
        assert data["overall_description"] == "Competent User"
        assert data["is_final"] is True


class TestRecomputeResult:
    """Tests for POST /v1/assignments/{assignment_id}/result."""

    def test_recompute_without_sessions(self, client, assignment):
        response = client.post(f"/v1/assignments/{assignment.id}/result")

        assert response.status_code == 200
        data = response.json()
        assert data["overall_band"] == 0.0
        assert data["overall_description"] == "Did not attempt"
        assert data["is_final"] is False

    def test_recompute_is_stable(self, client, assignment, reading_exam, make_answers):
        complete(client, reading_exam, make_answers(reading_exam, 35), assignment.id)

        first = client.post(f"/v1/assignments/{assignment.id}/result").json()
        second = client.post(f"/v1/assignments/{assignment.id}/result").json()

        assert first["reading_band"] == second["reading_band"] == 8.0
        assert first["overall_band"] == second["overall_band"]

    def test_recompute_unknown_assignment(self, client, db_session):
        response = client.post("/v1/assignments/999/result")

        assert response.status_code == 404


class TestGetProgress:
    """Tests for GET /v1/assignments/{assignment_id}/progress."""

    def test_progress_after_reading(
        self, client, assignment, reading_exam, make_answers
    ):
        complete(client, reading_exam, make_answers(reading_exam, 30), assignment.id)

        response = client.get(f"/v1/assignments/{assignment.id}/progress")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "IN_PROGRESS"
        assert data["modules"] == {
            "LISTENING": "NOT_STARTED",
            "READING": "GRADED",
            "WRITING": "NOT_STARTED",
        }

    def test_unknown_assignment(self, client, db_session):
        assert client.get("/v1/assignments/999/progress").status_code == 404


class TestHealth:
    """Tests for GET /v1/health."""

    def test_health(self, client):
        response = client.get("/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
