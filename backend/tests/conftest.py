"""
Pytest configuration and shared fixtures for testing.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ieltsmock.main import app
from ieltsmock.models import (
    Assignment,
    BandThreshold,
    Base,
    Exam,
    ModuleType,
    Question,
    QuestionType,
    ScoringMode,
    get_db,
)

STUDENT_ID = "student-1"

# Custom Reading table; 32 falls in the 30 bucket
CUSTOM_READING_TABLE = [
    (39, 9.0),
    (37, 8.5),
    (35, 8.0),
    (33, 7.5),
    (30, 7.0),
    (27, 6.5),
    (23, 6.0),
    (19, 5.5),
    (15, 5.0),
    (13, 4.5),
    (10, 4.0),
    (8, 3.5),
    (6, 3.0),
    (4, 2.5),
    (0, 0.0),
]


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests. Skips metrics initialization."""
    yield


# Neutralize the production lifespan on the singleton app.
app.router.lifespan_context = _test_lifespan


# Use SQLite for tests. The path is relative to this file so the .db lands
# inside tests/ regardless of the working directory. The long busy timeout
# lets concurrent-writer tests wait for each other instead of failing.
_TEST_DB = Path(__file__).parent / "test.db"
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClock:
    """Deterministic clock; each call returns the current time unchanged."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.
    """

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def session_factory(db_session):
    """Sessionmaker bound to the test database, for multi-session tests."""
    return TestingSessionLocal


@pytest.fixture
def clock():
    """A fixed clock starting at 2024-03-01 09:00 UTC."""
    return FakeClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


def _add_exam(db, *, title, module, scoring_mode, questions, thresholds=()):
    exam = Exam(title=title, module=module, scoring_mode=scoring_mode)
    db.add(exam)
    db.flush()
    # Question tuples are (type, correct_answer, points) with an optional part
    for order, (question_type, correct_answer, points, *part) in enumerate(questions):
        db.add(
            Question(
                exam_id=exam.id,
                question_type=question_type,
                correct_answer=correct_answer,
                points=points,
                order=order,
                part=part[0] if part else 1,
            )
        )
    for min_score, band in thresholds:
        db.add(BandThreshold(exam_id=exam.id, min_score=min_score, band=band))
    db.commit()
    db.refresh(exam)
    return exam


@pytest.fixture
def reading_exam(db_session):
    """
    A 40-question Reading exam (one point each, answer "a") with a custom
    band table.
    """
    return _add_exam(
        db_session,
        title="Academic Reading 1",
        module=ModuleType.READING,
        scoring_mode=ScoringMode.BAND_TABLE,
        questions=[(QuestionType.MULTIPLE_CHOICE, "a", 1)] * 40,
        thresholds=CUSTOM_READING_TABLE,
    )


@pytest.fixture
def listening_exam(db_session):
    """A 10-question Listening exam with no stored table."""
    return _add_exam(
        db_session,
        title="Listening 1",
        module=ModuleType.LISTENING,
        scoring_mode=ScoringMode.BAND_TABLE,
        questions=[(QuestionType.FILL_IN_BLANK, ["library", "the library"], 1)] * 10,
    )


@pytest.fixture
def sectioned_listening_exam(db_session):
    """
    A 40-question Listening exam in two parts: part 1 is twenty fill-in-the-blank
    questions ("river"), part 2 twenty MCQs ("a"). No stored table.
    """
    return _add_exam(
        db_session,
        title="Listening 2",
        module=ModuleType.LISTENING,
        scoring_mode=ScoringMode.BAND_TABLE,
        questions=[(QuestionType.FILL_IN_BLANK, "river", 1, 1)] * 20
        + [(QuestionType.MULTIPLE_CHOICE, "a", 1, 2)] * 20,
    )


@pytest.fixture
def remedial_exam(db_session):
    """A percentage-scored Reading exam of 20 true/false/not given questions."""
    return _add_exam(
        db_session,
        title="Remedial Reading",
        module=ModuleType.READING,
        scoring_mode=ScoringMode.PERCENTAGE,
        questions=[(QuestionType.TRUE_FALSE_NOT_GIVEN, "true", 1)] * 20,
    )


@pytest.fixture
def writing_exam(db_session):
    """A manually graded Writing exam."""
    return _add_exam(
        db_session,
        title="Writing 1",
        module=ModuleType.WRITING,
        scoring_mode=ScoringMode.MANUAL,
        questions=[],
    )


@pytest.fixture
def assignment(db_session):
    """An assignment of Listening, Reading and Writing for STUDENT_ID."""
    assignment = Assignment(
        student_id=STUDENT_ID,
        title="Mock test week 1",
        required_modules=["LISTENING", "READING", "WRITING"],
    )
    db_session.add(assignment)
    db_session.commit()
    db_session.refresh(assignment)
    return assignment


@pytest.fixture
def make_answers():
    """Build answers that get the first `correct` questions of an exam right."""

    def _make(exam, correct: int, right_answer="a", wrong_answer="b"):
        return {
            str(question.id): right_answer if index < correct else wrong_answer
            for index, question in enumerate(exam.questions)
        }

    return _make
