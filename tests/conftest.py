from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from learnsync.app import app
from learnsync.database import get_db, init_db, make_session_factory

USER = {"X-User-Id": "learner-1"}
OTHER_USER = {"X-User-Id": "learner-2"}


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InProcessSession:
    """Minimal requests.Session stand-in that forwards to the ASGI app."""

    def __init__(self, client: TestClient) -> None:
        self.client = client
        self.headers: dict[str, str] = {}

    def get(self, url, timeout=None):
        return self.client.get(url, headers=self.headers)

    def post(self, url, json=None, timeout=None):
        return self.client.post(url, json=json, headers=self.headers)


def make_quiz(
    quiz_id: str = "quiz-1",
    mode: str = "practice",
    time_limit: float | None = None,
    course_id: str | None = "course-1",
    questions: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    if questions is None:
        questions = [
            {
                "id": "q1",
                "type": "choice",
                "prompt": "2 + 2",
                "options": ["3", "4"],
                "correctAnswer": "4",
                "explanation": "Basic arithmetic",
                "points": 1,
            },
            {
                "id": "q2",
                "type": "multi_select",
                "prompt": "Primes",
                "options": ["2", "3", "4"],
                "correctAnswer": ["2", "3"],
                "points": 2,
            },
            {
                "id": "q3",
                "type": "true_false",
                "prompt": "The sky is green",
                "options": ["true", "false"],
                "correctAnswer": "false",
                "points": 1,
            },
        ]
    return {
        "id": quiz_id,
        "title": "Sample quiz",
        "courseId": course_id,
        "questions": questions,
        "passingScore": 50,
        "timeLimitMinutes": time_limit,
        "mode": mode,
    }


def make_course(lecture_count: int = 3) -> dict[str, Any]:
    return {
        "title": "Sample course",
        "lectures": [
            {"id": f"L{i}", "title": f"Lecture {i}", "durationSeconds": 100}
            for i in range(1, lecture_count + 1)
        ],
    }


@pytest.fixture
def session_factory() -> Iterator[sessionmaker]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seed(client: TestClient):
    """Store a quiz and/or a course through the catalog endpoints."""

    def _seed(quiz: dict[str, Any] | None = None, course: dict[str, Any] | None = None) -> None:
        if course is not None:
            response = client.put("/api/courses/course-1", json=course)
            assert response.status_code == 200
        if quiz is not None:
            response = client.put(f"/api/quizzes/{quiz['id']}", json=quiz)
            assert response.status_code == 200

    return _seed
