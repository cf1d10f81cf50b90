from typing import Any

from fastapi.testclient import TestClient

from conftest import OTHER_USER, USER, make_course, make_quiz


def _start(client: TestClient, quiz_id: str = "quiz-1", headers: dict = USER) -> dict[str, Any]:
    response = client.post(f"/api/quizzes/{quiz_id}/attempts", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_requests_without_user_header_are_rejected(client: TestClient, seed) -> None:
    seed(quiz=make_quiz())
    response = client.post("/api/quizzes/quiz-1/attempts")
    assert response.status_code == 401


def test_get_quiz_lists_callers_attempts(client: TestClient, seed) -> None:
    seed(quiz=make_quiz())
    attempt = _start(client)
    _start(client, headers=OTHER_USER)

    payload = client.get("/api/quizzes/quiz-1", headers=USER).json()
    assert payload["quiz"]["id"] == "quiz-1"
    assert [item["id"] for item in payload["attempts"]] == [attempt["id"]]


def test_unknown_quiz_is_not_found(client: TestClient) -> None:
    response = client.get("/api/quizzes/missing", headers=USER)
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "not_found"


def test_second_active_attempt_conflicts(client: TestClient, seed) -> None:
    seed(quiz=make_quiz())
    first = _start(client)

    response = client.post("/api/quizzes/quiz-1/attempts", headers=USER)
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "attempt_already_active"
    assert detail["attemptId"] == first["id"]


def test_new_attempt_allowed_after_finalize(client: TestClient, seed) -> None:
    seed(quiz=make_quiz())
    first = _start(client)
    client.post(f"/api/quizzes/quiz-1/attempts/{first['id']}/finalize", headers=USER)

    second = _start(client)
    assert second["id"] != first["id"]


def test_empty_quiz_creates_no_attempt(client: TestClient, seed) -> None:
    seed(quiz=make_quiz(questions=[]))
    response = client.post("/api/quizzes/quiz-1/attempts", headers=USER)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "empty_quiz"
    assert client.get("/api/quizzes/quiz-1", headers=USER).json()["attempts"] == []


def test_attempt_of_other_user_is_hidden(client: TestClient, seed) -> None:
    seed(quiz=make_quiz())
    attempt = _start(client)
    response = client.get(f"/api/attempts/{attempt['id']}", headers=OTHER_USER)
    assert response.status_code == 404


def test_repeated_answer_counts_once(client: TestClient, seed) -> None:
    seed(quiz=make_quiz())
    attempt = _start(client)
    url = f"/api/quizzes/quiz-1/attempts/{attempt['id']}/questions/q1"

    wrong = client.post(url, json={"answer": "3"}, headers=USER).json()
    assert wrong["isCorrect"] is False
    assert wrong["correctAnswer"] == "4"
    assert wrong["explanation"] == "Basic arithmetic"

    client.post(url, json={"answer": "4"}, headers=USER)
    feedback = client.post(url, json={"answer": "4"}, headers=USER).json()
    assert feedback["isCorrect"] is True
    assert feedback["pointsEarned"] == 1
    assert feedback["answeredCount"] == 1
    assert feedback["totalCount"] == 3
    assert feedback["currentScorePercent"] == 25.0

    stored = client.get(f"/api/attempts/{attempt['id']}", headers=USER).json()
    assert stored["answers"] == {"q1": "4"}
    assert stored["pointsEarned"] == 1


def test_malformed_answer_is_schema_error(client: TestClient, seed) -> None:
    seed(quiz=make_quiz())
    attempt = _start(client)
    response = client.post(
        f"/api/quizzes/quiz-1/attempts/{attempt['id']}/questions/q2",
        json={"answer": "2"},
        headers=USER,
    )
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "schema_error"


def test_instant_feedback_is_practice_only(client: TestClient, seed) -> None:
    seed(quiz=make_quiz(mode="exam"))
    attempt = _start(client)
    response = client.post(
        f"/api/quizzes/quiz-1/attempts/{attempt['id']}/questions/q1",
        json={"answer": "4"},
        headers=USER,
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "practice_mode_only"


def test_finalize_twice_keeps_score(client: TestClient, seed) -> None:
    seed(quiz=make_quiz())
    attempt = _start(client)
    client.post(
        f"/api/quizzes/quiz-1/attempts/{attempt['id']}/questions/q1",
        json={"answer": "4"},
        headers=USER,
    )
    url = f"/api/quizzes/quiz-1/attempts/{attempt['id']}/finalize"

    first = client.post(url, headers=USER)
    second = client.post(url, headers=USER)
    assert first.status_code == second.status_code == 200
    assert first.json()["success"] and second.json()["success"]
    assert first.json()["attempt"]["status"] == "finalized"
    assert second.json()["attempt"]["score"] == first.json()["attempt"]["score"] == 25.0
    assert second.json()["attempt"]["finalizedAt"] == first.json()["attempt"]["finalizedAt"]


def test_exam_submit_scores_unanswered_as_incorrect(client: TestClient, seed) -> None:
    seed(quiz=make_quiz(mode="exam"))
    attempt = _start(client)
    url = f"/api/quizzes/quiz-1/attempts/{attempt['id']}/submit"
    answers = [
        {"questionId": "q1", "answer": "4"},
        {"questionId": "q2", "answer": ["3", "2"]},
    ]

    response = client.post(url, json={"answers": answers}, headers=USER)
    assert response.status_code == 200
    submitted = response.json()["attempt"]
    assert submitted["status"] == "submitted"
    assert submitted["score"] == 75.0
    assert submitted["answeredCount"] == 2

    again = client.post(url, json={"answers": answers}, headers=USER)
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "attempt_already_submitted"


def test_exam_must_be_submitted_before_finalize(client: TestClient, seed) -> None:
    seed(quiz=make_quiz(mode="exam"))
    attempt = _start(client)
    base = f"/api/quizzes/quiz-1/attempts/{attempt['id']}"

    early = client.post(f"{base}/finalize", headers=USER)
    assert early.status_code == 409
    assert early.json()["detail"]["code"] == "attempt_not_submitted"

    client.post(f"{base}/submit", json={"answers": []}, headers=USER)
    final = client.post(f"{base}/finalize", headers=USER).json()
    assert final["attempt"]["status"] == "finalized"
    assert final["attempt"]["score"] == 0


def _lecture(lecture_id: str, percent: float, completed: bool, last_updated: int) -> dict:
    return {
        "lectureId": lecture_id,
        "courseId": "course-1",
        "progressPercent": percent,
        "lastTimestampSeconds": percent,
        "durationSeconds": 100,
        "completed": completed,
        "completedAt": "2024-01-01T00:00:00+00:00" if completed else None,
        "lastUpdated": last_updated,
    }


def test_merge_keeps_max_and_is_repeatable(client: TestClient, seed) -> None:
    seed(course=make_course())
    url = "/api/progress/course-1/merge"
    client.post(url, json={"lectures": [_lecture("L1", 70, False, 5)]}, headers=USER)

    batch = {"lectures": [_lecture("L1", 40, False, 9), _lecture("L2", 95, True, 9)]}
    first = client.post(url, json=batch, headers=USER).json()
    second = client.post(url, json=batch, headers=USER).json()
    assert first == second

    lectures = {item["lectureId"]: item for item in first["lectures"]}
    assert lectures["L1"]["progressPercent"] == 70
    assert lectures["L1"]["lastUpdated"] == 9
    assert lectures["L2"]["completed"] is True
    assert first["progress"]["completedLecturesCount"] == 1
    assert first["progress"]["totalLecturesCount"] == 3


def test_merge_never_uncompletes(client: TestClient, seed) -> None:
    seed(course=make_course())
    url = "/api/progress/course-1/merge"
    client.post(url, json={"lectures": [_lecture("L1", 95, True, 1)]}, headers=USER)
    merged = client.post(url, json={"lectures": [_lecture("L1", 30, False, 2)]}, headers=USER)

    lecture = merged.json()["lectures"][0]
    assert lecture["completed"] is True
    assert lecture["progressPercent"] == 95
    assert lecture["completedAt"] == "2024-01-01T00:00:00+00:00"


def test_merge_skips_unknown_lectures(client: TestClient, seed) -> None:
    seed(course=make_course())
    response = client.post(
        "/api/progress/course-1/merge",
        json={"lectures": [_lecture("L99", 50, False, 1)]},
        headers=USER,
    )
    assert response.status_code == 200
    assert response.json()["lectures"] == []


def test_progress_is_per_user(client: TestClient, seed) -> None:
    seed(course=make_course())
    client.post(
        "/api/progress/course-1/merge",
        json={"lectures": [_lecture("L1", 95, True, 1)]},
        headers=USER,
    )
    other = client.get("/api/progress/course-1", headers=OTHER_USER).json()
    assert other["lectures"] == []


def test_update_lecture_progress_marks_completion(client: TestClient, seed) -> None:
    seed(course=make_course(lecture_count=1))
    response = client.post(
        "/api/progress/course-1/lectures/L1",
        json={"progressPercent": 92, "lastTimestampSeconds": 92, "durationSeconds": 100},
        headers=USER,
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["lectureProgress"]["completed"] is True
    assert payload["lectureProgress"]["completedAt"] is not None
    assert payload["courseProgress"]["certificateProgressPercent"] == 100
    assert payload["courseProgress"]["certificateEligible"] is True
    assert payload["courseProgress"]["isCompleted"] is True


def test_course_progress_includes_passed_quizzes(client: TestClient, seed) -> None:
    seed(quiz=make_quiz(mode="exam"), course=make_course(lecture_count=1))
    attempt = _start(client)
    client.post(
        f"/api/quizzes/quiz-1/attempts/{attempt['id']}/submit",
        json={"answers": [{"questionId": "q2", "answer": ["2", "3"]}]},
        headers=USER,
    )

    progress = client.get("/api/progress/course-1", headers=USER).json()
    assert progress["totalQuizzesCount"] == 1
    assert progress["quizzes"] == [{"quizId": "quiz-1", "completed": True, "bestScorePercent": 50.0}]
    assert progress["progress"]["completedQuizzesCount"] == 1
    assert progress["progress"]["isCompleted"] is False


def test_course_upsert_replaces_curriculum(client: TestClient) -> None:
    client.put("/api/courses/course-1", json=make_course(lecture_count=3))
    response = client.put(
        "/api/courses/course-1",
        json={"title": "Renamed", "lectures": [{"id": "L3"}, {"id": "L4", "durationSeconds": 60}]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Renamed"
    assert [item["id"] for item in body["lectures"]] == ["L3", "L4"]
