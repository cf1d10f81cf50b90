import itertools

from fastapi.testclient import TestClient

from conftest import USER, InProcessSession, make_course
from learnsync.engine.aggregates import (
    compute_course_snapshot,
    merge_lecture_records,
    merge_lecture_sets,
)
from learnsync.engine.gateway import ProgressServiceClient
from learnsync.engine.progress_cache import ProgressCache
from learnsync.engine.reconciler import ProgressReconciler
from learnsync.engine.storage import InMemoryStore
from learnsync.errors import ErrorKind, NetworkError
from learnsync.models.progress import (
    CourseProgressResponse,
    LectureProgressRecord,
    QuizProgressRecord,
)


def _record(
    lecture_id: str, percent: float, completed: bool = False, **extra
) -> LectureProgressRecord:
    return LectureProgressRecord(
        lectureId=lecture_id, progressPercent=percent, completed=completed, **extra
    )


class FakeProgressGateway:
    """In-memory progress service applying the same merge rule as the real one."""

    def __init__(self, total_lectures: int = 10, total_quizzes: int = 0) -> None:
        self.lectures: dict[str, LectureProgressRecord] = {}
        self.quizzes: list[QuizProgressRecord] = []
        self.curriculum = [f"L{i}" for i in range(1, total_lectures + 1)]
        self.total_quizzes = total_quizzes
        self.merge_calls: list[list[LectureProgressRecord]] = []
        self.fail_with: Exception | None = None
        self.during_merge = None

    def _response(self, course_id: str) -> CourseProgressResponse:
        lectures = list(self.lectures.values())
        total = len(self.curriculum)
        return CourseProgressResponse(
            courseId=course_id,
            lectureIds=self.curriculum,
            lectures=lectures,
            quizzes=self.quizzes,
            totalLecturesCount=total,
            totalQuizzesCount=self.total_quizzes,
            progress=compute_course_snapshot(lectures, self.quizzes, total, self.total_quizzes),
        )

    def merge_progress(self, course_id, records):
        self.merge_calls.append(list(records))
        if self.during_merge is not None:
            self.during_merge()
        if self.fail_with is not None:
            raise self.fail_with
        known = [record for record in records if record.lectureId in self.curriculum]
        self.lectures = merge_lecture_sets(self.lectures, known)
        return self._response(course_id)

    def fetch_course_progress(self, course_id):
        if self.fail_with is not None:
            raise self.fail_with
        return self._response(course_id)

    def update_lecture_progress(self, course_id, lecture_id, progress):
        raise NotImplementedError


def _setup(total_lectures: int = 10):
    cache = ProgressCache(InMemoryStore())
    gateway = FakeProgressGateway(total_lectures)
    return cache, gateway, ProgressReconciler("c1", cache, gateway)


def test_server_ahead_of_local() -> None:
    cache, gateway, reconciler = _setup()
    gateway.lectures["L1"] = _record("L1", 70)
    cache.record("c1", "L1", 40, 100)

    result = reconciler.reconcile()
    assert result.ok
    assert reconciler.lectures["L1"].progressPercent == 70
    assert reconciler.lectures["L1"].completed is False
    assert cache.list_course("c1") == {}


def test_local_completion_wins() -> None:
    cache, gateway, reconciler = _setup()
    gateway.lectures["L1"] = _record("L1", 30)
    cache.record("c1", "L1", 95, 100)

    reconciler.reconcile()
    assert reconciler.lectures["L1"].progressPercent == 95
    assert reconciler.lectures["L1"].completed is True
    assert gateway.lectures["L1"].completed is True


def test_merge_rule_is_idempotent_and_commutative() -> None:
    records = [
        _record("L1", 40, lastUpdated=3),
        _record("L1", 95, True, completedAt="2024-01-02T00:00:00+00:00", lastUpdated=1),
        _record("L1", 70, lastTimestampSeconds=70, lastUpdated=2),
        _record("L1", 99, True, completedAt="2024-01-01T00:00:00+00:00"),
    ]
    results = {
        merge_lecture_sets({}, order)["L1"].model_dump_json()
        for order in itertools.permutations(records)
    }
    assert len(results) == 1

    merged = merge_lecture_sets({}, records)
    assert merge_lecture_sets(merged, records) == merged
    final = merged["L1"]
    assert final.progressPercent == 99
    assert final.completed is True
    assert final.completedAt == "2024-01-01T00:00:00+00:00"
    assert final.lastUpdated == 3
    assert merge_lecture_records(final, final) == final


def test_reconcile_twice_is_stable() -> None:
    cache, gateway, reconciler = _setup()
    cache.record("c1", "L1", 95, 100)
    cache.record("c1", "L2", 50, 100)

    first = reconciler.reconcile().value
    second = reconciler.reconcile().value
    assert first == second
    assert first.completedLecturesCount == 1
    # Nothing left to send: the second pass only refreshes
    assert len(gateway.merge_calls) == 1


def test_failed_merge_keeps_cache() -> None:
    cache, gateway, reconciler = _setup()
    cache.record("c1", "L1", 95, 100)
    gateway.fail_with = NetworkError("timeout")

    result = reconciler.reconcile()
    assert not result.ok
    assert result.error_kind == ErrorKind.NETWORK
    assert reconciler.last_error is result.error
    assert reconciler.merging is False
    assert cache.get("c1", "L1") is not None

    gateway.fail_with = None
    assert reconciler.reconcile().ok
    assert cache.get("c1", "L1") is None
    assert len(gateway.merge_calls) == 2


def test_write_during_merge_survives() -> None:
    cache, gateway, reconciler = _setup()
    cache.record("c1", "L1", 40, 100)
    gateway.during_merge = lambda: cache.record("c1", "L1", 60, 100)

    assert reconciler.reconcile().ok
    pending = cache.get("c1", "L1")
    assert pending is not None
    assert pending.progressPercent == 60

    gateway.during_merge = None
    reconciler.reconcile()
    assert cache.get("c1", "L1") is None
    assert gateway.lectures["L1"].progressPercent == 60


def test_aggregates_follow_merged_records() -> None:
    cache, gateway, reconciler = _setup(total_lectures=10)
    for i in range(1, 10):
        gateway.lectures[f"L{i}"] = _record(f"L{i}", 100, True)
    gateway.quizzes = [QuizProgressRecord(quizId="Q1", completed=False)]
    gateway.total_quizzes = 1

    snapshot = reconciler.reconcile().value
    assert snapshot.completedLecturesCount == 9
    assert snapshot.certificateProgressPercent == 90
    assert snapshot.certificateEligible is True
    assert snapshot.isCompleted is False
    assert reconciler.certificate.eligible is True
    assert reconciler.certificate.can_download is False


def test_quiz_completion_is_sticky_across_refreshes() -> None:
    cache, gateway, reconciler = _setup(total_lectures=0)
    gateway.total_quizzes = 1
    gateway.quizzes = [QuizProgressRecord(quizId="Q1", completed=True, bestScorePercent=80)]
    reconciler.reconcile()

    gateway.quizzes = [QuizProgressRecord(quizId="Q1", completed=False)]
    snapshot = reconciler.reconcile().value
    assert snapshot.completedQuizzesCount == 1
    assert snapshot.isCompleted is True


def test_lectures_outside_curriculum_never_count() -> None:
    cache, gateway, reconciler = _setup(total_lectures=10)
    for i in range(1, 9):
        cache.record("c1", f"L{i}", 100, 100)
    cache.record("c1", "ghost", 100, 100)

    snapshot = reconciler.reconcile().value
    assert "ghost" not in reconciler.lectures
    assert snapshot.completedLecturesCount == 8
    assert snapshot.certificateProgressPercent == 80
    assert snapshot.certificateEligible is False
    assert cache.list_course("c1") == {}


def test_removed_lecture_drops_out_of_aggregates() -> None:
    cache, gateway, reconciler = _setup(total_lectures=2)
    cache.record("c1", "L1", 100, 100)
    cache.record("c1", "L2", 100, 100)
    assert reconciler.reconcile().value.isCompleted is True

    gateway.curriculum = ["L1", "L3"]
    snapshot = reconciler.reconcile().value
    assert set(reconciler.lectures) == {"L1"}
    assert snapshot.completedLecturesCount == 1
    assert snapshot.isCompleted is False


def test_client_snapshot_matches_service(client: TestClient, seed) -> None:
    seed(course=make_course(lecture_count=10))
    cache = ProgressCache(InMemoryStore())
    for i in range(1, 9):
        cache.record("course-1", f"L{i}", 100, 100)
    cache.record("course-1", "ghost", 100, 100)
    gateway = ProgressServiceClient(
        USER["X-User-Id"], "http://testserver", session=InProcessSession(client)
    )
    reconciler = ProgressReconciler("course-1", cache, gateway)

    snapshot = reconciler.reconcile().value
    server = client.get("/api/progress/course-1", headers=USER).json()["progress"]
    assert snapshot.completedLecturesCount == server["completedLecturesCount"] == 8
    assert snapshot.certificateEligible is server["certificateEligible"] is False
