"""
Reconciliation of cached lecture progress with the progress service.
"""
import logging

from learnsync.engine.aggregates import compute_course_snapshot, merge_lecture_sets
from learnsync.engine.certificate import evaluate_certificate
from learnsync.engine.gateway import ProgressGateway
from learnsync.engine.progress_cache import ProgressCache
from learnsync.errors import LearnSyncError, Result
from learnsync.models.progress import (
    CourseProgressResponse,
    CourseProgressSnapshot,
    LectureProgressRecord,
    QuizProgressRecord,
)

logger = logging.getLogger(__name__)


class ProgressReconciler:
    """
    Merge session for one course.

    Holds the merged per-lecture state of the course and the aggregates
    derived from it. Cached entries are cleared only after the service
    acknowledged the merge that carried them.
    """

    def __init__(self, course_id: str, cache: ProgressCache, gateway: ProgressGateway) -> None:
        self.course_id = course_id
        self.cache = cache
        self.gateway = gateway
        self.lectures: dict[str, LectureProgressRecord] = {}
        self.quizzes: dict[str, QuizProgressRecord] = {}
        self.total_lectures = 0
        self.total_quizzes = 0
        self.snapshot = CourseProgressSnapshot()
        self.certificate = evaluate_certificate(self.snapshot)
        self.merging = False
        self.last_error: LearnSyncError | None = None

    def reconcile(self) -> Result[CourseProgressSnapshot]:
        """Push cached records to the service and refresh the aggregates."""
        pending = self.cache.list_course(self.course_id)
        snapshot_keys = {key: record.lastUpdated for key, record in pending.items()}
        records = list(pending.values())

        self.merging = True
        try:
            if records:
                response = self.gateway.merge_progress(self.course_id, records)
            else:
                response = self.gateway.fetch_course_progress(self.course_id)
        except LearnSyncError as e:
            logger.warning(
                f"Progress merge for course {self.course_id} failed ({e.code}); "
                f"keeping {len(records)} cached entries"
            )
            self.last_error = e
            return Result.failure(e)
        finally:
            self.merging = False

        self.last_error = None
        # Re-apply the local records: a no-op when the service already merged
        # them, and a safeguard when its response predates our writes.
        self._apply(response, records)
        removed = self.cache.clear_snapshot(snapshot_keys)
        logger.info(
            f"Reconciled course {self.course_id}: {len(records)} sent, {removed} cleared"
        )
        return Result.success(self.snapshot)

    def _apply(
        self, response: CourseProgressResponse, local_records: list[LectureProgressRecord]
    ) -> None:
        merged = merge_lecture_sets(self.lectures, response.lectures)
        merged = merge_lecture_sets(merged, local_records)
        # Only lectures of the current curriculum count toward the aggregates
        curriculum = set(response.lectureIds)
        dropped = sorted(set(merged) - curriculum)
        if dropped:
            logger.info(f"Ignoring progress of lectures outside course {self.course_id}: {dropped}")
        self.lectures = {
            lecture_id: record for lecture_id, record in merged.items() if lecture_id in curriculum
        }
        for quiz in response.quizzes:
            previous = self.quizzes.get(quiz.quizId)
            if previous is not None and previous.completed and not quiz.completed:
                quiz = quiz.model_copy(update={"completed": True})
            self.quizzes[quiz.quizId] = quiz
        self.total_lectures = response.totalLecturesCount
        self.total_quizzes = response.totalQuizzesCount
        self._recompute()

    def _recompute(self) -> None:
        self.snapshot = compute_course_snapshot(
            self.lectures.values(),
            self.quizzes.values(),
            self.total_lectures,
            self.total_quizzes,
        )
        self.certificate = evaluate_certificate(self.snapshot)
