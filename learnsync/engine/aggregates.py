"""
Progress merge rule and course aggregates.

Merging two records of the same lecture takes the maximum of every
monotonic quantity and ORs completion. The rule is commutative, associative
and idempotent, so replaying a merge (retries, duplicate requests) or
changing the order of a batch never changes the result.
"""
from typing import Iterable

from learnsync.engine.certificate import certificate_progress_percent, is_certificate_eligible
from learnsync.models.progress import (
    CourseProgressSnapshot,
    LectureProgressRecord,
    QuizProgressRecord,
)
from learnsync.utils.numbers import percent


def _earliest(a: str | None, b: str | None) -> str | None:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def merge_lecture_records(
    a: LectureProgressRecord, b: LectureProgressRecord
) -> LectureProgressRecord:
    """Merge two records of the same lecture."""
    if a.lectureId != b.lectureId:
        raise ValueError(f"Cannot merge lectures {a.lectureId} and {b.lectureId}")
    completed = a.completed or b.completed
    return LectureProgressRecord(
        lectureId=a.lectureId,
        courseId=a.courseId or b.courseId,
        progressPercent=max(a.progressPercent, b.progressPercent),
        lastTimestampSeconds=max(a.lastTimestampSeconds, b.lastTimestampSeconds),
        durationSeconds=max(a.durationSeconds, b.durationSeconds),
        completed=completed,
        completedAt=_earliest(a.completedAt, b.completedAt) if completed else None,
        lastUpdated=max(a.lastUpdated, b.lastUpdated),
    )


def merge_lecture_sets(
    state: dict[str, LectureProgressRecord],
    records: Iterable[LectureProgressRecord],
) -> dict[str, LectureProgressRecord]:
    """Fold records into a lecture-id keyed state, returning a new dict."""
    merged = dict(state)
    for record in records:
        existing = merged.get(record.lectureId)
        merged[record.lectureId] = (
            record if existing is None else merge_lecture_records(existing, record)
        )
    return merged


def compute_course_snapshot(
    lectures: Iterable[LectureProgressRecord],
    quizzes: Iterable[QuizProgressRecord],
    total_lectures: int,
    total_quizzes: int,
) -> CourseProgressSnapshot:
    """Recompute every course aggregate from per-item records."""
    lectures = list(lectures)
    quizzes = list(quizzes)

    completed_lectures = min(sum(1 for item in lectures if item.completed), total_lectures)
    completed_quizzes = min(sum(1 for item in quizzes if item.completed), total_quizzes)

    # A completed lecture counts fully even if it was finished below 100%
    lecture_sum = sum(
        100.0 if item.completed else min(item.progressPercent, 100.0) for item in lectures
    )
    quiz_sum = 100.0 * completed_quizzes
    total_items = total_lectures + total_quizzes

    return CourseProgressSnapshot(
        completedLecturesCount=completed_lectures,
        totalLecturesCount=total_lectures,
        completedQuizzesCount=completed_quizzes,
        totalQuizzesCount=total_quizzes,
        overallProgressPercent=percent((lecture_sum + quiz_sum) / 100, total_items),
        videoProgressPercent=percent(lecture_sum / 100, total_lectures),
        quizProgressPercent=percent(completed_quizzes, total_quizzes),
        certificateProgressPercent=certificate_progress_percent(
            completed_lectures, total_lectures
        ),
        certificateEligible=is_certificate_eligible(completed_lectures, total_lectures),
        isCompleted=(
            total_items > 0
            and completed_lectures >= total_lectures
            and completed_quizzes >= total_quizzes
        ),
    )
