"""Lecture progress storage and course aggregates."""
import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from learnsync.config import LECTURE_COMPLETION_PERCENT
from learnsync.engine.aggregates import compute_course_snapshot, merge_lecture_records
from learnsync.errors import NotFound
from learnsync.models.catalog import CourseDefinition
from learnsync.models.db.course import Course, Lecture
from learnsync.models.db.progress import LectureProgress
from learnsync.models.progress import (
    CourseProgressResponse,
    LectureProgressRecord,
    LectureProgressUpdate,
    LectureProgressUpdateResponse,
)
from learnsync.services.attempt_service import quiz_progress_records
from learnsync.utils.http_errors import api_error
from learnsync.utils.time_utils import epoch_millis, utc_now

logger = logging.getLogger(__name__)


def get_course(db: DbSession, course_id: str) -> Course | None:
    """Get course by id."""
    return db.get(Course, course_id)


def require_course(db: DbSession, course_id: str) -> Course:
    """Get course by id or raise 404."""
    course = get_course(db, course_id)
    if course is None:
        raise api_error(NotFound(f"Course {course_id} not found", courseId=course_id))
    return course


def upsert_course(db: DbSession, course_id: str, definition: CourseDefinition) -> Course:
    """Create a course or replace its curriculum."""
    lecture_ids = [item.id for item in definition.lectures]
    if len(set(lecture_ids)) != len(lecture_ids):
        raise HTTPException(status_code=400, detail="Duplicate lecture ids")

    course = get_course(db, course_id)
    if course is None:
        course = Course(id=course_id)
        db.add(course)
    course.title = definition.title

    # Update lectures in place so the (course, lecture) constraint never sees duplicates
    existing = {lecture.lecture_id: lecture for lecture in course.lectures}
    wanted = {item.id for item in definition.lectures}
    for lecture_id, lecture in existing.items():
        if lecture_id not in wanted:
            course.lectures.remove(lecture)
    for position, item in enumerate(definition.lectures):
        lecture = existing.get(item.id)
        if lecture is None:
            lecture = Lecture(lecture_id=item.id)
            course.lectures.append(lecture)
        lecture.title = item.title
        lecture.duration_seconds = item.durationSeconds
        lecture.position = position
    db.commit()
    db.refresh(course)
    logger.info(f"Stored course {course_id} with {len(definition.lectures)} lectures")
    return course


def _row_to_record(row: LectureProgress) -> LectureProgressRecord:
    return LectureProgressRecord(
        lectureId=row.lecture_id,
        courseId=row.course_id,
        progressPercent=row.progress_percent,
        lastTimestampSeconds=row.last_timestamp_seconds,
        durationSeconds=row.duration_seconds,
        completed=row.completed,
        completedAt=row.completed_at,
        lastUpdated=row.last_updated,
    )


def _progress_rows(db: DbSession, user_id: str, course_id: str) -> dict[str, LectureProgress]:
    stmt = select(LectureProgress).where(
        LectureProgress.user_id == user_id,
        LectureProgress.course_id == course_id,
    )
    return {row.lecture_id: row for row in db.execute(stmt).scalars()}


def _store_record(
    db: DbSession,
    user_id: str,
    course_id: str,
    rows: dict[str, LectureProgress],
    record: LectureProgressRecord,
) -> LectureProgressRecord:
    """Merge one incoming record into the stored row using the max/OR rule."""
    row = rows.get(record.lectureId)
    if row is None:
        row = LectureProgress(user_id=user_id, course_id=course_id, lecture_id=record.lectureId)
        db.add(row)
        rows[record.lectureId] = row
        merged = record
    else:
        merged = merge_lecture_records(_row_to_record(row), record)

    row.progress_percent = merged.progressPercent
    row.last_timestamp_seconds = merged.lastTimestampSeconds
    row.duration_seconds = merged.durationSeconds
    row.completed = merged.completed
    row.completed_at = merged.completedAt
    row.last_updated = merged.lastUpdated
    return merged.model_copy(update={"courseId": course_id})


def merge_progress(
    db: DbSession, user_id: str, course_id: str, records: list[LectureProgressRecord]
) -> CourseProgressResponse:
    """
    Merge client-cached lecture records into the stored state.

    Safe to repeat: replaying the same records leaves the state unchanged.
    Records of lectures outside the curriculum are skipped.
    """
    course = require_course(db, course_id)
    known = {lecture.lecture_id for lecture in course.lectures}
    rows = _progress_rows(db, user_id, course_id)

    merged = 0
    for record in records:
        if record.lectureId not in known:
            logger.warning(f"Skipping progress of unknown lecture {record.lectureId}")
            continue
        record = record.model_copy(update={"courseId": course_id})
        _store_record(db, user_id, course_id, rows, record)
        merged += 1
    db.commit()
    logger.info(f"Merged {merged} lecture records for user {user_id} in course {course_id}")
    return get_course_progress(db, user_id, course_id)


def update_lecture_progress(
    db: DbSession,
    user_id: str,
    course_id: str,
    lecture_id: str,
    update: LectureProgressUpdate,
) -> LectureProgressUpdateResponse:
    """Apply one direct lecture progress write."""
    course = require_course(db, course_id)
    if lecture_id not in {lecture.lecture_id for lecture in course.lectures}:
        raise api_error(NotFound(f"Lecture {lecture_id} not found", lectureId=lecture_id))

    completed = update.completed or update.progressPercent >= LECTURE_COMPLETION_PERCENT
    record = LectureProgressRecord(
        lectureId=lecture_id,
        courseId=course_id,
        progressPercent=update.progressPercent,
        lastTimestampSeconds=update.lastTimestampSeconds,
        durationSeconds=update.durationSeconds,
        completed=completed,
        completedAt=utc_now() if completed else None,
        lastUpdated=epoch_millis(),
    )
    rows = _progress_rows(db, user_id, course_id)
    stored = _store_record(db, user_id, course_id, rows, record)
    db.commit()

    progress = get_course_progress(db, user_id, course_id)
    return LectureProgressUpdateResponse(lectureProgress=stored, courseProgress=progress.progress)


def get_course_progress(db: DbSession, user_id: str, course_id: str) -> CourseProgressResponse:
    """Per-item records of a course and the aggregates derived from them."""
    course = require_course(db, course_id)
    rows = _progress_rows(db, user_id, course_id)
    lectures = [
        _row_to_record(rows[lecture.lecture_id])
        for lecture in course.lectures
        if lecture.lecture_id in rows
    ]
    quizzes = quiz_progress_records(db, user_id, course_id)
    snapshot = compute_course_snapshot(lectures, quizzes, len(course.lectures), len(quizzes))
    return CourseProgressResponse(
        courseId=course_id,
        lectureIds=[lecture.lecture_id for lecture in course.lectures],
        lectures=lectures,
        quizzes=quizzes,
        totalLecturesCount=len(course.lectures),
        totalQuizzesCount=len(quizzes),
        progress=snapshot,
    )
