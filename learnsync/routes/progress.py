"""Lecture progress endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from learnsync.database import get_db
from learnsync.dependencies.user import get_current_user_id
from learnsync.models.progress import (
    CourseProgressResponse,
    LectureProgressUpdate,
    LectureProgressUpdateResponse,
    MergeProgressRequest,
)
from learnsync.services import progress_service
from learnsync.utils import validate_id

router = APIRouter(prefix="/api/progress/{course_id}", tags=["progress"])


@router.get("", response_model=CourseProgressResponse)
def get_course_progress(
    course_id: str,
    user_id: str = Depends(get_current_user_id),
    db: DbSession = Depends(get_db),
) -> CourseProgressResponse:
    """Get the caller's progress in a course."""
    course_id = validate_id("courseId", course_id)
    return progress_service.get_course_progress(db, user_id, course_id)


@router.post("/merge", response_model=CourseProgressResponse)
def merge_progress(
    course_id: str,
    payload: MergeProgressRequest,
    user_id: str = Depends(get_current_user_id),
    db: DbSession = Depends(get_db),
) -> CourseProgressResponse:
    """Merge locally cached lecture progress. Safe to replay."""
    course_id = validate_id("courseId", course_id)
    return progress_service.merge_progress(db, user_id, course_id, payload.lectures)


@router.post("/lectures/{lecture_id}", response_model=LectureProgressUpdateResponse)
def update_lecture_progress(
    course_id: str,
    lecture_id: str,
    payload: LectureProgressUpdate,
    user_id: str = Depends(get_current_user_id),
    db: DbSession = Depends(get_db),
) -> LectureProgressUpdateResponse:
    """Write progress of a single lecture."""
    course_id = validate_id("courseId", course_id)
    lecture_id = validate_id("lectureId", lecture_id)
    return progress_service.update_lecture_progress(db, user_id, course_id, lecture_id, payload)
