"""Course catalog endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from learnsync.database import get_db
from learnsync.models.catalog import CourseDefinition, LectureDefinition
from learnsync.services import progress_service
from learnsync.utils import validate_id

router = APIRouter(prefix="/api/courses", tags=["catalog"])


@router.put("/{course_id}", response_model=CourseDefinition)
def put_course(
    course_id: str,
    payload: CourseDefinition,
    db: DbSession = Depends(get_db),
) -> CourseDefinition:
    """Create a course or replace its curriculum."""
    course_id = validate_id("courseId", course_id)
    course = progress_service.upsert_course(db, course_id, payload)
    return CourseDefinition(
        title=course.title,
        lectures=[
            LectureDefinition(
                id=lecture.lecture_id,
                title=lecture.title,
                durationSeconds=lecture.duration_seconds,
            )
            for lecture in course.lectures
        ],
    )
