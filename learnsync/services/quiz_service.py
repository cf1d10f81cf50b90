"""Quiz definition storage."""
import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from learnsync.errors import NotFound
from learnsync.models.db.quiz import QuizRecord
from learnsync.models.quiz import QuizDefinition
from learnsync.utils.http_errors import api_error

logger = logging.getLogger(__name__)


def get_quiz_record(db: DbSession, quiz_id: str) -> QuizRecord | None:
    """Get quiz record by id."""
    return db.get(QuizRecord, quiz_id)


def load_quiz(db: DbSession, quiz_id: str) -> QuizDefinition:
    """Load a quiz definition or raise 404."""
    record = get_quiz_record(db, quiz_id)
    if record is None:
        raise api_error(NotFound(f"Quiz {quiz_id} not found", quizId=quiz_id))
    return record.definition


def upsert_quiz(db: DbSession, quiz_id: str, definition: QuizDefinition) -> QuizDefinition:
    """Create or replace a quiz definition."""
    if definition.id != quiz_id:
        raise HTTPException(status_code=400, detail="Mismatched quizId")
    question_ids = [question.id for question in definition.questions]
    if len(set(question_ids)) != len(question_ids):
        raise HTTPException(status_code=400, detail="Duplicate question ids")

    record = get_quiz_record(db, quiz_id)
    if record is None:
        record = QuizRecord(id=quiz_id)
        db.add(record)
    record.definition = definition
    db.commit()
    logger.info(f"Stored quiz {quiz_id} with {len(question_ids)} questions")
    return definition


def list_course_quiz_ids(db: DbSession, course_id: str) -> list[str]:
    """Ids of the quizzes attached to a course."""
    stmt = select(QuizRecord.id).where(QuizRecord.course_id == course_id).order_by(QuizRecord.id)
    return list(db.execute(stmt).scalars())
