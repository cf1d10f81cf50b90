"""Quiz and quiz attempt endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from learnsync.database import get_db
from learnsync.dependencies.user import get_current_user_id
from learnsync.models.quiz import (
    Attempt,
    AttemptActionResponse,
    Feedback,
    QuestionAnswerRequest,
    QuizDefinition,
    QuizPayload,
    SubmitAttemptRequest,
)
from learnsync.services import attempt_service, quiz_service
from learnsync.utils import validate_id

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])


@router.get("/{quiz_id}", response_model=QuizPayload)
def get_quiz(
    quiz_id: str,
    user_id: str = Depends(get_current_user_id),
    db: DbSession = Depends(get_db),
) -> QuizPayload:
    """Get a quiz definition with the caller's attempts."""
    quiz_id = validate_id("quizId", quiz_id)
    quiz = quiz_service.load_quiz(db, quiz_id)
    return QuizPayload(quiz=quiz, attempts=attempt_service.list_attempts(db, user_id, quiz_id))


@router.put("/{quiz_id}", response_model=QuizDefinition)
def put_quiz(
    quiz_id: str,
    payload: QuizDefinition,
    db: DbSession = Depends(get_db),
) -> QuizDefinition:
    """Create or replace a quiz definition."""
    quiz_id = validate_id("quizId", quiz_id)
    return quiz_service.upsert_quiz(db, quiz_id, payload)


@router.post("/{quiz_id}/attempts", response_model=Attempt)
def create_attempt(
    quiz_id: str,
    user_id: str = Depends(get_current_user_id),
    db: DbSession = Depends(get_db),
) -> Attempt:
    """Start an attempt. 409 if one is already in progress."""
    quiz_id = validate_id("quizId", quiz_id)
    record = attempt_service.create_attempt(db, user_id, quiz_id)
    return attempt_service.attempt_to_model(record)


@router.post("/{quiz_id}/attempts/{attempt_id}/questions/{question_id}", response_model=Feedback)
def answer_question(
    quiz_id: str,
    attempt_id: str,
    question_id: str,
    payload: QuestionAnswerRequest,
    user_id: str = Depends(get_current_user_id),
    db: DbSession = Depends(get_db),
) -> Feedback:
    """Record a practice-mode answer and return instant feedback."""
    quiz_id = validate_id("quizId", quiz_id)
    attempt_id = validate_id("attemptId", attempt_id)
    question_id = validate_id("questionId", question_id)
    return attempt_service.record_question_answer(
        db, user_id, quiz_id, attempt_id, question_id, payload.answer
    )


@router.post("/{quiz_id}/attempts/{attempt_id}/submit", response_model=AttemptActionResponse)
def submit_attempt(
    quiz_id: str,
    attempt_id: str,
    payload: SubmitAttemptRequest,
    user_id: str = Depends(get_current_user_id),
    db: DbSession = Depends(get_db),
) -> AttemptActionResponse:
    """Submit an exam attempt."""
    quiz_id = validate_id("quizId", quiz_id)
    attempt_id = validate_id("attemptId", attempt_id)
    record = attempt_service.submit_attempt(db, user_id, quiz_id, attempt_id, payload.answers)
    return AttemptActionResponse(success=True, attempt=attempt_service.attempt_to_model(record))


@router.post("/{quiz_id}/attempts/{attempt_id}/finalize", response_model=AttemptActionResponse)
def finalize_attempt(
    quiz_id: str,
    attempt_id: str,
    user_id: str = Depends(get_current_user_id),
    db: DbSession = Depends(get_db),
) -> AttemptActionResponse:
    """Finalize an attempt. Repeated calls succeed."""
    quiz_id = validate_id("quizId", quiz_id)
    attempt_id = validate_id("attemptId", attempt_id)
    record = attempt_service.finalize_attempt(db, user_id, quiz_id, attempt_id)
    return AttemptActionResponse(success=True, attempt=attempt_service.attempt_to_model(record))
