"""Quiz attempt lifecycle on the server side."""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DbSession

from learnsync.errors import (
    AttemptAlreadyActive,
    AttemptAlreadySubmitted,
    AttemptNotInProgress,
    AttemptNotSubmitted,
    EmptyQuiz,
    ExamModeOnly,
    NotFound,
    PracticeModeOnly,
    SchemaError,
)
from learnsync.models.answers import build_answer
from learnsync.models.db.attempt import AttemptAnswerRecord, AttemptRecord
from learnsync.models.progress import QuizProgressRecord
from learnsync.models.quiz import (
    Attempt,
    AttemptAnswerItem,
    AttemptStatus,
    Feedback,
    QuizDefinition,
    QuizMode,
    RawAnswer,
)
from learnsync.services.quiz_service import list_course_quiz_ids, load_quiz
from learnsync.services.scoring import AttemptScore, score_attempt
from learnsync.utils.http_errors import api_error
from learnsync.utils.time_utils import to_iso

logger = logging.getLogger(__name__)

FINISHED_STATUSES = (AttemptStatus.SUBMITTED.value, AttemptStatus.FINALIZED.value)


def attempt_to_model(record: AttemptRecord) -> Attempt:
    """Convert a stored attempt into its wire model."""
    return Attempt(
        id=record.id,
        quizId=record.quiz_id,
        userId=record.user_id,
        startedAt=to_iso(record.started_at),
        status=AttemptStatus(record.status),
        answers={
            row.question_id: row.answer for row in record.answers if row.answer is not None
        },
        score=record.score,
        pointsEarned=record.points_earned,
        answeredCount=record.answered_count,
        submittedAt=to_iso(record.submitted_at),
        finalizedAt=to_iso(record.finalized_at),
    )


def get_active_attempt(db: DbSession, user_id: str, quiz_id: str) -> AttemptRecord | None:
    """The user's in-progress attempt of a quiz, if any."""
    stmt = select(AttemptRecord).where(
        AttemptRecord.user_id == user_id,
        AttemptRecord.quiz_id == quiz_id,
        AttemptRecord.status == AttemptStatus.IN_PROGRESS.value,
    )
    return db.execute(stmt).scalar_one_or_none()


def list_attempts(db: DbSession, user_id: str, quiz_id: str) -> list[Attempt]:
    """All attempts of the user on a quiz, oldest first."""
    stmt = (
        select(AttemptRecord)
        .where(AttemptRecord.user_id == user_id, AttemptRecord.quiz_id == quiz_id)
        .order_by(AttemptRecord.started_at)
    )
    return [attempt_to_model(record) for record in db.execute(stmt).scalars()]


def create_attempt(db: DbSession, user_id: str, quiz_id: str) -> AttemptRecord:
    """
    Start a new attempt.

    Fails with 409 ``attempt_already_active`` when the user already has an
    in-progress attempt of the quiz; the detail carries its id so the
    client can resume it instead.
    """
    quiz = load_quiz(db, quiz_id)
    if not quiz.questions:
        raise api_error(EmptyQuiz(quizId=quiz_id))

    active = get_active_attempt(db, user_id, quiz_id)
    if active is not None:
        raise api_error(AttemptAlreadyActive(attemptId=active.id))

    record = AttemptRecord(id=uuid.uuid4().hex, quiz_id=quiz_id, user_id=user_id)
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent create; the unique index decides
        db.rollback()
        active = get_active_attempt(db, user_id, quiz_id)
        raise api_error(AttemptAlreadyActive(attemptId=active.id if active else None))
    db.refresh(record)
    logger.info(f"User {user_id} started attempt {record.id} of quiz {quiz_id}")
    return record


def get_attempt(
    db: DbSession, user_id: str, attempt_id: str, quiz_id: str | None = None
) -> AttemptRecord:
    """Load an attempt owned by the user or raise 404."""
    record = db.get(AttemptRecord, attempt_id)
    if record is None or record.user_id != user_id:
        raise api_error(NotFound(f"Attempt {attempt_id} not found", attemptId=attempt_id))
    if quiz_id is not None and record.quiz_id != quiz_id:
        raise api_error(NotFound(f"Attempt {attempt_id} not found", attemptId=attempt_id))
    return record


def _upsert_answer(
    record: AttemptRecord, quiz: QuizDefinition, question_id: str, raw: RawAnswer
) -> None:
    question = quiz.find_question(question_id)
    if question is None:
        raise api_error(NotFound(f"Question {question_id} not found", questionId=question_id))
    try:
        build_answer(question, raw)
    except SchemaError as e:
        raise api_error(e)

    row = next((item for item in record.answers if item.question_id == question_id), None)
    if row is None:
        row = AttemptAnswerRecord(question_id=question_id)
        record.answers.append(row)
    row.answer = raw
    row.answered_at = datetime.now(timezone.utc)


def _rescore(record: AttemptRecord, quiz: QuizDefinition) -> AttemptScore:
    """Recompute per-answer and attempt totals from the stored rows."""
    answers = {row.question_id: row.answer for row in record.answers if row.answer is not None}
    result = score_attempt(quiz, answers)
    for row in record.answers:
        scored = result.questions.get(row.question_id)
        row.is_correct = scored.is_correct if scored else None
        row.points_earned = scored.points_earned if scored else 0
    record.points_earned = result.points_earned
    record.answered_count = result.answered_count
    return result


def record_question_answer(
    db: DbSession,
    user_id: str,
    quiz_id: str,
    attempt_id: str,
    question_id: str,
    raw: RawAnswer,
) -> Feedback:
    """
    Store a practice-mode answer and return instant feedback.

    Answering a question again replaces the previous answer; totals are
    recomputed from the stored rows so points are never counted twice.
    """
    quiz = load_quiz(db, quiz_id)
    record = get_attempt(db, user_id, attempt_id, quiz_id)
    if quiz.mode != QuizMode.PRACTICE:
        raise api_error(PracticeModeOnly(attemptId=attempt_id))
    if not record.is_in_progress:
        raise api_error(AttemptNotInProgress(attemptId=attempt_id, status=record.status))

    _upsert_answer(record, quiz, question_id, raw)
    result = _rescore(record, quiz)
    db.commit()

    question = quiz.find_question(question_id)
    scored = result.questions[question_id]
    return Feedback(
        isCorrect=scored.is_correct,
        correctAnswer=question.correctAnswer,
        explanation=question.explanation,
        pointsEarned=scored.points_earned,
        currentScorePercent=result.score_percent,
        answeredCount=result.answered_count,
        totalCount=len(quiz.questions),
    )


def submit_attempt(
    db: DbSession,
    user_id: str,
    quiz_id: str,
    attempt_id: str,
    items: list[AttemptAnswerItem],
) -> AttemptRecord:
    """Exam mode: store every answer and score the attempt once."""
    quiz = load_quiz(db, quiz_id)
    record = get_attempt(db, user_id, attempt_id, quiz_id)
    if quiz.mode != QuizMode.EXAM:
        raise api_error(ExamModeOnly(attemptId=attempt_id))
    if record.status in FINISHED_STATUSES:
        raise api_error(AttemptAlreadySubmitted(attemptId=attempt_id, status=record.status))

    for item in items:
        _upsert_answer(record, quiz, item.questionId, item.answer)
    # Unanswered questions have no row and score as incorrect
    result = _rescore(record, quiz)
    record.score = result.score_percent
    record.status = AttemptStatus.SUBMITTED.value
    record.submitted_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(record)
    logger.info(f"Attempt {attempt_id} submitted with score {record.score}")
    return record


def finalize_attempt(
    db: DbSession, user_id: str, quiz_id: str, attempt_id: str
) -> AttemptRecord:
    """
    Close an attempt for good.

    Repeated calls return the finalized attempt unchanged. Exam attempts
    must be submitted first; practice attempts may finalize directly.
    """
    quiz = load_quiz(db, quiz_id)
    record = get_attempt(db, user_id, attempt_id, quiz_id)
    if record.status == AttemptStatus.FINALIZED.value:
        return record
    if record.is_in_progress:
        if quiz.mode == QuizMode.EXAM:
            raise api_error(AttemptNotSubmitted(attemptId=attempt_id))
        record.score = _rescore(record, quiz).score_percent

    record.status = AttemptStatus.FINALIZED.value
    record.finalized_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(record)
    logger.info(f"Attempt {attempt_id} finalized with score {record.score}")
    return record


def quiz_progress_records(db: DbSession, user_id: str, course_id: str) -> list[QuizProgressRecord]:
    """Per-quiz completion of a course, derived from finished attempts."""
    records = []
    for quiz_id in list_course_quiz_ids(db, course_id):
        quiz = load_quiz(db, quiz_id)
        stmt = select(AttemptRecord.score).where(
            AttemptRecord.user_id == user_id,
            AttemptRecord.quiz_id == quiz_id,
            AttemptRecord.status.in_(FINISHED_STATUSES),
        )
        scores = [score for score in db.execute(stmt).scalars() if score is not None]
        best = max(scores) if scores else None
        records.append(
            QuizProgressRecord(
                quizId=quiz_id,
                completed=best is not None and best >= quiz.passingScore,
                bestScorePercent=best,
            )
        )
    return records

