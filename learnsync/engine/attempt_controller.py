"""
Quiz attempt lifecycle: start or resume, answer, submit, finalize.

The controller owns one quiz session at a time. Public operations never
raise domain errors; they return a ``Result`` and record the failure in
``last_error``. Network failures are handed back as-is, never retried.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from learnsync.config import AUTOSAVE_INTERVAL_SECONDS
from learnsync.engine.answer_store import AnswerStore
from learnsync.engine.gateway import QuizGateway
from learnsync.engine.snapshots import AttemptSnapshotStore
from learnsync.engine.timer import MonotonicTicker, QuizTimer, create_timer
from learnsync.errors import (
    AttemptAlreadySubmitted,
    AttemptNotInProgress,
    AttemptNotResumable,
    AttemptNotSubmitted,
    EmptyQuiz,
    ExamModeOnly,
    LearnSyncError,
    NotFound,
    PracticeModeOnly,
    Result,
    SchemaError,
)
from learnsync.models.answers import AnswerValue
from learnsync.models.quiz import (
    Attempt,
    AttemptAnswerItem,
    AttemptStatus,
    Feedback,
    QuizDefinition,
    QuizMode,
    RawAnswer,
)
from learnsync.utils.time_utils import parse_iso_timestamp

logger = logging.getLogger(__name__)


@dataclass
class QuizSessionState:
    """What the surrounding UI renders for the current session."""

    quiz: QuizDefinition | None = None
    attempt: Attempt | None = None
    answers: dict[str, RawAnswer] = field(default_factory=dict)
    flagged: list[str] = field(default_factory=list)
    loading: bool = False
    submitting: bool = False
    is_resuming: bool = False
    time_left: int | None = None
    is_low_time: bool = False
    current_question_index: int = 0
    feedback: dict[str, Feedback] = field(default_factory=dict)
    validation_warnings: list[str] = field(default_factory=list)
    last_error: LearnSyncError | None = None

    @property
    def attempt_id(self) -> str | None:
        return self.attempt.id if self.attempt else None


def remaining_from_start(limit_minutes: float, started_at: str) -> int | None:
    """Seconds left on a timed attempt judged by its start timestamp."""
    started = parse_iso_timestamp(started_at)
    if started is None:
        return None
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)
    elapsed = (datetime.now(timezone.utc) - started).total_seconds()
    return max(int(limit_minutes * 60 - elapsed), 0)


class AttemptController:
    """Drives one learner's quiz session against the quiz/attempt service."""

    def __init__(
        self,
        gateway: QuizGateway,
        user_id: str,
        snapshots: AttemptSnapshotStore | None = None,
        clock: Callable[[], float] = time.monotonic,
        autosave_interval: float | None = AUTOSAVE_INTERVAL_SECONDS,
    ) -> None:
        self.gateway = gateway
        self.user_id = user_id
        self.snapshots = snapshots
        self._clock = clock
        self._autosave_interval = autosave_interval

        self.quiz: QuizDefinition | None = None
        self.attempt: Attempt | None = None
        self.attempts: list[Attempt] = []
        self.answer_store: AnswerStore | None = None
        self.timer: QuizTimer | None = None
        self._ticker: MonotonicTicker | None = None
        self.feedback: dict[str, Feedback] = {}
        self.validation_warnings: list[str] = []
        self.loading = False
        self.submitting = False
        self.is_resuming = False
        self.last_error: LearnSyncError | None = None
        self.forced_result: Result[bool] | None = None

    def __enter__(self) -> "AttemptController":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def time_left(self) -> int | None:
        return self.timer.remaining if self.timer else None

    @property
    def state(self) -> QuizSessionState:
        store = self.answer_store
        return QuizSessionState(
            quiz=self.quiz,
            attempt=self.attempt,
            answers=store.raw_answers() if store else {},
            flagged=sorted(store.flagged) if store else [],
            loading=self.loading,
            submitting=self.submitting,
            is_resuming=self.is_resuming,
            time_left=self.time_left,
            is_low_time=bool(self.timer and self.timer.is_low_time),
            current_question_index=store.current_index if store else 0,
            feedback=dict(self.feedback),
            validation_warnings=list(self.validation_warnings),
            last_error=self.last_error,
        )

    def resume_or_start(
        self, quiz_id: str, resume_attempt_id: str | None = None
    ) -> Result[Attempt]:
        """Open a session on a resumable attempt, or on a freshly created one."""
        self.loading = True
        try:
            payload = self.gateway.fetch_quiz_definition(quiz_id)
            quiz = payload.quiz
            if not quiz.questions:
                raise EmptyQuiz(quizId=quiz_id)
            if resume_attempt_id:
                attempt = self.gateway.resume_attempt(resume_attempt_id)
                if attempt.quizId != quiz.id:
                    raise AttemptNotResumable(
                        "Attempt belongs to another quiz", attemptId=attempt.id
                    )
                if attempt.status != AttemptStatus.IN_PROGRESS:
                    raise AttemptNotResumable(attemptId=attempt.id, status=attempt.status.value)
            else:
                # A pre-existing in-progress attempt comes back as AttemptAlreadyActive
                attempt = self.gateway.create_attempt(quiz_id)
        except LearnSyncError as e:
            return self._fail(e)
        finally:
            self.loading = False

        self._open_session(quiz, attempt, payload.attempts, is_resuming=bool(resume_attempt_id))
        if self.forced_result is not None:
            # Time ran out while away: the attempt was closed on open
            if not self.forced_result.ok:
                return Result.failure(self.forced_result.error)
            return Result.success(self.attempt)
        logger.info(
            f"{'Resumed' if self.is_resuming else 'Started'} attempt {attempt.id} "
            f"of quiz {quiz.id} ({quiz.mode.value})"
        )
        return Result.success(attempt)

    def _open_session(
        self,
        quiz: QuizDefinition,
        attempt: Attempt,
        attempts: list[Attempt],
        is_resuming: bool,
    ) -> None:
        self.close()
        self.quiz = quiz
        self.attempt = attempt
        self.attempts = attempts
        self.is_resuming = is_resuming
        self.feedback = {}
        self.validation_warnings = []
        self.last_error = None
        self.forced_result = None

        self.answer_store = AnswerStore(
            quiz,
            clock=self._clock,
            autosave_interval=self._autosave_interval,
            on_save=self._save_snapshot,
        )
        if attempt.answers:
            self.answer_store.restore({"answers": attempt.answers})

        snapshot = None
        if self.snapshots is not None:
            snapshot = self.snapshots.load(quiz.id, attempt.id)
            if snapshot is None:
                self.snapshots.delete(quiz.id)
            else:
                # Buffered answers not yet sent win over the stored ones
                self.answer_store.restore(snapshot)

        remaining = None
        if snapshot is not None and snapshot.get("timeLeft") is not None:
            remaining = int(snapshot["timeLeft"])
        elif is_resuming and quiz.timeLimitMinutes:
            remaining = remaining_from_start(quiz.timeLimitMinutes, attempt.startedAt)

        self.timer = create_timer(quiz.timeLimitMinutes, self._force_end, remaining)
        self._ticker = MonotonicTicker(self._clock) if self.timer else None
        if self.timer is not None and self.timer.remaining == 0:
            # Time ran out while the session was away
            self.timer.tick()

    def update_answer(self, question_id: str, value: RawAnswer) -> Result[AnswerValue]:
        """Buffer an answer locally (exam mode, or before instant feedback)."""
        if self.answer_store is None:
            return self._fail(NotFound("No quiz session is open"))
        try:
            return Result.success(self.answer_store.update_answer(question_id, value))
        except SchemaError as e:
            return self._fail(e)

    def submit_answer(
        self, attempt_id: str, question_id: str, answer: RawAnswer
    ) -> Result[Feedback]:
        """Practice mode: record one answer and get instant feedback."""
        try:
            attempt = self._require_attempt(attempt_id)
            if self.quiz.mode != QuizMode.PRACTICE:
                raise PracticeModeOnly(attemptId=attempt_id)
            if attempt.status != AttemptStatus.IN_PROGRESS:
                raise AttemptNotInProgress(attemptId=attempt_id, status=attempt.status.value)
            self.answer_store.update_answer(question_id, answer)
            feedback = self.gateway.submit_question_answer(
                self.quiz.id, attempt_id, question_id, answer
            )
        except LearnSyncError as e:
            return self._fail(e)

        # Resubmission replaces the previous feedback for the question
        self.feedback[question_id] = feedback
        self.attempt = attempt.model_copy(
            update={
                "answers": {**attempt.answers, question_id: answer},
                "answeredCount": feedback.answeredCount,
                "pointsEarned": feedback.pointsEarned,
            }
        )
        return Result.success(feedback)

    def submit(
        self, attempt_id: str, answers: dict[str, RawAnswer] | None = None
    ) -> Result[bool]:
        """Exam mode: send every answer in one submission."""
        try:
            attempt = self._require_attempt(attempt_id)
            if self.quiz.mode != QuizMode.EXAM:
                raise ExamModeOnly(attemptId=attempt_id)
            if attempt.status != AttemptStatus.IN_PROGRESS:
                raise AttemptAlreadySubmitted(attemptId=attempt_id, status=attempt.status.value)
            for question_id, value in (answers or {}).items():
                self.answer_store.update_answer(question_id, value)

            report = self.answer_store.validate()
            if not report.is_valid:
                raise SchemaError("; ".join(report.errors), attemptId=attempt_id)
            # Warnings never block submission
            self.validation_warnings = report.warnings

            self.submitting = True
            self.answer_store.save_now()
            items = [
                AttemptAnswerItem(questionId=question_id, answer=raw)
                for question_id, raw in self.answer_store.raw_answers().items()
            ]
            response = self.gateway.submit_attempt(self.quiz.id, attempt_id, items)
        except LearnSyncError as e:
            return self._fail(e)
        finally:
            self.submitting = False

        self.attempt = response.attempt
        self._end_session()
        logger.info(f"Submitted attempt {attempt_id} with {len(items)} answers")
        return Result.success(response.success)

    def finalize(self, attempt_id: str) -> Result[bool]:
        """Close the attempt for good. Repeated calls succeed without effect."""
        try:
            attempt = self._require_attempt(attempt_id)
            if attempt.status == AttemptStatus.FINALIZED:
                return Result.success(True)
            if self.quiz.mode == QuizMode.EXAM and attempt.status == AttemptStatus.IN_PROGRESS:
                raise AttemptNotSubmitted(attemptId=attempt_id)
            self.submitting = True
            if attempt.status == AttemptStatus.IN_PROGRESS:
                self.answer_store.save_now()
            response = self.gateway.finalize_attempt(self.quiz.id, attempt_id)
        except LearnSyncError as e:
            return self._fail(e)
        finally:
            self.submitting = False

        self.attempt = response.attempt
        self._end_session()
        logger.info(f"Finalized attempt {attempt_id}")
        return Result.success(response.success)

    def pause(self) -> None:
        if self.timer is not None:
            self.timer.pause()

    def resume(self) -> None:
        if self.timer is not None:
            self.timer.resume()

    def poll(self) -> int:
        """
        Cooperative tick: feed elapsed seconds to the timer, then autosave.

        Returns the number of ticks delivered. Expiry triggers exactly one
        forced submit (exam) or finalize (practice).
        """
        ticks = 0
        if self.timer is not None and self._ticker is not None:
            ticks = self._ticker.due()
            for _ in range(ticks):
                self.timer.tick()
                if self.timer.expired:
                    break
        if self.answer_store is not None:
            self.answer_store.poll()
        return ticks

    def close(self) -> None:
        """Save buffered state and stop the timer. Safe to call twice."""
        if self.answer_store is not None:
            self.answer_store.close()
        if self.timer is not None:
            self.timer.stop()

    def _force_end(self) -> None:
        if self.attempt is None or self.forced_result is not None:
            return
        logger.info(f"Time is up for attempt {self.attempt.id}")
        if self.quiz.mode == QuizMode.EXAM:
            self.forced_result = self.submit(self.attempt.id)
        else:
            self.forced_result = self.finalize(self.attempt.id)

    def _end_session(self) -> None:
        self.close()
        if self.snapshots is not None and self.quiz is not None:
            self.snapshots.delete(self.quiz.id)

    def _save_snapshot(self, state: dict[str, Any]) -> None:
        if self.snapshots is None or self.attempt is None:
            return
        if self.attempt.status != AttemptStatus.IN_PROGRESS:
            return
        self.snapshots.save(self.quiz.id, self.attempt.id, state, time_left=self.time_left)

    def _require_attempt(self, attempt_id: str) -> Attempt:
        if self.attempt is None or self.attempt.id != attempt_id:
            raise NotFound(
                f"Attempt {attempt_id} is not open in this session", attemptId=attempt_id
            )
        return self.attempt

    def _fail(self, error: LearnSyncError) -> Result:
        self.last_error = error
        logger.warning(f"{error.code}: {error.message}")
        return Result.failure(error)
