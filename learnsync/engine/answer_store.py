"""
In-memory answers of a quiz session with time, flag and autosave bookkeeping.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from learnsync.config import MIN_TEXT_ANSWER_LENGTH
from learnsync.errors import SchemaError
from learnsync.models.answers import AnswerValue, build_answer
from learnsync.models.quiz import Question, QuestionType, QuizDefinition, RawAnswer

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _check_single(question: Question, raw: Any, report: ValidationReport) -> None:
    if not isinstance(raw, str):
        report.errors.append(f"Question {question.id}: answer must be a single value")


def _check_multi(question: Question, raw: Any, report: ValidationReport) -> None:
    if not isinstance(raw, list):
        report.errors.append(f"Question {question.id}: answer must be a list of options")
    elif not raw:
        report.warnings.append(f"Question {question.id}: no option selected")


def _check_text(question: Question, raw: Any, report: ValidationReport) -> None:
    if not isinstance(raw, str):
        report.errors.append(f"Question {question.id}: answer must be text")
    elif len(raw.strip()) < MIN_TEXT_ANSWER_LENGTH:
        report.warnings.append(f"Question {question.id}: answer looks too short")


SUBMISSION_CHECKS: dict[QuestionType, Callable[[Question, Any, ValidationReport], None]] = {
    QuestionType.CHOICE: _check_single,
    QuestionType.TRUE_FALSE: _check_single,
    QuestionType.MULTI_SELECT: _check_multi,
    QuestionType.TEXT: _check_text,
}


def validate_submission(quiz: QuizDefinition, answers: dict[str, Any]) -> ValidationReport:
    """
    Pre-flight check of a submission.

    Shape mismatches are errors, unanswered or thin answers are warnings.
    An unknown question type raises ``SchemaError``.
    """
    report = ValidationReport()
    unanswered = 0
    for question in quiz.questions:
        check = SUBMISSION_CHECKS.get(question.type)
        if check is None:
            raise SchemaError(
                f"Unsupported question type: {question.type}", questionId=question.id
            )
        raw = answers.get(question.id)
        if raw is None:
            unanswered += 1
            continue
        check(question, raw, report)
    if unanswered:
        report.warnings.insert(0, f"You have {unanswered} unanswered question(s).")
    return report


class AnswerStore:
    """
    Answers, per-question time and flags of one attempt.

    Time is attributed to the question being left: the clock keeps running
    for the question on screen until navigation moves away from it.
    """

    def __init__(
        self,
        quiz: QuizDefinition,
        clock: Callable[[], float] = time.monotonic,
        autosave_interval: float | None = None,
        on_save: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self.quiz = quiz
        self.answers: dict[str, AnswerValue] = {}
        self.flagged: set[str] = set()
        self.time_spent: dict[str, float] = {}
        self.current_index = 0
        self.dirty = False
        self.closed = False
        self._clock = clock
        self._autosave_interval = autosave_interval
        self._on_save = on_save
        self._question_started_at = clock()
        self._last_saved_at = self._question_started_at
        self._index = {question.id: i for i, question in enumerate(quiz.questions)}

    def __enter__(self) -> "AnswerStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def total_questions(self) -> int:
        return len(self.quiz.questions)

    @property
    def answered_count(self) -> int:
        return sum(1 for answer in self.answers.values() if not answer.is_empty)

    @property
    def progress(self) -> float:
        if not self.total_questions:
            return 0.0
        return self.answered_count / self.total_questions

    @property
    def current_question(self) -> Question | None:
        if not self.quiz.questions:
            return None
        return self.quiz.questions[self.current_index]

    def raw_answers(self) -> dict[str, RawAnswer]:
        return {question_id: answer.raw for question_id, answer in self.answers.items()}

    def _question(self, question_id: str) -> Question:
        index = self._index.get(question_id)
        if index is None:
            raise SchemaError(f"Unknown question {question_id}", questionId=question_id)
        return self.quiz.questions[index]

    def _commit_time(self) -> None:
        now = self._clock()
        current = self.current_question
        if current is not None:
            elapsed = max(now - self._question_started_at, 0.0)
            self.time_spent[current.id] = self.time_spent.get(current.id, 0.0) + elapsed
        self._question_started_at = now

    def update_answer(self, question_id: str, value: RawAnswer) -> AnswerValue:
        """Upsert an answer; malformed values raise ``SchemaError``."""
        question = self._question(question_id)
        answer = build_answer(question, value)
        self.answers[question_id] = answer
        if self._index[question_id] != self.current_index:
            # Answering another question (e.g. from the sidebar) leaves the current one
            self._commit_time()
            self.current_index = self._index[question_id]
        self.dirty = True
        return answer

    def go_to_question(self, index: int) -> bool:
        if index < 0 or index >= self.total_questions:
            return False
        if index == self.current_index:
            return True
        self._commit_time()
        self.current_index = index
        self.dirty = True
        return True

    def next_question(self) -> bool:
        return self.go_to_question(self.current_index + 1)

    def previous_question(self) -> bool:
        return self.go_to_question(self.current_index - 1)

    def toggle_flag(self, question_id: str) -> bool:
        self._question(question_id)
        if question_id in self.flagged:
            self.flagged.discard(question_id)
        else:
            self.flagged.add(question_id)
        self.dirty = True
        return question_id in self.flagged

    def validate(self) -> ValidationReport:
        return validate_submission(self.quiz, self.raw_answers())

    def poll(self) -> bool:
        """Autosave when the interval elapsed and something changed."""
        if self.closed or not self._autosave_interval or not self.dirty:
            return False
        if self._clock() - self._last_saved_at < self._autosave_interval:
            return False
        self.save_now()
        return True

    def save_now(self) -> dict[str, Any]:
        """Persist immediately (submit, navigation away, teardown)."""
        snapshot = self.snapshot()
        if self._on_save is not None:
            self._on_save(snapshot)
        self.dirty = False
        self._last_saved_at = self._clock()
        return snapshot

    def close(self) -> None:
        """Final save and autosave cancellation. Safe to call twice."""
        if self.closed:
            return
        self._commit_time()
        if self.dirty:
            self.save_now()
        self.closed = True

    def snapshot(self) -> dict[str, Any]:
        live = dict(self.time_spent)
        current = self.current_question
        if current is not None:
            # Include the running question without committing it
            running = max(self._clock() - self._question_started_at, 0.0)
            live[current.id] = live.get(current.id, 0.0) + running
        return {
            "answers": self.raw_answers(),
            "flagged": sorted(self.flagged),
            "timeSpent": live,
            "currentQuestionIndex": self.current_index,
        }

    def restore(self, snapshot: dict[str, Any]) -> None:
        """Reload buffered state; entries that no longer fit the quiz are dropped."""
        for question_id, raw in (snapshot.get("answers") or {}).items():
            try:
                self.answers[question_id] = build_answer(self._question(question_id), raw)
            except SchemaError as e:
                logger.warning(f"Dropping buffered answer for {question_id}: {e.message}")
        self.flagged = {qid for qid in snapshot.get("flagged") or [] if qid in self._index}
        self.time_spent = {
            qid: float(seconds)
            for qid, seconds in (snapshot.get("timeSpent") or {}).items()
            if qid in self._index
        }
        index = snapshot.get("currentQuestionIndex") or 0
        if isinstance(index, int) and 0 <= index < self.total_questions:
            self.current_index = index
        self._question_started_at = self._clock()
