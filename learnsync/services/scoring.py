"""Scoring of answers against a quiz definition."""
from dataclasses import dataclass
from typing import Callable

from learnsync.errors import SchemaError
from learnsync.models.answers import (
    AnswerValue,
    ChoiceAnswer,
    MultiSelectAnswer,
    TextAnswer,
    TrueFalseAnswer,
    build_answer,
)
from learnsync.models.quiz import Question, QuestionType, QuizDefinition, RawAnswer
from learnsync.utils.numbers import percent


@dataclass
class QuestionScore:
    question_id: str
    is_correct: bool | None
    points_earned: float


def _normalize(value: str) -> str:
    return value.strip().casefold()


def _score_single(question: Question, answer: ChoiceAnswer | TrueFalseAnswer) -> bool | None:
    if question.correctAnswer is None:
        return None
    return answer.value == question.correctAnswer


def _score_multi(question: Question, answer: MultiSelectAnswer) -> bool | None:
    expected = question.correctAnswer
    if expected is None:
        return None
    if isinstance(expected, str):
        expected = [expected]
    return set(answer.values) == set(expected)


def _score_text(question: Question, answer: TextAnswer) -> bool | None:
    # Free text without a reference answer is left for manual grading
    if not isinstance(question.correctAnswer, str):
        return None
    return _normalize(answer.text) == _normalize(question.correctAnswer)


SCORERS: dict[QuestionType, Callable[[Question, AnswerValue], bool | None]] = {
    QuestionType.CHOICE: _score_single,
    QuestionType.TRUE_FALSE: _score_single,
    QuestionType.MULTI_SELECT: _score_multi,
    QuestionType.TEXT: _score_text,
}


def score_question(question: Question, raw: RawAnswer | None) -> QuestionScore:
    """Score one answer; a missing answer counts as incorrect."""
    if raw is None:
        return QuestionScore(question.id, False, 0)
    scorer = SCORERS.get(question.type)
    if scorer is None:
        raise SchemaError(f"Unsupported question type: {question.type}", questionId=question.id)
    answer = build_answer(question, raw)
    if answer.is_empty:
        return QuestionScore(question.id, False, 0)
    is_correct = scorer(question, answer)
    return QuestionScore(question.id, is_correct, question.points if is_correct else 0)


@dataclass
class AttemptScore:
    points_earned: float
    total_points: float
    answered_count: int
    questions: dict[str, QuestionScore]

    @property
    def score_percent(self) -> float:
        return percent(self.points_earned, self.total_points)


def score_attempt(quiz: QuizDefinition, answers: dict[str, RawAnswer]) -> AttemptScore:
    """Score every question of the quiz. Answers to unknown questions are ignored."""
    questions = {}
    answered = 0
    for question in quiz.questions:
        raw = answers.get(question.id)
        result = score_question(question, raw)
        questions[question.id] = result
        if raw is not None and not build_answer(question, raw).is_empty:
            answered += 1
    return AttemptScore(
        points_earned=sum(item.points_earned for item in questions.values()),
        total_points=quiz.total_points,
        answered_count=answered,
        questions=questions,
    )
