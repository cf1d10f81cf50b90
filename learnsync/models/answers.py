"""
Typed answer values.

An answer's shape is decided by the question it belongs to, never by
inspecting the value alone: ``build_answer`` dispatches over every
``QuestionType`` and refuses values that do not fit.
"""
from typing import Annotated, Callable, Literal, Union

from pydantic import BaseModel, Field

from learnsync.errors import SchemaError
from learnsync.models.quiz import Question, QuestionType, RawAnswer


class ChoiceAnswer(BaseModel):
    kind: Literal["choice"] = "choice"
    value: str

    @property
    def raw(self) -> RawAnswer:
        return self.value

    @property
    def is_empty(self) -> bool:
        return not self.value


class TrueFalseAnswer(BaseModel):
    kind: Literal["true_false"] = "true_false"
    value: str

    @property
    def raw(self) -> RawAnswer:
        return self.value

    @property
    def is_empty(self) -> bool:
        return not self.value


class MultiSelectAnswer(BaseModel):
    kind: Literal["multi_select"] = "multi_select"
    values: list[str] = []

    @property
    def raw(self) -> RawAnswer:
        return list(self.values)

    @property
    def is_empty(self) -> bool:
        return not self.values


class TextAnswer(BaseModel):
    kind: Literal["text"] = "text"
    text: str

    @property
    def raw(self) -> RawAnswer:
        return self.text

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


AnswerValue = Annotated[
    Union[ChoiceAnswer, TrueFalseAnswer, MultiSelectAnswer, TextAnswer],
    Field(discriminator="kind"),
]


def _require_string(question: Question, raw: object) -> str:
    if not isinstance(raw, str):
        raise SchemaError(
            f"Question {question.id} expects a single string answer",
            questionId=question.id,
        )
    return raw


def _build_choice(question: Question, raw: object) -> ChoiceAnswer:
    return ChoiceAnswer(value=_require_string(question, raw))


def _build_true_false(question: Question, raw: object) -> TrueFalseAnswer:
    return TrueFalseAnswer(value=_require_string(question, raw))


def _build_multi_select(question: Question, raw: object) -> MultiSelectAnswer:
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise SchemaError(
            f"Question {question.id} expects a list of strings",
            questionId=question.id,
        )
    return MultiSelectAnswer(values=raw)


def _build_text(question: Question, raw: object) -> TextAnswer:
    return TextAnswer(text=_require_string(question, raw))


ANSWER_BUILDERS: dict[QuestionType, Callable[[Question, object], AnswerValue]] = {
    QuestionType.CHOICE: _build_choice,
    QuestionType.TRUE_FALSE: _build_true_false,
    QuestionType.MULTI_SELECT: _build_multi_select,
    QuestionType.TEXT: _build_text,
}


def build_answer(question: Question, raw: object) -> AnswerValue:
    """Build the typed answer for ``question`` from a raw wire value."""
    builder = ANSWER_BUILDERS.get(question.type)
    if builder is None:
        raise SchemaError(
            f"Unsupported question type: {question.type}", questionId=question.id
        )
    return builder(question, raw)
