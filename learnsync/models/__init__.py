"""Pydantic models."""
from learnsync.models.answers import (
    AnswerValue,
    ChoiceAnswer,
    MultiSelectAnswer,
    TextAnswer,
    TrueFalseAnswer,
    build_answer,
)
from learnsync.models.catalog import CourseDefinition, LectureDefinition
from learnsync.models.progress import (
    CourseProgressResponse,
    CourseProgressSnapshot,
    LectureProgressRecord,
    LectureProgressUpdate,
    LectureProgressUpdateResponse,
    MergeProgressRequest,
    QuizProgressRecord,
)
from learnsync.models.quiz import (
    Attempt,
    AttemptActionResponse,
    AttemptAnswerItem,
    AttemptStatus,
    Feedback,
    Question,
    QuestionAnswerRequest,
    QuestionType,
    QuizDefinition,
    QuizMode,
    QuizPayload,
    RawAnswer,
    SubmitAttemptRequest,
)

__all__ = [
    "AnswerValue",
    "Attempt",
    "AttemptActionResponse",
    "AttemptAnswerItem",
    "AttemptStatus",
    "ChoiceAnswer",
    "CourseDefinition",
    "CourseProgressResponse",
    "CourseProgressSnapshot",
    "Feedback",
    "LectureDefinition",
    "LectureProgressRecord",
    "LectureProgressUpdate",
    "LectureProgressUpdateResponse",
    "MergeProgressRequest",
    "MultiSelectAnswer",
    "Question",
    "QuestionAnswerRequest",
    "QuestionType",
    "QuizDefinition",
    "QuizMode",
    "QuizPayload",
    "QuizProgressRecord",
    "RawAnswer",
    "SubmitAttemptRequest",
    "TextAnswer",
    "TrueFalseAnswer",
    "build_answer",
]
