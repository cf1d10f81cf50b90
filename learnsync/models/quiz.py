"""Quiz and attempt Pydantic models."""
import enum

from pydantic import BaseModel, Field

RawAnswer = str | list[str]


class QuestionType(str, enum.Enum):
    """Kinds of questions a quiz may contain."""

    CHOICE = "choice"
    TRUE_FALSE = "true_false"
    MULTI_SELECT = "multi_select"
    TEXT = "text"


class QuizMode(str, enum.Enum):
    """Practice gives per-question feedback, exam takes one batched submission."""

    PRACTICE = "practice"
    EXAM = "exam"


class AttemptStatus(str, enum.Enum):
    """Status of a quiz attempt. Transitions only move forward."""

    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    FINALIZED = "finalized"


class Question(BaseModel):
    """Single question of a quiz definition."""

    id: str = Field(..., min_length=1)
    type: QuestionType
    prompt: str = ""
    options: list[str] | None = None
    correctAnswer: RawAnswer | None = None
    explanation: str | None = None
    points: float = Field(1, ge=0)


class QuizDefinition(BaseModel):
    """Quiz definition. Immutable for the lifetime of an attempt."""

    id: str = Field(..., min_length=1)
    title: str = ""
    courseId: str | None = None
    questions: list[Question] = []
    passingScore: float = Field(0, ge=0, le=100)
    timeLimitMinutes: float | None = Field(None, ge=0)
    mode: QuizMode = QuizMode.EXAM

    def find_question(self, question_id: str) -> Question | None:
        return next((q for q in self.questions if q.id == question_id), None)

    @property
    def total_points(self) -> float:
        return sum(q.points for q in self.questions)


class Attempt(BaseModel):
    """One learner's pass through a quiz."""

    id: str
    quizId: str
    userId: str
    startedAt: str
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    answers: dict[str, RawAnswer] = {}
    score: float | None = None
    pointsEarned: float = 0
    answeredCount: int = 0
    submittedAt: str | None = None
    finalizedAt: str | None = None


class Feedback(BaseModel):
    """Instant feedback returned for a practice-mode answer."""

    isCorrect: bool | None = None
    correctAnswer: RawAnswer | None = None
    explanation: str | None = None
    pointsEarned: float = 0
    currentScorePercent: float = 0
    answeredCount: int = 0
    totalCount: int = 0


class QuizPayload(BaseModel):
    """Quiz definition together with the caller's attempts."""

    quiz: QuizDefinition
    attempts: list[Attempt] = []


class QuestionAnswerRequest(BaseModel):
    """Model for a single practice-mode answer."""

    answer: RawAnswer


class AttemptAnswerItem(BaseModel):
    """Answer entry of a batched submission."""

    questionId: str = Field(..., min_length=1)
    answer: RawAnswer


class SubmitAttemptRequest(BaseModel):
    """Model for submitting an exam attempt."""

    answers: list[AttemptAnswerItem] = []


class AttemptActionResponse(BaseModel):
    """Model for submit and finalize responses."""

    success: bool
    attempt: Attempt
