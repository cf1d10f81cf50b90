"""Progress-related Pydantic models."""
from pydantic import BaseModel, Field


class LectureProgressRecord(BaseModel):
    """Watch progress of one lecture."""

    lectureId: str = Field(..., min_length=1)
    courseId: str | None = None
    progressPercent: float = Field(0, ge=0, le=100)
    lastTimestampSeconds: float = Field(0, ge=0)
    durationSeconds: float = Field(0, ge=0)
    completed: bool = False
    completedAt: str | None = None
    lastUpdated: int = 0


class QuizProgressRecord(BaseModel):
    """Completion state of one quiz, derived from finished attempts."""

    quizId: str
    completed: bool = False
    bestScorePercent: float | None = None


class CourseProgressSnapshot(BaseModel):
    """Course-level aggregates. Always recomputed from per-item records."""

    completedLecturesCount: int = 0
    totalLecturesCount: int = 0
    completedQuizzesCount: int = 0
    totalQuizzesCount: int = 0
    overallProgressPercent: float = 0
    videoProgressPercent: float = 0
    quizProgressPercent: float = 0
    certificateProgressPercent: int = 0
    certificateEligible: bool = False
    isCompleted: bool = False


class CourseProgressResponse(BaseModel):
    """Per-item records of a course plus the derived snapshot."""

    courseId: str
    # Curriculum lecture ids; progress outside this list never counts
    lectureIds: list[str] = []
    lectures: list[LectureProgressRecord] = []
    quizzes: list[QuizProgressRecord] = []
    totalLecturesCount: int = 0
    totalQuizzesCount: int = 0
    progress: CourseProgressSnapshot = CourseProgressSnapshot()


class MergeProgressRequest(BaseModel):
    """Locally cached lecture records to merge into the server state."""

    lectures: list[LectureProgressRecord] = []


class LectureProgressUpdate(BaseModel):
    """Single lecture progress write."""

    progressPercent: float = Field(0, ge=0, le=100)
    lastTimestampSeconds: float = Field(0, ge=0)
    durationSeconds: float = Field(0, ge=0)
    completed: bool = False


class LectureProgressUpdateResponse(BaseModel):
    """Merged lecture record and the refreshed course aggregates."""

    lectureProgress: LectureProgressRecord
    courseProgress: CourseProgressSnapshot
