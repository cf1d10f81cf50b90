"""Catalog models used to seed the quiz and progress services."""
from pydantic import BaseModel, Field


class LectureDefinition(BaseModel):
    """Lecture entry of a course curriculum."""

    id: str = Field(..., min_length=1)
    title: str = ""
    durationSeconds: float = Field(0, ge=0)


class CourseDefinition(BaseModel):
    """Course curriculum."""

    title: str = ""
    lectures: list[LectureDefinition] = []
