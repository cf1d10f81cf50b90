"""
QuizRecord database model.
"""

from __future__ import annotations

import json

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from learnsync.database import Base
from learnsync.models.quiz import QuizDefinition


class QuizRecord(Base):
    """Stored quiz definition. Questions live in a JSON snapshot."""

    __tablename__ = "quizzes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    course_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    mode: Mapped[str] = mapped_column(String(20), nullable=False)
    definition_json: Mapped[str] = mapped_column(Text, nullable=False)

    @property
    def definition(self) -> QuizDefinition:
        """Parse the full definition from JSON."""
        return QuizDefinition.model_validate(json.loads(self.definition_json))

    @definition.setter
    def definition(self, value: QuizDefinition) -> None:
        """Serialize the definition and mirror its indexed columns."""
        self.course_id = value.courseId
        self.title = value.title
        self.mode = value.mode.value
        self.definition_json = value.model_dump_json()
