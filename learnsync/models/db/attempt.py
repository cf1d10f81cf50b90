"""
AttemptRecord and AttemptAnswerRecord database models.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnsync.database import Base
from learnsync.models.quiz import AttemptStatus


class AttemptRecord(Base):
    """
    Quiz attempt record.
    At most one in-progress attempt may exist per (user, quiz).
    """

    __tablename__ = "attempts"

    # Primary key - UUID hex generated by the service
    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)

    # References
    quiz_id: Mapped[str] = mapped_column(
        ForeignKey("quizzes.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    submitted_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    finalized_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # Status and results
    status: Mapped[str] = mapped_column(
        String(20), default=AttemptStatus.IN_PROGRESS.value, nullable=False
    )
    score: Mapped[float | None] = mapped_column(nullable=True)
    points_earned: Mapped[float] = mapped_column(default=0, nullable=False)
    answered_count: Mapped[int] = mapped_column(default=0, nullable=False)

    # Relationships
    answers: Mapped[list["AttemptAnswerRecord"]] = relationship(
        "AttemptAnswerRecord", back_populates="attempt", cascade="all, delete-orphan"
    )

    __table_args__ = (
        sa.Index(
            "uq_active_attempt",
            "user_id",
            "quiz_id",
            unique=True,
            sqlite_where=sa.text("status = 'in_progress'"),
            postgresql_where=sa.text("status = 'in_progress'"),
        ),
    )

    @property
    def is_in_progress(self) -> bool:
        return self.status == AttemptStatus.IN_PROGRESS.value


class AttemptAnswerRecord(Base):
    """
    Individual answer within an attempt.
    Re-answering a question overwrites the row instead of adding one.
    """

    __tablename__ = "attempt_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    attempt_id: Mapped[str] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)

    answer_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_correct: Mapped[bool | None] = mapped_column(nullable=True)
    points_earned: Mapped[float] = mapped_column(default=0, nullable=False)
    answered_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_attempt_question"),
    )

    attempt: Mapped["AttemptRecord"] = relationship(
        "AttemptRecord", back_populates="answers"
    )

    @property
    def answer(self) -> Any:
        """Parse answer from JSON."""
        if self.answer_json is None:
            return None
        try:
            return json.loads(self.answer_json)
        except (json.JSONDecodeError, TypeError):
            return None

    @answer.setter
    def answer(self, value: Any) -> None:
        """Serialize answer to JSON."""
        self.answer_json = json.dumps(value, ensure_ascii=False) if value is not None else None
