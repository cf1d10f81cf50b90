"""
LectureProgress database model.
"""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from learnsync.database import Base


class LectureProgress(Base):
    """
    Server-side watch progress of one lecture for one user.
    completed is sticky and progress_percent never decreases.
    """

    __tablename__ = "lecture_progress"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    course_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    lecture_id: Mapped[str] = mapped_column(String(64), nullable=False)

    progress_percent: Mapped[float] = mapped_column(default=0, nullable=False)
    last_timestamp_seconds: Mapped[float] = mapped_column(default=0, nullable=False)
    duration_seconds: Mapped[float] = mapped_column(default=0, nullable=False)
    completed: Mapped[bool] = mapped_column(default=False, nullable=False)
    completed_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
    # Client-side write clock (milliseconds), merged with max()
    last_updated: Mapped[int] = mapped_column(sa.BigInteger, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "lecture_id", name="uq_user_lecture"),
    )
