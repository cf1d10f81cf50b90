"""
Course and Lecture database models.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnsync.database import Base


class Course(Base):
    """Course curriculum header."""

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    lectures: Mapped[list["Lecture"]] = relationship(
        "Lecture",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Lecture.position",
    )


class Lecture(Base):
    """Lecture of a course, in curriculum order."""

    __tablename__ = "lectures"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    course_id: Mapped[str] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    lecture_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    duration_seconds: Mapped[float] = mapped_column(default=0, nullable=False)
    position: Mapped[int] = mapped_column(default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("course_id", "lecture_id", name="uq_course_lecture"),
    )

    course: Mapped["Course"] = relationship("Course", back_populates="lectures")
