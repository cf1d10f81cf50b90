"""Database models."""
from learnsync.models.db.attempt import AttemptAnswerRecord, AttemptRecord
from learnsync.models.db.cache import CacheEntry
from learnsync.models.db.course import Course, Lecture
from learnsync.models.db.progress import LectureProgress
from learnsync.models.db.quiz import QuizRecord

__all__ = [
    "AttemptAnswerRecord",
    "AttemptRecord",
    "CacheEntry",
    "Course",
    "Lecture",
    "LectureProgress",
    "QuizRecord",
]
