"""
Local write-ahead log of lecture watch progress.

Every playback tick is persisted here first; entries leave the cache only
after the progress service has acknowledged a merge that contained them.
"""
import logging
from typing import Callable

from pydantic import ValidationError

from learnsync.config import LECTURE_COMPLETION_PERCENT
from learnsync.engine.storage import KeyValueStore
from learnsync.models.progress import LectureProgressRecord
from learnsync.utils.numbers import round_half_up
from learnsync.utils.time_utils import epoch_millis, utc_now

logger = logging.getLogger(__name__)

KEY_PREFIX = "course"


def progress_key(course_id: str, lecture_id: str) -> str:
    """Storage key of one lecture's progress tuple."""
    return f"{course_prefix(course_id)}{lecture_id}-progress"


def course_prefix(course_id: str) -> str:
    return f"{KEY_PREFIX}-{course_id}-lecture-"


def calculate_progress_percent(current_time: float, duration: float) -> float:
    """Watched fraction as a percentage in [0, 100], two decimals."""
    if not duration or duration <= 0:
        return 0.0
    if not current_time or current_time <= 0:
        return 0.0
    return min(round_half_up(current_time / duration * 100, 2), 100.0)


class ProgressCache:
    """Per-(course, lecture) progress records over a ``KeyValueStore``."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], int] = epoch_millis,
        completion_percent: float = LECTURE_COMPLETION_PERCENT,
    ) -> None:
        self._store = store
        self._clock = clock
        self._completion_percent = completion_percent

    def record(
        self,
        course_id: str,
        lecture_id: str,
        current_time_seconds: float,
        duration_seconds: float,
        completed_override: bool = False,
    ) -> LectureProgressRecord:
        """Persist one playback tick and return the stored record."""
        progress_percent = calculate_progress_percent(current_time_seconds, duration_seconds)
        completed = completed_override or progress_percent >= self._completion_percent
        previous = self.get(course_id, lecture_id)
        now = self._clock()

        record = LectureProgressRecord(
            lectureId=lecture_id,
            courseId=course_id,
            progressPercent=progress_percent,
            lastTimestampSeconds=max(current_time_seconds, 0.0),
            durationSeconds=max(duration_seconds, 0.0),
            completed=completed,
            completedAt=utc_now() if completed else None,
            lastUpdated=now,
        )
        if previous is not None:
            # Never downgrade: completion is sticky, progress only grows.
            # The resume position follows the latest write.
            record.progressPercent = max(previous.progressPercent, record.progressPercent)
            record.durationSeconds = record.durationSeconds or previous.durationSeconds
            if previous.completed:
                record.completed = True
                record.completedAt = previous.completedAt or record.completedAt
            record.lastUpdated = max(now, previous.lastUpdated + 1)

        self._store.put(progress_key(course_id, lecture_id), record.model_dump())
        if record.completed and (previous is None or not previous.completed):
            logger.info(f"Lecture {lecture_id} of course {course_id} completed locally")
        return record

    def mark_completed(
        self, course_id: str, lecture_id: str, duration_seconds: float | None = None
    ) -> LectureProgressRecord:
        """Manual completion: jump to the end and force ``completed``."""
        previous = self.get(course_id, lecture_id)
        duration = duration_seconds or (previous.durationSeconds if previous else 0.0)
        return self.record(course_id, lecture_id, duration, duration, completed_override=True)

    def get(self, course_id: str, lecture_id: str) -> LectureProgressRecord | None:
        """Last persisted record, or None."""
        raw = self._store.get(progress_key(course_id, lecture_id))
        return self._parse(progress_key(course_id, lecture_id), raw)

    def list_course(self, course_id: str) -> dict[str, LectureProgressRecord]:
        """All cached records of a course keyed by storage key."""
        records = {}
        for key, raw in self._store.list_by_prefix(course_prefix(course_id)).items():
            record = self._parse(key, raw)
            if record is not None:
                records[key] = record
        return records

    def clear(self, course_id: str, lecture_id: str | None = None) -> int:
        """Remove one lecture's entry, or every entry of the course."""
        if lecture_id is not None:
            key = progress_key(course_id, lecture_id)
            if self._store.get(key) is None:
                return 0
            self._store.delete(key)
            return 1
        keys = list(self._store.list_by_prefix(course_prefix(course_id)))
        for key in keys:
            self._store.delete(key)
        logger.info(f"Cleared {len(keys)} cached progress entries of course {course_id}")
        return len(keys)

    def clear_snapshot(self, snapshot: dict[str, int]) -> int:
        """
        Remove exactly the snapshotted entries.

        An entry rewritten after the snapshot was taken carries a newer
        lastUpdated and is kept for the next merge.
        """
        removed = 0
        for key, last_updated in snapshot.items():
            current = self._parse(key, self._store.get(key))
            if current is None:
                continue
            if current.lastUpdated != last_updated:
                logger.debug(f"Keeping {key}: rewritten during merge")
                continue
            self._store.delete(key)
            removed += 1
        return removed

    @staticmethod
    def _parse(key: str, raw: dict | None) -> LectureProgressRecord | None:
        if raw is None:
            return None
        try:
            return LectureProgressRecord.model_validate(raw)
        except ValidationError:
            logger.warning(f"Ignoring malformed progress entry {key}")
            return None
