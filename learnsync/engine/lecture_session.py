"""
Throttled progress pushes for one lecture being watched.

Every playback tick goes to the local ``ProgressCache``. Only some ticks
are sent to the progress service: the first one, growth of more than
``PROGRESS_PUSH_MIN_DELTA_PERCENT`` over the last pushed record, a change
of completion, or any change once ``PROGRESS_PUSH_INTERVAL_SECONDS`` have
passed since the last push. A qualifying tick opens a debounce window of
``PROGRESS_PUSH_DEBOUNCE_SECONDS``; the push carries the latest tick seen
when the window closes. Failed pushes are not retried here: the cached
record is picked up by the next reconciliation.
"""
import logging
import time
from typing import Callable

from learnsync.config import (
    PROGRESS_PUSH_DEBOUNCE_SECONDS,
    PROGRESS_PUSH_INTERVAL_SECONDS,
    PROGRESS_PUSH_MIN_DELTA_PERCENT,
)
from learnsync.engine.gateway import ProgressGateway
from learnsync.engine.progress_cache import ProgressCache
from learnsync.errors import LearnSyncError, Result
from learnsync.models.progress import (
    CourseProgressSnapshot,
    LectureProgressRecord,
    LectureProgressUpdate,
)

logger = logging.getLogger(__name__)


class LectureProgressSession:
    """Write-through cache plus rate-limited service pushes for one lecture."""

    def __init__(
        self,
        course_id: str,
        lecture_id: str,
        cache: ProgressCache,
        gateway: ProgressGateway,
        duration_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        min_delta_percent: float = PROGRESS_PUSH_MIN_DELTA_PERCENT,
        interval_seconds: float = PROGRESS_PUSH_INTERVAL_SECONDS,
        debounce_seconds: float = PROGRESS_PUSH_DEBOUNCE_SECONDS,
    ) -> None:
        self.course_id = course_id
        self.lecture_id = lecture_id
        self.cache = cache
        self.gateway = gateway
        self.duration_seconds = duration_seconds
        self.min_delta_percent = min_delta_percent
        self.interval_seconds = interval_seconds
        self.debounce_seconds = debounce_seconds
        self.last_pushed: LectureProgressRecord | None = None
        self.course_progress: CourseProgressSnapshot | None = None
        self.last_error: LearnSyncError | None = None
        self._clock = clock
        self._pending: LectureProgressRecord | None = None
        self._pending_since: float | None = None
        self._last_push_at: float | None = None

    @property
    def pending(self) -> LectureProgressRecord | None:
        """Record waiting for its debounce window to close."""
        return self._pending

    def update(
        self,
        current_time_seconds: float,
        duration_seconds: float | None = None,
        force: bool = False,
    ) -> Result[LectureProgressRecord] | None:
        """
        Record one playback tick.

        Returns the push outcome when this tick sent one, else None.
        ``force`` skips the throttle and pushes right away.
        """
        if duration_seconds:
            self.duration_seconds = duration_seconds
        record = self.cache.record(
            self.course_id, self.lecture_id, current_time_seconds, self.duration_seconds
        )
        if force:
            self._pending = record
            return self.flush()
        if self._pending is not None:
            # The window stays where it opened; only the payload moves on
            self._pending = record
        elif self._should_push(record):
            self._pending = record
            self._pending_since = self._clock()
        return self.poll()

    def mark_completed(self) -> Result[LectureProgressRecord] | None:
        """Manual completion, pushed without waiting."""
        self._pending = self.cache.mark_completed(
            self.course_id, self.lecture_id, self.duration_seconds or None
        )
        return self.flush()

    def poll(self) -> Result[LectureProgressRecord] | None:
        """Push the pending record once its debounce window has closed."""
        if self._pending is None or self._pending_since is None:
            return None
        if self._clock() - self._pending_since < self.debounce_seconds:
            return None
        return self.flush()

    def flush(self) -> Result[LectureProgressRecord] | None:
        """Push the pending record now, if any."""
        record = self._pending
        if record is None:
            return None
        self._pending = None
        self._pending_since = None

        update = LectureProgressUpdate(
            progressPercent=record.progressPercent,
            lastTimestampSeconds=record.lastTimestampSeconds,
            durationSeconds=record.durationSeconds,
            completed=record.completed,
        )
        try:
            response = self.gateway.update_lecture_progress(
                self.course_id, self.lecture_id, update
            )
        except LearnSyncError as e:
            logger.warning(
                f"Progress push for lecture {self.lecture_id} of course {self.course_id} "
                f"failed ({e.code}); left for the next merge"
            )
            self.last_error = e
            return Result.failure(e)

        self.last_error = None
        self.last_pushed = record
        self._last_push_at = self._clock()
        self.course_progress = response.courseProgress
        logger.debug(
            f"Pushed lecture {self.lecture_id} of course {self.course_id} "
            f"at {record.progressPercent}%"
        )
        return Result.success(response.lectureProgress)

    def close(self) -> Result[LectureProgressRecord] | None:
        """Push whatever is still waiting, e.g. when playback stops."""
        return self.flush()

    def _should_push(self, record: LectureProgressRecord) -> bool:
        last = self.last_pushed
        if last is None:
            return True
        if record.completed != last.completed:
            return True
        if record.progressPercent - last.progressPercent > self.min_delta_percent:
            return True
        if record.lastTimestampSeconds == last.lastTimestampSeconds:
            return False
        return (
            self._last_push_at is not None
            and self._clock() - self._last_push_at >= self.interval_seconds
        )
