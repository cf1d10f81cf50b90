"""
Quiz countdown timer driven by explicit ticks.

The timer never reads a clock itself. Each ``tick()`` is one second; a
``MonotonicTicker`` turns a monotonic clock into the number of ticks due,
so tests can drive expiry, pause and resume with synthetic ticks.
"""
import logging
import time
from typing import Callable

from learnsync.config import LOW_TIME_WARNING_RATIO, LOW_TIME_WARNING_SECONDS

logger = logging.getLogger(__name__)


def format_time(seconds: int | None) -> str:
    """Render seconds as MM:SS, or HH:MM:SS past an hour."""
    if seconds is None:
        return "--:--"
    seconds = max(int(seconds), 0)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class MonotonicTicker:
    """Counts whole seconds elapsed on a monotonic clock between polls."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._last = clock()

    def due(self) -> int:
        now = self._clock()
        ticks = int(now - self._last)
        if ticks > 0:
            self._last += ticks
        return ticks


class QuizTimer:
    """Single-shot countdown with pause/resume and a low-time warning."""

    def __init__(self, on_expire: Callable[[], None] | None = None) -> None:
        self.on_expire = on_expire
        self.total_seconds = 0
        self.remaining = 0
        self.running = False
        self.paused = False
        self.expired = False
        self._fired = False

    def start(self, limit_minutes: float, remaining_seconds: int | None = None) -> None:
        """Begin counting down from the limit (or a restored remainder)."""
        if not limit_minutes or limit_minutes <= 0:
            raise ValueError("A timer needs a positive time limit")
        if self._fired:
            raise RuntimeError("Expired timer cannot be restarted; reinitialize it")
        self.total_seconds = int(round(limit_minutes * 60))
        if remaining_seconds is None:
            self.remaining = self.total_seconds
        else:
            self.remaining = min(max(int(remaining_seconds), 0), self.total_seconds)
        self.running = True
        self.paused = False
        self.expired = False

    def pause(self) -> None:
        if self.running:
            self.paused = True

    def resume(self) -> None:
        if self.running and self.paused:
            self.paused = False

    def stop(self) -> None:
        """Stop counting without firing ``on_expire``."""
        self.running = False
        self.paused = False

    def tick(self) -> None:
        """Advance one second. Ticks while paused or stopped are dropped."""
        if not self.running or self.paused or self.expired:
            return
        if self.remaining > 0:
            self.remaining -= 1
        if self.remaining <= 0:
            self._expire()

    def _expire(self) -> None:
        self.remaining = 0
        self.expired = True
        self.running = False
        if self._fired:
            return
        self._fired = True
        logger.info("Quiz timer expired")
        if self.on_expire is not None:
            self.on_expire()

    @property
    def warning_threshold(self) -> float:
        return min(LOW_TIME_WARNING_SECONDS, self.total_seconds * LOW_TIME_WARNING_RATIO)

    @property
    def is_low_time(self) -> bool:
        return self.total_seconds > 0 and self.remaining <= self.warning_threshold

    @property
    def elapsed(self) -> int:
        return self.total_seconds - self.remaining


def create_timer(
    limit_minutes: float | None,
    on_expire: Callable[[], None] | None = None,
    remaining_seconds: int | None = None,
) -> QuizTimer | None:
    """A started timer for a positive limit, None for untimed quizzes."""
    if not limit_minutes or limit_minutes <= 0:
        return None
    timer = QuizTimer(on_expire)
    timer.start(limit_minutes, remaining_seconds)
    return timer
