import pytest

from conftest import FakeClock
from learnsync.engine.timer import MonotonicTicker, QuizTimer, create_timer, format_time


def _run(timer: QuizTimer, ticks: int) -> None:
    for _ in range(ticks):
        timer.tick()


def test_countdown_and_single_expiry() -> None:
    fired = []
    timer = QuizTimer(on_expire=lambda: fired.append(True))
    timer.start(1)
    assert timer.remaining == 60

    _run(timer, 59)
    assert timer.remaining == 1
    assert not fired

    _run(timer, 5)
    assert timer.expired
    assert timer.remaining == 0
    assert fired == [True]


def test_paused_ticks_are_dropped() -> None:
    fired = []
    timer = QuizTimer(on_expire=lambda: fired.append(True))
    timer.start(1)
    _run(timer, 10)

    timer.pause()
    _run(timer, 120)
    assert timer.remaining == 50
    assert not fired

    timer.resume()
    _run(timer, 1)
    assert timer.remaining == 49


def test_stop_never_fires() -> None:
    fired = []
    timer = QuizTimer(on_expire=lambda: fired.append(True))
    timer.start(0.05)
    timer.stop()
    _run(timer, 10)
    assert not fired
    assert timer.remaining == 3


def test_expired_timer_cannot_restart() -> None:
    timer = QuizTimer()
    timer.start(0.05)
    _run(timer, 3)
    with pytest.raises(RuntimeError):
        timer.start(1)


def test_low_time_warning_threshold() -> None:
    long_timer = QuizTimer()
    long_timer.start(60)
    assert long_timer.warning_threshold == 300
    _run(long_timer, 3600 - 301)
    assert not long_timer.is_low_time
    long_timer.tick()
    assert long_timer.is_low_time

    short_timer = QuizTimer()
    short_timer.start(10)
    assert short_timer.warning_threshold == 60


def test_restored_remaining_is_capped() -> None:
    timer = QuizTimer()
    timer.start(1, remaining_seconds=500)
    assert timer.remaining == 60
    timer.start(1, remaining_seconds=20)
    assert timer.remaining == 20
    assert timer.elapsed == 40


def test_no_timer_without_limit() -> None:
    assert create_timer(None) is None
    assert create_timer(0) is None
    with pytest.raises(ValueError):
        QuizTimer().start(0)


def test_monotonic_ticker_counts_whole_seconds() -> None:
    clock = FakeClock()
    ticker = MonotonicTicker(clock)
    clock.advance(0.6)
    assert ticker.due() == 0
    clock.advance(0.6)
    assert ticker.due() == 1
    clock.advance(2.9)
    # 0.2 carried over from the previous poll
    assert ticker.due() == 3


def test_format_time() -> None:
    assert format_time(None) == "--:--"
    assert format_time(65) == "01:05"
    assert format_time(3725) == "01:02:05"
    assert format_time(-3) == "00:00"
