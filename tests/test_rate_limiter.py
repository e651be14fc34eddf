"""Tests for `relay.rate_limiter`."""

from __future__ import annotations

import pytest

from relay.rate_limiter import RateLimiter
from tests.conftest import ManualClock


def test_limit_plus_one_calls_yield_limit_trues_then_false():
    limiter = RateLimiter(limit=3, window_ms=60_000, clock=ManualClock())
    assert [limiter.admit("U1") for _ in range(4)] == [True, True, True, False]


def test_actors_are_independent():
    limiter = RateLimiter(limit=1, window_ms=60_000, clock=ManualClock())
    assert limiter.admit("U1") is True
    assert limiter.admit("U2") is True
    assert limiter.admit("U1") is False


def test_window_slides():
    clock = ManualClock()
    limiter = RateLimiter(limit=1, window_ms=60_000, clock=clock)

    assert limiter.admit("U1") is True
    clock.advance(59_999)
    assert limiter.admit("U1") is False
    clock.advance(2)
    assert limiter.admit("U1") is True


def test_rejection_does_not_record_a_timestamp():
    clock = ManualClock()
    limiter = RateLimiter(limit=1, window_ms=1_000, clock=clock)

    assert limiter.admit("U1") is True
    clock.advance(500)
    assert limiter.admit("U1") is False  # must not extend the window
    clock.advance(501)
    assert limiter.admit("U1") is True


def test_sweep_forgets_idle_actors_only():
    clock = ManualClock()
    limiter = RateLimiter(limit=1, window_ms=1_000, clock=clock)

    limiter.admit("idle")
    clock.advance(1_500)
    limiter.admit("recent")
    clock.advance(600)  # "idle" is now 2.1s old, "recent" 0.6s

    assert limiter.sweep() == 1
    assert limiter.tracked_actors() == 1
    assert limiter.admit("recent") is False


@pytest.mark.parametrize(
    "window_ms, seconds",
    [(60_000, 60), (1_500, 2), (2_500, 3), (2_400, 2), (500, 1)],
)
def test_window_seconds_rounds_half_up(window_ms: int, seconds: int):
    assert RateLimiter(limit=1, window_ms=window_ms).window_seconds == seconds


@pytest.mark.parametrize("limit, window_ms", [(0, 1000), (1, 0)])
def test_invalid_configuration(limit: int, window_ms: int):
    with pytest.raises(ValueError):
        RateLimiter(limit=limit, window_ms=window_ms)


def test_sweeper_thread_starts_and_stops():
    limiter = RateLimiter(limit=1, window_ms=10_000)
    limiter.start_sweeper()
    limiter.start_sweeper()  # idempotent
    limiter.stop_sweeper()
