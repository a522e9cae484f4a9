"""Tests for process-wide call spacing."""

from __future__ import annotations

import asyncio

import pytest

from adaptive_tutor.generation.throttle import CallThrottler


@pytest.fixture
def throttler(clock, sleep):
    """Throttler with a one-second minimum delay on fake time."""
    return CallThrottler(min_delay=1.0, clock=clock, sleep=sleep)


def test_first_call_is_not_delayed(throttler, sleep, clock):
    """Without a previous permit the call proceeds immediately."""
    permitted_at = asyncio.run(throttler.throttle())

    assert sleep.delays == []
    assert permitted_at == clock.now
    assert throttler.last_call_time == clock.now


def test_back_to_back_calls_wait_out_the_remainder(throttler, sleep, clock):
    """A second call 0.25s after the first waits the remaining 0.75s."""

    async def scenario():
        await throttler.throttle()
        clock.advance(0.25)
        await throttler.throttle()

    asyncio.run(scenario())
    assert sleep.delays == [pytest.approx(0.75)]


def test_no_wait_once_delay_has_elapsed(throttler, sleep, clock):
    async def scenario():
        await throttler.throttle()
        clock.advance(1.5)
        await throttler.throttle()

    asyncio.run(scenario())
    assert sleep.delays == []


def test_concurrent_callers_are_released_one_delay_apart(throttler, clock):
    """Permits granted to concurrent callers are spaced by at least the minimum delay."""

    async def scenario():
        return await asyncio.gather(*(throttler.throttle() for _ in range(3)))

    start = clock.now
    permits = sorted(asyncio.run(scenario()))

    assert permits == [pytest.approx(start), pytest.approx(start + 1.0), pytest.approx(start + 2.0)]
    assert throttler.last_call_time == pytest.approx(start + 2.0), "Cursor should hold the latest permit"


def test_reset_clears_the_cursor(throttler, sleep):
    async def scenario():
        await throttler.throttle()
        throttler.reset()
        await throttler.throttle()

    asyncio.run(scenario())
    assert sleep.delays == [], "A reset throttler should not delay the next call"
