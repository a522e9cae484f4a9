"""Process-wide spacing of outbound generation calls."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_MIN_DELAY_SECONDS = 1.0


class CallThrottler:
    """
    Ensure consecutive generation calls are at least `min_delay` seconds apart.

    A single cursor records when the last call was permitted. The lock is held across
    the wait, so callers are released one at a time and the cursor always holds the
    most recent permit.
    """

    def __init__(
        self,
        min_delay: float = DEFAULT_MIN_DELAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_delay = min_delay
        self._clock = clock
        self._sleep = sleep
        self._last_call_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def last_call_time(self) -> float | None:
        return self._last_call_time

    async def throttle(self) -> float:
        """Wait out the remaining delay, record the permit and return its time."""
        async with self._lock:
            if self._last_call_time is not None:
                elapsed = self._clock() - self._last_call_time
                if elapsed < self.min_delay:
                    wait_time = self.min_delay - elapsed
                    logger.debug("Throttling generation call, waiting %.3fs", wait_time)
                    await self._sleep(wait_time)
            self._last_call_time = self._clock()
            return self._last_call_time

    def reset(self) -> None:
        self._last_call_time = None
