"""Shared fakes for engine tests: a scripted completion client and controllable time."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List

import pytest

from adaptive_tutor.config.schema import Settings
from adaptive_tutor.services.tutor_service import TutorService


class FakeClock:
    """Manually advanced clock usable as both wall and monotonic time."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep that records requested delays and advances the fake clock instead of waiting."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)


class ScriptedCompletionClient:
    """Completion client that replays queued replies; exceptions in the queue are raised.

    Once the queue is empty every call fails with a network error.
    """

    def __init__(self, *replies: Any):
        self.replies: List[Any] = list(replies)
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def complete(self, messages, temperature, max_tokens):
        self.calls.append(
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        if not self.replies:
            raise ConnectionError("network unreachable")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return {"choices": [{"message": {"content": reply}}]}


@pytest.fixture
def clock():
    """Fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def sleep(clock):
    """Sleep replacement bound to the fake clock."""
    return RecordingSleep(clock)


@pytest.fixture
def client():
    """Scripted completion client with an empty reply queue."""
    return ScriptedCompletionClient()


@pytest.fixture
def service(client, clock, sleep):
    """Tutor service wired to the scripted client and fake time."""
    return TutorService(client, Settings(), clock=clock, monotonic=clock, sleep=sleep)
