"""Error taxonomy and result type shared by every generation call."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

import openai
from pydantic import ValidationError

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Closed set of failure kinds a generation call can end in."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    STRUCTURAL = "structural"
    EXHAUSTED_RETRIES = "exhausted_retries"


USER_MESSAGES = {
    ErrorKind.TIMEOUT: "The AI service timed out. Please try again shortly.",
    ErrorKind.NETWORK: "A network error occurred while reaching the AI service. Please try again shortly.",
    ErrorKind.STRUCTURAL: "The AI service returned a response that could not be read.",
    ErrorKind.EXHAUSTED_RETRIES: "Something went wrong while generating content. Please try again.",
}


class GenerationError(Exception):
    """Base class for classified generation failures."""

    kind: ErrorKind = ErrorKind.EXHAUSTED_RETRIES

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]


class GenerationTimeout(GenerationError):
    kind = ErrorKind.TIMEOUT


class GenerationNetworkError(GenerationError):
    kind = ErrorKind.NETWORK


class StructuralError(GenerationError):
    """Raised when a response cannot be parsed or is missing required fields."""

    kind = ErrorKind.STRUCTURAL


class ExhaustedRetriesError(GenerationError):
    kind = ErrorKind.EXHAUSTED_RETRIES


_NON_RETRYABLE = (openai.AuthenticationError, openai.PermissionDeniedError)

_TIMEOUT_MARKERS = ("timed out", "timeout", "taking too long")


def is_retryable(exc: BaseException) -> bool:
    """Credential and permission failures will not succeed on a later attempt."""
    return not isinstance(exc, _NON_RETRYABLE)
_NETWORK_MARKERS = ("network", "connection", "failed to fetch")


def classify_error(exc: BaseException) -> Optional[GenerationError]:
    """
    Map an arbitrary exception onto the closed error taxonomy.

    Returns None for exceptions that are neither transport nor structural failures;
    the orchestrator reports those as exhausted retries once it gives up.
    """
    if isinstance(exc, GenerationError):
        return exc
    if isinstance(exc, (openai.APITimeoutError, asyncio.TimeoutError, TimeoutError)):
        return GenerationTimeout(str(exc) or "request timed out", cause=exc)
    if isinstance(exc, (openai.APIConnectionError, ConnectionError)):
        return GenerationNetworkError(str(exc) or "network error", cause=exc)
    if isinstance(exc, (json.JSONDecodeError, ValidationError)):
        return StructuralError(str(exc), cause=exc)

    message = str(exc).lower()
    if any(marker in message for marker in _TIMEOUT_MARKERS):
        return GenerationTimeout(str(exc), cause=exc)
    if any(marker in message for marker in _NETWORK_MARKERS):
        return GenerationNetworkError(str(exc), cause=exc)
    return None


class ResultSource(str, Enum):
    """Where the value of a GenerationResult came from."""

    CACHE = "cache"
    GENERATED = "generated"
    SIMPLIFIED = "simplified"
    TEMPLATE = "template"
    FAILED = "failed"


@dataclass
class GenerationResult(Generic[T]):
    """Outcome of an orchestrated generation call.

    `error` is set whenever the primary generation failed, including when a fallback
    still produced a usable `value`.
    """

    value: Optional[T]
    source: ResultSource
    attempts: int = 0
    error: Optional[GenerationError] = None

    @property
    def ok(self) -> bool:
        return self.source is not ResultSource.FAILED

    @property
    def degraded(self) -> bool:
        return self.source in (ResultSource.SIMPLIFIED, ResultSource.TEMPLATE)

    def unwrap(self) -> T:
        """Return the value or raise the recorded error."""
        if not self.ok:
            raise self.error or ExhaustedRetriesError("generation failed")
        return self.value  # type: ignore[return-value]
