from __future__ import annotations

import asyncio
import inspect
import json
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from adaptive_tutor.generation.cache import ResponseCache
from adaptive_tutor.generation.errors import (
    ErrorKind,
    ExhaustedRetriesError,
    GenerationError,
    GenerationResult,
    ResultSource,
    StructuralError,
    classify_error,
    is_retryable,
)
from adaptive_tutor.generation.json_repair import parse_json
from adaptive_tutor.generation.throttle import CallThrottler
from adaptive_tutor.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

Generate = Callable[[], Awaitable[str]]
Parse = Callable[[str], T]
Fallback = Callable[[GenerationError], Union[Awaitable[Any], Any]]


class GenerationOrchestrator:
    """
    Run generation calls through cache, throttle, retry and fallback.

    Every call follows the same path: a cache hit returns immediately; otherwise
    `generate` is attempted up to `max_retries` times with exponential backoff, each
    attempt first taking a permit from the throttler. Raw text is turned into a value
    by `parse`; any exception from either step counts as a failed attempt, and
    credential or permission errors end the loop early. Successful values are cached.
    When attempts are exhausted the optional `fallback` receives the classified error
    and its value is returned uncached.

    Parameters
    ----------
    cache : ResponseCache
        Shared response cache.
    throttler : CallThrottler
        Process-wide call spacing.
    max_retries : int
        Upper bound on `generate` invocations per call.
    backoff_base : float
        Delay before the second attempt; doubled for each later attempt.
    sleep : Callable[[float], Awaitable[None]]
        Injected for tests; defaults to `asyncio.sleep`.
    """

    def __init__(
        self,
        cache: ResponseCache,
        throttler: CallThrottler,
        max_retries: int = 2,
        backoff_base: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.cache = cache
        self.throttler = throttler
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._sleep = sleep

    async def call(
        self,
        call_type: str,
        params: Any,
        generate: Generate,
        parse: Parse,
        fallback: Optional[Fallback] = None,
    ) -> GenerationResult:
        cached = self.cache.get(call_type, params)
        if cached is not None:
            logger.debug("generation_cache_hit", call_type=call_type)
            return GenerationResult(value=cached, source=ResultSource.CACHE)

        last_exc: Optional[BaseException] = None
        last_classified: Optional[GenerationError] = None
        attempts = 0
        for attempt in range(1, self.max_retries + 1):
            await self.throttler.throttle()
            attempts = attempt
            try:
                raw = await generate()
                value = parse(raw)
            except Exception as exc:  # noqa: BLE001
                last_exc = exc
                last_classified = classify_error(exc)
                logger.warning(
                    "generation_attempt_failed",
                    call_type=call_type,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error_kind=last_classified.kind.value if last_classified else None,
                    error=str(exc),
                )
                if not is_retryable(exc):
                    logger.warning("generation_not_retryable", call_type=call_type, error=str(exc))
                    break
                if attempt < self.max_retries:
                    delay = self.backoff_base * 2 ** (attempt - 1)
                    logger.debug("generation_backoff", call_type=call_type, delay=delay)
                    await self._sleep(delay)
                continue

            self.cache.set(call_type, params, value)
            logger.info("generation_succeeded", call_type=call_type, attempt=attempt)
            return GenerationResult(value=value, source=ResultSource.GENERATED, attempts=attempt)

        error = self._final_error(call_type, last_exc, last_classified)
        if fallback is None:
            logger.error(
                "generation_failed", call_type=call_type, error_kind=error.kind.value, error=str(error)
            )
            return GenerationResult(
                value=None, source=ResultSource.FAILED, attempts=attempts, error=error
            )

        outcome = fallback(error)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        if isinstance(outcome, GenerationResult):
            result = outcome
            result.error = result.error or error
            result.attempts = attempts + result.attempts
        else:
            result = GenerationResult(
                value=outcome, source=ResultSource.TEMPLATE, attempts=attempts, error=error
            )
        logger.warning(
            "generation_degraded",
            call_type=call_type,
            source=result.source.value,
            error_kind=error.kind.value,
        )
        return result

    async def degrade(
        self,
        call_type: str,
        simplified: Generate,
        parse: Parse,
        template: Callable[[], T],
        error: Optional[GenerationError] = None,
    ) -> GenerationResult:
        """
        One throttled attempt with a simplified prompt, then a deterministic template.

        Used as the body of a `fallback`; never retried and never cached.
        """
        await self.throttler.throttle()
        try:
            value = parse(await simplified())
        except Exception as exc:  # noqa: BLE001
            logger.info("generation_template_fallback", call_type=call_type, error=str(exc))
            return GenerationResult(value=template(), source=ResultSource.TEMPLATE, error=error)
        return GenerationResult(value=value, source=ResultSource.SIMPLIFIED, attempts=1, error=error)

    @staticmethod
    def _final_error(
        call_type: str,
        last_exc: Optional[BaseException],
        last_classified: Optional[GenerationError],
    ) -> GenerationError:
        if last_classified is not None and last_classified.kind in (
            ErrorKind.TIMEOUT,
            ErrorKind.NETWORK,
            ErrorKind.STRUCTURAL,
        ):
            return last_classified
        return ExhaustedRetriesError(
            f"{call_type} failed after all retry attempts: {last_exc}", cause=last_exc
        )


# -- parse helpers ----------------------------------------------------------------


def parse_text(raw: str) -> str:
    """Accept any non-empty completion as plain text."""
    text = (raw or "").strip()
    if not text:
        raise StructuralError("No content received from the completion service")
    return text


def model_parser(model: Type[M], check: Optional[Callable[[M], None]] = None) -> Parse:
    """
    Build a parser that cleans, repairs and validates JSON into `model`.

    `check` may raise StructuralError for constraints the model cannot express.
    """

    def parse(raw: str) -> M:
        if not raw or not raw.strip():
            raise StructuralError("No content received from the completion service")
        try:
            value = model.model_validate(parse_json(raw))
        except (ValidationError, json.JSONDecodeError) as exc:
            raise StructuralError(f"Invalid {model.__name__} response: {exc}", cause=exc) from exc
        if check is not None:
            check(value)
        return value

    return parse
