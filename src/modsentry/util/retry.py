"""Exponential backoff retry policy for fallible coroutines, built on tenacity."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Tuple, Type, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from modsentry.util.logger import get_logger

logger = get_logger("retry")

T = TypeVar("T")

MIN_ATTEMPTS = 1
MIN_BASE_DELAY_MS = 100


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _log_retry(label: str, attempts: int, retry_state: RetryCallState) -> None:
    logger.warning(
        "[RETRY] %s attempt %d/%d failed (%s), retrying in %.0fms",
        label,
        retry_state.attempt_number,
        attempts,
        retry_state.outcome.exception() if retry_state.outcome else None,
        (retry_state.next_action.sleep if retry_state.next_action else 0) * 1000,
    )


@dataclass(slots=True)
class RetryPolicy:
    """Retry an async operation with exponentially growing delays.

    Attempt ``n`` (0-based) that fails is followed by a sleep of
    ``base_delay_ms * multiplier ** n`` milliseconds, except after the last
    attempt, where the final exception is re-raised instead.

    Attributes:
        max_attempts: Total attempts, including the first.
        base_delay_ms: Delay after the first failure.
        multiplier: Growth factor applied per attempt.
        give_up_on: Exception types re-raised immediately without retry.
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000
    multiplier: float = 2.0
    give_up_on: Tuple[Type[BaseException], ...] = ()

    def delay_for(self, attempt: int) -> float:
        """Return the delay in seconds after failed attempt ``attempt``."""
        return self.base_delay_ms * (self.multiplier ** attempt) / 1000.0

    def with_attempts(self, attempts: int) -> "RetryPolicy":
        return RetryPolicy(max(MIN_ATTEMPTS, attempts), self.base_delay_ms, self.multiplier, self.give_up_on)

    def with_base_delay(self, delay_ms: int) -> "RetryPolicy":
        return RetryPolicy(self.max_attempts, max(MIN_BASE_DELAY_MS, delay_ms), self.multiplier, self.give_up_on)

    def _should_retry(self, exc: BaseException) -> bool:
        # Cancellation and other BaseExceptions always propagate
        return isinstance(exc, Exception) and not isinstance(exc, self.give_up_on)

    async def run(self, operation: Callable[[], Awaitable[T]], *, label: str = "operation") -> T:
        """Await ``operation()`` until it succeeds or the attempt budget is spent."""
        attempts = max(MIN_ATTEMPTS, self.max_attempts)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self.base_delay_ms / 1000.0, exp_base=self.multiplier),
            retry=retry_if_exception(self._should_retry),
            before_sleep=partial(_log_retry, label, attempts),
            sleep=_sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await operation()
        except Exception as exc:
            if self._should_retry(exc):
                logger.error("[RETRY] %s failed after %d attempts: %s", label, attempts, exc)
            raise
