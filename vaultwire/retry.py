from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from hvac.exceptions import RateLimitExceeded
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = structlog.get_logger()

T = TypeVar("T")

RATE_LIMITED_MARKER = "rate-limited"


def is_rate_limited(exc: BaseException) -> bool:
    """Return True for errors the secret store raises when throttling callers."""
    if isinstance(exc, RateLimitExceeded):
        return True
    return RATE_LIMITED_MARKER in str(exc).casefold()


class RetryPolicy:
    """Bounded exponential backoff with jitter, retrying only rate-limited failures.

    `max_retry_attempts` counts retries, not calls: the operation runs at most
    `max_retry_attempts + 1` times. The delay before retry *n* is
    `base_delay * 2 ** (n - 1)` seconds plus up to `jitter` seconds of noise.
    """

    def __init__(
        self,
        max_retry_attempts: int = 5,
        base_delay: float = 0.1,
        jitter: float = 0.1,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: Any = None,
    ) -> None:
        self.max_retry_attempts = max_retry_attempts
        self.base_delay = base_delay
        self.jitter = jitter
        self._sleep = sleep
        self._logger = logger

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        retrying = AsyncRetrying(
            retry=retry_if_exception(is_rate_limited),
            stop=stop_after_attempt(self.max_retry_attempts + 1),
            wait=wait_exponential_jitter(
                multiplier=self.base_delay, exp_base=2, jitter=self.jitter
            ),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(operation)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        (self._logger or logger).warning(
            "vault_rate_limited_retry",
            delay_ms=round(delay * 1000, 1),
            attempt=retry_state.attempt_number,
        )
