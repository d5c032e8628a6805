"""Bounded exponential backoff for async operations.

Thin wrapper over Tenacity's ``AsyncRetrying``:

- up to ``max_retries`` additional attempts after the first one
- delay before retry *n* is ``min(base_delay * 2**(n-1) + jitter, max_delay)``
- only errors flagged ``retryable`` are retried (see ``kb_vector.errors``)
- on exhaustion the last error is re-raised unchanged

Example:
    >>> executor = RetryExecutor(max_retries=3, base_delay=1.0)
    >>> result = await executor.run(lambda: client.search(...))
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from kb_vector.errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class wait_capped_exponential_jitter(wait_base):
    """Exponential backoff with additive jitter, capped at ``max_delay``."""

    def __init__(self, base_delay: float, max_delay: float, jitter: float) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    def __call__(self, retry_state: RetryCallState) -> float:
        # attempt_number counts attempts already made, i.e. the retry index
        n = retry_state.attempt_number
        delay = self.base_delay * 2 ** (n - 1)
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        return min(delay, self.max_delay)


class RetryExecutor:
    """Runs an async operation with bounded retries.

    Args:
        max_retries: Additional attempts after the first failure
        base_delay: Initial backoff delay in seconds
        max_delay: Upper bound for any single delay in seconds
        jitter: Upper bound of the uniform random jitter in seconds
        sleep: Coroutine used to wait between attempts (injectable for tests)
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        jitter: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_capped_exponential_jitter(
                base_delay=self.base_delay,
                max_delay=self.max_delay,
                jitter=self.jitter,
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
            sleep=self._sleep,
        )

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()`` until it succeeds or retries are exhausted."""
        return await self._retrying()(operation)
