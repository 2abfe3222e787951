"""
Retry with exponential backoff and jitter.

Delay before retry n (0-indexed) is base_delay * 2**n plus a uniform
jitter in [0, 1) second. The last attempt's exception is re-raised
unchanged so callers can inspect it.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_any,
    wait_exponential,
    wait_random,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
JITTER_MS = 1000

SleepFunc = Callable[[float], Awaitable[Any]]


class RetryExecutor:
    """
    Runs async operations with bounded retries.

    Stateless: one executor can be shared by every stage and job.

    Example:
        executor = RetryExecutor()
        transcript = await executor.run(
            lambda: acquirer.fetch(video_id),
            max_retries=2,
            base_delay_ms=500,
        )
    """

    def __init__(self, sleep: SleepFunc = asyncio.sleep):
        """
        Initialize executor.

        Args:
            sleep: Async sleep function (injectable for tests)
        """
        self._sleep = sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        is_cancelled: Callable[[], bool] | None = None,
    ) -> T:
        """
        Run operation, retrying failures with backoff.

        Args:
            operation: Zero-argument coroutine factory
            max_retries: Retries after the first attempt (>= 0)
            base_delay_ms: Base backoff delay in milliseconds (> 0)
            is_cancelled: Checked after each failure; when it returns True
                no further attempts are made

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: The last attempt's original exception
            ValueError: If max_retries or base_delay_ms is out of range
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        if base_delay_ms <= 0:
            raise ValueError(f"base_delay_ms must be > 0, got {base_delay_ms}")

        stop = stop_after_attempt(max_retries + 1)
        if is_cancelled is not None:
            stop = stop_any(stop, lambda _state: is_cancelled())

        retrying = AsyncRetrying(
            stop=stop,
            wait=(
                wait_exponential(multiplier=base_delay_ms / 1000, exp_base=2)
                + wait_random(0, JITTER_MS / 1000)
            ),
            retry=retry_if_exception_type(Exception),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
            sleep=self._sleep,
        )

        async def attempt() -> T:
            # operation may be a plain callable returning an awaitable
            return await operation()

        return await retrying(attempt)
