"""
Bounded retry with linear backoff for provider calls.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .exceptions import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry settings for provider calls.

    Attributes:
        max_attempts: Total attempts including the first. Default: 3.
        backoff_seconds: Wait before attempt k+1 is ``backoff_seconds * k``. Default: 1.0.
        rate_limit_cooldown_seconds: Extra wait after a rate-limit failure,
            also multiplied by the attempt number. Default: 5.0.
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    rate_limit_cooldown_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0 or self.rate_limit_cooldown_seconds < 0:
            raise ValueError("retry delays must not be negative")

    def delay_for(self, attempt: int, error: ProviderError) -> float:
        """Seconds to wait after failed ``attempt`` (1-based)."""
        delay = self.backoff_seconds * attempt
        if error.is_rate_limit:
            delay += self.rate_limit_cooldown_seconds * attempt
        return delay


NO_RETRY = RetryPolicy(max_attempts=1, backoff_seconds=0.0, rate_limit_cooldown_seconds=0.0)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    on_retry: Optional[Callable[[int, ProviderError, float], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await ``operation`` until it succeeds or the policy gives up.

    Only transient ``ProviderError``s (network failures, timeouts, rate
    limits, 5xx) are retried. Client errors are raised on the first failure.
    Any other exception type propagates untouched.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        policy: Retry settings. Defaults to ``RetryPolicy()``.
        on_retry: Called with ``(attempt, error, delay)`` before each sleep.
        sleep: Awaitable sleep, replaceable in tests.

    Raises:
        ProviderError: The last error once attempts are exhausted, or the
            first non-transient one.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except ProviderError as exc:
            if not exc.is_transient:
                logger.warning("%s: non-retryable error on attempt %d: %s", exc.vendor, attempt, exc)
                raise
            if attempt >= policy.max_attempts:
                logger.warning(
                    "%s: giving up after %d attempt(s): %s", exc.vendor, attempt, exc
                )
                raise
            delay = policy.delay_for(attempt, exc)
            logger.warning(
                "%s: attempt %d/%d failed (%s), retrying in %.1fs",
                exc.vendor,
                attempt,
                policy.max_attempts,
                exc,
                delay,
            )
            if on_retry is not None:
                on_retry(attempt, exc, delay)
            if delay:
                await sleep(delay)


__all__ = ["RetryPolicy", "NO_RETRY", "call_with_retry"]
