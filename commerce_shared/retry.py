"""
Retry on optimistic-concurrency conflicts with exponential backoff.
"""

import asyncio
import functools
import math
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

from commerce_shared.errors import ValidationError, is_conflict
from commerce_shared.logging import get_logger
from commerce_shared.metrics import conflict_retries_total

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_DELAY_MS = 100

logger = get_logger("commerce_shared.retry")


class RetryConfig:
    """Configuration for retry spacing. Delays are in milliseconds."""

    def __init__(self,
                 max_retries: int = 3,
                 delay_ms: int = 50,
                 jitter: bool = True):
        if max_retries < 0:
            raise ValidationError("max_retries must be >= 0", details={"max_retries": max_retries})
        if delay_ms < 0:
            raise ValidationError("delay_ms must be >= 0", details={"delay_ms": delay_ms})
        self.max_retries = max_retries
        self.delay_ms = delay_ms
        self.jitter = jitter

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RetryConfig):
            return NotImplemented
        return self.__dict__ == other.__dict__

    def __repr__(self) -> str:
        return (
            f"RetryConfig(max_retries={self.max_retries}, "
            f"delay_ms={self.delay_ms}, jitter={self.jitter})"
        )


def calculate_delay(retry_count: int, config: Optional[RetryConfig] = None) -> int:
    """
    Calculate how long to wait, in milliseconds, before retry number ``retry_count``.

    Without jitter the delay doubles on each retry: with ``delay_ms=500`` the
    retries wait 500, 1000, 2000, 4000...

    With jitter the exponential value is first widened by a factor of
    ``1 + 1 / (retry_count + 1)`` and a uniform draw below it is returned.
    The widening shrinks as retries accumulate, so early retries spread out
    the most.
    """
    if config is None or retry_count == 0:
        return 0

    exponential_delay = config.delay_ms * 2 ** (retry_count - 1)
    if not config.jitter:
        return exponential_delay

    increased_delay = exponential_delay * (1 + 1 / (retry_count + 1))
    return math.floor(random.random() * increased_delay)


async def retry_on_conflict(execute_fn: Callable[[int], Awaitable[T]],
                            *,
                            max_retries: int = DEFAULT_MAX_RETRIES,
                            delay_ms: int = DEFAULT_DELAY_MS,
                            jitter: bool = False) -> T:
    """
    Run ``execute_fn(attempt)`` until it stops failing with a conflict.

    ``attempt`` starts at 1, so a conditional update can refetch the latest
    resource version on every call after the first. Errors that are not
    conflicts propagate straight away. After ``max_retries`` retries the
    last conflict propagates, so ``execute_fn`` runs at most
    ``max_retries + 1`` times.
    """
    config = RetryConfig(max_retries=max_retries, delay_ms=delay_ms, jitter=jitter)
    attempt = 1

    while True:
        try:
            result = await execute_fn(attempt)
        except Exception as e:
            if not is_conflict(e) or attempt > config.max_retries:
                if is_conflict(e):
                    logger.error(
                        "Conflict retries exhausted",
                        attempt=attempt,
                        max_retries=config.max_retries,
                        error=str(e)
                    )
                raise

            delay = calculate_delay(attempt, config)

            logger.warning(
                "Conflict on attempt, waiting before next attempt",
                attempt=attempt,
                delay_ms=delay,
                max_retries=config.max_retries
            )
            conflict_retries_total.inc()

            await asyncio.sleep(delay / 1000)
            attempt += 1
            continue

        if attempt > 1:
            logger.info("Conflict retry succeeded", attempt=attempt)
        return result


def retry_conflicts(max_retries: int = DEFAULT_MAX_RETRIES,
                    delay_ms: int = DEFAULT_DELAY_MS,
                    jitter: bool = False) -> Callable:
    """Decorator form of :func:`retry_on_conflict` for async functions."""

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            return await retry_on_conflict(
                lambda attempt: func(*args, **kwargs),
                max_retries=max_retries,
                delay_ms=delay_ms,
                jitter=jitter
            )

        return wrapper

    return decorator
