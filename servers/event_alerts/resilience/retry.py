"""Retry with exponential backoff for transient HTTP failures."""

import asyncio
import random
from functools import wraps
from typing import Any, Callable, TypeVar

import httpx
import structlog

logger = structlog.get_logger()

T = TypeVar("T")

# Status codes worth another attempt; everything else 4xx is final
RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


def is_transient(error: BaseException) -> bool:
    """Whether an HTTP error is likely to succeed on retry."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(error, httpx.TransportError)


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: bool = True,
) -> float:
    """Delay before retry number `attempt` (0-based)."""
    delay = min(base_delay * (2**attempt), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay


def retry_transient(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    jitter: bool = True,
    should_retry: Callable[[BaseException], bool] = is_transient,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator retrying an async call while `should_retry(error)` holds.

    Non-retryable errors propagate immediately. After the last attempt the
    final error is re-raised.

    Args:
        max_attempts: Total attempts including the first
        base_delay: Initial delay between attempts in seconds
        max_delay: Upper bound for a single delay
        jitter: Randomize delays to avoid synchronized retries
        should_retry: Predicate deciding whether an error is transient
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not should_retry(e) or attempt == max_attempts - 1:
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, jitter)
                    logger.warning(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay=round(delay, 2),
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError("unreachable")  # pragma: no cover

        return wrapper  # type: ignore

    return decorator
