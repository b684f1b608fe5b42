"""Transport retry policy.

A request is retried only when it failed before reaching the appliance.
Anything later (read timeout, dropped response) may mean the appliance
already acted on it, and replaying a create would duplicate the object.
"""
import asyncio
import logging
from functools import wraps
from typing import Any, Callable, TypeVar

import httpx
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.PoolTimeout,
    ConnectionRefusedError,
)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"{retry_state.fn.__name__ if retry_state.fn else 'call'} failed "
        f"(attempt {retry_state.attempt_number}): {exc!r}; retrying in {wait:.1f}s"
    )


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Retry a sync or async callable with exponential backoff.

    Args:
        max_attempts: Total attempts, the first call included
        min_wait: Lower bound of the wait between attempts (seconds)
        max_wait: Upper bound of the wait between attempts (seconds)
        exceptions: Exception types that trigger another attempt

    The last exception is re-raised once attempts are exhausted.
    """
    policy = dict(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=_log_retry,
        reraise=True,
    )

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if not asyncio.iscoroutinefunction(func):
            return retry(**policy)(func)

        @retry(**policy)
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
