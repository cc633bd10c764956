"""Retry helpers for calls to external APIs.

Only errors that signal a transient condition are retried; everything else
propagates on the first failure.
"""

import asyncio
import functools
import logging
import random
import time

logger = logging.getLogger(__name__)


class APIRateLimitError(Exception):
    """Provider rejected the request because of rate limiting."""

    pass


class NetworkError(Exception):
    """Connection-level failure talking to a provider."""

    pass


class TemporaryServiceError(Exception):
    """Provider reported a temporary server-side failure."""

    pass


RETRYABLE_ERRORS = (APIRateLimitError, NetworkError, TemporaryServiceError)


def _backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + random.uniform(0, delay * 0.1)


def retry_api_call(max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 30.0):
    """Retry a sync or async callable on transient provider errors.

    Args:
        max_retries: Number of retries after the first attempt
        base_delay: Delay before the first retry, doubled on each attempt
        max_delay: Upper bound for a single delay
    """

    def decorator(func):
        name = getattr(func, "__qualname__", repr(func))

        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                for attempt in range(max_retries + 1):
                    try:
                        return await func(*args, **kwargs)
                    except RETRYABLE_ERRORS as e:
                        if attempt >= max_retries:
                            raise
                        delay = _backoff_delay(attempt, base_delay, max_delay)
                        logger.warning(
                            f"{name} failed ({e}), retry {attempt + 1}/{max_retries} "
                            f"in {delay:.1f}s"
                        )
                        await asyncio.sleep(delay)

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except RETRYABLE_ERRORS as e:
                    if attempt >= max_retries:
                        raise
                    delay = _backoff_delay(attempt, base_delay, max_delay)
                    logger.warning(
                        f"{name} failed ({e}), retry {attempt + 1}/{max_retries} "
                        f"in {delay:.1f}s"
                    )
                    time.sleep(delay)

        return sync_wrapper

    return decorator
