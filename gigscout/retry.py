"""Retry decorator with exponential backoff — stdlib only."""
from __future__ import annotations

import functools
import logging
import random
import time
from typing import Any, Callable, Iterator, Tuple, Type

logger = logging.getLogger(__name__)


def backoff_delays(
    attempts: int,
    *,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
) -> Iterator[float]:
    """Yield the sleep before each retry (``attempts - 1`` values)."""
    for attempt in range(1, attempts):
        delay = min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)
        if jitter:
            delay *= 0.5 + random.random()
        yield delay


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> Callable:
    """Decorator: call the wrapped function up to *max_attempts* times.

    Only exceptions in *retryable* trigger another attempt; anything else
    propagates immediately. The last retryable failure is re-raised.
    """
    max_attempts = max(1, max_attempts)

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delays = backoff_delays(
                max_attempts,
                base_delay=base_delay,
                max_delay=max_delay,
                backoff_factor=backoff_factor,
                jitter=jitter,
            )
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    delay = next(delays, None)
                    if delay is None:
                        logger.error(
                            "%s failed after %d attempt(s): %s",
                            fn.__qualname__, max_attempts, exc,
                        )
                        raise
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, max_attempts, exc, delay,
                    )
                    sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
