"""
Retrying flaky gateway calls with exponential backoff and jitter.
"""
import random
import time
from functools import wraps
from typing import Callable, Iterator


def backoff_delays(
    retries: int,
    initial_delay: float,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> Iterator[float]:
    """Sleep durations before each retry; jitter adds up to 25% of the base delay."""
    delay = initial_delay
    for _ in range(retries):
        actual = delay + delay * 0.25 * random.random() if jitter else delay
        yield min(actual, max_delay)
        delay *= exponential_base


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: tuple = (Exception,),
    on_retry: Callable[[int, BaseException, float], None] | None = None,
):
    """
    Retry the decorated call when it raises one of ``exceptions``.

    The call runs at most ``max_retries + 1`` times; the last error is
    re-raised. ``on_retry(attempt, error, delay)`` runs before each sleep.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            delays = backoff_delays(max_retries, initial_delay, max_delay, exponential_base, jitter)
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    delay = next(delays, None)
                    if delay is None:
                        raise
                    attempt += 1
                    if on_retry is not None:
                        on_retry(attempt, e, delay)
                    time.sleep(delay)

        return wrapper
    return decorator
