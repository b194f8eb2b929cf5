"""Retry with exponential backoff for flaky network calls."""
import functools
import time
from typing import Tuple, Type

from thinlxc.core.logger import get_logger

logger = get_logger(__name__)


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 1.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
):
    """Retry decorator.

    Args:
        max_attempts: Total number of calls, the first one included
        delay: Seconds to wait after the first failure
        backoff: Multiplier applied to the wait after each further failure
        exceptions: Exception types that trigger another attempt

    Example:
        @retry(max_attempts=3, delay=5, backoff=2.0, exceptions=(requests.RequestException,))
        def fetch(url):
            ...
    """

    def decorator(func):
        label = getattr(func, "__qualname__", None) or repr(func)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            wait = delay
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_attempts:
                        logger.error(f"{label} failed after {attempt} attempt(s): {e}")
                        raise
                    logger.warning(
                        f"{label} failed (attempt {attempt}/{max_attempts}), "
                        f"retrying in {wait:.1f}s: {e}"
                    )
                    time.sleep(wait)
                    wait *= backoff
                    attempt += 1

        return wrapper

    return decorator
