"""
Retry helpers for tracker calls.
"""

import logging
import time
from functools import wraps
from typing import Callable, Tuple, Type

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
):
    """Decorator for retry with exponential backoff.

    Only exceptions in ``retry_on`` are retried; the last one is re-raised
    once the attempts are used up. Anything else propagates immediately.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds (doubles each retry)
        retry_on: Exception types worth retrying
        sleep: Delay function
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    if attempt >= max_retries - 1:
                        raise
                    delay = base_delay * (2 ** attempt)
                    logger.debug(
                        "%s failed (%s), retrying in %.1fs (attempt %d/%d)",
                        func.__name__, e, delay, attempt + 1, max_retries,
                    )
                    sleep(delay)
        return wrapper
    return decorator
