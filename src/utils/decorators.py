"""
Decorators Module for Options Trading Bot.

This module provides the retry decorator wrapped around brokerage calls.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional, Tuple, Type, TypeVar


logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def async_retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[Exception, int], None]] = None
):
    """
    Decorator to retry an async function on failure.

    The wrapped method may override ``max_attempts`` and ``delay`` per
    instance by exposing ``retry_attempts`` / ``retry_delay`` attributes.

    Args:
        max_attempts: Maximum number of attempts
        delay: Initial delay between retries
        backoff: Backoff multiplier for delay
        exceptions: Exceptions to catch and retry
        on_retry: Callback function on retry

    Returns:
        Decorator function
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            owner = args[0] if args else None
            attempts = getattr(owner, "retry_attempts", max_attempts)
            current_delay = getattr(owner, "retry_delay", delay)
            last_exception: Optional[Exception] = None

            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt < attempts:
                        logger.warning(
                            f"{func.__name__} attempt {attempt}/{attempts} failed: {e}. "
                            f"Retrying in {current_delay:.1f}s..."
                        )
                        if on_retry:
                            on_retry(e, attempt)
                        await asyncio.sleep(current_delay)
                        current_delay *= backoff
                    else:
                        logger.error(
                            f"{func.__name__} failed after {attempts} attempts: {e}"
                        )

            raise last_exception  # type: ignore

        return wrapper  # type: ignore

    return decorator
