"""Bounded retry with exponential backoff and jitter

Used by every optimistic read-compute-write cycle:
1. Only retries transient conflicts (stale version, serialization failures)
2. Uses exponential backoff with jitter so racing writers spread out
3. Gives up after a hard attempt bound to avoid retry storms
"""

import asyncio
import random
import logging
from typing import Callable, Any, TypeVar
from functools import wraps

import psycopg.errors

from personalfit import config
from personalfit.exceptions import DatabaseError, StaleStateError
from personalfit.monitoring.prometheus_metrics import record_retry

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Retry configuration
MAX_ATTEMPTS = config.LEDGER_MAX_ATTEMPTS
BASE_DELAY = config.LEDGER_RETRY_BASE_DELAY  # seconds
MAX_DELAY = 0.5  # seconds
JITTER = 0.5  # 50% random jitter


def is_retryable_error(exc: Exception) -> bool:
    """
    Determine if an error is a transient conflict worth another attempt.

    Retryable errors:
    - StaleStateError (optimistic version check failed)
    - Postgres serialization failures and deadlocks

    Everything else (validation, connection loss, programming errors)
    propagates immediately.
    """
    if isinstance(exc, StaleStateError):
        return True

    if isinstance(exc, (psycopg.errors.SerializationFailure, psycopg.errors.DeadlockDetected)):
        return True

    # Store adapters wrap driver errors; look through to the cause
    if isinstance(exc, DatabaseError) and isinstance(exc.cause, Exception):
        return is_retryable_error(exc.cause)

    return False


def calculate_backoff(attempt: int) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Formula: delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY) +/- jitter

    Args:
        attempt: The retry attempt number (0-indexed)

    Returns:
        Delay in seconds, never negative
    """
    delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)
    jitter_amount = random.uniform(-JITTER * delay, JITTER * delay)
    return max(delay + jitter_amount, 0.0)


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_attempts: int = MAX_ATTEMPTS,
    operation: str = "",
    **kwargs: Any
) -> T:
    """
    Call an async function until it succeeds, retrying transient conflicts.

    Args:
        func: Async function to call
        max_attempts: Total number of calls allowed (>= 1)
        operation: Label for logs and metrics (defaults to func.__name__)
        *args, **kwargs: Arguments to pass to func

    Returns:
        Result from func

    Raises:
        The last exception once attempts are exhausted, or any
        non-retryable exception immediately

    Example:
        result = await retry_with_backoff(attempt_credit, event, max_attempts=3)
    """
    operation = operation or func.__name__
    max_attempts = max(max_attempts, 1)

    for attempt in range(max_attempts):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            if not is_retryable_error(e):
                raise

            if attempt == max_attempts - 1:
                logger.error(
                    f"[RETRY] All {max_attempts} attempts exhausted for {operation}"
                )
                raise

            backoff = calculate_backoff(attempt)
            record_retry(operation)

            logger.info(
                f"[RETRY] Attempt {attempt + 1}/{max_attempts} for {operation} "
                f"failed, retrying after {backoff:.3f}s (error: {type(e).__name__})"
            )

            await asyncio.sleep(backoff)

    raise RuntimeError("Retry logic failed unexpectedly")


def with_retry(max_attempts: int = MAX_ATTEMPTS) -> Callable:
    """
    Decorator to add conflict retry to async functions.

    Example:
        @with_retry(max_attempts=3)
        async def save_progress():
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_with_backoff(func, *args, max_attempts=max_attempts, **kwargs)
        return wrapper
    return decorator
