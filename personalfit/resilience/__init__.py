"""Resilience patterns for optimistic concurrency"""
from personalfit.resilience.retry import (
    calculate_backoff,
    is_retryable_error,
    retry_with_backoff,
    with_retry,
)

__all__ = [
    "calculate_backoff",
    "is_retryable_error",
    "retry_with_backoff",
    "with_retry",
]
