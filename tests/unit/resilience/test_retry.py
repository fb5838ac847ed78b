"""Unit tests for optimistic retry (personalfit/resilience/retry.py)"""
import pytest
import psycopg
from unittest.mock import AsyncMock, patch

from personalfit.exceptions import QueryError, StaleStateError, ValidationError
from personalfit.resilience.retry import (
    MAX_DELAY,
    calculate_backoff,
    is_retryable_error,
    retry_with_backoff,
    with_retry,
)


@pytest.fixture(autouse=True)
def no_backoff():
    with patch("personalfit.resilience.retry.BASE_DELAY", 0):
        yield


# ============================================================================
# Classification
# ============================================================================

def test_stale_state_is_retryable():
    assert is_retryable_error(StaleStateError("u", 1)) is True


def test_serialization_failure_is_retryable():
    assert is_retryable_error(psycopg.errors.SerializationFailure("conflict")) is True


def test_wrapped_serialization_failure_is_retryable():
    wrapped = QueryError(message="failed", cause=psycopg.errors.DeadlockDetected("deadlock"))

    assert is_retryable_error(wrapped) is True


def test_other_errors_are_not_retryable():
    assert is_retryable_error(ValueError("x")) is False
    assert is_retryable_error(ValidationError(message="bad")) is False
    assert is_retryable_error(QueryError(message="failed", cause=ValueError("x"))) is False


def test_backoff_bounds():
    with patch("personalfit.resilience.retry.BASE_DELAY", 0.01):
        for attempt in range(10):
            delay = calculate_backoff(attempt)
            assert 0.0 <= delay <= MAX_DELAY * 1.5


# ============================================================================
# retry_with_backoff
# ============================================================================

@pytest.mark.asyncio
async def test_succeeds_first_try():
    func = AsyncMock(return_value="ok")

    assert await retry_with_backoff(func, 1, key="v", max_attempts=3, operation="test") == "ok"
    func.assert_awaited_once_with(1, key="v")


@pytest.mark.asyncio
async def test_retries_stale_then_succeeds():
    func = AsyncMock(side_effect=[StaleStateError("u", 0), StaleStateError("u", 1), "ok"])

    assert await retry_with_backoff(func, max_attempts=3, operation="test") == "ok"
    assert func.await_count == 3


@pytest.mark.asyncio
async def test_exhaustion_reraises_last_error():
    func = AsyncMock(side_effect=StaleStateError("u", 0))

    with pytest.raises(StaleStateError):
        await retry_with_backoff(func, max_attempts=3, operation="test")

    assert func.await_count == 3


@pytest.mark.asyncio
async def test_non_retryable_error_raises_immediately():
    func = AsyncMock(side_effect=ValueError("bad input"))

    with pytest.raises(ValueError):
        await retry_with_backoff(func, max_attempts=5, operation="test")

    assert func.await_count == 1


@pytest.mark.asyncio
async def test_max_attempts_floor_is_one():
    func = AsyncMock(side_effect=StaleStateError("u", 0))

    with pytest.raises(StaleStateError):
        await retry_with_backoff(func, max_attempts=0, operation="test")

    assert func.await_count == 1


@pytest.mark.asyncio
async def test_retry_records_metric():
    func = AsyncMock(side_effect=[StaleStateError("u", 0), "ok"])

    with patch("personalfit.resilience.retry.record_retry") as mock_record:
        await retry_with_backoff(func, max_attempts=3, operation="ledger_credit_completion")

    mock_record.assert_called_once_with("ledger_credit_completion")


# ============================================================================
# with_retry decorator
# ============================================================================

@pytest.mark.asyncio
async def test_with_retry_decorator():
    calls = []

    @with_retry(max_attempts=2)
    async def save_progress(value):
        calls.append(value)
        if len(calls) == 1:
            raise StaleStateError("u", 0)
        return value * 2

    assert await save_progress(21) == 42
    assert calls == [21, 21]
    assert save_progress.__name__ == "save_progress"
