"""Global test fixtures and utilities for personalfit tests"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, date, timezone

from personalfit.gamification.ledger import AccountLedger
from personalfit.gamification.challenge_tracker import ChallengeProgressTracker
from personalfit.gamification.memory_store import InMemoryGamificationStore
from personalfit.models.adherence import DoseLogEntry, DoseStatus, Medication


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    cursor.executemany = AsyncMock()
    cursor.rowcount = 1
    return cursor


@pytest.fixture
def mock_db_connection(mock_db_cursor):
    """Mock database connection whose cursor() and transaction() are async context managers"""
    conn = MagicMock()
    conn.cursor.return_value.__aenter__.return_value = mock_db_cursor
    conn.commit = AsyncMock()
    conn.rollback = AsyncMock()
    return conn


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def reference_day():
    """A Wednesday"""
    return date(2024, 3, 13)


@pytest.fixture
def reference_now(reference_day):
    return datetime(2024, 3, 13, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Gamification Fixtures
# ============================================================================

@pytest.fixture
def memory_store():
    return InMemoryGamificationStore()


@pytest.fixture
def ledger(memory_store):
    return AccountLedger(memory_store, tz_name="UTC")


@pytest.fixture
def tracker(memory_store, ledger):
    return ChallengeProgressTracker(memory_store, ledger, tz_name="UTC")


# ============================================================================
# Adherence Fixtures
# ============================================================================

@pytest.fixture
def medication():
    return Medication(id="med-1", user_id="user-123", name="Metformin")


def make_dose(day: date, hour: int, status: str, medication_id: str = "med-1", user_id: str = "user-123"):
    """Build a dose log scheduled at `hour` UTC on `day`"""
    scheduled = datetime(day.year, day.month, day.day, hour, 0, tzinfo=timezone.utc)
    return DoseLogEntry(
        user_id=user_id,
        medication_id=medication_id,
        scheduled_time=scheduled,
        taken_at=scheduled if status == "taken" else None,
        status=DoseStatus(status),
    )


@pytest.fixture
def dose():
    """Factory fixture: dose(day, hour, status, medication_id='med-1')"""
    return make_dose
