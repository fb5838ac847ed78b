"""Unit tests for the PostgreSQL store (personalfit/gamification/postgres_store.py)"""
import psycopg
import pytest
from datetime import date
from unittest.mock import AsyncMock, patch

from personalfit.exceptions import ConnectionError, QueryError
from personalfit.gamification.postgres_store import PostgresGamificationStore
from personalfit.models.challenge import DailyChallengeSet
from personalfit.models.gamification import CasOutcome, GamificationState


QUERIES = "personalfit.gamification.postgres_store.queries"


@pytest.fixture
def store():
    return PostgresGamificationStore()


@pytest.mark.asyncio
async def test_get_state_merges_version_column(store):
    row = {"user_id": "user-1", "state": {"user_id": "user-1", "xp": 600, "level": 2}, "version": 7}

    with patch(f"{QUERIES}.get_or_create_state", new=AsyncMock(return_value=row)) as mock_get:
        state = await store.get_state("user-1")

    assert state.xp == 600
    assert state.level == 2
    assert state.version == 7
    default_document = mock_get.call_args[0][1]
    assert "version" not in default_document
    assert default_document["level"] == 1


@pytest.mark.asyncio
async def test_compare_and_set_sends_document_without_version(store):
    state = GamificationState(user_id="user-1", xp=850, version=3)

    with patch(f"{QUERIES}.conditional_update_state", new=AsyncMock(return_value="applied")) as mock_update:
        outcome = await store.compare_and_set_state(state, 3, "session-1")

    assert outcome == CasOutcome.APPLIED
    user_id, document, expected_version, event_id = mock_update.call_args[0]
    assert (user_id, expected_version, event_id) == ("user-1", 3, "session-1")
    assert "version" not in document
    assert document["xp"] == 850
    assert document["level"] == 2


@pytest.mark.asyncio
async def test_compare_and_set_stale(store):
    state = GamificationState(user_id="user-1")

    with patch(f"{QUERIES}.conditional_update_state", new=AsyncMock(return_value="stale")):
        assert await store.compare_and_set_state(state, 0) == CasOutcome.STALE


@pytest.mark.asyncio
async def test_operational_error_is_wrapped(store):
    failing = AsyncMock(side_effect=psycopg.OperationalError("server closed the connection"))

    with patch(f"{QUERIES}.get_or_create_state", new=failing):
        with pytest.raises(ConnectionError) as exc_info:
            await store.get_state("user-1")

    assert exc_info.value.operation == "get_state"
    assert isinstance(exc_info.value.cause, psycopg.OperationalError)


@pytest.mark.asyncio
async def test_query_error_is_wrapped(store):
    failing = AsyncMock(side_effect=psycopg.errors.UniqueViolation("duplicate key"))

    with patch(f"{QUERIES}.is_event_credited", new=failing):
        with pytest.raises(QueryError):
            await store.has_processed_event("user-1", "session-1")


@pytest.mark.asyncio
async def test_challenge_set_round_trip_through_rows(store):
    day = date(2024, 3, 13)
    challenge_set = DailyChallengeSet(user_id="user-1", date=day, challenges=[], gems_earned_today=4)
    row = {"challenge_set": {"user_id": "user-1", "date": "2024-03-13", "challenges": [],
                             "streak_freeze_used": False, "gems_earned_today": 4}, "version": 0}

    with patch(f"{QUERIES}.insert_challenge_set", new=AsyncMock(return_value=row)) as mock_insert:
        created = await store.create_challenge_set(challenge_set)

    assert created.date == day
    assert created.gems_earned_today == 4
    assert mock_insert.call_args[0][2]["date"] == "2024-03-13"


@pytest.mark.asyncio
async def test_get_challenge_set_missing(store):
    with patch(f"{QUERIES}.get_challenge_set", new=AsyncMock(return_value=None)):
        assert await store.get_challenge_set("user-1", date(2024, 3, 13)) is None


@pytest.mark.asyncio
async def test_grant_monthly_streak_freezes(store):
    with patch(f"{QUERIES}.grant_streak_freezes_to_all", new=AsyncMock(return_value=42)) as mock_grant:
        assert await store.grant_monthly_streak_freezes(2) == 42

    mock_grant.assert_awaited_once_with(2)
