"""Unit tests for the account ledger (personalfit/gamification/ledger.py)"""
import asyncio
import pytest
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

from personalfit.exceptions import ConcurrencyConflictError
from personalfit.gamification.ledger import AccountLedger
from personalfit.gamification.memory_store import InMemoryGamificationStore
from personalfit.models.gamification import CasOutcome, CompletionEvent, LedgerOutcome


USER = "user-1"
NOON = datetime(2024, 3, 13, 12, 0, tzinfo=timezone.utc)


def completion(event_id, occurred_at=NOON, **kwargs):
    return CompletionEvent(event_id=event_id, user_id=USER, occurred_at=occurred_at, **kwargs)


class AlwaysStaleStore(InMemoryGamificationStore):
    """Every conditional write loses the race"""

    async def compare_and_set_state(self, state, expected_version, event_id=None):
        return CasOutcome.STALE


# ============================================================================
# credit_completion
# ============================================================================

@pytest.mark.asyncio
async def test_first_completion_credit(ledger, memory_store):
    result = await ledger.credit_completion(completion("session-1", is_first_completion=True))

    assert result.outcome == LedgerOutcome.CREDITED
    assert result.xp_awarded == 100 + 200 + 25
    assert result.streak == 1
    assert result.attempts == 1
    assert "first_workout" in result.new_achievements

    state = await memory_store.get_state(USER)
    assert state.xp == 325
    assert state.version == 1
    assert state.total_completions == 1
    assert state.last_activity_date == date(2024, 3, 13)
    assert "first_workout" in state.achievements


@pytest.mark.asyncio
async def test_duplicate_event_is_noop(ledger, memory_store):
    await ledger.credit_completion(completion("session-1"))

    result = await ledger.credit_completion(completion("session-1"))

    assert result.outcome == LedgerOutcome.ALREADY_PROCESSED
    assert result.xp_awarded == 0
    state = await memory_store.get_state(USER)
    assert state.xp == 125
    assert state.total_completions == 1


@pytest.mark.asyncio
async def test_streak_bonus_uses_updated_streak(ledger):
    await ledger.credit_completion(completion("day-1", NOON - timedelta(days=1)))

    result = await ledger.credit_completion(completion("day-2", NOON))

    assert result.streak == 2
    assert result.xp_awarded == 100 + 50
    assert [item.source for item in result.breakdown] == ["Workout Completed", "2-Day Streak Bonus"]


@pytest.mark.asyncio
async def test_gap_breaks_streak(ledger):
    await ledger.credit_completion(completion("day-1", NOON - timedelta(days=3)))

    result = await ledger.credit_completion(completion("day-4", NOON))

    assert result.streak == 1
    assert result.streak_broken is True


@pytest.mark.asyncio
async def test_second_workout_same_day_keeps_streak(ledger, memory_store):
    await ledger.credit_completion(completion("morning", NOON - timedelta(hours=3)))

    result = await ledger.credit_completion(completion("evening", NOON + timedelta(hours=6)))

    assert result.streak == 1
    state = await memory_store.get_state(USER)
    assert state.total_completions == 2


@pytest.mark.asyncio
async def test_time_of_day_and_comeback_counters(ledger, memory_store):
    early = datetime(2024, 3, 1, 6, 30, tzinfo=timezone.utc)
    await ledger.credit_completion(completion("early", early))

    late_return = datetime(2024, 3, 16, 22, 15, tzinfo=timezone.utc)  # Saturday, 15 days later
    result = await ledger.credit_completion(completion("late", late_return))

    state = await memory_store.get_state(USER)
    assert state.early_completions == 1
    assert state.late_completions == 1
    assert state.weekend_completions == 1
    assert state.comebacks == 1
    assert {"early_bird", "night_owl", "comeback_kid"} <= state.achievements
    assert result.streak_broken is True


@pytest.mark.asyncio
async def test_personal_records_counted(ledger, memory_store):
    await ledger.credit_completion(completion("pr-1", NOON, had_personal_record=True))
    result = await ledger.credit_completion(completion("pr-2", NOON + timedelta(hours=1), had_personal_record=True))

    state = await memory_store.get_state(USER)
    assert state.total_personal_records == 2
    assert "pr_day" in result.new_achievements
    assert "first_pr" in state.achievements


@pytest.mark.asyncio
async def test_reference_timezone_decides_the_day(memory_store):
    ledger = AccountLedger(memory_store, tz_name="America/New_York")
    # 02:00 UTC on the 14th is still the 13th in New York
    await ledger.credit_completion(completion("late", datetime(2024, 3, 14, 2, 0, tzinfo=timezone.utc)))

    state = await memory_store.get_state(USER)
    assert state.last_activity_date == date(2024, 3, 13)


# ============================================================================
# Concurrency
# ============================================================================

@pytest.mark.asyncio
async def test_concurrent_duplicate_deliveries_credit_once(memory_store):
    """10 simultaneous credits for one event id apply exactly one credit"""
    ledger = AccountLedger(memory_store, max_attempts=3)

    results = await asyncio.gather(*[
        ledger.credit_completion(completion("session-42"))
        for _ in range(10)
    ])

    credited = [r for r in results if r.outcome == LedgerOutcome.CREDITED]
    assert len(credited) == 1
    assert all(r.outcome == LedgerOutcome.ALREADY_PROCESSED for r in results if r not in credited)

    state = await memory_store.get_state(USER)
    assert state.xp == 125
    assert state.total_completions == 1
    assert state.version == 1


@pytest.mark.asyncio
async def test_concurrent_distinct_events_all_credited(memory_store):
    ledger = AccountLedger(memory_store, max_attempts=20)

    with patch("personalfit.resilience.retry.BASE_DELAY", 0):
        results = await asyncio.gather(*[
            ledger.credit_completion(completion(f"session-{i}"))
            for i in range(10)
        ])

    assert all(r.outcome == LedgerOutcome.CREDITED for r in results)
    state = await memory_store.get_state(USER)
    assert state.total_completions == 10
    assert state.xp == 10 * 125
    assert state.version == 10


@pytest.mark.asyncio
async def test_exhausted_retries_raise_conflict():
    store = AlwaysStaleStore()
    ledger = AccountLedger(store, max_attempts=3)

    with patch("personalfit.resilience.retry.BASE_DELAY", 0):
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await ledger.credit_completion(completion("session-1"))

    assert exc_info.value.attempts == 3
    assert exc_info.value.event_id == "session-1"
    assert exc_info.value.user_id == USER
    state = await store.get_state(USER)
    assert state.xp == 0


# ============================================================================
# credit_reward
# ============================================================================

@pytest.mark.asyncio
async def test_reward_credit_is_idempotent(ledger, memory_store):
    first = await ledger.credit_reward(USER, "challenge:x", xp=100, gems=10, challenge_completed=True)
    second = await ledger.credit_reward(USER, "challenge:x", xp=100, gems=10, challenge_completed=True)

    assert first.outcome == LedgerOutcome.CREDITED
    assert second.outcome == LedgerOutcome.ALREADY_PROCESSED
    state = await memory_store.get_state(USER)
    assert state.xp == 100
    assert state.gems == 60
    assert state.total_gems_earned == 60
    assert state.challenges_completed == 1
    assert "daily_challenge_1" in state.achievements


@pytest.mark.asyncio
async def test_reward_level_up(ledger):
    result = await ledger.credit_reward(USER, "bonus", xp=500)

    assert result.old_level == 1
    assert result.new_level == 2
    assert result.leveled_up is True


@pytest.mark.asyncio
async def test_seven_perfect_days_make_a_perfect_week(ledger, memory_store):
    start = date(2024, 3, 1)
    for offset in range(7):
        day = start + timedelta(days=offset)
        await ledger.credit_reward(USER, f"perfect_day:{day}", xp=0, perfect_day=day)

    state = await memory_store.get_state(USER)
    assert state.perfect_days == 7
    assert state.perfect_weeks == 1
    assert {"perfect_day", "perfect_week"} <= state.achievements


# ============================================================================
# use_streak_freeze
# ============================================================================

@pytest.mark.asyncio
async def test_streak_freeze_consumes_then_purchases(ledger, memory_store):
    day = date(2024, 3, 13)

    first = await ledger.use_streak_freeze(USER, day)
    second = await ledger.use_streak_freeze(USER, day + timedelta(days=1))
    third = await ledger.use_streak_freeze(USER, day + timedelta(days=2))
    fourth = await ledger.use_streak_freeze(USER, day + timedelta(days=3))

    assert first.outcome == LedgerOutcome.CREDITED
    assert first.gems_awarded == 0
    assert second.outcome == LedgerOutcome.CREDITED
    assert third.outcome == LedgerOutcome.CREDITED
    assert third.gems_awarded == -50
    assert fourth.outcome == LedgerOutcome.REJECTED
    assert "Not enough gems" in fourth.reason

    state = await memory_store.get_state(USER)
    assert state.gems == 0
    assert state.streak_freezes_available == 0
    assert state.streak_freezes_used_this_month == 3


@pytest.mark.asyncio
async def test_streak_freeze_once_per_day(ledger):
    day = date(2024, 3, 13)
    await ledger.use_streak_freeze(USER, day)

    result = await ledger.use_streak_freeze(USER, day)

    assert result.outcome == LedgerOutcome.REJECTED
    assert result.reason == "Streak freeze already used today"


@pytest.mark.asyncio
async def test_frozen_day_keeps_streak_alive(ledger):
    await ledger.credit_completion(completion("day-1", NOON - timedelta(days=2)))
    await ledger.use_streak_freeze(USER, (NOON - timedelta(days=1)).date())

    result = await ledger.credit_completion(completion("day-3", NOON))

    assert result.streak == 2
    assert result.streak_broken is False
