"""Unit tests for the workout streak calculator (personalfit/gamification/streak_system.py)"""
import pytest
from datetime import date, datetime, timedelta

from personalfit.gamification.store import new_gamification_state
from personalfit.gamification.streak_system import apply_streak_freeze, update_streak


DAY = date(2024, 3, 13)


# ============================================================================
# update_streak
# ============================================================================

def test_first_activity_starts_streak():
    result = update_streak(None, DAY, 0)

    assert result.streak == 1
    assert result.broken is False


def test_next_day_increments():
    result = update_streak(DAY - timedelta(days=1), DAY, 4)

    assert result.streak == 5
    assert result.broken is False


def test_same_day_is_idempotent():
    first = update_streak(DAY - timedelta(days=1), DAY, 4)
    # Second trigger on the same day: last activity is now DAY
    second = update_streak(DAY, DAY, first.streak)
    third = update_streak(DAY, DAY, second.streak)

    assert first.streak == second.streak == third.streak == 5


@pytest.mark.parametrize("gap", [2, 3, 10, 400])
def test_gap_breaks_streak(gap):
    result = update_streak(DAY - timedelta(days=gap), DAY, 12)

    assert result.streak == 1
    assert result.broken is True


def test_out_of_order_event_is_noop():
    result = update_streak(DAY, DAY - timedelta(days=3), 6)

    assert result.streak == 6
    assert result.broken is False


def test_datetimes_are_truncated_to_days():
    result = update_streak(
        datetime(2024, 3, 12, 23, 59),
        datetime(2024, 3, 13, 0, 1),
        2
    )

    assert result.streak == 3


def test_frozen_day_bridges_gap():
    result = update_streak(DAY - timedelta(days=2), DAY, 8, frozen_days=[DAY - timedelta(days=1)])

    assert result.streak == 9
    assert result.broken is False


def test_partially_frozen_gap_still_breaks():
    result = update_streak(
        DAY - timedelta(days=3),
        DAY,
        8,
        frozen_days=[DAY - timedelta(days=1)]
    )

    assert result.streak == 1
    assert result.broken is True


# ============================================================================
# apply_streak_freeze
# ============================================================================

def test_freeze_uses_available_freeze():
    state = new_gamification_state("user-1")
    state.streak_freezes_available = 2

    outcome = apply_streak_freeze(state, DAY, gem_cost=50)

    assert outcome == {"success": True, "purchased": False, "reason": None}
    assert state.streak_freezes_available == 1
    assert state.streak_freezes_used_this_month == 1
    assert state.last_streak_freeze_date == DAY
    assert state.frozen_dates == [DAY]


def test_freeze_purchased_with_gems_when_none_left():
    state = new_gamification_state("user-1")
    state.streak_freezes_available = 0
    state.gems = 60

    outcome = apply_streak_freeze(state, DAY, gem_cost=50)

    assert outcome["success"] is True
    assert outcome["purchased"] is True
    assert state.gems == 10
    assert state.streak_freezes_available == 0


def test_freeze_rejected_without_gems():
    state = new_gamification_state("user-1")
    state.streak_freezes_available = 0
    state.gems = 49

    outcome = apply_streak_freeze(state, DAY, gem_cost=50)

    assert outcome["success"] is False
    assert "Not enough gems" in outcome["reason"]
    assert state.gems == 49
    assert state.frozen_dates == []


def test_freeze_rejected_twice_same_day():
    state = new_gamification_state("user-1")
    apply_streak_freeze(state, DAY, gem_cost=50)

    outcome = apply_streak_freeze(state, DAY, gem_cost=50)

    assert outcome["success"] is False
    assert outcome["reason"] == "Streak freeze already used today"
    assert state.streak_freezes_used_this_month == 1
