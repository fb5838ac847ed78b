"""
Workout Streak Calculator

Rules (calendar days in the reference time zone):
- No prior activity: streak starts at 1
- Same day as the last activity: unchanged (re-triggering is a no-op)
- Exactly the next day: streak + 1
- Larger gap: streak resets to 1 and is reported as broken

Out-of-order events (new date before the last activity) are treated like
same-day events. Days covered by a streak freeze count as bridged, so a
gap made only of frozen days does not break the streak.
"""

from typing import Dict, Iterable, Optional
from datetime import date, datetime, timedelta
import logging

from personalfit.models.gamification import GamificationState, StreakUpdate

logger = logging.getLogger(__name__)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def update_streak(
    last_activity_date: Optional[date],
    new_activity_date: date,
    current_streak: int,
    frozen_days: Optional[Iterable[date]] = None
) -> StreakUpdate:
    """
    Compute the streak after an activity on `new_activity_date`

    Args:
        last_activity_date: Day of the previous counted activity, if any
        new_activity_date: Day of the new activity (datetimes are truncated)
        current_streak: Streak before this activity
        frozen_days: Days protected by a streak freeze

    Returns:
        StreakUpdate(streak, broken)
    """
    if last_activity_date is None:
        return StreakUpdate(streak=1, broken=False)

    last_day = _as_date(last_activity_date)
    new_day = _as_date(new_activity_date)
    gap = (new_day - last_day).days

    if gap <= 0:
        return StreakUpdate(streak=current_streak, broken=False)

    if gap == 1:
        return StreakUpdate(streak=current_streak + 1, broken=False)

    if frozen_days:
        frozen = {_as_date(d) for d in frozen_days}
        missed = [last_day + timedelta(days=i) for i in range(1, gap)]
        if all(day in frozen for day in missed):
            logger.debug(f"Streak gap of {gap} days bridged by streak freeze")
            return StreakUpdate(streak=current_streak + 1, broken=False)

    return StreakUpdate(streak=1, broken=True)


def apply_streak_freeze(
    state: GamificationState,
    today: date,
    gem_cost: int
) -> Dict[str, any]:
    """
    Spend a streak freeze on `today`, buying one with gems if none is left

    Mutates `state` in place; callers pass a working copy.

    Returns:
        {
            'success': bool,
            'purchased': bool,
            'reason': str | None
        }
    """
    if state.last_streak_freeze_date == today:
        return {"success": False, "purchased": False, "reason": "Streak freeze already used today"}

    purchased = False
    if state.streak_freezes_available <= 0:
        if state.gems < gem_cost:
            return {
                "success": False,
                "purchased": False,
                "reason": f"Not enough gems to purchase streak freeze (need {gem_cost})"
            }
        state.gems -= gem_cost
        state.streak_freezes_available += 1
        purchased = True

    state.streak_freezes_available -= 1
    state.streak_freezes_used_this_month += 1
    state.last_streak_freeze_date = today
    if today not in state.frozen_dates:
        state.frozen_dates.append(today)
    # Only the most recent freezes can still bridge a gap
    state.frozen_dates = sorted(state.frozen_dates)[-31:]

    return {"success": True, "purchased": purchased, "reason": None}
