"""
XP Reward Calculator

XP Award Rules (defaults, configurable through personalfit.config):
- Workout completed: 100 XP (always)
- First workout ever: +200 XP (one time)
- Streak bonus: +25 XP per streak day (linear, uncapped)
- Personal record: +50 XP
"""

from dataclasses import dataclass

from personalfit import config
from personalfit.models.gamification import XpAward, XpBreakdownItem


@dataclass(frozen=True)
class XpRewards:
    """Reward constants handed to the calculator"""
    workout_completed: int = config.XP_WORKOUT_COMPLETED
    first_workout: int = config.XP_FIRST_WORKOUT
    streak_bonus_per_day: int = config.XP_STREAK_BONUS_PER_DAY
    personal_record: int = config.XP_PERSONAL_RECORD


DEFAULT_REWARDS = XpRewards()


def calculate_workout_xp(
    is_first_completion: bool,
    current_streak: int,
    had_personal_record: bool,
    rewards: XpRewards = DEFAULT_REWARDS
) -> XpAward:
    """
    Itemize the XP earned by one completion

    Breakdown order is fixed: base, first-workout bonus, streak bonus, PR bonus.
    """
    breakdown = [XpBreakdownItem(source="Workout Completed", amount=rewards.workout_completed)]

    if is_first_completion:
        breakdown.append(XpBreakdownItem(source="First Workout Bonus", amount=rewards.first_workout))

    if current_streak > 0:
        breakdown.append(XpBreakdownItem(
            source=f"{current_streak}-Day Streak Bonus",
            amount=rewards.streak_bonus_per_day * current_streak
        ))

    if had_personal_record:
        breakdown.append(XpBreakdownItem(source="Personal Record", amount=rewards.personal_record))

    return XpAward(total=sum(item.amount for item in breakdown), breakdown=breakdown)
