"""
Goal Progress

Progress is a percentage in [0, 100]:
- decrease: share of the planned drop already achieved (e.g. weight loss)
- increase: share of the planned rise already achieved
- target: 100 once current reaches target, else current / target
- accumulate: running total against target, capped at 100
"""

import logging
from datetime import datetime
from typing import Optional

from personalfit.models.goal import Goal, GoalStatus, GoalType
from personalfit.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


def calculate_goal_progress(
    goal_type: GoalType,
    initial_value: float,
    current_value: float,
    target_value: float
) -> float:
    if goal_type == GoalType.DECREASE:
        total_change = initial_value - target_value
        if total_change <= 0:
            return 0.0
        return min(100.0, max(0.0, (initial_value - current_value) / total_change * 100))

    if goal_type == GoalType.INCREASE:
        total_change = target_value - initial_value
        if total_change <= 0:
            return 0.0
        return min(100.0, max(0.0, (current_value - initial_value) / total_change * 100))

    if goal_type == GoalType.TARGET:
        if current_value >= target_value:
            return 100.0
        if target_value <= 0:
            return 0.0
        return max(0.0, current_value / target_value * 100)

    if goal_type == GoalType.ACCUMULATE:
        if target_value <= 0:
            return 0.0
        return min(100.0, max(0.0, current_value / target_value * 100))

    return 0.0


def update_goal_progress(goal: Goal, current_value: float, now: Optional[datetime] = None) -> Goal:
    """
    Record a new current value; an active goal reaching 100% is completed

    Returns an updated copy.
    """
    updated = goal.model_copy(update={"current_value": current_value})
    updated.progress = round(
        calculate_goal_progress(goal.goal_type, goal.initial_value, current_value, goal.target_value), 2
    )
    if updated.progress >= 100 and updated.status == GoalStatus.ACTIVE:
        updated.status = GoalStatus.COMPLETED
        updated.completed_at = now or now_utc()
        logger.info(f"Goal {goal.id} for user {goal.user_id} completed")
    return updated
