"""
Gamification engine for personalfit

This package implements the reward side of the platform:
- Leveling curve (XP -> level, progress, titles)
- Workout streak calculation with streak freezes
- XP reward breakdowns
- Achievement catalog and evaluation
- Deterministic daily challenges and their progress
- The account ledger, the single path that credits XP, gems and streaks
"""

from personalfit.gamification.leveling import (
    calculate_level,
    get_level_progress,
    get_level_title,
    get_xp_for_next_level,
)

__all__ = [
    "calculate_level",
    "get_level_progress",
    "get_level_title",
    "get_xp_for_next_level",
]
