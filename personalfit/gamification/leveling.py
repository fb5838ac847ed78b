"""
Leveling Engine

Fixed 20-level curve. LEVEL_THRESHOLDS[i] is the total XP needed to reach
level i + 1, so level 1 starts at 0 XP and level 20 at 59,000 XP. XP keeps
accumulating past the last threshold but the level stays capped at 20.

Negative XP is clamped to 0 (level 1, 0% progress).
"""

from typing import Dict

LEVEL_THRESHOLDS: list[int] = [
    0,       # Level 1
    500,     # Level 2
    1200,    # Level 3
    2200,    # Level 4
    3500,    # Level 5
    5100,    # Level 6
    7000,    # Level 7
    9200,    # Level 8
    11700,   # Level 9
    14500,   # Level 10
    17600,   # Level 11
    21000,   # Level 12
    24700,   # Level 13
    28700,   # Level 14
    33000,   # Level 15
    37600,   # Level 16
    42500,   # Level 17
    47700,   # Level 18
    53200,   # Level 19
    59000,   # Level 20
]

MAX_LEVEL = len(LEVEL_THRESHOLDS)


def threshold_for_level(level: int) -> int:
    """XP required to reach `level` (levels outside 1..20 are clamped)"""
    level = min(max(level, 1), MAX_LEVEL)
    return LEVEL_THRESHOLDS[level - 1]


def calculate_level(xp: int) -> int:
    """Highest level whose threshold is <= xp"""
    xp = max(xp, 0)
    level = 1
    for i, threshold in enumerate(LEVEL_THRESHOLDS):
        if xp >= threshold:
            level = i + 1
        else:
            break
    return level


def get_xp_for_next_level(level: int) -> int:
    """Threshold of level + 1, or the level-20 threshold once at max"""
    if level >= MAX_LEVEL:
        return LEVEL_THRESHOLDS[-1]
    return threshold_for_level(level + 1)


def get_level_progress(xp: int) -> int:
    """Percentage (0-100, rounded) of the way from the current level to the next"""
    xp = max(xp, 0)
    level = calculate_level(xp)
    if level >= MAX_LEVEL:
        return 100

    current_threshold = threshold_for_level(level)
    next_threshold = threshold_for_level(level + 1)
    # round half up
    return int((100 * (xp - current_threshold) / (next_threshold - current_threshold)) + 0.5)


def get_level_title(level: int) -> str:
    """Display title for a level"""
    if level == 1:
        return "Beginner"
    if level <= 3:
        return "Novice"
    if level <= 5:
        return "Intermediate"
    if level <= 8:
        return "Advanced"
    if level <= 12:
        return "Expert"
    if level <= 15:
        return "Master"
    if level <= 18:
        return "Elite"
    if level <= 20:
        return "Legend"
    return "Max Level"


def get_level_info(xp: int) -> Dict[str, any]:
    """
    Summarize leveling state for display

    Returns:
        {
            'level': int,
            'title': str,
            'xp': int,
            'xp_for_next_level': int,
            'xp_to_next_level': int,
            'progress_percent': int,
            'is_max_level': bool
        }
    """
    level = calculate_level(xp)
    next_threshold = get_xp_for_next_level(level)
    return {
        "level": level,
        "title": get_level_title(level),
        "xp": xp,
        "xp_for_next_level": next_threshold,
        "xp_to_next_level": max(next_threshold - xp, 0),
        "progress_percent": get_level_progress(xp),
        "is_max_level": level >= MAX_LEVEL,
    }
