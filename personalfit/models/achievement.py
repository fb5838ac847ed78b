"""Achievement models for gamification"""
from enum import Enum
from pydantic import BaseModel
from typing import Any


class AchievementCategory(str, Enum):
    """Achievement categories"""
    MILESTONE = "milestone"
    STREAK = "streak"
    VOLUME = "volume"
    PR = "pr"
    LEVEL = "level"
    CHALLENGE = "challenge"
    SPECIAL = "special"


class Achievement(BaseModel):
    """
    Achievement definition

    `criteria` names a StatsSnapshot field and the minimum it must reach,
    e.g. {"stat": "current_streak", "min": 7}. A boolean stat unlocks when true.
    """
    id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    criteria: dict[str, Any]
