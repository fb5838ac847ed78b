"""Daily challenge models"""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ChallengeType(str, Enum):
    """Challenge categories, in rotation order"""
    WORKOUT = "workout"
    EXERCISE = "exercise"
    STREAK = "streak"
    EXPLORATION = "exploration"


class ChallengeTemplate(BaseModel):
    """Static challenge definition from the pool"""
    id: str
    type: ChallengeType
    title: str
    description: str
    target: int = Field(gt=0)
    xp_reward: int
    gems_reward: int


class ChallengeInstance(BaseModel):
    """A template instantiated for one user and day"""
    id: str
    type: ChallengeType
    title: str
    description: str
    target: int
    progress: int = 0
    completed: bool = False
    completed_at: Optional[datetime] = None
    xp_reward: int
    gems_reward: int

    @classmethod
    def from_template(cls, template: ChallengeTemplate) -> "ChallengeInstance":
        return cls(
            id=template.id,
            type=template.type,
            title=template.title,
            description=template.description,
            target=template.target,
            xp_reward=template.xp_reward,
            gems_reward=template.gems_reward,
        )


class DailyChallengeSet(BaseModel):
    """The three challenges of one user on one reference day"""
    user_id: str
    date: date
    challenges: list[ChallengeInstance]
    streak_freeze_used: bool = False
    gems_earned_today: int = 0
    version: int = 0

    @property
    def all_completed(self) -> bool:
        return bool(self.challenges) and all(c.completed for c in self.challenges)

    def find(self, challenge_id: str) -> Optional[ChallengeInstance]:
        for challenge in self.challenges:
            if challenge.id == challenge_id:
                return challenge
        return None


class ChallengeProgressResult(BaseModel):
    """Returned by the progress tracker for one increment"""
    challenge_id: str
    found: bool = True
    progress: int = 0
    target: int = 0
    completed: bool = False
    just_completed: bool = False
    xp_awarded: int = 0
    gems_awarded: int = 0
    perfect_day: bool = False
