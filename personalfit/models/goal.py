"""Goal models"""
from enum import Enum
from typing import Optional
from datetime import datetime

from pydantic import BaseModel


class GoalType(str, Enum):
    DECREASE = "decrease"
    INCREASE = "increase"
    TARGET = "target"
    ACCUMULATE = "accumulate"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class Goal(BaseModel):
    """A body or activity goal tracked against a metric"""
    id: str
    user_id: str
    title: str
    goal_type: GoalType
    initial_value: float
    current_value: float
    target_value: float
    progress: float = 0.0
    status: GoalStatus = GoalStatus.ACTIVE
    completed_at: Optional[datetime] = None
