"""Gamification state and ledger models"""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from personalfit.gamification.leveling import calculate_level


class GamificationState(BaseModel):
    """Per-user gamification document, mutated only through the account ledger"""
    user_id: str
    xp: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_activity_date: Optional[date] = None
    achievements: set[str] = Field(default_factory=set)
    total_completions: int = Field(default=0, ge=0)
    total_personal_records: int = Field(default=0, ge=0)
    gems: int = Field(default=0, ge=0)
    total_gems_earned: int = Field(default=0, ge=0)
    streak_freezes_available: int = Field(default=0, ge=0)
    streak_freezes_used_this_month: int = Field(default=0, ge=0)
    last_streak_freeze_date: Optional[date] = None
    frozen_dates: list[date] = Field(default_factory=list)

    # Counters feeding the achievement stats snapshot
    profile_complete: bool = False
    challenges_completed: int = Field(default=0, ge=0)
    perfect_days: int = Field(default=0, ge=0)
    perfect_day_run: int = Field(default=0, ge=0)
    last_perfect_day: Optional[date] = None
    perfect_weeks: int = Field(default=0, ge=0)
    early_completions: int = Field(default=0, ge=0)
    late_completions: int = Field(default=0, ge=0)
    weekend_completions: int = Field(default=0, ge=0)
    comebacks: int = Field(default=0, ge=0)
    recent_pr_dates: list[date] = Field(default_factory=list)

    # Optimistic-locking token, bumped on every successful write
    version: int = Field(default=0, ge=0)

    @computed_field
    @property
    def level(self) -> int:
        return calculate_level(self.xp)


class CompletionEvent(BaseModel):
    """A workout or dose completion to be credited at most once"""
    event_id: str = Field(min_length=1)
    user_id: str
    occurred_at: datetime
    is_first_completion: bool = False
    had_personal_record: bool = False
    profile_complete: Optional[bool] = None
    source: str = "workout"


class StatsSnapshot(BaseModel):
    """Flattened stats evaluated by achievement predicates; every field has a default"""
    total_workouts: int = 0
    current_streak: int = 0
    total_prs: int = 0
    level: int = 1
    total_xp: int = 0
    profile_complete: bool = False
    prs_this_week: int = 0
    prs_today: int = 0
    challenges_completed: int = 0
    perfect_days: int = 0
    perfect_weeks: int = 0
    early_workouts: int = 0
    late_workouts: int = 0
    weekend_workouts: int = 0
    comebacks: int = 0
    total_gems: int = 0


class XpBreakdownItem(BaseModel):
    source: str
    amount: int


class XpAward(BaseModel):
    total: int
    breakdown: list[XpBreakdownItem]


class StreakUpdate(BaseModel):
    streak: int
    broken: bool


class LedgerOutcome(str, Enum):
    """Result of one ledger operation"""
    CREDITED = "credited"
    ALREADY_PROCESSED = "already_processed"
    REJECTED = "rejected"


class LedgerResult(BaseModel):
    """What a ledger operation did to the user's state"""
    outcome: LedgerOutcome
    user_id: str
    event_id: str
    xp_awarded: int = 0
    gems_awarded: int = 0
    breakdown: list[XpBreakdownItem] = Field(default_factory=list)
    old_level: int = 1
    new_level: int = 1
    streak: int = 0
    streak_broken: bool = False
    new_achievements: list[str] = Field(default_factory=list)
    attempts: int = 1
    reason: Optional[str] = None
    state: Optional[GamificationState] = None

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level

    @property
    def credited(self) -> bool:
        return self.outcome == LedgerOutcome.CREDITED


class CasOutcome(str, Enum):
    """Outcome of an atomic conditional write"""
    APPLIED = "applied"
    STALE = "stale"
    DUPLICATE = "duplicate"
