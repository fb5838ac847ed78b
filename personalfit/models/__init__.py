"""Pydantic models for the personalfit engine"""
from personalfit.models.gamification import (
    CasOutcome,
    CompletionEvent,
    GamificationState,
    LedgerOutcome,
    LedgerResult,
    StatsSnapshot,
    StreakUpdate,
    XpAward,
    XpBreakdownItem,
)
from personalfit.models.challenge import (
    ChallengeInstance,
    ChallengeProgressResult,
    ChallengeTemplate,
    ChallengeType,
    DailyChallengeSet,
)

__all__ = [
    "CasOutcome",
    "CompletionEvent",
    "GamificationState",
    "LedgerOutcome",
    "LedgerResult",
    "StatsSnapshot",
    "StreakUpdate",
    "XpAward",
    "XpBreakdownItem",
    "ChallengeInstance",
    "ChallengeProgressResult",
    "ChallengeTemplate",
    "ChallengeType",
    "DailyChallengeSet",
]
