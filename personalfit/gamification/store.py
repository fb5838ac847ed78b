"""
Gamification storage port

The ledger and challenge tracker depend only on this protocol. Every
implementation must make compare_and_set_state atomic: the "event not yet
credited" check, the version check and the write happen together or not
at all.
"""

from datetime import date
from typing import List, Optional, Protocol

from personalfit import config
from personalfit.models.challenge import DailyChallengeSet
from personalfit.models.gamification import CasOutcome, GamificationState


def new_gamification_state(user_id: str) -> GamificationState:
    """Defaults for a lazily-created user document"""
    return GamificationState(
        user_id=user_id,
        gems=config.STARTING_GEMS,
        total_gems_earned=config.STARTING_GEMS,
        streak_freezes_available=config.MONTHLY_STREAK_FREEZES,
    )


class GamificationStore(Protocol):

    async def get_state(self, user_id: str) -> GamificationState:
        """Current state, created with defaults on first access"""
        ...

    async def has_processed_event(self, user_id: str, event_id: str) -> bool:
        ...

    async def compare_and_set_state(
        self,
        state: GamificationState,
        expected_version: int,
        event_id: Optional[str] = None
    ) -> CasOutcome:
        """
        Persist `state` if the stored version still equals `expected_version`
        and `event_id` (when given) has not been credited yet. On APPLIED the
        stored version becomes expected_version + 1 and event_id is recorded.
        """
        ...

    async def get_challenge_set(self, user_id: str, day: date) -> Optional[DailyChallengeSet]:
        ...

    async def create_challenge_set(self, challenge_set: DailyChallengeSet) -> DailyChallengeSet:
        """Insert if absent; returns whichever set is stored afterwards"""
        ...

    async def compare_and_set_challenge_set(
        self,
        challenge_set: DailyChallengeSet,
        expected_version: int
    ) -> bool:
        ...

    async def list_challenge_sets(self, user_id: str, since: date) -> List[DailyChallengeSet]:
        """Sets dated on or after `since`, newest first"""
        ...

    async def grant_monthly_streak_freezes(self, amount: int) -> int:
        """Add `amount` freezes to every user, reset monthly usage; returns users updated"""
        ...
