"""
In-memory gamification store

Implements the GamificationStore protocol for tests and single-process
deployments. Documents are deep-copied on the way in and out so callers
never share mutable state with the store, and every read yields to the
event loop so concurrent handlers interleave the way they would against
a real database.
"""

import asyncio
import logging
from datetime import date
from typing import Dict, List, Optional, Set, Tuple

from personalfit.gamification.store import new_gamification_state
from personalfit.models.challenge import DailyChallengeSet
from personalfit.models.gamification import CasOutcome, GamificationState

logger = logging.getLogger(__name__)


class InMemoryGamificationStore:
    """Lock-guarded in-memory GamificationStore"""

    def __init__(self, read_latency: float = 0.0):
        self._states: Dict[str, GamificationState] = {}
        self._processed_events: Dict[str, Set[str]] = {}
        self._challenge_sets: Dict[Tuple[str, date], DailyChallengeSet] = {}
        self._lock = asyncio.Lock()
        self._read_latency = read_latency

    async def get_state(self, user_id: str) -> GamificationState:
        await asyncio.sleep(self._read_latency)
        async with self._lock:
            if user_id not in self._states:
                self._states[user_id] = new_gamification_state(user_id)
                logger.debug(f"Created gamification state for user {user_id}")
            return self._states[user_id].model_copy(deep=True)

    async def has_processed_event(self, user_id: str, event_id: str) -> bool:
        async with self._lock:
            return event_id in self._processed_events.get(user_id, set())

    async def compare_and_set_state(
        self,
        state: GamificationState,
        expected_version: int,
        event_id: Optional[str] = None
    ) -> CasOutcome:
        async with self._lock:
            processed = self._processed_events.setdefault(state.user_id, set())
            if event_id and event_id in processed:
                return CasOutcome.DUPLICATE

            current = self._states.get(state.user_id)
            current_version = current.version if current else 0
            if current_version != expected_version:
                return CasOutcome.STALE

            stored = state.model_copy(deep=True)
            stored.version = expected_version + 1
            self._states[state.user_id] = stored
            if event_id:
                processed.add(event_id)
            return CasOutcome.APPLIED

    async def get_challenge_set(self, user_id: str, day: date) -> Optional[DailyChallengeSet]:
        await asyncio.sleep(self._read_latency)
        async with self._lock:
            stored = self._challenge_sets.get((user_id, day))
            return stored.model_copy(deep=True) if stored else None

    async def create_challenge_set(self, challenge_set: DailyChallengeSet) -> DailyChallengeSet:
        async with self._lock:
            key = (challenge_set.user_id, challenge_set.date)
            if key not in self._challenge_sets:
                self._challenge_sets[key] = challenge_set.model_copy(deep=True)
            return self._challenge_sets[key].model_copy(deep=True)

    async def compare_and_set_challenge_set(
        self,
        challenge_set: DailyChallengeSet,
        expected_version: int
    ) -> bool:
        async with self._lock:
            key = (challenge_set.user_id, challenge_set.date)
            current = self._challenge_sets.get(key)
            if current is None or current.version != expected_version:
                return False
            stored = challenge_set.model_copy(deep=True)
            stored.version = expected_version + 1
            self._challenge_sets[key] = stored
            return True

    async def list_challenge_sets(self, user_id: str, since: date) -> List[DailyChallengeSet]:
        async with self._lock:
            sets = [
                s.model_copy(deep=True)
                for (uid, day), s in self._challenge_sets.items()
                if uid == user_id and day >= since
            ]
        return sorted(sets, key=lambda s: s.date, reverse=True)

    async def grant_monthly_streak_freezes(self, amount: int) -> int:
        async with self._lock:
            for user_id, state in self._states.items():
                updated = state.model_copy(deep=True)
                updated.streak_freezes_available += amount
                updated.streak_freezes_used_this_month = 0
                updated.version += 1
                self._states[user_id] = updated
            return len(self._states)
