"""
PostgreSQL gamification store

Backs the GamificationStore protocol with personalfit.db.queries.gamification.
The whole user state lives in one JSONB document guarded by a version
column; credited event ids live in their own table and are inserted in the
same transaction as the state write.
"""

import logging
from datetime import date
from typing import List, Optional

import psycopg

from personalfit.db.queries import gamification as queries
from personalfit.exceptions import wrap_external_exception
from personalfit.gamification.store import new_gamification_state
from personalfit.models.challenge import DailyChallengeSet
from personalfit.models.gamification import CasOutcome, GamificationState

logger = logging.getLogger(__name__)


def _state_document(state: GamificationState) -> dict:
    # version lives in its own column
    return state.model_dump(mode="json", exclude={"version"})


def _challenge_document(challenge_set: DailyChallengeSet) -> dict:
    return challenge_set.model_dump(mode="json", exclude={"version"})


def _load_challenge_set(row: dict) -> DailyChallengeSet:
    return DailyChallengeSet.model_validate({**row["challenge_set"], "version": row["version"]})


class PostgresGamificationStore:
    """GamificationStore over the shared connection pool"""

    async def get_state(self, user_id: str) -> GamificationState:
        try:
            row = await queries.get_or_create_state(
                user_id, _state_document(new_gamification_state(user_id))
            )
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_state", user_id=user_id)
        return GamificationState.model_validate({**row["state"], "version": row["version"]})

    async def has_processed_event(self, user_id: str, event_id: str) -> bool:
        try:
            return await queries.is_event_credited(user_id, event_id)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, operation="has_processed_event", user_id=user_id, context={"event_id": event_id}
            )

    async def compare_and_set_state(
        self,
        state: GamificationState,
        expected_version: int,
        event_id: Optional[str] = None
    ) -> CasOutcome:
        try:
            outcome = await queries.conditional_update_state(
                state.user_id, _state_document(state), expected_version, event_id
            )
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="compare_and_set_state",
                user_id=state.user_id,
                context={"expected_version": expected_version, "event_id": event_id},
            )
        return CasOutcome(outcome)

    async def get_challenge_set(self, user_id: str, day: date) -> Optional[DailyChallengeSet]:
        try:
            row = await queries.get_challenge_set(user_id, day)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_challenge_set", user_id=user_id)
        return _load_challenge_set(row) if row else None

    async def create_challenge_set(self, challenge_set: DailyChallengeSet) -> DailyChallengeSet:
        try:
            row = await queries.insert_challenge_set(
                challenge_set.user_id, challenge_set.date, _challenge_document(challenge_set)
            )
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="create_challenge_set", user_id=challenge_set.user_id)
        return _load_challenge_set(row)

    async def compare_and_set_challenge_set(
        self,
        challenge_set: DailyChallengeSet,
        expected_version: int
    ) -> bool:
        try:
            return await queries.conditional_update_challenge_set(
                challenge_set.user_id,
                challenge_set.date,
                _challenge_document(challenge_set),
                expected_version,
            )
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, operation="compare_and_set_challenge_set", user_id=challenge_set.user_id
            )

    async def list_challenge_sets(self, user_id: str, since: date) -> List[DailyChallengeSet]:
        try:
            rows = await queries.list_challenge_sets(user_id, since)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="list_challenge_sets", user_id=user_id)
        return [_load_challenge_set(row) for row in rows]

    async def grant_monthly_streak_freezes(self, amount: int) -> int:
        try:
            return await queries.grant_streak_freezes_to_all(amount)
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="grant_monthly_streak_freezes")
