"""
Challenge Progress Tracker

Applies progress increments to a user's daily challenge set and pays out
completion rewards through the account ledger.

Ordering for a completing increment:
1. Read today's set (created lazily and deterministically)
2. Advance the instance on a working copy
3. Credit the reward through the ledger, keyed by
   "challenge:<user>:<date>:<challenge_id>" so it is paid at most once
4. If the increment completes the whole set, credit the perfect day under
   "perfect_day:<user>:<date>"
5. compare_and_set the set; on a stale version re-read and retry

Every credit lands before the set is stored as completed. If a credit or
the set write fails, the stored set still shows the challenge open, so a
later increment re-applies it and the ledger keys turn repeated credits
into no-ops.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from personalfit import config
from personalfit.exceptions import ConcurrencyConflictError, StaleStateError
from personalfit.gamification.challenges import apply_progress, build_daily_challenge_set
from personalfit.gamification.ledger import AccountLedger
from personalfit.gamification.store import GamificationStore
from personalfit.models.challenge import ChallengeProgressResult, DailyChallengeSet
from personalfit.monitoring.prometheus_metrics import record_challenge_completion
from personalfit.resilience.retry import retry_with_backoff
from personalfit.utils.datetime_helpers import now_utc, to_reference_date

logger = logging.getLogger(__name__)

LONG_WORKOUT_MINUTES = 30


def challenge_event_id(user_id: str, day: date, challenge_id: str) -> str:
    return f"challenge:{user_id}:{day.isoformat()}:{challenge_id}"


class ChallengeProgressTracker:
    """Daily challenge lookup and progress updates"""

    def __init__(
        self,
        store: GamificationStore,
        ledger: AccountLedger,
        max_attempts: int = config.LEDGER_MAX_ATTEMPTS,
        tz_name: Optional[str] = None
    ):
        self.store = store
        self.ledger = ledger
        self.max_attempts = max_attempts
        self.tz_name = tz_name

    def _today(self, now: Optional[datetime] = None) -> date:
        return to_reference_date(now or now_utc(), self.tz_name)

    async def get_daily_challenges(self, user_id: str, day: Optional[date] = None) -> DailyChallengeSet:
        """Today's set, created on first access"""
        day = day or self._today()
        existing = await self.store.get_challenge_set(user_id, day)
        if existing is not None:
            return existing
        created = await self.store.create_challenge_set(build_daily_challenge_set(user_id, day))
        logger.info(
            f"Created daily challenges for user {user_id} on {day}: "
            f"{[c.id for c in created.challenges]}"
        )
        return created

    async def update_progress(
        self,
        user_id: str,
        challenge_id: str,
        increment: int = 1,
        now: Optional[datetime] = None
    ) -> ChallengeProgressResult:
        """
        Add `increment` to one of today's challenges

        Unknown challenge ids return found=False; completed challenges and
        non-positive increments return the current progress unchanged.
        """
        now = now or now_utc()
        day = self._today(now)
        attempts = 0

        async def attempt() -> ChallengeProgressResult:
            nonlocal attempts
            attempts += 1

            current = await self.get_daily_challenges(user_id, day)
            expected_version = current.version
            working = current.model_copy(deep=True)
            result = apply_progress(working, challenge_id, increment, now)

            if not result.found or working == current:
                return result

            if result.just_completed:
                await self.ledger.credit_reward(
                    user_id,
                    challenge_event_id(user_id, day, challenge_id),
                    xp=result.xp_awarded,
                    gems=result.gems_awarded,
                    challenge_completed=True,
                )
                if result.perfect_day:
                    await self.ledger.credit_reward(
                        user_id,
                        f"perfect_day:{user_id}:{day.isoformat()}",
                        xp=0,
                        perfect_day=day,
                    )

            if not await self.store.compare_and_set_challenge_set(working, expected_version):
                logger.warning(
                    f"[CHALLENGE] Stale challenge set for user {user_id} on {day} "
                    f"(attempt {attempts}/{self.max_attempts})"
                )
                raise StaleStateError(user_id, expected_version)

            if result.just_completed:
                challenge = working.find(challenge_id)
                record_challenge_completion(challenge.type.value)
                logger.info(
                    f"[CHALLENGE] User {user_id} completed {challenge_id}: "
                    f"+{result.xp_awarded} XP, +{result.gems_awarded} gems"
                )
            return result

        try:
            return await retry_with_backoff(
                attempt,
                max_attempts=self.max_attempts,
                operation="challenge_progress"
            )
        except StaleStateError as e:
            raise ConcurrencyConflictError(
                message=f"Could not update challenge {challenge_id} for user {user_id} after {attempts} attempts",
                event_id=challenge_event_id(user_id, day, challenge_id),
                attempts=attempts,
                user_id=user_id,
                operation="update_challenge_progress",
                cause=e
            )

    async def on_workout_completed(
        self,
        user_id: str,
        duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[ChallengeProgressResult]:
        """Advance workout and streak challenges after a completed workout"""
        challenge_set = await self.get_daily_challenges(user_id, self._today(now))
        increments: Dict[str, int] = {
            "workout_complete_1": 1,
            "workout_complete_2": 1,
            "streak_maintain": 1,
            "streak_extend": 1,
        }
        if duration_minutes is not None and duration_minutes >= LONG_WORKOUT_MINUTES:
            increments["workout_30_min"] = 1

        results = []
        for challenge in challenge_set.challenges:
            if challenge.id in increments and not challenge.completed:
                results.append(await self.update_progress(user_id, challenge.id, increments[challenge.id], now))
        return results

    async def on_personal_record(
        self,
        user_id: str,
        now: Optional[datetime] = None
    ) -> List[ChallengeProgressResult]:
        """Advance the personal-record challenge if it is one of today's"""
        challenge_set = await self.get_daily_challenges(user_id, self._today(now))
        challenge = challenge_set.find("pr_set")
        if challenge is None or challenge.completed:
            return []
        return [await self.update_progress(user_id, "pr_set", 1, now)]

    async def mark_streak_freeze_used(self, user_id: str, day: date) -> DailyChallengeSet:
        """Flag the day's set after a streak freeze has been spent"""

        async def attempt() -> DailyChallengeSet:
            current = await self.get_daily_challenges(user_id, day)
            if current.streak_freeze_used:
                return current
            working = current.model_copy(deep=True)
            working.streak_freeze_used = True
            if not await self.store.compare_and_set_challenge_set(working, current.version):
                raise StaleStateError(user_id, current.version)
            working.version = current.version + 1
            return working

        return await retry_with_backoff(attempt, max_attempts=self.max_attempts, operation="streak_freeze_flag")

    async def get_challenge_history(self, user_id: str, days: int = 7) -> List[DailyChallengeSet]:
        """Challenge sets of the last `days` reference days, newest first"""
        since = self._today() - timedelta(days=days - 1)
        return await self.store.list_challenge_sets(user_id, since)
