"""
Account Ledger

The only code path that mutates a user's GamificationState. Every
operation is an optimistic read-compute-write cycle:

1. Read the current state (created lazily) and its version
2. Return early if the idempotency key was already credited
3. Apply the mutation to a working copy, then recompute level and
   re-evaluate achievements against the post-update snapshot
4. compare_and_set the copy: the store checks the version and the
   idempotency key and writes in one atomic step
5. On a stale version, re-read and retry with backoff, up to
   LEDGER_MAX_ATTEMPTS; then raise ConcurrencyConflictError

A duplicate delivery of the same event id is a successful no-op.
"""

import logging
from datetime import date, timedelta
from typing import Any, Callable, Dict, Optional

from personalfit import config
from personalfit.exceptions import ConcurrencyConflictError, StaleStateError
from personalfit.gamification.achievement_system import build_stats_snapshot, check_achievements
from personalfit.gamification.store import GamificationStore
from personalfit.gamification.streak_system import apply_streak_freeze, update_streak
from personalfit.gamification.xp_system import DEFAULT_REWARDS, XpRewards, calculate_workout_xp
from personalfit.models.gamification import (
    CasOutcome,
    CompletionEvent,
    GamificationState,
    LedgerOutcome,
    LedgerResult,
)
from personalfit.monitoring.prometheus_metrics import record_ledger_conflict, record_ledger_result
from personalfit.resilience.retry import retry_with_backoff
from personalfit.utils.datetime_helpers import to_reference, today_reference

logger = logging.getLogger(__name__)

EARLY_BIRD_HOUR = 7
NIGHT_OWL_HOUR = 22
COMEBACK_GAP_DAYS = 14
PERFECT_WEEK_DAYS = 7
PR_WINDOW_DAYS = 7

# A mutation returns a details dict, or {"rejected": reason} to abort without writing
Mutation = Callable[[GamificationState], Dict[str, Any]]


class AccountLedger:
    """Idempotent, optimistic-locking credit path for gamification state"""

    def __init__(
        self,
        store: GamificationStore,
        rewards: XpRewards = DEFAULT_REWARDS,
        max_attempts: int = config.LEDGER_MAX_ATTEMPTS,
        tz_name: Optional[str] = None
    ):
        self.store = store
        self.rewards = rewards
        self.max_attempts = max_attempts
        self.tz_name = tz_name

    # ==========================================
    # Public operations
    # ==========================================

    async def credit_completion(self, event: CompletionEvent) -> LedgerResult:
        """
        Credit one workout/dose completion at most once

        Streak is updated first; the XP streak bonus uses the updated streak.
        """
        local_time = to_reference(event.occurred_at, self.tz_name)
        day = local_time.date()

        def mutate(state: GamificationState) -> Dict[str, Any]:
            previous_day = state.last_activity_date
            streak = update_streak(previous_day, day, state.current_streak, state.frozen_dates)
            state.current_streak = streak.streak
            state.longest_streak = max(state.longest_streak, streak.streak)
            if previous_day is None or day > previous_day:
                state.last_activity_date = day

            award = calculate_workout_xp(
                event.is_first_completion,
                streak.streak,
                event.had_personal_record,
                self.rewards
            )
            state.xp += award.total
            state.total_completions += 1

            if event.had_personal_record:
                state.total_personal_records += 1
                state.recent_pr_dates = [
                    d for d in state.recent_pr_dates + [day]
                    if d > day - timedelta(days=PR_WINDOW_DAYS)
                ]

            if local_time.hour < EARLY_BIRD_HOUR:
                state.early_completions += 1
            if local_time.hour >= NIGHT_OWL_HOUR:
                state.late_completions += 1
            if day.weekday() >= 5:
                state.weekend_completions += 1
            if previous_day is not None and (day - previous_day).days >= COMEBACK_GAP_DAYS:
                state.comebacks += 1
            if event.profile_complete is not None:
                state.profile_complete = event.profile_complete

            return {
                "xp_awarded": award.total,
                "breakdown": award.breakdown,
                "streak_broken": streak.broken,
            }

        return await self._run(event.user_id, event.event_id, "credit_completion", mutate, day)

    async def credit_reward(
        self,
        user_id: str,
        event_id: str,
        xp: int,
        gems: int = 0,
        challenge_completed: bool = False,
        perfect_day: Optional[date] = None
    ) -> LedgerResult:
        """
        Credit a fixed XP/gem reward (e.g. a completed daily challenge) at most once

        Args:
            user_id: Owner of the state
            event_id: Idempotency key, e.g. "challenge:<user>:<date>:<challenge_id>"
            xp: XP to add
            gems: Gems to add (also counted in total_gems_earned)
            challenge_completed: Count one more completed daily challenge
            perfect_day: Day on which every daily challenge is now complete
        """
        day = perfect_day or today_reference(self.tz_name)

        def mutate(state: GamificationState) -> Dict[str, Any]:
            state.xp += max(xp, 0)
            state.gems += max(gems, 0)
            state.total_gems_earned += max(gems, 0)
            if challenge_completed:
                state.challenges_completed += 1
            if perfect_day is not None:
                self._record_perfect_day(state, perfect_day)
            return {"xp_awarded": max(xp, 0), "gems_awarded": max(gems, 0)}

        return await self._run(user_id, event_id, "credit_reward", mutate, day)

    async def use_streak_freeze(self, user_id: str, today: Optional[date] = None) -> LedgerResult:
        """
        Protect `today` with a streak freeze, buying one with gems if needed

        Rejected (no write) when a freeze was already used today or the user
        cannot afford one.
        """
        today = today or today_reference(self.tz_name)

        def mutate(state: GamificationState) -> Dict[str, Any]:
            gems_before = state.gems
            outcome = apply_streak_freeze(state, today, config.STREAK_FREEZE_GEM_COST)
            if not outcome["success"]:
                return {"rejected": outcome["reason"]}
            return {"gems_awarded": state.gems - gems_before}

        # Guarded by last_streak_freeze_date plus the version check, not an event key
        return await self._run(
            user_id,
            f"streak_freeze:{user_id}:{today.isoformat()}",
            "use_streak_freeze",
            mutate,
            today,
            idempotent=False
        )

    # ==========================================
    # Internals
    # ==========================================

    @staticmethod
    def _record_perfect_day(state: GamificationState, day: date) -> None:
        if state.last_perfect_day == day:
            return
        if state.last_perfect_day == day - timedelta(days=1):
            state.perfect_day_run += 1
        else:
            state.perfect_day_run = 1
        state.last_perfect_day = day
        state.perfect_days += 1
        if state.perfect_day_run % PERFECT_WEEK_DAYS == 0:
            state.perfect_weeks += 1

    async def _run(
        self,
        user_id: str,
        event_id: str,
        operation: str,
        mutate: Mutation,
        day: date,
        idempotent: bool = True
    ) -> LedgerResult:
        attempts = 0
        idempotency_key = event_id if idempotent else None

        async def attempt() -> LedgerResult:
            nonlocal attempts
            attempts += 1

            state = await self.store.get_state(user_id)
            if idempotency_key and await self.store.has_processed_event(user_id, idempotency_key):
                return self._already_processed(user_id, event_id, attempts, state)

            expected_version = state.version
            old_level = state.level
            working = state.model_copy(deep=True)

            details = mutate(working)
            if "rejected" in details:
                return LedgerResult(
                    outcome=LedgerOutcome.REJECTED,
                    user_id=user_id,
                    event_id=event_id,
                    old_level=old_level,
                    new_level=old_level,
                    streak=state.current_streak,
                    attempts=attempts,
                    reason=details["rejected"],
                    state=state,
                )

            new_achievements = check_achievements(
                working.achievements,
                build_stats_snapshot(working, day)
            )
            working.achievements |= set(new_achievements)

            outcome = await self.store.compare_and_set_state(working, expected_version, idempotency_key)
            if outcome == CasOutcome.DUPLICATE:
                return self._already_processed(user_id, event_id, attempts, state)
            if outcome == CasOutcome.STALE:
                logger.warning(
                    f"[LEDGER] Stale state for user {user_id} event {event_id} "
                    f"(attempt {attempts}/{self.max_attempts})"
                )
                raise StaleStateError(user_id, expected_version)

            working.version = expected_version + 1
            return LedgerResult(
                outcome=LedgerOutcome.CREDITED,
                user_id=user_id,
                event_id=event_id,
                xp_awarded=details.get("xp_awarded", 0),
                gems_awarded=details.get("gems_awarded", 0),
                breakdown=details.get("breakdown", []),
                old_level=old_level,
                new_level=working.level,
                streak=working.current_streak,
                streak_broken=details.get("streak_broken", False),
                new_achievements=new_achievements,
                attempts=attempts,
                state=working,
            )

        try:
            result = await retry_with_backoff(
                attempt,
                max_attempts=self.max_attempts,
                operation=f"ledger_{operation}"
            )
        except StaleStateError as e:
            record_ledger_conflict()
            record_ledger_result("conflict", attempts)
            raise ConcurrencyConflictError(
                message=f"Could not apply {operation} for user {user_id} after {attempts} attempts",
                event_id=event_id,
                attempts=attempts,
                user_id=user_id,
                operation=operation,
                cause=e
            )

        record_ledger_result(result.outcome.value, attempts)
        if result.outcome == LedgerOutcome.CREDITED:
            logger.info(
                f"[LEDGER] {operation} user={user_id} event={event_id} "
                f"xp=+{result.xp_awarded} gems=+{result.gems_awarded} "
                f"level={result.new_level} attempts={attempts}"
            )
        elif result.outcome == LedgerOutcome.REJECTED:
            logger.info(f"[LEDGER] {operation} rejected for user {user_id}: {result.reason}")
        return result

    @staticmethod
    def _already_processed(
        user_id: str,
        event_id: str,
        attempts: int,
        state: GamificationState
    ) -> LedgerResult:
        logger.info(f"[LEDGER] Event {event_id} for user {user_id} already processed, skipping")
        return LedgerResult(
            outcome=LedgerOutcome.ALREADY_PROCESSED,
            user_id=user_id,
            event_id=event_id,
            old_level=state.level,
            new_level=state.level,
            streak=state.current_streak,
            attempts=attempts,
            state=state,
        )
