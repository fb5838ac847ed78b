"""
GamificationService - Gamification Business Logic

Entry point for workout completions, daily challenges and streak freezes.
All balance changes go through the AccountLedger.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from personalfit.gamification.achievement_system import get_achievement, get_all_achievements
from personalfit.gamification.challenge_tracker import ChallengeProgressTracker
from personalfit.gamification.leveling import get_level_info
from personalfit.gamification.ledger import AccountLedger
from personalfit.gamification.store import GamificationStore
from personalfit.models.challenge import ChallengeProgressResult, DailyChallengeSet
from personalfit.models.gamification import CompletionEvent, LedgerResult
from personalfit.utils.datetime_helpers import today_reference

logger = logging.getLogger(__name__)


class GamificationService:
    """
    Service for gamification features.

    Responsibilities:
    - Crediting completions through the ledger
    - Advancing daily challenges after a credited completion
    - Streak freezes
    - Profile, level and achievement listings
    - User-facing summary messages
    """

    def __init__(
        self,
        store: GamificationStore,
        ledger: Optional[AccountLedger] = None,
        tracker: Optional[ChallengeProgressTracker] = None,
        tz_name: Optional[str] = None
    ):
        """
        Initialize GamificationService.

        Args:
            store: GamificationStore implementation
            ledger: Ledger to credit through (built from `store` if omitted)
            tracker: Challenge tracker (built from `store` and `ledger` if omitted)
            tz_name: Reference time zone override
        """
        self.store = store
        self.tz_name = tz_name
        self.ledger = ledger or AccountLedger(store, tz_name=tz_name)
        self.tracker = tracker or ChallengeProgressTracker(store, self.ledger, tz_name=tz_name)
        logger.debug("GamificationService initialized")

    async def process_completion(
        self,
        event: CompletionEvent,
        duration_minutes: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Credit a workout completion and advance today's challenges.

        Challenges only move when the ledger actually credited the event, so
        a redelivered event changes nothing.

        Returns:
            {
                'outcome': 'credited' | 'already_processed',
                'xp_awarded': int,
                'breakdown': [{'source': str, 'amount': int}, ...],
                'level_up': bool,
                'new_level': int,
                'current_streak': int,
                'streak_broken': bool,
                'achievements_unlocked': [{'id', 'name', 'icon'}, ...],
                'challenges_completed': [str, ...],
                'message': str
            }
        """
        ledger_result = await self.ledger.credit_completion(event)

        challenge_results: List[ChallengeProgressResult] = []
        if ledger_result.credited:
            challenge_results.extend(
                await self.tracker.on_workout_completed(event.user_id, duration_minutes, event.occurred_at)
            )
            if event.had_personal_record:
                challenge_results.extend(
                    await self.tracker.on_personal_record(event.user_id, event.occurred_at)
                )

        result = {
            'outcome': ledger_result.outcome.value,
            'xp_awarded': ledger_result.xp_awarded,
            'breakdown': [item.model_dump() for item in ledger_result.breakdown],
            'level_up': ledger_result.leveled_up,
            'new_level': ledger_result.new_level,
            'current_streak': ledger_result.streak,
            'streak_broken': ledger_result.streak_broken,
            'achievements_unlocked': self._describe_achievements(ledger_result.new_achievements),
            'challenges_completed': [r.challenge_id for r in challenge_results if r.just_completed],
            'message': '',
        }
        result['message'] = self._build_completion_message(ledger_result, result)

        logger.info(
            f"Gamification processed for completion: user={event.user_id}, "
            f"event={event.event_id}, outcome={result['outcome']}, "
            f"xp={result['xp_awarded']}, streak={result['current_streak']}, "
            f"challenges={len(result['challenges_completed'])}"
        )
        return result

    async def update_challenge_progress(
        self,
        user_id: str,
        challenge_id: str,
        increment: int = 1
    ) -> ChallengeProgressResult:
        return await self.tracker.update_progress(user_id, challenge_id, increment)

    async def get_daily_challenges(self, user_id: str, day: Optional[date] = None) -> DailyChallengeSet:
        return await self.tracker.get_daily_challenges(user_id, day)

    async def get_challenge_history(self, user_id: str, days: int = 7) -> List[DailyChallengeSet]:
        return await self.tracker.get_challenge_history(user_id, days)

    async def use_streak_freeze(self, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Spend (or buy) a streak freeze for today.

        Returns:
            {
                'success': bool,
                'purchased': bool,
                'gems_remaining': int,
                'freezes_remaining': int,
                'reason': str | None
            }
        """
        today = today or today_reference(self.tz_name)
        result = await self.ledger.use_streak_freeze(user_id, today)

        if result.credited:
            await self.tracker.mark_streak_freeze_used(user_id, today)

        state = result.state
        return {
            'success': result.credited,
            'purchased': result.credited and result.gems_awarded < 0,
            'gems_remaining': state.gems if state else 0,
            'freezes_remaining': state.streak_freezes_available if state else 0,
            'reason': result.reason,
        }

    async def get_profile(self, user_id: str) -> Dict[str, Any]:
        """
        Level, streak and balances for display

        Returns:
            get_level_info() fields plus
            {
                'current_streak': int,
                'longest_streak': int,
                'gems': int,
                'streak_freezes_available': int,
                'achievements_unlocked': int
            }
        """
        state = await self.store.get_state(user_id)
        profile = get_level_info(state.xp)
        profile.update({
            'current_streak': state.current_streak,
            'longest_streak': state.longest_streak,
            'gems': state.gems,
            'streak_freezes_available': state.streak_freezes_available,
            'achievements_unlocked': len(state.achievements),
        })
        return profile

    async def get_achievements(self, user_id: str) -> List[Dict[str, Any]]:
        state = await self.store.get_state(user_id)
        return get_all_achievements(state.achievements)

    # ==========================================
    # Helpers
    # ==========================================

    @staticmethod
    def _describe_achievements(achievement_ids: List[str]) -> List[Dict[str, str]]:
        described = []
        for achievement_id in achievement_ids:
            achievement = get_achievement(achievement_id)
            if achievement:
                described.append({
                    'id': achievement.id,
                    'name': achievement.name,
                    'icon': achievement.icon,
                })
        return described

    @staticmethod
    def _build_completion_message(ledger_result: LedgerResult, result: Dict[str, Any]) -> str:
        """Build the user-facing completion summary."""
        if not ledger_result.credited:
            return "This workout was already counted."

        message_parts = []

        # XP details
        message_parts.append(f"⭐ +{result['xp_awarded']} XP")
        for item in ledger_result.breakdown:
            message_parts.append(f"  • {item.source}: +{item.amount}")

        # Level details
        if result['level_up']:
            info = get_level_info(ledger_result.state.xp) if ledger_result.state else None
            title = f" ({info['title']})" if info else ""
            message_parts.append(f"🎉 Level up! You reached level {result['new_level']}{title}")

        # Streak details
        if result['streak_broken']:
            message_parts.append("💪 New streak started. Day 1!")
        elif result['current_streak'] > 1:
            message_parts.append(f"🔥 {result['current_streak']}-day streak")

        for achievement in result['achievements_unlocked']:
            message_parts.append(f"{achievement['icon']} Achievement unlocked: {achievement['name']}")

        if result['challenges_completed']:
            count = len(result['challenges_completed'])
            message_parts.append(f"🎯 {count} daily challenge{'s' if count != 1 else ''} completed")

        return "\n".join(message_parts)
