"""
Daily Challenge Selector

Every user gets 3 challenges per reference day, drawn from a static pool.
Selection is a pure function of (user_id, date) so the set can be
recomputed at any time and always comes out the same.

Seed hash (portable across languages):
    h = 0
    for each UTF-16 code unit c of f"{user_id}-{YYYY-MM-DD}":
        h = (h * 31 + c) wrapped to a signed 32-bit integer

Selection, for i in 0, 1, 2:
    category = CATEGORY_ORDER[(|h| + i) % 4]
    candidates = unselected pool entries of that category (pool order)
    pick candidates[|h + 31 * i| % len(candidates)]
    if the category is exhausted, pick from all unselected entries instead
"""

from typing import Dict, List, Optional
from datetime import date, datetime
import logging

from personalfit.models.challenge import (
    ChallengeInstance,
    ChallengeProgressResult,
    ChallengeTemplate,
    ChallengeType,
    DailyChallengeSet,
)

logger = logging.getLogger(__name__)

CHALLENGES_PER_DAY = 3

CATEGORY_ORDER: List[ChallengeType] = [
    ChallengeType.WORKOUT,
    ChallengeType.EXERCISE,
    ChallengeType.STREAK,
    ChallengeType.EXPLORATION,
]

CHALLENGE_POOL: List[ChallengeTemplate] = [
    # Workout
    ChallengeTemplate(id="workout_complete_1", type=ChallengeType.WORKOUT, title="Daily Workout",
                      description="Complete 1 workout today", target=1, xp_reward=50, gems_reward=5),
    ChallengeTemplate(id="workout_complete_2", type=ChallengeType.WORKOUT, title="Double Down",
                      description="Complete 2 workouts today", target=2, xp_reward=100, gems_reward=10),
    ChallengeTemplate(id="workout_30_min", type=ChallengeType.WORKOUT, title="Marathon Session",
                      description="Complete a workout lasting 30+ minutes", target=1, xp_reward=75, gems_reward=8),

    # Exercise-specific
    ChallengeTemplate(id="exercise_pushups", type=ChallengeType.EXERCISE, title="Push It",
                      description="Complete 50 push-ups total today", target=50, xp_reward=60, gems_reward=6),
    ChallengeTemplate(id="exercise_squats", type=ChallengeType.EXERCISE, title="Leg Day",
                      description="Complete 100 squats total today", target=100, xp_reward=70, gems_reward=7),
    ChallengeTemplate(id="exercise_plank", type=ChallengeType.EXERCISE, title="Core Crusher",
                      description="Hold plank for 3 minutes total today", target=180, xp_reward=65, gems_reward=7),
    ChallengeTemplate(id="exercise_burpees", type=ChallengeType.EXERCISE, title="Burpee Bonanza",
                      description="Complete 30 burpees today", target=30, xp_reward=80, gems_reward=8),

    # Streak
    ChallengeTemplate(id="streak_maintain", type=ChallengeType.STREAK, title="Keep It Going",
                      description="Maintain your workout streak", target=1, xp_reward=40, gems_reward=4),
    ChallengeTemplate(id="streak_extend", type=ChallengeType.STREAK, title="Streak Builder",
                      description="Extend your streak to a new day", target=1, xp_reward=55, gems_reward=5),

    # Exploration
    ChallengeTemplate(id="exploration_new_exercise", type=ChallengeType.EXPLORATION, title="Try Something New",
                      description="Complete an exercise you haven't done before", target=1, xp_reward=100, gems_reward=10),
    ChallengeTemplate(id="exploration_different_category", type=ChallengeType.EXPLORATION, title="Mix It Up",
                      description="Complete exercises from 3 different categories", target=3, xp_reward=75, gems_reward=8),

    # Personal records
    ChallengeTemplate(id="pr_set", type=ChallengeType.EXERCISE, title="Personal Best",
                      description="Set a new personal record", target=1, xp_reward=100, gems_reward=15),
]

CHALLENGES_BY_ID: Dict[str, ChallengeTemplate] = {c.id: c for c in CHALLENGE_POOL}


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def seed_hash(seed: str) -> int:
    """31-multiplier rolling hash over UTF-16 code units, signed 32-bit"""
    encoded = seed.encode("utf-16-le")
    h = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32(h * 31 + code_unit)
    return h


def challenge_seed(user_id: str, day: date) -> str:
    return f"{user_id}-{day.isoformat()}"


def select_daily_challenges(user_id: str, day: date) -> List[ChallengeTemplate]:
    """Deterministically pick today's 3 challenge templates for a user"""
    h = seed_hash(challenge_seed(user_id, day))
    selected: List[ChallengeTemplate] = []

    for i in range(CHALLENGES_PER_DAY):
        target_type = CATEGORY_ORDER[(abs(h) + i) % len(CATEGORY_ORDER)]
        candidates = [c for c in CHALLENGE_POOL if c.type == target_type and c not in selected]
        if not candidates:
            candidates = [c for c in CHALLENGE_POOL if c not in selected]
            if not candidates:
                break
        selected.append(candidates[abs(h + i * 31) % len(candidates)])

    return selected


def build_daily_challenge_set(user_id: str, day: date) -> DailyChallengeSet:
    """Fresh, zero-progress challenge set for (user, day)"""
    return DailyChallengeSet(
        user_id=user_id,
        date=day,
        challenges=[ChallengeInstance.from_template(t) for t in select_daily_challenges(user_id, day)],
    )


def apply_progress(
    challenge_set: DailyChallengeSet,
    challenge_id: str,
    increment: int,
    now: datetime
) -> ChallengeProgressResult:
    """
    Advance one challenge in place, clamping progress to its target

    Completed challenges and non-positive increments are no-ops. The
    completion transition happens at most once per instance; when it
    does, the instance's rewards are reported and added to the set's
    gems_earned_today.
    """
    challenge = challenge_set.find(challenge_id)
    if challenge is None:
        return ChallengeProgressResult(challenge_id=challenge_id, found=False)

    if challenge.completed or increment <= 0:
        return ChallengeProgressResult(
            challenge_id=challenge_id,
            progress=challenge.progress,
            target=challenge.target,
            completed=challenge.completed,
        )

    challenge.progress = min(challenge.progress + increment, challenge.target)

    just_completed = False
    if challenge.progress >= challenge.target:
        challenge.completed = True
        challenge.completed_at = now
        challenge_set.gems_earned_today += challenge.gems_reward
        just_completed = True

    return ChallengeProgressResult(
        challenge_id=challenge_id,
        progress=challenge.progress,
        target=challenge.target,
        completed=challenge.completed,
        just_completed=just_completed,
        xp_awarded=challenge.xp_reward if just_completed else 0,
        gems_awarded=challenge.gems_reward if just_completed else 0,
        perfect_day=just_completed and challenge_set.all_completed,
    )


def get_challenge_template(challenge_id: str) -> Optional[ChallengeTemplate]:
    return CHALLENGES_BY_ID.get(challenge_id)
