"""
Achievement Evaluator

A static catalog of 42 achievements across 7 categories, each unlocked by a
single stat threshold on a StatsSnapshot. Evaluation is pure: callers merge
the returned ids into the stored set with a union and never remove ids.
"""

from typing import Dict, Iterable, List, Optional
from datetime import date, timedelta
import logging

from personalfit.models.achievement import Achievement, AchievementCategory
from personalfit.models.gamification import GamificationState, StatsSnapshot

logger = logging.getLogger(__name__)


def _achievement(id, name, description, icon, category, stat, minimum=True) -> Achievement:
    return Achievement(
        id=id,
        name=name,
        description=description,
        icon=icon,
        category=category,
        criteria={"stat": stat, "min": minimum},
    )


M = AchievementCategory.MILESTONE
S = AchievementCategory.STREAK
V = AchievementCategory.VOLUME
P = AchievementCategory.PR
L = AchievementCategory.LEVEL
C = AchievementCategory.CHALLENGE
X = AchievementCategory.SPECIAL

ACHIEVEMENTS: List[Achievement] = [
    # Milestones
    _achievement("first_workout", "Getting Started", "Complete your first workout", "trophy", M, "total_workouts", 1),
    _achievement("first_week", "First Full Week", "Complete 7 workouts total", "calendar", M, "total_workouts", 7),
    _achievement("first_month", "Monthly Milestone", "Complete 30 workouts total", "calendar-check", M, "total_workouts", 30),
    _achievement("first_pr", "Personal Best", "Set your first personal record", "zap", M, "total_prs", 1),
    _achievement("profile_complete", "All Set Up", "Complete your fitness profile", "user-check", M, "profile_complete"),

    # Streaks
    _achievement("streak_3", "Getting Consistent", "Maintain a 3-day workout streak", "flame", S, "current_streak", 3),
    _achievement("week_warrior", "Week Warrior", "Maintain a 7-day workout streak", "flame", S, "current_streak", 7),
    _achievement("streak_14", "Two Week Titan", "Maintain a 14-day workout streak", "flame", S, "current_streak", 14),
    _achievement("streak_21", "Habit Formed", "Maintain a 21-day workout streak", "brain", S, "current_streak", 21),
    _achievement("month_master", "Month Master", "Maintain a 30-day workout streak", "star", S, "current_streak", 30),
    _achievement("streak_60", "Unstoppable", "Maintain a 60-day workout streak", "rocket", S, "current_streak", 60),
    _achievement("streak_90", "Quarterly Champion", "Maintain a 90-day workout streak", "medal", S, "current_streak", 90),
    _achievement("streak_365", "Year of Iron", "Maintain a 365-day workout streak", "crown", S, "current_streak", 365),

    # Volume
    _achievement("workouts_25", "Quarter Century", "Complete 25 workouts", "dumbbell", V, "total_workouts", 25),
    _achievement("workouts_50", "Half Century", "Complete 50 workouts", "dumbbell", V, "total_workouts", 50),
    _achievement("consistency_king", "Consistency King", "Complete 100 workouts", "crown", V, "total_workouts", 100),
    _achievement("workouts_250", "Dedicated", "Complete 250 workouts", "target", V, "total_workouts", 250),
    _achievement("workouts_500", "Fitness Fanatic", "Complete 500 workouts", "star", V, "total_workouts", 500),
    _achievement("workouts_1000", "Thousand Club", "Complete 1000 workouts", "trophy", V, "total_workouts", 1000),

    # Personal records
    _achievement("pr_crusher", "PR Crusher", "Set 5 personal records", "zap", P, "total_prs", 5),
    _achievement("pr_10", "Record Breaker", "Set 10 personal records", "trending-up", P, "total_prs", 10),
    _achievement("pr_25", "PR Machine", "Set 25 personal records", "activity", P, "total_prs", 25),
    _achievement("pr_50", "Beast Mode", "Set 50 personal records", "flame", P, "total_prs", 50),
    _achievement("pr_100", "Century of PRs", "Set 100 personal records", "award", P, "total_prs", 100),
    _achievement("pr_week", "PR Week", "Set 3 personal records in one week", "calendar", P, "prs_this_week", 3),
    _achievement("pr_day", "PR Day", "Set 2 personal records in one day", "sun", P, "prs_today", 2),

    # Levels and XP
    _achievement("level_5", "Rising Star", "Reach Level 5", "star", L, "level", 5),
    _achievement("level_10", "Elite Athlete", "Reach Level 10", "medal", L, "level", 10),
    _achievement("level_15", "Veteran", "Reach Level 15", "shield", L, "level", 15),
    _achievement("level_20", "Fitness Legend", "Reach Level 20", "trophy", L, "level", 20),
    _achievement("xp_10k", "10K Club", "Earn 10,000 total XP", "sparkles", L, "total_xp", 10000),
    _achievement("xp_50k", "XP Master", "Earn 50,000 total XP", "gem", L, "total_xp", 50000),

    # Daily challenges
    _achievement("daily_challenge_1", "Challenge Accepted", "Complete your first daily challenge", "target", C, "challenges_completed", 1),
    _achievement("daily_challenge_10", "Challenge Hunter", "Complete 10 daily challenges", "crosshair", C, "challenges_completed", 10),
    _achievement("daily_challenge_50", "Challenge Master", "Complete 50 daily challenges", "award", C, "challenges_completed", 50),
    _achievement("perfect_day", "Perfect Day", "Complete all daily challenges in one day", "sun", C, "perfect_days", 1),
    _achievement("perfect_week", "Perfect Week", "Complete all daily challenges for 7 consecutive days", "calendar-check", C, "perfect_weeks", 1),

    # Special
    _achievement("early_bird", "Early Bird", "Complete a workout before 7 AM", "sunrise", X, "early_workouts", 1),
    _achievement("night_owl", "Night Owl", "Complete a workout after 10 PM", "moon", X, "late_workouts", 1),
    _achievement("weekend_warrior", "Weekend Warrior", "Complete workouts on 10 weekends", "calendar", X, "weekend_workouts", 10),
    _achievement("comeback_kid", "Comeback Kid", "Return after a 2+ week break and complete a workout", "refresh-cw", X, "comebacks", 1),
    _achievement("gem_collector", "Gem Collector", "Earn 500 gems total", "gem", X, "total_gems", 500),
]

ACHIEVEMENTS_BY_ID: Dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}


def is_unlocked(achievement: Achievement, snapshot: StatsSnapshot) -> bool:
    """Evaluate one achievement's criteria against a snapshot"""
    value = getattr(snapshot, achievement.criteria["stat"])
    minimum = achievement.criteria["min"]
    if isinstance(minimum, bool):
        return bool(value) is minimum
    return value >= minimum


def check_achievements(
    currently_unlocked: Iterable[str],
    snapshot: Optional[StatsSnapshot | dict] = None
) -> List[str]:
    """
    Return ids of catalog achievements newly satisfied by `snapshot`

    A partial dict snapshot is merged over StatsSnapshot defaults first.
    Criteria that fail to evaluate (unknown stat, bad value) are skipped.
    Result is in catalog order.
    """
    if snapshot is None:
        snapshot = StatsSnapshot()
    elif isinstance(snapshot, dict):
        snapshot = StatsSnapshot(**snapshot)

    unlocked = set(currently_unlocked)
    newly_unlocked = []

    for achievement in ACHIEVEMENTS:
        if achievement.id in unlocked:
            continue
        try:
            if is_unlocked(achievement, snapshot):
                newly_unlocked.append(achievement.id)
        except (AttributeError, KeyError, TypeError) as e:
            logger.warning(f"Skipping achievement {achievement.id}: {e}")

    return newly_unlocked


def build_stats_snapshot(state: GamificationState, today: date) -> StatsSnapshot:
    """Project a user's gamification state onto the achievement stats"""
    week_start = today - timedelta(days=6)
    return StatsSnapshot(
        total_workouts=state.total_completions,
        current_streak=state.current_streak,
        total_prs=state.total_personal_records,
        level=state.level,
        total_xp=state.xp,
        profile_complete=state.profile_complete,
        prs_this_week=sum(1 for d in state.recent_pr_dates if week_start <= d <= today),
        prs_today=sum(1 for d in state.recent_pr_dates if d == today),
        challenges_completed=state.challenges_completed,
        perfect_days=state.perfect_days,
        perfect_weeks=state.perfect_weeks,
        early_workouts=state.early_completions,
        late_workouts=state.late_completions,
        weekend_workouts=state.weekend_completions,
        comebacks=state.comebacks,
        total_gems=state.total_gems_earned,
    )


def get_all_achievements(unlocked_ids: Iterable[str]) -> List[Dict[str, any]]:
    """
    Full catalog with the user's unlocked flag

    Returns:
        [{'id', 'name', 'description', 'icon', 'category', 'unlocked'}, ...]
    """
    unlocked = set(unlocked_ids)
    return [
        {
            "id": a.id,
            "name": a.name,
            "description": a.description,
            "icon": a.icon,
            "category": a.category.value,
            "unlocked": a.id in unlocked,
        }
        for a in ACHIEVEMENTS
    ]


def get_achievement(achievement_id: str) -> Optional[Achievement]:
    return ACHIEVEMENTS_BY_ID.get(achievement_id)
