"""
Adherence Analytics

Read-only aggregation of dose logs into adherence percentages, perfect-day
streaks, time-of-day and weekday/weekend patterns, and insight cards.

Every function is pure: callers pass the logs and the reference "today",
and all day boundaries are taken in the reference time zone.

Definitions:
- Daily percentage: round(100 * taken / scheduled), 0 when nothing was scheduled
- Perfect day: at least one scheduled dose and >= 80% taken
- Days with nothing scheduled neither extend nor break a streak
"""

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from personalfit.analytics.statistics import calculate_average, percentage
from personalfit.models.adherence import (
    AdherenceInsight,
    AdherenceOverview,
    AdherenceStreak,
    DailyAdherence,
    DayPattern,
    DoseLogEntry,
    DoseStatus,
    Medication,
    MedicationAdherence,
    MedicationAdherenceDetail,
    OverallStats,
    PeriodStats,
    TimePattern,
)
from personalfit.utils.datetime_helpers import to_reference, trailing_days

logger = logging.getLogger(__name__)

PERFECT_DAY_THRESHOLD = 80
STREAK_WINDOW_DAYS = 90
MAX_INSIGHTS = 5

GREAT_STREAK_DAYS = 7
TIME_PATTERN_MISSED_PCT = 30
MIN_PATTERN_SAMPLES = 5
WEEKEND_GAP_POINTS = 15
LOW_MEDICATION_ADHERENCE = 70
TREND_SHIFT_POINTS = 10

TIME_LABELS: Dict[str, str] = {
    "morning": "morning (6 AM - 12 PM)",
    "afternoon": "afternoon (12 PM - 6 PM)",
    "evening": "evening (6 PM - 10 PM)",
    "night": "night (10 PM - 6 AM)",
}


def _count(logs: Iterable[DoseLogEntry]) -> Dict[str, int]:
    counts = {"taken": 0, "missed": 0, "skipped": 0, "total": 0}
    for log in logs:
        counts[log.status.value] += 1
        counts["total"] += 1
    return counts


def _scheduled_day(log: DoseLogEntry, tz_name: Optional[str]) -> date:
    return to_reference(log.scheduled_time, tz_name).date()


def time_of_day_bucket(hour: int) -> str:
    """Bucket a scheduled hour: morning 6-12, afternoon 12-18, evening 18-22, night otherwise"""
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 22:
        return "evening"
    return "night"


def is_perfect_day(day: DailyAdherence) -> bool:
    return day.total > 0 and day.percentage >= PERFECT_DAY_THRESHOLD


# ==========================================
# Aggregations
# ==========================================

def calculate_daily_adherence(
    dose_logs: Sequence[DoseLogEntry],
    days: int,
    today: date,
    tz_name: Optional[str] = None
) -> List[DailyAdherence]:
    """Per-day counts for the trailing `days` days ending `today`, oldest first"""
    by_day: Dict[date, List[DoseLogEntry]] = defaultdict(list)
    for log in dose_logs:
        by_day[_scheduled_day(log, tz_name)].append(log)

    result = []
    for day in trailing_days(today, days):
        counts = _count(by_day.get(day, []))
        result.append(DailyAdherence(
            date=day,
            percentage=percentage(counts["taken"], counts["total"]),
            **counts
        ))
    return result


def calculate_medication_adherence(
    medications: Sequence[Medication],
    dose_logs: Sequence[DoseLogEntry]
) -> List[MedicationAdherence]:
    """Per-medication counts, worst adherence first (medications without logs included)"""
    by_medication: Dict[str, List[DoseLogEntry]] = defaultdict(list)
    for log in dose_logs:
        by_medication[log.medication_id].append(log)

    result = []
    for medication in medications:
        counts = _count(by_medication.get(medication.id, []))
        result.append(MedicationAdherence(
            medication_id=medication.id,
            name=medication.name,
            percentage=percentage(counts["taken"], counts["total"]),
            **counts
        ))

    return sorted(result, key=lambda m: m.percentage)


def calculate_streak(
    dose_logs: Sequence[DoseLogEntry],
    today: date,
    tz_name: Optional[str] = None
) -> AdherenceStreak:
    """
    Current and longest perfect-day runs over the last 90 days

    Current: walk back from today, skipping dose-free days, until a
    scheduled-but-imperfect day. Longest: one forward pass with the same
    skip/break rule, never less than current.
    """
    daily = calculate_daily_adherence(dose_logs, STREAK_WINDOW_DAYS, today, tz_name)

    current = 0
    last_perfect_day = None
    for day in reversed(daily):
        if is_perfect_day(day):
            current += 1
            if last_perfect_day is None:
                last_perfect_day = day.date
        elif day.total > 0:
            break

    longest = 0
    run = 0
    for day in daily:
        if is_perfect_day(day):
            run += 1
            longest = max(longest, run)
        elif day.total > 0:
            run = 0

    return AdherenceStreak(
        current=current,
        longest=max(longest, current),
        last_perfect_day=last_perfect_day,
    )


def calculate_period_stats(dose_logs: Iterable[DoseLogEntry]) -> PeriodStats:
    counts = _count(dose_logs)
    return PeriodStats(
        taken=counts["taken"],
        total=counts["total"],
        percentage=percentage(counts["taken"], counts["total"]),
    )


def calculate_overall_stats(
    recent_logs: Sequence[DoseLogEntry],
    all_time_logs: Sequence[DoseLogEntry],
    today: date,
    tz_name: Optional[str] = None
) -> OverallStats:
    """This week (7 days), this month (30 days) and all-time taken/total"""
    week_start = today - timedelta(days=6)
    month_start = today - timedelta(days=29)
    return OverallStats(
        this_week=calculate_period_stats(
            log for log in recent_logs if week_start <= _scheduled_day(log, tz_name) <= today
        ),
        this_month=calculate_period_stats(
            log for log in recent_logs if month_start <= _scheduled_day(log, tz_name) <= today
        ),
        all_time=calculate_period_stats(all_time_logs),
    )


def analyze_time_patterns(
    dose_logs: Sequence[DoseLogEntry],
    tz_name: Optional[str] = None
) -> List[TimePattern]:
    """Miss rate per time-of-day bucket, highest miss rate first (empty buckets omitted)"""
    buckets: Dict[str, Dict[str, int]] = {
        name: {"missed": 0, "total": 0} for name in ("morning", "afternoon", "evening", "night")
    }
    for log in dose_logs:
        bucket = buckets[time_of_day_bucket(to_reference(log.scheduled_time, tz_name).hour)]
        bucket["total"] += 1
        if log.status == DoseStatus.MISSED:
            bucket["missed"] += 1

    patterns = [
        TimePattern(
            time_of_day=name,
            missed_count=data["missed"],
            total_count=data["total"],
            missed_percentage=percentage(data["missed"], data["total"]),
        )
        for name, data in buckets.items()
        if data["total"] > 0
    ]
    return sorted(patterns, key=lambda p: p.missed_percentage, reverse=True)


def analyze_day_patterns(daily: Sequence[DailyAdherence]) -> List[DayPattern]:
    """Weekday vs weekend adherence over a daily series"""
    totals = {
        "weekday": {"taken": 0, "total": 0, "missed": 0},
        "weekend": {"taken": 0, "total": 0, "missed": 0},
    }
    for day in daily:
        key = "weekend" if day.date.weekday() >= 5 else "weekday"
        totals[key]["taken"] += day.taken
        totals[key]["total"] += day.total
        totals[key]["missed"] += day.missed

    return [
        DayPattern(
            pattern=key,
            adherence_percentage=percentage(data["taken"], data["total"]),
            missed_count=data["missed"],
        )
        for key, data in totals.items()
    ]


# ==========================================
# Insights
# ==========================================

def generate_insights(
    medications: Sequence[Medication],
    dose_logs: Sequence[DoseLogEntry],
    weekly: Sequence[DailyAdherence],
    medication_adherence: Sequence[MedicationAdherence],
    streak: AdherenceStreak,
    tz_name: Optional[str] = None
) -> List[AdherenceInsight]:
    """Rule-based insight cards, at most 5, in rule order"""
    insights: List[AdherenceInsight] = []

    if streak.current >= GREAT_STREAK_DAYS:
        insights.append(AdherenceInsight(
            category="streak",
            severity="success",
            title="🔥 Great Streak!",
            message=f"You've had {streak.current} perfect days in a row!",
            suggestion="Keep it up! Consistency is key to getting the most from your medications.",
        ))
    elif streak.current == 0 and streak.longest > 0:
        insights.append(AdherenceInsight(
            category="streak",
            severity="info",
            title="Restart Your Streak",
            message=f"Your longest streak was {streak.longest} days. Let's get back on track!",
            suggestion="Start fresh today - every perfect day counts!",
        ))

    worst = next(
        (p for p in analyze_time_patterns(dose_logs, tz_name) if p.missed_percentage > TIME_PATTERN_MISSED_PCT),
        None
    )
    if worst is not None and worst.total_count >= MIN_PATTERN_SAMPLES:
        insights.append(AdherenceInsight(
            category="time_pattern",
            severity="warning",
            title=f"{worst.time_of_day.capitalize()} Doses Need Attention",
            message=f"You miss {worst.missed_percentage}% of your {TIME_LABELS[worst.time_of_day]} medications.",
            suggestion="Consider setting reminders or adjusting the time with your doctor.",
        ))

    day_patterns = {p.pattern: p for p in analyze_day_patterns(weekly)}
    weekday, weekend = day_patterns["weekday"], day_patterns["weekend"]
    if weekday.adherence_percentage - weekend.adherence_percentage > WEEKEND_GAP_POINTS:
        insights.append(AdherenceInsight(
            category="day_pattern",
            severity="warning",
            title="Weekend Reminder",
            message=(
                f"Your weekend adherence ({weekend.adherence_percentage}%) is lower than "
                f"weekdays ({weekday.adherence_percentage}%)."
            ),
            suggestion="Set up weekend-specific reminders to stay on track.",
        ))

    notes = {m.id: m.notes for m in medications}
    for med in medication_adherence:
        if med.total >= MIN_PATTERN_SAMPLES and med.percentage < LOW_MEDICATION_ADHERENCE:
            insights.append(AdherenceInsight(
                category="medication_specific",
                severity="warning",
                title=f"{med.name} Needs Attention",
                message=f"You've only taken {med.percentage}% of your {med.name} doses.",
                suggestion=notes.get(med.medication_id) or "Consider setting a reminder for this medication.",
            ))

    trend = _weekly_trend(weekly)
    if trend is not None and trend > TREND_SHIFT_POINTS:
        insights.append(AdherenceInsight(
            category="improvement",
            severity="success",
            title="📈 Improving!",
            message=f"Your adherence has improved by {int(trend + 0.5)}% this week!",
            suggestion="Great progress! Keep up the good work.",
        ))
    elif trend is not None and -trend > TREND_SHIFT_POINTS:
        insights.append(AdherenceInsight(
            category="declining",
            severity="warning",
            title="Adherence Declining",
            message=f"Your adherence has dropped by {int(-trend + 0.5)}% recently.",
            suggestion="Try to identify what changed and get back on track.",
        ))

    return insights[:MAX_INSIGHTS]


def _weekly_trend(weekly: Sequence[DailyAdherence]) -> Optional[float]:
    """Mean of days 5-7 minus mean of days 1-3; day 4 is a buffer"""
    if len(weekly) < 7:
        return None
    first = calculate_average([d.percentage for d in weekly[:3]])
    last = calculate_average([d.percentage for d in weekly[4:]])
    return last - first


# ==========================================
# Composites
# ==========================================

def build_adherence_overview(
    medications: Sequence[Medication],
    dose_logs: Sequence[DoseLogEntry],
    all_time_logs: Sequence[DoseLogEntry],
    today: date,
    days: int = 30,
    tz_name: Optional[str] = None
) -> AdherenceOverview:
    """
    Dashboard overview

    `dose_logs` should cover at least the 90-day streak window; everything
    except the streak is computed over the trailing `days` days only.
    """
    window_start = today - timedelta(days=days - 1)
    window_logs = [
        log for log in dose_logs
        if window_start <= _scheduled_day(log, tz_name) <= today
    ]

    weekly = calculate_daily_adherence(window_logs, 7, today, tz_name)
    monthly = calculate_daily_adherence(window_logs, min(days, 30), today, tz_name)
    medication_adherence = calculate_medication_adherence(medications, window_logs)
    streak = calculate_streak(dose_logs, today, tz_name)

    return AdherenceOverview(
        weekly_adherence=weekly,
        monthly_adherence=monthly,
        medication_adherence=medication_adherence,
        streak=streak,
        overall_stats=calculate_overall_stats(window_logs, all_time_logs, today, tz_name),
        insights=generate_insights(
            medications, window_logs, weekly, medication_adherence, streak, tz_name
        ),
    )


def build_medication_detail(
    medication: Medication,
    dose_logs: Sequence[DoseLogEntry],
    today: date,
    days: int = 30,
    tz_name: Optional[str] = None
) -> MedicationAdherenceDetail:
    """Daily series, totals and time patterns for one medication"""
    own_logs = [log for log in dose_logs if log.medication_id == medication.id]
    return MedicationAdherenceDetail(
        medication=medication,
        daily_adherence=calculate_daily_adherence(own_logs, days, today, tz_name),
        stats=calculate_medication_adherence([medication], own_logs)[0],
        time_patterns=analyze_time_patterns(own_logs, tz_name),
    )
