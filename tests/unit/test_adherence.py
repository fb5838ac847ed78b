"""Unit tests for adherence analytics (personalfit/analytics/adherence.py)"""
import pytest
from datetime import date, timedelta

from personalfit.analytics.adherence import (
    analyze_day_patterns,
    analyze_time_patterns,
    build_adherence_overview,
    build_medication_detail,
    calculate_daily_adherence,
    calculate_medication_adherence,
    calculate_overall_stats,
    calculate_streak,
    generate_insights,
    time_of_day_bucket,
)
from personalfit.models.adherence import AdherenceStreak, DailyAdherence, Medication


TODAY = date(2024, 3, 13)  # Wednesday


def perfect_days(dose, days, start=TODAY, medication_id="med-1"):
    """One taken 09:00 dose on each of the `days` days ending `start`"""
    return [dose(start - timedelta(days=offset), 9, "taken", medication_id) for offset in range(days)]


# ============================================================================
# Daily adherence
# ============================================================================

def test_daily_percentage_three_of_four(dose):
    logs = [
        dose(TODAY, 8, "taken"),
        dose(TODAY, 12, "taken"),
        dose(TODAY, 18, "taken"),
        dose(TODAY, 22, "missed"),
    ]

    daily = calculate_daily_adherence(logs, 7, TODAY)

    assert len(daily) == 7
    assert daily[-1].date == TODAY
    assert daily[-1].total == 4
    assert daily[-1].taken == 3
    assert daily[-1].missed == 1
    assert daily[-1].percentage == 75
    assert daily[0].date == TODAY - timedelta(days=6)
    assert daily[0].total == 0
    assert daily[0].percentage == 0


def test_daily_percentage_rounds_half_up(dose):
    logs = [dose(TODAY, 8, "taken"), dose(TODAY, 20, "skipped")] + [dose(TODAY, 9, "taken")] * 6

    daily = calculate_daily_adherence(logs, 1, TODAY)

    # 7 of 8
    assert daily[0].percentage == 88


# ============================================================================
# Streaks
# ============================================================================

def test_dose_free_day_does_not_break_streak(dose):
    logs = [
        dose(TODAY, 9, "taken"),
        # nothing scheduled yesterday
        dose(TODAY - timedelta(days=2), 9, "taken"),
        dose(TODAY - timedelta(days=3), 9, "missed"),
    ]

    streak = calculate_streak(logs, TODAY)

    assert streak.current == 2
    assert streak.longest == 2
    assert streak.last_perfect_day == TODAY


def test_imperfect_day_breaks_streak(dose):
    logs = perfect_days(dose, 3, TODAY - timedelta(days=2)) + [
        dose(TODAY - timedelta(days=1), 9, "taken"),
        dose(TODAY - timedelta(days=1), 21, "missed"),
        dose(TODAY, 9, "taken"),
    ]

    streak = calculate_streak(logs, TODAY)

    assert streak.current == 1
    assert streak.longest == 3


def test_eighty_percent_is_perfect(dose):
    logs = [dose(TODAY, h, "taken") for h in (7, 9, 11, 13)] + [dose(TODAY, 15, "missed")]

    assert calculate_streak(logs, TODAY).current == 1


def test_no_logs_no_streak():
    streak = calculate_streak([], TODAY)

    assert streak == AdherenceStreak(current=0, longest=0, last_perfect_day=None)


# ============================================================================
# Medications, patterns, stats
# ============================================================================

def test_medication_adherence_worst_first(dose):
    medications = [
        Medication(id="med-1", user_id="user-123", name="Metformin"),
        Medication(id="med-2", user_id="user-123", name="Vitamin D"),
        Medication(id="med-3", user_id="user-123", name="Unused"),
    ]
    logs = [
        dose(TODAY, 9, "taken", "med-1"),
        dose(TODAY, 9, "taken", "med-2"),
        dose(TODAY, 21, "missed", "med-2"),
    ]

    result = calculate_medication_adherence(medications, logs)

    assert [m.medication_id for m in result] == ["med-3", "med-2", "med-1"]
    assert result[1].percentage == 50
    assert result[0].total == 0


@pytest.mark.parametrize("hour,bucket", [
    (6, "morning"), (11, "morning"), (12, "afternoon"), (17, "afternoon"),
    (18, "evening"), (21, "evening"), (22, "night"), (3, "night"),
])
def test_time_of_day_bucket(hour, bucket):
    assert time_of_day_bucket(hour) == bucket


def test_time_patterns_highest_miss_rate_first(dose):
    logs = [
        dose(TODAY, 8, "taken"),
        dose(TODAY, 9, "missed"),
        dose(TODAY, 19, "missed"),
        dose(TODAY, 20, "missed"),
    ]

    patterns = analyze_time_patterns(logs)

    assert [p.time_of_day for p in patterns] == ["evening", "morning"]
    assert patterns[0].missed_percentage == 100
    assert patterns[1].missed_percentage == 50


def test_day_patterns_split_weekend():
    daily = [
        DailyAdherence(date=date(2024, 3, 9), taken=1, missed=1, total=2, percentage=50),   # Saturday
        DailyAdherence(date=date(2024, 3, 11), taken=2, total=2, percentage=100),          # Monday
    ]

    patterns = {p.pattern: p for p in analyze_day_patterns(daily)}

    assert patterns["weekday"].adherence_percentage == 100
    assert patterns["weekend"].adherence_percentage == 50
    assert patterns["weekend"].missed_count == 1


def test_overall_stats_windows(dose):
    recent = [
        dose(TODAY, 9, "taken"),
        dose(TODAY - timedelta(days=6), 9, "missed"),
        dose(TODAY - timedelta(days=7), 9, "taken"),
        dose(TODAY - timedelta(days=29), 9, "taken"),
        dose(TODAY - timedelta(days=30), 9, "taken"),
    ]

    stats = calculate_overall_stats(recent, recent, TODAY)

    assert (stats.this_week.taken, stats.this_week.total) == (1, 2)
    assert (stats.this_month.taken, stats.this_month.total) == (3, 4)
    assert (stats.all_time.taken, stats.all_time.total) == (4, 5)
    assert stats.this_week.percentage == 50


# ============================================================================
# Insights
# ============================================================================

def test_great_streak_insight(dose, medication):
    logs = perfect_days(dose, 10)
    weekly = calculate_daily_adherence(logs, 7, TODAY)
    streak = calculate_streak(logs, TODAY)

    insights = generate_insights([medication], logs, weekly, [], streak)

    assert insights[0].category == "streak"
    assert insights[0].severity == "success"
    assert insights[0].message == "You've had 10 perfect days in a row!"


def test_restart_streak_insight(medication):
    insights = generate_insights([medication], [], [], [], AdherenceStreak(current=0, longest=4))

    assert insights[0].title == "Restart Your Streak"
    assert "4 days" in insights[0].message


def test_time_pattern_insight_needs_enough_samples(dose, medication):
    few = [dose(TODAY - timedelta(days=d), 20, "missed") for d in range(4)]
    many = [dose(TODAY - timedelta(days=d), 20, "missed") for d in range(5)]
    streak = AdherenceStreak()

    assert not [i for i in generate_insights([medication], few, [], [], streak) if i.category == "time_pattern"]
    insights = [i for i in generate_insights([medication], many, [], [], streak) if i.category == "time_pattern"]
    assert insights[0].title == "Evening Doses Need Attention"
    assert "evening (6 PM - 10 PM)" in insights[0].message


def test_medication_specific_insight_uses_notes(dose):
    medication = Medication(id="med-1", user_id="user-123", name="Metformin", notes="Take with food")
    logs = [dose(TODAY - timedelta(days=d), 9, "taken" if d < 2 else "missed") for d in range(6)]
    medication_adherence = calculate_medication_adherence([medication], logs)

    insights = generate_insights([medication], logs, [], medication_adherence, AdherenceStreak())

    specific = [i for i in insights if i.category == "medication_specific"]
    assert specific[0].title == "Metformin Needs Attention"
    assert specific[0].suggestion == "Take with food"


def test_improvement_insight(dose, medication):
    # Missed the first three days of the week, perfect the last three
    logs = [
        dose(TODAY - timedelta(days=d), 9, "taken" if d <= 3 else "missed")
        for d in range(7)
    ]
    weekly = calculate_daily_adherence(logs, 7, TODAY)

    insights = generate_insights([medication], logs, weekly, [], AdherenceStreak())

    improvement = [i for i in insights if i.category == "improvement"]
    assert improvement[0].message == "Your adherence has improved by 100% this week!"


def week_of(*percentages):
    start = TODAY - timedelta(days=len(percentages) - 1)
    return [
        DailyAdherence(date=start + timedelta(days=i), percentage=p)
        for i, p in enumerate(percentages)
    ]


def test_weekend_gap_insight():
    daily = [
        DailyAdherence(date=date(2024, 3, 9), taken=21, missed=4, total=25, percentage=84),  # Saturday
        DailyAdherence(date=date(2024, 3, 11), taken=2, total=2, percentage=100),            # Monday
    ]

    insights = generate_insights([], [], daily, [], AdherenceStreak())

    weekend = [i for i in insights if i.category == "day_pattern"]
    assert weekend[0].title == "Weekend Reminder"
    assert weekend[0].message == "Your weekend adherence (84%) is lower than weekdays (100%)."


def test_weekend_gap_of_fifteen_points_is_quiet():
    daily = [
        DailyAdherence(date=date(2024, 3, 9), taken=17, missed=3, total=20, percentage=85),  # Saturday
        DailyAdherence(date=date(2024, 3, 11), taken=2, total=2, percentage=100),            # Monday
    ]

    insights = generate_insights([], [], daily, [], AdherenceStreak())

    assert not [i for i in insights if i.category == "day_pattern"]


def test_declining_insight():
    insights = generate_insights([], [], week_of(100, 100, 100, 50, 0, 0, 0), [], AdherenceStreak())

    declining = [i for i in insights if i.category == "declining"]
    assert declining[0].title == "Adherence Declining"
    assert declining[0].message == "Your adherence has dropped by 100% recently."


def test_ten_point_drop_is_quiet():
    insights = generate_insights([], [], week_of(100, 100, 100, 50, 90, 90, 90), [], AdherenceStreak())

    assert not [i for i in insights if i.category in ("declining", "improvement")]


def test_insights_capped_at_five(dose):
    medications = [Medication(id=f"med-{i}", user_id="user-123", name=f"Med {i}") for i in range(8)]
    logs = [
        dose(TODAY - timedelta(days=d), 9, "missed", f"med-{i}")
        for i in range(8)
        for d in range(5)
    ]
    medication_adherence = calculate_medication_adherence(medications, logs)

    insights = generate_insights(medications, logs, [], medication_adherence, AdherenceStreak())

    assert len(insights) == 5


# ============================================================================
# Composites
# ============================================================================

def test_overview_shapes(dose, medication):
    logs = perfect_days(dose, 40)

    overview = build_adherence_overview([medication], logs, logs, TODAY, days=30)

    assert len(overview.weekly_adherence) == 7
    assert len(overview.monthly_adherence) == 30
    assert overview.streak.current == 40
    assert overview.medication_adherence[0].total == 30
    assert overview.overall_stats.all_time.total == 40
    assert overview.overall_stats.this_month.total == 30


def test_medication_detail_filters_to_one_medication(dose, medication):
    logs = perfect_days(dose, 3) + perfect_days(dose, 3, medication_id="med-2")

    detail = build_medication_detail(medication, logs, TODAY, days=7)

    assert detail.stats.total == 3
    assert detail.stats.percentage == 100
    assert len(detail.daily_adherence) == 7
    assert detail.time_patterns[0].time_of_day == "morning"
