"""Medication adherence models"""
from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


class DoseStatus(str, Enum):
    TAKEN = "taken"
    MISSED = "missed"
    SKIPPED = "skipped"


class DoseLogEntry(BaseModel):
    """One scheduled dose, read from the dose-log collaborator"""
    user_id: str
    medication_id: str
    scheduled_time: datetime
    taken_at: Optional[datetime] = None
    status: DoseStatus


class Medication(BaseModel):
    id: str
    user_id: str
    name: str
    active: bool = True
    notes: Optional[str] = None
    affects_metrics: list[str] = Field(default_factory=list)


class DailyAdherence(BaseModel):
    date: date
    taken: int = 0
    missed: int = 0
    skipped: int = 0
    total: int = 0
    percentage: int = 0


class MedicationAdherence(BaseModel):
    medication_id: str
    name: str
    taken: int = 0
    missed: int = 0
    skipped: int = 0
    total: int = 0
    percentage: int = 0


class AdherenceStreak(BaseModel):
    current: int = 0
    longest: int = 0
    last_perfect_day: Optional[date] = None


class TimePattern(BaseModel):
    """Miss rate for one time-of-day bucket of scheduled doses"""
    time_of_day: Literal["morning", "afternoon", "evening", "night"]
    missed_count: int = 0
    total_count: int = 0
    missed_percentage: int = 0


class DayPattern(BaseModel):
    pattern: Literal["weekday", "weekend"]
    adherence_percentage: int = 0
    missed_count: int = 0


class PeriodStats(BaseModel):
    taken: int = 0
    total: int = 0
    percentage: int = 0


class OverallStats(BaseModel):
    this_week: PeriodStats
    this_month: PeriodStats
    all_time: PeriodStats


class AdherenceInsight(BaseModel):
    category: Literal["streak", "time_pattern", "day_pattern", "medication_specific", "improvement", "declining"]
    severity: Literal["info", "warning", "success"]
    title: str
    message: str
    suggestion: Optional[str] = None


class AdherenceOverview(BaseModel):
    """Everything the adherence dashboard shows"""
    weekly_adherence: list[DailyAdherence]
    monthly_adherence: list[DailyAdherence]
    medication_adherence: list[MedicationAdherence]
    streak: AdherenceStreak
    overall_stats: OverallStats
    insights: list[AdherenceInsight]


class MedicationAdherenceDetail(BaseModel):
    medication: Medication
    daily_adherence: list[DailyAdherence]
    stats: MedicationAdherence
    time_patterns: list[TimePattern]
