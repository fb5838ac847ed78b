"""Medication/metric correlation models"""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ImpactDirection(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class BodyMetricSample(BaseModel):
    """One day of body metrics, read from the metrics collaborator"""
    user_id: str
    date: date
    metric_values: dict[str, float] = Field(default_factory=dict)


class CorrelationRecord(BaseModel):
    """Derived correlation for one user x medication x metric triple"""
    user_id: str
    medication_id: str
    metric: str
    correlation_coefficient: float = Field(ge=-1.0, le=1.0)
    impact_direction: ImpactDirection
    confidence_level: ConfidenceLevel
    data_points: int
    observations: list[str] = Field(default_factory=list)
    sample_period_days: int
    analyzed_at: Optional[datetime] = None
