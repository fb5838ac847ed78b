"""
Correlation Engine

Pearson correlation between a binary "medication taken that day" series and
a daily body-metric series, with confidence classification and templated
observations.

Key rules:
- At least 10 taken doses and 10 metric samples in the window, and at least
  10 days with a positive metric value, or there is no result (None)
- Confidence: high (>= 30 points, |r| >= 0.7), medium (>= 15, |r| >= 0.4), else low
- Direction: neutral when |r| < 0.2, otherwise the sign of r
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from personalfit.analytics.statistics import calculate_average, pearson_correlation, percent_change
from personalfit.models.adherence import DoseLogEntry, DoseStatus, Medication
from personalfit.models.correlation import (
    BodyMetricSample,
    ConfidenceLevel,
    CorrelationRecord,
    ImpactDirection,
)
from personalfit.utils.datetime_helpers import to_reference_date

logger = logging.getLogger(__name__)

MIN_SAMPLES = 10
NEUTRAL_THRESHOLD = 0.2


@dataclass
class DailyPoint:
    """One day of paired data"""
    day: date
    medication_taken: bool
    metric_value: float


def determine_confidence(data_points: int, correlation: float) -> ConfidenceLevel:
    strength = abs(correlation)
    if data_points >= 30 and strength >= 0.7:
        return ConfidenceLevel.HIGH
    if data_points >= 15 and strength >= 0.4:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def determine_impact_direction(correlation: float) -> ImpactDirection:
    if abs(correlation) < NEUTRAL_THRESHOLD:
        return ImpactDirection.NEUTRAL
    return ImpactDirection.POSITIVE if correlation > 0 else ImpactDirection.NEGATIVE


def metric_label(metric: str) -> str:
    return metric.replace("_", " ")


def generate_observations(
    medication_name: str,
    metric: str,
    correlation: float,
    avg_with_medication: float,
    avg_without_medication: float,
    data_points: int
) -> List[str]:
    """
    Human-readable findings, in this order:
    strength, magnitude of change, data volume, metric-specific guidance
    """
    observations = []
    strength = abs(correlation)
    sign = "positive" if correlation > 0 else "negative"

    if strength >= 0.7:
        observations.append(f"Strong {sign} correlation detected")
    elif strength >= 0.4:
        observations.append(f"Moderate {sign} correlation observed")
    elif strength >= 0.2:
        observations.append(f"Weak {sign} correlation detected")
    else:
        observations.append("No significant correlation found")

    change = percent_change(avg_with_medication, avg_without_medication) or 0.0
    direction = "increase" if change > 0 else "decrease"
    if abs(change) >= 20:
        observations.append(
            f"{medication_name} associated with {abs(change):.1f}% {direction} in {metric_label(metric)}"
        )
    elif abs(change) >= 10:
        observations.append(
            f"Slight {direction} in {metric_label(metric)} when taking {medication_name}"
        )

    if data_points < 15:
        observations.append("Limited data available - more tracking needed for reliable conclusions")
    elif data_points >= 30:
        observations.append(f"Based on {data_points} days of data")

    if correlation < -0.5 and metric == "sleep_quality":
        observations.append("May be impacting sleep negatively - consider taking earlier in the day")
    if correlation > 0.5 and metric == "energy_level":
        observations.append("Appears to have positive effect on energy levels")
    if abs(correlation) > 0.5 and metric == "heart_rate":
        observations.append("Monitor heart rate changes with healthcare provider")

    return observations


def metric_value(sample: BodyMetricSample, metric: str) -> Optional[float]:
    """The sample's reading for `metric`; zero and negative readings count as unrecorded"""
    value = sample.metric_values.get(metric)
    if value is None or value <= 0:
        return None
    return value


def build_daily_series(
    dose_logs: Sequence[DoseLogEntry],
    samples: Sequence[BodyMetricSample],
    metric: str,
    tz_name: Optional[str] = None
) -> List[DailyPoint]:
    """
    Pair taken-dose days with metric values

    Only days with a positive metric value are kept; a day counts as medicated
    when at least one dose was taken on it.
    """
    taken_days = {
        to_reference_date(log.taken_at, tz_name)
        for log in dose_logs
        if log.status == DoseStatus.TAKEN and log.taken_at is not None
    }

    values: Dict[date, float] = {}
    for sample in samples:
        value = metric_value(sample, metric)
        if value is not None:
            values[sample.date] = value

    return [
        DailyPoint(day=day, medication_taken=day in taken_days, metric_value=values[day])
        for day in sorted(values)
    ]


def analyze_medication_metric(
    user_id: str,
    medication: Medication,
    metric: str,
    dose_logs: Sequence[DoseLogEntry],
    samples: Sequence[BodyMetricSample],
    days_back: int = 90,
    tz_name: Optional[str] = None,
    analyzed_at: Optional[datetime] = None
) -> Optional[CorrelationRecord]:
    """
    Correlate one medication with one metric

    `dose_logs` and `samples` are expected to be pre-filtered to the user,
    the medication and the analysis window. Returns None when there is not
    enough data.
    """
    taken_logs = [
        log for log in dose_logs
        if log.status == DoseStatus.TAKEN and log.taken_at is not None
    ]
    metric_samples = [s for s in samples if metric_value(s, metric) is not None]

    if len(taken_logs) < MIN_SAMPLES or len(metric_samples) < MIN_SAMPLES:
        logger.debug(
            f"Not enough data for {medication.name} vs {metric} "
            f"(doses={len(taken_logs)}, samples={len(metric_samples)})"
        )
        return None

    series = build_daily_series(taken_logs, metric_samples, metric, tz_name)
    if len(series) < MIN_SAMPLES:
        return None

    binary = [1.0 if p.medication_taken else 0.0 for p in series]
    values = [p.metric_value for p in series]
    correlation = pearson_correlation(binary, values)

    avg_with = calculate_average([p.metric_value for p in series if p.medication_taken])
    avg_without = calculate_average([p.metric_value for p in series if not p.medication_taken])

    return CorrelationRecord(
        user_id=user_id,
        medication_id=medication.id,
        metric=metric,
        correlation_coefficient=correlation,
        impact_direction=determine_impact_direction(correlation),
        confidence_level=determine_confidence(len(series), correlation),
        data_points=len(series),
        observations=generate_observations(
            medication.name, metric, correlation, avg_with, avg_without, len(series)
        ),
        sample_period_days=days_back,
        analyzed_at=analyzed_at,
    )


def metrics_for_medication(medication: Medication, supported_metrics: Sequence[str]) -> List[str]:
    """Metrics the medication declares (restricted to supported ones), or all supported"""
    if medication.affects_metrics:
        return [m for m in medication.affects_metrics if m in supported_metrics]
    return list(supported_metrics)
