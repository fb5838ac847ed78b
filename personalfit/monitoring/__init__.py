"""Monitoring infrastructure for personalfit"""
from personalfit.monitoring.prometheus_metrics import (
    metrics,
    record_challenge_completion,
    record_correlation,
    record_ledger_conflict,
    record_ledger_result,
    record_retry,
    track_analytics,
)

__all__ = [
    "metrics",
    "record_challenge_completion",
    "record_correlation",
    "record_ledger_conflict",
    "record_ledger_result",
    "record_retry",
    "track_analytics",
]
