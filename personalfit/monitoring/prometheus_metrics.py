"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

from personalfit.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self, enabled: bool = ENABLE_PROMETHEUS):
        if not enabled:
            logger.info("Prometheus metrics disabled")
            self._enabled = False
            return

        # Account ledger
        self.ledger_credits_total = Counter(
            'ledger_credits_total',
            'Ledger operations by outcome',
            ['outcome']
        )

        self.ledger_conflicts_total = Counter(
            'ledger_conflicts_total',
            'Optimistic update retries exhausted'
        )

        self.ledger_attempts = Histogram(
            'ledger_attempts',
            'Attempts needed per ledger operation',
            buckets=[1, 2, 3, 5, 10]
        )

        self.retries_total = Counter(
            'optimistic_retries_total',
            'Retried optimistic updates',
            ['operation']
        )

        # Challenges
        self.challenge_completions_total = Counter(
            'challenge_completions_total',
            'Daily challenges completed',
            ['challenge_type']
        )

        # Analytics
        self.correlation_records_total = Counter(
            'correlation_records_total',
            'Correlation records produced',
            ['confidence']
        )

        self.analytics_duration_seconds = Histogram(
            'analytics_duration_seconds',
            'Analytics computation latency',
            ['operation'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0]
        )

        self._enabled = True
        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = PrometheusMetrics()


def record_ledger_result(outcome: str, attempts: int) -> None:
    """Count a finished ledger operation"""
    if not metrics.enabled:
        return
    metrics.ledger_credits_total.labels(outcome=outcome).inc()
    metrics.ledger_attempts.observe(attempts)


def record_ledger_conflict() -> None:
    if not metrics.enabled:
        return
    metrics.ledger_conflicts_total.inc()


def record_retry(operation: str) -> None:
    if not metrics.enabled:
        return
    metrics.retries_total.labels(operation=operation).inc()


def record_challenge_completion(challenge_type: str) -> None:
    if not metrics.enabled:
        return
    metrics.challenge_completions_total.labels(challenge_type=challenge_type).inc()


def record_correlation(confidence: str) -> None:
    if not metrics.enabled:
        return
    metrics.correlation_records_total.labels(confidence=confidence).inc()


@contextmanager
def track_analytics(operation: str):
    """Track analytics computation latency"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()
    try:
        yield
    finally:
        metrics.analytics_duration_seconds.labels(
            operation=operation
        ).observe(time.time() - start_time)
