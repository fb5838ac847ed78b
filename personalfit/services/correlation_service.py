"""
CorrelationService - Medication/metric correlation runs

For each active medication, correlates "taken that day" with every metric
the medication declares (or all configured metrics) and stores the results.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from personalfit import config
from personalfit.analytics.correlation import analyze_medication_metric, metrics_for_medication
from personalfit.db.queries import adherence as adherence_queries
from personalfit.db.queries import correlations as correlation_queries
from personalfit.exceptions import RecordNotFoundError, ValidationError
from personalfit.models.adherence import DoseLogEntry, Medication
from personalfit.models.correlation import BodyMetricSample, CorrelationRecord
from personalfit.monitoring.prometheus_metrics import record_correlation, track_analytics
from personalfit.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


class CorrelationService:
    """Runs and stores correlation analyses"""

    def __init__(
        self,
        metrics: Optional[List[str]] = None,
        days_back: int = config.CORRELATION_DAYS_BACK,
        tz_name: Optional[str] = None
    ):
        self.metrics = metrics or list(config.CORRELATION_METRICS)
        self.days_back = days_back
        self.tz_name = tz_name
        logger.debug("CorrelationService initialized")

    async def analyze_medication_metric(
        self,
        user_id: str,
        medication_id: str,
        metric: str,
        days_back: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> Optional[CorrelationRecord]:
        """
        Correlate one medication with one metric

        Raises:
            ValidationError: non-positive window
            RecordNotFoundError: the user has no such medication

        Returns:
            CorrelationRecord, or None when there is not enough data
        """
        days_back = self._window(days_back, user_id)
        row = await adherence_queries.get_medication(user_id, medication_id)
        if row is None:
            raise RecordNotFoundError(
                message=f"Medication not found: {medication_id}",
                record_type="medication",
                record_id=medication_id,
                user_id=user_id,
                operation="analyze_medication_metric",
            )
        return await self._analyze(user_id, Medication(**row), metric, days_back, now)

    async def analyze_all(
        self,
        user_id: str,
        days_back: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[CorrelationRecord]:
        """
        Every active medication against its metrics

        A pair that fails is logged and skipped; the run continues.
        """
        days_back = self._window(days_back, user_id)
        medications = [
            Medication(**row) for row in await adherence_queries.get_active_medications(user_id)
        ]

        records = []
        with track_analytics("correlation_analysis"):
            for medication in medications:
                for metric in metrics_for_medication(medication, self.metrics):
                    try:
                        record = await self._analyze(user_id, medication, metric, days_back, now)
                    except Exception as e:
                        logger.error(
                            f"Correlation analysis failed for user {user_id}, "
                            f"medication {medication.id}, metric {metric}: {e}",
                            exc_info=True
                        )
                        continue
                    if record is not None:
                        records.append(record)
        return records

    async def save(self, records: List[CorrelationRecord]) -> int:
        saved = await correlation_queries.upsert_correlations(
            [record.model_dump(mode="json") for record in records]
        )
        for record in records:
            record_correlation(record.confidence_level.value)
        return saved

    async def run_analysis(self, user_id: str, days_back: Optional[int] = None) -> List[CorrelationRecord]:
        """Analyze everything for one user and store the results"""
        records = await self.analyze_all(user_id, days_back)
        await self.save(records)
        logger.info(f"Correlation analysis for user {user_id} stored {len(records)} records")
        return records

    async def get_insights(self, user_id: str) -> List[CorrelationRecord]:
        """Stored correlations, strongest positive first"""
        rows = await correlation_queries.get_correlation_insights(user_id)
        return [CorrelationRecord(**row) for row in rows]

    def _window(self, days_back: Optional[int], user_id: str) -> int:
        days_back = self.days_back if days_back is None else days_back
        if days_back < 1:
            raise ValidationError(
                f"Analysis window must be at least 1 day, got {days_back}",
                field="days_back",
                value=days_back,
                user_id=user_id,
                operation="correlation_analysis",
            )
        return days_back

    async def _analyze(
        self,
        user_id: str,
        medication: Medication,
        metric: str,
        days_back: int,
        now: Optional[datetime]
    ) -> Optional[CorrelationRecord]:
        now = now or now_utc()
        since = now - timedelta(days=days_back)

        dose_logs = [
            DoseLogEntry(**row)
            for row in await adherence_queries.get_taken_dose_logs(user_id, medication.id, since)
        ]
        samples = [
            BodyMetricSample(**row)
            for row in await adherence_queries.get_body_metric_samples(user_id, since)
        ]
        return analyze_medication_metric(
            user_id,
            medication,
            metric,
            dose_logs,
            samples,
            days_back=days_back,
            tz_name=self.tz_name,
            analyzed_at=now,
        )
