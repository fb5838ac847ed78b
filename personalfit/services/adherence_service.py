"""
AdherenceService - Medication adherence dashboard

Loads medications and dose logs for a user and hands them to the pure
functions in personalfit.analytics.adherence.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from personalfit.analytics.adherence import (
    STREAK_WINDOW_DAYS,
    build_adherence_overview,
    build_medication_detail,
)
from personalfit.db.queries import adherence as queries
from personalfit.exceptions import ValidationError
from personalfit.models.adherence import (
    AdherenceOverview,
    DoseLogEntry,
    Medication,
    MedicationAdherenceDetail,
)
from personalfit.monitoring.prometheus_metrics import track_analytics
from personalfit.utils.datetime_helpers import day_bounds, today_reference

logger = logging.getLogger(__name__)


def _check_window(days: int, user_id: str, operation: str) -> None:
    if days < 1:
        raise ValidationError(
            f"Analysis window must be at least 1 day, got {days}",
            field="days",
            value=days,
            user_id=user_id,
            operation=operation,
        )


class AdherenceService:
    """Read-only adherence analytics over the dose-log tables"""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz_name = tz_name
        logger.debug("AdherenceService initialized")

    async def get_overview(
        self,
        user_id: str,
        days: int = 30,
        today: Optional[date] = None
    ) -> AdherenceOverview:
        """
        Weekly/monthly series, per-medication stats, streak, overall stats
        and insights for one user.
        """
        _check_window(days, user_id, "adherence_overview")
        today = today or today_reference(self.tz_name)
        window_days = max(days, STREAK_WINDOW_DAYS)
        since, _ = day_bounds(today - timedelta(days=window_days - 1), self.tz_name)

        with track_analytics("adherence_overview"):
            medications = [Medication(**row) for row in await queries.get_active_medications(user_id)]
            dose_logs = [DoseLogEntry(**row) for row in await queries.get_dose_logs(user_id, since)]
            all_time_logs = [DoseLogEntry(**row) for row in await queries.get_all_dose_logs(user_id)]

            overview = build_adherence_overview(
                medications, dose_logs, all_time_logs, today, days, self.tz_name
            )

        logger.info(
            f"Adherence overview for user {user_id}: {len(medications)} medications, "
            f"{len(dose_logs)} recent doses, streak={overview.streak.current}"
        )
        return overview

    async def get_medication_adherence(
        self,
        user_id: str,
        medication_id: str,
        days: int = 30,
        today: Optional[date] = None
    ) -> Optional[MedicationAdherenceDetail]:
        """Detail view for one medication, None if the user has no such medication"""
        _check_window(days, user_id, "medication_adherence")
        row = await queries.get_medication(user_id, medication_id)
        if row is None:
            logger.warning(f"Medication {medication_id} not found for user {user_id}")
            return None

        today = today or today_reference(self.tz_name)
        since, _ = day_bounds(today - timedelta(days=days - 1), self.tz_name)

        with track_analytics("medication_adherence"):
            dose_logs = [
                DoseLogEntry(**log)
                for log in await queries.get_dose_logs(user_id, since, medication_id=medication_id)
            ]
            return build_medication_detail(Medication(**row), dose_logs, today, days, self.tz_name)
