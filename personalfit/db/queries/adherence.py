"""Medication, dose-log and body-metric queries"""
import logging
from datetime import datetime
from typing import Optional

from personalfit.db.connection import db

logger = logging.getLogger(__name__)


async def get_active_medications(user_id: str) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, user_id, name, is_active AS active, notes, affects_metrics
                FROM medications
                WHERE user_id = %s AND is_active = TRUE
                ORDER BY name
                """,
                (user_id,)
            )
            return [dict(row) for row in await cur.fetchall()]


async def get_medication(user_id: str, medication_id: str) -> Optional[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, user_id, name, is_active AS active, notes, affects_metrics
                FROM medications
                WHERE user_id = %s AND id = %s
                """,
                (user_id, medication_id)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def get_dose_logs(
    user_id: str,
    since: datetime,
    medication_id: Optional[str] = None
) -> list[dict]:
    """
    Dose logs scheduled at or after `since`, optionally for one medication

    Returns:
        [
            {
                'user_id': str,
                'medication_id': str,
                'scheduled_time': datetime,
                'taken_at': datetime | None,
                'status': 'taken' | 'missed' | 'skipped'
            },
            ...
        ]
    """
    query = """
        SELECT user_id, medication_id, scheduled_time, taken_at, status
        FROM dose_logs
        WHERE user_id = %s AND scheduled_time >= %s
    """
    params: list = [user_id, since]
    if medication_id:
        query += " AND medication_id = %s"
        params.append(medication_id)
    query += " ORDER BY scheduled_time"

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(query, params)
            return [dict(row) for row in await cur.fetchall()]


async def get_all_dose_logs(user_id: str) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, medication_id, scheduled_time, taken_at, status
                FROM dose_logs
                WHERE user_id = %s
                ORDER BY scheduled_time
                """,
                (user_id,)
            )
            return [dict(row) for row in await cur.fetchall()]


async def get_taken_dose_logs(user_id: str, medication_id: str, since: datetime) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, medication_id, scheduled_time, taken_at, status
                FROM dose_logs
                WHERE user_id = %s
                  AND medication_id = %s
                  AND status = 'taken'
                  AND taken_at >= %s
                ORDER BY taken_at
                """,
                (user_id, medication_id, since)
            )
            return [dict(row) for row in await cur.fetchall()]


async def get_body_metric_samples(user_id: str, since: datetime) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, measurement_date AS date, metric_values
                FROM body_metrics
                WHERE user_id = %s AND measurement_date >= %s
                ORDER BY measurement_date
                """,
                (user_id, since.date())
            )
            return [dict(row) for row in await cur.fetchall()]
