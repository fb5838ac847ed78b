"""Medication/metric correlation queries"""
import logging

from psycopg.types.json import Jsonb

from personalfit.db.connection import db

logger = logging.getLogger(__name__)

INSIGHTS_LIMIT = 50


async def upsert_correlations(records: list[dict]) -> int:
    """
    Insert or replace correlation rows keyed by (user, medication, metric)

    Returns:
        Number of rows written
    """
    if not records:
        return 0

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.executemany(
                """
                INSERT INTO medication_metric_correlations
                (user_id, medication_id, metric, correlation_coefficient, impact_direction,
                 confidence_level, data_points, observations, sample_period_days, analyzed_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s, CURRENT_TIMESTAMP))
                ON CONFLICT (user_id, medication_id, metric) DO UPDATE SET
                    correlation_coefficient = EXCLUDED.correlation_coefficient,
                    impact_direction = EXCLUDED.impact_direction,
                    confidence_level = EXCLUDED.confidence_level,
                    data_points = EXCLUDED.data_points,
                    observations = EXCLUDED.observations,
                    sample_period_days = EXCLUDED.sample_period_days,
                    analyzed_at = EXCLUDED.analyzed_at
                """,
                [
                    (
                        r["user_id"],
                        r["medication_id"],
                        r["metric"],
                        r["correlation_coefficient"],
                        r["impact_direction"],
                        r["confidence_level"],
                        r["data_points"],
                        Jsonb(r["observations"]),
                        r["sample_period_days"],
                        r.get("analyzed_at"),
                    )
                    for r in records
                ]
            )
            await conn.commit()

    logger.info(f"Saved {len(records)} correlation records")
    return len(records)


async def get_correlation_insights(user_id: str) -> list[dict]:
    """Strongest positive correlations first"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, medication_id, metric, correlation_coefficient,
                       impact_direction, confidence_level, data_points, observations,
                       sample_period_days, analyzed_at
                FROM medication_metric_correlations
                WHERE user_id = %s
                ORDER BY correlation_coefficient DESC
                LIMIT %s
                """,
                (user_id, INSIGHTS_LIMIT)
            )
            return [dict(row) for row in await cur.fetchall()]


async def list_users_with_active_medications() -> list[str]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT DISTINCT user_id
                FROM medications
                WHERE is_active = TRUE
                ORDER BY user_id
                """
            )
            return [row["user_id"] for row in await cur.fetchall()]
