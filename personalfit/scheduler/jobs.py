"""
Batch jobs

- Correlation analysis across many users, bounded by BATCH_CONCURRENCY
- Monthly streak-freeze grant

Each user is processed independently; one failing user is logged and does
not stop the batch.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from personalfit import config
from personalfit.db.queries.correlations import list_users_with_active_medications
from personalfit.gamification.store import GamificationStore
from personalfit.services.correlation_service import CorrelationService

logger = logging.getLogger(__name__)


async def run_correlation_batch(
    service: CorrelationService,
    user_ids: Optional[List[str]] = None,
    concurrency: int = config.BATCH_CONCURRENCY
) -> Dict[str, Any]:
    """
    Run correlation analysis for every user

    Returns:
        {
            'users': int,
            'succeeded': int,
            'failed': [user_id, ...],
            'records': int
        }
    """
    if user_ids is None:
        user_ids = await list_users_with_active_medications()

    logger.info(f"Starting correlation batch for {len(user_ids)} users")
    semaphore = asyncio.Semaphore(max(concurrency, 1))

    async def run_one(user_id: str) -> int:
        async with semaphore:
            records = await service.run_analysis(user_id)
            return len(records)

    results = await asyncio.gather(
        *(run_one(user_id) for user_id in user_ids),
        return_exceptions=True
    )

    summary = {'users': len(user_ids), 'succeeded': 0, 'failed': [], 'records': 0}
    for user_id, result in zip(user_ids, results):
        if isinstance(result, Exception):
            logger.error(f"Correlation batch failed for user {user_id}: {result}", exc_info=result)
            summary['failed'].append(user_id)
        else:
            summary['succeeded'] += 1
            summary['records'] += result

    logger.info(
        f"Correlation batch complete: {summary['succeeded']}/{summary['users']} users, "
        f"{summary['records']} records, {len(summary['failed'])} failures"
    )
    return summary


async def grant_monthly_streak_freezes(
    store: GamificationStore,
    amount: int = config.MONTHLY_STREAK_FREEZES
) -> int:
    """Give every user their monthly streak freezes"""
    logger.info(f"Granting {amount} monthly streak freezes")
    updated = await store.grant_monthly_streak_freezes(amount)
    logger.info(f"Monthly streak freezes granted to {updated} users")
    return updated
