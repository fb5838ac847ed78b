"""Gamification database queries"""
import logging
from datetime import date
from typing import Optional

from psycopg.types.json import Jsonb

from personalfit.db.connection import db

logger = logging.getLogger(__name__)

APPLIED = "applied"
STALE = "stale"
DUPLICATE = "duplicate"


class _ConditionalWriteAborted(Exception):
    """Raised inside a transaction block to roll it back"""

    def __init__(self, outcome: str):
        super().__init__(outcome)
        self.outcome = outcome


# ==========================================
# Gamification State
# ==========================================

async def get_or_create_state(user_id: str, default_state: dict) -> dict:
    """
    Get a user's gamification document (creates it if it doesn't exist)

    Returns:
        {
            'user_id': str,
            'state': dict,
            'version': int
        }
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO gamification_state (user_id, xp, level, state, version)
                VALUES (%s, %s, %s, %s, 0)
                ON CONFLICT (user_id) DO NOTHING
                """,
                (user_id, default_state.get("xp", 0), default_state.get("level", 1), Jsonb(default_state))
            )
            await cur.execute(
                """
                SELECT user_id, state, version
                FROM gamification_state
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row) if row else None


async def is_event_credited(user_id: str, event_id: str) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT 1 FROM credited_events
                WHERE user_id = %s AND event_id = %s
                """,
                (user_id, event_id)
            )
            return await cur.fetchone() is not None


async def conditional_update_state(
    user_id: str,
    state: dict,
    expected_version: int,
    event_id: Optional[str] = None
) -> str:
    """
    Atomically record `event_id` and write `state` if the version still matches

    Both statements run in one transaction; if either precondition fails
    the transaction is rolled back and nothing is written.

    Returns:
        'applied' | 'stale' | 'duplicate'
    """
    async with db.connection() as conn:
        try:
            async with conn.transaction():
                async with conn.cursor() as cur:
                    if event_id:
                        await cur.execute(
                            """
                            INSERT INTO credited_events (user_id, event_id)
                            VALUES (%s, %s)
                            ON CONFLICT (user_id, event_id) DO NOTHING
                            RETURNING event_id
                            """,
                            (user_id, event_id)
                        )
                        if await cur.fetchone() is None:
                            raise _ConditionalWriteAborted(DUPLICATE)

                    await cur.execute(
                        """
                        UPDATE gamification_state
                        SET state = %s,
                            xp = %s,
                            level = %s,
                            version = version + 1,
                            updated_at = CURRENT_TIMESTAMP
                        WHERE user_id = %s AND version = %s
                        """,
                        (Jsonb(state), state["xp"], state["level"], user_id, expected_version)
                    )
                    if cur.rowcount == 0:
                        raise _ConditionalWriteAborted(STALE)
        except _ConditionalWriteAborted as aborted:
            logger.debug(f"Conditional write for user {user_id} aborted: {aborted.outcome}")
            return aborted.outcome

    return APPLIED


async def grant_streak_freezes_to_all(amount: int) -> int:
    """
    Add `amount` streak freezes to every user and reset monthly usage

    Returns:
        Number of users updated
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE gamification_state
                SET state = state
                        || jsonb_build_object(
                            'streak_freezes_available',
                            COALESCE((state->>'streak_freezes_available')::int, 0) + %s,
                            'streak_freezes_used_this_month', 0
                        ),
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (amount,)
            )
            updated = cur.rowcount
            await conn.commit()
            logger.info(f"Granted {amount} streak freezes to {updated} users")
            return updated


# ==========================================
# Daily Challenges
# ==========================================

async def get_challenge_set(user_id: str, challenge_date: date) -> Optional[dict]:
    """
    Returns:
        {'challenge_set': dict, 'version': int} or None
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT challenge_set, version
                FROM daily_challenges
                WHERE user_id = %s AND challenge_date = %s
                """,
                (user_id, challenge_date)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def insert_challenge_set(user_id: str, challenge_date: date, challenge_set: dict) -> dict:
    """Insert if absent and return whichever row is stored"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO daily_challenges (user_id, challenge_date, challenge_set, version)
                VALUES (%s, %s, %s, 0)
                ON CONFLICT (user_id, challenge_date) DO NOTHING
                """,
                (user_id, challenge_date, Jsonb(challenge_set))
            )
            await cur.execute(
                """
                SELECT challenge_set, version
                FROM daily_challenges
                WHERE user_id = %s AND challenge_date = %s
                """,
                (user_id, challenge_date)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row)


async def conditional_update_challenge_set(
    user_id: str,
    challenge_date: date,
    challenge_set: dict,
    expected_version: int
) -> bool:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE daily_challenges
                SET challenge_set = %s,
                    version = version + 1
                WHERE user_id = %s AND challenge_date = %s AND version = %s
                """,
                (Jsonb(challenge_set), user_id, challenge_date, expected_version)
            )
            updated = cur.rowcount > 0
            await conn.commit()
            return updated


async def list_challenge_sets(user_id: str, since: date) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT challenge_set, version
                FROM daily_challenges
                WHERE user_id = %s AND challenge_date >= %s
                ORDER BY challenge_date DESC
                """,
                (user_id, since)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]
