"""Database connection management"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from personalfit.config import DATABASE_URL

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


class Database:
    """Database connection pool manager"""

    def __init__(self, connection_string: str = DATABASE_URL):
        self.connection_string = connection_string
        self._pool: Optional[AsyncConnectionPool] = None

    async def init_pool(self, min_size: int = 2, max_size: int = 10) -> None:
        """Initialize connection pool"""
        logger.info("Initializing database connection pool")
        self._pool = AsyncConnectionPool(
            self.connection_string,
            min_size=min_size,
            max_size=max_size,
            open=False
        )
        await self._pool.open()

    async def close_pool(self) -> None:
        """Close connection pool"""
        if self._pool:
            logger.info("Closing database connection pool")
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Get database connection from pool"""
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn

    async def apply_migrations(self, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
        """
        Run every .sql file in `migrations_dir` in name order

        Migration files only use IF NOT EXISTS statements, so re-running is safe.

        Returns:
            Applied file names
        """
        applied = []
        async with self.connection() as conn:
            for path in sorted(migrations_dir.glob("*.sql")):
                logger.info(f"Applying migration {path.name}")
                await conn.execute(path.read_text())
                applied.append(path.name)
            await conn.commit()

        logger.info(f"Applied {len(applied)} migrations")
        return applied


# Global database instance
db = Database()
