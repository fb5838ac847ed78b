"""Main entry point for the personalfit batch jobs"""
import logging
import asyncio
import sys
from personalfit.config import validate_config, LOG_LEVEL
from personalfit.db.connection import db
from personalfit.scheduler.jobs import grant_monthly_streak_freezes, run_correlation_batch
from personalfit.services.container import init_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)

JOBS = ("correlations", "streak-freezes", "migrate")


async def main(job: str) -> int:
    """Run one batch job and return the process exit code"""
    try:
        # Validate configuration
        logger.info("Validating configuration...")
        validate_config()

        # Initialize database
        logger.info("Initializing database connection pool...")
        await db.init_pool()

        if job == "migrate":
            await db.apply_migrations()
            return 0

        container = init_container()

        if job == "correlations":
            summary = await run_correlation_batch(container.correlation_service)
            return 1 if summary['failed'] else 0

        await grant_monthly_streak_freezes(container.store)
        return 0

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1
    finally:
        logger.info("Closing database connection...")
        await db.close_pool()

        logger.info("Shutdown complete")


def run() -> None:
    job = sys.argv[1] if len(sys.argv) > 1 else "correlations"
    if job not in JOBS:
        print(f"Usage: personalfit-jobs [{' | '.join(JOBS)}]", file=sys.stderr)
        sys.exit(2)
    sys.exit(asyncio.run(main(job)))


if __name__ == "__main__":
    run()
