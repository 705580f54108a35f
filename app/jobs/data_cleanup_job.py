"""
Data Cleanup Background Job - retention enforcement for the document store.

Each run:
1. Deletes resume tokens past their expiry (used or not)
2. Deletes drafts idle for longer than DRAFT_RETENTION_DAYS (default 180)

Expired resume tokens are already rejected on read; this job only keeps the
table from growing without bound.

Usage:
    python -m app.jobs.worker data_cleanup        # daily scheduler
    python -m app.jobs.worker data_cleanup_once   # single run (cron)
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from app.config import settings
from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger
from app.repositories.draft_repository import PostgresDraftStore
from app.repositories.resume_token_repository import PostgresResumeTokenStore

logger = get_logger(__name__)


class DataCleanupJob:
    """Purges expired resume tokens and idle drafts."""

    def __init__(
        self,
        drafts: PostgresDraftStore | None = None,
        resume_tokens: PostgresResumeTokenStore | None = None,
        retention_days: int | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.drafts = drafts or PostgresDraftStore()
        self.resume_tokens = resume_tokens or PostgresResumeTokenStore()
        self.retention_days = (
            retention_days if retention_days is not None else settings.DRAFT_RETENTION_DAYS
        )
        self._clock = clock
        self.is_running = False

    async def run_cleanup(self) -> dict:
        """
        Run one cleanup pass. Each step is isolated: a failure is recorded in
        ``errors`` and the next step still runs.

        Returns:
            dict: {"success", "deleted_resume_tokens", "deleted_drafts", "errors"}
        """
        if self.is_running:
            logger.warning("Cleanup job already running, skipping")
            return {"success": False, "error": "Already running"}

        self.is_running = True
        now = self._clock()
        result = {
            "success": True,
            "deleted_resume_tokens": 0,
            "deleted_drafts": 0,
            "errors": [],
        }
        logger.info("Starting data cleanup job", timestamp=now.isoformat())

        try:
            try:
                result["deleted_resume_tokens"] = await self.resume_tokens.purge_expired(now)
            except Exception as e:
                logger.error("Failed to purge expired resume tokens", error=str(e))
                result["errors"].append(f"resume_tokens: {e}")

            cutoff = now - timedelta(days=self.retention_days)
            try:
                result["deleted_drafts"] = await self.drafts.purge_idle(cutoff)
            except Exception as e:
                logger.error("Failed to purge idle drafts", error=str(e))
                result["errors"].append(f"drafts: {e}")
        finally:
            self.is_running = False

        result["success"] = not result["errors"]
        logger.info(
            "Data cleanup job completed",
            duration_seconds=(self._clock() - now).total_seconds(),
            retention_days=self.retention_days,
            result=result,
        )
        return result


def seconds_until(now: datetime, hour: int) -> float:
    """Seconds from ``now`` to the next occurrence of ``hour``:00 (UTC)."""
    next_run = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if now >= next_run:
        next_run += timedelta(days=1)
    return (next_run - now).total_seconds()


async def run_data_cleanup_once() -> None:
    """Open the pool, run one pass, close the pool."""
    await db_pool.initialize()
    try:
        await DataCleanupJob().run_cleanup()
    finally:
        await db_pool.close()


async def start_data_cleanup_scheduler() -> None:
    """Run the cleanup daily at CLEANUP_SCHEDULE_HOUR (UTC)."""
    job = DataCleanupJob()
    schedule_hour = settings.CLEANUP_SCHEDULE_HOUR

    await db_pool.initialize()
    logger.info("Data cleanup scheduler STARTED", schedule_hour=schedule_hour)

    try:
        while True:
            try:
                sleep_seconds = seconds_until(datetime.now(UTC), schedule_hour)
                logger.info("Data cleanup job scheduled", sleep_seconds=sleep_seconds)
                await asyncio.sleep(sleep_seconds)
                await job.run_cleanup()

            except asyncio.CancelledError:
                logger.info("Data cleanup scheduler cancelled")
                break
            except Exception as e:
                logger.error("Error in cleanup scheduler, will retry", error=str(e))
                await asyncio.sleep(3600)
    finally:
        await db_pool.close()
