"""Scheduled jobs: nightly status refresh and asset warm-up."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class FreshlyScheduler:
    """Manages cron jobs for the inventory and the asset cache.

    Uses APScheduler for cron-based scheduling.
    """

    def __init__(self, config, asset_cache=None) -> None:
        """Initialize scheduler with a FreshlyConfig.

        Args:
            config: FreshlyConfig instance.
            asset_cache: AssetCache to warm; built from config on first use
                if omitted.

        Raises:
            ImportError: If apscheduler is not installed.
        """
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.cron import CronTrigger
        except ImportError:
            raise ImportError(
                "apscheduler is required: pip install apscheduler"
            )

        self._config = config
        self._asset_cache = asset_cache
        self._scheduler = AsyncIOScheduler()
        self._CronTrigger = CronTrigger
        self._running = False

    def setup_jobs(self) -> None:
        """Register scheduled jobs based on config."""
        trigger = self._parse_cron(self._config.scheduler.refresh_schedule)
        self._scheduler.add_job(
            self._job_refresh_statuses,
            trigger=trigger,
            id="refresh_statuses",
            name="Refresh freshness statuses",
            replace_existing=True,
        )
        logger.info(
            "Registered status refresh job: %s",
            self._config.scheduler.refresh_schedule,
        )

        trigger = self._parse_cron(self._config.scheduler.warm_schedule)
        self._scheduler.add_job(
            self._job_warm_assets,
            trigger=trigger,
            id="warm_assets",
            name="Warm category and onboarding images",
            replace_existing=True,
        )
        logger.info(
            "Registered asset warm-up job: %s",
            self._config.scheduler.warm_schedule,
        )

    def start(self) -> None:
        """Start the scheduler."""
        self.setup_jobs()
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler started")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(next_run) if next_run else None,
            })
        return jobs

    def _parse_cron(self, expr: str):
        """Parse a cron expression into a CronTrigger."""
        parts = expr.split()
        if len(parts) == 5:
            return self._CronTrigger(
                minute=parts[0],
                hour=parts[1],
                day=parts[2],
                month=parts[3],
                day_of_week=parts[4],
            )
        raise ValueError(f"Invalid cron expression: {expr}")

    async def _job_refresh_statuses(self) -> None:
        """Recompute cached freshness statuses for the new day."""
        logger.info("Refreshing inventory statuses...")

        try:
            from .db import InventoryDB

            db = InventoryDB(self._config.database.path)
            try:
                count = db.refresh_statuses()
                if count > 0:
                    logger.info("Updated status of %d items", count)
            finally:
                db.close()
        except Exception:
            logger.exception("Status refresh job failed")

    async def _job_warm_assets(self) -> None:
        """Pre-generate category icons and onboarding art, one at a time."""
        logger.info("Warming asset cache...")

        try:
            from .assets import AssetState, create_asset_cache
            from .prompts import category_keys, onboarding_keys, prompt_for_key

            if self._asset_cache is None:
                self._asset_cache = create_asset_cache(self._config)

            results = await self._asset_cache.warm(
                category_keys() + onboarding_keys(), prompt_for_key
            )
            failed = [k for k, e in results.items() if e.state is AssetState.FAILED]
            if failed:
                logger.warning("Could not warm %d assets: %s", len(failed), ", ".join(failed))
            else:
                logger.info("Asset cache warm (%d keys)", len(results))
        except Exception:
            logger.exception("Asset warm-up job failed")
