"""Run the pipeline on a fixed interval, with on-demand runs."""

from typing import Optional, Sequence

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .errors import JobDeadlineExceeded, RepositoryUnavailable
from .models import ScrapeJobResult, SelectorConfig
from .pipeline import EventPipeline

logger = structlog.get_logger()

JOB_ID = "scrape_job"


class Scheduler:
    """Drive EventPipeline.run_scrape_job every `interval_minutes`.

    Scheduled and manual runs share the pipeline's orchestrator, so
    overlapping runs queue behind each other instead of fighting over the
    browser.
    """

    def __init__(
        self,
        pipeline: EventPipeline,
        urls: Sequence[str],
        selectors: SelectorConfig,
        interval_minutes: Optional[int] = None,
    ):
        self.pipeline = pipeline
        self.urls = list(urls)
        self.selectors = selectors
        self.interval_minutes = interval_minutes or pipeline.settings.schedule_interval_minutes
        self._scheduler = AsyncIOScheduler()
        self.last_result: Optional[ScrapeJobResult] = None

    async def run_once(self) -> Optional[ScrapeJobResult]:
        """One pipeline run. Fatal errors are logged, never raised."""
        try:
            result = await self.pipeline.run_scrape_job(self.urls, self.selectors)
        except (RepositoryUnavailable, JobDeadlineExceeded) as e:
            logger.error("scheduled_run_failed", error=str(e), error_type=type(e).__name__)
            return None

        self.last_result = result
        return result

    async def trigger_now(self) -> Optional[ScrapeJobResult]:
        """Manual run outside the schedule."""
        logger.info("manual_run_triggered")
        return await self.run_once()

    def start(self) -> None:
        """Register the interval job and start the scheduler (needs a running loop)."""
        self._scheduler.add_job(
            self.run_once,
            "interval",
            minutes=self.interval_minutes,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("scheduler_started", interval_minutes=self.interval_minutes, urls=len(self.urls))

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped")

    @property
    def running(self) -> bool:
        return self._scheduler.running
