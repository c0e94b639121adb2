"""
Fetch orchestration across many URLs.

Per URL the policy is: rendered extraction first when a browser is up,
static extraction if that fails for any reason, and skip the URL (zero
candidates) if both fail. URLs are independent and fetched concurrently,
bounded by a semaphore.

The browser is the job's only shared resource. `job()` owns its lifecycle:
jobs queue on a lock, the browser is started once at the beginning and
closed exactly once at the end, whatever happens in between. If it cannot
start, the whole job runs static-only.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Iterator, Optional, Sequence

import structlog

from .config.settings import Settings
from .errors import JobDeadlineExceeded, RenderResourceUnavailable
from .models import FetchStats, RawCandidate, SelectorConfig, Strategy
from .resilience.fallback import FallbackChain
from .resilience.health import TargetHealth
from .sources.rendered import RenderedExtractor
from .sources.static_html import StaticHtmlExtractor

logger = structlog.get_logger()


@dataclass
class FetchBatch:
    """Aggregated candidates from one fetch_all call, plus per-URL stats."""

    candidates: list[RawCandidate] = field(default_factory=list)
    stats: list[FetchStats] = field(default_factory=list)
    timed_out: bool = False

    def __iter__(self) -> Iterator[RawCandidate]:
        return iter(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)

    @property
    def failed_urls(self) -> list[str]:
        return [s.url for s in self.stats if s.status == "error"]


class FetchOrchestrator:
    """Run extraction over a URL set with fallback and a scoped browser."""

    def __init__(
        self,
        settings: Settings,
        static_extractor: Optional[StaticHtmlExtractor] = None,
        browser_factory: Optional[Callable[[], RenderedExtractor]] = None,
        health: Optional[TargetHealth] = None,
    ):
        self.settings = settings
        self.static = static_extractor or StaticHtmlExtractor(
            timeout=settings.request_timeout,
            max_attempts=settings.fetch_max_attempts,
        )
        if browser_factory is None and settings.use_browser:
            browser_factory = self._default_browser
        self.browser_factory = browser_factory
        self.browser: Optional[RenderedExtractor] = None
        self.health = health or TargetHealth()
        self._job_lock = asyncio.Lock()

    def _default_browser(self) -> RenderedExtractor:
        return RenderedExtractor(
            render_timeout=self.settings.render_timeout,
            executable_path=self.settings.chrome_path,
        )

    @property
    def rendering_available(self) -> bool:
        return self.browser is not None

    @property
    def job_in_progress(self) -> bool:
        return self._job_lock.locked()

    async def initialize(self) -> None:
        """Start the browser for this job, or fall back to static-only mode."""
        if self.browser is not None:
            return
        if self.browser_factory is None:
            logger.info("static_only_mode", reason="browser disabled")
            return

        browser = self.browser_factory()
        try:
            await browser.start()
        except RenderResourceUnavailable as e:
            logger.warning("static_only_mode", reason="browser unavailable", error=str(e))
            return
        self.browser = browser

    async def close(self) -> None:
        """Release the browser. Idempotent."""
        browser, self.browser = self.browser, None
        if browser is not None:
            await browser.close()

    @asynccontextmanager
    async def job(self) -> AsyncIterator["FetchOrchestrator"]:
        """Scope one job: wait for any running job, initialize, always close."""
        if self.job_in_progress:
            logger.info("job_queued", reason="another job is running")

        async with self._job_lock:
            await self.initialize()
            try:
                yield self
            finally:
                await self.close()

    async def fetch_all(self, urls: Sequence[str], selectors: SelectorConfig) -> FetchBatch:
        """
        Fetch and extract every URL; one URL's failure never affects another.

        If the job deadline passes, unfinished URLs are cancelled and the
        candidates gathered so far are returned.

        Raises:
            JobDeadlineExceeded: if the deadline passed with nothing collected
        """
        if not urls:
            return FetchBatch()

        semaphore = asyncio.Semaphore(self.settings.fetch_concurrency)
        tasks = [
            asyncio.create_task(self._fetch_one(url, selectors, semaphore))
            for url in urls
        ]
        logger.info(
            "fetch_started",
            urls=len(urls),
            rendering=self.rendering_available,
            concurrency=self.settings.fetch_concurrency,
        )

        _done, pending = await asyncio.wait(tasks, timeout=self.settings.job_timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        batch = FetchBatch(timed_out=bool(pending))
        for url, task in zip(urls, tasks):
            if task in pending:
                batch.stats.append(FetchStats(
                    url=url,
                    status="skipped",
                    error_message="job deadline exceeded",
                ))
                continue
            candidates, stats = task.result()
            batch.candidates.extend(candidates)
            batch.stats.append(stats)

        if batch.timed_out:
            logger.warning(
                "job_deadline_exceeded",
                timeout=self.settings.job_timeout,
                unfinished=len(pending),
                collected=len(batch.candidates),
            )
            if not batch.candidates:
                raise JobDeadlineExceeded(self.settings.job_timeout)

        logger.info(
            "fetch_complete",
            candidates=len(batch.candidates),
            failed=len(batch.failed_urls),
        )
        return batch

    async def _fetch_one(
        self,
        url: str,
        selectors: SelectorConfig,
        semaphore: asyncio.Semaphore,
    ) -> tuple[list[RawCandidate], FetchStats]:
        async with semaphore:
            started = time.monotonic()

            steps = []
            if self.browser is not None:
                steps.append((Strategy.RENDERED.value, self.browser.extract))
            steps.append((Strategy.STATIC.value, self.static.extract))
            chain = FallbackChain(*steps, context=url)

            try:
                outcome = await chain.execute(url, selectors)
            except Exception as e:
                self.health.record_failure(url, str(e))
                logger.error("url_skipped", url=url, error=str(e))
                return [], FetchStats(
                    url=url,
                    status="error",
                    duration_ms=int((time.monotonic() - started) * 1000),
                    error_message=str(e),
                )

            strategy = Strategy(outcome.step)
            self.health.record_success(
                url, strategy, len(outcome.value), fell_back=outcome.fell_back
            )
            return outcome.value, FetchStats(
                url=url,
                strategy=strategy,
                count=len(outcome.value),
                status="success",
                duration_ms=int((time.monotonic() - started) * 1000),
            )
