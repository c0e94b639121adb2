"""
The scrape -> persist -> match -> notify pipeline.

One run is strictly staged: a single orchestrator job collects candidates,
one persist call stores the new ones, and every new event is matched
against the current subscribers and sent out. Within the notify stage
deliveries run concurrently up to `notify_concurrency`.

Only RepositoryUnavailable and JobDeadlineExceeded escape a run.
"""

import asyncio
from typing import Optional, Sequence

import structlog

from .config.settings import Settings
from .matcher import match_users
from .models import (
    Event,
    NotificationResult,
    ScrapeJobResult,
    SelectorConfig,
    Subscriber,
)
from .notifier import Notifier
from .orchestrator import FetchOrchestrator
from .repository import (
    EventRepositoryAdapter,
    EventStore,
    InMemoryEventStore,
    InMemorySubscriberStore,
    SubscriberStore,
)

logger = structlog.get_logger()


class EventPipeline:
    """Wire the pipeline components together around shared settings."""

    def __init__(
        self,
        settings: Settings,
        orchestrator: Optional[FetchOrchestrator] = None,
        repository: Optional[EventRepositoryAdapter] = None,
        subscribers: Optional[SubscriberStore] = None,
        notifier: Optional[Notifier] = None,
        event_store: Optional[EventStore] = None,
    ):
        self.settings = settings
        self.orchestrator = orchestrator or FetchOrchestrator(settings)
        self.repository = repository or EventRepositoryAdapter(event_store or InMemoryEventStore())
        self.subscribers = subscribers or InMemorySubscriberStore()
        self.notifier = notifier or Notifier(settings)

    async def run_scrape_job(
        self,
        urls: Sequence[str],
        selectors: SelectorConfig,
    ) -> ScrapeJobResult:
        """
        Run one full job over `urls`.

        Returns:
            ScrapeJobResult with events_found / events_persisted counts

        Raises:
            RepositoryUnavailable: if the event store cannot be reached
            JobDeadlineExceeded: if the job timed out with nothing collected
        """
        logger.info("scrape_job_started", urls=len(urls))

        async with self.orchestrator.job() as orchestrator:
            batch = await orchestrator.fetch_all(urls, selectors)

        persisted = await self.repository.persist_new(batch.candidates)
        notifications_sent = await self.notify_new_events(persisted.persisted)

        result = ScrapeJobResult(
            events_found=len(batch.candidates),
            events_persisted=persisted.count,
            notifications_sent=notifications_sent,
            stats=batch.stats,
            timed_out=batch.timed_out,
        )
        logger.info(
            "scrape_job_complete",
            events_found=result.events_found,
            events_persisted=result.events_persisted,
            notifications_sent=result.notifications_sent,
            timed_out=result.timed_out,
        )
        return result

    async def notify_new_events(self, events: Sequence[Event]) -> int:
        """Match each event against all subscribers and notify the matches.

        Returns:
            Number of (user, event) pairs where at least one channel delivered
        """
        if not events:
            return 0

        users = await self.subscribers.list_subscribers()
        pairs = [
            (user, event)
            for event in events
            for user in match_users(event, users)
        ]
        logger.info("subscribers_matched", events=len(events), pairs=len(pairs))
        if not pairs:
            return 0

        semaphore = asyncio.Semaphore(self.settings.notify_concurrency)

        async def bounded(user: Subscriber, event: Event) -> NotificationResult:
            async with semaphore:
                return await self.notify_user(user, event)

        results = await asyncio.gather(*(bounded(user, event) for user, event in pairs))
        return sum(1 for r in results if r.sms_sent or r.email_sent)

    async def notify_user(self, user: Subscriber, event: Event) -> NotificationResult:
        """Notify one user about one event. Usable on its own for resends."""
        return await self.notifier.notify(user, event)
