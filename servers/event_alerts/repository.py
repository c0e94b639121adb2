"""
Event and subscriber storage.

The pipeline talks to storage through two small protocols so any document
store can sit behind it. In-memory implementations are provided for tests
and single-process deployments.

EventStore.insert_many mirrors an unordered bulk insert: each event either
lands or is reported as an error, and one bad event never stops the rest.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

import structlog

from .errors import (
    DuplicateKeyError,
    EventNotFound,
    NormalizationFailure,
    PersistencePartialFailure,
)
from .geo import haversine_km
from .models import Category, Event, FeedbackEntry, GeoPoint, PersistResult, RawCandidate, Subscriber
from .normalize import normalize_candidate

logger = structlog.get_logger()


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class InsertManyResult:
    """Per-item outcome of a bulk insert."""

    inserted: list[Event] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)


class EventStore(Protocol):
    """Persisted-event store with a unique index on source_url.

    Implementations raise RepositoryUnavailable when the backend cannot be
    reached at all.
    """

    async def insert_many(self, events: list[Event]) -> InsertManyResult: ...

    async def get(self, event_id: str) -> Optional[Event]: ...

    async def replace(self, event: Event) -> None: ...

    async def all(self) -> list[Event]: ...


class SubscriberStore(Protocol):
    """Read access to the current subscriber list."""

    async def list_subscribers(self) -> list[Subscriber]: ...


class InMemoryEventStore:
    """Dict-backed EventStore."""

    def __init__(self):
        self._events: dict[str, Event] = {}
        self._by_source_url: dict[str, str] = {}

    async def insert_many(self, events: list[Event]) -> InsertManyResult:
        result = InsertManyResult()
        for event in events:
            if event.source_url in self._by_source_url:
                result.errors.append(DuplicateKeyError(event.source_url))
                continue
            self._events[event.id] = event
            self._by_source_url[event.source_url] = event.id
            result.inserted.append(event)
        return result

    async def get(self, event_id: str) -> Optional[Event]:
        return self._events.get(event_id)

    async def replace(self, event: Event) -> None:
        if event.id not in self._events:
            raise EventNotFound(event.id)
        self._events[event.id] = event

    async def all(self) -> list[Event]:
        return list(self._events.values())

    def __len__(self) -> int:
        return len(self._events)


class InMemorySubscriberStore:
    """List-backed SubscriberStore."""

    def __init__(self, subscribers: Optional[Iterable[Subscriber]] = None):
        self._subscribers: list[Subscriber] = list(subscribers or [])

    def add(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    async def list_subscribers(self) -> list[Subscriber]:
        return list(self._subscribers)


class EventRepositoryAdapter:
    """Normalize candidates and persist the ones not seen before."""

    def __init__(self, store: EventStore):
        self.store = store

    async def persist_new(self, candidates: Iterable[RawCandidate]) -> PersistResult:
        """
        Normalize and bulk-insert candidates, deduplicating by source_url.

        Candidates that fail normalization are dropped. Duplicates, within
        the batch or against the store, are skipped. Other per-item insert
        errors are logged and counted; the rest of the batch still lands.

        Raises:
            RepositoryUnavailable: if the store cannot be reached
        """
        events: list[Event] = []
        seen_urls: set[str] = set()
        total = 0
        rejected = 0
        duplicates = 0

        for candidate in candidates:
            total += 1
            try:
                event = normalize_candidate(candidate)
            except NormalizationFailure as e:
                rejected += 1
                logger.info(
                    "candidate_rejected",
                    title=candidate.title[:80],
                    page_url=candidate.page_url,
                    field=e.field,
                    reason=e.reason,
                )
                continue

            if event.source_url in seen_urls:
                duplicates += 1
                continue
            seen_urls.add(event.source_url)
            events.append(event)

        if not events:
            return PersistResult(rejected=rejected, duplicates=duplicates)

        result = await self.store.insert_many(events)

        other_errors = [e for e in result.errors if not isinstance(e, DuplicateKeyError)]
        duplicates += len(result.errors) - len(other_errors)
        if other_errors:
            failure = PersistencePartialFailure(other_errors)
            logger.warning(
                "persist_partial_failure",
                failed=len(other_errors),
                error=str(failure),
                first_error=str(other_errors[0]),
            )

        logger.info(
            "events_persisted",
            candidates=total,
            persisted=len(result.inserted),
            duplicates=duplicates,
            rejected=rejected,
        )
        return PersistResult(
            persisted=result.inserted,
            duplicates=duplicates,
            rejected=rejected,
            failed=len(other_errors),
        )

    async def find_events(
        self,
        near: Optional[GeoPoint] = None,
        radius_km: float = 10.0,
        category: Optional[Category] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Event]:
        """Stored events filtered by distance, category and date range.

        Naive date bounds are taken as UTC, like scraped dates.
        """
        start, end = _as_utc(start), _as_utc(end)
        events = await self.store.all()

        def keep(event: Event) -> bool:
            if near is not None and haversine_km(near, event.location) > radius_km:
                return False
            if category is not None and event.category != category:
                return False
            if start is not None and event.date < start:
                return False
            if end is not None and event.date > end:
                return False
            return True

        return [event for event in events if keep(event)]

    async def add_feedback(self, event_id: str, user_id: str, status: str) -> Event:
        """Append a feedback entry to a stored event.

        Raises:
            EventNotFound: if no event has this id
        """
        event = await self.store.get(event_id)
        if event is None:
            raise EventNotFound(event_id)

        updated = event.with_feedback(FeedbackEntry(user_id=user_id, status=status))
        await self.store.replace(updated)
        logger.info("feedback_added", event_id=event_id, user_id=user_id, status=status)
        return updated
