"""Tests for event persistence, queries and feedback."""

from datetime import datetime, timezone

import pytest

from servers.event_alerts.errors import EventNotFound
from servers.event_alerts.models import Category, Event, GeoPoint, RawCandidate
from servers.event_alerts.repository import (
    EventRepositoryAdapter,
    InMemoryEventStore,
    InMemorySubscriberStore,
    InsertManyResult,
)


def _candidate(n: int, **overrides) -> RawCandidate:
    fields = {
        "title": f"Event {n}",
        "date": "2026-07-04T19:00:00Z",
        "location": "40.6602, -73.9690",
        "source_url": f"https://example.com/events/{n}",
        "page_url": "https://example.com/events",
    }
    fields.update(overrides)
    return RawCandidate(**fields)


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def repository(store: InMemoryEventStore) -> EventRepositoryAdapter:
    return EventRepositoryAdapter(store)


class TestPersistNew:
    """Tests for persist_new."""

    @pytest.mark.asyncio
    async def test_persists_new_events(self, repository, store):
        result = await repository.persist_new([_candidate(1), _candidate(2)])

        assert result.count == 2
        assert result.duplicates == 0
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_second_run_is_all_duplicates(self, repository, store):
        await repository.persist_new([_candidate(1), _candidate(2)])
        result = await repository.persist_new([_candidate(1), _candidate(2)])

        assert result.count == 0
        assert result.duplicates == 2
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_duplicate_within_batch(self, repository, store):
        result = await repository.persist_new([_candidate(1), _candidate(1, title="Same link")])

        assert result.count == 1
        assert result.duplicates == 1
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_mixed_new_and_existing(self, repository):
        await repository.persist_new([_candidate(1)])
        result = await repository.persist_new([_candidate(1), _candidate(2)])

        assert [e.source_url for e in result.persisted] == ["https://example.com/events/2"]
        assert result.duplicates == 1

    @pytest.mark.asyncio
    async def test_invalid_candidates_rejected(self, repository, store):
        result = await repository.persist_new([
            _candidate(1),
            _candidate(2, location="Somewhere without coordinates"),
            _candidate(3, date=""),
        ])

        assert result.count == 1
        assert result.rejected == 2
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self, repository):
        result = await repository.persist_new([])
        assert result.count == 0
        assert result.rejected == 0

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_rest(self):
        class FlakyStore(InMemoryEventStore):
            async def insert_many(self, events):
                result = await super().insert_many(events[1:])
                return InsertManyResult(
                    inserted=result.inserted,
                    errors=[RuntimeError("write conflict"), *result.errors],
                )

        repository = EventRepositoryAdapter(FlakyStore())
        result = await repository.persist_new([_candidate(1), _candidate(2), _candidate(3)])

        assert result.count == 2
        assert result.failed == 1
        assert result.duplicates == 0


class TestFindEvents:
    """Tests for find_events."""

    async def _seed(self, repository: EventRepositoryAdapter) -> EventRepositoryAdapter:
        await repository.persist_new([
            _candidate(1, category="music", date="2026-07-04T19:00:00Z"),
            _candidate(2, category="food", date="2026-07-10T12:00:00Z"),
            # Philadelphia
            _candidate(3, category="music", location="39.9526, -75.1652"),
        ])
        return repository

    @pytest.mark.asyncio
    async def test_near(self, repository):
        seeded = await self._seed(repository)
        events = await seeded.find_events(near=GeoPoint.from_lat_lng(40.67, -73.965), radius_km=10)
        assert {e.source_url[-1] for e in events} == {"1", "2"}

    @pytest.mark.asyncio
    async def test_category(self, repository):
        seeded = await self._seed(repository)
        events = await seeded.find_events(category=Category.MUSIC)
        assert {e.source_url[-1] for e in events} == {"1", "3"}

    @pytest.mark.asyncio
    async def test_date_range(self, repository):
        seeded = await self._seed(repository)
        events = await seeded.find_events(
            start=datetime(2026, 7, 5, tzinfo=timezone.utc),
            end=datetime(2026, 7, 31, tzinfo=timezone.utc),
        )
        assert [e.source_url[-1] for e in events] == ["2"]

    @pytest.mark.asyncio
    async def test_naive_bounds_are_utc(self, repository):
        seeded = await self._seed(repository)
        events = await seeded.find_events(start=datetime(2026, 7, 5), end=datetime(2026, 7, 31))
        assert [e.source_url[-1] for e in events] == ["2"]

    @pytest.mark.asyncio
    async def test_no_filters(self, repository):
        seeded = await self._seed(repository)
        assert len(await seeded.find_events()) == 3


class TestFeedback:
    """Tests for add_feedback."""

    @pytest.mark.asyncio
    async def test_feedback_appended(self, repository, store):
        persisted = (await repository.persist_new([_candidate(1)])).persisted[0]

        updated = await repository.add_feedback(persisted.id, "user-1", "attended")
        await repository.add_feedback(persisted.id, "user-2", "not_interested")

        stored = await store.get(persisted.id)
        assert [f.status for f in stored.feedback] == ["attended", "not_interested"]
        assert updated.title == persisted.title
        assert stored.source_url == persisted.source_url

    @pytest.mark.asyncio
    async def test_unknown_event(self, repository):
        with pytest.raises(EventNotFound):
            await repository.add_feedback("missing", "user-1", "attended")


class TestInMemorySubscriberStore:
    """Tests for the subscriber store."""

    @pytest.mark.asyncio
    async def test_lists_copy(self, nearby_user, faraway_user):
        store = InMemorySubscriberStore([nearby_user])
        store.add(faraway_user)

        users = await store.list_subscribers()
        users.clear()

        assert len(await store.list_subscribers()) == 2

    @pytest.mark.asyncio
    async def test_store_replace_unknown(self, store, sample_event: Event):
        with pytest.raises(EventNotFound):
            await store.replace(sample_event)
