"""
Pydantic models for event data structures.

These models define the core data types used throughout the pipeline:
- SelectorConfig: CSS selectors used to pull events out of a page
- RawCandidate: Unvalidated event as extracted from a page
- Event: Normalized, persisted event
- Subscriber: User with location and notification preferences
- FetchStats / PersistResult / NotificationResult / ScrapeJobResult: run outcomes
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class Category(str, Enum):
    """Fixed set of event categories."""

    MUSIC = "music"
    FOOD = "food"
    SPORTS = "sports"
    ARTS = "arts"
    EDUCATION = "education"
    BUSINESS = "business"
    OTHER = "other"


class Strategy(str, Enum):
    """Extraction strategy that produced a candidate."""

    STATIC = "static"
    RENDERED = "rendered"


class SelectorConfig(BaseModel):
    """Named mapping from logical event field to a CSS selector."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    event_container: str = Field(alias="eventContainer")
    title: str = ".event-title"
    description: str = ".event-description"
    date: str = ".event-date"
    location: str = ".event-location"
    category: str = ".event-category"
    link: str = ".event-link"
    price: str = ".event-price"

    def field_selectors(self) -> dict[str, str]:
        """Selectors applied inside each event container."""
        return {
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "location": self.location,
            "category": self.category,
            "link": self.link,
            "price": self.price,
        }


class RawCandidate(BaseModel):
    """An event as scraped, before any parsing or validation."""

    title: str = ""
    description: str = ""
    date: str = ""
    location: str = ""
    address: str = ""
    category: str = ""
    source: str = ""
    source_url: str = ""
    price: str = ""

    page_url: str = ""
    strategy: Strategy = Strategy.STATIC


class GeoPoint(BaseModel):
    """Coordinate pair in (longitude, latitude) order."""

    model_config = ConfigDict(frozen=True)

    coordinates: tuple[float, float]

    @field_validator("coordinates")
    @classmethod
    def _check_ranges(cls, value: tuple[float, float]) -> tuple[float, float]:
        longitude, latitude = value
        if not -180.0 <= longitude <= 180.0:
            raise ValueError(f"longitude out of range: {longitude}")
        if not -90.0 <= latitude <= 90.0:
            raise ValueError(f"latitude out of range: {latitude}")
        return value

    @classmethod
    def from_lat_lng(cls, latitude: float, longitude: float) -> "GeoPoint":
        return cls(coordinates=(longitude, latitude))

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class FeedbackEntry(BaseModel):
    """Attendance or interest marker left by a user on an event."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    status: Literal["attended", "not_interested"]
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Event(BaseModel):
    """A normalized event. Base fields never change once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    title: str
    description: str = ""
    date: datetime

    location: GeoPoint
    address: str

    category: Category = Category.OTHER

    # Provenance
    source: str
    source_url: str

    price: float = Field(default=0.0, ge=0)

    feedback: tuple[FeedbackEntry, ...] = ()
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def with_feedback(self, entry: FeedbackEntry) -> "Event":
        """Return a copy with one more feedback entry appended."""
        return self.model_copy(update={"feedback": self.feedback + (entry,)})


class NotificationPreferences(BaseModel):
    """Per-channel opt-in flags."""

    sms: bool = True
    email: bool = False


class UserPreferences(BaseModel):
    """What a subscriber wants to hear about, and how."""

    categories: set[Category] = Field(default_factory=set)  # empty = all
    radius: float = Field(default=10.0, ge=1, le=100)  # kilometers
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )


class Subscriber(BaseModel):
    """A registered user. Read-only input to matching and notification."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    phone: str
    email: Optional[str] = None
    location: GeoPoint
    preferences: UserPreferences = Field(default_factory=UserPreferences)


class FetchStats(BaseModel):
    """Statistics from fetching a single URL."""

    url: str
    strategy: Optional[Strategy] = None
    count: int = 0
    status: str  # success, error, skipped
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None


class PersistResult(BaseModel):
    """Outcome of persisting a batch of candidates."""

    persisted: list[Event] = Field(default_factory=list)
    duplicates: int = 0
    rejected: int = 0
    failed: int = 0

    @computed_field
    @property
    def count(self) -> int:
        """Number of newly persisted events."""
        return len(self.persisted)


class NotificationResult(BaseModel):
    """Per-channel delivery outcome for one user and one event."""

    sms_sent: bool = False
    email_sent: bool = False


class ScrapeJobResult(BaseModel):
    """Result of one full pipeline run."""

    events_found: int
    events_persisted: int
    notifications_sent: int = 0
    stats: list[FetchStats] = Field(default_factory=list)
    timed_out: bool = False


# Display names and classification keywords per category
CATEGORIES = {
    Category.MUSIC: {
        "name": "Music & Concerts",
        "keywords": [
            "concert", "live music", "band", "dj", "jazz", "reggae",
            "rock", "hip hop", "acoustic", "symphony", "orchestra", "open mic"
        ]
    },
    Category.FOOD: {
        "name": "Food & Drink",
        "keywords": [
            "food", "tasting", "brunch", "dinner", "chef", "brewery",
            "wine", "beer", "cocktail", "restaurant", "pop-up"
        ]
    },
    Category.SPORTS: {
        "name": "Sports & Fitness",
        "keywords": [
            "game", "match", "race", "marathon", "5k", "yoga",
            "fitness", "tournament", "league", "cycling"
        ]
    },
    Category.ARTS: {
        "name": "Arts & Culture",
        "keywords": [
            "art", "gallery", "exhibition", "theater", "theatre", "play",
            "film", "movie", "comedy", "improv", "poetry", "museum"
        ]
    },
    Category.EDUCATION: {
        "name": "Education & Learning",
        "keywords": [
            "workshop", "class", "lecture", "seminar", "course",
            "talk", "training", "library", "tutorial"
        ]
    },
    Category.BUSINESS: {
        "name": "Business & Networking",
        "keywords": [
            "networking", "startup", "conference", "meetup", "pitch",
            "entrepreneur", "career", "job fair", "summit"
        ]
    },
    Category.OTHER: {
        "name": "Other",
        "keywords": []
    },
}
