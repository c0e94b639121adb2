"""Shared pytest fixtures for event alert tests."""

from datetime import datetime, timezone

import pytest

from servers.event_alerts.config.settings import Settings, SmsSettings, SmtpSettings
from servers.event_alerts.models import (
    Category,
    Event,
    GeoPoint,
    NotificationPreferences,
    RawCandidate,
    SelectorConfig,
    Subscriber,
    UserPreferences,
)

# Prospect Park, Brooklyn
PARK_LAT, PARK_LNG = 40.6602, -73.9690


@pytest.fixture
def selectors() -> SelectorConfig:
    """Provide the standard selector set."""
    return SelectorConfig(eventContainer=".event-item")


@pytest.fixture
def listing_html() -> str:
    """Provide a server-rendered listing page with two events."""
    return """
    <html><body>
      <div class="event-item">
        <h2 class="event-title">Jazz in the Park</h2>
        <p class="event-description">Live quartet on the bandshell lawn</p>
        <time class="event-date" datetime="2026-07-04T19:00:00Z">July 4, 7 PM</time>
        <span class="event-location" data-lat="40.6602" data-lng="-73.9690">Prospect Park</span>
        <span class="event-category">Live Music</span>
        <span class="event-price">$12</span>
        <a class="event-link" href="/events/jazz-in-the-park">Details</a>
      </div>
      <div class="event-item">
        <h2 class="event-title">Food Truck Rally</h2>
        <p class="event-description">Twenty trucks and a beer garden</p>
        <span class="event-date">2026-07-05 12:00</span>
        <span class="event-location" data-coordinates="[-73.9712, 40.6650]">Grand Army Plaza</span>
        <span class="event-category">Food &amp; Drink</span>
        <span class="event-price">Free</span>
        <a class="event-link" href="https://example.com/events/food-trucks">Details</a>
      </div>
    </body></html>
    """


@pytest.fixture
def raw_candidate() -> RawCandidate:
    """Provide a complete, valid candidate."""
    return RawCandidate(
        title="Jazz in the Park",
        description="Live quartet on the bandshell lawn",
        date="2026-07-04T19:00:00Z",
        location=f"Prospect Park ({PARK_LAT}, {PARK_LNG})",
        category="music",
        source_url="/events/jazz-in-the-park",
        page_url="https://example.com/events",
    )


@pytest.fixture
def sample_event() -> Event:
    """Provide a music event in Prospect Park."""
    return Event(
        title="Jazz in the Park",
        description="Live quartet on the bandshell lawn",
        date=datetime(2026, 7, 4, 19, 0, tzinfo=timezone.utc),
        location=GeoPoint.from_lat_lng(PARK_LAT, PARK_LNG),
        address="Prospect Park",
        category=Category.MUSIC,
        source="example.com",
        source_url="https://example.com/events/jazz-in-the-park",
        price=12.0,
    )


@pytest.fixture
def nearby_user() -> Subscriber:
    """Provide a subscriber about 1 km from the park, SMS and email on."""
    return Subscriber(
        id="user-near",
        name="Alex",
        phone="+15550001111",
        email="alex@example.com",
        location=GeoPoint.from_lat_lng(40.6700, -73.9650),
        preferences=UserPreferences(
            radius=5,
            notification_preferences=NotificationPreferences(sms=True, email=True),
        ),
    )


@pytest.fixture
def faraway_user() -> Subscriber:
    """Provide a subscriber in Philadelphia with default preferences."""
    return Subscriber(
        id="user-far",
        name="Sam",
        phone="+15550002222",
        location=GeoPoint.from_lat_lng(39.9526, -75.1652),
    )


@pytest.fixture
def settings() -> Settings:
    """Settings with no channels and fast timeouts."""
    return Settings(use_browser=False, job_timeout=5, request_timeout=5)


@pytest.fixture
def configured_settings() -> Settings:
    """Settings with both channels configured."""
    return Settings(
        use_browser=False,
        sms=SmsSettings(account_sid="AC123", auth_token="secret", from_number="+15550009999"),
        smtp=SmtpSettings(host="smtp.example.com", user="alerts@example.com", password="pw"),
        channel_failure_threshold=2,
    )
