"""
Turn RawCandidates into validated Events.

Required: title, date, location (parseable to coordinates) and source_url.
Anything else falls back to a sensible default.

Location formats accepted:
- JSON array "[lng, lat]" (GeoJSON order)
- Free text containing a decimal pair "lat, lng", e.g.
  "Prospect Park, Brooklyn (40.6602, -73.9690)"
"""

import json
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin, urlparse

from dateutil import parser as date_parser
from pydantic import ValidationError

from .categories import resolve_category
from .errors import NormalizationFailure
from .models import Event, GeoPoint, RawCandidate


COORDINATE_PAIR = re.compile(r"(-?\d{1,3}\.\d+)\s*[,;]\s*(-?\d{1,3}\.\d+)")
PRICE_AMOUNT = re.compile(r"\d[\d.,]*")
# Only a trailing separator followed by one or two digits marks decimals
PRICE_DECIMALS = re.compile(r"[.,](\d{1,2})$")


def parse_date(text: str) -> datetime:
    """Parse a scraped date string. Naive results are treated as UTC."""
    if not text or not text.strip():
        raise NormalizationFailure("date", "missing")
    try:
        parsed = date_parser.parse(text, fuzzy=True)
    except (ValueError, TypeError, OverflowError) as e:
        raise NormalizationFailure("date", f"unparseable {text!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_location(text: str) -> GeoPoint:
    """Parse a location string into a GeoPoint."""
    if not text or not text.strip():
        raise NormalizationFailure("location", "missing")

    stripped = text.strip()
    try:
        if stripped.startswith("["):
            values = json.loads(stripped)
            if len(values) != 2:
                raise NormalizationFailure("location", f"expected 2 coordinates, got {len(values)}")
            return GeoPoint(coordinates=(float(values[0]), float(values[1])))

        match = COORDINATE_PAIR.search(stripped)
        if not match:
            raise NormalizationFailure("location", f"no coordinates in {text!r}")
        latitude, longitude = float(match.group(1)), float(match.group(2))
        return GeoPoint.from_lat_lng(latitude, longitude)
    except (ValueError, TypeError, ValidationError) as e:
        # json.JSONDecodeError and pydantic range errors both land here
        raise NormalizationFailure("location", str(e)) from e


def address_from_location(text: str) -> str:
    """Location text with any coordinate pair stripped out."""
    address = COORDINATE_PAIR.sub("", text or "")
    address = re.sub(r"\(\s*\)|\[\s*\]", "", address)
    return address.strip(" ,;-\n\t")


def parse_price(text: Optional[str]) -> float:
    """Parse a price from text. Free or unparseable prices are 0."""
    if not text:
        return 0.0
    if "free" in text.lower():
        return 0.0

    match = PRICE_AMOUNT.search(text)
    if not match:
        return 0.0

    amount = match.group().rstrip(".,")
    decimals = PRICE_DECIMALS.search(amount)
    if decimals:
        whole = re.sub(r"[.,]", "", amount[: decimals.start()])
        return float(f"{whole}.{decimals.group(1)}")
    return float(re.sub(r"[.,]", "", amount))


def resolve_source_url(link: str, page_url: str) -> str:
    """Absolute URL for an event link; relative links resolve against the page."""
    link = (link or "").strip()
    if not link:
        raise NormalizationFailure("source_url", "missing")
    if not link.startswith(("http://", "https://")):
        if not page_url:
            raise NormalizationFailure("source_url", f"relative link {link!r} without page URL")
        link = urljoin(page_url, link)
    return link


def _default_source(candidate: RawCandidate, source_url: str) -> str:
    if candidate.source:
        return candidate.source
    domain = urlparse(candidate.page_url or source_url).netloc
    return domain.replace("www.", "")


def normalize_candidate(candidate: RawCandidate) -> Event:
    """
    Validate a RawCandidate and build an Event.

    Raises:
        NormalizationFailure: if a required field is missing or unparseable
    """
    title = re.sub(r"\s+", " ", candidate.title).strip()
    if not title:
        raise NormalizationFailure("title", "missing")

    source_url = resolve_source_url(candidate.source_url, candidate.page_url)
    date = parse_date(candidate.date)
    location = parse_location(candidate.location)

    address = (
        candidate.address.strip()
        or address_from_location(candidate.location)
        or candidate.location.strip()
    )
    description = candidate.description.strip()

    try:
        return Event(
            title=title,
            description=description,
            date=date,
            location=location,
            address=address,
            category=resolve_category(candidate.category, title, description),
            source=_default_source(candidate, source_url),
            source_url=source_url,
            price=parse_price(candidate.price),
        )
    except ValidationError as e:
        raise NormalizationFailure("event", str(e)) from e
