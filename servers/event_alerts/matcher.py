"""Decide which subscribers hear about an event."""

from typing import Iterable

from .geo import haversine_km
from .models import Event, Subscriber


def matches(user: Subscriber, event: Event) -> bool:
    """
    Whether an event falls inside a user's radius and categories.

    The radius is inclusive. An empty category set means every category.
    """
    prefs = user.preferences
    if haversine_km(user.location, event.location) > prefs.radius:
        return False
    if prefs.categories and event.category not in prefs.categories:
        return False
    return True


def match_users(event: Event, users: Iterable[Subscriber]) -> list[Subscriber]:
    """Users to notify about an event, in input order."""
    return [user for user in users if matches(user, event)]
