"""
Category normalization for scraped events.

Scraped category labels are free text ("Live Music", "Food & Drink",
"Concerts"). They are mapped onto the fixed Category set in three steps:

1. Exact match on the enum value
2. Fuzzy match against enum values and display names (rapidfuzz)
3. Keyword scoring over title + description

Anything left over is Category.OTHER.
"""

import re

from rapidfuzz import fuzz, process

from .models import CATEGORIES, Category


# Minimum rapidfuzz score (0-100) for a label to count as a category
FUZZY_THRESHOLD = 80


def _label_choices() -> dict[str, Category]:
    choices: dict[str, Category] = {}
    for category, info in CATEGORIES.items():
        choices[category.value] = category
        choices[info["name"].lower()] = category
    return choices


LABEL_CHOICES = _label_choices()


def normalize_label(text: str) -> str:
    """Lowercase and collapse whitespace/punctuation in a category label."""
    if not text:
        return ""
    text = text.lower().strip()
    text = re.sub(r"[^\w&\s-]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def match_label(label: str, threshold: int = FUZZY_THRESHOLD) -> Category | None:
    """Map a scraped category label onto a Category, or None if nothing is close."""
    label = normalize_label(label)
    if not label:
        return None

    try:
        return Category(label)
    except ValueError:
        pass

    match = process.extractOne(
        label, list(LABEL_CHOICES), scorer=fuzz.WRatio, score_cutoff=threshold
    )
    if match is None:
        return None
    choice, _score, _index = match
    return LABEL_CHOICES[choice]


def classify_text(title: str, description: str = "") -> Category | None:
    """Keyword-based classification from the event's title and description."""
    combined = f"{title} {description}".lower()
    if not combined.strip():
        return None

    scores = {
        category: sum(1 for kw in info["keywords"] if kw in combined)
        for category, info in CATEGORIES.items()
    }
    best = max(scores, key=scores.get)
    return best if scores[best] > 0 else None


def resolve_category(label: str, title: str = "", description: str = "") -> Category:
    """Best-effort category for a candidate. Never fails."""
    return match_label(label) or classify_text(title, description) or Category.OTHER
