"""
Scrape target configuration.

A target file is JSON:

    {
      "urls": ["https://example.com/events"],
      "selectors": {"eventContainer": ".event-item", "title": ".event-title", ...}
    }

Selector keys may use either camelCase or snake_case names.
"""

import json
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import structlog
from pydantic import ValidationError

from ..models import SelectorConfig

log = structlog.get_logger(__name__)


def get_default_config() -> dict[str, Any]:
    """Return the default scrape targets for new installations."""
    return {
        "urls": [
            "https://example.com/events",
            "https://example.com/local-events",
        ],
        "selectors": {
            "eventContainer": ".event-item",
            "title": ".event-title",
            "description": ".event-description",
            "date": ".event-date",
            "location": ".event-location",
            "category": ".event-category",
            "link": ".event-link",
            "price": ".event-price",
        },
    }


def validate_config(config: dict[str, Any]) -> list[str]:
    """
    Validate a target config and return list of errors.

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []

    urls = config.get("urls")
    if not isinstance(urls, list) or not urls:
        errors.append("Missing required field: urls (non-empty list)")
    else:
        for url in urls:
            parsed = urlparse(url) if isinstance(url, str) else None
            if not parsed or parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append(f"Invalid URL: {url!r}")

    selectors = config.get("selectors")
    if not isinstance(selectors, dict):
        errors.append("Missing required field: selectors")
    else:
        try:
            SelectorConfig.model_validate(selectors)
        except ValidationError as e:
            for err in e.errors():
                field = ".".join(str(part) for part in err["loc"])
                errors.append(f"selectors.{field}: {err['msg']}")

    return errors


def load_config(path: str | Path | None = None) -> tuple[list[str], SelectorConfig]:
    """
    Load scrape targets from a JSON file, or the defaults when no path is given.

    Raises:
        ValueError: if the file content is invalid
    """
    if path is None:
        config = get_default_config()
    else:
        config = json.loads(Path(path).read_text())
        log.info("loaded_target_config", path=str(path))

    errors = validate_config(config)
    if errors:
        raise ValueError("Invalid target config: " + "; ".join(errors))

    return list(config["urls"]), SelectorConfig.model_validate(config["selectors"])
