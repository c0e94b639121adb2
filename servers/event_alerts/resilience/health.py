"""Health tracking for scrape targets."""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from ..models import Strategy

logger = structlog.get_logger()


class TargetHealth:
    """Track the latest outcome for each scraped URL across runs.

    Records which strategy served each target and how many consecutive runs
    it has failed, so operators can spot dead listings or pages that only
    work without the browser.
    """

    def __init__(self):
        self.status: dict[str, dict[str, Any]] = {}

    def record_success(self, url: str, strategy: Strategy, count: int, fell_back: bool = False) -> None:
        """Record that a URL produced `count` candidates via `strategy`."""
        self.status[url] = {
            "healthy": True,
            "last_check": datetime.now(timezone.utc).isoformat(),
            "strategy": strategy.value,
            "fell_back": fell_back,
            "count": count,
            "consecutive_failures": 0,
            "last_error": None,
        }
        logger.debug("target_healthy", url=url, strategy=strategy.value, count=count)

    def record_failure(self, url: str, error: str) -> None:
        """Record that every strategy failed for a URL."""
        consecutive = self.status.get(url, {}).get("consecutive_failures", 0) + 1
        self.status[url] = {
            "healthy": False,
            "last_check": datetime.now(timezone.utc).isoformat(),
            "strategy": None,
            "fell_back": False,
            "count": 0,
            "consecutive_failures": consecutive,
            "last_error": error,
        }
        logger.warning(
            "target_unhealthy",
            url=url,
            consecutive_failures=consecutive,
            error=error,
        )

    def is_healthy(self, url: str) -> bool:
        """Unknown targets count as healthy."""
        return self.status.get(url, {}).get("healthy", True)

    def get_target_status(self, url: str) -> Optional[dict[str, Any]]:
        return self.status.get(url)

    def get_unhealthy_targets(self) -> list[str]:
        return [url for url, status in self.status.items() if not status["healthy"]]

    def get_status(self) -> dict[str, Any]:
        """Summary report across all tracked targets."""
        healthy = sum(1 for s in self.status.values() if s["healthy"])
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "summary": {
                "healthy": healthy,
                "unhealthy": len(self.status) - healthy,
                "total": len(self.status),
            },
            "targets": self.status,
        }
