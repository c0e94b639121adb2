"""
Command-line entry point for Local Event Alerts.

Run with:
    python -m servers.event_alerts run                      # one job, then exit
    python -m servers.event_alerts serve                    # hourly scheduler
    python -m servers.event_alerts run --config targets.json --subscribers users.json

Credentials are read from the environment (a .env file is loaded first).
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import structlog
from dotenv import load_dotenv

from .config.settings import Settings, configure_logging
from .config.targets import load_config
from .errors import JobDeadlineExceeded, RepositoryUnavailable
from .models import Subscriber
from .pipeline import EventPipeline
from .repository import InMemorySubscriberStore
from .scheduler import Scheduler

logger = structlog.get_logger()


def load_subscribers(path: Optional[str]) -> InMemorySubscriberStore:
    """Subscribers from a JSON list, or an empty store."""
    if not path:
        return InMemorySubscriberStore()
    records = json.loads(Path(path).read_text())
    return InMemorySubscriberStore(Subscriber.model_validate(r) for r in records)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="event-alerts",
        description="Scrape local event listings and alert matching subscribers",
    )
    parser.add_argument("command", choices=["run", "serve"], help="run once, or serve on a schedule")
    parser.add_argument("--config", help="JSON file with urls and selectors (default: built-in example)")
    parser.add_argument("--subscribers", help="JSON file with a list of subscribers")
    parser.add_argument("--no-browser", action="store_true", help="static extraction only")
    parser.add_argument("--json-logs", action="store_true", help="emit JSON log lines")
    return parser


async def _serve(scheduler: Scheduler) -> None:
    scheduler.start()
    try:
        await scheduler.trigger_now()
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()


async def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    load_dotenv()
    settings = Settings.from_env()
    if args.no_browser:
        settings = settings.model_copy(update={"use_browser": False})
    configure_logging(settings.log_level, json_output=args.json_logs)

    urls, selectors = load_config(args.config)
    pipeline = EventPipeline(settings, subscribers=load_subscribers(args.subscribers))

    if args.command == "serve":
        scheduler = Scheduler(pipeline, urls, selectors)
        try:
            await _serve(scheduler)
        except (KeyboardInterrupt, asyncio.CancelledError):
            logger.info("shutdown_requested")
        return 0

    try:
        result = await pipeline.run_scrape_job(urls, selectors)
    except (RepositoryUnavailable, JobDeadlineExceeded) as e:
        logger.error("scrape_job_failed", error=str(e))
        return 1

    print(json.dumps(
        {"eventsFound": result.events_found, "eventsPersisted": result.events_persisted},
        indent=2,
    ))
    for stat in result.stats:
        print(f"  {stat.url}: {stat.count} events ({stat.status}"
              f"{', ' + stat.strategy.value if stat.strategy else ''})")
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
