"""Error taxonomy for the scrape / persist / notify pipeline.

Only RepositoryUnavailable and JobDeadlineExceeded are allowed to escape a
pipeline run. Everything else is caught at the per-URL, per-candidate or
per-channel boundary and logged.
"""


class EventAlertsError(Exception):
    """Base class for pipeline errors."""


class FetchFailure(EventAlertsError):
    """Network or navigation error while fetching a single URL."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class RenderTimeout(FetchFailure):
    """Rendered extraction exceeded its per-page deadline."""

    def __init__(self, url: str, timeout: float):
        super().__init__(url, f"render timed out after {timeout:g}s")
        self.timeout = timeout


class RenderResourceUnavailable(EventAlertsError):
    """The browser could not be started or is not running."""


class NormalizationFailure(EventAlertsError):
    """A candidate could not be turned into a valid Event."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class DuplicateKeyError(EventAlertsError):
    """An event with the same source_url is already stored."""

    def __init__(self, source_url: str):
        super().__init__(f"Duplicate source_url: {source_url}")
        self.source_url = source_url


class PersistencePartialFailure(EventAlertsError):
    """Some events in a bulk insert failed for reasons other than duplication."""

    def __init__(self, errors: list[Exception]):
        super().__init__(f"{len(errors)} event(s) failed to insert")
        self.errors = errors


class RepositoryUnavailable(EventAlertsError):
    """The backing event store cannot be reached."""


class EventNotFound(EventAlertsError):
    """No stored event has the requested id."""

    def __init__(self, event_id: str):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class ChannelUnconfigured(EventAlertsError):
    """A notification channel has no credentials. Expected, not an error state."""

    def __init__(self, channel: str):
        super().__init__(f"Channel '{channel}' is not configured")
        self.channel = channel


class ChannelSendFailure(EventAlertsError):
    """A notification could not be delivered over a channel."""

    def __init__(self, channel: str, reason: str):
        super().__init__(f"{channel} send failed: {reason}")
        self.channel = channel
        self.reason = reason


class JobDeadlineExceeded(EventAlertsError):
    """The job timed out before any candidates were collected."""

    def __init__(self, timeout: float):
        super().__init__(f"Scrape job exceeded {timeout:g}s with no results")
        self.timeout = timeout
