"""
Multi-channel notification dispatch.

For each (user, event) pair the SMS and email channels run independently:
each is gated by the user's preference and by whether the channel was
configured at startup, and a failure on one never affects the other or the
caller. Every outcome collapses to a bool per channel.
"""

import asyncio
from typing import Optional, Union

import structlog
from jinja2 import TemplateError

from .channels import EmailChannel, SmsChannel
from .config.settings import Settings
from .errors import ChannelSendFailure
from .models import Event, NotificationResult, Subscriber
from .resilience.circuit_breaker import CircuitBreaker
from .template_engine import TemplateEngine

logger = structlog.get_logger()

Channel = Union[SmsChannel, EmailChannel]


class Notifier:
    """Deliver event alerts to subscribers over SMS and email."""

    def __init__(
        self,
        settings: Settings,
        sms: Optional[SmsChannel] = None,
        email: Optional[EmailChannel] = None,
        templates: Optional[TemplateEngine] = None,
    ):
        self.sms = sms or SmsChannel(settings.sms, timeout=settings.notify_timeout)
        self.email = email or EmailChannel(settings.smtp, timeout=settings.notify_timeout)
        self.templates = templates or TemplateEngine()
        self.breakers = {
            channel.name: CircuitBreaker(
                failure_threshold=settings.channel_failure_threshold,
                recovery_timeout=settings.channel_recovery_timeout,
                name=channel.name,
            )
            for channel in (self.sms, self.email)
        }

        for channel in (self.sms, self.email):
            if channel.configured:
                logger.info("channel_enabled", channel=channel.name)
            else:
                logger.info("channel_disabled", channel=channel.name, reason="no credentials")

    async def notify(self, user: Subscriber, event: Event) -> NotificationResult:
        """Send an event to a user on every channel they opted into.

        Never raises; a channel that is off, unconfigured or failing
        reports False.
        """
        prefs = user.preferences.notification_preferences
        sms_sent, email_sent = await asyncio.gather(
            self._attempt(self.sms, prefs.sms, user.phone, user, event),
            self._attempt(self.email, prefs.email, user.email, user, event),
        )
        return NotificationResult(sms_sent=sms_sent, email_sent=email_sent)

    async def _attempt(
        self,
        channel: Channel,
        opted_in: bool,
        recipient: Optional[str],
        user: Subscriber,
        event: Event,
    ) -> bool:
        if not opted_in:
            return False
        if not channel.configured:
            logger.debug("channel_unconfigured", channel=channel.name, user_id=user.id)
            return False
        if not recipient:
            logger.info("recipient_missing", channel=channel.name, user_id=user.id)
            return False

        try:
            message = self.render_message(channel.name, event)
        except TemplateError as e:
            logger.error("message_render_failed", channel=channel.name, error=str(e))
            return False

        breaker = self.breakers[channel.name]
        if not breaker.allow():
            logger.debug("channel_circuit_open", channel=channel.name, user_id=user.id)
            return False

        try:
            await channel.send(recipient, **message)
        except ChannelSendFailure as e:
            breaker.record_failure(e.reason)
            logger.error(
                "notification_failed",
                channel=channel.name,
                user_id=user.id,
                event_id=event.id,
                error=e.reason,
            )
            return False
        except Exception as e:
            # A trial send must always report back or the breaker stays half-open
            breaker.record_failure(str(e))
            logger.exception(
                "notification_failed",
                channel=channel.name,
                user_id=user.id,
                event_id=event.id,
                error=str(e),
            )
            return False

        breaker.record_success()
        return True

    def render_message(self, channel: str, event: Event) -> dict[str, str]:
        """Channel-specific message parts for an event."""
        if channel == self.sms.name:
            return {"body": self.templates.render_event("sms.txt", event)}
        return {
            "subject": f"New Event Alert: {event.title}",
            "text": self.templates.render_event("email.txt", event),
            "html": self.templates.render_event("email.html", event),
        }
