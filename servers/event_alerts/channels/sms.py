"""
SMS delivery via the Twilio REST API.

Cost: Twilio per-message pricing
Credentials: TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER
"""

from typing import Optional

import httpx
import structlog

from ..config.settings import SmsSettings
from ..errors import ChannelSendFailure, ChannelUnconfigured

logger = structlog.get_logger()


TWILIO_API_URL = "https://api.twilio.com/2010-04-01"

# Twilio rejects bodies over 1600 characters
MAX_BODY_LENGTH = 1600


class SmsChannel:
    """Send text messages through Twilio."""

    name = "sms"

    def __init__(self, settings: Optional[SmsSettings], timeout: float = 15.0):
        self.settings = settings
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return self.settings is not None

    async def send(self, to: str, body: str) -> str:
        """
        Send one SMS.

        Returns:
            Twilio message SID

        Raises:
            ChannelUnconfigured: if no credentials were supplied
            ChannelSendFailure: on network or provider errors
        """
        if self.settings is None:
            raise ChannelUnconfigured(self.name)
        if not to:
            raise ChannelSendFailure(self.name, "no phone number")

        url = f"{TWILIO_API_URL}/Accounts/{self.settings.account_sid}/Messages.json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    auth=(self.settings.account_sid, self.settings.auth_token),
                    data={
                        "To": to,
                        "From": self.settings.from_number,
                        "Body": body[:MAX_BODY_LENGTH],
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ChannelSendFailure(self.name, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ChannelSendFailure(self.name, f"Request failed: {e!r}") from e
        except ValueError as e:
            raise ChannelSendFailure(self.name, f"Invalid provider response: {e}") from e
        except Exception as e:
            raise ChannelSendFailure(self.name, f"{type(e).__name__}: {e}") from e

        if not isinstance(data, dict):
            raise ChannelSendFailure(self.name, "Invalid provider response: expected a JSON object")
        sid = data.get("sid", "")
        logger.info("sms_sent", to=to, sid=sid)
        return sid
