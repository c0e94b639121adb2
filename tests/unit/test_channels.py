"""Tests for SMS and email channels."""

import smtplib
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from servers.event_alerts.channels import EmailChannel, SmsChannel
from servers.event_alerts.channels.sms import MAX_BODY_LENGTH, TWILIO_API_URL
from servers.event_alerts.config.settings import SmsSettings, SmtpSettings
from servers.event_alerts.errors import ChannelSendFailure, ChannelUnconfigured


@pytest.fixture
def sms_settings() -> SmsSettings:
    return SmsSettings(account_sid="AC123", auth_token="secret", from_number="+15550009999")


@pytest.fixture
def smtp_settings() -> SmtpSettings:
    return SmtpSettings(host="smtp.example.com", user="alerts@example.com", password="pw")


def _mock_client(response=None, side_effect=None) -> MagicMock:
    client = MagicMock()
    client.post = AsyncMock(return_value=response, side_effect=side_effect)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    return client


def _response(status_code: int, json_data=None) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=json_data if json_data is not None else {},
        request=httpx.Request("POST", TWILIO_API_URL),
    )


class TestSmsChannel:
    """Tests for SmsChannel."""

    def test_unconfigured(self):
        assert not SmsChannel(None).configured

    @pytest.mark.asyncio
    async def test_send_unconfigured(self):
        with pytest.raises(ChannelUnconfigured):
            await SmsChannel(None).send("+15550001111", "hi")

    @pytest.mark.asyncio
    async def test_send(self, sms_settings: SmsSettings):
        client = _mock_client(_response(201, {"sid": "SM1"}))

        with patch("httpx.AsyncClient", return_value=client):
            sid = await SmsChannel(sms_settings).send("+15550001111", "New event")

        assert sid == "SM1"
        url = client.post.call_args.args[0]
        kwargs = client.post.call_args.kwargs
        assert url == f"{TWILIO_API_URL}/Accounts/AC123/Messages.json"
        assert kwargs["auth"] == ("AC123", "secret")
        assert kwargs["data"] == {"To": "+15550001111", "From": "+15550009999", "Body": "New event"}

    @pytest.mark.asyncio
    async def test_long_body_truncated(self, sms_settings: SmsSettings):
        client = _mock_client(_response(201, {"sid": "SM2"}))

        with patch("httpx.AsyncClient", return_value=client):
            await SmsChannel(sms_settings).send("+15550001111", "x" * 5000)

        assert len(client.post.call_args.kwargs["data"]["Body"]) == MAX_BODY_LENGTH

    @pytest.mark.asyncio
    async def test_provider_error(self, sms_settings: SmsSettings):
        client = _mock_client(_response(400, {"message": "invalid number"}))

        with patch("httpx.AsyncClient", return_value=client):
            with pytest.raises(ChannelSendFailure) as exc_info:
                await SmsChannel(sms_settings).send("+1bad", "hi")

        assert exc_info.value.reason == "HTTP 400"

    @pytest.mark.asyncio
    async def test_network_error(self, sms_settings: SmsSettings):
        client = _mock_client(side_effect=httpx.ConnectTimeout("timed out"))

        with patch("httpx.AsyncClient", return_value=client):
            with pytest.raises(ChannelSendFailure):
                await SmsChannel(sms_settings).send("+15550001111", "hi")

    @pytest.mark.asyncio
    async def test_non_object_response(self, sms_settings: SmsSettings):
        client = _mock_client(_response(201, ["queued"]))

        with patch("httpx.AsyncClient", return_value=client):
            with pytest.raises(ChannelSendFailure) as exc_info:
                await SmsChannel(sms_settings).send("+15550001111", "hi")

        assert "Invalid provider response" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_missing_number(self, sms_settings: SmsSettings):
        with pytest.raises(ChannelSendFailure):
            await SmsChannel(sms_settings).send("", "hi")


class TestEmailChannel:
    """Tests for EmailChannel."""

    def test_build_message(self, smtp_settings: SmtpSettings):
        message = EmailChannel(smtp_settings).build_message(
            "alex@example.com", "New Event Alert: Jazz", "plain body", "<p>html body</p>"
        )

        assert message["From"] == "alerts@example.com"
        assert message["To"] == "alex@example.com"
        assert message["Subject"] == "New Event Alert: Jazz"
        assert message.is_multipart()
        assert message.get_body(("html",)).get_content().strip() == "<p>html body</p>"

    def test_sender_override(self, smtp_settings: SmtpSettings):
        settings = smtp_settings.model_copy(update={"sender": "Events <events@example.com>"})
        message = EmailChannel(settings).build_message("a@example.com", "s", "t", "h")
        assert message["From"] == "Events <events@example.com>"

    @pytest.mark.asyncio
    async def test_send_unconfigured(self):
        with pytest.raises(ChannelUnconfigured):
            await EmailChannel(None).send("a@example.com", "s", "t", "h")

    @pytest.mark.asyncio
    async def test_send_starttls(self, smtp_settings: SmtpSettings):
        smtp = MagicMock()
        smtp.__enter__.return_value = smtp

        with patch("smtplib.SMTP", return_value=smtp) as smtp_cls:
            await EmailChannel(smtp_settings).send("alex@example.com", "Subject", "text", "<p>html</p>")

        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=15.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("alerts@example.com", "pw")
        smtp.send_message.assert_called_once()

    @pytest.mark.asyncio
    async def test_send_implicit_tls(self, smtp_settings: SmtpSettings):
        settings = smtp_settings.model_copy(update={"port": 465})
        smtp = MagicMock()
        smtp.__enter__.return_value = smtp

        with patch("smtplib.SMTP_SSL", return_value=smtp) as smtp_cls:
            await EmailChannel(settings).send("alex@example.com", "Subject", "text", "<p>html</p>")

        smtp_cls.assert_called_once()
        smtp.starttls.assert_not_called()

    @pytest.mark.asyncio
    async def test_auth_failure(self, smtp_settings: SmtpSettings):
        smtp = MagicMock()
        smtp.__enter__.return_value = smtp
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

        with patch("smtplib.SMTP", return_value=smtp):
            with pytest.raises(ChannelSendFailure) as exc_info:
                await EmailChannel(smtp_settings).send("alex@example.com", "s", "t", "h")

        assert exc_info.value.channel == "email"

    @pytest.mark.asyncio
    async def test_connection_refused(self, smtp_settings: SmtpSettings):
        with patch("smtplib.SMTP", side_effect=ConnectionRefusedError()):
            with pytest.raises(ChannelSendFailure):
                await EmailChannel(smtp_settings).send("alex@example.com", "s", "t", "h")

    @pytest.mark.asyncio
    async def test_header_injection_rejected(self, smtp_settings: SmtpSettings):
        with patch("smtplib.SMTP") as smtp_cls:
            with pytest.raises(ChannelSendFailure):
                await EmailChannel(smtp_settings).send(
                    "a@b.com\r\nBcc: victim@example.com", "s", "t", "h"
                )

        smtp_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_ascii_credentials(self, smtp_settings: SmtpSettings):
        smtp = MagicMock()
        smtp.__enter__.return_value = smtp
        smtp.login.side_effect = UnicodeEncodeError("ascii", "pässword", 1, 2, "ordinal not in range(128)")

        with patch("smtplib.SMTP", return_value=smtp):
            with pytest.raises(ChannelSendFailure) as exc_info:
                await EmailChannel(smtp_settings).send("alex@example.com", "s", "t", "h")

        assert "UnicodeEncodeError" in exc_info.value.reason
