"""
Process configuration.

Credentials and tuning knobs are read from the environment once at startup
and handed to each component's constructor. Channels are optional: a
channel whose credentials are incomplete is simply left unconfigured.
"""

import logging
import os
from typing import Mapping, Optional

import structlog
from pydantic import BaseModel, Field


class SmsSettings(BaseModel):
    """Twilio credentials."""

    account_sid: str
    auth_token: str
    from_number: str


class SmtpSettings(BaseModel):
    """SMTP server credentials."""

    host: str
    port: int = 587
    user: str
    password: str
    sender: Optional[str] = None

    @property
    def from_address(self) -> str:
        return self.sender or self.user

    @property
    def implicit_tls(self) -> bool:
        return self.port == 465


class Settings(BaseModel):
    """Everything the pipeline needs to run."""

    sms: Optional[SmsSettings] = None
    smtp: Optional[SmtpSettings] = None

    # Timeouts (seconds)
    request_timeout: float = Field(default=30.0, gt=0)
    render_timeout: float = Field(default=30.0, gt=0)
    job_timeout: float = Field(default=600.0, gt=0)
    notify_timeout: float = Field(default=15.0, gt=0)

    # Concurrency
    fetch_concurrency: int = Field(default=4, ge=1)
    notify_concurrency: int = Field(default=10, ge=1)

    # Retries and channel protection
    fetch_max_attempts: int = Field(default=3, ge=1)
    channel_failure_threshold: int = Field(default=5, ge=1)
    channel_recovery_timeout: float = Field(default=300.0, ge=0)

    schedule_interval_minutes: int = Field(default=60, ge=1)
    use_browser: bool = True
    chrome_path: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ

        sms = None
        if env.get("TWILIO_ACCOUNT_SID") and env.get("TWILIO_AUTH_TOKEN") and env.get("TWILIO_PHONE_NUMBER"):
            sms = SmsSettings(
                account_sid=env["TWILIO_ACCOUNT_SID"],
                auth_token=env["TWILIO_AUTH_TOKEN"],
                from_number=env["TWILIO_PHONE_NUMBER"],
            )

        smtp = None
        if env.get("SMTP_HOST") and env.get("SMTP_USER") and env.get("SMTP_PASS"):
            smtp = SmtpSettings(
                host=env["SMTP_HOST"],
                port=int(env.get("SMTP_PORT") or 587),
                user=env["SMTP_USER"],
                password=env["SMTP_PASS"],
                sender=env.get("SMTP_FROM") or None,
            )

        overrides = {
            key: env[f"EVENT_ALERTS_{key.upper()}"]
            for key in (
                "request_timeout",
                "render_timeout",
                "job_timeout",
                "notify_timeout",
                "fetch_concurrency",
                "notify_concurrency",
                "fetch_max_attempts",
                "channel_failure_threshold",
                "channel_recovery_timeout",
                "schedule_interval_minutes",
                "use_browser",
            )
            if env.get(f"EVENT_ALERTS_{key.upper()}")
        }

        return cls(
            sms=sms,
            smtp=smtp,
            chrome_path=env.get("CHROME_PATH") or None,
            log_level=env.get("LOG_LEVEL", "INFO"),
            **overrides,
        )


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog for the process."""
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
