"""Runtime settings and scrape target configuration."""

from .settings import Settings, SmsSettings, SmtpSettings, configure_logging
from .targets import get_default_config, load_config, validate_config

__all__ = [
    "Settings",
    "SmsSettings",
    "SmtpSettings",
    "configure_logging",
    "get_default_config",
    "load_config",
    "validate_config",
]
