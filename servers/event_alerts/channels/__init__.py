"""
Notification channels.

Each channel exposes:
- name: channel label used in logs and results
- configured: whether credentials were supplied at startup
- send(...): deliver one message, raising ChannelSendFailure on any error
"""

from .email import EmailChannel
from .sms import SmsChannel

__all__ = ["EmailChannel", "SmsChannel"]
