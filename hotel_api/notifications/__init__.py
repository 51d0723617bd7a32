"""Operational-error notifications: dedup cache, channels, dispatcher, reporter."""

from .base import ChannelError, ChannelResult, NotificationChannel, NotificationEvent
from .channels import MailgunChannel, TelegramChannel
from .dispatcher import NotificationDispatcher, NotificationOutcome
from .error_cache import ErrorDeduplicationCache, ErrorEntry, error_fingerprint
from .reporter import ErrorReporter

__all__ = [
    "ChannelError",
    "ChannelResult",
    "ErrorDeduplicationCache",
    "ErrorEntry",
    "ErrorReporter",
    "MailgunChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationOutcome",
    "TelegramChannel",
    "error_fingerprint",
]
