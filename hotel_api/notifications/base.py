"""Event/result types and the base class shared by notification channels."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from hotel_api.cache.store import utcnow
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="notifications/base")

PREVIEW_CHARS = 500


class ChannelError(RuntimeError):
    """A single delivery attempt failed; the dispatcher may retry."""


@dataclass
class NotificationEvent:
    """One operational error to report."""
    message: str
    context: str
    fingerprint: str
    critical: bool = False
    stack: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def level(self) -> str:
        return "Critical" if self.critical else "Warning"


@dataclass
class ChannelResult:
    """Per-channel delivery outcome."""
    channel: str
    success: bool
    reason: Optional[str] = None
    attempts: int = 0
    sent: bool = False


class NotificationChannel:
    """
    Base class for outbound alert channels.

    Subclasses implement `configured`, `render` and `_deliver` (a blocking
    call that raises ChannelError on failure). `skip_reason` short-circuits
    delivery for disabled, non-critical, unconfigured and debug cases, all of
    which count as success.
    """

    name = "channel"

    def __init__(
        self,
        *,
        enabled: bool = True,
        critical_only: bool = False,
        debug: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self.enabled = enabled
        self.critical_only = critical_only
        self.debug = debug
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        raise NotImplementedError

    def render(self, event: NotificationEvent) -> str:
        raise NotImplementedError

    def _deliver(self, event: NotificationEvent) -> None:
        raise NotImplementedError

    def skip_reason(self, event: NotificationEvent) -> Optional[str]:
        """Return why `event` is not sent on this channel, or None to send it."""
        if not self.enabled:
            return "disabled"
        if self.critical_only and not event.critical:
            return "non-critical"
        if not self.configured:
            logger.debug(f"{self.name} not configured; skipping notification")
            return "not configured"
        if self.debug:
            logger.info(f"DEBUG MODE: skipping {self.name} send. Preview:\n{self.render(event)[:PREVIEW_CHARS]}")
            return "debug"
        return None

    async def send(self, event: NotificationEvent) -> None:
        """Deliver `event` without blocking the event loop."""
        await asyncio.to_thread(self._deliver, event)
