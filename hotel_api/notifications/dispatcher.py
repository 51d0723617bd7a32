"""Fan-out of error alerts to notification channels, with retry and dedup."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from hotel_api.notifications.base import ChannelResult, NotificationChannel, NotificationEvent
from hotel_api.notifications.error_cache import ErrorDeduplicationCache
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="notifications/dispatcher")

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class NotificationOutcome:
    """Result of one notify() call."""
    suppressed: bool = False
    results: dict[str, ChannelResult] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results.values())


class NotificationDispatcher:
    """
    Send a NotificationEvent to every channel, at most once per fingerprint TTL.

    Each channel is attempted up to `max_retries + 1` times, waiting
    `backoff_base * 2**attempt` seconds between attempts. Channels run
    concurrently and a failing channel never affects its siblings.
    """

    def __init__(
        self,
        channels: Sequence[NotificationChannel],
        error_cache: ErrorDeduplicationCache,
        *,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.channels = list(channels)
        self.error_cache = error_cache
        self.max_retries = max(0, max_retries)
        self.backoff_base = backoff_base
        self._sleep = sleep

    @property
    def any_enabled(self) -> bool:
        return any(channel.enabled for channel in self.channels)

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (0-based)."""
        return self.backoff_base * (2 ** attempt)

    async def notify(self, event: NotificationEvent) -> NotificationOutcome:
        if self.error_cache.is_duplicate(event.fingerprint):
            entry = self.error_cache.note_repeat(event.fingerprint)
            logger.debug(
                f"Suppressing duplicate notification {event.fingerprint} ({event.context}), "
                f"seen {entry.count} times"
            )
            return NotificationOutcome(suppressed=True)

        self.error_cache.record(event.fingerprint)

        results = await asyncio.gather(*(self._send_with_retry(ch, event) for ch in self.channels))
        outcome = NotificationOutcome(results={r.channel: r for r in results})
        for result in results:
            if not result.success:
                logger.error(f"Failed to send {result.channel} notification: {result.reason}")
        return outcome

    async def _send_with_retry(self, channel: NotificationChannel, event: NotificationEvent) -> ChannelResult:
        skip = channel.skip_reason(event)
        if skip is not None:
            return ChannelResult(channel=channel.name, success=True, reason=skip)

        last_error: Exception | None = None
        for attempt in range(self.max_retries + 1):
            try:
                await channel.send(event)
                return ChannelResult(channel=channel.name, success=True, attempts=attempt + 1, sent=True)
            except Exception as exc:
                last_error = exc
                logger.warning(
                    f"{channel.name} attempt {attempt + 1}/{self.max_retries + 1} failed: {exc}"
                )
                if attempt < self.max_retries:
                    await self._sleep(self.backoff_delay(attempt))

        return ChannelResult(
            channel=channel.name,
            success=False,
            reason=str(last_error),
            attempts=self.max_retries + 1,
        )
