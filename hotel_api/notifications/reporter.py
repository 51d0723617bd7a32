"""Funnel for unexpected exceptions: log, fingerprint, notify."""

from __future__ import annotations

import asyncio
import traceback
from typing import Optional

from hotel_api.notifications.base import NotificationEvent
from hotel_api.notifications.dispatcher import NotificationDispatcher, NotificationOutcome
from hotel_api.notifications.error_cache import error_fingerprint
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="notifications/reporter")


def format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


class ErrorReporter:
    """Turns exceptions into NotificationEvents for the dispatcher."""

    def __init__(self, dispatcher: NotificationDispatcher) -> None:
        self.dispatcher = dispatcher
        self._background: set[asyncio.Task] = set()

    def build_event(self, exc: BaseException, context: str, *, critical: bool = False) -> NotificationEvent:
        message = str(exc) or type(exc).__name__
        stack = format_stack(exc)
        return NotificationEvent(
            message=message,
            context=context,
            critical=critical,
            stack=stack,
            fingerprint=error_fingerprint(message, context, stack),
        )

    async def report(
        self, exc: BaseException, context: str, *, critical: bool = False
    ) -> Optional[NotificationOutcome]:
        """Log `exc` and notify operators; returns None when reporting is off."""
        logger.error(f"[{context}] {type(exc).__name__}: {exc}")
        if not self.dispatcher.any_enabled:
            return None
        event = self.build_event(exc, context, critical=critical)
        return await self.dispatcher.notify(event)

    async def report_critical(self, exc: BaseException, context: str) -> Optional[NotificationOutcome]:
        return await self.report(exc, context, critical=True)

    async def report_warning(self, exc: BaseException, context: str) -> Optional[NotificationOutcome]:
        return await self.report(exc, context, critical=False)

    def report_in_background(self, exc: BaseException, context: str, *, critical: bool = False) -> Optional[asyncio.Task]:
        """Schedule report() without waiting for channel retries to finish."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error(f"[{context}] {type(exc).__name__}: {exc} (no event loop; notification skipped)")
            return None
        task = loop.create_task(self.report(exc, context, critical=critical))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for pending background reports (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
