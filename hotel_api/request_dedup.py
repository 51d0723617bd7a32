"""Collapse concurrent identical loads into a single in-flight task."""

import asyncio
from typing import Any, Awaitable, Callable, Dict

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="request_dedup")


class RequestDeduplicator:
    """
    Share one pending task per key between concurrent callers.

    The first caller for a key starts the task; later callers await the same
    task until it settles. The pending marker is dropped by a done-callback,
    so the next call after settlement starts fresh.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, asyncio.Task] = {}

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            logger.debug(f"Joining in-flight load for '{key}'")
        # shield: one cancelled caller must not cancel the load for the others
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    def in_flight(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)
