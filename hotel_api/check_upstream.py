# hotel_api/check_upstream.py
"""Reachability probe for the upstream catalog API's /status endpoint."""

import asyncio
import time
from typing import Any, Callable, Dict, Optional

import requests

from hotel_api.config import Settings
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="check_upstream")

STATUS_TIMEOUT_SECONDS = 5.0


def _status_url(settings: Settings) -> Optional[str]:
    """Return `<API_BASE_URL>/status`, or None without a base URL."""
    if not settings.api_base_url:
        return None
    return f"{settings.api_base_url}/status"


def _probe(url: str, timeout: float) -> Dict[str, Any]:
    status: Dict[str, Any] = {
        "ok": False,
        "reachable": False,
        "status_code": None,
        "url": mask_secret_url(url),
        "error": None,
    }
    try:
        resp = requests.get(url, timeout=timeout)
    except Exception as e:
        status["error"] = str(e)
        return status

    status["reachable"] = True
    status["status_code"] = resp.status_code
    status["ok"] = 200 <= resp.status_code < 300
    if not status["ok"]:
        status["error"] = f"HTTP {resp.status_code}"
    return status


async def get_upstream_status(settings: Settings, timeout: float = STATUS_TIMEOUT_SECONDS) -> Dict[str, Any]:
    """
    Non-fatal probe of the upstream API.

    Returns a dict like:
    {
      "ok": bool,           # reachable and 2xx
      "reachable": bool,    # got any HTTP response
      "status_code": int | None,
      "url": "...",         # credentials masked
      "error": "...",       # present if something went wrong
    }
    """
    url = _status_url(settings)
    if url is None:
        return {"ok": False, "reachable": False, "status_code": None, "url": None,
                "error": "API_BASE_URL not configured"}
    return await asyncio.to_thread(_probe, url, timeout)


class UpstreamStatusChecker:
    """Caches the last probe result for `interval_seconds`."""

    def __init__(self, settings: Settings, interval_seconds: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.settings = settings
        self.interval = settings.status_check_interval_seconds if interval_seconds is None else interval_seconds
        self._clock = clock
        self._last: Optional[Dict[str, Any]] = None
        self._checked_at: float = 0.0

    async def check(self) -> Dict[str, Any]:
        now = self._clock()
        if self._last is not None and now - self._checked_at < self.interval:
            logger.debug(f"Using cached upstream status: {'UP' if self._last['ok'] else 'DOWN'}")
            return self._last

        status = await get_upstream_status(self.settings)
        self._last = status
        self._checked_at = self._clock()
        if status["ok"]:
            logger.info(f"Upstream API status: UP ({status['url']})")
        else:
            logger.warning(f"Upstream API status: DOWN ({status['url']}): {status['error']}")
        return status
