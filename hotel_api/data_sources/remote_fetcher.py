"""Bounded-timeout HTTP GET against the upstream catalog API."""
from __future__ import annotations

import asyncio
from typing import Any

import requests

from hotel_api.data_sources.base import (
    FetchHttpError,
    FetchNetworkError,
    FetchOk,
    FetchParseError,
    FetchResult,
    FetchTimeout,
)
from hotel_api.datasets import PayloadError, validate_payload
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="data_sources/remote_fetcher")

session = requests.Session()

DEFAULT_HEADERS = {"Accept": "application/json"}


def _get(url: str, timeout: float) -> Any:
    """Blocking GET using the module session (swapped out in tests)."""
    return session.get(url, headers=DEFAULT_HEADERS, timeout=timeout)


class RequestsDatasetFetcher:
    """
    Fetch datasets with `requests`, off the event loop.

    The blocking call runs in a worker thread; `requests` enforces the
    socket timeout and `asyncio.wait_for` bounds the whole round trip, so a
    hung upstream only delays the dataset being fetched.
    """

    async def fetch(self, key: str, url: str, *, timeout: float) -> FetchResult:
        """Fetch and validate `key`; every failure comes back as a typed result."""
        safe_url = mask_secret_url(url)
        try:
            resp = await asyncio.wait_for(asyncio.to_thread(_get, url, timeout), timeout=timeout)
        except (asyncio.TimeoutError, requests.exceptions.Timeout):
            logger.warning(f"Upstream timeout after {timeout}s for '{key}' ({safe_url})")
            return FetchTimeout(url=url, timeout=timeout)
        except requests.exceptions.RequestException as exc:
            logger.warning(f"Upstream network error for '{key}' ({safe_url}): {exc}")
            return FetchNetworkError(url=url, detail=str(exc))

        status = getattr(resp, "status_code", 0)
        if not 200 <= status < 300:
            logger.warning(f"Upstream returned HTTP {status} for '{key}' ({safe_url})")
            return FetchHttpError(url=url, status=status)

        try:
            payload = resp.json()
        except ValueError as exc:
            logger.warning(f"Upstream returned non-JSON body for '{key}' ({safe_url})")
            return FetchParseError(url=url, detail=str(exc))

        try:
            data = validate_payload(key, payload)
        except PayloadError as exc:
            logger.warning(f"Upstream payload rejected: {exc}")
            return FetchParseError(url=url, detail=str(exc))

        logger.debug(f"Fetched '{key}' from upstream ({safe_url})")
        return FetchOk(data=data)
