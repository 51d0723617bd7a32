"""Interfaces and result types shared by dataset data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union


@dataclass(frozen=True)
class FetchOk:
    """Upstream answered 2xx with a payload that matches the dataset schema."""
    data: Any


@dataclass(frozen=True)
class FetchTimeout:
    """The request did not complete within its timeout."""
    url: str
    timeout: float


@dataclass(frozen=True)
class FetchHttpError:
    """Upstream answered with a non-2xx status."""
    url: str
    status: int


@dataclass(frozen=True)
class FetchNetworkError:
    """Connection-level failure (DNS, refused, reset, TLS...)."""
    url: str
    detail: str


@dataclass(frozen=True)
class FetchParseError:
    """Upstream answered 2xx but the body was not usable JSON for the dataset."""
    url: str
    detail: str


FetchResult = Union[FetchOk, FetchTimeout, FetchHttpError, FetchNetworkError, FetchParseError]


class DatasetFetcher(Protocol):
    """Anything that can retrieve a dataset from the upstream origin."""

    async def fetch(self, key: str, url: str, *, timeout: float) -> FetchResult:
        """Fetch `key` from `url`; never raises for transport failures."""
        ...


class SnapshotStore(Protocol):
    """Durable, best-effort copy of the last known dataset payloads."""

    @property
    def read_only(self) -> bool:
        """True when writes are skipped entirely."""
        ...

    async def read(self, key: str) -> Optional[Any]:
        """Return the snapshot payload for `key`, or None if absent/unreadable."""
        ...

    async def write(self, key: str, data: Any) -> bool:
        """Persist `data` for `key`; returns False if skipped or failed."""
        ...
