"""Data sources the loader falls back across: upstream API and local snapshots."""

from .base import (
    DatasetFetcher,
    FetchHttpError,
    FetchNetworkError,
    FetchOk,
    FetchParseError,
    FetchResult,
    FetchTimeout,
    SnapshotStore,
)
from .remote_fetcher import RequestsDatasetFetcher
from .snapshot_store import JsonSnapshotStore

__all__ = [
    "DatasetFetcher",
    "FetchHttpError",
    "FetchNetworkError",
    "FetchOk",
    "FetchParseError",
    "FetchResult",
    "FetchTimeout",
    "JsonSnapshotStore",
    "RequestsDatasetFetcher",
    "SnapshotStore",
]
