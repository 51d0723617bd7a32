"""JSON file snapshots of dataset payloads, one file per dataset key."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

from hotel_api.datasets import DATASETS, PayloadError, validate_payload
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/snapshot_store")


class JsonSnapshotStore:
    """
    Best-effort local snapshots under `data_dir/<key>.json`.

    Reads accept both `{"data": ...}` and bare payloads. Writes store the bare
    payload, create the directory on demand, and are skipped entirely when
    `read_only` is set (immutable serverless filesystems). Neither reads nor
    writes raise; failures are logged and reported as None/False.
    """

    def __init__(self, data_dir: Path | str, *, read_only: bool = False) -> None:
        self.data_dir = Path(data_dir)
        self._read_only = read_only
        self.writes = 0

    @property
    def read_only(self) -> bool:
        return self._read_only

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def _read_sync(self, key: str) -> Optional[Any]:
        if key not in DATASETS:
            logger.debug(f"No snapshot schema for unknown dataset '{key}'")
            return None
        path = self.path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning(f"Error reading snapshot {path}: {exc}")
            return None
        try:
            return validate_payload(key, json.loads(raw))
        except (ValueError, PayloadError) as exc:
            logger.warning(f"Ignoring unusable snapshot {path}: {exc}")
            return None

    def _write_sync(self, key: str, data: Any) -> bool:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            logger.warning(f"Error writing snapshot {path}: {exc}")
            return False
        self.writes += 1
        logger.info(f"Snapshot updated for '{key}' ({path})")
        return True

    async def read(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._read_sync, key)

    async def write(self, key: str, data: Any) -> bool:
        if self._read_only:
            logger.debug(f"Snapshot write skipped for '{key}' (read-only deployment)")
            return False
        return await asyncio.to_thread(self._write_sync, key, data)
