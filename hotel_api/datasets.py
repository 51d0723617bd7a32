"""Dataset registry and payload schemas for the upstream catalog API.

Each dataset key names one fetchable resource. The key doubles as the
upstream path segment, the local snapshot filename and the public route.

Upstream responses may arrive wrapped in a `{"data": ...}` envelope or bare;
`validate_payload` unwraps and checks the shape before anything is cached or
written to disk. The original JSON value is returned untouched so snapshot
comparisons stay exact.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from pydantic import TypeAdapter, ValidationError

ALL_TARGETS = "ALL"


class PayloadError(ValueError):
    """Raised when a payload is empty or does not match its dataset schema."""


@dataclass(frozen=True)
class DatasetSpec:
    """Static description of one dataset."""
    key: str
    display_name: str
    schema: TypeAdapter

    @property
    def not_found_message(self) -> str:
        return f"{self.display_name} not found"


_OBJECT = TypeAdapter(Dict[str, Any])
_CATALOG = TypeAdapter(List[Dict[str, Any]])

DATASETS: dict[str, DatasetSpec] = {
    "config": DatasetSpec("config", "Config", _OBJECT),
    "rooms": DatasetSpec("rooms", "Rooms", _CATALOG),
    "tours": DatasetSpec("tours", "Tours", _CATALOG),
    "gastronomy": DatasetSpec("gastronomy", "Gastronomy", _CATALOG),
    "destinations": DatasetSpec("destinations", "Destinations", _CATALOG),
}

DATASET_KEYS: tuple[str, ...] = tuple(DATASETS)


def get_dataset(key: str) -> DatasetSpec:
    """Look up a dataset; raises KeyError for unknown keys."""
    return DATASETS[key]


def unwrap_payload(payload: Any) -> Any:
    """Return `payload["data"]` for an envelope, otherwise the payload itself."""
    if isinstance(payload, dict) and payload.get("data") is not None:
        return payload["data"]
    return payload


def validate_payload(key: str, payload: Any) -> Any:
    """Unwrap and validate a payload for `key`, returning the unwrapped value."""
    spec = get_dataset(key)
    data = unwrap_payload(payload)
    if data is None:
        raise PayloadError(f"{key}: empty payload")
    try:
        spec.schema.validate_python(data, strict=True)
    except ValidationError as exc:
        raise PayloadError(f"{key}: payload does not match schema ({exc.error_count()} errors)") from exc
    return data
