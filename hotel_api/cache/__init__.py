"""In-memory dataset cache and its administrative controls."""

from .control import CacheAction, CacheControlResult, CacheControlRule, CacheController, ControlError
from .store import CacheEntry, CacheStore

__all__ = [
    "CacheAction",
    "CacheControlResult",
    "CacheControlRule",
    "CacheController",
    "CacheEntry",
    "CacheStore",
    "ControlError",
]
