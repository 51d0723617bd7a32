"""Administrative cache control: flushing entries and installing bypass rules.

A bypass rule forces the data loader to skip the cache-read step for a key
(or for every key via the "ALL" sentinel). Rules expire on a wall-clock
deadline, on a usage budget, or both:

- active while `now < disabled_until` OR `disabled_count > 0`
- a check that is satisfied only by the count branch consumes one unit
- exhausted rules are dropped on the next check

Flush targets are checked against the dataset registry, so flushing an
already-empty key succeeds. Disable targets must be present in the cache.

The controller does not authenticate callers; the HTTP layer does.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from hotel_api.cache.store import CacheStore, utcnow
from hotel_api.datasets import ALL_TARGETS, DATASETS
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache/control")


class CacheAction(str, Enum):
    """Supported admin actions."""
    FLUSH = "flush"
    DISABLE = "disable"


class ControlError(str, Enum):
    """Machine-readable reasons for a rejected configure() call."""
    INVALID_ACTION = "invalid_action"
    INVALID_TARGETS = "invalid_targets"
    INVALID_RULE = "invalid_rule"
    MISSING_KEYS = "missing_keys"


@dataclass
class CacheControlResult:
    """Outcome of a configure() call."""
    success: bool
    error: Optional[ControlError] = None
    missing_keys: list[str] = field(default_factory=list)
    message: Optional[str] = None

    @classmethod
    def ok(cls) -> "CacheControlResult":
        return cls(success=True)

    @classmethod
    def fail(cls, error: ControlError, message: str, missing_keys: Sequence[str] = ()) -> "CacheControlResult":
        return cls(success=False, error=error, message=message, missing_keys=list(missing_keys))


@dataclass
class CacheControlRule:
    """Bypass condition for one key or for ALL."""
    disabled_until: Optional[datetime] = None
    disabled_count: Optional[int] = None

    def time_active(self, now: datetime) -> bool:
        return self.disabled_until is not None and now < self.disabled_until

    def count_active(self) -> bool:
        return self.disabled_count is not None and self.disabled_count > 0

    def is_active(self, now: datetime) -> bool:
        return self.time_active(now) or self.count_active()


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class CacheController:
    """Flush cache entries and manage bypass rules against an injected CacheStore."""

    def __init__(self, store: CacheStore, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self._clock = clock
        self._rules: dict[str, CacheControlRule] = {}

    def configure(
        self,
        action: Any,
        targets: Any,
        duration: Any = None,
        count: Any = None,
    ) -> CacheControlResult:
        """Validate and apply an admin action; nothing is applied on failure."""
        try:
            parsed_action = CacheAction(action)
        except ValueError:
            return CacheControlResult.fail(ControlError.INVALID_ACTION, "Invalid action")

        if (
            not isinstance(targets, (list, tuple))
            or not targets
            or not all(isinstance(t, str) and t for t in targets)
        ):
            return CacheControlResult.fail(ControlError.INVALID_TARGETS, "targets must be a non-empty list of keys")

        # flush targets must be known datasets; disable targets must be cached
        known = DATASETS if parsed_action is CacheAction.FLUSH else self.store
        missing = [key for key in dict.fromkeys(targets) if key != ALL_TARGETS and key not in known]
        if missing:
            logger.warning(f"Cache control rejected; unknown keys: {', '.join(missing)}")
            return CacheControlResult.fail(
                ControlError.MISSING_KEYS,
                f"Cache not configured for keys: {', '.join(missing)}",
                missing_keys=missing,
            )

        if parsed_action is CacheAction.FLUSH:
            self._flush(targets)
            return CacheControlResult.ok()

        if duration is not None and not _is_positive_number(duration):
            return CacheControlResult.fail(ControlError.INVALID_RULE, "duration must be a positive number of seconds")
        if count is not None and (not isinstance(count, int) or isinstance(count, bool) or count <= 0):
            return CacheControlResult.fail(ControlError.INVALID_RULE, "count must be a positive integer")
        if duration is None and count is None:
            return CacheControlResult.fail(ControlError.INVALID_RULE, "disable requires a duration or a count")

        self._disable(targets, duration, count)
        return CacheControlResult.ok()

    def _flush(self, targets: Sequence[str]) -> None:
        if ALL_TARGETS in targets:
            self.store.clear()
            logger.info("Flushed all cache entries")
            return
        for key in targets:
            self.store.delete(key)
        logger.info(f"Flushed cache entries: {', '.join(targets)}")

    def _disable(self, targets: Sequence[str], duration: Optional[float], count: Optional[int]) -> None:
        now = self._clock()
        for key in dict.fromkeys(targets):
            rule = CacheControlRule(
                disabled_until=now + timedelta(seconds=duration) if duration is not None else None,
                disabled_count=count,
            )
            self._rules[key] = rule
            logger.info(f"Cache disabled for '{key}' (duration={duration}, count={count})")

    def should_bypass(self, key: str) -> bool:
        """
        Return True if the cache read for `key` must be skipped.

        The key's own rule is checked before the ALL rule and at most one
        rule is consumed per call.
        """
        now = self._clock()
        for rule_key in (key, ALL_TARGETS):
            rule = self._rules.get(rule_key)
            if rule is None:
                continue
            if not rule.is_active(now):
                del self._rules[rule_key]
                continue
            if not rule.time_active(now):
                rule.disabled_count -= 1
                if rule.disabled_count <= 0:
                    del self._rules[rule_key]
            logger.debug(f"Cache bypass for '{key}' via rule '{rule_key}'")
            return True
        return False

    def active_rules(self) -> dict[str, CacheControlRule]:
        """Return the live rules, pruning expired ones."""
        now = self._clock()
        for rule_key in [k for k, r in self._rules.items() if not r.is_active(now)]:
            del self._rules[rule_key]
        return dict(self._rules)

    def status(self) -> dict[str, Any]:
        """Serializable snapshot of the cache and its bypass rules."""
        now = self._clock()
        return {
            "entries": {
                entry.key: {"timestamp": entry.timestamp.isoformat(), "age_seconds": round(entry.age_seconds(now), 3)}
                for entry in self.store
            },
            "rules": {
                key: {
                    "disabled_until": rule.disabled_until.isoformat() if rule.disabled_until else None,
                    "disabled_count": rule.disabled_count,
                }
                for key, rule in self.active_rules().items()
            },
        }
