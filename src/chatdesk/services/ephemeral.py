"""Expiring key-value storage for short-lived secrets and counters.

Used for registration verification codes and login throttling. When
``REDIS_URL`` is configured the values live in Redis and are shared by every
instance; otherwise they live in this process only, so a code issued by one
instance cannot be redeemed on another and a restart drops every pending code.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from threading import Lock
from typing import Any, Final

import redis

from chatdesk.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

VERIFICATION_PREFIX: Final[str] = "verify:"
LOGIN_ATTEMPT_PREFIX: Final[str] = "login:"

# Deletes only if the key still holds the value the caller checked, so a
# replacement written after the check is never consumed.
_TAKE_SCRIPT: Final[str] = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    redis.call('DEL', KEYS[1])
    return 1
end
return 0
"""

# Minimum clock seconds between sweeps of expired in-memory entries.
SWEEP_INTERVAL_SECONDS: Final[float] = 60.0


class ExpiringStore:
    """Key-value store whose entries disappear after a time-to-live."""

    def __init__(self, redis_url: str | None = None, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._redis = None
        self._values: dict[str, tuple[Any, float]] = {}
        self._lock = Lock()
        self._next_sweep = 0.0
        if redis_url:
            try:
                self._redis = redis.from_url(redis_url)  # type: ignore[no-untyped-call]
            except Exception:  # pragma: no cover - redis optional
                logger.warning("Could not configure Redis at %s; using process memory", redis_url)
                self._redis = None

    @property
    def shared(self) -> bool:
        """Return True when values are visible to every app instance."""
        return self._redis is not None

    def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``, replacing any previous value."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if self._redis is not None:
            try:
                self._redis.set(key, json.dumps(value), ex=int(ttl_seconds))
                return
            except redis.RedisError:  # pragma: no cover - redis optional
                logger.warning("Redis unavailable; falling back to process memory")
                self._redis = None

        with self._lock:
            self._sweep()
            self._values[key] = (value, self._clock() + ttl_seconds)

    def get(self, key: str) -> Any | None:
        """Return the live value for ``key`` without consuming it."""
        if self._redis is not None:
            try:
                raw = self._redis.get(key)
                return json.loads(raw) if raw is not None else None
            except redis.RedisError:  # pragma: no cover - redis optional
                self._redis = None

        with self._lock:
            entry = self._live_entry(key)
            return entry[0] if entry else None

    def take_if_valid(self, key: str, predicate: Callable[[Any], bool]) -> Any | None:
        """Remove and return the value for ``key`` if it is live and accepted.

        A value rejected by ``predicate`` is left in place so the caller can
        retry until it expires.
        """
        if self._redis is not None:
            try:
                return self._take_redis(key, predicate)
            except redis.RedisError:  # pragma: no cover - redis optional
                self._redis = None

        with self._lock:
            entry = self._live_entry(key)
            if entry is None or not predicate(entry[0]):
                return None
            del self._values[key]
            return entry[0]

    def increment(self, key: str, ttl_seconds: int) -> int:
        """Increment a fixed-window counter and return the new count.

        The window starts with the first increment and lasts ``ttl_seconds``.
        """
        if self._redis is not None:
            try:
                pipe = self._redis.pipeline()
                pipe.incr(key)
                pipe.expire(key, int(ttl_seconds), nx=True)
                count, _ = pipe.execute()
                return int(count)
            except redis.RedisError:  # pragma: no cover - redis optional
                self._redis = None

        with self._lock:
            self._sweep()
            entry = self._live_entry(key)
            if entry is None:
                self._values[key] = (1, self._clock() + ttl_seconds)
                return 1
            count = int(entry[0]) + 1
            self._values[key] = (count, entry[1])
            return count

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        if self._redis is not None:
            try:
                self._redis.delete(key)
                return
            except redis.RedisError:  # pragma: no cover - redis optional
                self._redis = None
        with self._lock:
            self._values.pop(key, None)

    def _take_redis(self, key: str, predicate: Callable[[Any], bool]) -> Any | None:
        assert self._redis is not None
        raw = self._redis.get(key)
        if raw is None:
            return None
        value = json.loads(raw)
        if not predicate(value):
            return None
        if not self._redis.eval(_TAKE_SCRIPT, 1, key, raw):
            return None
        return value

    def _sweep(self) -> None:
        # Caller holds the lock.
        now = self._clock()
        if now < self._next_sweep:
            return
        self._next_sweep = now + SWEEP_INTERVAL_SECONDS
        expired = [key for key, (_, expires_at) in self._values.items() if expires_at <= now]
        for key in expired:
            del self._values[key]

    def _live_entry(self, key: str) -> tuple[Any, float] | None:
        # Caller holds the lock.
        entry = self._values.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            self._values.pop(key, None)
            return None
        return entry


_store: ExpiringStore | None = None


def get_expiring_store() -> ExpiringStore:
    """Return the process-wide expiring store."""
    global _store
    if _store is None:
        _store = ExpiringStore(settings.redis_url)
    return _store
