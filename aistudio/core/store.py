"""
Key-value store behind usage metering.

Two backends share one small interface:
- InMemoryStore: process-local dict with per-key expiry (default, tests)
- RedisStore: shared store when REDIS_URL is configured

Values are JSON-serializable. Counters use incr_by / incr_by_float so a
single increment is one operation on either backend.
"""

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis

logger = logging.getLogger("aistudio")


class KeyValueStore(Protocol):
    persistent: bool

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ...

    def incr_by(self, key: str, amount: int = 1, ttl_seconds: Optional[int] = None) -> int:
        ...

    def incr_by_float(self, key: str, amount: float, ttl_seconds: Optional[int] = None) -> float:
        ...

    def delete(self, key: str) -> None:
        ...

    def ping(self) -> bool:
        ...


class InMemoryStore:
    """Process-local store. Every operation holds the lock for its full read-modify-write."""

    persistent = False

    def __init__(self, time_fn: Callable[[], float] = time.time):
        self._data: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()
        self._time = time_fn

    def _live_value(self, key: str) -> Optional[Any]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._time():
            del self._data[key]
            return None
        return value

    def _expiry(self, ttl_seconds: Optional[int]) -> Optional[float]:
        return self._time() + ttl_seconds if ttl_seconds else None

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._live_value(key)

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        with self._lock:
            self._data[key] = (value, self._expiry(ttl_seconds))

    def incr_by(self, key: str, amount: int = 1, ttl_seconds: Optional[int] = None) -> int:
        with self._lock:
            current = self._live_value(key) or 0
            new_value = int(current) + amount
            existing = self._data.get(key)
            expires_at = existing[1] if existing and existing[1] is not None else self._expiry(ttl_seconds)
            self._data[key] = (new_value, expires_at)
            return new_value

    def incr_by_float(self, key: str, amount: float, ttl_seconds: Optional[int] = None) -> float:
        with self._lock:
            current = self._live_value(key) or 0.0
            new_value = float(current) + amount
            existing = self._data.get(key)
            expires_at = existing[1] if existing and existing[1] is not None else self._expiry(ttl_seconds)
            self._data[key] = (new_value, expires_at)
            return new_value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def ping(self) -> bool:
        return True


class RedisStore:
    """Redis-backed store. Plain values are JSON encoded; counters are native Redis numbers."""

    persistent = True

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[Any]:
        raw = self._client.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return raw

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        self._client.set(key, json.dumps(value), ex=ttl_seconds)

    def incr_by(self, key: str, amount: int = 1, ttl_seconds: Optional[int] = None) -> int:
        value = self._client.incrby(key, amount)
        if ttl_seconds and value == amount:
            self._client.expire(key, ttl_seconds)
        return int(value)

    def incr_by_float(self, key: str, amount: float, ttl_seconds: Optional[int] = None) -> float:
        value = float(self._client.incrbyfloat(key, amount))
        if ttl_seconds and self._client.ttl(key) < 0:
            self._client.expire(key, ttl_seconds)
        return value

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False


def build_store(redis_url: Optional[str] = None) -> KeyValueStore:
    """Use Redis when configured and reachable, else fall back to the in-process store."""
    if not redis_url:
        logger.info("store.backend", extra={"event_type": "store.memory"})
        return InMemoryStore()

    store = RedisStore.from_url(redis_url)
    if not store.ping():
        logger.warning("Redis unreachable, usage counters will not survive restarts", extra={"event_type": "store.fallback"})
        return InMemoryStore()
    logger.info("store.backend", extra={"event_type": "store.redis"})
    return store
