"""
Cache Store backends

Key/value stores with TTL used by the match cache. Values are strings
(JSON payloads). Every backend raises CacheStoreError when it cannot
serve a request; the match cache treats that as degraded mode.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

import redis

from .constants import MATCH_CACHE_OP_TIMEOUT_SECONDS
from .errors import CacheStoreError

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Shared key/value store with TTL and a set-if-absent primitive."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Value for key, or None if absent or expired."""

    @abstractmethod
    def set(self, key: str, value: str, ttl: float) -> None:
        """Store value, replacing any previous one, for ttl seconds."""

    @abstractmethod
    def add(self, key: str, value: str, ttl: float) -> bool:
        """Store value only if key is absent. True if stored."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    def compare_and_delete(self, key: str, expected: str) -> bool:
        """Remove key only if it still holds expected. True if removed."""

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix. Returns the count removed."""


class InMemoryCacheStore(CacheStore):
    """
    Process-local store, thread-safe.

    The clock is injectable so tests can expire entries without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> Optional[str]:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._live(key)

    def set(self, key: str, value: str, ttl: float) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + ttl)

    def add(self, key: str, value: str, ttl: float) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._data[key] = (value, self._clock() + ttl)
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def compare_and_delete(self, key: str, expected: str) -> bool:
        with self._lock:
            if self._live(key) != expected:
                return False
            del self._data[key]
            return True

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._data if k.startswith(prefix)]
            for key in doomed:
                del self._data[key]
            return len(doomed)


_GLOB_SPECIAL = "\\*?[]"


def escape_glob(text: str) -> str:
    """Escape text for literal use in a Redis MATCH pattern."""
    return "".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in text)


# Deletes KEYS[1] only while it still holds ARGV[1]
_COMPARE_AND_DELETE = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class RedisCacheStore(CacheStore):
    """
    Redis-backed store.

    Socket timeouts bound every operation; any Redis error surfaces as
    CacheStoreError.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        op_timeout: float = MATCH_CACHE_OP_TIMEOUT_SECONDS,
    ):
        if client is None:
            if not url:
                raise ValueError("RedisCacheStore needs a url or a client")
            client = redis.Redis.from_url(
                url,
                socket_timeout=op_timeout,
                socket_connect_timeout=op_timeout,
                decode_responses=True,
            )
        self._client = client

    @staticmethod
    def _ttl_ms(ttl: float) -> int:
        return max(1, int(ttl * 1000))

    def get(self, key: str) -> Optional[str]:
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise CacheStoreError(f"Redis GET failed: {exc}") from exc
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl: float) -> None:
        try:
            self._client.set(key, value, px=self._ttl_ms(ttl))
        except redis.RedisError as exc:
            raise CacheStoreError(f"Redis SET failed: {exc}") from exc

    def add(self, key: str, value: str, ttl: float) -> bool:
        try:
            return bool(self._client.set(key, value, px=self._ttl_ms(ttl), nx=True))
        except redis.RedisError as exc:
            raise CacheStoreError(f"Redis SET NX failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise CacheStoreError(f"Redis DEL failed: {exc}") from exc

    def compare_and_delete(self, key: str, expected: str) -> bool:
        try:
            return bool(self._client.eval(_COMPARE_AND_DELETE, 1, key, expected))
        except redis.RedisError as exc:
            raise CacheStoreError(f"Redis compare-and-delete failed: {exc}") from exc

    def delete_prefix(self, prefix: str) -> int:
        # SCAN, not KEYS, so a large keyspace does not block Redis
        deleted = 0
        batch = []
        try:
            for key in self._client.scan_iter(match=f"{escape_glob(prefix)}*", count=100):
                batch.append(key)
                if len(batch) >= 100:
                    deleted += self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += self._client.delete(*batch)
        except redis.RedisError as exc:
            raise CacheStoreError(f"Redis prefix delete failed: {exc}") from exc
        return deleted
