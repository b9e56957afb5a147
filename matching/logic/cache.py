"""
Match Cache

Memoizes ranked match sets keyed by (student id, mode, catalog version).

Per key: Absent -> Computing -> Cached -> Expired/Invalidated -> Computing.

- At most one compute runs per key. Inside a process, concurrent callers
  join the leader's in-flight compute. Across processes, the leader holds
  a short-lived claim key in the store (set-if-absent); other processes
  poll for the value.
- Waiters block for the fresh value up to wait_timeout, then compute
  directly without caching. A stale entry is never served while a
  recompute is in flight.
- Cache store failures fail open: compute directly, log as degraded,
  never raise to the caller.
- invalidate() and precompute() supersede a student's in-flight computes:
  those finish for their own callers but never write their result back.
- If a leader is cancelled, its waiters retry and one of them leads.
"""

import logging
import threading
import time
import uuid
from typing import Dict, List, Optional, Union
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError

from .cache_store import CacheStore
from .constants import (
    CACHE_KEY_PREFIX,
    CACHE_LOCK_PREFIX,
    MATCH_CACHE_POLL_INTERVAL_SECONDS,
    MATCH_CACHE_TTL_SECONDS,
    MATCH_CACHE_WAIT_TIMEOUT_SECONDS,
    MATCH_LOCK_TTL_SECONDS,
    UNVERSIONED_CACHE_TTL_SECONDS,
    UNVERSIONED_CATALOG,
    MatchMode,
)
from .contracts import CacheStats, MatchResult
from .engine import MatchEngine
from .errors import CacheStoreError, MatchCancelledError
from .modes import resolve_mode

logger = logging.getLogger(__name__)

_RESULTS_ADAPTER = TypeAdapter(List[MatchResult])


def _encode_id(student_id: str) -> str:
    # No ':' or glob characters survive, so one student's prefix never covers another's keys
    return quote(student_id, safe="")


def make_cache_key(student_id: str, mode: MatchMode, catalog_version: Optional[str]) -> str:
    """Cache key for a student's match set."""
    return f"{CACHE_KEY_PREFIX}:{_encode_id(student_id)}:{mode.value}:{catalog_version or UNVERSIONED_CATALOG}"


def student_key_prefix(student_id: str) -> str:
    return f"{CACHE_KEY_PREFIX}:{_encode_id(student_id)}:"


def lock_key_for(cache_key: str) -> str:
    return f"{CACHE_LOCK_PREFIX}:{cache_key}"


def serialize_results(results: List[MatchResult]) -> str:
    return _RESULTS_ADAPTER.dump_json(results).decode("utf-8")


def deserialize_results(payload: str) -> List[MatchResult]:
    return _RESULTS_ADAPTER.validate_json(payload)


class _Flight:
    """An in-process compute in progress for one key."""

    def __init__(self, student_id: str):
        self.student_id = student_id
        self.done = threading.Event()
        self.result: Optional[List[MatchResult]] = None
        self.error: Optional[BaseException] = None
        # Set by invalidate() or precompute(); the result is still returned but not cached
        self.stale = False


class MatchCache:
    """
    Cache-or-compute front of the match engine.

    Public operations: get_matches, invalidate, precompute.
    """

    def __init__(
        self,
        engine: MatchEngine,
        store: CacheStore,
        ttl: float = MATCH_CACHE_TTL_SECONDS,
        unversioned_ttl: float = UNVERSIONED_CACHE_TTL_SECONDS,
        lock_ttl: float = MATCH_LOCK_TTL_SECONDS,
        wait_timeout: float = MATCH_CACHE_WAIT_TIMEOUT_SECONDS,
        poll_interval: float = MATCH_CACHE_POLL_INTERVAL_SECONDS,
    ):
        self.engine = engine
        self.store = store
        self.ttl = ttl
        self.unversioned_ttl = unversioned_ttl
        self.lock_ttl = lock_ttl
        self.wait_timeout = wait_timeout
        self.poll_interval = poll_interval

        self._flights: Dict[str, _Flight] = {}
        self._flights_lock = threading.Lock()
        # Serializes the stale check + write of a leader against supersession
        self._write_lock = threading.Lock()
        self._stats = CacheStats()
        self._stats_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def get_matches(
        self,
        student_id: str,
        mode: Union[MatchMode, str, None] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[MatchResult]:
        """
        Ranked match set for a student, from cache or freshly computed.

        Raises:
            ProfileNotFoundError: if the student has no profile
            UnknownModeError: if mode is not a known mode
            MatchCancelledError: if the caller cancelled
        """
        match_mode = resolve_mode(mode)
        version = self.engine.catalog_version()
        key = make_cache_key(student_id, match_mode, version)

        cached = self._read(key)
        if cached is not None:
            self._bump("hits")
            logger.debug(f"Match cache hit: {key}")
            return cached

        self._bump("misses")
        logger.debug(f"Match cache miss: {key}")

        while True:
            with self._flights_lock:
                flight = self._flights.get(key)
                leader = flight is None
                if leader:
                    flight = _Flight(student_id)
                    self._flights[key] = flight

            if leader:
                return self._run_flight(
                    key, flight,
                    lambda: self._lead(key, version, student_id, match_mode, cancel_event, flight),
                )

            results = self._join(flight, student_id, match_mode, cancel_event)
            if results is not None:
                return results
            # The in-flight compute was cancelled or superseded; one waiter takes over
            cached = self._read(key)
            if cached is not None:
                return cached

    def invalidate(self, student_id: str) -> bool:
        """
        Drop every cached match set of a student, across modes and
        catalog versions. Call after the student's profile changes.

        Returns:
            False if the cache store could not be reached (entries then
            age out through their TTL)
        """
        self._bump("invalidations")
        self._supersede(student_id)

        try:
            deleted = self.store.delete_prefix(student_key_prefix(student_id))
            self.store.delete_prefix(lock_key_for(student_key_prefix(student_id)))
        except CacheStoreError as exc:
            self._degraded("invalidate", exc)
            return False

        logger.info(f"Match cache invalidated for student {student_id} ({deleted} entr{'y' if deleted == 1 else 'ies'})")
        return True

    def precompute(
        self,
        student_id: str,
        mode: Union[MatchMode, str, None] = None,
    ) -> List[MatchResult]:
        """
        Recompute a student's match set now and replace the cached entry,
        even if the old one has not expired. Computes already in flight
        for the student no longer write their results.

        Raises:
            ProfileNotFoundError: if the student has no profile
        """
        match_mode = resolve_mode(mode)
        version = self.engine.catalog_version()
        key = make_cache_key(student_id, match_mode, version)

        self._supersede(student_id)
        flight = _Flight(student_id)
        with self._flights_lock:
            self._flights[key] = flight

        def compute() -> List[MatchResult]:
            results = self._compute(student_id, match_mode, None)
            self._write_unless_stale(key, results, version, flight)
            return results

        results = self._run_flight(key, flight, compute)
        logger.info(f"Precomputed {len(results)} match(es) for student {student_id} (mode={match_mode.value})")
        return results

    def clear(self) -> bool:
        """Drop every cached match set. Admin use only."""
        try:
            deleted = self.store.delete_prefix(f"{CACHE_KEY_PREFIX}:")
        except CacheStoreError as exc:
            self._degraded("clear", exc)
            return False
        logger.info(f"Match cache cleared ({deleted} entries)")
        return True

    def stats(self) -> CacheStats:
        with self._stats_lock:
            return self._stats.model_copy()

    # -------------------------------------------------------------------------
    # Compute paths
    # -------------------------------------------------------------------------

    def _compute(
        self,
        student_id: str,
        mode: MatchMode,
        cancel_event: Optional[threading.Event],
    ) -> List[MatchResult]:
        self._bump("computes")
        return self.engine.compute_matches(student_id, mode, cancel_event)

    def _run_flight(self, key: str, flight: _Flight, work) -> List[MatchResult]:
        try:
            results = work()
            flight.result = results
            return results
        except BaseException as exc:
            flight.error = exc
            raise
        finally:
            with self._flights_lock:
                if self._flights.get(key) is flight:
                    del self._flights[key]
            flight.done.set()

    def _supersede(self, student_id: str) -> None:
        """Detach a student's in-flight computes and keep them from writing."""
        with self._write_lock, self._flights_lock:
            for key, flight in list(self._flights.items()):
                if flight.student_id == student_id:
                    flight.stale = True
                    del self._flights[key]

    def _write_unless_stale(
        self,
        key: str,
        results: List[MatchResult],
        version: Optional[str],
        flight: _Flight,
    ) -> None:
        with self._write_lock:
            if flight.stale:
                logger.info(f"Skipping cache write for {key}: superseded during compute")
                return
            self._write(key, results, version)

    def _lead(
        self,
        key: str,
        version: Optional[str],
        student_id: str,
        mode: MatchMode,
        cancel_event: Optional[threading.Event],
        flight: _Flight,
    ) -> List[MatchResult]:
        lock_key = lock_key_for(key)
        token = uuid.uuid4().hex
        claimed = self._claim(lock_key, token)

        if claimed is False:
            # Another process is computing this key
            results = self._poll(key, cancel_event)
            if results is not None:
                return results
            self._bump("direct_computes")
            logger.info(f"Timed out waiting for {key}; computing without cache")
            return self._compute(student_id, mode, cancel_event)

        try:
            if claimed:
                # The previous holder may have written the value just before releasing
                cached = self._read(key)
                if cached is not None:
                    return cached
            results = self._compute(student_id, mode, cancel_event)
            self._write_unless_stale(key, results, version, flight)
            return results
        finally:
            if claimed:
                self._release(lock_key, token)

    def _join(
        self,
        flight: _Flight,
        student_id: str,
        mode: MatchMode,
        cancel_event: Optional[threading.Event],
    ) -> Optional[List[MatchResult]]:
        """Leader's result, or None if the leader was cancelled or superseded."""
        self._bump("waits")
        deadline = time.monotonic() + self.wait_timeout

        while not flight.done.wait(self.poll_interval):
            if cancel_event is not None and cancel_event.is_set():
                raise MatchCancelledError("Match computation cancelled by caller")
            if time.monotonic() >= deadline:
                break

        if flight.done.is_set():
            if flight.stale:
                return None
            if flight.error is None and flight.result is not None:
                return flight.result
            if isinstance(flight.error, MatchCancelledError):
                return None
            if flight.error is not None:
                raise flight.error

        # Leader is still running past wait_timeout
        self._bump("direct_computes")
        logger.info(f"Computing matches for student {student_id} without waiting on the in-flight compute")
        return self._compute(student_id, mode, cancel_event)

    def _poll(
        self,
        key: str,
        cancel_event: Optional[threading.Event],
    ) -> Optional[List[MatchResult]]:
        self._bump("waits")
        deadline = time.monotonic() + self.wait_timeout
        while time.monotonic() < deadline:
            if cancel_event is not None and cancel_event.is_set():
                raise MatchCancelledError("Match computation cancelled by caller")
            time.sleep(self.poll_interval)
            results = self._read(key)
            if results is not None:
                return results
        return None

    # -------------------------------------------------------------------------
    # Store access (fail open)
    # -------------------------------------------------------------------------

    def _read(self, key: str) -> Optional[List[MatchResult]]:
        try:
            payload = self.store.get(key)
        except CacheStoreError as exc:
            self._degraded("read", exc)
            return None
        if payload is None:
            return None
        try:
            return deserialize_results(payload)
        except ValidationError:
            logger.warning(f"Discarding unreadable match cache entry {key}")
            return None

    def _write(self, key: str, results: List[MatchResult], version: Optional[str]) -> None:
        ttl = self.ttl if version else self.unversioned_ttl
        try:
            self.store.set(key, serialize_results(results), ttl)
        except CacheStoreError as exc:
            self._degraded("write", exc)

    def _claim(self, lock_key: str, token: str) -> Optional[bool]:
        """True if claimed, False if held elsewhere, None if the store is unreachable."""
        try:
            return self.store.add(lock_key, token, self.lock_ttl)
        except CacheStoreError as exc:
            self._degraded("claim", exc)
            return None

    def _release(self, lock_key: str, token: str) -> None:
        try:
            self.store.compare_and_delete(lock_key, token)
        except CacheStoreError as exc:
            # The claim expires on its own after lock_ttl
            self._degraded("release", exc)

    def _degraded(self, operation: str, exc: Exception) -> None:
        self._bump("degraded")
        logger.warning(f"Match cache degraded: {operation} failed ({exc}); serving direct computation")

    def _bump(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self._stats, counter, getattr(self._stats, counter) + 1)
