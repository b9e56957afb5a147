"""
Engine Runner

Wires the match pipeline from settings:
1. Profile and Catalog Stores over the SQL database
2. MatchEngine over the stores
3. MatchCache over Redis (or in-process memory when REDIS_URL is unset)

This is a pure wiring layer - NO scoring, NO queries.
"""

import logging
import threading
from typing import Optional

from .adapter import SqlCatalogStore, SqlProfileStore
from .cache import MatchCache
from .cache_store import CacheStore, InMemoryCacheStore, RedisCacheStore
from .engine import MatchEngine

logger = logging.getLogger(__name__)

_match_cache: Optional[MatchCache] = None
_match_cache_lock = threading.Lock()


def build_cache_store(redis_url: Optional[str], op_timeout: float) -> CacheStore:
    if redis_url:
        logger.info("🧠 Match cache backed by Redis")
        return RedisCacheStore(url=redis_url, op_timeout=op_timeout)
    logger.warning("⚠️ REDIS_URL not set; match cache is per-process memory")
    return InMemoryCacheStore()


def build_match_cache(session_factory=None, settings=None) -> MatchCache:
    """
    Build a MatchCache from settings.

    Args:
        session_factory: SQLAlchemy session factory (defaults to db.SessionLocal)
        settings: Settings object (defaults to matching.config.settings)
    """
    if settings is None:
        from ..config import settings
    if session_factory is None:
        from db import SessionLocal
        session_factory = SessionLocal

    profile_store = SqlProfileStore(session_factory)
    catalog_store = SqlCatalogStore(
        session_factory,
        prefilter_enabled=settings.MATCH_PREFILTER_ENABLED,
        prefilter_min_catalog=settings.MATCH_PREFILTER_MIN_CATALOG,
    )
    engine = MatchEngine(
        profile_store,
        catalog_store,
        parallel_threshold=settings.MATCH_PARALLEL_THRESHOLD,
        max_workers=settings.MATCH_MAX_WORKERS,
    )
    store = build_cache_store(settings.REDIS_URL, settings.MATCH_CACHE_OP_TIMEOUT_SECONDS)

    logger.info(
        f"🚀 Match engine ready (ttl={settings.MATCH_CACHE_TTL_SECONDS}s, "
        f"workers={settings.MATCH_MAX_WORKERS}, prefilter={settings.MATCH_PREFILTER_ENABLED})"
    )
    return MatchCache(
        engine,
        store,
        ttl=settings.MATCH_CACHE_TTL_SECONDS,
        unversioned_ttl=settings.UNVERSIONED_CACHE_TTL_SECONDS,
        lock_ttl=settings.MATCH_LOCK_TTL_SECONDS,
        wait_timeout=settings.MATCH_CACHE_WAIT_TIMEOUT_SECONDS,
    )


def get_match_cache() -> MatchCache:
    """Process-wide MatchCache, built on first use. FastAPI dependency."""
    global _match_cache
    if _match_cache is None:
        with _match_cache_lock:
            if _match_cache is None:
                _match_cache = build_match_cache()
    return _match_cache
