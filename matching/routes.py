"""
Match API Routes

Exposes the cached match engine via REST API.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool

from .logic.cache import MatchCache
from .logic.constants import DEFAULT_MODE
from .logic.errors import (
    MatchCancelledError,
    ProfileNotFoundError,
    ProgramNotFoundError,
    UnknownModeError,
)
from .logic.modes import all_weight_profiles, resolve_mode
from .logic.ranker import top_results
from .logic.runner import get_match_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["matches"])

DISCONNECT_POLL_SECONDS = 0.1


def _resolve_mode_or_400(mode: Optional[str]):
    try:
        return resolve_mode(mode)
    except UnknownModeError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def _watch_disconnect(request: Request, cancel_event: threading.Event) -> None:
    """Set cancel_event once the client goes away."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info(f"Client disconnected from {request.url.path}; cancelling match computation")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


# =============================================================================
# HEALTH / ADMIN
# =============================================================================

@router.get("/health", summary="Match engine health check")
def health_check():
    """Check if the match engine is operational."""
    return {"status": "ok", "engine": "matching", "version": "1.0.0"}


@router.get("/modes", summary="List match modes and their weights")
def list_modes():
    return {
        "default": DEFAULT_MODE.value,
        "modes": {
            mode.value: weights.model_dump()
            for mode, weights in all_weight_profiles().items()
        },
    }


@router.get("/cache/stats", summary="Match cache counters")
def cache_stats(cache: MatchCache = Depends(get_match_cache)):
    return cache.stats().model_dump()


# =============================================================================
# MATCHES
# =============================================================================

@router.get("/{student_id}", summary="Get ranked program matches for a student")
async def get_matches(
    request: Request,
    student_id: str,
    mode: Optional[str] = Query(default=None, description="BALANCED, ACADEMIC_FOCUSED or LOCATION_FOCUSED"),
    limit: Optional[int] = Query(default=None, ge=1, le=1000, description="Max matches to return"),
    cache: MatchCache = Depends(get_match_cache),
) -> Dict[str, Any]:
    """
    Ranked match set for a student, served from cache when fresh.

    **Response:**
    - `matches`: MatchResults, best first, each with its score breakdown
    - `total`: number of scored programs before `limit` is applied
    """
    match_mode = _resolve_mode_or_400(mode)
    cancel_event = threading.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        results = await run_in_threadpool(cache.get_matches, student_id, match_mode, cancel_event)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MatchCancelledError as e:
        # 499: client closed request
        raise HTTPException(status_code=499, detail=str(e))
    finally:
        watcher.cancel()

    total = len(results)
    if limit is not None:
        results = top_results(results, limit)

    return {
        "student_id": student_id,
        "mode": match_mode.value,
        "total": total,
        "matches": [r.model_dump(mode="json") for r in results],
    }


@router.get("/{student_id}/programs/{program_id}", summary="Score one program for a student")
def get_program_match(
    student_id: str,
    program_id: str,
    mode: Optional[str] = Query(default=None),
    cache: MatchCache = Depends(get_match_cache),
):
    match_mode = _resolve_mode_or_400(mode)
    try:
        result = cache.engine.score_program(student_id, program_id, match_mode)
    except (ProfileNotFoundError, ProgramNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result.model_dump(mode="json")


@router.post("/{student_id}/invalidate", summary="Drop a student's cached matches")
def invalidate_matches(student_id: str, cache: MatchCache = Depends(get_match_cache)):
    """Call after the student's transcript or preferences change."""
    invalidated = cache.invalidate(student_id)
    if not invalidated:
        logger.warning(f"⚠️ Cache invalidation for {student_id} could not reach the store")
    return {"student_id": student_id, "invalidated": invalidated}


@router.post("/{student_id}/precompute", summary="Recompute and cache a student's matches")
def precompute_matches(
    student_id: str,
    mode: Optional[str] = Query(default=None),
    cache: MatchCache = Depends(get_match_cache),
):
    match_mode = _resolve_mode_or_400(mode)
    try:
        results = cache.precompute(student_id, match_mode)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"student_id": student_id, "mode": match_mode.value, "total": len(results)}
