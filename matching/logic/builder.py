"""
Match Set Builder

Runs the aggregator over every candidate program and returns the ranked
set. Programs are scored independently, so large candidate sets are
spread over a thread pool; the set is ranked only once every program
has been scored.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional, Set, Union

from .aggregator import aggregate_scores
from .constants import DEFAULT_MAX_WORKERS, PARALLEL_THRESHOLD, MatchMode
from .contracts import MatchResult, Program, StudentPreferences, Transcript
from .errors import MatchCancelledError
from .modes import resolve_mode
from .ranker import rank_results

logger = logging.getLogger(__name__)


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise MatchCancelledError("Match computation cancelled by caller")


def _score_program(
    transcript: Transcript,
    preferences: StudentPreferences,
    program: Program,
    mode: MatchMode,
    known_courses: Optional[Set[str]],
    cancel_event: Optional[threading.Event],
) -> Optional[MatchResult]:
    _check_cancelled(cancel_event)
    try:
        return aggregate_scores(transcript, preferences, program, mode, known_courses)
    except Exception:
        # One bad program must not sink the whole match set
        logger.exception(f"Failed to score program {program.id}; excluding it from the match set")
        return None


def build_match_set(
    transcript: Transcript,
    preferences: StudentPreferences,
    programs: Iterable[Program],
    mode: Union[MatchMode, str, None] = None,
    known_courses: Optional[Set[str]] = None,
    cancel_event: Optional[threading.Event] = None,
    parallel_threshold: int = PARALLEL_THRESHOLD,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> List[MatchResult]:
    """
    Score every candidate program and rank the results.

    Args:
        transcript: Normalized transcript
        preferences: Student preferences
        programs: Candidate programs
        mode: Weighting mode
        known_courses: Optional global course catalog ids
        cancel_event: Set it to cancel; checked before each program
        parallel_threshold: Use the thread pool at or above this many programs
        max_workers: Thread pool size

    Returns:
        MatchResults sorted by score descending, program id ascending

    Raises:
        MatchCancelledError: if cancel_event was set before all programs were scored
        UnknownModeError: if mode is not a known mode
    """
    match_mode = resolve_mode(mode)
    candidates = list(programs)
    if not candidates:
        return []

    if len(candidates) >= parallel_threshold and max_workers > 1:
        scored = _score_parallel(
            transcript, preferences, candidates, match_mode, known_courses, cancel_event, max_workers
        )
    else:
        scored = [
            _score_program(transcript, preferences, p, match_mode, known_courses, cancel_event)
            for p in candidates
        ]

    results = [r for r in scored if r is not None]
    if len(results) < len(candidates):
        logger.warning(f"{len(candidates) - len(results)} program(s) could not be scored")

    return rank_results(results)


def _score_parallel(
    transcript: Transcript,
    preferences: StudentPreferences,
    candidates: List[Program],
    mode: MatchMode,
    known_courses: Optional[Set[str]],
    cancel_event: Optional[threading.Event],
    max_workers: int,
) -> List[Optional[MatchResult]]:
    scored: List[Optional[MatchResult]] = []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(
                _score_program, transcript, preferences, p, mode, known_courses, cancel_event
            )
            for p in candidates
        ]
        try:
            for future in as_completed(futures):
                scored.append(future.result())
        except MatchCancelledError:
            for future in futures:
                future.cancel()
            raise

    return scored
