"""
Match Engine

Main orchestrator that loads a student's profile and the candidate
programs, then runs the match set builder. This is the uncached compute
path; MatchCache wraps it.
"""

import logging
import threading
import time
from typing import List, Optional, Union

from .aggregator import aggregate_scores
from .builder import build_match_set
from .candidate_generator import build_filter_hints
from .constants import DEFAULT_MAX_WORKERS, PARALLEL_THRESHOLD, PREFILTER_POINTS_MARGIN, MatchMode
from .contracts import MatchResult
from .errors import ProgramNotFoundError
from .modes import resolve_mode
from .stores import CatalogStore, ProfileStore

logger = logging.getLogger(__name__)


class MatchEngine:
    """
    Computes ranked match sets for a student.

    Pipeline flow:
    1. Load transcript and preferences (Profile Store)
    2. Load candidate programs, prefiltered by preferences (Catalog Store)
    3. Score and rank every candidate (Match Set Builder)
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        catalog_store: CatalogStore,
        parallel_threshold: int = PARALLEL_THRESHOLD,
        max_workers: int = DEFAULT_MAX_WORKERS,
        points_margin: float = PREFILTER_POINTS_MARGIN,
    ):
        self.profile_store = profile_store
        self.catalog_store = catalog_store
        self.parallel_threshold = parallel_threshold
        self.max_workers = max_workers
        self.points_margin = points_margin

    def catalog_version(self) -> Optional[str]:
        """Current catalog version, or None when the store cannot say."""
        try:
            return self.catalog_store.catalog_version()
        except Exception:
            logger.warning("Catalog version unavailable", exc_info=True)
            return None

    def compute_matches(
        self,
        student_id: str,
        mode: Union[MatchMode, str, None] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[MatchResult]:
        """
        Compute the ranked match set for a student.

        Args:
            student_id: Student to match
            mode: Weighting mode
            cancel_event: Optional cancellation signal

        Returns:
            MatchResults ranked best first

        Raises:
            ProfileNotFoundError: if the student has no profile
            MatchCancelledError: if cancel_event is set mid-computation
        """
        match_mode = resolve_mode(mode)
        start_time = time.perf_counter()

        transcript = self.profile_store.load_transcript(student_id)
        preferences = self.profile_store.load_preferences(student_id)

        hints = build_filter_hints(preferences, self.points_margin)
        programs = self.catalog_store.load_candidate_programs(hints)
        known_courses = self.catalog_store.known_courses()

        results = build_match_set(
            transcript,
            preferences,
            programs,
            match_mode,
            known_courses=known_courses,
            cancel_event=cancel_event,
            parallel_threshold=self.parallel_threshold,
            max_workers=self.max_workers,
        )

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Matched student {student_id} against {len(programs)} program(s) "
            f"in {elapsed_ms:.1f}ms (mode={match_mode.value})"
        )
        return results

    def score_program(
        self,
        student_id: str,
        program_id: str,
        mode: Union[MatchMode, str, None] = None,
    ) -> MatchResult:
        """
        Score one program for a student, bypassing the prefilter.

        Useful for a program detail page the student navigated to directly.

        Raises:
            ProfileNotFoundError: if the student has no profile
            ProgramNotFoundError: if the program is not in the catalog
        """
        transcript = self.profile_store.load_transcript(student_id)
        preferences = self.profile_store.load_preferences(student_id)

        for program in self.catalog_store.load_programs():
            if program.id == program_id:
                return aggregate_scores(
                    transcript, preferences, program, mode, self.catalog_store.known_courses()
                )

        raise ProgramNotFoundError(program_id)
