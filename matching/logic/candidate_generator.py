"""
Candidate Generator

Narrows the program catalog to a candidate set before scoring, using
coarse filters: preferred fields, preferred countries and an aggregate
score floor. Applied only to bound compute on large catalogs; programs
outside the student's preferences still score (at a baseline), so an
empty narrowing falls back to the whole catalog.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set

from .constants import PREFILTER_POINTS_MARGIN
from .contracts import FilterHints, Program, StudentPreferences

logger = logging.getLogger(__name__)


class CandidatePrefilter:
    """
    In-memory index of programs by field and country.

    Build it once per catalog version and reuse it across requests.
    """

    def __init__(self, programs: Iterable[Program] = ()):
        self._programs: Dict[str, Program] = {}
        self._by_field: Dict[str, Set[str]] = {}
        self._by_country: Dict[str, Set[str]] = {}
        self.rebuild(programs)

    def rebuild(self, programs: Iterable[Program]) -> None:
        """Replace the index contents."""
        self._programs = {}
        self._by_field = {}
        self._by_country = {}
        for program in programs:
            self._programs[program.id] = program
            self._by_field.setdefault(program.field_id, set()).add(program.id)
            self._by_country.setdefault(program.country_id, set()).add(program.id)

    @property
    def size(self) -> int:
        return len(self._programs)

    def filter_by_field(self, field_ids: Set[str]) -> Set[str]:
        ids: Set[str] = set()
        for field_id in field_ids:
            ids |= self._by_field.get(field_id, set())
        return ids

    def filter_by_country(self, country_ids: Set[str]) -> Set[str]:
        ids: Set[str] = set()
        for country_id in country_ids:
            ids |= self._by_country.get(country_id, set())
        return ids

    def filter_by_points(self, aggregate_score: float, margin: float) -> Set[str]:
        """Programs whose minimum is at most aggregate_score + margin, or unset."""
        return {
            pid for pid, p in self._programs.items()
            if p.min_aggregate_score is None or p.min_aggregate_score <= aggregate_score + margin
        }

    def filter_candidates(self, hints: FilterHints) -> List[Program]:
        """
        Intersect every filter the hints enable.

        Returns:
            Matching programs ordered by id, or the whole catalog if the
            intersection is empty
        """
        candidate_ids = set(self._programs)

        if hints.preferred_field_ids:
            candidate_ids &= self.filter_by_field(hints.preferred_field_ids)
        if hints.preferred_country_ids:
            candidate_ids &= self.filter_by_country(hints.preferred_country_ids)
        if hints.aggregate_score is not None:
            margin = hints.points_margin if hints.points_margin is not None else PREFILTER_POINTS_MARGIN
            candidate_ids &= self.filter_by_points(hints.aggregate_score, margin)

        if not candidate_ids:
            logger.info("Prefilter left no candidates; falling back to the full catalog")
            candidate_ids = set(self._programs)

        logger.info("Prefiltered %d -> %d programs", len(self._programs), len(candidate_ids))
        return [self._programs[pid] for pid in sorted(candidate_ids)]


def build_filter_hints(
    preferences: StudentPreferences,
    points_margin: Optional[float] = None
) -> FilterHints:
    """Filter hints derived from a student's preferences."""
    return FilterHints(
        preferred_field_ids=set(preferences.preferred_field_ids),
        preferred_country_ids=set(preferences.preferred_country_ids),
        aggregate_score=preferences.aggregate_score,
        points_margin=points_margin,
    )
