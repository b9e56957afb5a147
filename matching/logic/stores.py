"""
Profile and Catalog Store interfaces

The engine reads students and programs only through these classes.
In-memory implementations live here; the SQLAlchemy-backed ones are in
adapter.py.
"""

import hashlib
import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .candidate_generator import CandidatePrefilter
from .constants import PREFILTER_MIN_CATALOG
from .contracts import FilterHints, Program, StudentPreferences, Transcript
from .errors import ProfileNotFoundError
from .transcript import normalize_transcript

logger = logging.getLogger(__name__)


# =============================================================================
# PROFILE STORE
# =============================================================================

class ProfileStore(ABC):
    """Read-only access to student profiles."""

    @abstractmethod
    def load_transcript(self, student_id: str) -> Transcript:
        """Normalized transcript. Raises ProfileNotFoundError."""

    @abstractmethod
    def load_preferences(self, student_id: str) -> StudentPreferences:
        """Aggregate score and preferences. Raises ProfileNotFoundError."""


class InMemoryProfileStore(ProfileStore):
    """Profiles held in a dict; raw course rows are normalized on read."""

    def __init__(self):
        self._courses: Dict[str, List[Any]] = {}
        self._preferences: Dict[str, StudentPreferences] = {}
        self._lock = threading.Lock()

    def save_profile(
        self,
        student_id: str,
        courses: Iterable[Any],
        preferences: Optional[StudentPreferences] = None,
    ) -> None:
        with self._lock:
            self._courses[student_id] = list(courses)
            self._preferences[student_id] = preferences or StudentPreferences()

    def delete_profile(self, student_id: str) -> None:
        with self._lock:
            self._courses.pop(student_id, None)
            self._preferences.pop(student_id, None)

    def load_transcript(self, student_id: str) -> Transcript:
        with self._lock:
            if student_id not in self._courses:
                raise ProfileNotFoundError(student_id)
            rows = list(self._courses[student_id])
        return normalize_transcript(rows)

    def load_preferences(self, student_id: str) -> StudentPreferences:
        with self._lock:
            if student_id not in self._preferences:
                raise ProfileNotFoundError(student_id)
            return self._preferences[student_id].model_copy(deep=True)


# =============================================================================
# CATALOG STORE
# =============================================================================

class CatalogStore(ABC):
    """
    Read-only access to the program catalog.

    load_candidate_programs narrows through a CandidatePrefilter when
    prefiltering is enabled and the catalog is large enough. The index is
    rebuilt whenever the catalog version changes.
    """

    def __init__(
        self,
        prefilter_enabled: bool = True,
        prefilter_min_catalog: int = PREFILTER_MIN_CATALOG,
    ):
        self.prefilter_enabled = prefilter_enabled
        self.prefilter_min_catalog = prefilter_min_catalog
        self._prefilter: Optional[CandidatePrefilter] = None
        self._prefilter_version: Optional[str] = None
        self._prefilter_lock = threading.Lock()

    @abstractmethod
    def load_programs(self) -> List[Program]:
        """Every program in the catalog."""

    @abstractmethod
    def catalog_version(self) -> Optional[str]:
        """Content marker of the catalog, or None if unavailable."""

    def known_courses(self) -> Optional[Set[str]]:
        """Ids in the global course catalog, or None when not tracked."""
        return None

    def load_snapshot(self) -> Tuple[List[Program], Optional[str]]:
        """
        Programs together with the version they belong to.

        The version is None when it is unavailable or the catalog changed
        while the programs were being read.
        """
        before = self._safe_version()
        programs = self.load_programs()
        if before is None or self._safe_version() != before:
            return programs, None
        return programs, before

    def _safe_version(self) -> Optional[str]:
        try:
            return self.catalog_version()
        except Exception:
            logger.warning("Catalog version unavailable", exc_info=True)
            return None

    def load_candidate_programs(self, filter_hints: Optional[FilterHints] = None) -> List[Program]:
        programs, version = self.load_snapshot()
        if (
            filter_hints is None
            or not self.prefilter_enabled
            or len(programs) < self.prefilter_min_catalog
        ):
            return programs
        return self._get_prefilter(programs, version).filter_candidates(filter_hints)

    def _get_prefilter(self, programs: List[Program], version: Optional[str]) -> CandidatePrefilter:
        if version is None:
            # Unversioned snapshots are never cached
            return CandidatePrefilter(programs)
        with self._prefilter_lock:
            if self._prefilter is None or version != self._prefilter_version:
                self._prefilter = CandidatePrefilter(programs)
                self._prefilter_version = version
            return self._prefilter


def compute_catalog_hash(programs: Iterable[Program]) -> str:
    """Stable content hash of a program list."""
    payload = [p.model_dump(mode="json") for p in sorted(programs, key=lambda p: p.id)]
    digest = hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8"))
    return digest.hexdigest()[:16]


class InMemoryCatalogStore(CatalogStore):
    """Catalog held in memory; the version is a content hash."""

    def __init__(
        self,
        programs: Iterable[Program] = (),
        known_courses: Optional[Iterable[str]] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._lock = threading.Lock()
        self._programs: List[Program] = []
        self._version = ""
        self._known_courses = set(known_courses) if known_courses is not None else None
        self.set_programs(programs)

    def set_programs(self, programs: Iterable[Program]) -> None:
        """Replace the catalog; the version changes with the content."""
        ordered = sorted(programs, key=lambda p: p.id)
        with self._lock:
            self._programs = ordered
            self._version = compute_catalog_hash(ordered)

    def load_programs(self) -> List[Program]:
        with self._lock:
            return list(self._programs)

    def load_snapshot(self) -> Tuple[List[Program], Optional[str]]:
        with self._lock:
            return list(self._programs), self._version

    def catalog_version(self) -> Optional[str]:
        with self._lock:
            return self._version

    def known_courses(self) -> Optional[Set[str]]:
        return set(self._known_courses) if self._known_courses is not None else None
