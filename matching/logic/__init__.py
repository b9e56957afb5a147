"""
Match Logic Module

Provides the deterministic match scoring engine and its cache layer.
"""

from .contracts import (
    CourseRecord,
    TranscriptEntry,
    Transcript,
    Requirement,
    Program,
    StudentPreferences,
    FilterHints,
    RequirementOutcome,
    RequirementEvaluation,
    AcademicMatch,
    PreferenceMatch,
    WeightVector,
    Adjustment,
    MatchAdjustments,
    MatchResult,
    CacheStats,
)
from .constants import CourseLevel, MatchMode
from .errors import (
    MatchingError,
    ProfileNotFoundError,
    ProgramNotFoundError,
    UnknownModeError,
    MatchCancelledError,
    CacheStoreError,
)
from .transcript import normalize_transcript
from .requirements import evaluate_requirements
from .aggregator import aggregate_scores
from .builder import build_match_set
from .engine import MatchEngine
from .cache import MatchCache
from .cache_store import CacheStore, InMemoryCacheStore, RedisCacheStore
from .stores import ProfileStore, CatalogStore, InMemoryProfileStore, InMemoryCatalogStore

__all__ = [
    # Main entry points
    "MatchEngine",
    "MatchCache",
    "build_match_set",
    "aggregate_scores",
    "evaluate_requirements",
    "normalize_transcript",

    # Stores
    "ProfileStore",
    "CatalogStore",
    "InMemoryProfileStore",
    "InMemoryCatalogStore",
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",

    # Contracts
    "CourseRecord",
    "TranscriptEntry",
    "Transcript",
    "Requirement",
    "Program",
    "StudentPreferences",
    "FilterHints",
    "RequirementOutcome",
    "RequirementEvaluation",
    "AcademicMatch",
    "PreferenceMatch",
    "WeightVector",
    "Adjustment",
    "MatchAdjustments",
    "MatchResult",
    "CacheStats",

    # Enums
    "CourseLevel",
    "MatchMode",

    # Errors
    "MatchingError",
    "ProfileNotFoundError",
    "ProgramNotFoundError",
    "UnknownModeError",
    "MatchCancelledError",
    "CacheStoreError",
]
