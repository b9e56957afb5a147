"""
Data Contracts for the Match Scoring Engine

Defines Pydantic models for the engine inputs (transcript, programs,
preferences) and outputs (MatchResult and its explanation parts).
These contracts are the API boundary for the scoring engine.
"""

from typing import Dict, List, Optional, Set
from pydantic import BaseModel, Field, model_validator

from .constants import CourseLevel, MAX_GRADE, MIN_GRADE


# =============================================================================
# INPUT CONTRACTS
# =============================================================================

class CourseRecord(BaseModel):
    """
    Raw course row as supplied by the Profile Store.
    May be incomplete; the transcript normalizer drops malformed rows.
    """
    course_id: Optional[str] = None
    course_name: str = ""
    level: Optional[str] = None
    grade: Optional[int] = None


class TranscriptEntry(BaseModel):
    """Best recorded level and grade for one course."""
    level: CourseLevel
    grade: int = Field(ge=MIN_GRADE, le=MAX_GRADE)
    course_name: str = ""

    class Config:
        frozen = True


# course id -> best entry
Transcript = Dict[str, TranscriptEntry]


class Requirement(BaseModel):
    """
    One course requirement of a program.
    Requirements sharing an or_group_id form a disjunction.
    """
    required_course: str
    required_level: CourseLevel = CourseLevel.SL
    min_grade: int = Field(default=MIN_GRADE, ge=MIN_GRADE, le=MAX_GRADE)
    is_critical: bool = False
    or_group_id: Optional[str] = None
    course_name: str = ""
    # Source row could not be read; never satisfiable
    unresolvable: bool = False

    class Config:
        frozen = True


class Program(BaseModel):
    """
    Academic program as supplied by the Catalog Store.
    """
    id: str
    name: str = ""
    university_name: str = ""
    degree_type: str = ""
    min_aggregate_score: Optional[float] = None
    field_id: str
    country_id: str
    requirements: List[Requirement] = Field(default_factory=list)

    class Config:
        frozen = True


class StudentPreferences(BaseModel):
    """Student's aggregate score and stated preferences."""
    aggregate_score: Optional[float] = None
    preferred_field_ids: Set[str] = Field(default_factory=set)
    preferred_country_ids: Set[str] = Field(default_factory=set)


class FilterHints(BaseModel):
    """Coarse filters handed to the Catalog Store / Candidate Prefilter."""
    preferred_field_ids: Set[str] = Field(default_factory=set)
    preferred_country_ids: Set[str] = Field(default_factory=set)
    aggregate_score: Optional[float] = None
    points_margin: Optional[float] = None


# =============================================================================
# INTERMEDIATE DATA STRUCTURES
# =============================================================================

class RequirementOutcome(BaseModel):
    """
    Evaluation of one requirement unit: a standalone requirement or a
    whole OR-group.
    """
    courses: List[str]
    or_group_id: Optional[str] = None
    is_critical: bool = False
    satisfied: bool
    shortfall: float = Field(ge=0.0)
    matched_course: Optional[str] = None
    unresolvable: bool = False
    reason: str = ""


class RequirementEvaluation(BaseModel):
    """Result of evaluating a program's requirement list against a transcript."""
    satisfied_count: int = 0
    total_count: int = 0
    total_shortfall: float = 0.0
    critical_unmet: bool = False
    outcomes: List[RequirementOutcome] = Field(default_factory=list)

    @property
    def unmet(self) -> List[RequirementOutcome]:
        return [o for o in self.outcomes if not o.satisfied]

    @property
    def fully_satisfied(self) -> bool:
        return self.satisfied_count == self.total_count


# =============================================================================
# OUTPUT CONTRACTS
# =============================================================================

class AcademicMatch(BaseModel):
    """Academic sub-score with the inputs that produced it."""
    score: float = Field(ge=0.0, le=1.0)
    aggregate_ratio: float = Field(ge=0.0, le=1.0)
    requirement_score: float = Field(ge=0.0, le=1.0)
    capped: bool = False
    satisfied_count: int = 0
    total_count: int = 0
    total_shortfall: float = 0.0
    critical_unmet: bool = False
    outcomes: List[RequirementOutcome] = Field(default_factory=list)


class PreferenceMatch(BaseModel):
    """Location or field sub-score."""
    score: float = Field(ge=0.0, le=1.0)
    is_match: bool = False
    no_preferences: bool = False


class WeightVector(BaseModel):
    """Sub-score weights of a mode. Must sum to 1.0."""
    academic: float = Field(ge=0.0, le=1.0)
    location: float = Field(ge=0.0, le=1.0)
    field: float = Field(ge=0.0, le=1.0)

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _check_sum(self):
        total = self.academic + self.location + self.field
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"weights must sum to 1.0, got {total}")
        return self


class Adjustment(BaseModel):
    """Bounded delta applied on top of the weighted base score."""
    kind: str
    delta: float
    reason: str


class MatchAdjustments(BaseModel):
    """All adjustments applied to one match, kept for explainability."""
    base_score: float
    total_delta: float = 0.0
    final_score: float
    applied: List[Adjustment] = Field(default_factory=list)


class MatchResult(BaseModel):
    """
    Compatibility of one program with one student.
    Immutable once built; the unit stored in the match cache.
    """
    program_id: str
    mode: str
    overall_score: float = Field(ge=0.0, le=1.0)
    academic_match: AcademicMatch
    location_match: PreferenceMatch
    field_match: PreferenceMatch
    weights_used: WeightVector
    adjustments: MatchAdjustments

    class Config:
        frozen = True


class CacheStats(BaseModel):
    """Counters for the match cache, for monitoring."""
    hits: int = 0
    misses: int = 0
    computes: int = 0
    waits: int = 0
    direct_computes: int = 0
    degraded: int = 0
    invalidations: int = 0
