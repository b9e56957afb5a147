"""
Dimension Scorers

Sub-score calculators for the academic, location and field dimensions.
Each scorer produces a normalized score between 0.0 and 1.0.
All logic is deterministic - no hidden state.
"""

from typing import Optional, Set

from .constants import (
    AGGREGATE_WEIGHT,
    CRITICAL_UNMET_CEILING,
    FIELD_BASELINE,
    LOCATION_BASELINE,
    REQUIREMENTS_WEIGHT,
    SHORTFALL_CREDIT_MAX,
    SHORTFALL_SCALE,
    UNKNOWN_AGGREGATE_RATIO,
)
from .contracts import (
    AcademicMatch,
    PreferenceMatch,
    Program,
    RequirementEvaluation,
    RequirementOutcome,
    StudentPreferences,
)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def aggregate_ratio(
    student_aggregate: Optional[float],
    program_minimum: Optional[float]
) -> float:
    """
    Student aggregate over program minimum, clamped to [0, 1].
    1.0 when the program sets no minimum.
    """
    if not program_minimum:
        return 1.0
    if student_aggregate is None:
        return UNKNOWN_AGGREGATE_RATIO
    return _clamp(student_aggregate / program_minimum)


def unit_credit(outcome: RequirementOutcome) -> float:
    """Credit for one requirement unit: full when met, shortfall-scaled partial credit otherwise."""
    if outcome.satisfied:
        return 1.0
    return SHORTFALL_CREDIT_MAX * _clamp(1.0 - outcome.shortfall / SHORTFALL_SCALE)


def requirement_score(evaluation: RequirementEvaluation) -> float:
    """
    Mean unit credit across the program's requirement units.
    A program with no requirements scores 1.0.
    """
    if evaluation.total_count == 0:
        return 1.0
    return sum(unit_credit(o) for o in evaluation.outcomes) / evaluation.total_count


def score_academic(
    preferences: StudentPreferences,
    program: Program,
    evaluation: RequirementEvaluation
) -> AcademicMatch:
    """
    Score academic fit from the aggregate comparison and requirement
    satisfaction.

    An unmet critical requirement caps the score at
    CRITICAL_UNMET_CEILING regardless of everything else: the student is
    technically ineligible but the match is still shown with its reasons.
    """
    ratio = aggregate_ratio(preferences.aggregate_score, program.min_aggregate_score)
    req_score = _clamp(requirement_score(evaluation))

    score = _clamp(AGGREGATE_WEIGHT * ratio + REQUIREMENTS_WEIGHT * req_score)

    capped = False
    if evaluation.critical_unmet and score > CRITICAL_UNMET_CEILING:
        score = CRITICAL_UNMET_CEILING
        capped = True

    return AcademicMatch(
        score=score,
        aggregate_ratio=ratio,
        requirement_score=req_score,
        capped=capped,
        satisfied_count=evaluation.satisfied_count,
        total_count=evaluation.total_count,
        total_shortfall=evaluation.total_shortfall,
        critical_unmet=evaluation.critical_unmet,
        outcomes=evaluation.outcomes,
    )


def _score_membership(preferred: Set[str], value: str, baseline: float) -> PreferenceMatch:
    # No stated preference is not held against the program
    if not preferred:
        return PreferenceMatch(score=1.0, is_match=False, no_preferences=True)
    if value in preferred:
        return PreferenceMatch(score=1.0, is_match=True, no_preferences=False)
    return PreferenceMatch(score=baseline, is_match=False, no_preferences=False)


def score_location(preferences: StudentPreferences, program: Program) -> PreferenceMatch:
    """Score the program's country against the student's preferred countries."""
    return _score_membership(preferences.preferred_country_ids, program.country_id, LOCATION_BASELINE)


def score_field(preferences: StudentPreferences, program: Program) -> PreferenceMatch:
    """Score the program's field of study against the student's preferred fields."""
    return _score_membership(preferences.preferred_field_ids, program.field_id, FIELD_BASELINE)
