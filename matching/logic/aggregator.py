"""
Score Aggregator

Combines the academic, location and field sub-scores with a mode's
weights, then applies small bounded adjustments. Adjustments are
recorded next to the base score, never folded in silently.
"""

from typing import List, Optional, Set, Union

from .constants import (
    ADJUSTMENT_BAND,
    MULTIPLE_UNMET_MIN,
    MULTIPLE_UNMET_PENALTY,
    NEAR_MISS_BONUS,
    NEAR_MISS_TOLERANCE,
    MatchMode,
)
from .contracts import (
    Adjustment,
    MatchAdjustments,
    MatchResult,
    Program,
    RequirementEvaluation,
    StudentPreferences,
    Transcript,
    WeightVector,
)
from .dimension_scorers import score_academic, score_field, score_location
from .modes import get_weights, resolve_mode
from .requirements import evaluate_requirements


def compute_adjustments(evaluation: RequirementEvaluation) -> List[Adjustment]:
    """
    Adjustments earned by a requirement evaluation.

    - near_miss_bonus: every unmet unit is within NEAR_MISS_TOLERANCE
      and nothing critical is missing, to soften the cliff at a
      requirement boundary
    - multiple_unmet_penalty: MULTIPLE_UNMET_MIN or more units unmet
    """
    adjustments: List[Adjustment] = []
    unmet = evaluation.unmet

    if (
        unmet
        and not evaluation.critical_unmet
        and all(o.shortfall <= NEAR_MISS_TOLERANCE and not o.unresolvable for o in unmet)
    ):
        adjustments.append(Adjustment(
            kind="near_miss_bonus",
            delta=NEAR_MISS_BONUS,
            reason=f"{len(unmet)} requirement(s) missed by at most {NEAR_MISS_TOLERANCE:g} grade point(s)",
        ))

    if len(unmet) >= MULTIPLE_UNMET_MIN:
        adjustments.append(Adjustment(
            kind="multiple_unmet_penalty",
            delta=-MULTIPLE_UNMET_PENALTY,
            reason=f"{len(unmet)} of {evaluation.total_count} requirements unmet",
        ))

    return adjustments


def apply_adjustments(base_score: float, adjustments: List[Adjustment]) -> MatchAdjustments:
    """Apply adjustments with the total clamped to +/- ADJUSTMENT_BAND and the result to [0, 1]."""
    total = sum(a.delta for a in adjustments)
    total = max(-ADJUSTMENT_BAND, min(ADJUSTMENT_BAND, total))
    final = max(0.0, min(1.0, base_score + total))

    return MatchAdjustments(
        base_score=base_score,
        total_delta=total,
        final_score=final,
        applied=adjustments,
    )


def aggregate_scores(
    transcript: Transcript,
    preferences: StudentPreferences,
    program: Program,
    mode: Union[MatchMode, str, None] = None,
    known_courses: Optional[Set[str]] = None,
) -> MatchResult:
    """
    Compute all sub-scores for one program and combine them.

    Args:
        transcript: Normalized transcript
        preferences: Student's aggregate score and preferences
        program: Program to score
        mode: Weighting mode (defaults to BALANCED)
        known_courses: Optional global course catalog ids

    Returns:
        MatchResult with sub-scores, weights used and adjustments
    """
    match_mode = resolve_mode(mode)
    weights: WeightVector = get_weights(match_mode)

    evaluation = evaluate_requirements(program, transcript, known_courses)

    academic = score_academic(preferences, program, evaluation)
    location = score_location(preferences, program)
    field = score_field(preferences, program)

    # overall = wA * academic + wL * location + wF * field
    base_score = (
        weights.academic * academic.score
        + weights.location * location.score
        + weights.field * field.score
    )
    base_score = max(0.0, min(1.0, base_score))

    adjustments = apply_adjustments(base_score, compute_adjustments(evaluation))

    return MatchResult(
        program_id=program.id,
        mode=match_mode.value,
        overall_score=round(adjustments.final_score, 6),
        academic_match=academic,
        location_match=location,
        field_match=field,
        weights_used=weights,
        adjustments=adjustments,
    )
