"""
Test score aggregation, mode weights and bounded adjustments.
"""

import pytest
from pydantic import ValidationError

from matching.logic import (
    Adjustment,
    MatchMode,
    Requirement,
    StudentPreferences,
    UnknownModeError,
    WeightVector,
    aggregate_scores,
    evaluate_requirements,
    normalize_transcript,
)
from matching.logic.aggregator import apply_adjustments, compute_adjustments
from matching.logic.modes import all_weight_profiles, get_weights, resolve_mode


def _transcript(*rows):
    return normalize_transcript(
        {"course_id": c, "level": lvl, "grade": g} for c, lvl, g in rows
    )


def test_every_mode_weights_sum_to_one():
    profiles = all_weight_profiles()

    assert set(profiles) == set(MatchMode)
    for weights in profiles.values():
        assert weights.academic + weights.location + weights.field == pytest.approx(1.0)


def test_weight_vector_rejects_bad_sum():
    with pytest.raises(ValidationError):
        WeightVector(academic=0.5, location=0.5, field=0.5)


def test_mode_resolution():
    assert resolve_mode(None) == MatchMode.BALANCED
    assert resolve_mode("academic_focused") == MatchMode.ACADEMIC_FOCUSED
    assert get_weights("LOCATION_FOCUSED").location > get_weights("BALANCED").location
    with pytest.raises(UnknownModeError):
        resolve_mode("vibes")


def test_scenario_partial_credit_not_hard_failure(make_program):
    """Aggregate 38 vs 36, Math HL 6 vs critical HL 5, no Chemistry or Biology."""
    program = make_program("p-med", min_aggregate_score=36, requirements=[
        Requirement(required_course="MATH", required_level="HL", min_grade=5, is_critical=True),
        Requirement(required_course="CHEM", required_level="HL", min_grade=6, or_group_id="sci"),
        Requirement(required_course="BIO", required_level="HL", min_grade=6, or_group_id="sci"),
    ])
    transcript = _transcript(("MATH", "HL", 6))
    preferences = StudentPreferences(aggregate_score=38)

    result = aggregate_scores(transcript, preferences, program)

    academic = result.academic_match
    assert academic.satisfied_count == 1
    assert academic.total_count == 2
    assert not academic.critical_unmet
    assert not academic.capped
    expected_academic = 0.4 * 1.0 + 0.6 * (1.0 + 0.8 / 7) / 2
    assert academic.score == pytest.approx(expected_academic)
    # One unmet unit, far from a near miss: no adjustments
    assert result.adjustments.applied == []
    assert result.overall_score == pytest.approx(0.6 * expected_academic + 0.3 + 0.1, abs=1e-6)
    assert result.mode == "BALANCED"


def test_aggregate_is_deterministic(make_program):
    program = make_program("p1", min_aggregate_score=30, requirements=[
        Requirement(required_course="MATH", required_level="HL", min_grade=6),
    ])
    transcript = _transcript(("MATH", "HL", 5))
    preferences = StudentPreferences(aggregate_score=33, preferred_country_ids={"NL"})

    first = aggregate_scores(transcript, preferences, program, "ACADEMIC_FOCUSED")
    second = aggregate_scores(transcript, preferences, program, "ACADEMIC_FOCUSED")

    assert first.model_dump() == second.model_dump()


def test_near_miss_bonus(make_program):
    program = make_program("p1", requirements=[
        Requirement(required_course="MATH", required_level="HL", min_grade=6),
    ])
    evaluation = evaluate_requirements(program, _transcript(("MATH", "HL", 5)))

    adjustments = compute_adjustments(evaluation)

    assert [a.kind for a in adjustments] == ["near_miss_bonus"]
    assert adjustments[0].delta == pytest.approx(0.03)


def test_no_near_miss_bonus_when_critical_unmet(make_program):
    program = make_program("p1", requirements=[
        Requirement(required_course="MATH", required_level="HL", min_grade=6, is_critical=True),
    ])
    evaluation = evaluate_requirements(program, _transcript(("MATH", "HL", 5)))

    assert compute_adjustments(evaluation) == []


def test_multiple_unmet_penalty_and_bonus_combine(make_program):
    program = make_program("p1", requirements=[
        Requirement(required_course="MATH", required_level="HL", min_grade=6),
        Requirement(required_course="PHYS", required_level="HL", min_grade=6),
    ])
    evaluation = evaluate_requirements(program, _transcript(("MATH", "HL", 5), ("PHYS", "HL", 5)))

    adjustments = compute_adjustments(evaluation)
    applied = apply_adjustments(0.5, adjustments)

    assert {a.kind for a in adjustments} == {"near_miss_bonus", "multiple_unmet_penalty"}
    assert applied.total_delta == pytest.approx(-0.02)
    assert applied.final_score == pytest.approx(0.48)


def test_adjustments_are_bounded():
    adjustments = [
        Adjustment(kind="a", delta=0.04, reason=""),
        Adjustment(kind="b", delta=0.04, reason=""),
    ]

    applied = apply_adjustments(0.98, adjustments)

    assert applied.total_delta == pytest.approx(0.05)
    assert applied.final_score == 1.0
    assert applied.base_score == 0.98


def test_overall_score_stays_in_range(make_program):
    program = make_program("p1", field_id="LAW", country_id="UK", min_aggregate_score=45, requirements=[
        Requirement(required_course=c, required_level="HL", min_grade=7) for c in ("A", "B", "C")
    ])
    preferences = StudentPreferences(
        aggregate_score=10, preferred_field_ids={"MED"}, preferred_country_ids={"NL"}
    )

    for mode in MatchMode:
        result = aggregate_scores({}, preferences, program, mode)
        assert 0.0 <= result.overall_score <= 1.0
