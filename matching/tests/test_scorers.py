"""
Test the academic, location and field sub-scores.
"""

import pytest

from matching.logic import Requirement, StudentPreferences, evaluate_requirements
from matching.logic.dimension_scorers import (
    aggregate_ratio,
    requirement_score,
    score_academic,
    score_field,
    score_location,
)


@pytest.mark.parametrize("student,minimum,expected", [
    (38, 36, 1.0),
    (30, 40, 0.75),
    (None, 36, 0.5),
    (None, None, 1.0),
    (20, 0, 1.0),
])
def test_aggregate_ratio(student, minimum, expected):
    assert aggregate_ratio(student, minimum) == pytest.approx(expected)


def test_requirement_score_without_requirements(make_program):
    assert requirement_score(evaluate_requirements(make_program("p1"), {})) == 1.0


def test_critical_unmet_caps_academic_score(make_program):
    program = make_program("p1", min_aggregate_score=30, requirements=[
        Requirement(required_course="MATH", required_level="HL", min_grade=5, is_critical=True),
    ])
    preferences = StudentPreferences(aggregate_score=45)

    academic = score_academic(preferences, program, evaluate_requirements(program, {}))

    assert academic.critical_unmet
    assert academic.capped
    assert academic.score == pytest.approx(0.2)
    assert academic.aggregate_ratio == 1.0


def test_uncapped_score_blends_aggregate_and_requirements(make_program):
    program = make_program("p1", min_aggregate_score=40, requirements=[
        Requirement(required_course="MATH", required_level="HL", min_grade=5),
    ])
    preferences = StudentPreferences(aggregate_score=30)

    academic = score_academic(preferences, program, evaluate_requirements(program, {}))

    # 0.4 * 0.75 + 0.6 * (0.8 * (1 - 6/7))
    assert academic.score == pytest.approx(0.3 + 0.6 * 0.8 / 7)
    assert not academic.capped


def test_location_and_field_without_preferences(make_program):
    program = make_program("p1")
    preferences = StudentPreferences()

    location = score_location(preferences, program)
    field = score_field(preferences, program)

    assert location.score == 1.0 and location.no_preferences
    assert field.score == 1.0 and field.no_preferences


def test_location_and_field_match(make_program):
    program = make_program("p1", field_id="MED", country_id="NL")
    preferences = StudentPreferences(preferred_field_ids={"MED"}, preferred_country_ids={"NL", "DE"})

    assert score_location(preferences, program).is_match
    assert score_field(preferences, program).score == 1.0


def test_location_and_field_baselines(make_program):
    program = make_program("p1", field_id="LAW", country_id="UK")
    preferences = StudentPreferences(preferred_field_ids={"MED"}, preferred_country_ids={"NL"})

    assert score_location(preferences, program).score == pytest.approx(0.3)
    assert score_field(preferences, program).score == pytest.approx(0.4)
