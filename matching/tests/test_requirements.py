"""
Test requirement evaluation: standalone requirements, OR-groups,
level mismatches and unknown courses.
"""

import pytest

from matching.logic import Requirement, evaluate_requirements, normalize_transcript
from matching.logic.requirements import evaluate_requirement, partition_requirements


def _transcript(*rows):
    return normalize_transcript(
        {"course_id": c, "level": lvl, "grade": g} for c, lvl, g in rows
    )


def _science_group(critical=False):
    return [
        Requirement(required_course="CHEM", required_level="HL", min_grade=6, or_group_id="sci",
                    is_critical=critical, course_name="Chemistry"),
        Requirement(required_course="BIO", required_level="HL", min_grade=6, or_group_id="sci",
                    course_name="Biology"),
    ]


def test_or_group_satisfied_by_either_member(make_program):
    program = make_program("p1", requirements=_science_group())
    transcript = _transcript(("BIO", "HL", 6))

    evaluation = evaluate_requirements(program, transcript)

    assert evaluation.total_count == 1
    assert evaluation.satisfied_count == 1
    assert evaluation.total_shortfall == 0
    outcome = evaluation.outcomes[0]
    assert outcome.satisfied
    assert outcome.shortfall == 0
    assert outcome.matched_course == "BIO"
    assert outcome.courses == ["CHEM", "BIO"]
    assert outcome.reason.startswith("Best match via Biology")


def test_or_group_shortfall_is_minimum_member_shortfall(make_program):
    program = make_program("p1", requirements=_science_group())
    transcript = _transcript(("CHEM", "HL", 4), ("BIO", "HL", 5))

    evaluation = evaluate_requirements(program, transcript)

    outcome = evaluation.outcomes[0]
    assert not outcome.satisfied
    assert outcome.shortfall == 1
    assert outcome.matched_course == "BIO"
    assert evaluation.total_shortfall == 1


def test_or_group_is_critical_if_any_member_is(make_program):
    program = make_program("p1", requirements=_science_group(critical=True))

    evaluation = evaluate_requirements(program, {})

    assert evaluation.outcomes[0].is_critical
    assert evaluation.critical_unmet


def test_missing_course_costs_full_shortfall():
    requirement = Requirement(required_course="MATH", required_level="HL", min_grade=5)

    outcome = evaluate_requirement(requirement, {})

    assert not outcome.satisfied
    assert outcome.shortfall == 6
    assert outcome.reason == "Course not taken"
    assert not outcome.unresolvable


def test_unknown_course_is_unresolvable():
    requirement = Requirement(required_course="LATIN", min_grade=4)
    transcript = _transcript(("LATIN", "HL", 7))

    outcome = evaluate_requirement(requirement, transcript, known_courses={"MATH", "BIO"})

    assert not outcome.satisfied
    assert outcome.unresolvable
    assert outcome.shortfall == 6


def test_grade_below_requirement():
    requirement = Requirement(required_course="MATH", required_level="HL", min_grade=6)
    transcript = _transcript(("MATH", "HL", 4))

    outcome = evaluate_requirement(requirement, transcript)

    assert outcome.shortfall == 2
    assert outcome.reason == "Grade 2 points below requirement"


def test_hl_record_meets_sl_requirement():
    requirement = Requirement(required_course="MATH", required_level="SL", min_grade=5)
    transcript = _transcript(("MATH", "HL", 5))

    assert evaluate_requirement(requirement, transcript).satisfied


@pytest.mark.parametrize("grade,expected", [(7, 1.0), (6, 1.0), (4, 3.0)])
def test_sl_record_against_hl_requirement(grade, expected):
    requirement = Requirement(required_course="MATH", required_level="HL", min_grade=5)
    transcript = _transcript(("MATH", "SL", grade))

    outcome = evaluate_requirement(requirement, transcript)

    assert not outcome.satisfied
    assert outcome.shortfall == expected
    assert outcome.reason.startswith("Level mismatch")


def test_program_without_requirements_is_fully_satisfied(make_program):
    evaluation = evaluate_requirements(make_program("p1"), {})

    assert evaluation.total_count == 0
    assert evaluation.fully_satisfied
    assert not evaluation.critical_unmet


def test_critical_unmet_only_from_unmet_units(make_program):
    program = make_program("p1", requirements=[
        Requirement(required_course="MATH", required_level="HL", min_grade=5, is_critical=True),
        Requirement(required_course="ART", min_grade=4),
    ])
    transcript = _transcript(("MATH", "HL", 6))

    evaluation = evaluate_requirements(program, transcript)

    assert evaluation.satisfied_count == 1
    assert not evaluation.critical_unmet
    assert [o.courses for o in evaluation.unmet] == [["ART"]]


def test_partition_keeps_first_seen_order():
    reqs = [
        Requirement(required_course="A", or_group_id="g1"),
        Requirement(required_course="B"),
        Requirement(required_course="C", or_group_id="g1"),
        Requirement(required_course="D", or_group_id="g2"),
    ]

    units = partition_requirements(reqs)

    assert [(g, [r.required_course for r in m]) for g, m in units] == [
        ("g1", ["A", "C"]),
        (None, ["B"]),
        ("g2", ["D"]),
    ]


def test_flagged_requirement_is_never_met(make_program):
    broken = Requirement(required_course="MATH", is_critical=True, unresolvable=True)
    transcript = _transcript(("MATH", "HL", 7))

    outcome = evaluate_requirement(broken, transcript)
    evaluation = evaluate_requirements(make_program("p1", requirements=[broken]), transcript)

    assert not outcome.satisfied
    assert outcome.unresolvable
    assert outcome.shortfall == 6
    assert evaluation.critical_unmet


def test_or_group_of_flagged_members_is_unresolvable(make_program):
    group = [
        Requirement(required_course="CHEM", or_group_id="sci", unresolvable=True),
        Requirement(required_course="BIO", or_group_id="sci", unresolvable=True),
    ]

    evaluation = evaluate_requirements(make_program("p1", requirements=group), _transcript(("BIO", "HL", 7)))

    assert evaluation.outcomes[0].unresolvable
    assert not evaluation.outcomes[0].satisfied
