"""
Requirement Evaluator

Decides, for one program, whether each requirement unit is satisfied
and how far the student is from the unmet ones.

A unit is either a standalone requirement or an OR-group: all
requirements sharing an or_group_id. An OR-group is satisfied when any
member is, and its shortfall is the smallest member shortfall, so the
closest near-miss is what counts.
"""

from typing import Dict, Iterable, List, Optional, Set, Tuple

from .constants import (
    CourseLevel,
    LEVEL_MISMATCH_MIN_SHORTFALL,
    LEVEL_RANK,
    MISSING_COURSE_SHORTFALL,
    SL_TO_HL_GRADE_OFFSET,
)
from .contracts import (
    Program,
    Requirement,
    RequirementEvaluation,
    RequirementOutcome,
    Transcript,
)


def partition_requirements(
    requirements: Iterable[Requirement]
) -> List[Tuple[Optional[str], List[Requirement]]]:
    """
    Split requirements into units, keeping first-seen order.

    Returns:
        List of (or_group_id, members). Standalone requirements come
        back as (None, [requirement]).
    """
    units: List[Tuple[Optional[str], List[Requirement]]] = []
    groups: Dict[str, List[Requirement]] = {}

    for requirement in requirements:
        group_id = requirement.or_group_id
        if group_id is None:
            units.append((None, [requirement]))
            continue
        if group_id not in groups:
            groups[group_id] = []
            units.append((group_id, groups[group_id]))
        groups[group_id].append(requirement)

    return units


def _label(requirement: Requirement) -> str:
    return requirement.course_name or requirement.required_course


def evaluate_requirement(
    requirement: Requirement,
    transcript: Transcript,
    known_courses: Optional[Set[str]] = None,
) -> RequirementOutcome:
    """
    Evaluate a single requirement against the transcript.

    Args:
        requirement: The requirement
        transcript: Normalized transcript
        known_courses: Global course catalog ids; a requirement naming a
            course outside it can never be met

    Returns:
        RequirementOutcome for this requirement alone
    """
    base = dict(
        courses=[requirement.required_course],
        or_group_id=requirement.or_group_id,
        is_critical=requirement.is_critical,
    )

    if requirement.unresolvable:
        return RequirementOutcome(
            **base,
            satisfied=False,
            shortfall=MISSING_COURSE_SHORTFALL,
            unresolvable=True,
            reason="Invalid requirement data",
        )

    if known_courses is not None and requirement.required_course not in known_courses:
        return RequirementOutcome(
            **base,
            satisfied=False,
            shortfall=MISSING_COURSE_SHORTFALL,
            unresolvable=True,
            reason=f"Unknown course {requirement.required_course}",
        )

    entry = transcript.get(requirement.required_course)
    if entry is None:
        return RequirementOutcome(
            **base,
            satisfied=False,
            shortfall=MISSING_COURSE_SHORTFALL,
            reason="Course not taken",
        )

    level_ok = LEVEL_RANK[entry.level.value] >= LEVEL_RANK[requirement.required_level.value]

    if level_ok:
        if entry.grade >= requirement.min_grade:
            return RequirementOutcome(
                **base,
                satisfied=True,
                shortfall=0.0,
                matched_course=requirement.required_course,
                reason="Fully met",
            )
        gap = requirement.min_grade - entry.grade
        return RequirementOutcome(
            **base,
            satisfied=False,
            shortfall=float(gap),
            matched_course=requirement.required_course,
            reason=f"Grade {gap} point{'s' if gap > 1 else ''} below requirement",
        )

    # SL record against an HL requirement
    effective_grade = entry.grade - SL_TO_HL_GRADE_OFFSET
    shortfall = max(float(requirement.min_grade - effective_grade), LEVEL_MISMATCH_MIN_SHORTFALL)
    return RequirementOutcome(
        **base,
        satisfied=False,
        shortfall=shortfall,
        matched_course=requirement.required_course,
        reason=f"Level mismatch: {CourseLevel.SL.value} instead of {CourseLevel.HL.value} (grade {entry.grade})",
    )


def evaluate_or_group(
    group_id: str,
    members: List[Requirement],
    transcript: Transcript,
    known_courses: Optional[Set[str]] = None,
) -> RequirementOutcome:
    """
    Evaluate an OR-group: satisfied if any member is, shortfall is the
    minimum member shortfall. Ties keep the earlier member.
    """
    best: Optional[RequirementOutcome] = None
    best_member: Optional[Requirement] = None

    for member in members:
        outcome = evaluate_requirement(member, transcript, known_courses)
        if best is None or _better(outcome, best):
            best, best_member = outcome, member
        if outcome.satisfied:
            break

    return RequirementOutcome(
        courses=[m.required_course for m in members],
        or_group_id=group_id,
        is_critical=any(m.is_critical for m in members),
        satisfied=best.satisfied,
        shortfall=best.shortfall,
        matched_course=best.matched_course,
        unresolvable=all(_unresolvable(m, known_courses) for m in members),
        reason=f"Best match via {_label(best_member)}: {best.reason}",
    )


def _unresolvable(requirement: Requirement, known_courses: Optional[Set[str]]) -> bool:
    if requirement.unresolvable:
        return True
    return known_courses is not None and requirement.required_course not in known_courses


def _better(candidate: RequirementOutcome, current: RequirementOutcome) -> bool:
    if candidate.satisfied != current.satisfied:
        return candidate.satisfied
    return candidate.shortfall < current.shortfall


def evaluate_requirements(
    program: Program,
    transcript: Transcript,
    known_courses: Optional[Set[str]] = None,
) -> RequirementEvaluation:
    """
    Evaluate every requirement unit of a program.

    A program with no requirements is vacuously fully satisfied.
    Never raises on bad requirement data; an unresolvable course is
    simply an unmet requirement.

    Args:
        program: Program whose requirements to check
        transcript: Normalized transcript
        known_courses: Optional global course catalog ids

    Returns:
        RequirementEvaluation with counts, total shortfall and the
        critical-unmet flag
    """
    outcomes: List[RequirementOutcome] = []

    for group_id, members in partition_requirements(program.requirements):
        if group_id is None:
            outcomes.append(evaluate_requirement(members[0], transcript, known_courses))
        else:
            outcomes.append(evaluate_or_group(group_id, members, transcript, known_courses))

    unmet = [o for o in outcomes if not o.satisfied]

    return RequirementEvaluation(
        satisfied_count=len(outcomes) - len(unmet),
        total_count=len(outcomes),
        total_shortfall=sum(o.shortfall for o in unmet),
        critical_unmet=any(o.is_critical for o in unmet),
        outcomes=outcomes,
    )
