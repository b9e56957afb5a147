"""
Transcript Normalizer

Maps a student's raw course rows into a course -> best {level, grade}
lookup used by the requirement evaluator.
"""

import logging
from typing import Any, Iterable, Optional

from .constants import CourseLevel, LEVEL_RANK, MAX_GRADE, MIN_GRADE
from .contracts import Transcript, TranscriptEntry

logger = logging.getLogger(__name__)


def _field(row: Any, name: str) -> Any:
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def _parse_level(raw: Any) -> Optional[CourseLevel]:
    if isinstance(raw, CourseLevel):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return CourseLevel(raw.strip().upper())
    except ValueError:
        return None


def _parse_grade(raw: Any) -> Optional[int]:
    # bool is an int subclass; a True grade is garbage, not a 1
    if raw is None or isinstance(raw, bool):
        return None
    try:
        grade = int(raw)
    except (TypeError, ValueError):
        return None
    if grade != raw and str(grade) != str(raw).strip():
        return None
    if not MIN_GRADE <= grade <= MAX_GRADE:
        return None
    return grade


def _outranks(candidate: TranscriptEntry, current: TranscriptEntry) -> bool:
    """Higher level wins, then higher grade."""
    return (LEVEL_RANK[candidate.level.value], candidate.grade) > (
        LEVEL_RANK[current.level.value], current.grade
    )


def normalize_transcript(raw_courses: Iterable[Any]) -> Transcript:
    """
    Build the transcript lookup from raw course rows.

    Rows may be CourseRecord objects or plain dicts with course_id,
    level, grade and an optional course_name. Rows with a missing course
    id, unknown level or missing/out-of-range grade are skipped; they
    never abort normalization.

    Args:
        raw_courses: Course rows from the Profile Store

    Returns:
        Dict mapping course id to the best TranscriptEntry
    """
    transcript: Transcript = {}
    skipped = 0

    for row in raw_courses or []:
        course_id = _field(row, "course_id")
        level = _parse_level(_field(row, "level"))
        grade = _parse_grade(_field(row, "grade"))

        if not course_id or level is None or grade is None:
            skipped += 1
            logger.warning(
                "Skipping malformed course record: course_id=%r level=%r grade=%r",
                course_id, _field(row, "level"), _field(row, "grade"),
            )
            continue

        entry = TranscriptEntry(
            level=level,
            grade=grade,
            course_name=_field(row, "course_name") or "",
        )
        current = transcript.get(course_id)
        if current is None or _outranks(entry, current):
            transcript[course_id] = entry

    if skipped:
        logger.info(f"Transcript normalized with {skipped} malformed record(s) dropped")

    return transcript

