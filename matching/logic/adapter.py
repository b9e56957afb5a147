"""
Data Adapter for the Match Engine

Reads student profiles and the program catalog from the relational
store and transforms rows into engine contracts.

This is a pure READ + TRANSFORM layer:
- NO scoring logic
- NO DB writes
"""

import hashlib
import logging
from typing import Callable, Dict, List, Optional, Set

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import (
    MatchCourse,
    MatchCourseRequirement,
    MatchProgram,
    MatchStudent,
    MatchStudentCourse,
)
from .contracts import CourseRecord, Program, Requirement, StudentPreferences, Transcript
from .errors import ProfileNotFoundError
from .stores import CatalogStore, ProfileStore
from .transcript import normalize_transcript

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class SqlProfileStore(ProfileStore):
    """Profile Store over the match_students / match_student_courses tables."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def _get_student(self, db: Session, student_id: str) -> MatchStudent:
        student = db.get(MatchStudent, student_id)
        if student is None:
            raise ProfileNotFoundError(student_id)
        return student

    def load_transcript(self, student_id: str) -> Transcript:
        db = self.session_factory()
        try:
            self._get_student(db, student_id)
            rows = (
                db.query(MatchStudentCourse, MatchCourse.name)
                .outerjoin(MatchCourse, MatchCourse.id == MatchStudentCourse.course_id)
                .filter(MatchStudentCourse.student_id == student_id)
                .order_by(MatchStudentCourse.id)
                .all()
            )
            records = [
                CourseRecord(
                    course_id=row.course_id,
                    course_name=name or "",
                    level=row.level,
                    grade=row.grade,
                )
                for row, name in rows
            ]
        finally:
            db.close()
        return normalize_transcript(records)

    def load_preferences(self, student_id: str) -> StudentPreferences:
        db = self.session_factory()
        try:
            student = self._get_student(db, student_id)
            return StudentPreferences(
                aggregate_score=student.aggregate_score,
                preferred_field_ids=set(student.preferred_field_ids or []),
                preferred_country_ids=set(student.preferred_country_ids or []),
            )
        finally:
            db.close()


class SqlCatalogStore(CatalogStore):
    """
    Catalog Store over match_programs / match_course_requirements.

    The catalog version is derived from the program and requirement
    counts and the latest update time of either table. Writers that
    bypass the ORM must set updated_at themselves.
    """

    def __init__(self, session_factory: SessionFactory, **kwargs):
        super().__init__(**kwargs)
        self.session_factory = session_factory

    def load_programs(self) -> List[Program]:
        db = self.session_factory()
        try:
            program_rows = db.query(MatchProgram).order_by(MatchProgram.id).all()
            requirement_rows = (
                db.query(MatchCourseRequirement, MatchCourse.name)
                .outerjoin(MatchCourse, MatchCourse.id == MatchCourseRequirement.course_id)
                .order_by(MatchCourseRequirement.program_id, MatchCourseRequirement.id)
                .all()
            )
        finally:
            db.close()

        requirements: Dict[str, List[Requirement]] = {}
        for row, course_name in requirement_rows:
            try:
                requirement = Requirement(
                    required_course=row.course_id,
                    required_level=(row.required_level or "SL").upper(),
                    min_grade=row.min_grade if row.min_grade is not None else 1,
                    is_critical=bool(row.is_critical),
                    or_group_id=row.or_group_id,
                    course_name=course_name or "",
                )
            except ValidationError:
                # Kept so a broken critical requirement still gates the program
                logger.warning(f"Malformed requirement {row.id} of program {row.program_id}; treating as unresolvable")
                requirement = Requirement(
                    required_course=row.course_id or f"invalid-{row.id}",
                    is_critical=bool(row.is_critical),
                    or_group_id=row.or_group_id,
                    course_name=course_name or "",
                    unresolvable=True,
                )
            requirements.setdefault(row.program_id, []).append(requirement)

        programs: List[Program] = []
        for row in program_rows:
            try:
                programs.append(Program(
                    id=row.id,
                    name=row.name or "",
                    university_name=row.university_name or "",
                    degree_type=row.degree_type or "",
                    min_aggregate_score=row.min_aggregate_score,
                    field_id=row.field_id,
                    country_id=row.country_id,
                    requirements=requirements.get(row.id, []),
                ))
            except ValidationError:
                logger.warning(f"Skipping malformed program {row.id}")
        return programs

    def catalog_version(self) -> Optional[str]:
        db = self.session_factory()
        try:
            program_count, program_latest = db.query(
                func.count(MatchProgram.id), func.max(MatchProgram.updated_at)
            ).one()
            requirement_count, requirement_latest = db.query(
                func.count(MatchCourseRequirement.id), func.max(MatchCourseRequirement.updated_at)
            ).one()
        finally:
            db.close()

        if not program_count:
            return "empty"
        marker = "|".join([
            str(program_count),
            str(requirement_count),
            program_latest.isoformat() if program_latest else "",
            requirement_latest.isoformat() if requirement_latest else "",
        ])
        return hashlib.sha1(marker.encode("utf-8")).hexdigest()[:16]

    def known_courses(self) -> Optional[Set[str]]:
        db = self.session_factory()
        try:
            ids = {course_id for (course_id,) in db.query(MatchCourse.id).all()}
        finally:
            db.close()
        # An empty course table means the catalog is not tracked
        return ids or None
