from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from .base import Base


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class MatchCourse(Base):
    __tablename__ = "match_courses"

    id = Column(String, primary_key=True)
    name = Column(String)


class MatchProgram(Base):
    __tablename__ = "match_programs"

    id = Column(String, primary_key=True)
    name = Column(String)
    university_name = Column(String)
    degree_type = Column(String)
    field_id = Column(String)
    country_id = Column(String)
    min_aggregate_score = Column(Float)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class MatchCourseRequirement(Base):
    __tablename__ = "match_course_requirements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    program_id = Column(String, index=True)
    course_id = Column(String)
    required_level = Column(String)
    min_grade = Column(Integer)
    is_critical = Column(Boolean, default=False)
    or_group_id = Column(String)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
