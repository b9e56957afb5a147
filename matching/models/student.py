from sqlalchemy import Column, Integer, String, Float, JSON, DateTime

from .base import Base


class MatchStudent(Base):
    __tablename__ = "match_students"

    id = Column(String, primary_key=True)
    aggregate_score = Column(Float)
    preferred_field_ids = Column(JSON)
    preferred_country_ids = Column(JSON)
    updated_at = Column(DateTime)


class MatchStudentCourse(Base):
    __tablename__ = "match_student_courses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String, index=True)
    course_id = Column(String)
    level = Column(String)
    grade = Column(Integer)  # predicted or final; NULL until known
