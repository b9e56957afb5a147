# Export all match models for easy imports
from .base import Base
from .student import MatchStudent, MatchStudentCourse
from .program import MatchCourse, MatchProgram, MatchCourseRequirement

__all__ = [
    "Base",
    "MatchStudent",
    "MatchStudentCourse",
    "MatchCourse",
    "MatchProgram",
    "MatchCourseRequirement",
]
