"""
Match engine error types.

Only ProfileNotFoundError is meant to reach callers of the engine;
the rest are absorbed by the cache layer or mapped at the HTTP edge.
"""


class MatchingError(Exception):
    """Base class for match engine errors."""


class ProfileNotFoundError(MatchingError):
    """The student has no profile yet (send them to onboarding)."""

    def __init__(self, student_id: str):
        super().__init__(f"Student profile not found: {student_id}")
        self.student_id = student_id


class ProgramNotFoundError(MatchingError):
    """Program id is not in the catalog."""

    def __init__(self, program_id: str):
        super().__init__(f"Program not found: {program_id}")
        self.program_id = program_id


class UnknownModeError(MatchingError, ValueError):
    """Requested weighting mode is not one of MatchMode."""


class MatchCancelledError(MatchingError):
    """The caller cancelled scoring before the match set was complete."""


class CacheStoreError(MatchingError):
    """The cache store is unreachable or timed out."""
