"""
Scoring Engine Constants

Defines grade scales, weight profiles, tunable scoring constants and
cache defaults used by the match engine.
All values are deterministic with no AI/ML components.
"""

from enum import Enum
from typing import Dict

# =============================================================================
# GRADE & LEVEL SCALE
# =============================================================================

MIN_GRADE = 1
MAX_GRADE = 7


class CourseLevel(str, Enum):
    """Course level. HL dominates SL."""
    HL = "HL"
    SL = "SL"


LEVEL_RANK: Dict[str, int] = {
    CourseLevel.SL.value: 1,
    CourseLevel.HL.value: 2,
}

# =============================================================================
# REQUIREMENT SHORTFALL
# =============================================================================

# Shortfall charged when the required course is not on the transcript at all
MISSING_COURSE_SHORTFALL = 6.0

# An SL record against an HL requirement counts as this many grades lower
SL_TO_HL_GRADE_OFFSET = 2

# Minimum shortfall for an SL record against an HL requirement
LEVEL_MISMATCH_MIN_SHORTFALL = 1.0

# =============================================================================
# ACADEMIC SUB-SCORE
# =============================================================================

# Split between aggregate comparison and requirement satisfaction (sum to 1.0)
AGGREGATE_WEIGHT = 0.4
REQUIREMENTS_WEIGHT = 0.6

# Aggregate ratio used when the program has a minimum but the student has no score
UNKNOWN_AGGREGATE_RATIO = 0.5

# Partial credit for an unmet unit: SHORTFALL_CREDIT_MAX * (1 - shortfall / SHORTFALL_SCALE)
SHORTFALL_CREDIT_MAX = 0.8
SHORTFALL_SCALE = 7.0

# Academic sub-score ceiling when a critical requirement is unmet
CRITICAL_UNMET_CEILING = 0.2

# =============================================================================
# PREFERENCE SUB-SCORES
# =============================================================================

# Score for a program outside the student's stated preferences
LOCATION_BASELINE = 0.3
FIELD_BASELINE = 0.4

# =============================================================================
# MODE WEIGHT PROFILES
# =============================================================================


class MatchMode(str, Enum):
    """Named weighting profiles."""
    BALANCED = "BALANCED"
    ACADEMIC_FOCUSED = "ACADEMIC_FOCUSED"
    LOCATION_FOCUSED = "LOCATION_FOCUSED"


# Weights for each sub-score (each profile sums to 1.0)
MODE_WEIGHTS: Dict[MatchMode, Dict[str, float]] = {
    MatchMode.BALANCED: {
        "academic": 0.6,
        "location": 0.3,
        "field": 0.1,
    },
    MatchMode.ACADEMIC_FOCUSED: {
        "academic": 0.8,
        "location": 0.1,
        "field": 0.1,
    },
    MatchMode.LOCATION_FOCUSED: {
        "academic": 0.4,
        "location": 0.5,
        "field": 0.1,
    },
}

DEFAULT_MODE = MatchMode.BALANCED

# =============================================================================
# ADJUSTMENTS
# =============================================================================

# Boost when every unmet requirement is a near miss
NEAR_MISS_TOLERANCE = 1.0
NEAR_MISS_BONUS = 0.03

# Penalty when several requirements are unmet
MULTIPLE_UNMET_MIN = 2
MULTIPLE_UNMET_PENALTY = 0.05

# Total adjustment may never move the base score further than this
ADJUSTMENT_BAND = 0.05

# =============================================================================
# MATCH SET BUILDER
# =============================================================================

PARALLEL_THRESHOLD = 200
DEFAULT_MAX_WORKERS = 4

# =============================================================================
# CANDIDATE PREFILTER
# =============================================================================

# Programs whose minimum aggregate exceeds the student's score by more than this are dropped
PREFILTER_POINTS_MARGIN = 10
PREFILTER_MIN_CATALOG = 500

# =============================================================================
# CACHE DEFAULTS
# =============================================================================

CACHE_KEY_PREFIX = "matches"
CACHE_LOCK_PREFIX = "matches-lock"
UNVERSIONED_CATALOG = "unversioned"

MATCH_CACHE_TTL_SECONDS = 1800  # 30 minutes
UNVERSIONED_CACHE_TTL_SECONDS = 300
MATCH_LOCK_TTL_SECONDS = 30
MATCH_CACHE_WAIT_TIMEOUT_SECONDS = 5.0
MATCH_CACHE_POLL_INTERVAL_SECONDS = 0.05
MATCH_CACHE_OP_TIMEOUT_SECONDS = 0.5
