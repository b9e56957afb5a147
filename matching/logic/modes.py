"""
Mode Weight Profiles

Resolves a mode name into its fixed weight vector.
"""

from typing import Dict, Union

from .constants import DEFAULT_MODE, MODE_WEIGHTS, MatchMode
from .contracts import WeightVector
from .errors import UnknownModeError


def resolve_mode(mode: Union[MatchMode, str, None]) -> MatchMode:
    """
    Accept a MatchMode, its name (case-insensitive) or None for the default.

    Raises:
        UnknownModeError: if the name is not a known mode
    """
    if mode is None:
        return DEFAULT_MODE
    if isinstance(mode, MatchMode):
        return mode
    try:
        return MatchMode(str(mode).strip().upper())
    except ValueError:
        valid = ", ".join(m.value for m in MatchMode)
        raise UnknownModeError(f"Unknown match mode {mode!r}; expected one of: {valid}")


def get_weights(mode: Union[MatchMode, str, None] = None) -> WeightVector:
    """Weight vector for a mode."""
    return WeightVector(**MODE_WEIGHTS[resolve_mode(mode)])


def all_weight_profiles() -> Dict[MatchMode, WeightVector]:
    """Every mode with its weights."""
    return {mode: get_weights(mode) for mode in MatchMode}
