"""
Ranker

Orders match results by overall score with a stable tie-break.
"""

from typing import Iterable, List

from .contracts import MatchResult


def rank_results(results: Iterable[MatchResult]) -> List[MatchResult]:
    """
    Rank results by overall score (descending), then program id
    (ascending) so tied scores come back in the same order every run.
    """
    return sorted(results, key=lambda r: (-r.overall_score, r.program_id))


def top_results(results: List[MatchResult], limit: int) -> List[MatchResult]:
    """First `limit` results of an already ranked list."""
    if limit <= 0:
        return []
    return results[:limit]
