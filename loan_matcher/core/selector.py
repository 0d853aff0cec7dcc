"""
Best-result selection across the evaluated partitions of one batch.
"""

from typing import Iterable, Optional

from .evaluator import MatchingResult
from ..utils.exceptions import EmptyResultSetException


def is_better(candidate: MatchingResult, incumbent: MatchingResult) -> bool:
    """
    Check if `candidate` strictly beats `incumbent`.

    Criteria, in order: larger total matched amount, higher matching
    efficiency, lower average rate. Exact ties keep the incumbent.
    """
    if candidate.total_matched_amount != incumbent.total_matched_amount:
        return candidate.total_matched_amount > incumbent.total_matched_amount

    if candidate.matching_efficiency != incumbent.matching_efficiency:
        return candidate.matching_efficiency > incumbent.matching_efficiency

    return candidate.average_borrower_rate < incumbent.average_borrower_rate


def select_best_result(results: Iterable[MatchingResult]) -> MatchingResult:
    """
    Pick the winning result by deterministic reduction.

    The first result seen wins when all criteria tie, so the same candidate
    sequence always yields the same winner. Any iterable is accepted and
    consumed once.

    Args:
        results: Feasible results for one batch

    Returns:
        The best MatchingResult

    Raises:
        EmptyResultSetException: If there are no candidates
    """
    best: Optional[MatchingResult] = None
    for result in results:
        if best is None or is_better(result, best):
            best = result

    if best is None:
        raise EmptyResultSetException("Cannot select a best result from no candidates")

    return best
