"""
Feasibility filter for candidate partitions.

A partition survives only if every multi-order group could actually trade:
both sides present, overlapping rates and at least one shared maturity.
Singleton groups are passthrough and never block a partition.
"""

from typing import Iterable, Iterator, List, Optional

from .order import LoanFeasibility, LoanOrder, MatchingGroup, Partition, split_sides


def common_maturities(
    lenders: Iterable[LoanOrder],
    borrowers: Iterable[LoanOrder],
) -> List[int]:
    """Maturities offered by both sides, earliest first."""
    lender_maturities = {order.maturity_timestamp for order in lenders}
    borrower_maturities = {order.maturity_timestamp for order in borrowers}
    return sorted(lender_maturities & borrower_maturities)


def check_group(group: MatchingGroup) -> Optional[LoanFeasibility]:
    """
    Check whether a group can be matched jointly.

    Args:
        group: Orders evaluated together

    Returns:
        None if the group is acceptable (singletons always are), otherwise
        the rejection reason
    """
    if len(group) <= 1:
        return None

    lenders, borrowers = split_sides(group)
    if not lenders or not borrowers:
        return LoanFeasibility.ONE_SIDED

    min_lender_rate = min(order.rate_bips for order in lenders)
    max_borrower_rate = max(order.rate_bips for order in borrowers)
    if min_lender_rate > max_borrower_rate:
        return LoanFeasibility.NO_RATE_OVERLAP

    if not common_maturities(lenders, borrowers):
        return LoanFeasibility.MATURITY_MISMATCH

    return None


def is_partition_feasible(partition: Partition) -> bool:
    """Check that no multi-order group in the partition is rejected."""
    return all(check_group(group) is None for group in partition)


def filter_feasible(partitions: Iterable[Partition]) -> Iterator[Partition]:
    """Lazily drop partitions containing an infeasible multi-order group."""
    for partition in partitions:
        if is_partition_feasible(partition):
            yield partition
