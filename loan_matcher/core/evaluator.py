"""
Result evaluation for feasible partitions.

Scores one partition: per-group matched volume and clearing rate, and the
batch-wide aggregates used to pick the best partition. All arithmetic is on
integers; reported ratios are fixed-point Decimals truncated toward zero.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Tuple

from .feasibility import check_group, common_maturities
from .order import LoanFeasibility, LoanOrder, MatchingGroup, Partition, split_sides
from .partitions import Signature, canonical_signature
from ..utils.exceptions import ArithmeticOverflowException
from ..utils.fixed_point import ZERO, fixed_point_divide
from ..utils.validators import UINT256_MAX

DEFAULT_RATE_PRECISION = 4


@dataclass(frozen=True)
class GroupMatch:
    """
    Evaluation of one matching group.

    Attributes:
        orders: Orders in the group, in partition order
        feasibility: FULL_MATCH/PARTIAL_* for matched groups, NONE for
            singletons, or the rejection reason for an invalid group
        total_lender_amount: Principal offered by the group's lenders
        total_borrower_amount: Principal requested by the group's borrowers
        matched_amount: Principal transferable inside the group
        effective_rate: Clearing rate in bips (0 when unmatched)
        maturity_timestamp: Agreed maturity (the order's own for singletons)
    """

    orders: MatchingGroup
    feasibility: LoanFeasibility
    total_lender_amount: int
    total_borrower_amount: int
    matched_amount: int
    effective_rate: int
    maturity_timestamp: int

    @property
    def lenders(self) -> Tuple[LoanOrder, ...]:
        return split_sides(self.orders)[0]

    @property
    def borrowers(self) -> Tuple[LoanOrder, ...]:
        return split_sides(self.orders)[1]

    @property
    def is_matched(self) -> bool:
        """Check if this group moves principal."""
        return self.feasibility.is_match


@dataclass(frozen=True)
class MatchingResult:
    """
    Aggregate evaluation of one partition.

    average_lender_rate and average_borrower_rate are the same value: every
    group clears at a single rate shared by both sides, so rate_spread is
    always zero.
    """

    matchings: Tuple[GroupMatch, ...]
    total_lender_amount: int
    total_borrower_amount: int
    total_matched_amount: int
    unmatched_lender_amount: int
    unmatched_borrower_amount: int
    average_lender_rate: Decimal
    average_borrower_rate: Decimal
    rate_spread: Decimal
    matching_efficiency: Decimal
    feasible: bool
    feasibility_type: LoanFeasibility

    @property
    def average_rate(self) -> Decimal:
        """Matched-volume weighted clearing rate in bips."""
        return self.average_borrower_rate

    @property
    def matched_groups(self) -> Tuple[GroupMatch, ...]:
        return tuple(group for group in self.matchings if group.is_matched)

    def signature(self) -> Signature:
        """Canonical signature of the evaluated partition."""
        return canonical_signature(tuple(group.orders for group in self.matchings))


def _checked(value: int, field_name: str) -> int:
    if value > UINT256_MAX:
        raise ArithmeticOverflowException(
            f"{field_name} exceeds representable precision (uint256)",
            details={"field": field_name, "value": str(value)}
        )
    return value


def evaluate_group(group: MatchingGroup) -> GroupMatch:
    """
    Evaluate a single matching group.

    Singletons are passthrough: their principal stays unmatched. A
    multi-order group that fails the feasibility checks is reported with its
    rejection reason and contributes only unmatched volume.
    """
    lenders, borrowers = split_sides(group)
    total_lender = _checked(sum(o.principal_amount for o in lenders), "group lender total")
    total_borrower = _checked(sum(o.principal_amount for o in borrowers), "group borrower total")

    if len(group) == 1:
        return GroupMatch(
            orders=group,
            feasibility=LoanFeasibility.NONE,
            total_lender_amount=total_lender,
            total_borrower_amount=total_borrower,
            matched_amount=0,
            effective_rate=0,
            maturity_timestamp=group[0].maturity_timestamp,
        )

    rejection = check_group(group)
    if rejection is not None:
        return GroupMatch(
            orders=group,
            feasibility=rejection,
            total_lender_amount=total_lender,
            total_borrower_amount=total_borrower,
            matched_amount=0,
            effective_rate=0,
            maturity_timestamp=0,
        )

    min_lender_rate = min(o.rate_bips for o in lenders)
    max_borrower_rate = max(o.rate_bips for o in borrowers)

    if total_lender == total_borrower:
        feasibility = LoanFeasibility.FULL_MATCH
    elif total_lender > total_borrower:
        feasibility = LoanFeasibility.PARTIAL_LENDER
    else:
        feasibility = LoanFeasibility.PARTIAL_BORROWER

    return GroupMatch(
        orders=group,
        feasibility=feasibility,
        total_lender_amount=total_lender,
        total_borrower_amount=total_borrower,
        matched_amount=min(total_lender, total_borrower),
        effective_rate=(min_lender_rate + max_borrower_rate) // 2,
        maturity_timestamp=common_maturities(lenders, borrowers)[0],
    )


def determine_feasibility_type(matchings: Iterable[GroupMatch]) -> LoanFeasibility:
    """
    Overall classification of a partition from its groups.

    NONE if nothing matched, FULL_MATCH if every matched group is full,
    PARTIAL_BOTH if both partial kinds occur, otherwise the partial kind
    present.
    """
    kinds = {group.feasibility for group in matchings if group.is_matched}

    if not kinds:
        return LoanFeasibility.NONE
    if kinds == {LoanFeasibility.FULL_MATCH}:
        return LoanFeasibility.FULL_MATCH

    has_partial_lender = LoanFeasibility.PARTIAL_LENDER in kinds
    has_partial_borrower = LoanFeasibility.PARTIAL_BORROWER in kinds
    if has_partial_lender and has_partial_borrower:
        return LoanFeasibility.PARTIAL_BOTH
    if has_partial_lender:
        return LoanFeasibility.PARTIAL_LENDER
    return LoanFeasibility.PARTIAL_BORROWER


def evaluate_partition(
    partition: Partition,
    rate_precision: int = DEFAULT_RATE_PRECISION,
) -> MatchingResult:
    """
    Score a partition that passed the feasibility filter.

    Args:
        partition: Groups covering the batch
        rate_precision: Fractional digits kept for average rate and efficiency

    Returns:
        MatchingResult with per-group breakdown and aggregates

    Raises:
        ArithmeticOverflowException: If a total exceeds uint256
    """
    matchings = tuple(evaluate_group(group) for group in partition)

    total_lender = _checked(sum(g.total_lender_amount for g in matchings), "batch lender total")
    total_borrower = _checked(sum(g.total_borrower_amount for g in matchings), "batch borrower total")
    total_matched = sum(g.matched_amount for g in matchings)
    weighted_rate = sum(g.effective_rate * g.matched_amount for g in matchings)

    average_rate = fixed_point_divide(weighted_rate, total_matched, rate_precision)
    efficiency = fixed_point_divide(
        2 * total_matched, total_lender + total_borrower, rate_precision
    )

    return MatchingResult(
        matchings=matchings,
        total_lender_amount=total_lender,
        total_borrower_amount=total_borrower,
        total_matched_amount=total_matched,
        unmatched_lender_amount=total_lender - total_matched,
        unmatched_borrower_amount=total_borrower - total_matched,
        average_lender_rate=average_rate,
        average_borrower_rate=average_rate,
        rate_spread=ZERO,
        matching_efficiency=efficiency,
        feasible=total_matched > 0,
        feasibility_type=determine_feasibility_type(matchings),
    )
