"""
Settlement transfer calculation for a winning matching result.

Each matched group is settled proportionally: every order is entitled to a
floor-divided share of the group's matched amount, and lender shares are
allocated to borrower shares pairwise. Rounding dust left by the floor
division is not reallocated; it is bounded by less than one unit per
lender-borrower pairing.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .evaluator import DEFAULT_RATE_PRECISION, GroupMatch, MatchingResult
from .order import LoanFeasibility, LoanOrder, LoanSide
from .transfer import LoanTransfer
from ..utils.fixed_point import bips_to_percent, fixed_point_divide, format_units


@dataclass(frozen=True)
class OrderOutcome:
    """
    Diagnostic record for one order. Informational only.

    Attributes:
        order_id: Order the record describes
        side: LENDER or BORROWER
        matched_amount: Proportional share of the group's matched amount
        effective_rate: Clearing rate of the order's group (0 if unmatched)
        maturity_timestamp: Agreed maturity (the order's own if unmatched)
        feasibility: Group classification, or why the order was not matched
        funding_rate_bips: For borrowers, the transfer-weighted ask rate of
            the lenders that funded it
        expired: True if the order was excluded before matching
    """

    order_id: int
    side: LoanSide
    matched_amount: int
    effective_rate: int
    maturity_timestamp: int
    feasibility: LoanFeasibility
    funding_rate_bips: Optional[Decimal] = None
    expired: bool = False

    @classmethod
    def unmatched(cls, order: LoanOrder, reason: LoanFeasibility) -> "OrderOutcome":
        return cls(
            order_id=order.order_id,
            side=order.side,
            matched_amount=0,
            effective_rate=0,
            maturity_timestamp=order.maturity_timestamp,
            feasibility=reason,
        )

    @classmethod
    def expired_order(cls, order: LoanOrder) -> "OrderOutcome":
        return cls(
            order_id=order.order_id,
            side=order.side,
            matched_amount=0,
            effective_rate=0,
            maturity_timestamp=order.maturity_timestamp,
            feasibility=LoanFeasibility.NONE,
            expired=True,
        )

    @property
    def is_matched(self) -> bool:
        return self.matched_amount > 0

    def describe(self, asset_symbol: str = "USDC", decimals: int = 0) -> str:
        """Render the one-line human-readable diagnostic."""
        if self.expired:
            return f"Order {self.order_id} expired before matching"

        if not self.is_matched:
            return f"Order {self.order_id} could not be matched: {self.feasibility.value}"

        role = "Lender" if self.side == LoanSide.LENDER else "Borrower"
        return (
            f"{role} {self.order_id} matched "
            f"{format_units(self.matched_amount, decimals)} {asset_symbol} "
            f"at {bips_to_percent(self.effective_rate):.2f}% APR"
        )


@dataclass(frozen=True)
class SettlementPlan:
    """Transfers realizing a matching result, plus per-order diagnostics."""

    transfers: Tuple[LoanTransfer, ...] = ()
    analysis: Dict[int, OrderOutcome] = field(default_factory=dict)

    @property
    def total_transferred(self) -> int:
        return sum(transfer.amount for transfer in self.transfers)

    def describe(self, asset_symbol: str = "USDC", decimals: int = 0) -> Dict[int, str]:
        """Order id to diagnostic line."""
        return {
            order_id: outcome.describe(asset_symbol, decimals)
            for order_id, outcome in self.analysis.items()
        }


def proportional_share(principal: int, matched_amount: int, side_total: int) -> int:
    """Floor of principal * matched / side total; zero for an empty side."""
    if side_total == 0:
        return 0
    return principal * matched_amount // side_total


def _settle_group(
    group: GroupMatch,
    transfers: List[LoanTransfer],
    analysis: Dict[int, OrderOutcome],
    rate_precision: int,
) -> None:
    # Cheapest capital first, then by id
    lenders = sorted(group.lenders, key=lambda order: (order.rate_bips, order.order_id))
    borrowers = sorted(group.borrowers, key=lambda order: order.order_id)

    lender_shares = {
        lender.order_id: proportional_share(
            lender.principal_amount, group.matched_amount, group.total_lender_amount
        )
        for lender in lenders
    }
    lender_remaining = dict(lender_shares)

    for borrower in borrowers:
        borrower_share = proportional_share(
            borrower.principal_amount, group.matched_amount, group.total_borrower_amount
        )
        borrower_remaining = borrower_share
        funded = 0
        weighted_ask = 0

        for lender in lenders:
            if borrower_remaining == 0:
                break

            amount = min(borrower_remaining, lender_remaining[lender.order_id])
            if amount == 0:
                continue

            transfers.append(LoanTransfer(
                lender_order_id=lender.order_id,
                borrower_order_id=borrower.order_id,
                lender=lender.sender,
                borrower=borrower.sender,
                amount=amount,
                rate_bips=group.effective_rate,
                maturity_timestamp=group.maturity_timestamp,
            ))
            lender_remaining[lender.order_id] -= amount
            borrower_remaining -= amount
            funded += amount
            weighted_ask += amount * lender.rate_bips

        analysis[borrower.order_id] = OrderOutcome(
            order_id=borrower.order_id,
            side=borrower.side,
            matched_amount=borrower_share,
            effective_rate=group.effective_rate,
            maturity_timestamp=group.maturity_timestamp,
            feasibility=group.feasibility,
            funding_rate_bips=(
                fixed_point_divide(weighted_ask, funded, rate_precision) if funded else None
            ),
        )

    for lender in lenders:
        analysis[lender.order_id] = OrderOutcome(
            order_id=lender.order_id,
            side=lender.side,
            matched_amount=lender_shares[lender.order_id],
            effective_rate=group.effective_rate,
            maturity_timestamp=group.maturity_timestamp,
            feasibility=group.feasibility,
        )


def compute_transfers(
    result: MatchingResult,
    rate_precision: int = DEFAULT_RATE_PRECISION,
) -> SettlementPlan:
    """
    Convert a winning result into pairwise transfers.

    Groups classified FULL_MATCH, PARTIAL_LENDER or PARTIAL_BORROWER are
    settled; every other order gets an unmatched diagnostic. Borrowers are
    served in order-id order, each drawing on lenders from the lowest ask
    rate up. Zero-amount allocations are never emitted.

    Args:
        result: The selected matching result
        rate_precision: Fractional digits for the funding-rate diagnostic

    Returns:
        SettlementPlan with transfers and per-order diagnostics
    """
    transfers: List[LoanTransfer] = []
    analysis: Dict[int, OrderOutcome] = {}

    for group in result.matchings:
        if group.is_matched:
            _settle_group(group, transfers, analysis, rate_precision)
        else:
            for order in group.orders:
                analysis[order.order_id] = OrderOutcome.unmatched(order, group.feasibility)

    return SettlementPlan(transfers=tuple(transfers), analysis=analysis)
