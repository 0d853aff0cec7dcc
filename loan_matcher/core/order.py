"""
Loan order domain model with enums and validation

This module defines the LoanOrder class and related enums representing
lender and borrower requests in the loan matcher.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, Tuple

from ..utils.validators import (
    validate_amount,
    validate_bounds,
    validate_rate,
    validate_sender,
    validate_timestamp,
)
from ..utils.exceptions import InvalidOrderException


class LoanSide(Enum):
    """Order side enumeration."""
    LENDER = "LENDER"      # Supplies principal at a minimum rate
    BORROWER = "BORROWER"  # Requests principal at a maximum rate

    def __str__(self) -> str:
        return self.value


class LoanFeasibility(Enum):
    """Classification of a matching group or of a whole matching result."""
    NONE = "No compatible lenders and borrowers"
    FULL_MATCH = "All orders fully matched at optimal rates"
    PARTIAL_LENDER = "Lenders partially matched, borrowers fully matched"
    PARTIAL_BORROWER = "Borrowers partially matched, lenders fully matched"
    PARTIAL_BOTH = "Both sides partially matched"
    NO_RATE_OVERLAP = "No overlap between lender min and borrower max rates"
    MATURITY_MISMATCH = "No compatible maturity dates"
    ONE_SIDED = "Group contains only lenders or only borrowers"

    def __str__(self) -> str:
        return self.name

    @property
    def is_match(self) -> bool:
        """Check if this classification moves principal."""
        return self in (
            LoanFeasibility.FULL_MATCH,
            LoanFeasibility.PARTIAL_LENDER,
            LoanFeasibility.PARTIAL_BORROWER,
            LoanFeasibility.PARTIAL_BOTH,
        )


@dataclass(frozen=True, slots=True)
class LoanOrder:
    """
    Represents a lender or borrower request admitted to a batch.

    Orders are immutable (frozen=True): the matcher only reads them, and every
    matching result or transfer refers back to the order by its id.

    Attributes:
        side: LENDER or BORROWER
        principal_amount: Principal in the asset's smallest unit
        rate_bips: Minimum (lender) or maximum (borrower) rate in basis points
        maturity_timestamp: Loan maturity as unix seconds
        sender: Address of the order creator
        order_id: Unique identifier within the batch
        min_principal: Optional lower bound on principal
        max_principal: Optional upper bound on principal
        min_rate_bips: Optional lower bound on rate
        max_rate_bips: Optional upper bound on rate
        expiry: Optional unix time after which the order is void
        collateral_required: Collateral posted with a borrower order
        created_block: Block in which the order was submitted
    """

    side: LoanSide
    principal_amount: int
    rate_bips: int
    maturity_timestamp: int
    sender: str
    order_id: int
    min_principal: Optional[int] = None
    max_principal: Optional[int] = None
    min_rate_bips: Optional[int] = None
    max_rate_bips: Optional[int] = None
    expiry: Optional[int] = None
    collateral_required: Optional[int] = None
    created_block: Optional[int] = None

    def __post_init__(self):
        """
        Post-initialization validation.

        Raises:
            InvalidOrderException: If order parameters are invalid
            ArithmeticOverflowException: If a value exceeds uint256
        """
        self.validate()

    def validate(self) -> None:
        """
        Validate order parameters.

        Raises:
            InvalidOrderException: If validation fails
            ArithmeticOverflowException: If a value exceeds uint256
        """
        if not isinstance(self.side, LoanSide):
            raise InvalidOrderException(
                f"Invalid side: {self.side!r}",
                details={"order_id": self.order_id}
            )

        if isinstance(self.order_id, bool) or not isinstance(self.order_id, int) or self.order_id < 0:
            raise InvalidOrderException(
                f"Order id must be a non-negative integer, got {self.order_id!r}",
                details={"order_id": self.order_id}
            )

        validate_amount(self.principal_amount, "principal_amount", self.order_id)
        validate_rate(self.rate_bips, "rate_bips", self.order_id)
        validate_timestamp(self.maturity_timestamp, "maturity_timestamp", self.order_id)
        validate_sender(self.sender, self.order_id)

        for name in ("min_principal", "max_principal", "collateral_required"):
            value = getattr(self, name)
            if value is not None:
                validate_amount(value, name, self.order_id, allow_zero=True)

        for name in ("min_rate_bips", "max_rate_bips"):
            value = getattr(self, name)
            if value is not None:
                validate_rate(value, name, self.order_id)

        for name in ("expiry", "created_block"):
            value = getattr(self, name)
            if value is not None:
                validate_amount(value, name, self.order_id, allow_zero=True)

        validate_bounds(
            self.min_principal, self.max_principal, self.principal_amount,
            "principal", self.order_id,
        )
        validate_bounds(
            self.min_rate_bips, self.max_rate_bips, self.rate_bips,
            "rate", self.order_id,
        )

    @property
    def is_lender(self) -> bool:
        """Check if this is a lender order."""
        return self.side == LoanSide.LENDER

    @property
    def is_borrower(self) -> bool:
        """Check if this is a borrower order."""
        return self.side == LoanSide.BORROWER

    def is_expired(self, at_timestamp: int) -> bool:
        """
        Check if the order has expired at the given unix time.

        Orders without an expiry never expire.
        """
        return self.expiry is not None and self.expiry <= at_timestamp

    def __repr__(self) -> str:
        """String representation of the order."""
        return (
            f"LoanOrder(id={self.order_id}, {self.side.value} "
            f"{self.principal_amount} @ {self.rate_bips}bips, "
            f"maturity={self.maturity_timestamp})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert order to dictionary for API serialization."""
        return {
            "order_id": self.order_id,
            "side": self.side.value,
            "principal_amount": str(self.principal_amount),
            "rate_bips": self.rate_bips,
            "maturity_timestamp": self.maturity_timestamp,
            "sender": self.sender,
            "min_principal": str(self.min_principal) if self.min_principal is not None else None,
            "max_principal": str(self.max_principal) if self.max_principal is not None else None,
            "min_rate_bips": self.min_rate_bips,
            "max_rate_bips": self.max_rate_bips,
            "expiry": self.expiry,
        }


# A matching group is a non-empty subset of a batch, evaluated jointly.
MatchingGroup = Tuple[LoanOrder, ...]

# A partition is a tuple of disjoint groups covering the batch exactly once.
Partition = Tuple[MatchingGroup, ...]


def split_sides(group: MatchingGroup) -> Tuple[Tuple[LoanOrder, ...], Tuple[LoanOrder, ...]]:
    """
    Split a group into its lender and borrower orders, preserving order.

    Returns:
        Tuple of (lenders, borrowers)
    """
    lenders = tuple(order for order in group if order.is_lender)
    borrowers = tuple(order for order in group if order.is_borrower)
    return lenders, borrowers
