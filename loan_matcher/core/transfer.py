"""
Loan transfer domain model

This module defines the LoanTransfer class representing one settlement
instruction moving principal from a lender to a borrower.
"""

from dataclasses import dataclass
from typing import Any, Dict

from ..utils.fixed_point import bips_to_percent


@dataclass(frozen=True, slots=True)
class LoanTransfer:
    """
    Represents one pairwise settlement instruction.

    This class is immutable (frozen=True): transfers of a batch are handed to
    the settlement collaborator as one atomic action and never modified.

    Attributes:
        lender_order_id: Order id of the funding lender
        borrower_order_id: Order id of the funded borrower
        lender: Sender address of the lender order
        borrower: Sender address of the borrower order
        amount: Principal moved, in the asset's smallest unit
        rate_bips: Clearing rate of the group in basis points
        maturity_timestamp: Agreed maturity of the loan
    """

    lender_order_id: int
    borrower_order_id: int
    lender: str
    borrower: str
    amount: int
    rate_bips: int
    maturity_timestamp: int

    def __post_init__(self):
        """
        Post-initialization validation.

        Raises:
            ValueError: If transfer parameters are invalid
        """
        if self.amount <= 0:
            raise ValueError(f"Amount must be positive, got {self.amount}")

        if self.rate_bips < 0:
            raise ValueError(f"Rate cannot be negative, got {self.rate_bips}")

        if self.lender_order_id == self.borrower_order_id:
            raise ValueError("Lender and borrower orders must differ")

    @property
    def rate_percent(self):
        """Clearing rate as an annual percentage."""
        return bips_to_percent(self.rate_bips)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert transfer to dictionary for API serialization.

        Returns:
            Dictionary representation of the transfer
        """
        return {
            "lender_order_id": self.lender_order_id,
            "borrower_order_id": self.borrower_order_id,
            "lender": self.lender,
            "borrower": self.borrower,
            "amount": str(self.amount),
            "rate_bips": self.rate_bips,
            "maturity_timestamp": self.maturity_timestamp,
        }

    def __repr__(self) -> str:
        """String representation of the transfer."""
        return (
            f"LoanTransfer({self.lender_order_id} -> {self.borrower_order_id}, "
            f"{self.amount} @ {self.rate_bips}bips, "
            f"maturity={self.maturity_timestamp})"
        )
