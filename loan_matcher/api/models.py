"""
Pydantic models for API request/response validation.

This module defines all data models used by the batch matching REST API.
Amounts travel as decimal-integer strings so that no precision is lost
between the client and the uint256 settlement range.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, Field, ConfigDict

from loan_matcher.core.order import LoanOrder, LoanSide
from loan_matcher.core.settlement import OrderOutcome
from loan_matcher.core.transfer import LoanTransfer
from loan_matcher.core.matching_engine import MatchOutcome
from loan_matcher.utils.validators import sanitize_int

AMOUNT_PATTERN = r'^\d+$'


# ============================================================================
# Request Models
# ============================================================================

class LoanOrderRequest(BaseModel):
    """Request model for one lender or borrower order in a batch."""

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "order_id": 1,
            "side": "lender",
            "principal_amount": "10000",
            "rate_bips": 500,
            "maturity_timestamp": 1767225600,
            "sender": "0x1111111111111111111111111111111111111111"
        }
    })

    order_id: int = Field(..., ge=0, description="Unique order id within the batch")
    side: str = Field(
        ...,
        description="Order side: lender or borrower",
        pattern=r'^(lender|borrower)$'
    )
    principal_amount: str = Field(
        ...,
        description="Principal in the asset's smallest unit, as integer string",
        pattern=AMOUNT_PATTERN
    )
    rate_bips: int = Field(
        ...,
        ge=0,
        description="Minimum (lender) or maximum (borrower) rate in basis points"
    )
    maturity_timestamp: int = Field(..., ge=0, description="Loan maturity (unix seconds)")
    sender: str = Field(..., min_length=1, description="Address of the order creator")
    min_principal: Optional[str] = Field(None, pattern=AMOUNT_PATTERN)
    max_principal: Optional[str] = Field(None, pattern=AMOUNT_PATTERN)
    min_rate_bips: Optional[int] = Field(None, ge=0)
    max_rate_bips: Optional[int] = Field(None, ge=0)
    expiry: Optional[int] = Field(None, ge=0, description="Unix time after which the order is void")
    collateral_required: Optional[str] = Field(None, pattern=AMOUNT_PATTERN)

    def to_loan_order(self) -> LoanOrder:
        """
        Convert to a validated LoanOrder.

        Raises:
            InvalidOrderException: If the order is self-contradictory
            ArithmeticOverflowException: If an amount exceeds uint256
        """
        return LoanOrder(
            side=LoanSide[self.side.upper()],
            principal_amount=sanitize_int(self.principal_amount, "principal_amount"),
            rate_bips=self.rate_bips,
            maturity_timestamp=self.maturity_timestamp,
            sender=self.sender,
            order_id=self.order_id,
            min_principal=_optional_int(self.min_principal, "min_principal"),
            max_principal=_optional_int(self.max_principal, "max_principal"),
            min_rate_bips=self.min_rate_bips,
            max_rate_bips=self.max_rate_bips,
            expiry=self.expiry,
            collateral_required=_optional_int(self.collateral_required, "collateral_required"),
        )


class BatchMatchRequest(BaseModel):
    """Request model for matching one closed batch."""

    batch_id: Optional[str] = Field(None, max_length=128, description="Caller correlation id")
    evaluated_at: Optional[int] = Field(
        None,
        ge=0,
        description="Unix time used to exclude expired orders"
    )
    orders: List[LoanOrderRequest] = Field(..., description="Orders in the closed batch")

    def to_loan_orders(self) -> List[LoanOrder]:
        """Convert every order in the request."""
        return [order.to_loan_order() for order in self.orders]


def _optional_int(value: Optional[str], field_name: str) -> Optional[int]:
    return sanitize_int(value, field_name) if value is not None else None


# ============================================================================
# Response Models
# ============================================================================

class TransferResponse(BaseModel):
    """Response model for one lender-to-borrower transfer."""

    lender_order_id: int
    borrower_order_id: int
    lender: str
    borrower: str
    amount: str = Field(..., description="Principal moved, as integer string")
    rate_bips: int = Field(..., description="Clearing rate of the group")
    maturity_timestamp: int

    @classmethod
    def from_transfer(cls, transfer: LoanTransfer) -> 'TransferResponse':
        """Create from LoanTransfer object."""
        return cls(**transfer.to_dict())


class OrderOutcomeResponse(BaseModel):
    """Response model for one order's diagnostic."""

    order_id: int
    side: str = Field(..., description="lender or borrower")
    matched_amount: str
    effective_rate_bips: int
    maturity_timestamp: int
    feasibility: str = Field(..., description="Group classification or rejection reason")
    funding_rate_bips: Optional[str] = Field(
        None,
        description="Transfer-weighted ask rate of the lenders funding a borrower"
    )
    expired: bool = False
    description: str

    @classmethod
    def from_outcome(
        cls,
        outcome: OrderOutcome,
        asset_symbol: str = "USDC",
        decimals: int = 0,
    ) -> 'OrderOutcomeResponse':
        """Create from OrderOutcome object."""
        return cls(
            order_id=outcome.order_id,
            side=outcome.side.value.lower(),
            matched_amount=str(outcome.matched_amount),
            effective_rate_bips=outcome.effective_rate,
            maturity_timestamp=outcome.maturity_timestamp,
            feasibility=outcome.feasibility.name,
            funding_rate_bips=(
                str(outcome.funding_rate_bips) if outcome.funding_rate_bips is not None else None
            ),
            expired=outcome.expired,
            description=outcome.describe(asset_symbol, decimals),
        )


class MaturityResultResponse(BaseModel):
    """Response model for the winning result of one maturity group."""

    maturity_timestamp: int
    order_count: int
    matched: bool
    feasibility_type: str
    total_matched_amount: str
    unmatched_lender_amount: str
    unmatched_borrower_amount: str
    average_rate_bips: str
    matching_efficiency: str
    partitions_considered: int
    partitions_feasible: int
    execution_time_ms: float

    @classmethod
    def from_outcome(cls, outcome: MatchOutcome) -> 'MaturityResultResponse':
        """Create from MatchOutcome object."""
        best = outcome.best_result
        lender_total = sum(o.principal_amount for o in outcome.orders if o.is_lender)
        borrower_total = sum(o.principal_amount for o in outcome.orders if o.is_borrower)
        return cls(
            maturity_timestamp=outcome.orders[0].maturity_timestamp,
            order_count=len(outcome.orders),
            matched=outcome.matched,
            feasibility_type=outcome.feasibility_type.name,
            total_matched_amount=str(outcome.total_matched_amount),
            unmatched_lender_amount=str(best.unmatched_lender_amount if best else lender_total),
            unmatched_borrower_amount=str(best.unmatched_borrower_amount if best else borrower_total),
            average_rate_bips=str(best.average_rate) if best else "0",
            matching_efficiency=str(best.matching_efficiency) if best else "0",
            partitions_considered=outcome.stats.partitions_considered,
            partitions_feasible=outcome.stats.partitions_feasible,
            execution_time_ms=round(outcome.execution_time_ms, 3),
        )


class BatchMatchResponse(BaseModel):
    """Response model for a settled batch."""

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "batch_id": "batch-42",
            "matched": True,
            "total_matched_amount": "20000",
            "transfers": [
                {
                    "lender_order_id": 1,
                    "borrower_order_id": 2,
                    "lender": "0x1111111111111111111111111111111111111111",
                    "borrower": "0x2222222222222222222222222222222222222222",
                    "amount": "20000",
                    "rate_bips": 475,
                    "maturity_timestamp": 1767225600
                }
            ],
            "maturities": [],
            "outcomes": [],
            "carry_over": [],
            "expired": [],
            "timestamp": "2026-01-01T00:00:00Z"
        }
    })

    batch_id: Optional[str] = None
    matched: bool = Field(..., description="True if at least one transfer was produced")
    total_matched_amount: str
    transfers: List[TransferResponse] = Field(default_factory=list)
    maturities: List[MaturityResultResponse] = Field(default_factory=list)
    outcomes: List[OrderOutcomeResponse] = Field(default_factory=list)
    carry_over: List[int] = Field(default_factory=list, description="Order ids to retry later")
    expired: List[int] = Field(default_factory=list, description="Order ids dropped as expired")
    timestamp: datetime

    @classmethod
    def from_settlement(
        cls,
        settlement: 'BatchSettlement',
        timestamp: datetime,
        asset_symbol: str = "USDC",
        decimals: int = 0,
    ) -> 'BatchMatchResponse':
        """Create from BatchSettlement object."""
        return cls(
            batch_id=settlement.batch_id,
            matched=settlement.has_transfers,
            total_matched_amount=str(settlement.total_matched_amount),
            transfers=[TransferResponse.from_transfer(t) for t in settlement.transfers],
            maturities=[MaturityResultResponse.from_outcome(o) for o in settlement.outcomes],
            outcomes=[
                OrderOutcomeResponse.from_outcome(outcome, asset_symbol, decimals)
                for _, outcome in sorted(settlement.analysis.items())
            ],
            carry_over=[order.order_id for order in settlement.carry_over],
            expired=[order.order_id for order in settlement.expired],
            timestamp=timestamp,
        )


class BatchLimitsResponse(BaseModel):
    """Response model for the configured search limits."""

    max_batch_size: int = Field(..., description="Largest batch searched exhaustively")
    max_partitions: int = Field(..., description="Bell(max_batch_size)")
    rate_precision: int = Field(..., description="Fractional digits of reported rates")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Check timestamp")
    version: str = Field(..., description="API version")
    matching_engine: Dict[str, Any] = Field(..., description="Matching engine limits")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error timestamp")
