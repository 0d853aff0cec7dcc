"""
REST API endpoints for batch matching.

Provides endpoints for settling a closed batch and for inspecting the
configured search limits.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Depends, status

from loan_matcher.api.models import (
    BatchMatchRequest,
    BatchMatchResponse,
    BatchLimitsResponse,
    ErrorResponse
)
from loan_matcher.services.batch_service import BatchService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/v1/batches", tags=["batches"])


# Dependency injection for BatchService
# This will be overridden in main.py with actual instance
_batch_service: BatchService = None


def get_batch_service() -> BatchService:
    """Dependency to get BatchService instance."""
    if _batch_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Batch service not initialized"
        )
    return _batch_service


def set_batch_service(service: BatchService) -> None:
    """Set the global BatchService instance."""
    global _batch_service
    _batch_service = service


@router.post(
    "/match",
    response_model=BatchMatchResponse,
    summary="Match a closed batch",
    description="Search every partition of each maturity group for the best "
                "matching and return the resulting transfers.",
    responses={
        200: {
            "description": "Batch matched (possibly with zero transfers)",
            "model": BatchMatchResponse
        },
        400: {
            "description": "Invalid order or batch",
            "model": ErrorResponse
        },
        422: {
            "description": "Validation error or arithmetic overflow",
            "model": ErrorResponse
        },
        503: {
            "description": "Service unavailable"
        }
    }
)
def match_batch(
    batch_request: BatchMatchRequest,
    batch_service: BatchService = Depends(get_batch_service)
) -> BatchMatchResponse:
    """
    Match a closed batch of loan orders.

    **Request Body:**
    - `batch_id`: Optional correlation id
    - `evaluated_at`: Optional unix time; orders expired by then are excluded
    - `orders`: Lender and borrower orders, amounts as integer strings

    **Response:**
    - Transfers, per-maturity summaries, per-order diagnostics and the ids
      of orders to carry over into the next batch

    A batch with nothing to match is not an error: it returns `matched: false`
    and every order in `carry_over`.
    """
    logger.info(
        f"Received batch {batch_request.batch_id} with {len(batch_request.orders)} orders"
    )

    orders = batch_request.to_loan_orders()
    settlement = batch_service.settle_batch(
        orders,
        batch_id=batch_request.batch_id,
        evaluated_at=batch_request.evaluated_at,
    )

    settings = batch_service.settings
    return BatchMatchResponse.from_settlement(
        settlement,
        timestamp=datetime.now(timezone.utc),
        asset_symbol=settings.asset_symbol,
        decimals=settings.asset_decimals,
    )


@router.get(
    "/limits",
    response_model=BatchLimitsResponse,
    summary="Get search limits",
    description="Largest batch searched exhaustively and the partition count it implies"
)
def get_limits(
    batch_service: BatchService = Depends(get_batch_service)
) -> BatchLimitsResponse:
    """Get the configured batch size limit."""
    return BatchLimitsResponse(**batch_service.get_limits())
