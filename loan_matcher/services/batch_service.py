"""
Batch Service - Business logic layer for settling a closed order batch.

This service screens a closed batch, splits it by exact maturity, runs the
matching engine once per maturity group and assembles the combined
settlement plan handed to the external settlement collaborator.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sortedcontainers import SortedDict

from loan_matcher.config import Settings
from loan_matcher.core.matching_engine import LoanMatchingEngine, MatchOutcome
from loan_matcher.core.order import LoanOrder
from loan_matcher.core.partitions import bell_number
from loan_matcher.core.settlement import OrderOutcome
from loan_matcher.core.transfer import LoanTransfer
from loan_matcher.utils.exceptions import DuplicateOrderException


def group_by_maturity(orders: Iterable[LoanOrder]) -> SortedDict:
    """
    Group orders by exact maturity timestamp.

    Returns:
        SortedDict of maturity -> list of orders, earliest maturity first,
        orders kept in submission order within each group
    """
    groups = SortedDict()
    for order in orders:
        groups.setdefault(order.maturity_timestamp, []).append(order)
    return groups


@dataclass(frozen=True)
class BatchSettlement:
    """
    Combined result of settling one closed batch.

    Attributes:
        batch_id: Correlation id supplied by the caller
        outcomes: Per-maturity outcomes, earliest maturity first
        transfers: All transfers, ordered by maturity then calculation order
        analysis: Order id -> diagnostic for every order in the batch
        carry_over: Admitted orders with no matched share, to retry later.
            Keyed on the order's floor-divided share, so an order in a
            settled group whose share rounds down to zero is carried over
            too: it moved no principal.
        expired: Orders excluded because they expired before evaluation
    """

    batch_id: Optional[str]
    outcomes: Tuple[MatchOutcome, ...] = ()
    transfers: Tuple[LoanTransfer, ...] = ()
    analysis: Dict[int, OrderOutcome] = field(default_factory=dict)
    carry_over: Tuple[LoanOrder, ...] = ()
    expired: Tuple[LoanOrder, ...] = ()

    @property
    def total_matched_amount(self) -> int:
        return sum(outcome.total_matched_amount for outcome in self.outcomes)

    @property
    def total_transferred(self) -> int:
        return sum(transfer.amount for transfer in self.transfers)

    @property
    def has_transfers(self) -> bool:
        return bool(self.transfers)

    def describe(self, asset_symbol: str = "USDC", decimals: int = 0) -> Dict[int, str]:
        """Order id to one-line diagnostic."""
        return {
            order_id: outcome.describe(asset_symbol, decimals)
            for order_id, outcome in self.analysis.items()
        }


class BatchService:
    """
    Service class for settling closed loan order batches.

    Provides the boundary between order intake and the matching engine:
    duplicate and expiry screening, maturity grouping, optional parallel
    matching of independent maturity groups, and aggregation.
    """

    def __init__(
        self,
        matching_engine: Optional[LoanMatchingEngine] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize batch service.

        Args:
            matching_engine: Engine used for every maturity group
            settings: Configuration (defaults to the engine's settings)
        """
        self.matching_engine = matching_engine or LoanMatchingEngine(settings)
        self.settings = settings or self.matching_engine.settings
        self.logger = logging.getLogger(f"{__name__}.BatchService")
        self.logger.info("BatchService initialized")

    def settle_batch(
        self,
        orders: Sequence[LoanOrder],
        batch_id: Optional[str] = None,
        evaluated_at: Optional[int] = None,
    ) -> BatchSettlement:
        """
        Settle one closed batch.

        Args:
            orders: Every order collected during the batch window
            batch_id: Correlation id for logs and the response
            evaluated_at: Unix time used to drop expired orders (no screening if None)

        Returns:
            BatchSettlement with transfers, diagnostics and carry-over orders

        Raises:
            InvalidInputException: If an order is invalid, ids repeat, or a
                maturity group exceeds the configured batch size
            ArithmeticOverflowException: If an amount exceeds uint256
        """
        batch = tuple(orders)
        self._check_unique_ids(batch)

        live, expired = self.screen_expired(batch, evaluated_at)
        groups = group_by_maturity(live)

        self.logger.info(
            f"Processing batch {batch_id} with {len(batch)} loan orders "
            f"({len(expired)} expired) across {len(groups)} maturities"
        )

        outcomes = self._match_groups(groups, batch_id)

        transfers: List[LoanTransfer] = []
        analysis: Dict[int, OrderOutcome] = {}
        for outcome in outcomes:
            transfers.extend(outcome.transfers)
            analysis.update(outcome.plan.analysis)
        for order in expired:
            analysis[order.order_id] = OrderOutcome.expired_order(order)

        # Zero floor share means no principal moved, even in a settled group
        carry_over = tuple(order for order in live if not analysis[order.order_id].is_matched)

        settlement = BatchSettlement(
            batch_id=batch_id,
            outcomes=outcomes,
            transfers=tuple(transfers),
            analysis=analysis,
            carry_over=carry_over,
            expired=expired,
        )

        if settlement.has_transfers:
            self.logger.info(
                f"Batch {batch_id} settled: {len(settlement.transfers)} transfers, "
                f"matched {settlement.total_matched_amount}, "
                f"{len(carry_over)} orders carried over"
            )
        else:
            self.logger.info(f"No matches found in batch {batch_id}")

        return settlement

    def screen_expired(
        self,
        orders: Tuple[LoanOrder, ...],
        evaluated_at: Optional[int],
    ) -> Tuple[Tuple[LoanOrder, ...], Tuple[LoanOrder, ...]]:
        """
        Split orders into live and expired at `evaluated_at`.

        Returns:
            Tuple of (live, expired)
        """
        if evaluated_at is None:
            return orders, ()

        live = tuple(order for order in orders if not order.is_expired(evaluated_at))
        expired = tuple(order for order in orders if order.is_expired(evaluated_at))
        for order in expired:
            self.logger.debug(f"Order {order.order_id} expired at {order.expiry}")
        return live, expired

    def _match_groups(
        self,
        groups: SortedDict,
        batch_id: Optional[str],
    ) -> Tuple[MatchOutcome, ...]:
        """Match every maturity group, in parallel when configured."""
        if self.settings.max_workers > 1 and len(groups) > 1:
            with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
                futures = [
                    executor.submit(self.matching_engine.match_batch, group, batch_id)
                    for group in groups.values()
                ]
                return tuple(future.result() for future in futures)

        return tuple(
            self.matching_engine.match_batch(group, batch_id)
            for group in groups.values()
        )

    def _check_unique_ids(self, orders: Tuple[LoanOrder, ...]) -> None:
        """
        Reject batches in which an order id appears twice.

        Raises:
            DuplicateOrderException: On the first repeated id
        """
        seen = set()
        for order in orders:
            if order.order_id in seen:
                raise DuplicateOrderException(
                    f"Order {order.order_id} appears more than once in batch",
                    details={"order_id": order.order_id}
                )
            seen.add(order.order_id)

    def get_limits(self) -> Dict[str, int]:
        """
        Get the configured search limits.

        Returns:
            Dictionary with max batch size and the partition count it implies
        """
        max_batch_size = self.matching_engine.max_batch_size
        return {
            "max_batch_size": max_batch_size,
            "max_partitions": bell_number(max_batch_size),
            "rate_precision": self.settings.rate_precision,
        }
