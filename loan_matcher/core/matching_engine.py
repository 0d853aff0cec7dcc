"""
Batch matching engine for two-sided loan orders.

Runs the full pipeline for one closed batch: partition enumeration,
feasibility filtering, result evaluation, best-result selection and
settlement transfer calculation. The engine holds configuration and a
logger only; every call works on its own immutable snapshot of orders.
"""

import itertools
import time
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence, Tuple

from .evaluator import MatchingResult, evaluate_partition
from .feasibility import check_group, is_partition_feasible
from .order import LoanFeasibility, LoanOrder
from .partitions import PartitionSpace
from .selector import select_best_result
from .settlement import OrderOutcome, SettlementPlan, compute_transfers
from .transfer import LoanTransfer
from ..config import Settings, get_settings
from ..utils.exceptions import MaturityMismatchException
from ..utils.logger import get_logger


@dataclass
class SearchStats:
    """Counters for one partition search."""
    partitions_considered: int = 0
    partitions_feasible: int = 0
    candidates: int = 0


@dataclass(frozen=True)
class MatchOutcome:
    """
    Result of matching one batch.

    A batch in which no partition matches anything is a normal outcome:
    best_result is None, the feasibility type is NONE and there are no
    transfers. The orders are expected to be retried in a later batch.

    Attributes:
        orders: The batch that was matched
        best_result: Winning matching result, or None if nothing matched
        plan: Transfers and per-order diagnostics
        stats: Partition search counters
        execution_time_ms: Wall time of the search
    """

    orders: Tuple[LoanOrder, ...]
    best_result: Optional[MatchingResult]
    plan: SettlementPlan
    stats: SearchStats = field(default_factory=SearchStats)
    execution_time_ms: float = 0.0

    @classmethod
    def no_feasible_partition(
        cls,
        orders: Tuple[LoanOrder, ...],
        stats: SearchStats,
        execution_time_ms: float,
    ) -> "MatchOutcome":
        """Typed empty outcome for a batch in which nothing can be matched."""
        reason = cls.batch_rejection_reason(orders)
        analysis = {order.order_id: OrderOutcome.unmatched(order, reason) for order in orders}
        return cls(
            orders=orders,
            best_result=None,
            plan=SettlementPlan(transfers=(), analysis=analysis),
            stats=stats,
            execution_time_ms=execution_time_ms,
        )

    @staticmethod
    def batch_rejection_reason(orders: Tuple[LoanOrder, ...]) -> LoanFeasibility:
        """Why the batch as a whole cannot form one group (NONE if it can)."""
        return check_group(orders) or LoanFeasibility.NONE

    @property
    def no_match_reason(self) -> LoanFeasibility:
        return self.batch_rejection_reason(self.orders)

    @property
    def matched(self) -> bool:
        return self.best_result is not None

    @property
    def feasibility_type(self) -> LoanFeasibility:
        if self.best_result is None:
            return LoanFeasibility.NONE
        return self.best_result.feasibility_type

    @property
    def transfers(self) -> Tuple[LoanTransfer, ...]:
        return self.plan.transfers

    @property
    def total_matched_amount(self) -> int:
        if self.best_result is None:
            return 0
        return self.best_result.total_matched_amount


class LoanMatchingEngine:
    """
    Batch matching engine for lender and borrower orders.

    Searches every partition of a batch for the one maximizing matched
    volume, with ties broken by matching efficiency and then by the lower
    average clearing rate, and converts the winner into transfers.

    Batches must be small: the search visits Bell(n) partitions, and
    batches above settings.max_batch_size are rejected up front.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize the matching engine.

        The structured logger is a process-wide singleton created by the
        first engine: the log level, log directory and JSON flag of later
        engines' settings are ignored.

        Args:
            settings: Configuration (defaults to the global settings)
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(
            log_level=self.settings.log_level,
            log_dir=self.settings.log_dir,
            use_json=self.settings.use_json_logs,
        )

    @property
    def max_batch_size(self) -> int:
        return self.settings.max_batch_size

    def match_batch(
        self,
        orders: Sequence[LoanOrder],
        batch_id: Optional[str] = None,
    ) -> MatchOutcome:
        """
        Match one closed batch of orders.

        Args:
            orders: Immutable batch, all sharing one maturity
            batch_id: Correlation id for logging

        Returns:
            MatchOutcome with the winning result and its transfers

        Raises:
            InvalidInputException: If an order is invalid, the batch is too large
                or its orders span more than one maturity
            ArithmeticOverflowException: If an amount exceeds uint256
        """
        start_time = time.perf_counter()
        batch = tuple(orders)
        maturity = batch[0].maturity_timestamp if batch else None

        try:
            for order in batch:
                order.validate()
            self._check_single_maturity(batch)

            space = PartitionSpace(batch, self.max_batch_size)

            self.logger.log_batch_received(
                batch_id,
                len(batch),
                sum(1 for order in batch if order.is_lender),
                sum(1 for order in batch if order.is_borrower),
                len(space),
                maturity=maturity,
            )

            stats = SearchStats()
            candidates = self._feasible_results(space, stats)
            first = next(candidates, None)

            if first is None:
                elapsed_ms = (time.perf_counter() - start_time) * 1000
                outcome = MatchOutcome.no_feasible_partition(batch, stats, elapsed_ms)
                self.logger.log_search_summary(
                    batch_id, stats.partitions_considered, stats.partitions_feasible,
                    stats.candidates, elapsed_ms, maturity=maturity,
                )
                self.logger.log_no_match(
                    batch_id, len(batch), outcome.no_match_reason.value, maturity=maturity
                )
                return outcome

            best = select_best_result(itertools.chain((first,), candidates))
            plan = compute_transfers(best, self.settings.rate_precision)
            elapsed_ms = (time.perf_counter() - start_time) * 1000

        except Exception as e:
            self.logger.log_error(f"Error matching batch {batch_id}", e, batch_id=batch_id)
            raise

        self.logger.log_search_summary(
            batch_id, stats.partitions_considered, stats.partitions_feasible,
            stats.candidates, elapsed_ms, maturity=maturity,
        )
        self.logger.log_best_result(
            batch_id,
            best.total_matched_amount,
            best.average_borrower_rate,
            best.matching_efficiency,
            best.feasibility_type.name,
            maturity=maturity,
        )
        for transfer in plan.transfers:
            self.logger.log_transfer(
                batch_id,
                transfer.lender_order_id,
                transfer.borrower_order_id,
                transfer.amount,
                transfer.rate_bips,
                transfer.maturity_timestamp,
            )

        return MatchOutcome(
            orders=batch,
            best_result=best,
            plan=plan,
            stats=stats,
            execution_time_ms=elapsed_ms,
        )

    def evaluate_all(self, orders: Sequence[LoanOrder]) -> Iterator[MatchingResult]:
        """
        Lazily evaluate every feasible partition of a batch.

        Includes results that match nothing; useful for inspection and tests.
        """
        batch = tuple(orders)
        self._check_single_maturity(batch)
        space = PartitionSpace(batch, self.max_batch_size)
        for partition in space:
            if is_partition_feasible(partition):
                yield evaluate_partition(partition, self.settings.rate_precision)

    def _check_single_maturity(self, batch: Tuple[LoanOrder, ...]) -> None:
        """
        Reject a batch whose orders do not all share one maturity.

        Raises:
            MaturityMismatchException: If more than one maturity is present
        """
        maturities = sorted({order.maturity_timestamp for order in batch})
        if len(maturities) > 1:
            raise MaturityMismatchException(
                f"Batch spans {len(maturities)} maturities; group orders by maturity first",
                details={"maturities": maturities}
            )

    def _feasible_results(
        self,
        space: PartitionSpace,
        stats: SearchStats,
    ) -> Iterator[MatchingResult]:
        """Stream evaluated results that match a positive amount."""
        for partition in space:
            stats.partitions_considered += 1
            if not is_partition_feasible(partition):
                continue
            stats.partitions_feasible += 1

            result = evaluate_partition(partition, self.settings.rate_precision)
            if result.feasible:
                stats.candidates += 1
                yield result
