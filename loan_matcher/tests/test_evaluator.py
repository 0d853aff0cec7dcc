"""
Tests for result evaluation and best-result selection.
"""

from decimal import Decimal

import pytest

from loan_matcher.core.evaluator import (
    determine_feasibility_type,
    evaluate_group,
    evaluate_partition,
)
from loan_matcher.core.order import LoanFeasibility
from loan_matcher.core.partitions import iter_partitions
from loan_matcher.core.selector import is_better, select_best_result
from loan_matcher.utils.exceptions import ArithmeticOverflowException, EmptyResultSetException
from loan_matcher.utils.validators import UINT256_MAX
from loan_matcher.tests.factories import borrower, lender


class TestGroupEvaluation:
    """Single group scoring."""

    def test_full_match(self):
        """Equal sides clear fully at the rate midpoint."""
        group = (lender(1, 10_000, 400), borrower(2, 10_000, 600))
        match = evaluate_group(group)

        assert match.feasibility == LoanFeasibility.FULL_MATCH
        assert match.matched_amount == 10_000
        assert match.effective_rate == 500

    def test_midpoint_floors(self):
        """The clearing rate is the floor of the midpoint."""
        group = (lender(1, 10_000, 401), borrower(2, 10_000, 600))
        assert evaluate_group(group).effective_rate == 500

    def test_partial_lender(self):
        """Excess supply leaves lenders partially matched."""
        group = (lender(1, 30_000, 400), borrower(2, 20_000, 600))
        match = evaluate_group(group)

        assert match.feasibility == LoanFeasibility.PARTIAL_LENDER
        assert match.matched_amount == 20_000

    def test_partial_borrower(self):
        """Excess demand leaves borrowers partially matched."""
        group = (lender(1, 5_000, 400), borrower(2, 20_000, 600))
        match = evaluate_group(group)

        assert match.feasibility == LoanFeasibility.PARTIAL_BORROWER
        assert match.matched_amount == 5_000

    def test_singleton_is_unmatched(self):
        """A singleton keeps its own maturity and matches nothing."""
        order = lender(1, 10_000, 400)
        match = evaluate_group((order,))

        assert match.feasibility == LoanFeasibility.NONE
        assert match.matched_amount == 0
        assert match.effective_rate == 0
        assert match.maturity_timestamp == order.maturity_timestamp

    def test_uses_extreme_rates(self):
        """Clearing uses the cheapest lender and richest borrower."""
        group = (
            lender(1, 5_000, 300),
            lender(2, 5_000, 700),
            borrower(3, 5_000, 500),
            borrower(4, 5_000, 900),
        )
        assert evaluate_group(group).effective_rate == 600

    def test_total_overflow(self):
        """Totals beyond uint256 abort evaluation."""
        group = (lender(1, UINT256_MAX, 1), lender(2, 1, 1))
        with pytest.raises(ArithmeticOverflowException):
            evaluate_group(group)


class TestPartitionEvaluation:
    """Partition-wide aggregates."""

    def test_aggregates(self):
        """Totals, averages and efficiency are computed exactly."""
        partition = (
            (lender(1, 15_000, 400), borrower(2, 15_000, 550)),
            (lender(3, 20_000, 600), borrower(4, 20_000, 600)),
        )
        result = evaluate_partition(partition)

        assert result.total_matched_amount == 35_000
        assert result.unmatched_lender_amount == 0
        assert result.unmatched_borrower_amount == 0
        assert result.matching_efficiency == Decimal("1")
        # (475 * 15000 + 600 * 20000) / 35000
        assert result.average_rate == Decimal("546.4285")
        assert result.average_lender_rate == result.average_borrower_rate
        assert result.rate_spread == 0
        assert result.feasibility_type == LoanFeasibility.FULL_MATCH
        assert result.feasible

    def test_nothing_matched(self):
        """All singletons give a zero, infeasible result."""
        partition = ((lender(1, 100, 400),), (borrower(2, 100, 500),))
        result = evaluate_partition(partition)

        assert result.total_matched_amount == 0
        assert result.average_rate == 0
        assert result.matching_efficiency == 0
        assert not result.feasible
        assert result.feasibility_type == LoanFeasibility.NONE

    def test_efficiency_truncates(self):
        """Efficiency keeps four digits, truncated."""
        partition = ((lender(1, 10_000, 400), borrower(2, 20_000, 600)),)
        result = evaluate_partition(partition)

        # 2 * 10000 / 30000
        assert result.matching_efficiency == Decimal("0.6666")
        assert result.unmatched_borrower_amount == 10_000

    def test_unmatched_never_negative(self):
        """Matched volume never exceeds either side's total."""
        orders = [lender(1, 7_000, 400), lender(2, 3_000, 450), borrower(3, 5_000, 600)]
        for partition in iter_partitions(orders):
            result = evaluate_partition(partition)
            for group in result.matchings:
                assert group.matched_amount <= min(
                    group.total_lender_amount, group.total_borrower_amount
                )
            assert result.unmatched_lender_amount >= 0
            assert result.unmatched_borrower_amount >= 0

    def test_feasibility_type_combinations(self):
        """Mixed partial groups classify as PARTIAL_BOTH."""
        partition = (
            (lender(1, 30_000, 400), borrower(2, 20_000, 600)),
            (lender(3, 5_000, 400), borrower(4, 20_000, 600)),
        )
        result = evaluate_partition(partition)

        assert result.feasibility_type == LoanFeasibility.PARTIAL_BOTH
        assert determine_feasibility_type(result.matchings[:1]) == LoanFeasibility.PARTIAL_LENDER
        assert determine_feasibility_type(()) == LoanFeasibility.NONE


class TestSelector:
    """Deterministic best-result selection."""

    def _result(self, *groups):
        return evaluate_partition(groups)

    def test_empty_raises(self):
        """Selecting from no candidates is a contract violation."""
        with pytest.raises(EmptyResultSetException):
            select_best_result([])

    def test_volume_first(self):
        """Larger matched volume wins regardless of rate."""
        small = self._result((lender(1, 10_000, 100), borrower(2, 10_000, 200)))
        large = self._result((lender(3, 20_000, 900), borrower(4, 20_000, 1_000)))

        assert select_best_result([small, large]) is large

    def test_efficiency_breaks_volume_tie(self):
        """Equal volume falls back to efficiency."""
        efficient = self._result((lender(1, 10_000, 400), borrower(2, 10_000, 600)))
        wasteful = self._result(
            (lender(3, 10_000, 400), borrower(4, 10_000, 600)),
            (lender(5, 5_000, 400),),
        )

        assert is_better(efficient, wasteful)
        assert select_best_result([wasteful, efficient]) is efficient

    def test_rate_breaks_efficiency_tie(self):
        """Equal volume and efficiency prefer the lower rate."""
        cheap = self._result((lender(1, 10_000, 300), borrower(2, 10_000, 500)))
        dear = self._result((lender(3, 10_000, 500), borrower(4, 10_000, 700)))

        assert select_best_result([dear, cheap]) is cheap

    def test_exact_tie_keeps_first(self):
        """First-seen wins an exact tie, run after run."""
        first = self._result((lender(1, 10_000, 400), borrower(2, 10_000, 600)))
        second = self._result((lender(3, 10_000, 400), borrower(4, 10_000, 600)))

        assert not is_better(second, first)
        for _ in range(3):
            assert select_best_result([first, second]) is first
            assert select_best_result(iter([second, first])) is second
