"""
Tests for partition enumeration and the feasibility filter.
"""

import pytest

from loan_matcher.core.feasibility import (
    check_group,
    common_maturities,
    filter_feasible,
    is_partition_feasible,
)
from loan_matcher.core.order import LoanFeasibility
from loan_matcher.core.partitions import (
    PartitionSpace,
    _build_partitions,
    bell_number,
    canonical_signature,
    iter_partitions,
)
from loan_matcher.utils.exceptions import BatchSizeExceededException, DuplicateOrderException
from loan_matcher.tests.factories import LATER_MATURITY, borrower, lender


def make_orders(n):
    """Alternate lenders and borrowers with distinct ids."""
    return [
        lender(i, 1_000, 500) if i % 2 == 0 else borrower(i, 1_000, 600)
        for i in range(n)
    ]


class TestBellNumbers:
    """Partition counts."""

    def test_known_values(self):
        """The first Bell numbers match the known sequence."""
        assert [bell_number(n) for n in range(9)] == [1, 1, 2, 5, 15, 52, 203, 877, 4140]

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            bell_number(-1)


class TestPartitionEnumeration:
    """Set partition generation."""

    @pytest.mark.parametrize("n", [1, 2, 3, 4, 5, 6])
    def test_count_is_bell_number(self, n):
        """n orders yield exactly Bell(n) distinct partitions."""
        partitions = list(iter_partitions(make_orders(n)))
        signatures = {canonical_signature(p) for p in partitions}

        assert len(partitions) == bell_number(n)
        assert len(signatures) == len(partitions)

    @pytest.mark.parametrize("n", [1, 3, 5])
    def test_every_partition_covers_batch_once(self, n):
        """Each order appears in exactly one non-empty group."""
        orders = make_orders(n)
        expected = sorted(o.order_id for o in orders)

        for partition in iter_partitions(orders):
            assert all(len(group) > 0 for group in partition)
            ids = sorted(o.order_id for group in partition for o in group)
            assert ids == expected

    @pytest.mark.parametrize("n", [3, 5, 7])
    def test_construction_never_repeats(self, n):
        """The insertion construction alone already yields each partition once."""
        signatures = [canonical_signature(p) for p in _build_partitions(tuple(make_orders(n)))]

        assert len(signatures) == bell_number(n)
        assert len(set(signatures)) == len(signatures)

    def test_empty_batch_yields_nothing(self):
        """An empty batch has no partitions to evaluate."""
        assert list(iter_partitions([])) == []
        assert len(PartitionSpace([])) == 0

    def test_single_order(self):
        """One order yields the singleton partition."""
        order = lender(1, 100, 100)
        assert list(iter_partitions([order])) == [((order,),)]

    def test_first_partition_is_all_singletons(self):
        """Enumeration starts from the finest partition."""
        orders = make_orders(4)
        first = next(iter(iter_partitions(orders)))
        assert len(first) == 4

    def test_canonical_signature_ignores_order(self):
        """Group and member order do not change the signature."""
        a, b, c = make_orders(3)
        assert canonical_signature(((a, b), (c,))) == canonical_signature(((c,), (b, a)))
        assert canonical_signature(((a, b), (c,))) == ((0, 1), (2,))


class TestPartitionSpace:
    """Bounded, restartable partition collection."""

    def test_restartable(self):
        """Iterating twice yields the same sequence."""
        space = PartitionSpace(make_orders(4))

        first = [canonical_signature(p) for p in space]
        second = [canonical_signature(p) for p in space]

        assert first == second
        assert len(space) == 15

    def test_lazy(self):
        """Taking one partition does not enumerate the whole space."""
        space = PartitionSpace(make_orders(10), max_batch_size=10)
        iterator = iter(space)

        assert len(next(iterator)) == 10
        assert len(space) == 115975

    def test_oversized_batch_rejected(self):
        """Batches above the bound fail fast."""
        with pytest.raises(BatchSizeExceededException) as exc_info:
            PartitionSpace(make_orders(5), max_batch_size=4)

        assert exc_info.value.details["batch_size"] == 5

    def test_duplicate_ids_rejected(self):
        """Order ids must be unique within a batch."""
        with pytest.raises(DuplicateOrderException):
            PartitionSpace([lender(1, 100, 100), borrower(1, 100, 100)])


class TestFeasibilityFilter:
    """Group and partition feasibility checks."""

    def test_singleton_never_blocks(self):
        """Singletons pass regardless of side or rate."""
        assert check_group((lender(1, 100, 10_000),)) is None

    def test_one_sided_group(self):
        """A group needs both a lender and a borrower."""
        group = (lender(1, 100, 100), lender(2, 100, 100))
        assert check_group(group) == LoanFeasibility.ONE_SIDED

    def test_rate_overlap_required(self):
        """The cheapest lender must not exceed the richest borrower."""
        group = (lender(1, 100, 1_000), borrower(2, 100, 500))
        assert check_group(group) == LoanFeasibility.NO_RATE_OVERLAP

    def test_equal_rates_overlap(self):
        """Equal lender minimum and borrower maximum is acceptable."""
        group = (lender(1, 100, 500), borrower(2, 100, 500))
        assert check_group(group) is None

    def test_maturity_mismatch(self):
        """Sides must share at least one maturity."""
        group = (lender(1, 100, 400), borrower(2, 100, 500, maturity=LATER_MATURITY))
        assert check_group(group) == LoanFeasibility.MATURITY_MISMATCH

    def test_common_maturities_sorted(self):
        """Shared maturities are reported earliest first."""
        lenders = [lender(1, 1, 1, maturity=LATER_MATURITY), lender(2, 1, 1)]
        borrowers = [borrower(3, 1, 1), borrower(4, 1, 1, maturity=LATER_MATURITY)]
        assert common_maturities(lenders, borrowers)[0] < LATER_MATURITY

    def test_one_bad_group_discards_partition(self):
        """A single infeasible multi-order group prunes the partition."""
        good = (lender(1, 100, 400), borrower(2, 100, 500))
        bad = (lender(3, 100, 900), borrower(4, 100, 500))

        assert not is_partition_feasible((good, bad))
        assert is_partition_feasible((good, (bad[0],), (bad[1],)))

    def test_filter_keeps_only_feasible(self):
        """Every surviving partition passes all group checks."""
        orders = [lender(1, 100, 400), lender(2, 100, 900), borrower(3, 100, 500)]
        survivors = list(filter_feasible(iter_partitions(orders)))

        assert 0 < len(survivors) < bell_number(3)
        for partition in survivors:
            assert all(check_group(group) is None for group in partition)
