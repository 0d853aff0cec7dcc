"""
Set partition enumeration for a batch of loan orders.

Every way of dividing a batch into disjoint, non-empty matching groups is
produced lazily. The number of partitions of n orders is the n-th Bell
number, so callers must keep batches small; PartitionSpace enforces an
explicit upper bound instead of hanging on oversized input.
"""

from typing import Iterable, Iterator, Sequence, Set, Tuple

from .order import LoanOrder, Partition
from ..utils.exceptions import BatchSizeExceededException, DuplicateOrderException

Signature = Tuple[Tuple[int, ...], ...]

DEFAULT_MAX_BATCH_SIZE = 10


def bell_number(n: int) -> int:
    """
    Number of set partitions of n elements, via the Bell triangle.

    Examples:
        >>> [bell_number(i) for i in range(6)]
        [1, 1, 2, 5, 15, 52]
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")

    row = [1]
    for _ in range(n):
        next_row = [row[-1]]
        for value in row:
            next_row.append(next_row[-1] + value)
        row = next_row
    return row[0]


def canonical_signature(partition: Partition) -> Signature:
    """
    Canonical form of a partition, independent of group and member order.

    Each group's order ids are sorted, then groups are sorted by first id.
    """
    groups = [tuple(sorted(order.order_id for order in group)) for group in partition]
    groups.sort(key=lambda ids: ids[0])
    return tuple(groups)


def _build_partitions(orders: Tuple[LoanOrder, ...]) -> Iterator[Partition]:
    if not orders:
        return

    first, rest = orders[0], orders[1:]
    if not rest:
        yield ((first,),)
        return

    for sub_partition in _build_partitions(rest):
        # First order on its own
        yield ((first,),) + sub_partition

        # First order joined to each existing group in turn
        for index, group in enumerate(sub_partition):
            yield (
                sub_partition[:index]
                + ((first,) + group,)
                + sub_partition[index + 1:]
            )


def iter_partitions(orders: Iterable[LoanOrder]) -> Iterator[Partition]:
    """
    Lazily enumerate all distinct set partitions of `orders`.

    The insertion construction reaches each partition exactly once; the
    canonical signatures of emitted partitions are still retained to guard
    against repeats, so memory grows with Bell(n) as iteration proceeds.
    An empty input yields nothing.

    Args:
        orders: Orders with unique ids

    Yields:
        Partitions as tuples of groups, each group a tuple of orders
    """
    seen: Set[Signature] = set()
    for partition in _build_partitions(tuple(orders)):
        signature = canonical_signature(partition)
        if signature in seen:
            continue
        seen.add(signature)
        yield partition


class PartitionSpace:
    """
    Restartable, lazily produced collection of all partitions of a batch.

    Iterating restarts the enumeration from scratch. Partitions are produced
    one at a time and never stored; only their signatures are kept for
    deduplication during a pass.
    The batch is bounded at construction so an oversized batch fails fast.

    Attributes:
        orders: The batch, in the order supplied
        max_batch_size: Largest batch accepted
    """

    def __init__(
        self,
        orders: Sequence[LoanOrder],
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    ):
        """
        Initialize the partition space.

        Args:
            orders: Orders of one batch
            max_batch_size: Upper bound on the number of orders

        Raises:
            BatchSizeExceededException: If the batch is larger than max_batch_size
            DuplicateOrderException: If two orders share an id
        """
        self.orders: Tuple[LoanOrder, ...] = tuple(orders)
        self.max_batch_size = max_batch_size

        if len(self.orders) > max_batch_size:
            raise BatchSizeExceededException(
                f"Batch of {len(self.orders)} orders exceeds maximum {max_batch_size}",
                details={
                    "batch_size": len(self.orders),
                    "max_batch_size": max_batch_size,
                }
            )

        seen_ids = set()
        for order in self.orders:
            if order.order_id in seen_ids:
                raise DuplicateOrderException(
                    f"Order {order.order_id} appears more than once in batch",
                    details={"order_id": order.order_id}
                )
            seen_ids.add(order.order_id)

    def __iter__(self) -> Iterator[Partition]:
        return iter_partitions(self.orders)

    def __len__(self) -> int:
        if not self.orders:
            return 0
        return bell_number(len(self.orders))

    def __repr__(self) -> str:
        return f"PartitionSpace(orders={len(self.orders)}, partitions={len(self)})"
