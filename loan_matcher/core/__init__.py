"""
Core domain models and batch matching logic
"""

from .order import LoanOrder, LoanSide, LoanFeasibility, MatchingGroup, Partition
from .transfer import LoanTransfer
from .partitions import PartitionSpace, bell_number, canonical_signature, iter_partitions
from .feasibility import check_group, filter_feasible, is_partition_feasible
from .evaluator import GroupMatch, MatchingResult, evaluate_group, evaluate_partition
from .selector import is_better, select_best_result
from .settlement import OrderOutcome, SettlementPlan, compute_transfers
from .matching_engine import LoanMatchingEngine, MatchOutcome, SearchStats

__all__ = [
    "LoanOrder",
    "LoanSide",
    "LoanFeasibility",
    "MatchingGroup",
    "Partition",
    "LoanTransfer",
    "PartitionSpace",
    "bell_number",
    "canonical_signature",
    "iter_partitions",
    "check_group",
    "filter_feasible",
    "is_partition_feasible",
    "GroupMatch",
    "MatchingResult",
    "evaluate_group",
    "evaluate_partition",
    "is_better",
    "select_best_result",
    "OrderOutcome",
    "SettlementPlan",
    "compute_transfers",
    "LoanMatchingEngine",
    "MatchOutcome",
    "SearchStats",
]
