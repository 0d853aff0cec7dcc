"""
Shared fixtures for the loan matcher test suite.
"""

import pytest

from loan_matcher.config import Settings
from loan_matcher.tests.factories import lender, borrower


@pytest.fixture
def settings():
    """Settings isolated from the environment's log directory."""
    return Settings(log_dir=None, max_batch_size=10, max_workers=1)


@pytest.fixture
def scenario_a_orders():
    """Three lenders at 5%, 6%, 4% and two borrowers capped at 5.5% and 6%."""
    return [
        lender(1, 10_000, 500),
        lender(2, 20_000, 600),
        lender(3, 5_000, 400),
        borrower(4, 15_000, 550),
        borrower(5, 20_000, 600),
    ]


@pytest.fixture
def scenario_c_orders():
    """Two lenders totalling 30,000 against one borrower wanting 20,000."""
    return [
        lender(1, 15_000, 400),
        lender(2, 15_000, 500),
        borrower(3, 20_000, 600),
    ]
