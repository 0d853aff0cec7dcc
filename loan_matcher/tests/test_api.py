"""
API integration tests for the FastAPI endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from loan_matcher.main import app
from loan_matcher.utils.validators import UINT256_MAX
from loan_matcher.tests.factories import LATER_MATURITY, MATURITY


@pytest.fixture
def test_client():
    """Create a test client; the lifespan initializes the services."""
    with TestClient(app) as client:
        yield client


def order_payload(order_id, side, amount, rate_bips, maturity=MATURITY, **extra):
    payload = {
        "order_id": order_id,
        "side": side,
        "principal_amount": str(amount),
        "rate_bips": rate_bips,
        "maturity_timestamp": maturity,
        "sender": f"0x{side}{order_id}",
    }
    payload.update(extra)
    return payload


SCENARIO_A = [
    order_payload(1, "lender", 10_000, 500),
    order_payload(2, "lender", 20_000, 600),
    order_payload(3, "lender", 5_000, 400),
    order_payload(4, "borrower", 15_000, 550),
    order_payload(5, "borrower", 20_000, 600),
]


class TestHealthEndpoint:
    """Test health check and root endpoints."""

    def test_health_check(self, test_client):
        """Health check returns 200 and the engine limits."""
        response = test_client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert "max_batch_size" in data["matching_engine"]

    def test_root(self, test_client):
        response = test_client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_request_id_header(self, test_client):
        """Every response carries a request id."""
        response = test_client.get("/health")
        assert "X-Request-ID" in response.headers


class TestMatchEndpoint:
    """POST /api/v1/batches/match."""

    def test_scenario_a(self, test_client):
        """The reference batch settles fully with three transfers."""
        response = test_client.post(
            "/api/v1/batches/match",
            json={"batch_id": "batch-a", "orders": SCENARIO_A},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["batch_id"] == "batch-a"
        assert data["matched"] is True
        assert data["total_matched_amount"] == "35000"
        assert len(data["transfers"]) == 3
        assert data["carry_over"] == []

        maturity = data["maturities"][0]
        assert maturity["feasibility_type"] == "FULL_MATCH"
        assert maturity["average_rate_bips"] == "500.0000"
        assert maturity["partitions_considered"] == 52

        outcomes = {o["order_id"]: o for o in data["outcomes"]}
        assert outcomes[4]["funding_rate_bips"] == "466.6666"
        assert outcomes[4]["description"] == "Borrower 4 matched 15000 USDC at 5.00% APR"

    def test_no_match(self, test_client):
        """Nothing to match is a successful response with no transfers."""
        response = test_client.post(
            "/api/v1/batches/match",
            json={"orders": [
                order_payload(1, "lender", 10_000, 1_000),
                order_payload(2, "borrower", 10_000, 500),
            ]},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["matched"] is False
        assert data["transfers"] == []
        assert data["carry_over"] == [1, 2]
        assert data["maturities"][0]["feasibility_type"] == "NONE"

    def test_two_maturities(self, test_client):
        """Each maturity is reported separately."""
        response = test_client.post(
            "/api/v1/batches/match",
            json={"orders": [
                order_payload(1, "lender", 10_000, 500),
                order_payload(2, "borrower", 10_000, 600, maturity=LATER_MATURITY),
                order_payload(3, "lender", 10_000, 500, maturity=LATER_MATURITY),
                order_payload(4, "borrower", 10_000, 600),
            ]},
        )
        assert response.status_code == 200

        data = response.json()
        assert [m["maturity_timestamp"] for m in data["maturities"]] == [MATURITY, LATER_MATURITY]
        assert len(data["transfers"]) == 2

    def test_expired_orders(self, test_client):
        response = test_client.post(
            "/api/v1/batches/match",
            json={
                "evaluated_at": 500,
                "orders": [
                    order_payload(1, "lender", 10_000, 400, expiry=100),
                    order_payload(2, "borrower", 10_000, 600),
                ],
            },
        )
        assert response.status_code == 200

        data = response.json()
        assert data["expired"] == [1]
        assert data["carry_over"] == [2]

    def test_large_amounts_stay_exact(self, test_client):
        """Amounts far beyond 64 bits survive the round trip."""
        amount = 2 ** 200
        response = test_client.post(
            "/api/v1/batches/match",
            json={"orders": [
                order_payload(1, "lender", amount, 400),
                order_payload(2, "borrower", amount, 600),
            ]},
        )
        assert response.status_code == 200
        assert response.json()["transfers"][0]["amount"] == str(amount)


class TestMatchEndpointErrors:
    """Error mapping."""

    def test_invalid_side(self, test_client):
        """Unknown sides fail request validation."""
        response = test_client.post(
            "/api/v1/batches/match",
            json={"orders": [order_payload(1, "broker", 100, 100)]},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_decimal_amount_rejected(self, test_client):
        """Amounts must be integer strings."""
        payload = order_payload(1, "lender", 100, 100)
        payload["principal_amount"] = "100.5"

        response = test_client.post("/api/v1/batches/match", json={"orders": [payload]})
        assert response.status_code == 422

    def test_zero_principal(self, test_client):
        """Zero principal is an invalid order."""
        response = test_client.post(
            "/api/v1/batches/match",
            json={"orders": [order_payload(1, "lender", 0, 100)]},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidOrderException"

    def test_duplicate_ids(self, test_client):
        response = test_client.post(
            "/api/v1/batches/match",
            json={"orders": [
                order_payload(1, "lender", 100, 100),
                order_payload(1, "borrower", 100, 200),
            ]},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "DuplicateOrderException"

    def test_oversized_batch(self, test_client):
        """More orders than max_batch_size in one maturity is rejected."""
        orders = [order_payload(i, "lender", 100, 100) for i in range(20)]

        response = test_client.post("/api/v1/batches/match", json={"orders": orders})
        assert response.status_code == 400
        assert response.json()["error"] == "BatchSizeExceededException"

    def test_overflow(self, test_client):
        """Amounts beyond uint256 map to 422."""
        response = test_client.post(
            "/api/v1/batches/match",
            json={"orders": [order_payload(1, "lender", UINT256_MAX + 1, 100)]},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "ArithmeticOverflowException"


class TestLimitsEndpoint:
    """GET /api/v1/batches/limits."""

    def test_limits(self, test_client):
        response = test_client.get("/api/v1/batches/limits")
        assert response.status_code == 200

        data = response.json()
        assert data["max_partitions"] > data["max_batch_size"]
        assert data["rate_precision"] == 4
