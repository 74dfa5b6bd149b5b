"""
Tests for the calculation API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from fincalc.config import Settings
from fincalc.engine import FinancialEngine, get_engine
from fincalc.main import app


@pytest.fixture
def engine():
    """Fresh engine on the interpreted kernel for each test."""
    return FinancialEngine(Settings(backend="fallback"))


@pytest.fixture
def client(engine):
    """Create test client bound to the test engine."""
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    """Test health endpoint."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["backend"] == "uninitialized"


class TestCalculationsAPI:
    """Test calculation endpoints."""

    def test_compound_interest(self, client):
        response = client.post(
            "/api/calculate/compound-interest",
            json={"principal": 10000, "annual_rate": 0.07, "years": 10},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["amount"] == pytest.approx(20096.61, abs=0.05)
        assert data["backend"] == "interpreted"

    def test_compound_interest_invalid_frequency(self, client):
        response = client.post(
            "/api/calculate/compound-interest",
            json={
                "principal": 10000,
                "annual_rate": 0.07,
                "years": 10,
                "compounds_per_year": 0,
            },
        )
        assert response.status_code == 400
        assert "compounds_per_period" in response.json()["detail"]

    def test_compound_interest_out_of_range(self, client):
        response = client.post(
            "/api/calculate/compound-interest",
            json={
                "principal": 1000,
                "annual_rate": 6.0,
                "years": 400,
                "compounds_per_year": 1,
            },
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "result out of range"

    def test_loan_payment(self, client):
        response = client.post(
            "/api/calculate/loan-payment",
            json={"principal": 300000, "annual_rate": 0.065, "years": 30},
        )
        assert response.status_code == 200
        assert response.json()["amount"] == pytest.approx(1896.20, abs=0.01)

    def test_loan_payment_zero_term(self, client):
        response = client.post(
            "/api/calculate/loan-payment",
            json={"principal": 300000, "annual_rate": 0.065, "years": 0},
        )
        assert response.status_code == 400

    def test_investment_growth(self, client):
        response = client.post(
            "/api/calculate/investment-growth",
            json={
                "initial": 5000,
                "monthly_contribution": 200,
                "annual_rate": 0.08,
                "years": 20,
            },
        )
        assert response.status_code == 200
        assert 142000 < response.json()["amount"] < 143000

    def test_mortgage_payment_defaults(self, client):
        response = client.post(
            "/api/calculate/mortgage-payment",
            json={"principal": 300000, "annual_rate": 0.065, "years": 30},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["pmi"] == pytest.approx(125)
        assert data["property_tax"] == pytest.approx(360)
        assert data["total"] == pytest.approx(
            data["principal_and_interest"] + data["pmi"] + data["property_tax"]
        )

    def test_mortgage_payment_with_options(self, client):
        response = client.post(
            "/api/calculate/mortgage-payment",
            json={
                "principal": 400000,
                "annual_rate": 0.06,
                "years": 30,
                "pmi_rate": 0,
                "property_tax_rate": 0.01,
                "home_value": 500000,
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["pmi"] == 0
        assert data["property_tax"] == pytest.approx(500000 * 0.01 / 12)

    def test_portfolio_metrics(self, client):
        response = client.post(
            "/api/calculate/portfolio-metrics",
            json={
                "returns": [0.01, 0.02, 0.03],
                "market_returns": [0.02, 0.04, 0.06],
                "risk_free_rate": 0.0,
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["volatility"] == pytest.approx(0.01)
        assert data["sharpe_ratio"] == pytest.approx(2.0)
        assert data["beta"] == pytest.approx(0.5)

    def test_portfolio_metrics_undefined_ratios_are_null(self, client):
        response = client.post(
            "/api/calculate/portfolio-metrics",
            json={"returns": [0.01, 0.01], "market_returns": [0.02, 0.02]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["sharpe_ratio"] is None
        assert data["beta"] is None

    def test_portfolio_metrics_mismatched_lengths(self, client):
        response = client.post(
            "/api/calculate/portfolio-metrics",
            json={"returns": [0.01, 0.02, 0.03], "market_returns": [0.01, 0.02]},
        )
        assert response.status_code == 400
        assert "same length" in response.json()["detail"]

    def test_portfolio_metrics_too_short(self, client):
        response = client.post(
            "/api/calculate/portfolio-metrics",
            json={"returns": [0.01], "market_returns": [0.02]},
        )
        assert response.status_code == 422

    def test_amortization(self, client):
        response = client.post(
            "/api/calculate/amortization",
            json={
                "principal": 100000,
                "annual_rate": 0.06,
                "years": 5,
                "start_date": "2025-01-01",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert len(data["schedule"]) == 60
        assert data["schedule"][0]["date"] == "2025-01-01"
        assert data["total_principal"] == pytest.approx(100000, abs=1)
        assert data["total_interest"] > 0

    def test_amortization_term_under_one_month(self, client):
        response = client.post(
            "/api/calculate/amortization",
            json={"principal": 100000, "annual_rate": 0.06, "years": 0.02},
        )
        assert response.status_code == 400


class TestBackendAPI:
    """Test backend status and diagnostics."""

    def test_backend_status_before_and_after_load(self, client):
        response = client.get("/api/calculate/backend")
        assert response.json() == {
            "state": "uninitialized",
            "backend": None,
            "ready": False,
        }

        client.post(
            "/api/calculate/loan-payment",
            json={"principal": 1000, "annual_rate": 0.05, "years": 1},
        )

        response = client.get("/api/calculate/backend")
        assert response.json() == {
            "state": "ready_fallback",
            "backend": "interpreted",
            "ready": True,
        }

    def test_benchmark(self, client):
        response = client.post("/api/calculate/benchmark", json={"iterations": 50})
        assert response.status_code == 200
        data = response.json()
        assert data["backend"] == "interpreted"
        assert data["iterations"] == 50

    def test_benchmark_rejects_zero_iterations(self, client):
        response = client.post("/api/calculate/benchmark", json={"iterations": 0})
        assert response.status_code == 422
