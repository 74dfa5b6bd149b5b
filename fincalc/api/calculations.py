"""
Financial calculation API endpoints.

These endpoints accept inputs and return calculated results.
Used by the dashboard for real-time updates.
"""

from dataclasses import asdict
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from fincalc.calculations import amortization
from fincalc.calculations.kernel import InvalidInputError
from fincalc.engine import FinancialEngine, get_engine

router = APIRouter()


class AmountResponse(BaseModel):
    """Single calculated amount."""

    amount: float
    backend: str


class CompoundInterestInput(BaseModel):
    """Input for compound interest calculation."""

    principal: float
    annual_rate: float
    years: float
    compounds_per_year: float = 12


class LoanPaymentInput(BaseModel):
    """Input for loan payment calculation."""

    principal: float
    annual_rate: float
    years: float


class InvestmentGrowthInput(BaseModel):
    """Input for investment growth calculation."""

    initial: float
    monthly_contribution: float = 0.0
    annual_rate: float
    years: float


class MortgageInput(BaseModel):
    """Input for mortgage payment calculation."""

    principal: float
    annual_rate: float
    years: float

    # Optional, engine defaults apply when omitted
    pmi_rate: Optional[float] = None
    property_tax_rate: Optional[float] = None
    home_value: Optional[float] = None


class MortgageResponse(BaseModel):
    """Monthly mortgage payment and its components."""

    principal_and_interest: float
    pmi: float
    property_tax: float
    total: float
    backend: str


class PortfolioMetricsInput(BaseModel):
    """Input for portfolio risk metrics."""

    returns: List[float] = Field(..., min_length=2)
    market_returns: List[float] = Field(..., min_length=2)
    risk_free_rate: Optional[float] = None


class PortfolioMetricsResponse(BaseModel):
    """Portfolio risk metrics. Undefined ratios are null."""

    average_return: float
    volatility: float
    sharpe_ratio: Optional[float] = None
    beta: Optional[float] = None
    covariance: float
    market_variance: float
    backend: str


class AmortizationInput(BaseModel):
    """Input for amortization calculation."""

    principal: float
    annual_rate: float
    years: float
    start_date: Optional[date] = None


class BackendStatus(BaseModel):
    """Current backend selection state."""

    state: str
    backend: Optional[str] = None
    ready: bool


class BenchmarkInput(BaseModel):
    """Input for backend benchmark."""

    iterations: Optional[int] = Field(None, gt=0, le=1_000_000)


@router.post("/compound-interest", response_model=AmountResponse)
async def calculate_compound_interest(
    inputs: CompoundInterestInput, engine: FinancialEngine = Depends(get_engine)
):
    """Calculate compound interest."""
    try:
        amount = await engine.compound_interest(
            inputs.principal,
            inputs.annual_rate,
            inputs.years,
            compounds_per_year=inputs.compounds_per_year,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AmountResponse(amount=amount, backend=engine.backend_name)


@router.post("/loan-payment", response_model=AmountResponse)
async def calculate_loan_payment(
    inputs: LoanPaymentInput, engine: FinancialEngine = Depends(get_engine)
):
    """Calculate monthly loan payment."""
    try:
        amount = await engine.loan_payment(
            inputs.principal, inputs.annual_rate, inputs.years
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AmountResponse(amount=amount, backend=engine.backend_name)


@router.post("/investment-growth", response_model=AmountResponse)
async def calculate_investment_growth(
    inputs: InvestmentGrowthInput, engine: FinancialEngine = Depends(get_engine)
):
    """Calculate future value of an investment with monthly contributions."""
    try:
        amount = await engine.investment_growth(
            inputs.initial,
            inputs.monthly_contribution,
            inputs.annual_rate,
            inputs.years,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AmountResponse(amount=amount, backend=engine.backend_name)


@router.post("/mortgage-payment", response_model=MortgageResponse)
async def calculate_mortgage_payment(
    inputs: MortgageInput, engine: FinancialEngine = Depends(get_engine)
):
    """Calculate monthly mortgage payment with PMI and property tax."""
    try:
        breakdown = await engine.mortgage_breakdown(
            inputs.principal,
            inputs.annual_rate,
            inputs.years,
            pmi_rate=inputs.pmi_rate,
            property_tax_rate=inputs.property_tax_rate,
            home_value=inputs.home_value,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return MortgageResponse(**asdict(breakdown), backend=engine.backend_name)


@router.post("/portfolio-metrics", response_model=PortfolioMetricsResponse)
async def calculate_portfolio_metrics(
    inputs: PortfolioMetricsInput, engine: FinancialEngine = Depends(get_engine)
):
    """Calculate volatility, Sharpe ratio and beta."""
    try:
        metrics = await engine.portfolio_metrics(
            inputs.returns,
            inputs.market_returns,
            risk_free_rate=inputs.risk_free_rate,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PortfolioMetricsResponse(**asdict(metrics), backend=engine.backend_name)


@router.post("/amortization")
async def calculate_amortization(
    inputs: AmortizationInput, engine: FinancialEngine = Depends(get_engine)
):
    """Generate loan amortization schedule."""
    try:
        schedule = await engine.amortization_schedule(
            inputs.principal,
            inputs.annual_rate,
            inputs.years,
            start_date=inputs.start_date,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "schedule": schedule,
        "total_interest": amortization.calculate_total_interest(schedule),
        "total_principal": amortization.calculate_total_principal(schedule),
    }


@router.get("/backend", response_model=BackendStatus)
async def get_backend_status(engine: FinancialEngine = Depends(get_engine)):
    """Report which backend is active without triggering a load."""
    return BackendStatus(
        state=engine.state.value,
        backend=engine.backend_name,
        ready=engine.is_ready,
    )


@router.post("/benchmark")
async def run_benchmark(
    inputs: BenchmarkInput, engine: FinancialEngine = Depends(get_engine)
):
    """Time the active backend against the interpreted kernel."""
    result = await engine.benchmark(inputs.iterations)
    return asdict(result)
