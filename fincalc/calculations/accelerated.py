"""
Numba-compiled calculation backend.

Every function is compiled eagerly with an explicit float64 signature, so
importing this module performs the compilation. Import failures (numba missing,
unsupported platform, LLVM errors) are handled by the engine, which falls back
to the interpreted kernel.

The arithmetic mirrors ``InterpretedKernel`` step for step, including the
zero-rate branches and the shifted-data variance.
"""

import logging
import math

import numpy as np
from numba import float64, njit, types

from fincalc.calculations.kernel import Kernel

logger = logging.getLogger(__name__)

_SCALAR_3 = float64(float64, float64, float64)
_SCALAR_4 = float64(float64, float64, float64, float64)
_SCALAR_6 = float64(float64, float64, float64, float64, float64, float64)
_SERIES_1 = float64(float64[::1])
_SERIES_2 = types.UniTuple(float64, 5)(float64[::1], float64[::1])


# =============================================================================
# Time value of money
# =============================================================================


@njit(_SCALAR_4, cache=True)
def compound_interest(principal, annual_rate, compounds, periods):
    return principal * (1.0 + annual_rate / compounds) ** (compounds * periods)


@njit(_SCALAR_3, cache=True)
def present_value(future_value, rate, periods):
    return future_value / (1.0 + rate) ** periods


@njit(_SCALAR_3, cache=True)
def future_value(present_value, rate, periods):
    return present_value * (1.0 + rate) ** periods


@njit(_SCALAR_3, cache=True)
def annuity_payment(present_value, rate, periods):
    factor = (1.0 + rate) ** periods
    if rate == 0.0 or factor == 1.0:
        return present_value / periods
    return present_value * (rate * factor) / (factor - 1.0)


@njit(_SCALAR_3, cache=True)
def loan_payment(principal, monthly_rate, months):
    return annuity_payment(principal, monthly_rate, months)


@njit(_SCALAR_4, cache=True)
def investment_growth(initial, monthly_contribution, annual_rate, years):
    monthly_rate = annual_rate / 12.0
    months = years * 12.0

    growth = (1.0 + monthly_rate) ** months
    future_initial = initial * growth

    if monthly_rate == 0.0 or growth == 1.0:
        annuity_factor = months
    else:
        annuity_factor = (growth - 1.0) / monthly_rate

    return future_initial + monthly_contribution * annuity_factor


@njit(_SCALAR_6, cache=True)
def mortgage_payment(
    principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
):
    base_payment = loan_payment(principal, annual_rate / 12.0, years * 12.0)
    pmi_payment = principal * pmi_rate / 12.0
    tax_payment = home_value * property_tax_rate / 12.0
    return base_payment + pmi_payment + tax_payment


# =============================================================================
# Portfolio risk
# =============================================================================


@njit(_SCALAR_3, cache=True)
def sharpe_ratio(portfolio_return, risk_free_rate, volatility):
    return (portfolio_return - risk_free_rate) / volatility


@njit(float64(float64, float64), cache=True)
def beta(covariance, market_variance):
    return covariance / market_variance


@njit(_SERIES_1, cache=True)
def portfolio_volatility(returns):
    n = returns.shape[0]
    shift = returns[0]

    total = 0.0
    for i in range(n):
        total += returns[i] - shift
    mean_dev = total / n

    variance = 0.0
    for i in range(n):
        dr = returns[i] - shift - mean_dev
        variance += dr * dr
    return math.sqrt(variance / (n - 1))


@njit(_SERIES_2, cache=True)
def series_moments(returns, market_returns):
    n = returns.shape[0]
    shift = returns[0]
    market_shift = market_returns[0]

    total = 0.0
    market_total = 0.0
    for i in range(n):
        total += returns[i] - shift
        market_total += market_returns[i] - market_shift
    mean_dev = total / n
    market_mean_dev = market_total / n

    variance = 0.0
    covariance = 0.0
    market_variance = 0.0
    for i in range(n):
        dr = returns[i] - shift - mean_dev
        dm = market_returns[i] - market_shift - market_mean_dev
        variance += dr * dr
        covariance += dr * dm
        market_variance += dm * dm

    return (
        shift + mean_dev,
        market_shift + market_mean_dev,
        variance / (n - 1),
        covariance / (n - 1),
        market_variance / (n - 1),
    )


def _as_series(values) -> np.ndarray:
    return np.ascontiguousarray(values, dtype=np.float64)


class AcceleratedKernel(Kernel):
    """Kernel backed by the numba-compiled functions above."""

    name = "accelerated"
    accelerated = True

    def _compound_interest(self, principal, annual_rate, compounds, periods):
        return compound_interest(principal, annual_rate, compounds, periods)

    def _present_value(self, future_value, rate, periods):
        return present_value(future_value, rate, periods)

    def _future_value(self, present_value, rate, periods):
        return future_value(present_value, rate, periods)

    def _annuity_payment(self, present_value, rate, periods):
        return annuity_payment(present_value, rate, periods)

    def _loan_payment(self, principal, monthly_rate, months):
        return loan_payment(principal, monthly_rate, months)

    def _investment_growth(self, initial, monthly_contribution, annual_rate, years):
        return investment_growth(initial, monthly_contribution, annual_rate, years)

    def _mortgage_payment(
        self, principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
    ):
        return mortgage_payment(
            principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
        )

    def _sharpe_ratio(self, portfolio_return, risk_free_rate, volatility):
        return sharpe_ratio(portfolio_return, risk_free_rate, volatility)

    def _beta(self, covariance, market_variance):
        return beta(covariance, market_variance)

    def _portfolio_volatility(self, returns):
        return portfolio_volatility(_as_series(returns))

    def _series_moments(self, returns, market_returns):
        return series_moments(_as_series(returns), _as_series(market_returns))


def load() -> AcceleratedKernel:
    """
    Build the accelerated kernel and run a smoke check.

    Compilation already happened at import; the check confirms the compiled
    code executes on this machine before the engine commits to it.
    """
    kernel = AcceleratedKernel()
    check = kernel.loan_payment(1000.0, 0.01, 12)
    if not math.isfinite(check) or check <= 0:
        raise RuntimeError(f"Accelerated kernel smoke check failed: {check}")
    logger.debug("Accelerated kernel compiled and verified")
    return kernel
