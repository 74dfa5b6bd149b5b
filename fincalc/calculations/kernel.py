"""
Financial Calculation Kernel

Defines the calculation contract shared by every backend. The ``Kernel`` base
class validates inputs and handles degenerate ratios; subclasses only supply
the arithmetic, so results are identical whichever backend is active.

Conventions:
    - Rates are periodic decimal fractions (0.005 for 0.5%), never percentages.
    - Period counts must be positive. Callers pair monthly rates with monthly
      period counts.
    - Undefined ratios (zero volatility or zero market variance) are returned
      as ``None`` so they can be told apart from a ratio of zero.
    - Results too large for a float raise ``InvalidInputError`` rather than
      returning inf.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple


class InvalidInputError(ValueError):
    """Raised when a calculation receives ill-formed input."""


@dataclass(frozen=True)
class MortgageBreakdown:
    """Monthly mortgage payment split into its additive components."""

    principal_and_interest: float
    pmi: float
    property_tax: float
    total: float


@dataclass(frozen=True)
class PortfolioMetrics:
    """Risk metrics derived from aligned portfolio and market return series."""

    average_return: float
    volatility: float
    sharpe_ratio: Optional[float]
    beta: Optional[float]
    covariance: float
    market_variance: float


def _require_finite(**values: float) -> None:
    for name, value in values.items():
        if not math.isfinite(value):
            raise InvalidInputError(f"{name} must be a finite number, got {value}")


def _require_positive(**values: float) -> None:
    for name, value in values.items():
        if value <= 0:
            raise InvalidInputError(f"{name} must be positive, got {value}")


def _require_rate(name: str, periodic_rate: float) -> None:
    if periodic_rate <= -1:
        raise InvalidInputError(
            f"{name} must be greater than -100% per period, got {periodic_rate}"
        )


def _require_in_range(result: float) -> float:
    if not math.isfinite(result):
        raise InvalidInputError("result out of range")
    return result


def _require_series(returns: Sequence[float], name: str = "returns") -> None:
    if len(returns) < 2:
        raise InvalidInputError(f"{name} must contain at least 2 observations")
    for value in returns:
        if not math.isfinite(value):
            raise InvalidInputError(f"{name} must contain only finite numbers")


class Kernel:
    """
    Base class for calculation backends.

    Public methods validate their arguments and then call the matching
    ``_``-prefixed primitive, which subclasses implement.
    """

    name = "abstract"
    accelerated = False

    # -------------------------------------------------------------------------
    # Primitives (implemented by backends)
    # -------------------------------------------------------------------------

    def _compound_interest(self, principal, annual_rate, compounds, periods):
        raise NotImplementedError

    def _present_value(self, future_value, rate, periods):
        raise NotImplementedError

    def _future_value(self, present_value, rate, periods):
        raise NotImplementedError

    def _annuity_payment(self, present_value, rate, periods):
        raise NotImplementedError

    def _loan_payment(self, principal, monthly_rate, months):
        raise NotImplementedError

    def _investment_growth(self, initial, monthly_contribution, annual_rate, years):
        raise NotImplementedError

    def _mortgage_payment(
        self, principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
    ):
        raise NotImplementedError

    def _portfolio_volatility(self, returns):
        raise NotImplementedError

    def _sharpe_ratio(self, portfolio_return, risk_free_rate, volatility):
        raise NotImplementedError

    def _beta(self, covariance, market_variance):
        raise NotImplementedError

    def _series_moments(
        self, returns, market_returns
    ) -> Tuple[float, float, float, float, float]:
        """Return (mean, market_mean, variance, covariance, market_variance)."""
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Time value of money
    # -------------------------------------------------------------------------

    def compound_interest(
        self,
        principal: float,
        annual_rate: float,
        compounds_per_period: float,
        periods: float,
    ) -> float:
        """
        Calculate the amount after compounding.

        Args:
            principal: Starting amount
            annual_rate: Nominal rate per period as decimal (e.g., 0.07 for 7%)
            compounds_per_period: Compounding frequency (e.g., 12 for monthly)
            periods: Number of periods (e.g., years)

        Returns:
            Final amount including interest

        Raises:
            InvalidInputError: If compounding frequency or periods are not positive
        """
        _require_finite(
            principal=principal,
            annual_rate=annual_rate,
            compounds_per_period=compounds_per_period,
            periods=periods,
        )
        _require_positive(compounds_per_period=compounds_per_period, periods=periods)
        _require_rate("annual_rate", annual_rate / compounds_per_period)
        amount = self._compound_interest(
            float(principal),
            float(annual_rate),
            float(compounds_per_period),
            float(periods),
        )
        return _require_in_range(amount)

    def present_value(self, future_value: float, rate: float, periods: float) -> float:
        """Discount a future amount back ``periods`` periods at ``rate``."""
        _require_finite(future_value=future_value, rate=rate, periods=periods)
        _require_positive(periods=periods)
        _require_rate("rate", rate)
        # The discount factor itself must be representable
        _require_in_range(self._future_value(1.0, float(rate), float(periods)))
        return _require_in_range(
            self._present_value(float(future_value), float(rate), float(periods))
        )

    def future_value(self, present_value: float, rate: float, periods: float) -> float:
        """Grow a present amount forward ``periods`` periods at ``rate``."""
        _require_finite(present_value=present_value, rate=rate, periods=periods)
        _require_positive(periods=periods)
        _require_rate("rate", rate)
        return _require_in_range(
            self._future_value(float(present_value), float(rate), float(periods))
        )

    def annuity_payment(
        self, present_value: float, rate: float, periods: float
    ) -> float:
        """
        Calculate the level payment that amortizes ``present_value``.

        Matches Excel's PMT() sign-flipped. A zero rate reduces to
        ``present_value / periods``.
        """
        _require_finite(present_value=present_value, rate=rate, periods=periods)
        _require_positive(periods=periods)
        _require_rate("rate", rate)
        return _require_in_range(
            self._annuity_payment(float(present_value), float(rate), float(periods))
        )

    def loan_payment(
        self, principal: float, monthly_rate: float, months: float
    ) -> float:
        """Monthly loan payment. Same as ``annuity_payment`` on a monthly schedule."""
        _require_finite(principal=principal, monthly_rate=monthly_rate, months=months)
        _require_positive(months=months)
        _require_rate("monthly_rate", monthly_rate)
        return _require_in_range(
            self._loan_payment(float(principal), float(monthly_rate), float(months))
        )

    def investment_growth(
        self,
        initial: float,
        monthly_contribution: float,
        annual_rate: float,
        years: float,
    ) -> float:
        """
        Future value of a lump sum plus monthly contributions.

        Contributions are an ordinary annuity (paid at the end of each month).

        Args:
            initial: Initial investment
            monthly_contribution: Amount added each month
            annual_rate: Annual return as decimal, compounded monthly
            years: Investment horizon in years

        Returns:
            Total value at the end of the horizon
        """
        _require_finite(
            initial=initial,
            monthly_contribution=monthly_contribution,
            annual_rate=annual_rate,
            years=years,
        )
        _require_positive(years=years)
        _require_rate("annual_rate", annual_rate / 12)
        total = self._investment_growth(
            float(initial),
            float(monthly_contribution),
            float(annual_rate),
            float(years),
        )
        return _require_in_range(total)

    # -------------------------------------------------------------------------
    # Mortgage
    # -------------------------------------------------------------------------

    def _validate_mortgage(
        self, principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
    ) -> None:
        _require_finite(
            principal=principal,
            annual_rate=annual_rate,
            years=years,
            pmi_rate=pmi_rate,
            property_tax_rate=property_tax_rate,
            home_value=home_value,
        )
        _require_positive(years=years)
        _require_rate("annual_rate", annual_rate / 12)

    def mortgage_payment(
        self,
        principal: float,
        annual_rate: float,
        years: float,
        pmi_rate: float,
        property_tax_rate: float,
        home_value: float,
    ) -> float:
        """
        Total monthly mortgage payment.

        Sum of the amortized principal and interest, monthly PMI
        (``principal * pmi_rate / 12``) and monthly property tax
        (``home_value * property_tax_rate / 12``).
        """
        self._validate_mortgage(
            principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
        )
        total = self._mortgage_payment(
            float(principal),
            float(annual_rate),
            float(years),
            float(pmi_rate),
            float(property_tax_rate),
            float(home_value),
        )
        return _require_in_range(total)

    def mortgage_breakdown(
        self,
        principal: float,
        annual_rate: float,
        years: float,
        pmi_rate: float,
        property_tax_rate: float,
        home_value: float,
    ) -> MortgageBreakdown:
        """Monthly mortgage payment with each component reported separately."""
        self._validate_mortgage(
            principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
        )
        args = [
            float(v)
            for v in (
                principal,
                annual_rate,
                years,
                pmi_rate,
                property_tax_rate,
                home_value,
            )
        ]
        principal, annual_rate, years, pmi_rate, property_tax_rate, home_value = args

        base = _require_in_range(
            self._loan_payment(principal, annual_rate / 12, years * 12)
        )
        pmi = principal * pmi_rate / 12
        tax = home_value * property_tax_rate / 12
        total = _require_in_range(self._mortgage_payment(*args))
        return MortgageBreakdown(
            principal_and_interest=base, pmi=pmi, property_tax=tax, total=total
        )

    # -------------------------------------------------------------------------
    # Portfolio risk
    # -------------------------------------------------------------------------

    def portfolio_volatility(self, returns: Sequence[float]) -> float:
        """Sample standard deviation of a return series (n - 1 denominator)."""
        _require_series(returns)
        return _require_in_range(
            self._portfolio_volatility([float(r) for r in returns])
        )

    def sharpe_ratio(
        self, portfolio_return: float, risk_free_rate: float, volatility: float
    ) -> Optional[float]:
        """Excess return per unit of volatility, or None when volatility is zero."""
        _require_finite(
            portfolio_return=portfolio_return,
            risk_free_rate=risk_free_rate,
            volatility=volatility,
        )
        if volatility == 0:
            return None
        return _require_in_range(
            self._sharpe_ratio(
                float(portfolio_return), float(risk_free_rate), float(volatility)
            )
        )

    def beta(self, covariance: float, market_variance: float) -> Optional[float]:
        """Covariance over market variance, or None when market variance is zero."""
        _require_finite(covariance=covariance, market_variance=market_variance)
        if market_variance == 0:
            return None
        return _require_in_range(
            self._beta(float(covariance), float(market_variance))
        )

    def portfolio_metrics(
        self,
        returns: Sequence[float],
        market_returns: Sequence[float],
        risk_free_rate: float,
    ) -> PortfolioMetrics:
        """
        Derive average return, volatility, Sharpe ratio and beta.

        Covariance and market variance use the same mean-centred, n - 1
        summation as volatility.

        Raises:
            InvalidInputError: If the series differ in length or have fewer
                than 2 observations
        """
        if len(returns) != len(market_returns):
            raise InvalidInputError(
                "returns and market_returns must have the same length "
                f"({len(returns)} != {len(market_returns)})"
            )
        _require_series(returns)
        _require_series(market_returns, name="market_returns")
        _require_finite(risk_free_rate=risk_free_rate)

        mean, _, variance, covariance, market_variance = self._series_moments(
            [float(r) for r in returns], [float(r) for r in market_returns]
        )
        for value in (mean, variance, covariance, market_variance):
            _require_in_range(value)
        volatility = math.sqrt(variance)

        return PortfolioMetrics(
            average_return=mean,
            volatility=volatility,
            sharpe_ratio=self.sharpe_ratio(mean, risk_free_rate, volatility),
            beta=self.beta(covariance, market_variance),
            covariance=covariance,
            market_variance=market_variance,
        )


def _power(base: float, exponent: float) -> float:
    """``base ** exponent`` that overflows to inf like compiled float arithmetic."""
    try:
        return base ** exponent
    except OverflowError:
        return math.inf


class InterpretedKernel(Kernel):
    """Pure Python backend. Always available."""

    name = "interpreted"

    def _compound_interest(self, principal, annual_rate, compounds, periods):
        return principal * _power(1 + annual_rate / compounds, compounds * periods)

    def _present_value(self, future_value, rate, periods):
        return future_value / _power(1 + rate, periods)

    def _future_value(self, present_value, rate, periods):
        return present_value * _power(1 + rate, periods)

    def _annuity_payment(self, present_value, rate, periods):
        factor = _power(1 + rate, periods)
        if rate == 0 or factor == 1:
            return present_value / periods
        return present_value * (rate * factor) / (factor - 1)

    def _loan_payment(self, principal, monthly_rate, months):
        return self._annuity_payment(principal, monthly_rate, months)

    def _investment_growth(self, initial, monthly_contribution, annual_rate, years):
        monthly_rate = annual_rate / 12
        months = years * 12

        growth = _power(1 + monthly_rate, months)
        future_initial = initial * growth

        if monthly_rate == 0 or growth == 1:
            annuity_factor = months
        else:
            annuity_factor = (growth - 1) / monthly_rate

        return future_initial + monthly_contribution * annuity_factor

    def _mortgage_payment(
        self, principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
    ):
        base_payment = self._loan_payment(principal, annual_rate / 12, years * 12)
        pmi_payment = principal * pmi_rate / 12
        tax_payment = home_value * property_tax_rate / 12
        return base_payment + pmi_payment + tax_payment

    def _sharpe_ratio(self, portfolio_return, risk_free_rate, volatility):
        return (portfolio_return - risk_free_rate) / volatility

    def _beta(self, covariance, market_variance):
        return covariance / market_variance

    # Deviations are taken from the first observation (shifted data), so a
    # constant series has exactly zero variance. Sums are accumulated left to
    # right in plain loops, the same order the compiled backend uses.

    def _portfolio_volatility(self, returns):
        n = len(returns)
        shift = returns[0]
        total = 0.0
        for r in returns:
            total += r - shift
        mean_dev = total / n

        variance = 0.0
        for r in returns:
            dr = r - shift - mean_dev
            variance += dr * dr
        return math.sqrt(variance / (n - 1))

    def _series_moments(self, returns, market_returns):
        n = len(returns)
        shift = returns[0]
        market_shift = market_returns[0]

        total = 0.0
        market_total = 0.0
        for r, m in zip(returns, market_returns):
            total += r - shift
            market_total += m - market_shift
        mean_dev = total / n
        market_mean_dev = market_total / n

        variance = 0.0
        covariance = 0.0
        market_variance = 0.0
        for r, m in zip(returns, market_returns):
            dr = r - shift - mean_dev
            dm = m - market_shift - market_mean_dev
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
