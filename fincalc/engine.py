"""
Financial calculation engine.

``FinancialEngine`` owns backend selection and exposes one coroutine per
calculation. The first call loads the accelerated (numba) kernel in a worker
thread; if that fails or times out, the interpreted kernel is used instead.
Concurrent first calls share a single load. Once chosen, the backend never
changes for the lifetime of the engine.
"""

import asyncio
import importlib
import logging
import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Sequence

from fincalc.calculations.amortization import generate_amortization_schedule
from fincalc.calculations.kernel import (
    InterpretedKernel,
    Kernel,
    MortgageBreakdown,
    PortfolioMetrics,
)
from fincalc.config import Settings, get_settings

logger = logging.getLogger(__name__)


class BackendState(str, Enum):
    """Lifecycle of the engine's backend."""

    uninitialized = "uninitialized"
    loading = "loading"
    ready_accelerated = "ready_accelerated"
    ready_fallback = "ready_fallback"


@dataclass(frozen=True)
class BenchmarkResult:
    """Timing of the active backend against the interpreted kernel."""

    backend: str
    iterations: int
    active_seconds: float
    interpreted_seconds: float
    speedup: Optional[float]


def import_accelerated_kernel(module_path: str) -> Kernel:
    """Import the accelerated module (compiling it) and build its kernel."""
    module = importlib.import_module(module_path)
    return module.load()


class FinancialEngine:
    """
    Calculation facade with lazy, single-flight backend selection.

    Args:
        settings: Engine settings (defaults to the cached application settings)
        loader: Callable returning the accelerated kernel. Defaults to
            importing ``settings.accelerated_module``. It runs in a worker
            thread and any exception it raises selects the fallback kernel.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        loader: Optional[Callable[[], Kernel]] = None,
    ):
        self.settings = settings or get_settings()
        self._loader = loader or (
            lambda: import_accelerated_kernel(self.settings.accelerated_module)
        )
        self._kernel: Optional[Kernel] = None
        self._state = BackendState.uninitialized
        self._init_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._kernel is not None

    @property
    def backend_name(self) -> Optional[str]:
        return self._kernel.name if self._kernel else None

    # -------------------------------------------------------------------------
    # Backend lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> Kernel:
        """
        Resolve the backend, loading it on first use.

        Callers arriving while a load is in flight await the same task. The
        task is shielded so cancelling one caller does not abort the load for
        the others.
        """
        if self._kernel is not None:
            return self._kernel

        if self._init_task is None:
            self._state = BackendState.loading
            self._init_task = asyncio.ensure_future(self._select_backend())

        return await asyncio.shield(self._init_task)

    async def _select_backend(self) -> Kernel:
        if self.settings.backend == "fallback":
            logger.info("Accelerated backend disabled by configuration")
            return self._resolve(InterpretedKernel())

        timeout = self.settings.accelerated_load_timeout_seconds
        started = time.perf_counter()
        try:
            kernel = await asyncio.wait_for(asyncio.to_thread(self._loader), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Accelerated backend did not load within {timeout}s, "
                "falling back to interpreted kernel"
            )
            return self._resolve(InterpretedKernel())
        except Exception as e:
            logger.warning(
                f"Failed to load accelerated backend, falling back to "
                f"interpreted kernel: {e!r}"
            )
            return self._resolve(InterpretedKernel())

        logger.info(
            f"Accelerated backend loaded in {time.perf_counter() - started:.2f}s"
        )
        return self._resolve(kernel)

    def _resolve(self, kernel: Kernel) -> Kernel:
        self._kernel = kernel
        self._state = (
            BackendState.ready_accelerated
            if kernel.accelerated
            else BackendState.ready_fallback
        )
        return kernel

    # -------------------------------------------------------------------------
    # Calculations
    # -------------------------------------------------------------------------

    async def compound_interest(
        self,
        principal: float,
        annual_rate: float,
        years: float,
        compounds_per_year: float = 12,
    ) -> float:
        """Amount after ``years`` of compounding ``compounds_per_year`` times a year."""
        kernel = await self.initialize()
        return kernel.compound_interest(
            principal, annual_rate, compounds_per_year, years
        )

    async def present_value(
        self, future_value: float, rate: float, periods: float
    ) -> float:
        kernel = await self.initialize()
        return kernel.present_value(future_value, rate, periods)

    async def future_value(
        self, present_value: float, rate: float, periods: float
    ) -> float:
        kernel = await self.initialize()
        return kernel.future_value(present_value, rate, periods)

    async def annuity_payment(
        self, present_value: float, rate: float, periods: float
    ) -> float:
        kernel = await self.initialize()
        return kernel.annuity_payment(present_value, rate, periods)

    async def loan_payment(
        self, principal: float, annual_rate: float, years: float
    ) -> float:
        """Monthly payment on a fully amortizing loan."""
        kernel = await self.initialize()
        return kernel.loan_payment(principal, annual_rate / 12, years * 12)

    async def investment_growth(
        self,
        initial: float,
        monthly_contribution: float,
        annual_rate: float,
        years: float,
    ) -> float:
        kernel = await self.initialize()
        return kernel.investment_growth(
            initial, monthly_contribution, annual_rate, years
        )

    def _mortgage_args(self, principal, pmi_rate, property_tax_rate, home_value):
        if pmi_rate is None:
            pmi_rate = self.settings.default_pmi_rate
        if property_tax_rate is None:
            property_tax_rate = self.settings.default_property_tax_rate
        if home_value is None:
            home_value = principal * self.settings.default_home_value_ratio
        return pmi_rate, property_tax_rate, home_value

    async def mortgage_payment(
        self,
        principal: float,
        annual_rate: float,
        years: float,
        pmi_rate: Optional[float] = None,
        property_tax_rate: Optional[float] = None,
        home_value: Optional[float] = None,
    ) -> float:
        """
        Total monthly mortgage payment.

        Omitted options default to 0.5% PMI, 1.2% property tax and a home
        value of 1.2x the principal (20% down), unless configured otherwise.
        """
        kernel = await self.initialize()
        pmi_rate, property_tax_rate, home_value = self._mortgage_args(
            principal, pmi_rate, property_tax_rate, home_value
        )
        return kernel.mortgage_payment(
            principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
        )

    async def mortgage_breakdown(
        self,
        principal: float,
        annual_rate: float,
        years: float,
        pmi_rate: Optional[float] = None,
        property_tax_rate: Optional[float] = None,
        home_value: Optional[float] = None,
    ) -> MortgageBreakdown:
        kernel = await self.initialize()
        pmi_rate, property_tax_rate, home_value = self._mortgage_args(
            principal, pmi_rate, property_tax_rate, home_value
        )
        return kernel.mortgage_breakdown(
            principal, annual_rate, years, pmi_rate, property_tax_rate, home_value
        )

    async def portfolio_metrics(
        self,
        returns: Sequence[float],
        market_returns: Sequence[float],
        risk_free_rate: Optional[float] = None,
    ) -> PortfolioMetrics:
        kernel = await self.initialize()
        if risk_free_rate is None:
            risk_free_rate = self.settings.default_risk_free_rate
        return kernel.portfolio_metrics(returns, market_returns, risk_free_rate)

    async def amortization_schedule(
        self,
        principal: float,
        annual_rate: float,
        years: float,
        start_date: Optional[date] = None,
    ) -> List[Dict]:
        kernel = await self.initialize()
        return generate_amortization_schedule(
            kernel, principal, annual_rate, years, start_date=start_date
        )

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    async def benchmark(self, iterations: Optional[int] = None) -> BenchmarkResult:
        """
        Time compound interest on the active backend against the interpreted one.

        Diagnostic only; has no effect on calculation results.
        """
        kernel = await self.initialize()
        iterations = iterations or self.settings.benchmark_iterations
        return await asyncio.to_thread(_run_benchmark, kernel, iterations)


def _time_kernel(kernel: Kernel, iterations: int) -> float:
    start = time.perf_counter()
    for _ in range(iterations):
        kernel.compound_interest(100000.0, 0.07, 12.0, 30.0)
    return time.perf_counter() - start


def _run_benchmark(kernel: Kernel, iterations: int) -> BenchmarkResult:
    active_seconds = _time_kernel(kernel, iterations)
    interpreted_seconds = _time_kernel(InterpretedKernel(), iterations)
    return BenchmarkResult(
        backend=kernel.name,
        iterations=iterations,
        active_seconds=active_seconds,
        interpreted_seconds=interpreted_seconds,
        speedup=interpreted_seconds / active_seconds if active_seconds > 0 else None,
    )


@lru_cache()
def get_engine() -> FinancialEngine:
    """Get the application's engine instance."""
    return FinancialEngine(get_settings())
