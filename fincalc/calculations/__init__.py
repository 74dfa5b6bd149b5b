"""
Financial Calculation Kernel

Pure calculation functions for the personal-finance dashboard. The
interpreted kernel is always importable; the numba-compiled kernel in
``fincalc.calculations.accelerated`` is loaded on demand by the engine.
"""

from fincalc.calculations import amortization
from fincalc.calculations.kernel import (
    InterpretedKernel,
    InvalidInputError,
    Kernel,
    MortgageBreakdown,
    PortfolioMetrics,
)

__all__ = [
    "amortization",
    "InterpretedKernel",
    "InvalidInputError",
    "Kernel",
    "MortgageBreakdown",
    "PortfolioMetrics",
]
