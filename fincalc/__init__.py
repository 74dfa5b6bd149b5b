"""
Financial calculation engine.
"""

from fincalc.engine import BackendState, FinancialEngine, get_engine

__all__ = ["BackendState", "FinancialEngine", "get_engine"]
