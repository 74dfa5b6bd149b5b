"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fincalc.calculations.kernel import InterpretedKernel
from fincalc.config import Settings
from fincalc.engine import FinancialEngine


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")


@pytest.fixture(scope="session")
def anyio_backend():
    """Backend for async tests."""
    return "asyncio"


@pytest.fixture(scope="session")
def interpreted_kernel():
    """Pure Python kernel."""
    return InterpretedKernel()


@pytest.fixture(scope="session")
def accelerated_kernel():
    """Numba-compiled kernel (compiles on first use)."""
    from fincalc.calculations import accelerated

    return accelerated.load()


@pytest.fixture(params=["interpreted", "accelerated"])
def kernel(request):
    """Run a test against each backend."""
    return request.getfixturevalue(f"{request.param}_kernel")


@pytest.fixture
def fallback_engine():
    """Engine forced onto the interpreted kernel."""
    return FinancialEngine(Settings(backend="fallback"))
