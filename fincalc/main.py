"""
Main FastAPI application entry point.
"""

import logging

from fastapi import Depends, FastAPI

from fincalc.config import get_settings
from fincalc.api import router as api_router
from fincalc.engine import FinancialEngine, get_engine

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Financial calculation engine for the personal-finance dashboard",
    version="0.1.0",
    debug=settings.debug,
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/health")
async def health_check(engine: FinancialEngine = Depends(get_engine)):
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": "0.1.0",
        "backend": engine.state.value,
    }
