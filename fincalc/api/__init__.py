"""
API routes for the financial calculation engine.
"""

from fastapi import APIRouter

from fincalc.api import calculations

router = APIRouter()

# Include sub-routers
router.include_router(calculations.router, prefix="/calculate", tags=["calculations"])
