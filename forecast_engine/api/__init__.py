"""
Forecast engine API package.

Router modules:
- forecast: forecast generation and accuracy validation
"""

from fastapi import APIRouter

from forecast_engine.api.forecast import router as forecast_router

api_router = APIRouter()
api_router.include_router(forecast_router, prefix="/forecast", tags=["forecast"])

__all__ = [
    "api_router",
    "forecast_router",
]
