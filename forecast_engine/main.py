"""
FastAPI application entry point for the forecast engine.

Configures logging and CORS, registers the forecast router and exposes health
endpoints.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forecast_engine.api import api_router
from forecast_engine.core.config import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log configuration on startup and a message on shutdown."""
    settings = get_settings()
    logger.info("Forecast engine API starting")
    logger.info(
        f"Advanced analytics enabled={settings.advanced_analytics_enabled}, "
        f"alerts enabled={settings.alerts_enabled}, "
        f"data dir={settings.forecast_data_dir or 'not configured'}"
    )

    yield

    logger.info("Forecast engine API shutting down")


app = FastAPI(
    title="Forecast Engine API",
    version="1.0.0",
    description=(
        "Business-metrics forecasting: horizon revenue forecasts with uncertainty "
        "bounds, cash-flow stability, churn risk, anticipated need windows and "
        "governance-checked explanations."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/")
async def root():
    """API name, version and documentation links."""
    return {
        "name": "Forecast Engine API",
        "version": "1.0.0",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "forecast_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
