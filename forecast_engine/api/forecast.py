"""
FastAPI router for forecast generation and validation.

Endpoints:
- POST /forecast/run: generate a governance-checked forecast plus alert decisions
- GET /forecast/run: describe the run endpoint
- POST /forecast/validate: score a forecast point against realised revenue

Error mapping:
- 403: advanced analytics disabled
- 400: unknown persona or horizon, invalid input
- 422: no forecast model could fit the available history
- 503: no data directory configured
- 500: anything else
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool

from forecast_engine.core.dependencies import PipelineDep, SettingsDep
from forecast_engine.core.exceptions import (
    EnsembleExhaustedError,
    FeatureDisabledError,
    InputError,
)
from forecast_engine.models.enums import ForecastHorizon, PersonaType
from forecast_engine.models.schemas import (
    ForecastRunRequest,
    ForecastRunResponse,
    ForecastValidation,
    ForecastValidationRequest,
)
from forecast_engine.services.alerts import check_alerts
from forecast_engine.services.validation import validate_forecast_point


logger = logging.getLogger(__name__)

router = APIRouter()


def _require_analytics(settings) -> None:
    if not settings.advanced_analytics_enabled:
        raise HTTPException(
            status_code=403,
            detail="Advanced analytics disabled: forecasting features are not enabled",
        )


@router.post("/run", response_model=ForecastRunResponse)
async def run_forecast(
    request: ForecastRunRequest,
    settings: SettingsDep,
    pipeline: PipelineDep,
) -> ForecastRunResponse:
    """
    Generate a forecast for a persona and evaluate alert rules on it.

    A forecast whose Creator Check failed is still returned; clients must not
    display it without review.
    The pipeline runs in the worker thread pool.
    """
    _require_analytics(settings)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="No forecast data source configured")

    try:
        output = await run_in_threadpool(pipeline.generate_forecast, request.persona, request.horizons)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FeatureDisabledError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except EnsembleExhaustedError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception("Error generating forecast")
        raise HTTPException(status_code=500, detail=f"Forecast generation failed: {str(e)}")

    alerts = check_alerts(output) if settings.alerts_enabled else None
    return ForecastRunResponse(forecast=output, alerts=alerts)


@router.get("/run")
async def describe_run() -> Dict[str, Any]:
    return {
        "message": "Forecast API",
        "description": "POST to generate a revenue forecast with risk indices",
        "parameters": {
            "persona": " | ".join(p.value for p in PersonaType),
            "horizons": [h.value for h in ForecastHorizon],
        },
        "example": {"persona": "contractor", "horizons": ["14d", "30d"]},
    }


@router.post("/validate", response_model=ForecastValidation)
async def validate_forecast(
    request: ForecastValidationRequest,
    settings: SettingsDep,
) -> ForecastValidation:
    """Score one forecast point against the revenue actually booked."""
    _require_analytics(settings)
    try:
        return validate_forecast_point(request.forecastPoint, request.actualRevenue, request.horizon)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
