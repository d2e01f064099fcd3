"""
FastAPI dependency injection for the forecast engine.

Dependencies Provided:
- get_settings_dependency / SettingsDep: the cached Settings singleton
- get_pipeline / PipelineDep: a PredictionPipeline reading CSV exports from
  FORECAST_DATA_DIR, or None when no data directory is configured

Endpoints receive collaborators through these providers so tests can swap
them with `app.dependency_overrides` or call handlers directly.

Usage:
    @router.post("/run")
    async def run_forecast(request: ForecastRunRequest, settings: SettingsDep, pipeline: PipelineDep):
        ...
"""

from typing import Annotated, Optional

from fastapi import Depends

from forecast_engine.core.config import Settings, get_settings
from forecast_engine.services.data_source import CsvDataSource
from forecast_engine.services.pipeline import PredictionPipeline


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


# =============================================================================
# Pipeline Dependency
# =============================================================================

def get_pipeline(settings: SettingsDep) -> Optional[PredictionPipeline]:
    """Build a pipeline over the configured CSV directory, if any."""
    if not settings.forecast_data_dir:
        return None
    return PredictionPipeline(
        CsvDataSource(settings.forecast_data_dir),
        config=settings.to_model_config(),
        flags=settings.to_feature_flags(),
    )


PipelineDep = Annotated[Optional[PredictionPipeline], Depends(get_pipeline)]
