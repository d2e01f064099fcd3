"""
Core infrastructure package for the forecast engine.

Provides:
- Configuration management via pydantic-settings
- The exception taxonomy shared by every service
- FastAPI dependency injection utilities (see core.dependencies)

Usage:
    from forecast_engine.core import get_settings, ModelConfig, InputError
"""

from forecast_engine.core.config import FeatureFlags, ModelConfig, Settings, get_settings
from forecast_engine.core.exceptions import (
    DataSourceError,
    EnsembleExhaustedError,
    FeatureDisabledError,
    ForecastEngineError,
    InputError,
    InsufficientDataError,
)

__all__ = [
    # Configuration (from config.py)
    'FeatureFlags',
    'ModelConfig',
    'Settings',
    'get_settings',
    # Errors (from exceptions.py)
    'DataSourceError',
    'EnsembleExhaustedError',
    'FeatureDisabledError',
    'ForecastEngineError',
    'InputError',
    'InsufficientDataError',
]
