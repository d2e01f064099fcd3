"""
Forecast Engine Services

Business logic for the forecast engine. Every service is a pure computation
over explicit inputs; only data_source touches external storage.

Services:
- data_source: raw record access (in-memory bundle, CSV directory)
- feature_store: date alignment, rolling statistics, seasonality
- forecast_models: ETS Lite, EWMA and AR Lite models
- ensemble: fail-soft unweighted model combination
- cfsi: Cash-Flow Stability Index
- churn: RFM churn risk
- anticipated_need: next reorder window
- governance: Creator Check over explanation text
- pipeline: end-to-end forecast generation
- alerts: rule evaluation over completed forecasts
- validation: forecast accuracy metrics
"""

# =============================================================================
# Data Access and Features
# =============================================================================

from forecast_engine.services.data_source import (
    CsvDataSource,
    DomainDataSource,
    InMemoryDataSource,
)
from forecast_engine.services.feature_store import (
    calculate_rolling_stats,
    detect_seasonality,
    extract_features,
)

# =============================================================================
# Models and Ensemble
# =============================================================================

from forecast_engine.services.forecast_models import (
    ARLiteModel,
    ETSLiteModel,
    EWMAModel,
    ForecastModel,
)
from forecast_engine.services.ensemble import ModelEnsemble, ModelOutcome

# =============================================================================
# Risk Indices
# =============================================================================

from forecast_engine.services.cfsi import calculate_cfsi, calculate_cfsi_components, interpret_cfsi
from forecast_engine.services.churn import calculate_churn_risk, interpret_churn_risk, is_high_churn_risk
from forecast_engine.services.anticipated_need import (
    calculate_anticipated_need,
    interpret_anticipated_need,
)

# =============================================================================
# Governance, Pipeline, Alerts, Validation
# =============================================================================

from forecast_engine.services.governance import get_creator_check_summary, run_creator_check
from forecast_engine.services.pipeline import PredictionPipeline
from forecast_engine.services.alerts import DEFAULT_ALERT_RULES, check_alerts, get_alert_summary
from forecast_engine.services.validation import calculate_model_metrics, validate_forecast_point


__all__ = [
    # Data access and features
    'CsvDataSource',
    'DomainDataSource',
    'InMemoryDataSource',
    'calculate_rolling_stats',
    'detect_seasonality',
    'extract_features',
    # Models and ensemble
    'ARLiteModel',
    'ETSLiteModel',
    'EWMAModel',
    'ForecastModel',
    'ModelEnsemble',
    'ModelOutcome',
    # Risk indices
    'calculate_anticipated_need',
    'calculate_cfsi',
    'calculate_cfsi_components',
    'calculate_churn_risk',
    'interpret_anticipated_need',
    'interpret_cfsi',
    'interpret_churn_risk',
    'is_high_churn_risk',
    # Governance, pipeline, alerts, validation
    'DEFAULT_ALERT_RULES',
    'PredictionPipeline',
    'calculate_model_metrics',
    'check_alerts',
    'get_alert_summary',
    'get_creator_check_summary',
    'run_creator_check',
    'validate_forecast_point',
]
