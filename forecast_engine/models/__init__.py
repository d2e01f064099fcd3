"""
Package initialization file for forecast engine models.

Re-exports the Pydantic schemas and enumerations so other modules can write:

    from forecast_engine.models import ForecastOutput, ForecastHorizon, PersonaType
"""

# =============================================================================
# Enums
# =============================================================================
from forecast_engine.models.enums import (
    AlertActionType,
    AlertCondition,
    AlertSeverity,
    CreatorCheckStatus,
    ForecastHorizon,
    ModelName,
    PersonaType,
    RiskLevel,
    StabilityLevel,
    TrendDirection,
    UrgencyLevel,
)

# =============================================================================
# Schemas
# =============================================================================
from forecast_engine.models.schemas import (
    AlertEvaluation,
    AlertNotice,
    AlertRule,
    AlertSummary,
    AnticipatedNeed,
    CFSIComponents,
    ChurnRiskFactors,
    CreatorCheck,
    CreatorCheckSummary,
    FeatureStoreData,
    ForecastOutput,
    ForecastPoint,
    ForecastRunRequest,
    ForecastRunResponse,
    ForecastValidation,
    ForecastValidationRequest,
    ModelMetrics,
    RawCustomerRecord,
    RawDomainData,
    RawEngagementRecord,
    RawLeadRecord,
    RawOperationalRecord,
    RawRevenueRecord,
    RollingStats,
    ScoreInterpretation,
    ScoreTrend,
    SeasonalityReport,
)

__all__ = [
    # Enums
    'AlertActionType',
    'AlertCondition',
    'AlertSeverity',
    'CreatorCheckStatus',
    'ForecastHorizon',
    'ModelName',
    'PersonaType',
    'RiskLevel',
    'StabilityLevel',
    'TrendDirection',
    'UrgencyLevel',
    # Raw records
    'RawCustomerRecord',
    'RawDomainData',
    'RawEngagementRecord',
    'RawLeadRecord',
    'RawOperationalRecord',
    'RawRevenueRecord',
    # Features
    'FeatureStoreData',
    'RollingStats',
    'SeasonalityReport',
    # Forecast documents
    'AnticipatedNeed',
    'CreatorCheck',
    'CreatorCheckSummary',
    'ForecastOutput',
    'ForecastPoint',
    # Risk indices
    'CFSIComponents',
    'ChurnRiskFactors',
    'ScoreInterpretation',
    'ScoreTrend',
    # Alerts
    'AlertEvaluation',
    'AlertNotice',
    'AlertRule',
    'AlertSummary',
    # Validation
    'ForecastValidation',
    'ModelMetrics',
    # API
    'ForecastRunRequest',
    'ForecastRunResponse',
    'ForecastValidationRequest',
]
