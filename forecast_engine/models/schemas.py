"""
Pydantic models for the forecast engine.

This module provides type-safe validation and serialization for every document
the engine consumes or produces: raw domain records, the aligned feature set,
forecast points, risk index breakdowns, governance results, alert decisions,
accuracy validations and the HTTP request/response bodies.

Field names are camelCase on purpose: they are the JSON contract consumed by
dashboards and downstream alert dispatchers.

All models use Pydantic v2 syntax.
"""

from datetime import datetime, date as DateType
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict, model_validator

from forecast_engine.models.enums import (
    AlertActionType,
    AlertCondition,
    AlertSeverity,
    CreatorCheckStatus,
    ForecastHorizon,
    PersonaType,
    TrendDirection,
)


# =============================================================================
# Raw Domain Records
# =============================================================================


class RawRevenueRecord(BaseModel):
    """Daily revenue observation."""
    date: DateType = Field(..., description="Calendar date of the observation")
    revenue: float = Field(default=0.0, ge=0, description="Gross revenue for the day")
    grossMargin: Optional[float] = Field(
        default=None, ge=0, le=1, description="Gross margin fraction, if known"
    )
    refunds: float = Field(default=0.0, ge=0, description="Refunded amount for the day")


class RawLeadRecord(BaseModel):
    """Daily lead funnel observation."""
    date: DateType
    leads: int = Field(default=0, ge=0)
    rfqSubmissions: int = Field(default=0, ge=0, description="Requests for quote submitted")
    wins: int = Field(default=0, ge=0, description="Quotes converted to orders")


class RawCustomerRecord(BaseModel):
    """Daily customer behaviour observation."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "date": "2024-03-01",
                "reorders": 3,
                "personaMix": {"contractor": 2, "smb": 1},
                "productMix": {"banners": 2, "decals": 1},
            }
        }
    )

    date: DateType
    reorders: int = Field(default=0, ge=0, description="Number of repeat orders placed")
    personaMix: Dict[str, float] = Field(default_factory=dict)
    productMix: Dict[str, float] = Field(default_factory=dict)


class RawOperationalRecord(BaseModel):
    """Daily fulfilment observation."""
    date: DateType
    slaMet: Optional[float] = Field(default=None, ge=0, le=1, description="Share of orders meeting SLA")
    onTime: Optional[float] = Field(default=None, ge=0, le=1, description="Share of orders shipped on time")
    cutoffViews: int = Field(default=0, ge=0, description="Views of the same-day cutoff timer")
    freightUsage: Optional[float] = Field(default=None, ge=0, le=1, description="Share of orders shipped freight")
    rushUsage: Optional[float] = Field(default=None, ge=0, le=1, description="Share of orders with rush service")


class RawEngagementRecord(BaseModel):
    """Daily marketing engagement observation."""
    date: DateType
    emailOpenRate: Optional[float] = Field(default=None, ge=0, le=1)
    emailClickRate: Optional[float] = Field(default=None, ge=0, le=1)
    siteSessions: int = Field(default=0, ge=0)
    siteEngagement: Optional[float] = Field(default=None, ge=0, le=1)


class RawDomainData(BaseModel):
    """The five raw record collections for one forecast run."""
    revenue: List[RawRevenueRecord] = Field(default_factory=list)
    leads: List[RawLeadRecord] = Field(default_factory=list)
    customers: List[RawCustomerRecord] = Field(default_factory=list)
    operational: List[RawOperationalRecord] = Field(default_factory=list)
    engagement: List[RawEngagementRecord] = Field(default_factory=list)


# =============================================================================
# Feature Store
# =============================================================================


class FeatureStoreData(BaseModel):
    """
    Date-aligned feature set.

    Every numeric sequence has exactly one entry per element of `dates`.
    """
    dates: List[DateType] = Field(default_factory=list)
    dailyRevenue: List[float] = Field(default_factory=list)
    grossMargin: List[float] = Field(default_factory=list)
    refunds: List[float] = Field(default_factory=list)
    leadVolume: List[float] = Field(default_factory=list)
    rfqToWinRate: List[float] = Field(default_factory=list)
    reorderCounts: List[float] = Field(default_factory=list)
    reorderIntervals: List[float] = Field(default_factory=list)
    slaPromiseMet: List[float] = Field(default_factory=list)
    onTimePercentage: List[float] = Field(default_factory=list)
    cutoffTimerViews: List[float] = Field(default_factory=list)
    freightUsage: List[float] = Field(default_factory=list)
    rushUsage: List[float] = Field(default_factory=list)
    emailEngagement: List[float] = Field(default_factory=list)
    siteEngagement: List[float] = Field(default_factory=list)
    siteSessions: List[float] = Field(default_factory=list)
    personaMix: Dict[str, float] = Field(default_factory=dict)
    productMix: Dict[str, float] = Field(default_factory=dict)
    lastUpdated: datetime = Field(default_factory=datetime.now)


class RollingStats(BaseModel):
    """Rolling window statistics; each list has len(data) - window + 1 entries."""
    mean: List[float] = Field(default_factory=list)
    std: List[float] = Field(default_factory=list)
    variance: List[float] = Field(default_factory=list)


class SeasonalityReport(BaseModel):
    """Result of periodic pattern detection."""
    hasSeasonality: bool = False
    seasonalStrength: float = Field(default=0.0, ge=0, le=1)
    seasonalIndices: List[float] = Field(default_factory=list)


# =============================================================================
# Forecast Documents
# =============================================================================


class ForecastPoint(BaseModel):
    """One forecast day with its uncertainty interval."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"date": "2024-04-01", "point": 312.5, "ciLow": 290.1, "ciHigh": 334.9}
        }
    )

    date: DateType
    point: float = Field(..., ge=0)
    ciLow: float = Field(..., ge=0)
    ciHigh: float = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_interval(self) -> "ForecastPoint":
        if not (self.ciLow <= self.point <= self.ciHigh):
            raise ValueError(
                f"interval must contain point: {self.ciLow} <= {self.point} <= {self.ciHigh}"
            )
        return self


class AnticipatedNeed(BaseModel):
    """Predicted window of the next likely reorder."""
    nextWindowStart: DateType
    nextWindowEnd: DateType
    confidence: float = Field(..., ge=0, le=1)
    topSignals: List[str] = Field(default_factory=list, max_length=5)

    @model_validator(mode="after")
    def _check_window(self) -> "AnticipatedNeed":
        if self.nextWindowStart > self.nextWindowEnd:
            raise ValueError("nextWindowStart must not be after nextWindowEnd")
        return self


class CreatorCheck(BaseModel):
    """Governance verdict over generated explanation text."""
    passed: bool
    notes: List[str] = Field(..., min_length=1)


class ForecastOutput(BaseModel):
    """
    Complete, governance-checked forecast for one persona.

    `revenueForecast` holds every requested horizon's points concatenated in
    request order; `horizonForecasts` keeps the same points keyed by horizon
    label. Instances are immutable once built.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "generatedAt": "2024-04-01T08:00:00",
                "horizons": ["14d"],
                "persona": "contractor",
                "revenueForecast": [
                    {"date": "2024-04-01", "point": 312.5, "ciLow": 290.1, "ciHigh": 334.9}
                ],
                "horizonForecasts": {
                    "14d": [{"date": "2024-04-01", "point": 312.5, "ciLow": 290.1, "ciHigh": 334.9}]
                },
                "cashFlowStabilityIndex": 78.4,
                "churnRisk": 0.22,
                "anticipatedNeed": {
                    "nextWindowStart": "2024-04-10",
                    "nextWindowEnd": "2024-04-16",
                    "confidence": 0.74,
                    "topSignals": ["Consistent reorder cadence"],
                },
                "explanations": ["Revenue is projected to rise over the next 14 days."],
                "creatorCheck": {"passed": True, "notes": ["No PII detected"]},
            }
        },
    )

    generatedAt: datetime
    horizons: List[ForecastHorizon]
    persona: PersonaType
    revenueForecast: List[ForecastPoint]
    horizonForecasts: Dict[str, List[ForecastPoint]] = Field(default_factory=dict)
    cashFlowStabilityIndex: float = Field(..., ge=0, le=100)
    churnRisk: float = Field(..., ge=0, le=1)
    anticipatedNeed: AnticipatedNeed
    explanations: List[str]
    creatorCheck: CreatorCheck


# =============================================================================
# Risk Index Breakdowns
# =============================================================================


class CFSIComponents(BaseModel):
    """Cash-Flow Stability Index sub-scores, each in [0, 100]."""
    revenueVolatility: float = Field(..., ge=0, le=100)
    arAging: float = Field(..., ge=0, le=100)
    refundRate: float = Field(..., ge=0, le=100)
    shippingMethodMix: float = Field(..., ge=0, le=100)
    customerConcentration: float = Field(..., ge=0, le=100)
    otif: float = Field(..., ge=0, le=100)


class ChurnRiskFactors(BaseModel):
    """Raw RFM inputs behind a churn risk score."""
    recencyDays: float = Field(..., ge=0)
    ordersPerMonth: float = Field(..., ge=0)
    averageOrderValue: float = Field(..., ge=0)
    engagementDelta: float
    personaMultiplier: float = Field(..., gt=0)


class ScoreInterpretation(BaseModel):
    """Human-readable reading of a risk index value."""
    level: str
    description: str
    recommendations: List[str] = Field(default_factory=list)


class ScoreTrend(BaseModel):
    """
    Week-over-week movement of a score history.

    `change` is the difference of the last-7 and previous-7 means;
    `changePercent` is that difference relative to the previous mean.
    """
    direction: TrendDirection
    change: float
    changePercent: float = 0.0
    significant: bool
    description: str = ""


# =============================================================================
# Alerts
# =============================================================================


class AlertRule(BaseModel):
    """A named threshold condition over a completed forecast."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    condition: AlertCondition
    threshold: float
    severity: AlertSeverity
    action: AlertActionType
    enabled: bool = True
    description: Optional[str] = None


class AlertNotice(BaseModel):
    """Message produced by one fired rule."""
    ruleId: str
    severity: AlertSeverity
    action: AlertActionType
    message: str


class AlertEvaluation(BaseModel):
    """
    Typed alert decision for one forecast.

    `actions[i]` is the action requested by rule `triggered[i]`.
    """
    triggered: List[str] = Field(default_factory=list)
    actions: List[AlertActionType] = Field(default_factory=list)
    creatorCheck: CreatorCheck
    notices: List[AlertNotice] = Field(default_factory=list)


class AlertSummary(BaseModel):
    """Counts over an alert evaluation."""
    totalTriggered: int
    bySeverity: Dict[str, int] = Field(default_factory=dict)
    byAction: Dict[str, int] = Field(default_factory=dict)
    highestSeverity: Optional[AlertSeverity] = None


# =============================================================================
# Governance Summaries
# =============================================================================


class CreatorCheckSummary(BaseModel):
    """Condensed status of a Creator Check result."""
    status: CreatorCheckStatus
    message: str
    issueCount: int = Field(default=0, ge=0)


# =============================================================================
# Validation
# =============================================================================


class ForecastValidation(BaseModel):
    """Comparison of one forecast point with the realised revenue."""
    date: DateType
    horizon: ForecastHorizon
    actualRevenue: float = Field(..., ge=0)
    predictedRevenue: float
    error: float = Field(..., description="actual - predicted")
    errorPercentage: float = Field(..., description="|error| / actual * 100; when actual is 0: 0 if predicted is 0, else 100")
    withinConfidence: bool


class ModelMetrics(BaseModel):
    """Aggregate accuracy over a set of validations."""
    mape: float
    rmse: float
    mae: float
    r2: float
    sampleSize: int
    lastValidation: DateType


# =============================================================================
# API Request / Response Models
# =============================================================================


class ForecastRunRequest(BaseModel):
    """Request body for POST /forecast/run."""
    model_config = ConfigDict(
        json_schema_extra={"example": {"persona": "contractor", "horizons": ["14d", "30d"]}}
    )

    persona: str = Field(..., description="Persona label, e.g. 'contractor'")
    horizons: List[str] = Field(
        default_factory=lambda: [h.value for h in ForecastHorizon],
        description="Horizon labels to forecast",
    )


class ForecastRunResponse(BaseModel):
    """Response body for POST /forecast/run."""
    forecast: ForecastOutput
    alerts: Optional[AlertEvaluation] = None


class ForecastValidationRequest(BaseModel):
    """Request body for POST /forecast/validate."""
    actualRevenue: float = Field(..., ge=0)
    horizon: str
    forecastPoint: ForecastPoint
