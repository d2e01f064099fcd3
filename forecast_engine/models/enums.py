"""
Enumeration definitions for the forecast engine.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
inside Pydantic models and JSON API responses.
"""

from enum import Enum


class ForecastHorizon(str, Enum):
    """
    Supported forecast horizons.

    The value is the wire label used by callers ("14d", "30d", "60d"); the
    `days` property is the number of daily points a forecast for this horizon
    contains.
    """
    DAYS_14 = "14d"
    DAYS_30 = "30d"
    DAYS_60 = "60d"

    @property
    def days(self) -> int:
        return int(self.value[:-1])


class PersonaType(str, Enum):
    """
    Customer persona segments.

    Personas tune churn sensitivity and the default reorder cadence used when
    a customer has no reorder history of its own.
    """
    CONTRACTOR = "contractor"
    PROPERTY_MANAGER = "property_manager"
    LOGISTICS = "logistics"
    HEALTHCARE = "healthcare"
    SMB = "smb"


class ModelName(str, Enum):
    """Forecast model identifiers."""
    ETS_LITE = "ets_lite"
    EWMA = "ewma"
    AR_LITE = "ar_lite"


class AlertSeverity(str, Enum):
    """
    Alert severity levels.

    Severity is informational only: it never gates whether a rule fires.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertActionType(str, Enum):
    """Delivery channel requested by a fired alert rule."""
    EMAIL = "email"
    HUBSPOT = "hubspot"
    WEBHOOK = "webhook"


class AlertCondition(str, Enum):
    """
    Named alert conditions.

    - FORECAST_DOWNSIDE: first-to-last forecast decline exceeds threshold (fraction)
    - CFSI_BELOW: cash-flow stability index below threshold (0-100)
    - CHURN_ABOVE: churn risk above threshold (0-1)
    - NEED_WITHIN_DAYS: anticipated need window starts within threshold days
    - VOLATILITY_ABOVE: forecast coefficient of variation above threshold
    """
    FORECAST_DOWNSIDE = "forecast_downside"
    CFSI_BELOW = "cfsi_below"
    CHURN_ABOVE = "churn_above"
    NEED_WITHIN_DAYS = "need_within_days"
    VOLATILITY_ABOVE = "volatility_above"


class RiskLevel(str, Enum):
    """Churn risk band."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class StabilityLevel(str, Enum):
    """Cash-flow stability band derived from the CFSI score."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


class TrendDirection(str, Enum):
    """Direction of a score between two observations."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class UrgencyLevel(str, Enum):
    """How soon an anticipated need window opens."""
    IMMEDIATE = "immediate"
    SOON = "soon"
    UPCOMING = "upcoming"
    DISTANT = "distant"


class CreatorCheckStatus(str, Enum):
    """Summary status of a Creator Check result."""
    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"
