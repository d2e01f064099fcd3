"""
Churn Risk Service.

Scores the likelihood that the customer base stops reordering, using a
Recency / Frequency / Monetary heuristic plus an engagement trend:

    factor       weight  risk contribution
    recency      0.35    min(days since last reorder / 90, 1)
    frequency    0.25    1 / (1 + orders per month)
    monetary     0.15    1 / (1 + average order value / 500)
    engagement   0.25    clamp(0.5 - relative engagement change, 0, 1)

The weighted sum is scaled by a persona multiplier and clamped to [0, 1].
Without any reorder history the RFM factors take neutral defaults
(30 days, 2 orders per month, 500 per order).
"""

from typing import Dict, Optional, Sequence

import numpy as np

from forecast_engine.core.config import ModelConfig
from forecast_engine.models.enums import PersonaType, RiskLevel, TrendDirection
from forecast_engine.models.schemas import (
    ChurnRiskFactors,
    FeatureStoreData,
    ScoreInterpretation,
    ScoreTrend,
)
from forecast_engine.services.feature_store import INSUFFICIENT_TREND_DATA, week_over_week


# =============================================================================
# Constants
# =============================================================================

CHURN_WEIGHTS: Dict[str, float] = {
    "recency": 0.35,
    "frequency": 0.25,
    "monetary": 0.15,
    "engagement": 0.25,
}

PERSONA_CHURN_MULTIPLIERS: Dict[PersonaType, float] = {
    PersonaType.CONTRACTOR: 1.0,
    PersonaType.PROPERTY_MANAGER: 0.8,
    PersonaType.LOGISTICS: 1.2,
    PersonaType.HEALTHCARE: 0.6,
    PersonaType.SMB: 1.3,
}

DEFAULT_RECENCY_DAYS: float = 30.0
DEFAULT_ORDERS_PER_MONTH: float = 2.0
DEFAULT_AVERAGE_ORDER_VALUE: float = 500.0

# Days since last reorder at which recency risk saturates
RECENCY_SATURATION_DAYS: float = 90.0

# Order value at which monetary risk is one half
MONETARY_REFERENCE_VALUE: float = 500.0

# Engagement windows: recent days compared with the days before them
ENGAGEMENT_RECENT_DAYS: int = 7
ENGAGEMENT_BASELINE_DAYS: int = 21

# Risk change treated as a meaningful trend
CHURN_TREND_THRESHOLD: float = 0.05


# =============================================================================
# Factors
# =============================================================================


def engagement_delta(features: FeatureStoreData) -> float:
    """
    Relative change of blended engagement, recent week vs the weeks before.

    Blended engagement is the daily mean of e-mail and site engagement.
    Returns 0 when there is not enough history for a baseline.
    """
    email = np.asarray(features.emailEngagement, dtype=np.float64)
    site = np.asarray(features.siteEngagement, dtype=np.float64)
    if len(email) <= ENGAGEMENT_RECENT_DAYS or len(email) != len(site):
        return 0.0

    blended = (email + site) / 2
    recent = blended[-ENGAGEMENT_RECENT_DAYS:]
    baseline = blended[:-ENGAGEMENT_RECENT_DAYS][-ENGAGEMENT_BASELINE_DAYS:]
    baseline_mean = float(baseline.mean())
    if baseline_mean <= 0:
        return 0.0
    return (float(recent.mean()) - baseline_mean) / baseline_mean


def calculate_churn_factors(features: FeatureStoreData, persona: PersonaType) -> ChurnRiskFactors:
    counts = np.asarray(features.reorderCounts, dtype=np.float64)
    total_orders = float(counts.sum()) if len(counts) else 0.0

    if total_orders > 0:
        last_reorder_index = int(np.flatnonzero(counts > 0)[-1])
        recency_days = float((features.dates[-1] - features.dates[last_reorder_index]).days)
        span_days = max((features.dates[-1] - features.dates[0]).days + 1, 1)
        orders_per_month = total_orders / (span_days / 30.0)
        average_order_value = float(np.sum(features.dailyRevenue)) / total_orders
    else:
        recency_days = DEFAULT_RECENCY_DAYS
        orders_per_month = DEFAULT_ORDERS_PER_MONTH
        average_order_value = DEFAULT_AVERAGE_ORDER_VALUE

    return ChurnRiskFactors(
        recencyDays=recency_days,
        ordersPerMonth=orders_per_month,
        averageOrderValue=max(average_order_value, 0.0),
        engagementDelta=engagement_delta(features),
        personaMultiplier=PERSONA_CHURN_MULTIPLIERS[PersonaType(persona)],
    )


def score_churn_factors(factors: ChurnRiskFactors) -> float:
    """Combine RFM factors into a churn risk in [0, 1]."""
    risks = {
        "recency": min(factors.recencyDays / RECENCY_SATURATION_DAYS, 1.0),
        "frequency": 1.0 / (1.0 + factors.ordersPerMonth),
        "monetary": 1.0 / (1.0 + factors.averageOrderValue / MONETARY_REFERENCE_VALUE),
        "engagement": min(1.0, max(0.0, 0.5 - factors.engagementDelta)),
    }
    raw = sum(CHURN_WEIGHTS[name] * risks[name] for name in CHURN_WEIGHTS)
    return round(min(1.0, max(0.0, raw * factors.personaMultiplier)), 4)


def calculate_churn_risk(features: FeatureStoreData, persona: PersonaType) -> float:
    return score_churn_factors(calculate_churn_factors(features, persona))


def is_high_churn_risk(risk: float, config: Optional[ModelConfig] = None) -> bool:
    config = config or ModelConfig()
    return risk >= config.churn_threshold


def interpret_churn_risk(risk: float) -> ScoreInterpretation:
    if risk < 0.3:
        return ScoreInterpretation(
            level=RiskLevel.LOW.value,
            description="Customers are reordering steadily",
            recommendations=["Maintain current service levels"],
        )
    if risk < 0.5:
        return ScoreInterpretation(
            level=RiskLevel.MODERATE.value,
            description="Some customers show slowing reorder activity",
            recommendations=["Schedule check-ins with lapsing accounts"],
        )
    if risk < 0.7:
        return ScoreInterpretation(
            level=RiskLevel.HIGH.value,
            description="Reorder activity and engagement are declining",
            recommendations=[
                "Offer reorder reminders tied to past purchases",
                "Review recent fulfilment issues with affected accounts",
            ],
        )
    return ScoreInterpretation(
        level=RiskLevel.CRITICAL.value,
        description="Customers are likely to stop reordering",
        recommendations=[
            "Assign account owners to at-risk customers",
            "Review pricing and service gaps with the sales team",
        ],
    )


def analyze_churn_trend(history: Sequence[float]) -> ScoreTrend:
    """
    Week-over-week churn trend over a daily risk history.

    Falling risk is an improvement. A move of more than 0.05 between the
    weekly means is a trend; histories too short to compare are stable.
    """
    comparison = week_over_week(history)
    if comparison is None:
        return ScoreTrend(
            direction=TrendDirection.STABLE,
            change=0.0,
            significant=False,
            description=INSUFFICIENT_TREND_DATA,
        )

    change, change_percent = comparison
    if change < -CHURN_TREND_THRESHOLD:
        direction = TrendDirection.IMPROVING
        description = f"Churn risk decreasing by {abs(change_percent):.1f}% over the past week"
    elif change > CHURN_TREND_THRESHOLD:
        direction = TrendDirection.DECLINING
        description = f"Churn risk increasing by {change_percent:.1f}% over the past week"
    else:
        direction = TrendDirection.STABLE
        description = "Churn risk stable over the past week"

    return ScoreTrend(
        direction=direction,
        change=round(change, 4),
        changePercent=round(change_percent, 2),
        significant=direction != TrendDirection.STABLE,
        description=description,
    )
