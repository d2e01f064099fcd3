"""
Cash-Flow Stability Index (CFSI) Service.

The CFSI is a 0-100 composite: higher means steadier cash flow. It is the
weighted sum of six sub-scores computed over the most recent 30 days of
features:

    Component                 Weight  Sub-score
    revenue volatility        0.25    100 - CV * 100
    receivables aging proxy   0.20    100 - (15 + freight * 45) * 1.5
    refund rate               0.15    100 - refund_rate * 1000
    shipping method mix       0.15    100 - (freight + rush) * 100
    customer concentration    0.15    100 - HHI(persona mix) * 100
    on-time in-full           0.10    (0.6 * SLA met + 0.4 * on time) * 100

Every sub-score and the composite are clamped to [0, 100]. A component with
no usable data takes its neutral default instead.
"""

from typing import Dict, Optional, Sequence

import numpy as np

from forecast_engine.models.enums import StabilityLevel, TrendDirection
from forecast_engine.models.schemas import (
    CFSIComponents,
    FeatureStoreData,
    ScoreInterpretation,
    ScoreTrend,
)
from forecast_engine.services.feature_store import INSUFFICIENT_TREND_DATA, week_over_week


# =============================================================================
# Constants
# =============================================================================

CFSI_WEIGHTS: Dict[str, float] = {
    "revenueVolatility": 0.25,
    "arAging": 0.20,
    "refundRate": 0.15,
    "shippingMethodMix": 0.15,
    "customerConcentration": 0.15,
    "otif": 0.10,
}

# Days of trailing history scored
CFSI_LOOKBACK_DAYS: int = 30

# Sub-scores used when a component has no data
DEFAULT_VOLATILITY_SCORE: float = 50.0
DEFAULT_AR_AGING_SCORE: float = 80.0
DEFAULT_REFUND_SCORE: float = 70.0
DEFAULT_METHOD_MIX_SCORE: float = 60.0
DEFAULT_CONCENTRATION_SCORE: float = 85.0
DEFAULT_OTIF_SCORE: float = (0.97 * 0.6 + 0.95 * 0.4) * 100

# Score change treated as a meaningful trend
CFSI_TREND_THRESHOLD: float = 5.0


def _clamp_score(value: float) -> float:
    return float(min(100.0, max(0.0, value)))


def _recent(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values[-CFSI_LOOKBACK_DAYS:], dtype=np.float64)


# =============================================================================
# Sub-scores
# =============================================================================


def revenue_volatility_score(revenue: Sequence[float]) -> float:
    values = _recent(revenue)
    if len(values) < 2 or values.mean() <= 0:
        return DEFAULT_VOLATILITY_SCORE
    cv = float(values.std() / values.mean())
    return _clamp_score(100 - cv * 100)


def ar_aging_score(freight_usage: Sequence[float]) -> float:
    # freight-heavy accounts are invoiced on longer terms
    values = _recent(freight_usage)
    if len(values) == 0:
        return DEFAULT_AR_AGING_SCORE
    estimated_days = 15 + float(values.mean()) * 45
    return _clamp_score(100 - estimated_days * 1.5)


def refund_rate_score(revenue: Sequence[float], refunds: Sequence[float]) -> float:
    total_revenue = float(_recent(revenue).sum())
    if total_revenue <= 0:
        return DEFAULT_REFUND_SCORE
    rate = float(_recent(refunds).sum()) / total_revenue
    return _clamp_score(100 - rate * 1000)


def shipping_mix_score(freight_usage: Sequence[float], rush_usage: Sequence[float]) -> float:
    freight = _recent(freight_usage)
    if len(freight) == 0:
        return DEFAULT_METHOD_MIX_SCORE
    rush = _recent(rush_usage)
    share = float(freight.mean()) + (float(rush.mean()) if len(rush) else 0.0)
    return _clamp_score(100 - share * 100)


def concentration_score(persona_mix: Dict[str, float]) -> float:
    total = sum(value for value in persona_mix.values() if value > 0)
    if total <= 0:
        return DEFAULT_CONCENTRATION_SCORE
    hhi = sum((value / total) ** 2 for value in persona_mix.values() if value > 0)
    return _clamp_score(100 - hhi * 100)


def otif_score(sla_met: Sequence[float], on_time: Sequence[float]) -> float:
    sla = _recent(sla_met)
    punctual = _recent(on_time)
    if len(sla) == 0 or len(punctual) == 0:
        return DEFAULT_OTIF_SCORE
    return _clamp_score((float(sla.mean()) * 0.6 + float(punctual.mean()) * 0.4) * 100)


# =============================================================================
# Composite
# =============================================================================


def calculate_cfsi_components(features: FeatureStoreData) -> CFSIComponents:
    return CFSIComponents(
        revenueVolatility=revenue_volatility_score(features.dailyRevenue),
        arAging=ar_aging_score(features.freightUsage),
        refundRate=refund_rate_score(features.dailyRevenue, features.refunds),
        shippingMethodMix=shipping_mix_score(features.freightUsage, features.rushUsage),
        customerConcentration=concentration_score(features.personaMix),
        otif=otif_score(features.slaPromiseMet, features.onTimePercentage),
    )


def calculate_cfsi(
    features: FeatureStoreData, components: Optional[CFSIComponents] = None
) -> float:
    """
    Weighted CFSI composite in [0, 100].

    Args:
        features: Aligned feature set.
        components: Precomputed sub-scores, computed from features when omitted.
    """
    components = components or calculate_cfsi_components(features)
    scores = components.model_dump()
    composite = sum(CFSI_WEIGHTS[name] * scores[name] for name in CFSI_WEIGHTS)
    return round(_clamp_score(composite), 2)


def interpret_cfsi(score: float) -> ScoreInterpretation:
    """Map a CFSI score onto a stability band with recommendations."""
    if score >= 90:
        return ScoreInterpretation(
            level=StabilityLevel.EXCELLENT.value,
            description="Cash flow is highly stable and predictable",
            recommendations=["Maintain current operating rhythm", "Consider planned growth investments"],
        )
    if score >= 75:
        return ScoreInterpretation(
            level=StabilityLevel.GOOD.value,
            description="Cash flow is stable with minor fluctuations",
            recommendations=["Keep monitoring refund and freight trends"],
        )
    if score >= 60:
        return ScoreInterpretation(
            level=StabilityLevel.FAIR.value,
            description="Cash flow shows moderate variability",
            recommendations=[
                "Review receivables terms for freight-heavy accounts",
                "Smooth order intake with scheduled reorders",
            ],
        )
    if score >= 40:
        return ScoreInterpretation(
            level=StabilityLevel.POOR.value,
            description="Cash flow is volatile",
            recommendations=[
                "Diversify the customer base across personas",
                "Investigate refund drivers",
                "Tighten on-time fulfilment",
            ],
        )
    return ScoreInterpretation(
        level=StabilityLevel.CRITICAL.value,
        description="Cash flow is highly unstable",
        recommendations=[
            "Review working capital with finance",
            "Prioritise retention of top accounts",
        ],
    )


def analyze_cfsi_trend(history: Sequence[float]) -> ScoreTrend:
    """
    Week-over-week CFSI trend over a daily score history.

    A move of more than 5 points between the weekly means is a trend.
    Histories without two windows to compare are reported as stable.
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
    if change > CFSI_TREND_THRESHOLD:
        direction = TrendDirection.IMPROVING
        description = f"CFSI improving by {change_percent:.1f}% over the past week"
    elif change < -CFSI_TREND_THRESHOLD:
        direction = TrendDirection.DECLINING
        description = f"CFSI declining by {abs(change_percent):.1f}% over the past week"
    else:
        direction = TrendDirection.STABLE
        description = "CFSI stable over the past week"

    return ScoreTrend(
        direction=direction,
        change=round(change, 2),
        changePercent=round(change_percent, 2),
        significant=direction != TrendDirection.STABLE,
        description=description,
    )
