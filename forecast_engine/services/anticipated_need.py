"""
Anticipated Need Service.

Predicts the date range in which the next reorder is likely, from the
observed reorder cadence:

1. typical interval = median of the positive reorder intervals, or the
   persona's default cadence when there is no reorder history
2. projection = last reorder date + typical interval, advanced by whole
   intervals until it falls after the last observed date
3. window = projection +/- 20% of the interval (at least one day, at most
   half of max_window_days), never starting on or before the last observed date
4. confidence = (1 - CV of intervals) scaled by sample sufficiency
   (n / 5, capped at 1), clamped to [min_confidence, 1]
"""

from datetime import date, timedelta
from typing import Dict, List, Optional

import numpy as np

from forecast_engine.core.config import ModelConfig
from forecast_engine.models.enums import PersonaType, UrgencyLevel
from forecast_engine.models.schemas import AnticipatedNeed, FeatureStoreData, ScoreInterpretation
from forecast_engine.services.churn import engagement_delta


# =============================================================================
# Constants
# =============================================================================

PERSONA_REORDER_INTERVALS: Dict[PersonaType, int] = {
    PersonaType.CONTRACTOR: 45,
    PersonaType.PROPERTY_MANAGER: 60,
    PersonaType.LOGISTICS: 30,
    PersonaType.HEALTHCARE: 90,
    PersonaType.SMB: 60,
}

PERSONA_SIGNALS: Dict[PersonaType, str] = {
    PersonaType.CONTRACTOR: "Project season reorder pattern",
    PersonaType.PROPERTY_MANAGER: "Property maintenance schedule",
    PersonaType.LOGISTICS: "High-volume shipping cadence",
    PersonaType.HEALTHCARE: "Compliance signage refresh cycle",
    PersonaType.SMB: "Promotional event calendar",
}

WINDOW_FRACTION: float = 0.2

# Intervals needed for full sample-size credit
SUFFICIENT_INTERVALS: int = 5

MAX_SIGNALS: int = 5


def _typical_interval(intervals: List[float], persona: PersonaType) -> float:
    if intervals:
        return float(np.median(intervals))
    return float(PERSONA_REORDER_INTERVALS[persona])


def _confidence(intervals: List[float], config: ModelConfig) -> float:
    if len(intervals) < 2:
        return config.min_confidence
    values = np.asarray(intervals, dtype=np.float64)
    cv = float(values.std() / values.mean())
    sufficiency = min(1.0, len(values) / SUFFICIENT_INTERVALS)
    raw = (1.0 - cv) * sufficiency
    return round(min(1.0, max(config.min_confidence, raw)), 4)


def _top_signals(
    features: FeatureStoreData, intervals: List[float], persona: PersonaType
) -> List[str]:
    signals: List[str] = []

    if len(intervals) >= 2:
        values = np.asarray(intervals, dtype=np.float64)
        if values.std() / values.mean() < 0.3:
            signals.append("Consistent reorder cadence")

    revenue = features.dailyRevenue
    if len(revenue) >= 14:
        recent = float(np.mean(revenue[-7:]))
        prior = float(np.mean(revenue[-14:-7]))
        if prior > 0 and recent > prior * 1.05:
            signals.append("Revenue trending upward")
        elif prior > 0 and recent < prior * 0.95:
            signals.append("Revenue trending downward")

    delta = engagement_delta(features)
    if delta > 0.05:
        signals.append("Rising engagement with recent campaigns")
    elif delta < -0.05:
        signals.append("Softening engagement with recent campaigns")

    if features.slaPromiseMet and float(np.mean(features.slaPromiseMet[-30:])) >= 0.95:
        signals.append("Reliable delivery performance")

    signals.append(PERSONA_SIGNALS[persona])
    return signals[:MAX_SIGNALS]


def calculate_anticipated_need(
    features: FeatureStoreData,
    persona: PersonaType,
    config: Optional[ModelConfig] = None,
) -> AnticipatedNeed:
    """
    Project the next reorder window for the persona.

    Anchored on the last observed feature date, or today when the feature set
    is empty.
    """
    config = config or ModelConfig()
    persona = PersonaType(persona)

    reference = features.dates[-1] if features.dates else date.today()
    intervals = [value for value in features.reorderIntervals if value > 0]
    typical = max(_typical_interval(intervals, persona), 1.0)

    reorder_dates = [
        day for day, count in zip(features.dates, features.reorderCounts) if count > 0
    ]
    last_reorder = reorder_dates[-1] if reorder_dates else reference

    step = timedelta(days=round(typical))
    projected = last_reorder + step
    while projected <= reference:
        projected += step

    half_width = max(1, round(typical * WINDOW_FRACTION))
    half_width = min(half_width, max(1, config.max_window_days // 2))

    window_start = max(projected - timedelta(days=half_width), reference + timedelta(days=1))
    window_end = projected + timedelta(days=half_width)

    return AnticipatedNeed(
        nextWindowStart=window_start,
        nextWindowEnd=window_end,
        confidence=_confidence(intervals, config),
        topSignals=_top_signals(features, intervals, persona),
    )


def interpret_anticipated_need(
    need: AnticipatedNeed, reference_date: Optional[date] = None
) -> ScoreInterpretation:
    """Describe how soon the window opens and how much to trust it."""
    reference_date = reference_date or date.today()
    days_until = (need.nextWindowStart - reference_date).days

    if days_until <= 7:
        urgency = UrgencyLevel.IMMEDIATE
        recommendations = ["Confirm stock and lead times for likely reorder items"]
    elif days_until <= 14:
        urgency = UrgencyLevel.SOON
        recommendations = ["Send a reorder reminder with saved order details"]
    elif days_until <= 30:
        urgency = UrgencyLevel.UPCOMING
        recommendations = ["Plan outreach ahead of the window"]
    else:
        urgency = UrgencyLevel.DISTANT
        recommendations = ["Keep the account in regular nurture"]

    if need.confidence < 0.5:
        recommendations.append("Treat the window as tentative until more reorders are observed")

    return ScoreInterpretation(
        level=urgency.value,
        description=(
            f"Next reorder window opens in {max(days_until, 0)} days "
            f"with {need.confidence:.0%} confidence"
        ),
        recommendations=recommendations,
    )
