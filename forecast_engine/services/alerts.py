"""
Forecast Alert Evaluation Service.

Evaluates named threshold rules against a completed ForecastOutput and returns
a typed AlertEvaluation. Nothing is sent: delivery over e-mail, CRM or webhook
belongs to the caller, which reads `actions` to decide where to route.

Semantics:
    - every enabled rule whose condition holds fires, whatever its severity
    - `triggered` and `actions` are parallel and follow rule order
    - the evaluation carries a Creator Check over the forecast explanations
      plus the generated alert messages

Default rules:
    forecast_downside        any horizon falls more than 15% first to last day  high    email
    cfsi_low                 CFSI below 55                                     medium  hubspot
    churn_risk_high          churn risk at or above 0.6                        high    hubspot
    anticipated_need_urgent  need window opens within 10 days, confidence > 0.7  medium  webhook
    revenue_volatility_high  coefficient of variation of forecast points > 0.3   medium  email
"""

import logging
from collections import Counter
from datetime import date, timedelta
from typing import Callable, Dict, List, Sequence

import numpy as np

from forecast_engine.models.enums import AlertActionType, AlertCondition, AlertSeverity
from forecast_engine.models.schemas import (
    AlertEvaluation,
    AlertNotice,
    AlertRule,
    AlertSummary,
    ForecastOutput,
    ForecastPoint,
)
from forecast_engine.services.governance import check_explanations


logger = logging.getLogger(__name__)

# Anticipated need alerts only fire for confident projections
NEED_ALERT_MIN_CONFIDENCE: float = 0.7

SEVERITY_ORDER: List[AlertSeverity] = [
    AlertSeverity.LOW,
    AlertSeverity.MEDIUM,
    AlertSeverity.HIGH,
    AlertSeverity.CRITICAL,
]


DEFAULT_ALERT_RULES: List[AlertRule] = [
    AlertRule(
        id="forecast_downside",
        name="Revenue Forecast Downside",
        condition=AlertCondition.FORECAST_DOWNSIDE,
        threshold=0.15,
        severity=AlertSeverity.HIGH,
        action=AlertActionType.EMAIL,
        description="Forecast falls more than 15% between the first and last day of a horizon",
    ),
    AlertRule(
        id="cfsi_low",
        name="Low Cash Flow Stability",
        condition=AlertCondition.CFSI_BELOW,
        threshold=55,
        severity=AlertSeverity.MEDIUM,
        action=AlertActionType.HUBSPOT,
        description="Cash-flow stability index below 55",
    ),
    AlertRule(
        id="churn_risk_high",
        name="High Churn Risk",
        condition=AlertCondition.CHURN_ABOVE,
        threshold=0.6,
        severity=AlertSeverity.HIGH,
        action=AlertActionType.HUBSPOT,
        description="Churn risk at or above 60%",
    ),
    AlertRule(
        id="anticipated_need_urgent",
        name="Upcoming Reorder Window",
        condition=AlertCondition.NEED_WITHIN_DAYS,
        threshold=10,
        severity=AlertSeverity.MEDIUM,
        action=AlertActionType.WEBHOOK,
        description="Confident reorder window opening within 10 days",
    ),
    AlertRule(
        id="revenue_volatility_high",
        name="High Revenue Volatility",
        condition=AlertCondition.VOLATILITY_ABOVE,
        threshold=0.3,
        severity=AlertSeverity.MEDIUM,
        action=AlertActionType.EMAIL,
        description="Coefficient of variation of forecast points above 30%",
    ),
]


# =============================================================================
# Condition Measures
# =============================================================================


def forecast_downside(forecast: ForecastOutput) -> float:
    """Largest relative first-to-last decline across horizons (0 when none falls)."""
    series_list: List[Sequence[ForecastPoint]] = list(forecast.horizonForecasts.values())
    if not series_list and forecast.revenueForecast:
        series_list = [forecast.revenueForecast]

    worst = 0.0
    for points in series_list:
        if len(points) < 2 or points[0].point <= 0:
            continue
        decline = (points[0].point - points[-1].point) / points[0].point
        worst = max(worst, decline)
    return worst


def forecast_volatility(forecast: ForecastOutput) -> float:
    values = np.array([p.point for p in forecast.revenueForecast], dtype=np.float64)
    if len(values) < 2 or values.mean() <= 0:
        return 0.0
    return float(values.std() / values.mean())


def reference_date(forecast: ForecastOutput) -> date:
    """Last observed day: the day before the first forecast point."""
    if forecast.revenueForecast:
        return forecast.revenueForecast[0].date - timedelta(days=1)
    return forecast.generatedAt.date()


def days_until_need(forecast: ForecastOutput) -> int:
    return (forecast.anticipatedNeed.nextWindowStart - reference_date(forecast)).days


CONDITION_CHECKS: Dict[AlertCondition, Callable[[ForecastOutput, float], bool]] = {
    AlertCondition.FORECAST_DOWNSIDE: lambda f, t: forecast_downside(f) > t,
    AlertCondition.CFSI_BELOW: lambda f, t: f.cashFlowStabilityIndex < t,
    AlertCondition.CHURN_ABOVE: lambda f, t: f.churnRisk >= t,
    AlertCondition.NEED_WITHIN_DAYS: lambda f, t: (
        days_until_need(f) <= t
        and f.anticipatedNeed.confidence > NEED_ALERT_MIN_CONFIDENCE
    ),
    AlertCondition.VOLATILITY_ABOVE: lambda f, t: forecast_volatility(f) > t,
}


def alert_message(rule: AlertRule, forecast: ForecastOutput) -> str:
    base = f"Alert: {rule.name}"
    if rule.condition == AlertCondition.FORECAST_DOWNSIDE:
        return f"{base} - revenue forecast declines {forecast_downside(forecast):.1%} within a horizon"
    if rule.condition == AlertCondition.CFSI_BELOW:
        return (
            f"{base} - cash-flow stability index is {forecast.cashFlowStabilityIndex:.1f} "
            f"(threshold: {rule.threshold:g})"
        )
    if rule.condition == AlertCondition.CHURN_ABOVE:
        return f"{base} - churn risk is {forecast.churnRisk:.1%} (threshold: {rule.threshold:.1%})"
    if rule.condition == AlertCondition.NEED_WITHIN_DAYS:
        return (
            f"{base} - reorder window opens in {days_until_need(forecast)} days "
            f"with {forecast.anticipatedNeed.confidence:.1%} confidence"
        )
    return (
        f"{base} - forecast variation {forecast_volatility(forecast):.1%} "
        f"exceeds the {rule.threshold:.1%} threshold"
    )


# =============================================================================
# Public API
# =============================================================================


def check_alerts(
    forecast: ForecastOutput, rules: Sequence[AlertRule] = DEFAULT_ALERT_RULES
) -> AlertEvaluation:
    """Evaluate every enabled rule against the forecast. Pure: no delivery."""
    notices: List[AlertNotice] = []
    for rule in rules:
        if not rule.enabled:
            continue
        if CONDITION_CHECKS[rule.condition](forecast, rule.threshold):
            notices.append(
                AlertNotice(
                    ruleId=rule.id,
                    severity=rule.severity,
                    action=rule.action,
                    message=alert_message(rule, forecast),
                )
            )

    creator_check = check_explanations(
        list(forecast.explanations) + [notice.message for notice in notices]
    )

    if notices:
        logger.info(f"Alerts triggered: {[n.ruleId for n in notices]}")

    return AlertEvaluation(
        triggered=[n.ruleId for n in notices],
        actions=[n.action for n in notices],
        creatorCheck=creator_check,
        notices=notices,
    )


def get_alert_summary(evaluation: AlertEvaluation) -> AlertSummary:
    by_severity = Counter(n.severity.value for n in evaluation.notices)
    by_action = Counter(n.action.value for n in evaluation.notices)

    highest = None
    for severity in SEVERITY_ORDER:
        if by_severity.get(severity.value):
            highest = severity

    return AlertSummary(
        totalTriggered=len(evaluation.triggered),
        bySeverity=dict(by_severity),
        byAction=dict(by_action),
        highestSeverity=highest,
    )
