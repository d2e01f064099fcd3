"""
Prediction Pipeline Service.

Orchestrates one forecast run:

    fetch raw records -> extract features -> ensemble forecast per horizon
    -> CFSI, churn risk, anticipated need -> explanations -> Creator Check
    -> immutable ForecastOutput

Hard errors (unknown persona or horizon, disabled analytics, every model
failing) propagate to the caller. A failed Creator Check does not: the output
is returned with creatorCheck.passed=False and callers must hold it for review.

Usage:
    from forecast_engine.services.pipeline import PredictionPipeline

    pipeline = PredictionPipeline(InMemoryDataSource(data), config, flags)
    output = pipeline.generate_forecast("contractor", ["14d", "30d"])
"""

import logging
import time
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from forecast_engine.core.config import FeatureFlags, ModelConfig
from forecast_engine.core.exceptions import FeatureDisabledError, InputError
from forecast_engine.models.enums import ForecastHorizon, PersonaType
from forecast_engine.models.schemas import (
    AnticipatedNeed,
    FeatureStoreData,
    ForecastOutput,
    ForecastPoint,
    SeasonalityReport,
)
from forecast_engine.services.anticipated_need import calculate_anticipated_need
from forecast_engine.services.cfsi import calculate_cfsi, interpret_cfsi
from forecast_engine.services.churn import calculate_churn_risk, interpret_churn_risk
from forecast_engine.services.data_source import DomainDataSource
from forecast_engine.services.ensemble import ModelEnsemble
from forecast_engine.services.feature_store import detect_seasonality, extract_features
from forecast_engine.services.governance import run_creator_check


logger = logging.getLogger(__name__)


# Relative first-to-last change below which a forecast reads as flat
FLAT_TREND_TOLERANCE: float = 0.02

BENEFIT_STATEMENT = (
    "These insights help plan inventory and outreach that add value for customers."
)
LONG_TERM_STATEMENT = (
    "Recommendations favour long-term customer relationships over short-term pushes."
)
OPT_OUT_STATEMENT = (
    "Customers can opt out of forecast-driven outreach at any time through their "
    "communication preferences."
)


def parse_persona(persona: Union[str, PersonaType]) -> PersonaType:
    try:
        return PersonaType(persona)
    except ValueError:
        valid = ", ".join(p.value for p in PersonaType)
        raise InputError(f"Unknown persona '{persona}'. Expected one of: {valid}") from None


def parse_horizons(horizons: Optional[Iterable[Union[str, ForecastHorizon]]]) -> List[ForecastHorizon]:
    """Validate horizon labels, dropping repeats while keeping request order."""
    if horizons is None:
        return list(ForecastHorizon)

    parsed: List[ForecastHorizon] = []
    for horizon in horizons:
        try:
            value = ForecastHorizon(horizon)
        except ValueError:
            valid = ", ".join(h.value for h in ForecastHorizon)
            raise InputError(f"Unknown horizon '{horizon}'. Expected one of: {valid}") from None
        if value not in parsed:
            parsed.append(value)

    if not parsed:
        raise InputError("At least one horizon is required")
    return parsed


def _format_day(day) -> str:
    return day.strftime("%b %d").replace(" 0", " ")


def describe_trend(points: Sequence[ForecastPoint], horizon: ForecastHorizon) -> str:
    first, last = points[0].point, points[-1].point
    if first > 0:
        change = (last - first) / first
    else:
        change = 0.0 if last == 0 else 1.0

    if change > FLAT_TREND_TOLERANCE:
        direction = "rise"
    elif change < -FLAT_TREND_TOLERANCE:
        direction = "ease"
    else:
        direction = "hold steady"

    total = sum(p.point for p in points)
    low = sum(p.ciLow for p in points)
    high = sum(p.ciHigh for p in points)
    return (
        f"Revenue is projected to {direction} over the next {horizon.days} days, "
        f"from about ${first:,.0f} to ${last:,.0f} per day "
        f"(about ${total:,.0f} in total, range ${low:,.0f} to ${high:,.0f})."
    )


def build_explanations(
    horizon_forecasts: dict,
    cfsi: float,
    churn_risk: float,
    need: AnticipatedNeed,
    seasonality: SeasonalityReport,
) -> List[str]:
    """Templated, governance-safe explanation sentences."""
    explanations = [
        describe_trend(points, ForecastHorizon(label))
        for label, points in horizon_forecasts.items()
    ]

    stability = interpret_cfsi(cfsi)
    explanations.append(
        f"Cash-flow stability index is {cfsi:.0f} out of 100 ({stability.level}): "
        f"{stability.description.lower()}."
    )

    churn = interpret_churn_risk(churn_risk)
    explanations.append(
        f"Churn risk is {churn_risk:.0%} ({churn.level}); suggested step: "
        f"{churn.recommendations[0].lower()}."
    )

    explanations.append(
        f"The next reorder window is expected between {_format_day(need.nextWindowStart)} "
        f"and {_format_day(need.nextWindowEnd)} with {need.confidence:.0%} confidence."
    )

    if seasonality.hasSeasonality:
        explanations.append(
            f"A weekly ordering pattern explains about {seasonality.seasonalStrength:.0%} "
            f"of daily revenue variation."
        )

    explanations.extend([BENEFIT_STATEMENT, LONG_TERM_STATEMENT, OPT_OUT_STATEMENT])
    return explanations


class PredictionPipeline:
    """
    End-to-end forecast generation for one persona.

    Args:
        data_source: Supplies raw domain records.
        config: Model and risk parameters.
        flags: Feature switches; advanced analytics must be enabled.
        ensemble: Optional ensemble override, built from config when omitted.
    """

    def __init__(
        self,
        data_source: DomainDataSource,
        config: Optional[ModelConfig] = None,
        flags: Optional[FeatureFlags] = None,
        ensemble: Optional[ModelEnsemble] = None,
    ):
        self.data_source = data_source
        self.config = config or ModelConfig()
        self.flags = flags or FeatureFlags()
        self.ensemble = ensemble or ModelEnsemble.from_config(self.config)

    def generate_forecast(
        self,
        persona: Union[str, PersonaType],
        horizons: Optional[Iterable[Union[str, ForecastHorizon]]] = None,
    ) -> ForecastOutput:
        """
        Produce a governance-checked forecast.

        Raises:
            InputError: unknown persona or horizon, or invalid raw records.
            FeatureDisabledError: advanced analytics are switched off.
            EnsembleExhaustedError: no model could forecast the revenue series.
        """
        persona = parse_persona(persona)
        requested = parse_horizons(horizons)

        if not self.flags.advanced_analytics_enabled:
            raise FeatureDisabledError("Advanced analytics are disabled")

        started = time.perf_counter()
        logger.info(
            f"Generating forecast for persona={persona.value} "
            f"horizons={[h.value for h in requested]}"
        )

        raw = self.data_source.fetch(persona, self.config.lookback_days)
        features = extract_features(
            raw.revenue, raw.leads, raw.customers, raw.operational, raw.engagement
        )

        horizon_forecasts = self._forecast_horizons(features, requested)
        revenue_forecast = [
            point for horizon in requested for point in horizon_forecasts[horizon.value]
        ]

        cfsi = calculate_cfsi(features)
        churn_risk = calculate_churn_risk(features, persona)
        need = calculate_anticipated_need(features, persona, self.config)
        seasonality = detect_seasonality(features.dailyRevenue, self.config.seasonal_period)

        explanations = build_explanations(
            horizon_forecasts, cfsi, churn_risk, need, seasonality
        )
        creator_check = run_creator_check({"explanations": explanations})
        if not creator_check.passed:
            logger.warning(f"Creator Check failed: {creator_check.notes}")

        output = ForecastOutput(
            generatedAt=datetime.now(),
            horizons=requested,
            persona=persona,
            revenueForecast=revenue_forecast,
            horizonForecasts=horizon_forecasts,
            cashFlowStabilityIndex=cfsi,
            churnRisk=churn_risk,
            anticipatedNeed=need,
            explanations=explanations,
            creatorCheck=creator_check,
        )

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Forecast generated in {elapsed_ms:.1f}ms: {len(revenue_forecast)} points, "
            f"cfsi={cfsi:.1f}, churn={churn_risk:.2f}, creator_check={creator_check.passed}"
        )
        return output

    def _forecast_horizons(
        self, features: FeatureStoreData, horizons: Sequence[ForecastHorizon]
    ) -> dict:
        last_date = features.dates[-1] if features.dates else None
        series = np.asarray(features.dailyRevenue, dtype=np.float64)
        return {
            horizon.value: self.ensemble.forecast(
                series, horizon.days, self.config.confidence_level, last_date=last_date
            )
            for horizon in horizons
        }
