"""
Model Ensemble Service.

Runs every forecast model independently on the same series and combines the
survivors into one forecast. Each model run produces a ModelOutcome holding
either its points or the error it raised, so one model's failure never
crosses into another's run.

Combination is an unweighted per-date mean of points, lower bounds and upper
bounds. Because every member satisfies ciLow <= point <= ciHigh, so does the
mean, and each combined point lies between the smallest and largest member
point for its date.

Usage:
    from forecast_engine.services.ensemble import ModelEnsemble

    ensemble = ModelEnsemble.from_config(config)
    points = ensemble.forecast(features.dailyRevenue, 14, 0.8, last_date=features.dates[-1])
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

import numpy as np

from forecast_engine.core.config import ModelConfig
from forecast_engine.core.exceptions import EnsembleExhaustedError, ForecastEngineError
from forecast_engine.models.schemas import ForecastPoint
from forecast_engine.services.forecast_models import (
    ForecastModel,
    as_series,
    default_models,
    describe_fit,
    validate_horizon,
    z_multiplier,
)


logger = logging.getLogger(__name__)

# Failures expected from short or degenerate series; anything else is logged with a traceback
EXPECTED_MODEL_FAILURES = (ForecastEngineError, ValueError, ArithmeticError)


@dataclass
class ModelOutcome:
    """Result of one model run: points on success, error on failure."""
    model_name: str
    points: Optional[List[ForecastPoint]] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.points is not None


class ModelEnsemble:
    """Unweighted, fail-soft combination of independent forecast models."""

    def __init__(self, models: Optional[Sequence[ForecastModel]] = None):
        self.models: List[ForecastModel] = list(models) if models is not None else default_models()

    @classmethod
    def from_config(cls, config: ModelConfig) -> "ModelEnsemble":
        return cls(default_models(config))

    def run_models(
        self,
        series: Sequence[float],
        horizon_days: int,
        confidence_level: float,
        last_date: Optional[date] = None,
    ) -> List[ModelOutcome]:
        """
        Fit and forecast every member, collecting one outcome per model.

        Caller mistakes (bad horizon, bad confidence level, non-finite series)
        are raised before any model runs.
        """
        validate_horizon(horizon_days)
        z_multiplier(confidence_level)
        as_series(series)

        outcomes: List[ModelOutcome] = []
        for model in self.models:
            try:
                fit = model.fit(series, last_date=last_date)
                points = model.forecast(fit, horizon_days, confidence_level)
            except Exception as exc:
                logger.warning(
                    f"Excluding {model.name} from ensemble: {exc}",
                    exc_info=not isinstance(exc, EXPECTED_MODEL_FAILURES),
                )
                outcomes.append(ModelOutcome(model_name=model.name, error=exc))
                continue
            logger.debug(f"{model.name} fitted: {describe_fit(fit)}")
            outcomes.append(ModelOutcome(model_name=model.name, points=points))
        return outcomes

    def forecast(
        self,
        series: Sequence[float],
        horizon_days: int,
        confidence_level: float,
        last_date: Optional[date] = None,
    ) -> List[ForecastPoint]:
        """
        Combined forecast of `horizon_days` points.

        Raises:
            InputError: invalid horizon, confidence level or series.
            EnsembleExhaustedError: no model produced a forecast.
        """
        outcomes = self.run_models(series, horizon_days, confidence_level, last_date)
        successes = [outcome for outcome in outcomes if outcome.succeeded]

        if not successes:
            raise EnsembleExhaustedError(
                [(outcome.model_name, outcome.error) for outcome in outcomes]
            )

        logger.info(
            f"Ensemble combined {len(successes)}/{len(outcomes)} models "
            f"({', '.join(o.model_name for o in successes)}) for {horizon_days} days"
        )
        return combine_forecasts([outcome.points for outcome in successes])


def combine_forecasts(member_points: Sequence[Sequence[ForecastPoint]]) -> List[ForecastPoint]:
    """Per-date unweighted mean of member points and bounds."""
    points = np.array([[p.point for p in member] for member in member_points])
    lows = np.array([[p.ciLow for p in member] for member in member_points])
    highs = np.array([[p.ciHigh for p in member] for member in member_points])

    mean_points = points.mean(axis=0)
    mean_lows = np.minimum(lows.mean(axis=0), mean_points)
    mean_highs = np.maximum(highs.mean(axis=0), mean_points)

    return [
        ForecastPoint(
            date=reference.date,
            point=float(point),
            ciLow=float(low),
            ciHigh=float(high),
        )
        for reference, point, low, high in zip(member_points[0], mean_points, mean_lows, mean_highs)
    ]
