"""
Lightweight univariate forecast models.

Three independent models share one contract:

    fit(series, last_date=None) -> fit state
    forecast(fit, horizon_days, confidence_level) -> List[ForecastPoint]

- ETSLiteModel: additive Holt-Winters (level, trend, weekly seasonality)
- EWMAModel: exponentially weighted moving average with recent drift
- ARLiteModel: AR(p) fitted by ordinary least squares with an intercept

Intervals are symmetric: point +/- z * sigma * spread(h), where sigma is the
root-mean-square one-step residual (floored at 0.001), z is the two-sided
normal quantile of the confidence level and spread(h) grows with the step.
Points and bounds are clamped at zero since revenue cannot be negative.

A model that cannot fit the series raises InsufficientDataError; the ensemble
is responsible for recovering from it.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from statistics import NormalDist
from typing import List, Optional, Protocol, Sequence

import numpy as np

from forecast_engine.core.config import ModelConfig
from forecast_engine.core.exceptions import ForecastEngineError, InputError, InsufficientDataError
from forecast_engine.models.enums import ModelName
from forecast_engine.models.schemas import ForecastPoint
from forecast_engine.services.feature_store import seasonal_indices


# =============================================================================
# Constants
# =============================================================================

# Lower bound for residual sigma so intervals never collapse to a point
MIN_SIGMA: float = 0.001

# Number of trailing smoothed differences averaged into the EWMA drift
EWMA_DRIFT_WINDOW: int = 7


# =============================================================================
# Shared Helpers
# =============================================================================


def z_multiplier(confidence_level: float) -> float:
    """
    Two-sided standard normal quantile for a confidence level.

    Example:
        >>> round(z_multiplier(0.95), 2)
        1.96
    """
    if not 0 < confidence_level < 1:
        raise InputError(f"Confidence level must be in (0, 1), got {confidence_level}")
    return NormalDist().inv_cdf((1 + confidence_level) / 2)


def validate_horizon(horizon_days: int) -> None:
    if horizon_days <= 0:
        raise InputError(f"Horizon must be a positive number of days, got {horizon_days}")


def as_series(series: Sequence[float]) -> np.ndarray:
    """Convert to a float array, rejecting NaN and infinite values."""
    values = np.asarray(series, dtype=np.float64)
    if values.ndim != 1:
        raise InputError("Series must be one-dimensional")
    if not np.all(np.isfinite(values)):
        raise InputError("Series contains non-finite values")
    return values


def residual_sigma(residuals: np.ndarray) -> float:
    if len(residuals) == 0:
        return MIN_SIGMA
    sigma = float(np.sqrt(np.mean(np.square(residuals))))
    return max(sigma, MIN_SIGMA)


def build_points(
    last_date: date, points: np.ndarray, half_widths: np.ndarray
) -> List[ForecastPoint]:
    """Assemble dated, zero-clamped forecast points for days 1..h after last_date."""
    lows = points - half_widths
    highs = points + half_widths
    if not (np.all(np.isfinite(lows)) and np.all(np.isfinite(highs))):
        raise ForecastEngineError("Forecast diverged to non-finite values")

    return [
        ForecastPoint(
            date=last_date + timedelta(days=step + 1),
            point=max(float(point), 0.0),
            ciLow=max(float(low), 0.0),
            ciHigh=max(float(high), 0.0),
        )
        for step, (point, low, high) in enumerate(zip(points, lows, highs))
    ]


class ForecastModel(Protocol):
    """Structural interface shared by all forecast models."""

    name: str

    def fit(self, series: Sequence[float], last_date: Optional[date] = None): ...

    def forecast(self, fit, horizon_days: int, confidence_level: float) -> List[ForecastPoint]: ...


# =============================================================================
# ETS Lite (additive Holt-Winters)
# =============================================================================


@dataclass
class ETSFit:
    level: float
    trend: float
    seasonal: List[float]
    fitted: List[float]
    residuals: List[float]
    period: int
    sigma: float
    last_date: date


class ETSLiteModel:
    """
    Additive Holt-Winters with level, trend and seasonal smoothing.

    Initial level and trend come from a least-squares line over the first two
    seasonal cycles; initial seasonal factors are the detrended per-phase
    means of the same cycles. `fitted[t]` is the one-step-ahead prediction
    made before observing y[t].
    """

    name = ModelName.ETS_LITE.value

    def __init__(self, alpha: float = 0.3, beta: float = 0.1, gamma: float = 0.1, period: int = 7):
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self.period = period

    @classmethod
    def from_config(cls, config: ModelConfig) -> "ETSLiteModel":
        return cls(config.alpha, config.beta, config.gamma, config.seasonal_period)

    def fit(self, series: Sequence[float], last_date: Optional[date] = None) -> ETSFit:
        values = as_series(series)
        required = 2 * self.period
        if len(values) < required:
            raise InsufficientDataError(self.name, required, len(values))

        init_values = values[:required]
        positions = np.arange(required, dtype=np.float64)
        slope, intercept = np.polyfit(positions, init_values, 1)

        level = float(intercept - slope)
        trend = float(slope)
        seasonal = seasonal_indices(init_values, self.period).tolist()

        fitted = np.empty(len(values))
        for t, observed in enumerate(values):
            phase = t % self.period
            season = seasonal[phase]
            fitted[t] = level + trend + season

            new_level = self.alpha * (observed - season) + (1 - self.alpha) * (level + trend)
            trend = self.beta * (new_level - level) + (1 - self.beta) * trend
            seasonal[phase] = self.gamma * (observed - new_level) + (1 - self.gamma) * season
            level = new_level

        residuals = values - fitted
        return ETSFit(
            level=level,
            trend=trend,
            seasonal=seasonal,
            fitted=fitted.tolist(),
            residuals=residuals.tolist(),
            period=self.period,
            sigma=residual_sigma(residuals),
            last_date=last_date or date.today(),
        )

    def forecast(self, fit: ETSFit, horizon_days: int, confidence_level: float) -> List[ForecastPoint]:
        validate_horizon(horizon_days)
        z = z_multiplier(confidence_level)

        n = len(fit.fitted)
        steps = np.arange(1, horizon_days + 1)
        seasonal = np.array(fit.seasonal)
        phases = (n - 1 + steps) % fit.period

        points = fit.level + steps * fit.trend + seasonal[phases]
        half_widths = z * fit.sigma * np.sqrt(steps)
        return build_points(fit.last_date, points, half_widths)


# =============================================================================
# EWMA
# =============================================================================


@dataclass
class EWMAFit:
    smoothed: List[float]
    trend: List[float]
    fitted: List[float]
    residuals: List[float]
    drift: float
    sigma: float
    last_date: date


class EWMAModel:
    """EWMA level extrapolated with the mean of its recent first differences."""

    name = ModelName.EWMA.value

    def __init__(self, alpha: float = 0.3):
        self.alpha = alpha

    @classmethod
    def from_config(cls, config: ModelConfig) -> "EWMAModel":
        return cls(config.ewma_alpha)

    def fit(self, series: Sequence[float], last_date: Optional[date] = None) -> EWMAFit:
        values = as_series(series)
        if len(values) < 1:
            raise InsufficientDataError(self.name, 1, 0)

        smoothed = np.empty(len(values))
        smoothed[0] = values[0]
        for i in range(1, len(values)):
            smoothed[i] = self.alpha * values[i] + (1 - self.alpha) * smoothed[i - 1]

        # one-step predictions: the previous smoothed level
        fitted = np.concatenate(([values[0]], smoothed[:-1]))
        residuals = values - fitted

        diffs = np.diff(smoothed)
        recent = diffs[-EWMA_DRIFT_WINDOW:]
        drift = float(recent.mean()) if len(recent) else 0.0

        return EWMAFit(
            smoothed=smoothed.tolist(),
            trend=[0.0] + diffs.tolist(),
            fitted=fitted.tolist(),
            residuals=residuals.tolist(),
            drift=drift,
            sigma=residual_sigma(residuals[1:]),
            last_date=last_date or date.today(),
        )

    def forecast(self, fit: EWMAFit, horizon_days: int, confidence_level: float) -> List[ForecastPoint]:
        validate_horizon(horizon_days)
        z = z_multiplier(confidence_level)

        steps = np.arange(1, horizon_days + 1)
        points = fit.smoothed[-1] + steps * fit.drift
        half_widths = z * fit.sigma * np.sqrt(steps)
        return build_points(fit.last_date, points, half_widths)


# =============================================================================
# AR Lite
# =============================================================================


@dataclass
class ARFit:
    coefficients: List[float]
    intercept: float
    fitted: List[float]
    residuals: List[float]
    history: List[float]
    sigma: float
    last_date: date
    order: int = field(init=False)

    def __post_init__(self):
        self.order = len(self.coefficients)


class ARLiteModel:
    """
    AR(p) with intercept, fitted by least squares.

    Multi-step forecasts iterate the recursion on its own predictions. The
    interval spread at step h is sqrt(sum of squared psi weights), the MA
    representation of the fitted recursion.
    """

    name = ModelName.AR_LITE.value

    def __init__(self, order: int = 2):
        self.order = order

    @classmethod
    def from_config(cls, config: ModelConfig) -> "ARLiteModel":
        return cls(config.ar_order)

    def fit(self, series: Sequence[float], last_date: Optional[date] = None) -> ARFit:
        values = as_series(series)
        p = self.order
        required = p + 1
        if len(values) < required:
            raise InsufficientDataError(self.name, required, len(values))

        # row for target y[t]: [1, y[t-1], ..., y[t-p]]
        design = np.column_stack(
            [np.ones(len(values) - p)]
            + [values[p - lag:len(values) - lag] for lag in range(1, p + 1)]
        )
        target = values[p:]
        solution, _, _, _ = np.linalg.lstsq(design, target, rcond=None)

        in_sample = design @ solution
        fitted = np.concatenate((values[:p], in_sample))
        residuals = values - fitted

        return ARFit(
            coefficients=solution[1:].tolist(),
            intercept=float(solution[0]),
            fitted=fitted.tolist(),
            residuals=residuals.tolist(),
            history=values[-p:].tolist(),
            sigma=residual_sigma(target - in_sample),
            last_date=last_date or date.today(),
        )

    @staticmethod
    def psi_weights(coefficients: Sequence[float], count: int) -> np.ndarray:
        """First `count` MA(infinity) weights of an AR recursion, psi_0 = 1."""
        psi = np.zeros(count)
        psi[0] = 1.0
        for k in range(1, count):
            psi[k] = sum(
                coefficients[j - 1] * psi[k - j]
                for j in range(1, min(k, len(coefficients)) + 1)
            )
        return psi

    def forecast(self, fit: ARFit, horizon_days: int, confidence_level: float) -> List[ForecastPoint]:
        validate_horizon(horizon_days)
        z = z_multiplier(confidence_level)

        history = list(fit.history)
        points = np.empty(horizon_days)
        for step in range(horizon_days):
            next_value = fit.intercept + sum(
                coef * history[-lag] for lag, coef in enumerate(fit.coefficients, start=1)
            )
            points[step] = next_value
            history.append(next_value)

        psi = self.psi_weights(fit.coefficients, horizon_days)
        spread = np.sqrt(np.cumsum(np.square(psi)))
        half_widths = z * fit.sigma * spread
        return build_points(fit.last_date, points, half_widths)


def default_models(config: Optional[ModelConfig] = None) -> List[ForecastModel]:
    """The ensemble members in their canonical order."""
    config = config or ModelConfig()
    return [
        ETSLiteModel.from_config(config),
        EWMAModel.from_config(config),
        ARLiteModel.from_config(config),
    ]


def describe_fit(fit) -> str:
    """Short log-friendly description of a fit state; tolerates foreign fit types."""
    fitted = getattr(fit, "fitted", None)
    sigma = getattr(fit, "sigma", None)
    if fitted is None or sigma is None:
        return type(fit).__name__
    return f"{type(fit).__name__}(n={len(fitted)}, sigma={sigma:.4f})"
