"""
Forecast accuracy validation.

Compares forecast points with realised revenue once it is known, and
aggregates the comparisons into standard accuracy metrics (MAPE, RMSE, MAE,
R squared). Storage of validations is the caller's concern.
"""

from typing import Sequence, Union

import numpy as np

from forecast_engine.core.exceptions import InputError
from forecast_engine.models.enums import ForecastHorizon
from forecast_engine.models.schemas import ForecastPoint, ForecastValidation, ModelMetrics


def validate_forecast_point(
    point: ForecastPoint,
    actual_revenue: float,
    horizon: Union[str, ForecastHorizon],
) -> ForecastValidation:
    """
    Score one forecast point against the revenue actually booked that day.

    Error is actual minus predicted. The percentage error is 0 when actual
    revenue is 0 and the prediction was also 0, and 100 when only actual is 0.

    Raises:
        InputError: negative actual revenue or unknown horizon.
    """
    if actual_revenue < 0:
        raise InputError(f"Actual revenue must be non-negative, got {actual_revenue}")
    try:
        horizon = ForecastHorizon(horizon)
    except ValueError:
        raise InputError(f"Unknown horizon '{horizon}'") from None

    error = actual_revenue - point.point
    if actual_revenue > 0:
        error_percentage = abs(error) / actual_revenue * 100
    else:
        error_percentage = 0.0 if point.point == 0 else 100.0

    return ForecastValidation(
        date=point.date,
        horizon=horizon,
        actualRevenue=actual_revenue,
        predictedRevenue=point.point,
        error=error,
        errorPercentage=error_percentage,
        withinConfidence=point.ciLow <= actual_revenue <= point.ciHigh,
    )


def calculate_model_metrics(validations: Sequence[ForecastValidation]) -> ModelMetrics:
    """
    Aggregate accuracy over a set of validations.

    R squared is 1 - SS_res / SS_tot over the actual values; when the actuals
    do not vary it is 1 for a perfect fit and 0 otherwise.

    Raises:
        InputError: no validations supplied.
    """
    if not validations:
        raise InputError("At least one validation is required to compute metrics")

    actual = np.array([v.actualRevenue for v in validations], dtype=np.float64)
    errors = np.array([v.error for v in validations], dtype=np.float64)
    percentages = np.array([v.errorPercentage for v in validations], dtype=np.float64)

    ss_res = float(np.sum(errors ** 2))
    ss_tot = float(np.sum((actual - actual.mean()) ** 2))
    if ss_tot > 0:
        r2 = 1 - ss_res / ss_tot
    else:
        r2 = 1.0 if ss_res == 0 else 0.0

    return ModelMetrics(
        mape=float(percentages.mean()),
        rmse=float(np.sqrt(np.mean(errors ** 2))),
        mae=float(np.mean(np.abs(errors))),
        r2=r2,
        sampleSize=len(validations),
        lastValidation=max(v.date for v in validations),
    )
