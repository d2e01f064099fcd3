"""
Tests for forecast accuracy validation and aggregate metrics.
"""

from datetime import date

import pytest

from forecast_engine.core.exceptions import InputError
from forecast_engine.models.enums import ForecastHorizon
from forecast_engine.models.schemas import ForecastPoint, ForecastValidation
from forecast_engine.services.validation import calculate_model_metrics, validate_forecast_point


def point(day: int, value: float, low: float = None, high: float = None) -> ForecastPoint:
    return ForecastPoint(
        date=date(2024, 4, day),
        point=value,
        ciLow=value * 0.9 if low is None else low,
        ciHigh=value * 1.1 if high is None else high,
    )


class TestValidateForecastPoint:

    def test_error_and_percentage(self):
        validation = validate_forecast_point(point(1, 95.0), 100.0, "14d")

        assert validation.error == pytest.approx(5.0)
        assert validation.errorPercentage == pytest.approx(5.0)
        assert validation.predictedRevenue == 95.0
        assert validation.horizon == ForecastHorizon.DAYS_14
        assert validation.withinConfidence is True

    def test_outside_interval(self):
        validation = validate_forecast_point(point(1, 100.0, 95.0, 105.0), 120.0, ForecastHorizon.DAYS_30)

        assert validation.withinConfidence is False
        assert validation.error == pytest.approx(20.0)

    def test_zero_actual_and_zero_prediction(self):
        validation = validate_forecast_point(point(1, 0.0, 0.0, 0.0), 0.0, "14d")

        assert validation.errorPercentage == 0.0
        assert validation.withinConfidence is True

    def test_zero_actual_with_prediction(self):
        validation = validate_forecast_point(point(1, 50.0), 0.0, "14d")

        assert validation.errorPercentage == 100.0
        assert validation.error == pytest.approx(-50.0)

    def test_published_schema_documents_zero_actual_rule(self):
        schema = ForecastValidation.model_json_schema()

        assert "else 100" in schema["properties"]["errorPercentage"]["description"]

    def test_negative_actual_rejected(self):
        with pytest.raises(InputError):
            validate_forecast_point(point(1, 50.0), -1.0, "14d")

    def test_unknown_horizon_rejected(self):
        with pytest.raises(InputError, match="Unknown horizon"):
            validate_forecast_point(point(1, 50.0), 10.0, "90d")


class TestModelMetrics:

    def test_hand_computed_metrics(self):
        # actual 100, 200, 300 against predictions 110, 190, 300
        validations = [
            validate_forecast_point(point(1, 110.0), 100.0, "14d"),
            validate_forecast_point(point(2, 190.0), 200.0, "14d"),
            validate_forecast_point(point(3, 300.0), 300.0, "14d"),
        ]

        metrics = calculate_model_metrics(validations)

        assert metrics.mape == pytest.approx((10.0 + 5.0 + 0.0) / 3)
        assert metrics.mae == pytest.approx(20.0 / 3)
        assert metrics.rmse == pytest.approx((200.0 / 3) ** 0.5)
        assert metrics.r2 == pytest.approx(1 - 200.0 / 20000.0)
        assert metrics.sampleSize == 3
        assert metrics.lastValidation == date(2024, 4, 3)

    def test_constant_actuals_perfect_fit(self):
        validations = [validate_forecast_point(point(d, 100.0), 100.0, "14d") for d in (1, 2)]

        assert calculate_model_metrics(validations).r2 == 1.0

    def test_constant_actuals_imperfect_fit(self):
        validations = [
            validate_forecast_point(point(1, 90.0), 100.0, "14d"),
            validate_forecast_point(point(2, 110.0), 100.0, "14d"),
        ]

        assert calculate_model_metrics(validations).r2 == 0.0

    def test_empty_rejected(self):
        with pytest.raises(InputError):
            calculate_model_metrics([])
