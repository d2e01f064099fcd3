"""
Tests for the ETS Lite, EWMA and AR Lite forecast models.

Covers the shared contract (point count, dates, interval ordering,
non-negativity), each model's minimum history and model-specific behaviour
on synthetic series.
"""

from datetime import date, timedelta

import numpy as np
import pytest

from forecast_engine.core.config import ModelConfig
from forecast_engine.core.exceptions import InputError, InsufficientDataError
from forecast_engine.services.forecast_models import (
    MIN_SIGMA,
    ARLiteModel,
    ETSLiteModel,
    EWMAModel,
    z_multiplier,
)
from forecast_engine.tests.conftest import WEEKLY_PATTERN, linear_revenue, weekly_revenue


LAST_DATE = date(2024, 3, 21)

ALL_MODELS = [ETSLiteModel(), EWMAModel(), ARLiteModel()]


def noisy_series(n: int = 42, seed: int = 7):
    rng = np.random.default_rng(seed)
    return list(np.array(weekly_revenue(cycles=6))[:n] + rng.normal(0, 10, n))


# =============================================================================
# Shared Contract
# =============================================================================


class TestModelContract:

    @pytest.mark.parametrize("model", ALL_MODELS, ids=lambda m: m.name)
    @pytest.mark.parametrize("horizon", [14, 30, 60])
    def test_length_and_interval_ordering(self, model, horizon):
        fit = model.fit(noisy_series(), last_date=LAST_DATE)
        points = model.forecast(fit, horizon, 0.8)

        assert len(points) == horizon
        for p in points:
            assert p.ciLow <= p.point <= p.ciHigh
            assert p.ciLow >= 0

    @pytest.mark.parametrize("model", ALL_MODELS, ids=lambda m: m.name)
    def test_dates_follow_last_observation(self, model):
        fit = model.fit(noisy_series(), last_date=LAST_DATE)
        points = model.forecast(fit, 14, 0.8)

        assert points[0].date == LAST_DATE + timedelta(days=1)
        assert points[-1].date == LAST_DATE + timedelta(days=14)

    @pytest.mark.parametrize("model", ALL_MODELS, ids=lambda m: m.name)
    def test_fitted_and_residuals_align_with_input(self, model):
        series = noisy_series()
        fit = model.fit(series, last_date=LAST_DATE)

        assert len(fit.fitted) == len(series)
        assert len(fit.residuals) == len(series)
        assert np.allclose(np.array(fit.fitted) + np.array(fit.residuals), series)

    @pytest.mark.parametrize("model", ALL_MODELS, ids=lambda m: m.name)
    def test_wider_confidence_gives_wider_interval(self, model):
        fit = model.fit(noisy_series(), last_date=LAST_DATE)
        narrow = model.forecast(fit, 14, 0.8)
        wide = model.forecast(fit, 14, 0.95)

        assert (wide[5].ciHigh - wide[5].ciLow) > (narrow[5].ciHigh - narrow[5].ciLow)

    @pytest.mark.parametrize("model", ALL_MODELS, ids=lambda m: m.name)
    def test_collapsing_series_clamped_at_zero(self, model):
        series = [float(v) for v in range(400, 0, -10)]
        fit = model.fit(series, last_date=LAST_DATE)
        points = model.forecast(fit, 60, 0.8)

        assert all(p.point >= 0 and p.ciLow >= 0 for p in points)

    @pytest.mark.parametrize("model", ALL_MODELS, ids=lambda m: m.name)
    @pytest.mark.parametrize("level", [0.0, 1.0, 1.5])
    def test_invalid_confidence_level(self, model, level):
        fit = model.fit(noisy_series(), last_date=LAST_DATE)
        with pytest.raises(InputError):
            model.forecast(fit, 14, level)

    @pytest.mark.parametrize("model", ALL_MODELS, ids=lambda m: m.name)
    def test_non_finite_series_rejected(self, model):
        series = noisy_series()
        series[3] = float("nan")
        with pytest.raises(InputError):
            model.fit(series)

    def test_z_multiplier_values(self):
        assert z_multiplier(0.8) == pytest.approx(1.2816, abs=1e-3)
        assert z_multiplier(0.95) == pytest.approx(1.96, abs=1e-3)


# =============================================================================
# ETS Lite
# =============================================================================


class TestETSLite:

    def test_requires_two_seasonal_cycles(self):
        with pytest.raises(InsufficientDataError) as excinfo:
            ETSLiteModel().fit(linear_revenue(days=13))

        assert excinfo.value.required == 14
        assert excinfo.value.actual == 13

    def test_linear_series_extrapolates_trend(self):
        model = ETSLiteModel()
        fit = model.fit(linear_revenue(days=21), last_date=LAST_DATE)
        points = model.forecast(fit, 14, 0.8)

        assert fit.trend == pytest.approx(10.0, abs=1e-6)
        assert points[0].point == pytest.approx(310.0, abs=1e-6)
        assert all(b.point > a.point for a, b in zip(points, points[1:]))

    def test_weekly_pattern_repeats_in_forecast(self):
        model = ETSLiteModel()
        fit = model.fit(weekly_revenue(cycles=4), last_date=LAST_DATE)
        points = model.forecast(fit, 14, 0.8)

        first_week = [p.point for p in points[:7]]
        assert np.argmax(first_week) == 2
        assert np.corrcoef(first_week, WEEKLY_PATTERN)[0, 1] > 0.9

    def test_sigma_floor_keeps_interval_open(self):
        model = ETSLiteModel()
        fit = model.fit(linear_revenue(days=21), last_date=LAST_DATE)
        points = model.forecast(fit, 14, 0.8)

        assert fit.sigma >= MIN_SIGMA
        assert all(p.ciLow < p.point < p.ciHigh for p in points)

    def test_interval_grows_with_horizon(self):
        model = ETSLiteModel()
        rng = np.random.default_rng(5)
        series = list(np.array(weekly_revenue(cycles=6)) * 10 + 1000 + rng.normal(0, 20, 42))
        fit = model.fit(series, last_date=LAST_DATE)
        points = model.forecast(fit, 30, 0.8)

        widths = [p.ciHigh - p.ciLow for p in points]
        assert all(p.ciLow > 0 for p in points)
        assert all(b > a for a, b in zip(widths, widths[1:]))

    def test_from_config(self):
        config = ModelConfig(alpha=0.5, beta=0.2, gamma=0.3, seasonal_period=5)
        model = ETSLiteModel.from_config(config)

        assert (model.alpha, model.beta, model.gamma, model.period) == (0.5, 0.2, 0.3, 5)


# =============================================================================
# EWMA
# =============================================================================


class TestEWMA:

    def test_single_point_series(self):
        model = EWMAModel()
        fit = model.fit([250.0], last_date=LAST_DATE)
        points = model.forecast(fit, 14, 0.8)

        assert len(points) == 14
        assert all(p.point == pytest.approx(250.0) for p in points)
        assert fit.drift == 0.0

    def test_empty_series_rejected(self):
        with pytest.raises(InsufficientDataError):
            EWMAModel().fit([])

    def test_smoothing_recursion(self):
        fit = EWMAModel(alpha=0.5).fit([10.0, 20.0, 30.0], last_date=LAST_DATE)

        assert fit.smoothed == [10.0, 15.0, 22.5]
        assert fit.fitted == [10.0, 10.0, 15.0]
        assert fit.drift == pytest.approx((5.0 + 7.5) / 2)

    def test_interval_grows_with_horizon(self):
        model = EWMAModel()
        rng = np.random.default_rng(3)
        series = [500 + 2 * i + rng.normal(0, 5) for i in range(30)]
        fit = model.fit(series, last_date=LAST_DATE)
        points = model.forecast(fit, 30, 0.8)

        widths = [p.ciHigh - p.ciLow for p in points]
        assert all(b > a for a, b in zip(widths, widths[1:]))


# =============================================================================
# AR Lite
# =============================================================================


class TestARLite:

    def test_requires_order_plus_one_points(self):
        with pytest.raises(InsufficientDataError) as excinfo:
            ARLiteModel(order=2).fit([1.0, 2.0])

        assert excinfo.value.required == 3

    def test_recovers_known_ar1_process(self):
        # y[t] = 50 + 0.6 * y[t-1], no noise
        values = [100.0]
        for _ in range(40):
            values.append(50 + 0.6 * values[-1])

        fit = ARLiteModel(order=1).fit(values, last_date=LAST_DATE)

        assert fit.coefficients[0] == pytest.approx(0.6, abs=1e-6)
        assert fit.intercept == pytest.approx(50.0, abs=1e-4)

    def test_psi_weights(self):
        psi = ARLiteModel.psi_weights([0.5, 0.2], 4)

        assert psi.tolist() == pytest.approx([1.0, 0.5, 0.45, 0.325])

    def test_linear_series_keeps_rising(self):
        model = ARLiteModel()
        fit = model.fit(linear_revenue(days=21), last_date=LAST_DATE)
        points = model.forecast(fit, 14, 0.8)

        assert points[0].point == pytest.approx(310.0, abs=1e-3)
        assert all(b.point > a.point for a, b in zip(points, points[1:]))

    def test_interval_grows_with_horizon(self):
        model = ARLiteModel()
        rng = np.random.default_rng(7)
        series = [500 + 2 * i + rng.normal(0, 5) for i in range(40)]
        fit = model.fit(series, last_date=LAST_DATE)
        points = model.forecast(fit, 14, 0.8)

        widths = [p.ciHigh - p.ciLow for p in points]
        assert all(p.ciLow > 0 for p in points)
        assert widths[1] > widths[0]
        assert all(b >= a for a, b in zip(widths, widths[1:]))
        assert widths[-1] > widths[0]
