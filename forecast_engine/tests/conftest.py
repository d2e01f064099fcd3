"""
Pytest configuration and shared fixtures for forecast engine tests.

Provides:
- Async test support through pytest-asyncio (API handlers are coroutines)
- Synthetic raw domain records with known shape (linear, weekly pattern)
- Ready-made feature sets, configs and an in-memory pipeline
"""

from datetime import date, timedelta
from typing import List

import numpy as np
import pytest

from forecast_engine.core.config import FeatureFlags, ModelConfig, Settings
from forecast_engine.models.schemas import (
    RawCustomerRecord,
    RawDomainData,
    RawEngagementRecord,
    RawLeadRecord,
    RawOperationalRecord,
    RawRevenueRecord,
)
from forecast_engine.services.data_source import InMemoryDataSource
from forecast_engine.services.feature_store import extract_features
from forecast_engine.services.pipeline import PredictionPipeline


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Register custom markers.

    - slow: long-horizon or large-series tests (deselect with -m "not slow")
    - scenario: end-to-end pipeline scenarios
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'scenario: marks end-to-end pipeline scenarios'
    )


# ============================================================
# SYNTHETIC DATA HELPERS
# ============================================================

START_DATE = date(2024, 3, 1)

WEEKLY_PATTERN = [120.0, 180.0, 240.0, 200.0, 160.0, 60.0, 40.0]


def day(offset: int) -> date:
    return START_DATE + timedelta(days=offset)


def linear_revenue(days: int = 21, start: float = 100.0, step: float = 10.0) -> List[float]:
    """Strictly increasing series: 100, 110, ..., 300 for the defaults."""
    return [start + step * i for i in range(days)]


def weekly_revenue(cycles: int = 4) -> List[float]:
    return WEEKLY_PATTERN * cycles


def revenue_records(values: List[float]) -> List[RawRevenueRecord]:
    return [
        RawRevenueRecord(date=day(i), revenue=value, grossMargin=0.42, refunds=value * 0.01)
        for i, value in enumerate(values)
    ]


def full_domain_data(days: int = 60, reorder_every: int = 10) -> RawDomainData:
    """
    Deterministic five-domain history.

    Revenue follows a weekly pattern on a gentle upward trend with seeded
    noise; reorders land every `reorder_every` days.
    """
    rng = np.random.default_rng(42)
    revenue, leads, customers, operational, engagement = [], [], [], [], []
    for i in range(days):
        base = WEEKLY_PATTERN[i % 7] * 10 + i * 5
        revenue.append(RawRevenueRecord(
            date=day(i),
            revenue=float(base + rng.normal(0, 20)),
            grossMargin=0.4,
            refunds=float(base * 0.005),
        ))
        leads.append(RawLeadRecord(date=day(i), leads=20 + i % 5, rfqSubmissions=10, wins=2))
        customers.append(RawCustomerRecord(
            date=day(i),
            reorders=1 if i % reorder_every == 0 else 0,
            personaMix={"contractor": 3, "property_manager": 2, "smb": 1},
            productMix={"banners": 4, "decals": 1},
        ))
        operational.append(RawOperationalRecord(
            date=day(i), slaMet=0.97, onTime=0.95, cutoffViews=30, freightUsage=0.2, rushUsage=0.05,
        ))
        engagement.append(RawEngagementRecord(
            date=day(i), emailOpenRate=0.3, emailClickRate=0.1, siteSessions=200, siteEngagement=0.45,
        ))
    return RawDomainData(
        revenue=revenue,
        leads=leads,
        customers=customers,
        operational=operational,
        engagement=engagement,
    )


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def model_config() -> ModelConfig:
    """Default model configuration."""
    return ModelConfig()


@pytest.fixture
def feature_flags() -> FeatureFlags:
    return FeatureFlags()


@pytest.fixture
def domain_data() -> RawDomainData:
    """Sixty days of deterministic records across all five domains."""
    return full_domain_data()


@pytest.fixture
def sample_features(domain_data: RawDomainData):
    """Feature set extracted from `domain_data`."""
    return extract_features(
        domain_data.revenue,
        domain_data.leads,
        domain_data.customers,
        domain_data.operational,
        domain_data.engagement,
    )


@pytest.fixture
def linear_pipeline(model_config: ModelConfig, feature_flags: FeatureFlags) -> PredictionPipeline:
    """Pipeline over 21 days of linearly increasing revenue only."""
    data = RawDomainData(revenue=revenue_records(linear_revenue()))
    return PredictionPipeline(InMemoryDataSource(data), model_config, feature_flags)


@pytest.fixture
def full_pipeline(domain_data: RawDomainData, model_config: ModelConfig) -> PredictionPipeline:
    return PredictionPipeline(InMemoryDataSource(domain_data), model_config, FeatureFlags())


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at an empty temporary data directory."""
    return Settings(forecast_data_dir=str(tmp_path))
