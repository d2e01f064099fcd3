"""
Settings and environment management for the forecast engine.

Configuration is loaded with pydantic-settings from environment variables and
an optional .env file. The raw Settings object is then projected into two
immutable value objects that the computation layer receives explicitly:

- ModelConfig: smoothing constants, confidence level and risk thresholds
- FeatureFlags: switches for the advanced analytics and alerting surfaces

Environment Variables:
- ALPHA / BETA / GAMMA: Holt-Winters smoothing constants (0.3 / 0.1 / 0.1)
- EWMA_ALPHA: EWMA smoothing constant (0.3)
- AR_ORDER: autoregressive order (2)
- SEASONAL_PERIOD: seasonal cycle length in days (7)
- CONFIDENCE_LEVEL: two-sided interval coverage (0.8)
- CHURN_THRESHOLD: churn risk considered high (0.6)
- LOOKBACK_DAYS: history fetched per run (90)
- MIN_CONFIDENCE / MAX_WINDOW_DAYS: anticipated need bounds (0.3 / 30)
- ADVANCED_ANALYTICS_ENABLED / ALERTS_ENABLED: feature flags (true / true)
- FORECAST_DATA_DIR: directory of CSV exports used by the HTTP surface

Usage:
    from forecast_engine.core.config import get_settings

    settings = get_settings()
    config = settings.to_model_config()
    flags = settings.to_feature_flags()
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ModelConfig(BaseModel):
    """
    Immutable tuning parameters shared by the models and risk indices.

    Built once from Settings and passed into the pipeline; never mutated.
    """
    model_config = ConfigDict(frozen=True)

    alpha: float = Field(default=0.3, gt=0, lt=1)
    beta: float = Field(default=0.1, gt=0, lt=1)
    gamma: float = Field(default=0.1, gt=0, lt=1)
    ewma_alpha: float = Field(default=0.3, gt=0, lt=1)
    ar_order: int = Field(default=2, ge=1)
    seasonal_period: int = Field(default=7, ge=2)
    confidence_level: float = Field(default=0.8, gt=0, lt=1)
    churn_threshold: float = Field(default=0.6, ge=0, le=1)
    lookback_days: int = Field(default=90, ge=1)
    min_confidence: float = Field(default=0.3, ge=0, le=1)
    max_window_days: int = Field(default=30, ge=2)


class FeatureFlags(BaseModel):
    """Immutable process-wide feature switches."""
    model_config = ConfigDict(frozen=True)

    advanced_analytics_enabled: bool = True
    alerts_enabled: bool = True


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes mirror ModelConfig and FeatureFlags one to one, plus the
    location of the CSV exports read by the HTTP surface.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Model Parameters
    # =========================================================================

    # Holt-Winters level / trend / seasonal smoothing
    alpha: float = 0.3
    beta: float = 0.1
    gamma: float = 0.1

    # EWMA smoothing and autoregressive order
    ewma_alpha: float = 0.3
    ar_order: int = 2

    # Days per seasonal cycle (weekly)
    seasonal_period: int = 7

    # Two-sided coverage of forecast intervals
    confidence_level: float = 0.8

    # =========================================================================
    # Risk Index Parameters
    # =========================================================================

    # Churn risk at or above this value counts as high
    churn_threshold: float = 0.6

    # Days of history fetched from the data source per run
    lookback_days: int = 90

    # Floor for anticipated need confidence
    min_confidence: float = 0.3

    # Widest anticipated need window, in days
    max_window_days: int = 30

    # =========================================================================
    # Feature Flags
    # =========================================================================

    advanced_analytics_enabled: bool = True
    alerts_enabled: bool = True

    # =========================================================================
    # Data Source
    # =========================================================================

    # Directory holding revenue.csv, leads.csv, customers.csv,
    # operational.csv and engagement.csv. None disables the HTTP run endpoint.
    forecast_data_dir: Optional[str] = None

    def to_model_config(self) -> ModelConfig:
        return ModelConfig(
            alpha=self.alpha,
            beta=self.beta,
            gamma=self.gamma,
            ewma_alpha=self.ewma_alpha,
            ar_order=self.ar_order,
            seasonal_period=self.seasonal_period,
            confidence_level=self.confidence_level,
            churn_threshold=self.churn_threshold,
            lookback_days=self.lookback_days,
            min_confidence=self.min_confidence,
            max_window_days=self.max_window_days,
        )

    def to_feature_flags(self) -> FeatureFlags:
        return FeatureFlags(
            advanced_analytics_enabled=self.advanced_analytics_enabled,
            alerts_enabled=self.alerts_enabled,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Environment variables are read once per process. Tests that change the
    environment must call `get_settings.cache_clear()`.
    """
    return Settings()
