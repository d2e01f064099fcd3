"""
Feature Store Service.

Turns the five raw domain record collections into one date-aligned feature
set, and provides the rolling-window and seasonality statistics the rest of
the engine builds on.

Alignment rules:
    - dates is the sorted union of every date present in any domain
    - counts and amounts missing on a date are 0
    - rates missing on a date carry the last observed value forward, and fall
      back to the domain's neutral default before the first observation
    - gaps are never interpolated

Dependencies:
    - pandas: per-domain frames reindexed onto the union date index
    - numpy: rolling windows and detrending

Usage:
    from forecast_engine.services.feature_store import extract_features, detect_seasonality

    features = extract_features(revenue, leads, customers, operational, engagement)
    report = detect_seasonality(features.dailyRevenue, period=7)
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view
from pydantic import BaseModel, ValidationError

from forecast_engine.core.exceptions import InputError
from forecast_engine.models.schemas import (
    FeatureStoreData,
    RawCustomerRecord,
    RawEngagementRecord,
    RawLeadRecord,
    RawOperationalRecord,
    RawRevenueRecord,
    RollingStats,
    SeasonalityReport,
)


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


# =============================================================================
# Constants
# =============================================================================

# Neutral values used for rate features before their first observation
DEFAULT_GROSS_MARGIN: float = 0.40
DEFAULT_RFQ_TO_WIN_RATE: float = 0.15
DEFAULT_SLA_PROMISE_MET: float = 0.97
DEFAULT_ON_TIME_PERCENTAGE: float = 0.95
DEFAULT_FREIGHT_USAGE: float = 0.30
DEFAULT_RUSH_USAGE: float = 0.0
DEFAULT_EMAIL_ENGAGEMENT: float = 0.25
DEFAULT_SITE_ENGAGEMENT: float = 0.40

# Mixes reported when no customer records are available
DEFAULT_PERSONA_MIX: Dict[str, float] = {
    "contractor": 0.35,
    "property_manager": 0.25,
    "logistics": 0.20,
    "healthcare": 0.15,
    "smb": 0.05,
}
DEFAULT_PRODUCT_MIX: Dict[str, float] = {
    "banners": 0.40,
    "yard-signs": 0.25,
    "decals": 0.15,
    "ada-signs": 0.10,
    "safety-signs": 0.10,
}

# Number of most recent customer records aggregated into the mixes
MIX_LOOKBACK_RECORDS: int = 7

# Seasonal strength above which a series is reported as seasonal
SEASONALITY_THRESHOLD: float = 0.1


# =============================================================================
# Record Normalisation
# =============================================================================


def _coerce_records(
    records: Iterable[Any], schema: Type[RecordT], domain: str
) -> List[RecordT]:
    """Accept schema instances or plain mappings and validate the latter."""
    coerced: List[RecordT] = []
    for record in records or []:
        if isinstance(record, schema):
            coerced.append(record)
            continue
        try:
            coerced.append(schema.model_validate(record))
        except ValidationError as exc:
            raise InputError(f"Invalid {domain} record: {exc}") from exc
    return coerced


def _domain_frame(records: Sequence[BaseModel], domain: str) -> pd.DataFrame:
    """Build a date-indexed frame of scalar fields; reject duplicate dates."""
    if not records:
        return pd.DataFrame()

    rows = [
        record.model_dump(exclude={"personaMix", "productMix"})
        for record in records
    ]
    frame = pd.DataFrame(rows)
    if frame["date"].duplicated().any():
        duplicates = sorted(set(frame.loc[frame["date"].duplicated(), "date"]))
        raise InputError(f"Duplicate dates in {domain} records: {duplicates}")

    return frame.set_index("date").sort_index()


def _aligned(frame: pd.DataFrame, column: str, index: pd.Index) -> pd.Series:
    """Column reindexed onto the union date index; absent dates become NaN."""
    if frame.empty or column not in frame.columns:
        return pd.Series(np.nan, index=index, dtype=float)
    return frame[column].astype(float).reindex(index)


def _count(series: pd.Series) -> List[float]:
    return series.fillna(0.0).tolist()


def _rate(series: pd.Series, default: float) -> List[float]:
    return series.ffill().fillna(default).tolist()


def _recent_mix(
    records: Sequence[RawCustomerRecord], attribute: str, default: Dict[str, float]
) -> Dict[str, float]:
    """Normalised mix over the most recent customer records."""
    recent = sorted(records, key=lambda r: r.date)[-MIX_LOOKBACK_RECORDS:]
    totals: Counter = Counter()
    for record in recent:
        for key, value in getattr(record, attribute).items():
            if value > 0:
                totals[key] += value

    grand_total = sum(totals.values())
    if grand_total <= 0:
        return dict(default)
    return {key: value / grand_total for key, value in totals.items()}


def _reorder_intervals(dates: Sequence[Any], reorder_counts: Sequence[float]) -> List[float]:
    """
    Days since the previous reorder date, recorded on each date with reorders.

    The first reorder date and dates without reorders carry 0.
    """
    intervals: List[float] = []
    previous = None
    for current, count in zip(dates, reorder_counts):
        if count > 0:
            intervals.append(float((current - previous).days) if previous is not None else 0.0)
            previous = current
        else:
            intervals.append(0.0)
    return intervals


# =============================================================================
# Feature Extraction
# =============================================================================


def extract_features(
    revenue: Iterable[Any],
    leads: Iterable[Any],
    customers: Iterable[Any],
    operational: Iterable[Any],
    engagement: Iterable[Any],
) -> FeatureStoreData:
    """
    Align raw domain records into a FeatureStoreData.

    Any collection may be empty. When all are empty the result carries empty
    sequences and the default mixes.

    Raises:
        InputError: a record fails validation, or a domain repeats a date.
    """
    revenue_records = _coerce_records(revenue, RawRevenueRecord, "revenue")
    lead_records = _coerce_records(leads, RawLeadRecord, "lead")
    customer_records = _coerce_records(customers, RawCustomerRecord, "customer")
    operational_records = _coerce_records(operational, RawOperationalRecord, "operational")
    engagement_records = _coerce_records(engagement, RawEngagementRecord, "engagement")

    revenue_df = _domain_frame(revenue_records, "revenue")
    lead_df = _domain_frame(lead_records, "lead")
    customer_df = _domain_frame(customer_records, "customer")
    operational_df = _domain_frame(operational_records, "operational")
    engagement_df = _domain_frame(engagement_records, "engagement")

    all_dates = set()
    for frame in (revenue_df, lead_df, customer_df, operational_df, engagement_df):
        all_dates.update(frame.index)
    dates = sorted(all_dates)
    index = pd.Index(dates)

    persona_mix = _recent_mix(customer_records, "personaMix", DEFAULT_PERSONA_MIX)
    product_mix = _recent_mix(customer_records, "productMix", DEFAULT_PRODUCT_MIX)

    if not dates:
        logger.info("No raw records supplied; returning empty feature set")
        return FeatureStoreData(
            personaMix=persona_mix,
            productMix=product_mix,
            lastUpdated=datetime.now(),
        )

    rfq = _aligned(lead_df, "rfqSubmissions", index)
    wins = _aligned(lead_df, "wins", index)
    win_rate = (wins / rfq.where(rfq > 0)).clip(upper=1.0)

    email_engagement = (
        _aligned(engagement_df, "emailOpenRate", index)
        + _aligned(engagement_df, "emailClickRate", index)
    ) / 2

    reorder_counts = _count(_aligned(customer_df, "reorders", index))

    features = FeatureStoreData(
        dates=dates,
        dailyRevenue=_count(_aligned(revenue_df, "revenue", index)),
        grossMargin=_rate(_aligned(revenue_df, "grossMargin", index), DEFAULT_GROSS_MARGIN),
        refunds=_count(_aligned(revenue_df, "refunds", index)),
        leadVolume=_count(_aligned(lead_df, "leads", index)),
        rfqToWinRate=_rate(win_rate, DEFAULT_RFQ_TO_WIN_RATE),
        reorderCounts=reorder_counts,
        reorderIntervals=_reorder_intervals(dates, reorder_counts),
        slaPromiseMet=_rate(_aligned(operational_df, "slaMet", index), DEFAULT_SLA_PROMISE_MET),
        onTimePercentage=_rate(_aligned(operational_df, "onTime", index), DEFAULT_ON_TIME_PERCENTAGE),
        cutoffTimerViews=_count(_aligned(operational_df, "cutoffViews", index)),
        freightUsage=_rate(_aligned(operational_df, "freightUsage", index), DEFAULT_FREIGHT_USAGE),
        rushUsage=_rate(_aligned(operational_df, "rushUsage", index), DEFAULT_RUSH_USAGE),
        emailEngagement=_rate(email_engagement, DEFAULT_EMAIL_ENGAGEMENT),
        siteEngagement=_rate(_aligned(engagement_df, "siteEngagement", index), DEFAULT_SITE_ENGAGEMENT),
        siteSessions=_count(_aligned(engagement_df, "siteSessions", index)),
        personaMix=persona_mix,
        productMix=product_mix,
        lastUpdated=datetime.now(),
    )

    logger.info(
        f"Extracted features for {len(dates)} dates "
        f"({dates[0].isoformat()} to {dates[-1].isoformat()})"
    )
    return features


# =============================================================================
# Rolling Statistics
# =============================================================================


def calculate_rolling_stats(data: Sequence[float], window: int) -> RollingStats:
    """
    Rolling mean, population standard deviation and variance.

    Each output has len(data) - window + 1 entries, or none when the series is
    shorter than the window.

    Raises:
        InputError: window is not positive.
    """
    if window <= 0:
        raise InputError(f"Rolling window must be positive, got {window}")

    values = np.asarray(data, dtype=np.float64)
    if len(values) < window:
        return RollingStats()

    windows = sliding_window_view(values, window)
    means = windows.mean(axis=1)
    variances = windows.var(axis=1)

    return RollingStats(
        mean=means.tolist(),
        std=np.sqrt(variances).tolist(),
        variance=variances.tolist(),
    )


# Days averaged on each side of a week-over-week comparison
TREND_WINDOW_DAYS: int = 7

INSUFFICIENT_TREND_DATA = "Insufficient data for trend analysis"


def week_over_week(history: Sequence[float]) -> Optional[Tuple[float, float]]:
    """
    Mean of the last 7 values against the mean of the 7 before them.

    Returns (change, change_percent), or None when the history has fewer
    than 2 values or no earlier window. change_percent is 0 when the earlier
    mean is 0.
    """
    values = np.asarray(history, dtype=np.float64)
    if len(values) < 2:
        return None

    recent = values[-TREND_WINDOW_DAYS:]
    previous = values[-2 * TREND_WINDOW_DAYS:-TREND_WINDOW_DAYS]
    if len(recent) == 0 or len(previous) == 0:
        return None

    previous_mean = float(previous.mean())
    change = float(recent.mean()) - previous_mean
    change_percent = change / previous_mean * 100 if previous_mean != 0 else 0.0
    return change, change_percent


# =============================================================================
# Seasonality
# =============================================================================


def seasonal_indices(values: np.ndarray, period: int) -> np.ndarray:
    """
    Additive per-phase means of the linearly detrended series, centred on 0.

    Phase i collects positions i, i + period, i + 2 * period, ...
    """
    positions = np.arange(len(values), dtype=np.float64)
    slope, intercept = np.polyfit(positions, values, 1)
    residuals = values - (slope * positions + intercept)

    indices = np.array([residuals[phase::period].mean() for phase in range(period)])
    return indices - indices.mean()


def detect_seasonality(data: Sequence[float], period: int = 7) -> SeasonalityReport:
    """
    Detect a repeating pattern of the given period.

    Strength is the share of the series variance explained by the seasonal
    indices, clipped to [0, 1]. A linear trend contributes nothing to the
    indices, so monotone non-periodic series score near 0.

    Raises:
        InputError: period is not positive.
    """
    if period <= 0:
        raise InputError(f"Seasonal period must be positive, got {period}")

    values = np.asarray(data, dtype=np.float64)
    if len(values) < 2 * period:
        return SeasonalityReport(seasonalIndices=[0.0] * period)

    total_variance = float(np.var(values))
    if total_variance == 0:
        return SeasonalityReport(seasonalIndices=[0.0] * period)

    indices = seasonal_indices(values, period)
    strength = float(np.clip(np.var(indices) / total_variance, 0.0, 1.0))

    return SeasonalityReport(
        hasSeasonality=strength > SEASONALITY_THRESHOLD,
        seasonalStrength=strength,
        seasonalIndices=indices.tolist(),
    )
