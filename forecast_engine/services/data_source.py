"""
Domain data sources.

The pipeline reads raw records through the DomainDataSource protocol so the
systems that originate business events stay outside the engine. Two
implementations ship with the package:

- InMemoryDataSource: wraps a RawDomainData bundle (tests, notebooks, callers
  that already hold the records)
- CsvDataSource: reads one CSV export per domain from a directory with pandas

CSV layout (snake_case headers, one row per date):

    revenue.csv       date, revenue, [gross_margin], [refunds]
    leads.csv         date, leads, [rfq_submissions], [wins]
    customers.csv     date, reorders, [persona_<name>...], [product_<name>...]
    operational.csv   date, [sla_met], [on_time], [cutoff_views], [freight_usage], [rush_usage]
    engagement.csv    date, [email_open_rate], [email_click_rate], [site_sessions], [site_engagement]

A missing file is an empty domain. A file missing a required column, or with
unparseable values, raises DataSourceError.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Type, Union

import pandas as pd
from pydantic import BaseModel, ValidationError

from forecast_engine.core.exceptions import DataSourceError
from forecast_engine.models.enums import PersonaType
from forecast_engine.models.schemas import (
    RawCustomerRecord,
    RawDomainData,
    RawEngagementRecord,
    RawLeadRecord,
    RawOperationalRecord,
    RawRevenueRecord,
)


logger = logging.getLogger(__name__)


# =============================================================================
# CSV Layout
# =============================================================================

REVENUE_REQUIRED_COLUMNS: List[str] = ['date', 'revenue']
LEADS_REQUIRED_COLUMNS: List[str] = ['date', 'leads']
CUSTOMERS_REQUIRED_COLUMNS: List[str] = ['date', 'reorders']
OPERATIONAL_REQUIRED_COLUMNS: List[str] = ['date']
ENGAGEMENT_REQUIRED_COLUMNS: List[str] = ['date']

# CSV header -> record field
COLUMN_FIELDS: Dict[str, str] = {
    'date': 'date',
    'revenue': 'revenue',
    'gross_margin': 'grossMargin',
    'refunds': 'refunds',
    'leads': 'leads',
    'rfq_submissions': 'rfqSubmissions',
    'wins': 'wins',
    'reorders': 'reorders',
    'sla_met': 'slaMet',
    'on_time': 'onTime',
    'cutoff_views': 'cutoffViews',
    'freight_usage': 'freightUsage',
    'rush_usage': 'rushUsage',
    'email_open_rate': 'emailOpenRate',
    'email_click_rate': 'emailClickRate',
    'site_sessions': 'siteSessions',
    'site_engagement': 'siteEngagement',
}

PERSONA_PREFIX = 'persona_'
PRODUCT_PREFIX = 'product_'

DOMAIN_FILES: Dict[str, str] = {
    'revenue': 'revenue.csv',
    'leads': 'leads.csv',
    'customers': 'customers.csv',
    'operational': 'operational.csv',
    'engagement': 'engagement.csv',
}


class DomainDataSource(Protocol):
    """Supplies the raw records for one forecast run."""

    def fetch(self, persona: PersonaType, lookback_days: int) -> RawDomainData: ...


def trim_to_lookback(data: RawDomainData, lookback_days: int) -> RawDomainData:
    """Keep records within `lookback_days` of the latest date in any domain."""
    domains = ('revenue', 'leads', 'customers', 'operational', 'engagement')
    all_dates = [record.date for name in domains for record in getattr(data, name)]
    if not all_dates:
        return data

    cutoff = max(all_dates) - timedelta(days=lookback_days - 1)
    return RawDomainData(**{
        name: [record for record in getattr(data, name) if record.date >= cutoff]
        for name in domains
    })


class InMemoryDataSource:
    """Serves a fixed RawDomainData bundle, trimmed to the lookback window."""

    def __init__(self, data: Optional[RawDomainData] = None):
        self.data = data or RawDomainData()

    def fetch(self, persona: PersonaType, lookback_days: int) -> RawDomainData:
        return trim_to_lookback(self.data, lookback_days)


# =============================================================================
# CSV Source
# =============================================================================


def validate_columns(df: pd.DataFrame, required_columns: List[str], file_name: str) -> None:
    """Raise DataSourceError when any required column is absent."""
    present = set(df.columns)
    missing = [col for col in required_columns if col not in present]
    if missing:
        raise DataSourceError(f"{file_name} is missing required column(s): {', '.join(missing)}")


def _normalize_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    df_normalized = df.copy()
    df_normalized.columns = df_normalized.columns.str.lower().str.strip()
    df_normalized['date'] = pd.to_datetime(df_normalized['date']).dt.date
    return df_normalized


def _plain(value):
    # numpy scalars from pandas rows
    return value.item() if hasattr(value, "item") else value


def _records_from_frame(
    df: pd.DataFrame, schema: Type[BaseModel], file_name: str
) -> List[BaseModel]:
    records: List[BaseModel] = []
    mix_columns = [c for c in df.columns if c.startswith((PERSONA_PREFIX, PRODUCT_PREFIX))]

    for row_number, row in enumerate(df.to_dict(orient='records'), start=2):
        payload = {
            COLUMN_FIELDS[column]: _plain(value)
            for column, value in row.items()
            if column in COLUMN_FIELDS and not pd.isna(value)
        }
        if mix_columns:
            payload['personaMix'] = {
                c[len(PERSONA_PREFIX):]: float(row[c])
                for c in mix_columns
                if c.startswith(PERSONA_PREFIX) and not pd.isna(row[c])
            }
            payload['productMix'] = {
                c[len(PRODUCT_PREFIX):]: float(row[c])
                for c in mix_columns
                if c.startswith(PRODUCT_PREFIX) and not pd.isna(row[c])
            }
        try:
            records.append(schema.model_validate(payload))
        except ValidationError as exc:
            raise DataSourceError(f"{file_name} row {row_number} is invalid: {exc}") from exc
    return records


class CsvDataSource:
    """Reads per-domain CSV exports from a directory."""

    _LAYOUT = {
        'revenue': (RawRevenueRecord, REVENUE_REQUIRED_COLUMNS),
        'leads': (RawLeadRecord, LEADS_REQUIRED_COLUMNS),
        'customers': (RawCustomerRecord, CUSTOMERS_REQUIRED_COLUMNS),
        'operational': (RawOperationalRecord, OPERATIONAL_REQUIRED_COLUMNS),
        'engagement': (RawEngagementRecord, ENGAGEMENT_REQUIRED_COLUMNS),
    }

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def load_domain(self, domain: str) -> List[BaseModel]:
        schema, required_columns = self._LAYOUT[domain]
        file_name = DOMAIN_FILES[domain]
        path = self.directory / file_name

        if not path.exists():
            logger.warning(f"{path} not found; treating {domain} as empty")
            return []

        try:
            df = pd.read_csv(path)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
            raise DataSourceError(f"Could not parse {file_name}: {exc}") from exc

        df.columns = df.columns.str.lower().str.strip()
        validate_columns(df, required_columns, file_name)
        try:
            df = _normalize_dataframe(df)
        except (ValueError, TypeError) as exc:
            raise DataSourceError(f"{file_name} has unparseable dates: {exc}") from exc

        logger.info(f"Parsed {file_name} with {len(df)} rows and {len(df.columns)} columns")
        return _records_from_frame(df, schema, file_name)

    def fetch(self, persona: PersonaType, lookback_days: int) -> RawDomainData:
        if not self.directory.is_dir():
            raise DataSourceError(f"Data directory {self.directory} does not exist")

        data = RawDomainData(**{domain: self.load_domain(domain) for domain in self._LAYOUT})
        return trim_to_lookback(data, lookback_days)
