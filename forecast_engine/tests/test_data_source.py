"""
Tests for the in-memory and CSV domain data sources.
"""

from datetime import date

import pandas as pd
import pytest

from forecast_engine.core.exceptions import DataSourceError
from forecast_engine.models.enums import PersonaType
from forecast_engine.models.schemas import RawDomainData, RawLeadRecord
from forecast_engine.services.data_source import (
    CsvDataSource,
    InMemoryDataSource,
    trim_to_lookback,
    validate_columns,
)
from forecast_engine.tests.conftest import day, revenue_records


def write_csv(path, rows):
    pd.DataFrame(rows).to_csv(path, index=False)


@pytest.fixture
def csv_dir(tmp_path):
    write_csv(tmp_path / "revenue.csv", [
        {"date": "2024-03-01", "revenue": 120.0, "gross_margin": 0.4, "refunds": 1.5},
        {"date": "2024-03-02", "revenue": 135.0, "gross_margin": 0.41, "refunds": 0.0},
        {"date": "2024-03-03", "revenue": 128.0, "gross_margin": None, "refunds": 2.0},
    ])
    write_csv(tmp_path / "customers.csv", [
        {"date": "2024-03-01", "reorders": 1, "persona_contractor": 3, "persona_smb": 1, "product_banners": 2},
        {"date": "2024-03-03", "reorders": 2, "persona_contractor": 1, "persona_smb": 1, "product_banners": 1},
    ])
    write_csv(tmp_path / "operational.csv", [
        {"date": "2024-03-02", "sla_met": 0.9, "on_time": 0.85, "freight_usage": 0.3},
    ])
    return tmp_path


class TestTrimToLookback:

    def test_keeps_window_ending_at_latest_date(self):
        data = RawDomainData(
            revenue=revenue_records([100.0] * 10),
            leads=[RawLeadRecord(date=day(12), leads=5)],
        )

        trimmed = trim_to_lookback(data, lookback_days=5)

        assert [r.date for r in trimmed.revenue] == [day(8), day(9)]
        assert len(trimmed.leads) == 1

    def test_empty_data_unchanged(self):
        assert trim_to_lookback(RawDomainData(), 30) == RawDomainData()

    def test_in_memory_source_applies_lookback(self):
        source = InMemoryDataSource(RawDomainData(revenue=revenue_records([100.0] * 100)))

        data = source.fetch(PersonaType.CONTRACTOR, 90)

        assert len(data.revenue) == 90


class TestCsvDataSource:

    def test_reads_available_domains(self, csv_dir):
        data = CsvDataSource(csv_dir).fetch(PersonaType.CONTRACTOR, 90)

        assert [r.revenue for r in data.revenue] == [120.0, 135.0, 128.0]
        assert data.revenue[0].date == date(2024, 3, 1)
        assert data.revenue[0].grossMargin == 0.4
        assert data.revenue[2].grossMargin is None
        assert data.operational[0].slaMet == 0.9
        assert data.operational[0].rushUsage is None

    def test_missing_files_are_empty_domains(self, csv_dir):
        data = CsvDataSource(csv_dir).fetch(PersonaType.CONTRACTOR, 90)

        assert data.leads == []
        assert data.engagement == []

    def test_mix_columns_become_mappings(self, csv_dir):
        customers = CsvDataSource(csv_dir).load_domain("customers")

        assert customers[0].personaMix == {"contractor": 3.0, "smb": 1.0}
        assert customers[0].productMix == {"banners": 2.0}
        assert customers[1].reorders == 2

    def test_headers_are_case_insensitive(self, tmp_path):
        write_csv(tmp_path / "revenue.csv", [{"Date": "2024-03-01", " Revenue ": 10.0}])

        records = CsvDataSource(tmp_path).load_domain("revenue")

        assert records[0].revenue == 10.0

    def test_missing_required_column(self, tmp_path):
        write_csv(tmp_path / "leads.csv", [{"date": "2024-03-01", "wins": 1}])

        with pytest.raises(DataSourceError, match="missing required column"):
            CsvDataSource(tmp_path).load_domain("leads")

    def test_invalid_row(self, tmp_path):
        write_csv(tmp_path / "revenue.csv", [{"date": "2024-03-01", "revenue": -5.0}])

        with pytest.raises(DataSourceError, match="row 2"):
            CsvDataSource(tmp_path).load_domain("revenue")

    def test_missing_directory(self, tmp_path):
        with pytest.raises(DataSourceError):
            CsvDataSource(tmp_path / "nowhere").fetch(PersonaType.CONTRACTOR, 90)

    def test_pipeline_over_csv(self, csv_dir, model_config):
        from forecast_engine.services.pipeline import PredictionPipeline

        output = PredictionPipeline(CsvDataSource(csv_dir), model_config).generate_forecast(
            "contractor", ["14d"]
        )

        assert len(output.revenueForecast) == 14
        assert output.revenueForecast[0].date == date(2024, 3, 4)


class TestValidateColumns:

    def test_passes_when_present(self):
        validate_columns(pd.DataFrame(columns=["date", "revenue"]), ["date", "revenue"], "revenue.csv")

    def test_names_missing_columns(self):
        with pytest.raises(DataSourceError, match="revenue"):
            validate_columns(pd.DataFrame(columns=["date"]), ["date", "revenue"], "revenue.csv")
