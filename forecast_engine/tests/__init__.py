'''
Forecast Engine Test Suite

Test Modules:
-------------
- test_feature_store.py: date alignment, rolling statistics, weekly comparison, seasonality
- test_forecast_models.py: ETS Lite, EWMA and AR Lite contracts
  - Interval ordering and zero clamping
  - Minimum history per model
- test_ensemble.py: fail-soft combination, exhausted ensemble
- test_risk_indices.py: CFSI, churn risk, score trends, anticipated need window
- test_governance.py: Creator Check rules and summaries
- test_alerts.py: default alert rules, ordering, summaries
- test_validation.py: forecast accuracy metrics
- test_data_source.py: in-memory and CSV sources
- test_pipeline.py: end-to-end scenarios (marker: scenario)
- test_api.py: HTTP handler status mapping

Running Tests:
--------------
    pip install -e ".[test]"
    pytest forecast_engine/tests/ -v
    pytest forecast_engine/tests/ -m "not slow"

Configuration:
--------------
See conftest.py for shared fixtures and synthetic data helpers.
'''

__all__ = []
