"""
Forecast Engine Package.

Turns daily business time series into governance-checked revenue forecasts
with uncertainty bounds, cash-flow stability, churn risk and anticipated
need windows, and evaluates alert rules over the result.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, errors and dependencies
    - models: Pydantic schemas and enums
    - services: Forecasting, risk, governance and alert logic
"""

__version__ = "1.0.0"
