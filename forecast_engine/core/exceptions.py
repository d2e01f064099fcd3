"""
Exception taxonomy for the forecast engine.

- InputError: malformed or missing caller parameters; reported immediately
- InsufficientDataError: one model cannot fit the series; recovered by the ensemble
- EnsembleExhaustedError: every model failed; no forecast can be produced
- FeatureDisabledError: the requested capability is switched off
- DataSourceError: raw records could not be loaded

A failed Creator Check is not an exception; it is returned as a value.
"""

from typing import List, Sequence, Tuple


class ForecastEngineError(Exception):
    """Base class for all forecast engine errors."""


class InputError(ForecastEngineError, ValueError):
    """Raised for an unknown persona or horizon, a bad window, or invalid records."""


class InsufficientDataError(ForecastEngineError):
    """Raised by a model when the series is too short to fit."""

    def __init__(self, model_name: str, required: int, actual: int):
        self.model_name = model_name
        self.required = required
        self.actual = actual
        super().__init__(
            f"{model_name} requires at least {required} observations, got {actual}"
        )


class EnsembleExhaustedError(ForecastEngineError):
    """Raised when no ensemble member produced a forecast."""

    def __init__(self, failures: Sequence[Tuple[str, Exception]]):
        self.failures: List[Tuple[str, Exception]] = list(failures)
        detail = "; ".join(f"{name}: {error}" for name, error in self.failures)
        super().__init__(f"All forecast models failed ({detail})")


class FeatureDisabledError(ForecastEngineError):
    """Raised when a flagged capability is requested while disabled."""


class DataSourceError(ForecastEngineError):
    """Raised when raw domain records cannot be loaded or parsed."""
