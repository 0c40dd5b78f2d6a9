"""Monte Carlo path models.

Provides the stochastic models used to grow price paths:
- ADDITIVE: normally distributed percentage change per step
- GBM: Geometric Brownian Motion on one-day log increments
"""

from enum import Enum
from typing import TypedDict


class ReturnKind(str, Enum):
    PERCENT = "percent"
    LOG = "log"


class SimModel(str, Enum):
    ADDITIVE = "additive"
    GBM = "gbm"

    @property
    def return_kind(self) -> ReturnKind:
        """Return definition the model's mean/std must be estimated with."""
        return ReturnKind.LOG if self is SimModel.GBM else ReturnKind.PERCENT


class TerminalSummary(TypedDict):
    p5: float
    p25: float
    p50: float
    p75: float
    p95: float
    predicted_price: float
    predicted_change_pct: float
    var_5pct_pct: float
    upside_prob: float


__all__ = ["ReturnKind", "SimModel", "TerminalSummary"]
