# replenishment_engine/core/parameters.py
"""Immutable parameter sets passed explicitly to the core calculations.

Defaults reproduce the constants used by the nightly forecast, the safety
stock refresh and the allocation engine. Tests build their own instances
with ``dataclasses.replace(params, ...)`` instead of touching global configuration.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class ForecastParameters:
    history_weeks: int = 26
    wma_window: int = 12
    season_length: int = 13
    hw_alpha: float = 0.2
    hw_beta: float = 0.1
    hw_gamma: float = 0.3
    croston_alpha: float = 0.1
    ensemble_holdout: int = 4
    ensemble_epsilon: float = 0.01
    intermittent_zero_rate: float = 0.5

    @property
    def holt_winters_min_length(self) -> int:
        """Two full seasonal cycles are needed to initialise Holt-Winters."""
        return self.season_length * 2

    @property
    def ensemble_min_length(self) -> int:
        return self.ensemble_holdout + 2


@dataclass(frozen=True)
class SafetyStockParameters:
    history_weeks: int = 12
    z_score: float = 1.65


DEFAULT_TIER_WEIGHTS = MappingProxyType({'A': 30.0, 'B': 20.0, 'C': 10.0})


@dataclass(frozen=True)
class AllocationParameters:
    below_safety_bonus: float = 1000.0
    urgency_factor: float = 100.0
    urgency_offset: float = 0.1
    tier_multiplier: float = 10.0
    tier_weights: Mapping[str, float] = field(default_factory=lambda: DEFAULT_TIER_WEIGHTS)
    days_of_stock_threshold: float = 14.0
    no_demand_days_of_stock: float = 999.0
    target_multiple: int = 2

    def tier_weight(self, tier) -> float:
        """Weight for a revenue tier given as 'A'/'B'/'C' or a RevenueTier enum."""
        key = getattr(tier, 'value', tier)
        return float(self.tier_weights.get(key, 0.0))


DEFAULT_FORECAST_PARAMETERS = ForecastParameters()
DEFAULT_SAFETY_STOCK_PARAMETERS = SafetyStockParameters()
DEFAULT_ALLOCATION_PARAMETERS = AllocationParameters()
