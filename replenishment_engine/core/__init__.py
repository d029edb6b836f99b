from .parameters import (
    ForecastParameters, SafetyStockParameters, AllocationParameters,
    DEFAULT_FORECAST_PARAMETERS, DEFAULT_SAFETY_STOCK_PARAMETERS,
    DEFAULT_ALLOCATION_PARAMETERS
)
from .series import aggregate_weekly_series, aggregate_weekly_series_by_target
from .demand_forecast import (
    weighted_moving_average, holt_winters, holt_winters_with_method,
    croston_sbc, ensemble_forecast, backtest_errors, select_algorithm,
    run_forecast, forecast_series, confidence_band, zero_rate,
    EnsembleResult, ForecastOutcome
)
from .safety_stock import (
    calculate_safety_stock, aggregate_safety_stock, service_level_to_z,
    z_to_service_level, SafetyStockResult
)
from .allocation import (
    build_store_need, needs_allocation, score_store, desired_quantity,
    allocate, StoreNeed, AllocationPlan, AllocationProposal
)

__all__ = [
    'ForecastParameters',
    'SafetyStockParameters',
    'AllocationParameters',
    'DEFAULT_FORECAST_PARAMETERS',
    'DEFAULT_SAFETY_STOCK_PARAMETERS',
    'DEFAULT_ALLOCATION_PARAMETERS',
    'aggregate_weekly_series',
    'aggregate_weekly_series_by_target',
    'weighted_moving_average',
    'holt_winters',
    'holt_winters_with_method',
    'croston_sbc',
    'ensemble_forecast',
    'backtest_errors',
    'select_algorithm',
    'run_forecast',
    'forecast_series',
    'confidence_band',
    'zero_rate',
    'EnsembleResult',
    'ForecastOutcome',
    'calculate_safety_stock',
    'aggregate_safety_stock',
    'service_level_to_z',
    'z_to_service_level',
    'SafetyStockResult',
    'build_store_need',
    'needs_allocation',
    'score_store',
    'desired_quantity',
    'allocate',
    'StoreNeed',
    'AllocationPlan',
    'AllocationProposal'
]
