from .date_utils import (
    convert_to_date, week_start, week_end, completed_weeks, window_bounds, next_period
)
from .math_utils import mean, sample_stddev, round_half_up, safe_divide
from .validation import (
    validate_forecast_parameters, validate_safety_stock_parameters,
    validate_allocation_parameters
)

__all__ = [
    'convert_to_date',
    'week_start',
    'week_end',
    'completed_weeks',
    'window_bounds',
    'next_period',
    'mean',
    'sample_stddev',
    'round_half_up',
    'safe_divide',
    'validate_forecast_parameters',
    'validate_safety_stock_parameters',
    'validate_allocation_parameters'
]
