from typing import Dict

from replenishment_engine.core.parameters import (
    ForecastParameters, SafetyStockParameters, AllocationParameters
)
from replenishment_engine.exceptions import ConfigError

def _check_smoothing(errors: Dict[str, str], name: str, value: float) -> None:
    if not 0.0 < value <= 1.0:
        errors[name] = f'{name} must be in (0, 1], got {value}'

def validate_forecast_parameters(params: ForecastParameters) -> Dict[str, str]:
    """Validate forecasting parameters.

    Args:
        params: Parameters to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if params.history_weeks < 1:
        errors['history_weeks'] = 'History window must be at least one week'

    if params.wma_window < 1:
        errors['wma_window'] = 'WMA window must be at least one week'

    if params.season_length < 1:
        errors['season_length'] = 'Season length must be at least one week'

    for name in ('hw_alpha', 'hw_beta', 'hw_gamma', 'croston_alpha'):
        _check_smoothing(errors, name, getattr(params, name))

    if params.ensemble_holdout < 1:
        errors['ensemble_holdout'] = 'Ensemble hold-out must be at least one week'

    if params.ensemble_epsilon <= 0:
        errors['ensemble_epsilon'] = 'Ensemble epsilon must be positive'

    if not 0.0 <= params.intermittent_zero_rate <= 1.0:
        errors['intermittent_zero_rate'] = 'Zero-rate threshold must be between 0 and 1'

    return errors

def validate_safety_stock_parameters(params: SafetyStockParameters) -> Dict[str, str]:
    """Validate safety stock parameters.

    Args:
        params: Parameters to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if params.history_weeks < 1:
        errors['history_weeks'] = 'History window must be at least one week'

    if params.z_score < 0:
        errors['z_score'] = 'Z-score must not be negative'

    return errors

def validate_allocation_parameters(params: AllocationParameters) -> Dict[str, str]:
    """Validate allocation parameters.

    Args:
        params: Parameters to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if params.urgency_offset <= 0:
        errors['urgency_offset'] = 'Urgency offset must be positive'

    missing = {'A', 'B', 'C'} - set(params.tier_weights)
    if missing:
        errors['tier_weights'] = f"Missing tier weights: {', '.join(sorted(missing))}"

    if params.target_multiple < 1:
        errors['target_multiple'] = 'Target multiple must be at least 1'

    return errors

def require_valid(errors: Dict[str, str], what: str) -> None:
    """Raise ConfigError when a validator reported problems."""
    if errors:
        raise ConfigError(f"Invalid {what}", code='INVALID_PARAMETERS', details=errors)
