# replenishment_engine/core/demand_forecast.py
"""Demand forecasting algorithms over a weekly demand series.

Four methods, in increasing order of complexity:

1. Weighted moving average over the most recent weeks (linear weights)
2. Additive Holt-Winters triple exponential smoothing (seasonal period m)
3. Croston's method with the Syntetos-Boylan correction, for intermittent demand
4. Ensemble: the three methods combined with weights inversely proportional
   to their walk-forward hold-out error

All functions are pure: they take a series (oldest week first) and a
parameter set and return numbers. Insufficient history never raises; the
affected method falls back to the weighted moving average and reports the
method that actually ran.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from replenishment_engine.core.parameters import (
    DEFAULT_FORECAST_PARAMETERS, ForecastParameters
)
from replenishment_engine.exceptions import ForecastError
from replenishment_engine.models import ForecastMethod
from replenishment_engine.utils.math_utils import sample_stddev

SeriesForecaster = Callable[[Sequence[float], ForecastParameters], float]


@dataclass(frozen=True)
class EnsembleResult:
    forecast: float
    mape_score: float
    mapes: Dict[ForecastMethod, float]
    weights: Dict[ForecastMethod, float]
    sub_forecasts: Dict[ForecastMethod, float]
    fallback: bool = False


@dataclass(frozen=True)
class ForecastOutcome:
    requested_method: ForecastMethod
    method_used: ForecastMethod
    predicted_demand: float
    mape_score: Optional[float] = None
    sub_forecasts: Optional[Dict[ForecastMethod, float]] = None
    weights: Optional[Dict[ForecastMethod, float]] = None

    @property
    def fell_back(self) -> bool:
        return self.method_used != self.requested_method


def weighted_moving_average(
    values: Sequence[float],
    params: ForecastParameters = DEFAULT_FORECAST_PARAMETERS
) -> float:
    """Linear-weighted moving average of the most recent weeks.

    Only the last `params.wma_window` values are used; the oldest of them has
    weight 1 and the newest weight n.

    Args:
        values: Weekly demand, oldest first
        params: Forecast parameters

    Returns:
        Forecast value (0.0 for an empty series)
    """
    window = list(values)[-params.wma_window:]
    if not window:
        return 0.0

    numerator = 0.0
    denominator = 0.0
    for i, value in enumerate(window):
        weight = i + 1
        numerator += value * weight
        denominator += weight

    return numerator / denominator if denominator else 0.0


def holt_winters_with_method(
    values: Sequence[float],
    params: ForecastParameters = DEFAULT_FORECAST_PARAMETERS
) -> Tuple[float, ForecastMethod]:
    """Additive Holt-Winters forecast plus the method that produced it.

    Needs two full seasonal cycles; shorter series are forecast with the
    weighted moving average instead, reported as MOVING_AVG_12W.

    Initialisation:
        level  L = mean of the first m observations
        trend  T = 0
        season S[i] = values[i] - L for i in [0, m)

    Recurrence for t >= m, with s = t mod m:
        L' = alpha (D_t - S[s]) + (1 - alpha)(L + T)
        T' = beta (L' - L) + (1 - beta) T
        S[s] = gamma (D_t - L') + (1 - gamma) S[s]

    The one-step-ahead forecast L + T + S[n mod m] is floored at zero.

    Args:
        values: Weekly demand, oldest first
        params: Forecast parameters

    Returns:
        Tuple with forecast value and effective method
    """
    values = list(values)
    m = params.season_length
    n = len(values)

    if n < params.holt_winters_min_length:
        return weighted_moving_average(values, params), ForecastMethod.MOVING_AVG_12W

    alpha, beta, gamma = params.hw_alpha, params.hw_beta, params.hw_gamma

    level = sum(values[:m]) / m
    trend = 0.0
    seasonal = [v - level for v in values[:m]]

    for t in range(m, n):
        demand = values[t]
        s = t % m
        previous_level = level
        level = alpha * (demand - seasonal[s]) + (1 - alpha) * (level + trend)
        trend = beta * (level - previous_level) + (1 - beta) * trend
        seasonal[s] = gamma * (demand - level) + (1 - gamma) * seasonal[s]

    return max(0.0, level + trend + seasonal[n % m]), ForecastMethod.HOLT_WINTERS


def holt_winters(
    values: Sequence[float],
    params: ForecastParameters = DEFAULT_FORECAST_PARAMETERS
) -> float:
    """Additive Holt-Winters forecast (see holt_winters_with_method)."""
    forecast, _ = holt_winters_with_method(values, params)
    return forecast


def croston_sbc(
    values: Sequence[float],
    params: ForecastParameters = DEFAULT_FORECAST_PARAMETERS
) -> float:
    """Croston's method with the Syntetos-Boylan bias correction.

    Demand size z and inter-demand interval q are smoothed separately and
    only updated on weeks with non-zero demand. The forecast is
    (z / q) * (1 - alpha / 2).

    Args:
        values: Weekly demand, oldest first
        params: Forecast parameters

    Returns:
        Forecast value (0.0 when the series has no demand at all)
    """
    alpha = params.croston_alpha

    first = next((i for i, v in enumerate(values) if v > 0), None)
    if first is None:
        return 0.0

    size = float(values[first])
    interval = float(first + 1)
    last = first

    for i in range(first + 1, len(values)):
        value = values[i]
        if value > 0:
            size = alpha * value + (1 - alpha) * size
            interval = alpha * (i - last) + (1 - alpha) * interval
            last = i

    return max(0.0, (size / interval) * (1 - alpha / 2))


def backtest_errors(
    values: List[float],
    forecaster: SeriesForecaster,
    holdout: int,
    params: ForecastParameters = DEFAULT_FORECAST_PARAMETERS
) -> List[float]:
    """Walk-forward normalised absolute errors over the last `holdout` weeks.

    Each hold-out week is forecast from the history strictly before it and
    compared using max(actual, 1) as denominator so zero-sale weeks do not
    divide by zero. Returns an empty list when the series is not longer than
    the hold-out window.
    """
    n = len(values)
    if n <= holdout:
        return []

    errors = []
    for cutoff in range(n - holdout, n):
        actual = values[cutoff]
        errors.append(abs(actual - forecaster(values[:cutoff], params)) / max(actual, 1))
    return errors


def ensemble_forecast(
    values: Sequence[float],
    params: ForecastParameters = DEFAULT_FORECAST_PARAMETERS,
    wma: SeriesForecaster = weighted_moving_average,
    hw: SeriesForecaster = holt_winters,
    croston: SeriesForecaster = croston_sbc
) -> EnsembleResult:
    """MAPE-weighted combination of the three base methods.

    Each of the last `ensemble_holdout` weeks is forecast from the history
    strictly before it. Errors use max(actual, 1) as denominator so zero-sale
    weeks do not divide by zero. Weights are 1 / (MAPE + epsilon), normalised
    to sum to one, and applied to the base forecasts on the full series.

    Series shorter than holdout + 2 weeks get the weighted moving average
    with a MAPE score of 0.

    Args:
        values: Weekly demand, oldest first
        params: Forecast parameters
        wma, hw, croston: Base forecasters

    Returns:
        EnsembleResult
    """
    values = list(values)
    n = len(values)
    holdout = params.ensemble_holdout
    members = (
        (ForecastMethod.MOVING_AVG_12W, wma),
        (ForecastMethod.HOLT_WINTERS, hw),
        (ForecastMethod.CROSTON_SBC, croston),
    )

    if n < params.ensemble_min_length:
        forecast = wma(values, params)
        return EnsembleResult(
            forecast=forecast,
            mape_score=0.0,
            mapes={},
            weights={ForecastMethod.MOVING_AVG_12W: 1.0},
            sub_forecasts={ForecastMethod.MOVING_AVG_12W: forecast},
            fallback=True
        )

    mapes = {
        method: sum(backtest_errors(values, forecaster, holdout, params)) / holdout
        for method, forecaster in members
    }
    raw_weights = {
        method: 1.0 / (mape + params.ensemble_epsilon) for method, mape in mapes.items()
    }
    weight_sum = sum(raw_weights.values())
    weights = {method: w / weight_sum for method, w in raw_weights.items()}

    sub_forecasts = {method: forecaster(values, params) for method, forecaster in members}
    forecast = sum(sub_forecasts[method] * weights[method] for method in weights)
    mape_score = round(sum(mapes.values()) / len(mapes), 4)

    return EnsembleResult(
        forecast=max(0.0, forecast),
        mape_score=mape_score,
        mapes=mapes,
        weights=weights,
        sub_forecasts=sub_forecasts
    )


def zero_rate(values: Sequence[float]) -> float:
    """Fraction of weeks with no demand."""
    if len(values) == 0:
        return 0.0
    return sum(1 for v in values if v == 0) / len(values)


def select_algorithm(
    values: Sequence[float],
    forced: Optional[ForecastMethod] = None,
    params: ForecastParameters = DEFAULT_FORECAST_PARAMETERS
) -> ForecastMethod:
    """Pick the forecasting method for a series.

    An explicit `forced` method always wins. Otherwise a series with at least
    `intermittent_zero_rate` zero weeks is intermittent (Croston-SBC), a
    series with two seasonal cycles gets Holt-Winters and anything else the
    weighted moving average. ENSEMBLE is only used when forced.
    """
    if forced is not None:
        return forced

    n = len(values)
    if n == 0:
        return ForecastMethod.MOVING_AVG_12W

    if zero_rate(values) >= params.intermittent_zero_rate:
        return ForecastMethod.CROSTON_SBC
    if n >= params.holt_winters_min_length:
        return ForecastMethod.HOLT_WINTERS
    return ForecastMethod.MOVING_AVG_12W


def run_forecast(
    values: Sequence[float],
    method: ForecastMethod,
    params: ForecastParameters = DEFAULT_FORECAST_PARAMETERS
) -> ForecastOutcome:
    """Run one forecasting method and report the method that actually ran.

    Raises:
        ForecastError: for MANUAL, which is entered by planners, not computed
    """
    if method == ForecastMethod.ENSEMBLE:
        result = ensemble_forecast(values, params)
        return ForecastOutcome(
            requested_method=method,
            method_used=ForecastMethod.MOVING_AVG_12W if result.fallback else method,
            predicted_demand=result.forecast,
            mape_score=result.mape_score,
            sub_forecasts=result.sub_forecasts,
            weights=result.weights
        )

    if method == ForecastMethod.HOLT_WINTERS:
        forecast, used = holt_winters_with_method(values, params)
        return ForecastOutcome(method, used, forecast)

    if method == ForecastMethod.CROSTON_SBC:
        return ForecastOutcome(method, method, croston_sbc(values, params))

    if method == ForecastMethod.MOVING_AVG_12W:
        return ForecastOutcome(method, method, weighted_moving_average(values, params))

    raise ForecastError(f"Method {method} cannot be computed", code='UNSUPPORTED_METHOD')


def forecast_series(
    values: Sequence[float],
    forced: Optional[ForecastMethod] = None,
    params: ForecastParameters = DEFAULT_FORECAST_PARAMETERS
) -> ForecastOutcome:
    """Select a method for the series (or honour `forced`) and run it."""
    return run_forecast(values, select_algorithm(values, forced, params), params)


def confidence_band(predicted: float, values: Sequence[float]) -> Tuple[float, float]:
    """Band of one sample standard deviation of the history around a forecast.

    The lower bound is floored at zero.
    """
    sd = sample_stddev(values)
    return max(0.0, predicted - sd), predicted + sd
