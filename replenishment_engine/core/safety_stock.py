# replenishment_engine/core/safety_stock.py
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from scipy import stats

from replenishment_engine.core.parameters import DEFAULT_SAFETY_STOCK_PARAMETERS
from replenishment_engine.utils.math_utils import mean, round_half_up, sample_stddev

@dataclass(frozen=True)
class SafetyStockResult:
    safety_stock: int
    reorder_point: int
    avg_weekly_demand: float
    demand_stddev: float

def calculate_safety_stock(
    series: Sequence[float],
    lead_time_days: float,
    z_score: float = DEFAULT_SAFETY_STOCK_PARAMETERS.z_score
) -> SafetyStockResult:
    """Calculate safety stock and reorder point from weekly demand.

    Formula:
        SS  = ceil(Z * sigma_weekly * sqrt(LT_weeks))
        ROP = ceil(avg_weekly * LT_weeks) + SS

    Args:
        series: Weekly demand, oldest first
        lead_time_days: Replenishment lead time in days
        z_score: Service factor (1.65 is roughly a 95% service level)

    Returns:
        SafetyStockResult
    """
    avg_weekly_demand = mean(series)
    demand_stddev = sample_stddev(series)
    lead_time_weeks = max(0.0, lead_time_days) / 7.0

    # A flat history has no variability to buffer against
    if demand_stddev == 0:
        safety_stock = 0
    else:
        safety_stock = max(0, math.ceil(z_score * demand_stddev * math.sqrt(lead_time_weeks)))

    reorder_point = math.ceil(avg_weekly_demand * lead_time_weeks) + safety_stock

    return SafetyStockResult(
        safety_stock=int(safety_stock),
        reorder_point=int(max(reorder_point, safety_stock)),
        avg_weekly_demand=avg_weekly_demand,
        demand_stddev=demand_stddev
    )

def aggregate_safety_stock(results: List[SafetyStockResult]) -> Optional[Tuple[int, int]]:
    """Combine per-variant results into product-level values.

    Both safety stock and reorder point are the arithmetic mean across
    variants, rounded half up.

    Args:
        results: Per-variant safety stock results

    Returns:
        Tuple with (safety_stock, reorder_point), or None if there are no results
    """
    if not results:
        return None

    safety_stock = round_half_up(sum(r.safety_stock for r in results) / len(results))
    reorder_point = round_half_up(sum(r.reorder_point for r in results) / len(results))

    return safety_stock, reorder_point

def service_level_to_z(service_level_goal: float) -> float:
    """Convert a service level goal percentage to a Z-score.

    Args:
        service_level_goal: Service level goal as percentage (e.g. 95.0)

    Returns:
        Z-score; the goal is clamped to [50, 99.99] percent
    """
    service_level = max(0.5, min(0.9999, service_level_goal / 100.0))
    return float(stats.norm.ppf(service_level))

def z_to_service_level(z_score: float) -> float:
    """Service level percentage achieved by a given Z-score."""
    return float(stats.norm.cdf(z_score) * 100.0)
