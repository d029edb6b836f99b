# replenishment_engine/core/allocation.py
"""Scoring and greedy distribution of scarce warehouse stock across stores.

Score = (below safety ? 1000 : 0)
      + (1 / (days of stock + 0.1)) * 100     urgency
      + tier weight * 10                      A=30, B=20, C=10

The below-safety bonus and the urgency term are independent, so a store
with almost no runway can outrank a below-safety store with a long one.
"""
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Hashable, List, Sequence

from replenishment_engine.core.parameters import (
    DEFAULT_ALLOCATION_PARAMETERS, AllocationParameters
)
from replenishment_engine.utils.math_utils import safe_divide


@dataclass(frozen=True)
class StoreNeed:
    location_id: Hashable
    location_code: str
    location_name: str
    tier: str
    quantity_available: int
    safety_stock_threshold: int
    avg_daily_sales: float
    days_of_stock: float
    below_safety: bool
    score: float = 0.0
    suggested_qty: int = 0


@dataclass(frozen=True)
class AllocationPlan:
    stores: List[StoreNeed]
    total_requested: int
    fully_fulfilled: bool


@dataclass(frozen=True)
class AllocationProposal:
    variant_id: Hashable
    variant_sku: str
    product_name: str
    warehouse_available: int
    total_requested: int
    fully_fulfilled: bool
    stores: List[StoreNeed]

    @property
    def total_suggested(self) -> int:
        return sum(store.suggested_qty for store in self.stores)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for review screens and transfer creation."""
        return {
            'variant_id': self.variant_id,
            'variant_sku': self.variant_sku,
            'product_name': self.product_name,
            'warehouse_available': self.warehouse_available,
            'total_requested': self.total_requested,
            'fully_fulfilled': self.fully_fulfilled,
            'stores': [asdict(store) for store in self.stores]
        }


def build_store_need(
    location_id: Hashable,
    location_code: str,
    location_name: str,
    tier: str,
    quantity_on_hand: int,
    quantity_reserved: int,
    weekly_forecast: float,
    safety_stock: int,
    params: AllocationParameters = DEFAULT_ALLOCATION_PARAMETERS
) -> StoreNeed:
    """Derive a store's stock position for one variant.

    Args:
        location_id: Store location ID
        location_code: Store code
        location_name: Store name
        tier: Revenue tier ('A', 'B' or 'C')
        quantity_on_hand: Units on hand at the store
        quantity_reserved: Units reserved at the store
        weekly_forecast: Latest weekly demand forecast for the store
        safety_stock: Product safety stock
        params: Allocation parameters

    Returns:
        Unscored StoreNeed
    """
    quantity_available = max(0, (quantity_on_hand or 0) - (quantity_reserved or 0))
    avg_daily_sales = (weekly_forecast or 0.0) / 7.0

    # No demand: effectively infinite runway
    days_of_stock = safe_divide(quantity_available, avg_daily_sales, params.no_demand_days_of_stock)

    return StoreNeed(
        location_id=location_id,
        location_code=location_code,
        location_name=location_name,
        tier=getattr(tier, 'value', tier),
        quantity_available=quantity_available,
        safety_stock_threshold=safety_stock,
        avg_daily_sales=avg_daily_sales,
        days_of_stock=days_of_stock,
        below_safety=quantity_available < safety_stock
    )


def needs_allocation(
    need: StoreNeed,
    params: AllocationParameters = DEFAULT_ALLOCATION_PARAMETERS
) -> bool:
    """A store needs stock when it is below safety stock or running short."""
    return need.below_safety or need.days_of_stock < params.days_of_stock_threshold


def score_store(
    need: StoreNeed,
    params: AllocationParameters = DEFAULT_ALLOCATION_PARAMETERS
) -> float:
    """Priority score of a store; higher is served first."""
    bonus = params.below_safety_bonus if need.below_safety else 0.0
    urgency = (1.0 / (need.days_of_stock + params.urgency_offset)) * params.urgency_factor
    return bonus + urgency + params.tier_weight(need.tier) * params.tier_multiplier


def desired_quantity(
    need: StoreNeed,
    params: AllocationParameters = DEFAULT_ALLOCATION_PARAMETERS
) -> int:
    """Units needed to bring the store up to a multiple of safety stock."""
    target = params.target_multiple * need.safety_stock_threshold
    return max(0, target - need.quantity_available)


def allocate(
    needs: Sequence[StoreNeed],
    warehouse_available: int,
    params: AllocationParameters = DEFAULT_ALLOCATION_PARAMETERS
) -> AllocationPlan:
    """Score the stores that need stock and distribute supply greedily.

    Stores are served in descending score order; equal scores are served
    in location code order.

    Args:
        needs: Store positions
        warehouse_available: Units available at the warehouse
        params: Allocation parameters

    Returns:
        AllocationPlan with the requesting stores, sorted and allocated
    """
    candidates = [
        replace(need, score=score_store(need, params))
        for need in needs
        if needs_allocation(need, params)
    ]
    ranked = sorted(candidates, key=lambda need: (-need.score, need.location_code))

    total_requested = sum(desired_quantity(need, params) for need in ranked)

    remaining = max(0, warehouse_available)
    allocated = []
    for need in ranked:
        quantity = min(desired_quantity(need, params), remaining) if remaining > 0 else 0
        remaining -= quantity
        allocated.append(replace(need, suggested_qty=quantity))

    return AllocationPlan(
        stores=allocated,
        total_requested=total_requested,
        fully_fulfilled=total_requested <= warehouse_available
    )
