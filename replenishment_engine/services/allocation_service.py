# replenishment_engine/services/allocation_service.py
import logging
from typing import Dict, Hashable, List, Optional

from sqlalchemy.orm import Session

from replenishment_engine.config import config
from replenishment_engine.core.allocation import (
    AllocationProposal, allocate, build_store_need
)
from replenishment_engine.core.parameters import AllocationParameters
from replenishment_engine.exceptions import AllocationError, NotFoundError
from replenishment_engine.models import (
    InventoryLevel, Location, LocationType, Product, ProductVariant
)
from replenishment_engine.services.forecast_service import ForecastService
from replenishment_engine.utils.validation import (
    require_valid, validate_allocation_parameters
)

logger = logging.getLogger(__name__)

class AllocationService:
    """Service proposing how to split scarce warehouse stock across stores.

    Proposals are read-only recommendations; turning accepted lines into
    stock transfers is done elsewhere, against inventory re-read at that time.
    """

    def __init__(self, session: Session, params: Optional[AllocationParameters] = None):
        """Initialize the allocation service.

        Args:
            session: Database session
            params: Allocation parameters (defaults to the ALLOCATION config section)
        """
        self.session = session
        self.params = params or config.allocation_parameters
        require_valid(validate_allocation_parameters(self.params), 'allocation parameters')
        self.forecasts = ForecastService(session, max_workers=1)

    def get_active_warehouse(self) -> Location:
        """The active central warehouse.

        Raises:
            NotFoundError: if no active warehouse exists
        """
        warehouse = self.session.query(Location).filter(
            Location.location_type == LocationType.WAREHOUSE,
            Location.is_active.is_(True)
        ).order_by(Location.code).first()

        if not warehouse:
            raise NotFoundError("No active warehouse location found", code='NO_WAREHOUSE')
        return warehouse

    def get_active_stores(self) -> List[Location]:
        """Active store locations ordered by code."""
        return self.session.query(Location).filter(
            Location.location_type == LocationType.STORE,
            Location.is_active.is_(True)
        ).order_by(Location.code).all()

    def get_available_quantity(self, location_id: Hashable, variant_id: Hashable) -> int:
        """On hand minus reserved at one location; 0 without an inventory level."""
        level = self.session.query(InventoryLevel).filter(
            InventoryLevel.location_id == location_id,
            InventoryLevel.product_variant_id == variant_id
        ).one_or_none()
        return level.quantity_available if level else 0

    def compute_allocation_proposal(
        self,
        variant_id: Hashable,
        warehouse_available_override: Optional[int] = None
    ) -> AllocationProposal:
        """Compute an allocation proposal for a product variant.

        Args:
            variant_id: Product variant ID
            warehouse_available_override: Use this quantity instead of the
                live warehouse stock

        Returns:
            AllocationProposal with requesting stores sorted by priority

        Raises:
            NotFoundError: if the variant or an active warehouse is missing
        """
        variant = self.session.get(ProductVariant, variant_id)
        if not variant:
            raise NotFoundError(f"Product variant with ID {variant_id} not found", code='NO_VARIANT')

        warehouse = self.get_active_warehouse()

        if warehouse_available_override is not None:
            if warehouse_available_override < 0:
                raise AllocationError("Warehouse quantity override must not be negative",
                                      code='INVALID_OVERRIDE')
            warehouse_available = warehouse_available_override
        else:
            warehouse_available = self.get_available_quantity(warehouse.id, variant_id)

        product = variant.product
        safety_stock = product.safety_stock or 0

        stores = self.get_active_stores()
        store_ids = [store.id for store in stores]

        levels = {
            level.location_id: level
            for level in self.session.query(InventoryLevel).filter(
                InventoryLevel.product_variant_id == variant_id,
                InventoryLevel.location_id.in_(store_ids)
            ).all()
        } if store_ids else {}
        forecasts = self.forecasts.get_latest_forecasts(variant_id, store_ids)

        needs = []
        for store in stores:
            level = levels.get(store.id)
            forecast = forecasts.get(store.id)
            needs.append(build_store_need(
                location_id=store.id,
                location_code=store.code,
                location_name=store.name,
                tier=store.revenue_tier,
                quantity_on_hand=level.quantity_on_hand if level else 0,
                quantity_reserved=level.quantity_reserved if level else 0,
                weekly_forecast=float(forecast.forecasted_demand) if forecast else 0.0,
                safety_stock=safety_stock,
                params=self.params
            ))

        plan = allocate(needs, warehouse_available, self.params)

        logger.info(f"Allocation proposal for variant {variant.sku}: {len(plan.stores)} stores requesting "
                    f"{plan.total_requested} units, {warehouse_available} available")

        return AllocationProposal(
            variant_id=variant.id,
            variant_sku=variant.sku,
            product_name=product.name,
            warehouse_available=warehouse_available,
            total_requested=plan.total_requested,
            fully_fulfilled=plan.fully_fulfilled,
            stores=plan.stores
        )

    def get_variants_needing_allocation(self) -> List[Dict]:
        """Active variants with warehouse stock and at least one store below safety stock.

        Returns:
            List of dictionaries with id, sku, product_name and stores_below;
            empty when there is no active warehouse
        """
        warehouse = self.session.query(Location).filter(
            Location.location_type == LocationType.WAREHOUSE,
            Location.is_active.is_(True)
        ).order_by(Location.code).first()
        if not warehouse:
            return []

        store_ids = [store.id for store in self.get_active_stores()]

        variants = self.session.query(ProductVariant).join(Product).filter(
            ProductVariant.is_active.is_(True)
        ).order_by(ProductVariant.sku).all()

        levels_by_variant: Dict[Hashable, List[InventoryLevel]] = {}
        for level in self.session.query(InventoryLevel).filter(
            InventoryLevel.product_variant_id.in_([v.id for v in variants])
        ).all() if variants else []:
            levels_by_variant.setdefault(level.product_variant_id, []).append(level)

        results = []
        for variant in variants:
            levels = levels_by_variant.get(variant.id, [])

            warehouse_available = sum(
                level.quantity_available for level in levels if level.location_id == warehouse.id
            )
            if warehouse_available == 0:
                continue

            safety_stock = variant.product.safety_stock or 0
            stores_below = sum(
                1 for level in levels
                if level.location_id in store_ids
                and level.quantity_on_hand - level.quantity_reserved < safety_stock
            )

            if stores_below > 0:
                results.append({
                    'id': variant.id,
                    'sku': variant.sku,
                    'product_name': variant.product.name,
                    'stores_below': stores_below
                })

        return results
