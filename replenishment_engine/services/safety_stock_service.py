# replenishment_engine/services/safety_stock_service.py
from datetime import date, datetime
from typing import Dict, Hashable, Optional, Union
import logging

from sqlalchemy.orm import Session

from replenishment_engine.config import config
from replenishment_engine.core.parameters import SafetyStockParameters
from replenishment_engine.core.safety_stock import (
    SafetyStockResult, aggregate_safety_stock, calculate_safety_stock
)
from replenishment_engine.exceptions import NotFoundError, SafetyStockError
from replenishment_engine.models import Location, LocationType, Product, ProductVariant
from replenishment_engine.services.sales_history import SalesHistoryService
from replenishment_engine.utils.validation import (
    require_valid, validate_safety_stock_parameters
)

logger = logging.getLogger(__name__)

class SafetyStockService:
    """Service for refreshing product safety stock and reorder points."""

    def __init__(self, session: Session, params: Optional[SafetyStockParameters] = None):
        """Initialize the safety stock service.

        Args:
            session: Database session
            params: Safety stock parameters (defaults to the SAFETY_STOCK config section)
        """
        self.session = session
        self.params = params or config.safety_stock_parameters
        require_valid(validate_safety_stock_parameters(self.params), 'safety stock parameters')
        self.history = SalesHistoryService(session)

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

    def calculate_for_variant(
        self,
        variant_id: Hashable,
        location_id: Hashable,
        lead_time_days: float,
        as_of: Optional[Union[date, datetime]] = None
    ) -> SafetyStockResult:
        """Calculate safety stock for one variant at one location.

        Args:
            variant_id: Product variant ID
            location_id: Location ID
            lead_time_days: Lead time in days
            as_of: Reference day (defaults to today)

        Returns:
            SafetyStockResult
        """
        target = (variant_id, location_id)
        series = self.history.load_weekly_series(
            [target], self.params.history_weeks, as_of
        )[target]
        return calculate_safety_stock(series, lead_time_days, self.params.z_score)

    def calculate_for_product(
        self,
        product_id: Hashable,
        as_of: Optional[Union[date, datetime]] = None
    ) -> Dict:
        """Calculate product-level safety stock across its active variants.

        Args:
            product_id: Product ID
            as_of: Reference day (defaults to today)

        Returns:
            Dictionary with per-variant results and the aggregated values
            (None when the product has no active variants)
        """
        product = self.session.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product with ID {product_id} not found", code='NO_PRODUCT')

        warehouse = self.get_active_warehouse()

        variant_ids = [
            row[0] for row in self.session.query(ProductVariant.id).filter(
                ProductVariant.product_id == product.id,
                ProductVariant.is_active.is_(True)
            ).order_by(ProductVariant.id).all()
        ]

        targets = [(variant_id, warehouse.id) for variant_id in variant_ids]
        series_by_target = self.history.load_weekly_series(
            targets, self.params.history_weeks, as_of
        )

        variant_results = {
            target[0]: calculate_safety_stock(
                series_by_target[target], product.lead_time_days, self.params.z_score
            )
            for target in targets
        }
        aggregated = aggregate_safety_stock(list(variant_results.values()))

        return {
            'product_id': product.id,
            'warehouse_id': warehouse.id,
            'lead_time_days': product.lead_time_days,
            'z_score': self.params.z_score,
            'variant_results': variant_results,
            'safety_stock': aggregated[0] if aggregated else None,
            'reorder_point': aggregated[1] if aggregated else None
        }

    def refresh_product_safety_stock(
        self,
        product_id: Hashable,
        as_of: Optional[Union[date, datetime]] = None
    ) -> bool:
        """Recompute and persist safety stock and reorder point for a product.

        Fields flagged for manual override keep their externally-set values.

        Args:
            product_id: Product ID
            as_of: Reference day (defaults to today)

        Returns:
            True if at least one field was written
        """
        product = self.session.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product with ID {product_id} not found", code='NO_PRODUCT')

        if product.manual_safety_override and product.manual_reorder_override:
            logger.debug(f"Product {product.sku}: both fields under manual override, skipping")
            return False

        calculation = self.calculate_for_product(product_id, as_of)
        if calculation['safety_stock'] is None:
            logger.debug(f"Product {product.sku}: no active variants, skipping")
            return False

        if not product.manual_safety_override:
            product.safety_stock = calculation['safety_stock']
        if not product.manual_reorder_override:
            product.reorder_point = calculation['reorder_point']

        try:
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise SafetyStockError(f"Failed to update safety stock for product {product_id}: {str(e)}")

        logger.debug(f"Product {product.sku}: safety_stock={product.safety_stock}, "
                     f"reorder_point={product.reorder_point}")
        return True

    def refresh_all_safety_stocks(
        self,
        as_of: Optional[Union[date, datetime]] = None
    ) -> Dict:
        """Refresh safety stock for all active products.

        Args:
            as_of: Reference day (defaults to today)

        Returns:
            Dictionary with update results
        """
        # Raises NotFoundError before any product is touched
        self.get_active_warehouse()

        products = self.session.query(Product.id).filter(
            Product.is_active.is_(True)
        ).order_by(Product.id).all()

        results = {
            'total_products': len(products),
            'updated_products': 0,
            'errors': 0,
            'error_products': []
        }

        for (product_id,) in products:
            try:
                if self.refresh_product_safety_stock(product_id, as_of):
                    results['updated_products'] += 1
            except Exception as e:
                self.session.rollback()
                logger.error(f"Error updating safety stock for product {product_id}: {str(e)}")
                results['errors'] += 1
                results['error_products'].append({
                    'product_id': product_id,
                    'error': str(e)
                })

        logger.info(f"Refreshed safety stock for {results['updated_products']} of "
                    f"{results['total_products']} products")
        return results

    def refresh_safety_stock(
        self,
        product_id: Optional[Hashable] = None,
        as_of: Optional[Union[date, datetime]] = None
    ) -> int:
        """Refresh one product, or all active products when no ID is given.

        Returns:
            Number of products updated
        """
        if product_id is not None:
            return int(self.refresh_product_safety_stock(product_id, as_of))
        return self.refresh_all_safety_stocks(as_of)['updated_products']
