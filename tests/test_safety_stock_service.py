"""
Tests for the safety stock service against an in-memory database.
"""
import unittest
from datetime import date
from unittest.mock import patch

from factories import (
    add_location, add_product, add_weekly_sales, create_test_session
)
from replenishment_engine.core.parameters import SafetyStockParameters
from replenishment_engine.exceptions import NotFoundError
from replenishment_engine.models import LocationType, Product
from replenishment_engine.services.safety_stock_service import SafetyStockService

AS_OF = date(2024, 1, 17)

# Three-week window so [3, 5, 7] gives average 5 and stddev 2
PARAMS = SafetyStockParameters(history_weeks=3, z_score=1.65)


class TestSafetyStockService(unittest.TestCase):
    """Test cases for SafetyStockService."""

    def setUp(self):
        self.session, self.engine = create_test_session()

        self.warehouse = add_location(self.session, 'W01', LocationType.WAREHOUSE)
        self.store = add_location(self.session, 'S01')
        self.product, (self.variant,) = add_product(
            self.session, 'TEE', lead_time_days=30, safety_stock=1, reorder_point=2
        )

        add_weekly_sales(self.session, self.warehouse, self.variant, [3, 5, 7], AS_OF)
        self.session.commit()

        self.service = SafetyStockService(self.session, params=PARAMS)

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def test_calculate_for_variant(self):
        """Worked example: SS 7 and ROP 29 for a 30-day lead time."""
        result = self.service.calculate_for_variant(self.variant.id, self.warehouse.id, 30, AS_OF)

        self.assertEqual(result.safety_stock, 7)
        self.assertEqual(result.reorder_point, 29)

    def test_refresh_writes_both_fields(self):
        """A product without overrides gets both computed values."""
        self.assertTrue(self.service.refresh_product_safety_stock(self.product.id, AS_OF))

        self.session.refresh(self.product)
        self.assertEqual(self.product.safety_stock, 7)
        self.assertEqual(self.product.reorder_point, 29)

    def test_store_sales_are_ignored(self):
        """Safety stock is driven by warehouse demand only."""
        add_weekly_sales(self.session, self.store, self.variant, [100, 0, 100], AS_OF)
        self.session.commit()

        self.service.refresh_product_safety_stock(self.product.id, AS_OF)

        self.assertEqual(self.product.safety_stock, 7)

    def test_manual_safety_override(self):
        """An overridden safety stock is kept while the reorder point is refreshed."""
        self.product.manual_safety_override = True
        self.product.safety_stock = 50
        self.session.commit()

        self.assertTrue(self.service.refresh_product_safety_stock(self.product.id, AS_OF))

        self.assertEqual(self.product.safety_stock, 50)
        self.assertEqual(self.product.reorder_point, 29)

    def test_manual_reorder_override(self):
        """An overridden reorder point is kept while safety stock is refreshed."""
        self.product.manual_reorder_override = True
        self.product.reorder_point = 80
        self.session.commit()

        self.service.refresh_product_safety_stock(self.product.id, AS_OF)

        self.assertEqual(self.product.safety_stock, 7)
        self.assertEqual(self.product.reorder_point, 80)

    def test_both_overrides_skip_product(self):
        """Nothing is computed or written when both fields are overridden."""
        self.product.manual_safety_override = True
        self.product.manual_reorder_override = True
        self.session.commit()

        with patch.object(self.service, 'calculate_for_product') as calculate:
            self.assertFalse(self.service.refresh_product_safety_stock(self.product.id, AS_OF))
            calculate.assert_not_called()

        self.assertEqual((self.product.safety_stock, self.product.reorder_point), (1, 2))

    def test_variants_are_averaged(self):
        """Product values are the rounded mean over active variants."""
        _, (flat, retired) = add_product(
            self.session, 'CAP', lead_time_days=30, variant_skus=['CAP-S', 'CAP-L']
        )
        flat.product_id = self.product.id
        retired.product_id = self.product.id
        retired.is_active = False
        # Flat demand of 5: SS 0, ROP ceil(5 * 30 / 7) = 22
        add_weekly_sales(self.session, self.warehouse, flat, [5, 5, 5], AS_OF)
        add_weekly_sales(self.session, self.warehouse, retired, [90, 0, 90], AS_OF)
        self.session.commit()

        calculation = self.service.calculate_for_product(self.product.id, AS_OF)

        self.assertEqual(len(calculation['variant_results']), 2)
        # SS (7 + 0) / 2 = 3.5 -> 4, ROP (29 + 22) / 2 = 25.5 -> 26
        self.assertEqual(calculation['safety_stock'], 4)
        self.assertEqual(calculation['reorder_point'], 26)

    def test_product_without_active_variants(self):
        """A product with no active variants is left alone."""
        self.variant.is_active = False
        self.session.commit()

        self.assertFalse(self.service.refresh_product_safety_stock(self.product.id, AS_OF))
        self.assertEqual(self.product.safety_stock, 1)

    def test_unknown_product(self):
        """Refreshing a missing product raises NotFoundError."""
        with self.assertRaises(NotFoundError):
            self.service.refresh_product_safety_stock(9999, AS_OF)

    def test_refresh_all(self):
        """All active products are refreshed and counted."""
        add_product(self.session, 'MUG', is_active=False)
        self.session.commit()

        results = self.service.refresh_all_safety_stocks(AS_OF)

        self.assertEqual(results['total_products'], 1)
        self.assertEqual(results['updated_products'], 1)
        self.assertEqual(results['errors'], 0)
        self.assertEqual(self.service.refresh_safety_stock(as_of=AS_OF), 1)

    def test_refresh_all_isolates_failures(self):
        """A failing product is reported and the rest are still refreshed."""
        other, (other_variant,) = add_product(self.session, 'HAT', lead_time_days=30)
        add_weekly_sales(self.session, self.warehouse, other_variant, [3, 5, 7], AS_OF)
        self.session.commit()

        original = self.service.calculate_for_product

        def flaky(product_id, as_of=None):
            if product_id == self.product.id:
                raise ValueError("corrupt history")
            return original(product_id, as_of)

        with patch.object(self.service, 'calculate_for_product', side_effect=flaky):
            results = self.service.refresh_all_safety_stocks(AS_OF)

        self.assertEqual(results['updated_products'], 1)
        self.assertEqual(results['errors'], 1)
        self.assertEqual(results['error_products'][0]['product_id'], self.product.id)
        self.assertEqual(self.session.get(Product, other.id).safety_stock, 7)

    def test_no_warehouse(self):
        """Without an active warehouse the refresh cannot run."""
        self.warehouse.is_active = False
        self.session.commit()

        with self.assertRaises(NotFoundError) as ctx:
            self.service.refresh_all_safety_stocks(AS_OF)

        self.assertEqual(ctx.exception.code, 'NO_WAREHOUSE')


if __name__ == '__main__':
    unittest.main()
