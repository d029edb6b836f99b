"""
Unit tests for store scoring and greedy allocation of warehouse stock.
"""
import unittest

from replenishment_engine.core.allocation import (
    AllocationProposal,
    allocate,
    build_store_need,
    desired_quantity,
    needs_allocation,
    score_store
)
from replenishment_engine.core.parameters import DEFAULT_ALLOCATION_PARAMETERS
from replenishment_engine.models import RevenueTier


def make_need(code, tier, on_hand, weekly_forecast, safety_stock=10, reserved=0):
    return build_store_need(
        location_id=code,
        location_code=code,
        location_name=f"Store {code}",
        tier=tier,
        quantity_on_hand=on_hand,
        quantity_reserved=reserved,
        weekly_forecast=weekly_forecast,
        safety_stock=safety_stock
    )


class TestStoreNeed(unittest.TestCase):
    """Test cases for deriving a store's stock position."""

    def test_days_of_stock(self):
        """Days of stock is available units over average daily sales."""
        # 14 per week = 2 per day, 4 on hand -> 2 days
        need = make_need('S01', 'A', on_hand=4, weekly_forecast=14)

        self.assertAlmostEqual(need.avg_daily_sales, 2.0)
        self.assertAlmostEqual(need.days_of_stock, 2.0)
        self.assertTrue(need.below_safety)

    def test_reserved_stock_is_not_available(self):
        """Reserved units do not count and availability never goes negative."""
        self.assertEqual(make_need('S01', 'B', on_hand=10, weekly_forecast=7, reserved=4).quantity_available, 6)
        self.assertEqual(make_need('S01', 'B', on_hand=2, weekly_forecast=7, reserved=5).quantity_available, 0)

    def test_no_demand(self):
        """Without a forecast the runway is effectively unlimited."""
        need = make_need('S01', 'B', on_hand=20, weekly_forecast=0)

        self.assertEqual(need.days_of_stock, 999.0)
        self.assertFalse(needs_allocation(need))

    def test_missing_forecast_and_empty_shelf(self):
        """A store with no stock and no forecast still gets the no-demand runway."""
        need = make_need('S02', 'C', on_hand=0, weekly_forecast=None, safety_stock=0)

        self.assertEqual(need.avg_daily_sales, 0.0)
        self.assertEqual(need.days_of_stock, 999.0)

    def test_enum_tier(self):
        """Revenue tiers may be passed as enum members."""
        need = make_need('S01', RevenueTier.A, on_hand=4, weekly_forecast=14)

        self.assertEqual(need.tier, 'A')
        self.assertEqual(DEFAULT_ALLOCATION_PARAMETERS.tier_weight(RevenueTier.C), 10.0)


class TestScoring(unittest.TestCase):
    """Test cases for the store priority score."""

    def test_worked_example_scores(self):
        """Below-safety tier A store far outranks a comfortable tier C store."""
        # A: 1000 + (1 / 2.1) * 100 + 30 * 10 = 1347.6
        store_a = make_need('S01', 'A', on_hand=4, weekly_forecast=14)
        # B: 0 + (1 / 20.1) * 100 + 10 * 10 = 105.0
        store_b = make_need('S02', 'C', on_hand=20, weekly_forecast=7)

        self.assertAlmostEqual(score_store(store_a), 1347.6, places=1)
        self.assertAlmostEqual(score_store(store_b), 105.0, places=1)

    def test_urgency_can_outrank_bonus(self):
        """A near-empty store can beat a below-safety store with a long runway."""
        # Below safety with a long runway: 1000 + 100 / 30.1 + 100 = 1103.3
        slow = make_need('S01', 'C', on_hand=3, weekly_forecast=0.7, safety_stock=10)
        # Above safety but nearly out: 100 / 0.1 + 300 = 1300
        urgent = make_need('S02', 'A', on_hand=0, weekly_forecast=7, safety_stock=0)

        self.assertGreater(score_store(urgent), score_store(slow))

    def test_desired_quantity(self):
        """Stores are topped up to twice their safety stock."""
        self.assertEqual(desired_quantity(make_need('S01', 'A', on_hand=4, weekly_forecast=14)), 16)
        self.assertEqual(desired_quantity(make_need('S01', 'A', on_hand=25, weekly_forecast=140)), 0)


class TestAllocate(unittest.TestCase):
    """Test cases for the greedy allocation."""

    def setUp(self):
        # Below safety, 2 days of stock, wants 16
        self.store_a = make_need('S01', 'A', on_hand=4, weekly_forecast=14)
        # At safety stock, 10 days of stock, wants 10
        self.store_b = make_need('S02', 'C', on_hand=10, weekly_forecast=7)
        # Comfortable, 20 days of stock
        self.store_c = make_need('S03', 'B', on_hand=20, weekly_forecast=7)

    def test_highest_score_allocated_first(self):
        """The most urgent store is served before the others."""
        plan = allocate([self.store_b, self.store_c, self.store_a], 20)

        self.assertEqual([s.location_code for s in plan.stores], ['S01', 'S02'])
        self.assertEqual([s.suggested_qty for s in plan.stores], [16, 4])
        self.assertEqual(plan.total_requested, 26)
        self.assertFalse(plan.fully_fulfilled)

    def test_stores_without_need_are_excluded(self):
        """Stores above safety with two weeks of runway do not request stock."""
        plan = allocate([self.store_c], 100)

        self.assertEqual(plan.stores, [])
        self.assertEqual(plan.total_requested, 0)
        self.assertTrue(plan.fully_fulfilled)

    def test_enough_stock(self):
        """Every request is met when supply covers demand."""
        plan = allocate([self.store_a, self.store_b], 50)

        self.assertEqual([s.suggested_qty for s in plan.stores], [16, 10])
        self.assertTrue(plan.fully_fulfilled)

    def test_never_allocates_more_than_available(self):
        """Suggested quantities never exceed warehouse stock."""
        needs = [self.store_a, self.store_b, self.store_c]
        for available in (0, 1, 15, 16, 17, 26, 100):
            plan = allocate(needs, available)
            self.assertLessEqual(sum(s.suggested_qty for s in plan.stores), available)

    def test_fully_fulfilled_iff_requested_covered(self):
        """fully_fulfilled holds exactly when the total request fits."""
        for available in (0, 25, 26, 27):
            plan = allocate([self.store_a, self.store_b], available)
            self.assertEqual(plan.fully_fulfilled, plan.total_requested <= available)

    def test_empty_warehouse(self):
        """Requests are still listed with nothing suggested."""
        plan = allocate([self.store_a], 0)

        self.assertEqual(len(plan.stores), 1)
        self.assertEqual(plan.stores[0].suggested_qty, 0)
        self.assertFalse(plan.fully_fulfilled)

    def test_tie_broken_by_location_code(self):
        """Stores with equal scores are served in location code order."""
        first = make_need('S01', 'B', on_hand=4, weekly_forecast=14)
        second = make_need('S02', 'B', on_hand=4, weekly_forecast=14)

        plan = allocate([second, first], 16)

        self.assertEqual(plan.stores[0].score, plan.stores[1].score)
        self.assertEqual([s.location_code for s in plan.stores], ['S01', 'S02'])
        self.assertEqual([s.suggested_qty for s in plan.stores], [16, 0])

    def test_proposal_totals(self):
        """A proposal reports suggested totals and converts to a dict."""
        plan = allocate([self.store_a, self.store_b], 20)
        proposal = AllocationProposal(
            variant_id=1,
            variant_sku='SKU-1-M',
            product_name='Shirt',
            warehouse_available=20,
            total_requested=plan.total_requested,
            fully_fulfilled=plan.fully_fulfilled,
            stores=plan.stores
        )

        self.assertEqual(proposal.total_suggested, 20)
        data = proposal.to_dict()
        self.assertEqual(data['stores'][0]['location_code'], 'S01')
        self.assertEqual(data['stores'][0]['suggested_qty'], 16)


if __name__ == '__main__':
    unittest.main()
