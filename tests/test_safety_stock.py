"""
Unit tests for the safety stock and reorder point calculations.
"""
import unittest

from replenishment_engine.core.safety_stock import (
    SafetyStockResult,
    aggregate_safety_stock,
    calculate_safety_stock,
    service_level_to_z,
    z_to_service_level
)
from replenishment_engine.utils.math_utils import round_half_up, safe_divide


class TestSafetyStockCalculation(unittest.TestCase):
    """Test cases for calculate_safety_stock."""

    def test_worked_example(self):
        """30-day lead time, weekly stddev 2 and average 5."""
        # LT = 30 / 7 = 4.286 weeks
        # SS = ceil(1.65 * 2 * sqrt(4.286)) = ceil(6.83) = 7
        # ROP = ceil(5 * 4.286) + 7 = 22 + 7 = 29
        result = calculate_safety_stock([3, 5, 7], 30, 1.65)

        self.assertAlmostEqual(result.avg_weekly_demand, 5.0)
        self.assertAlmostEqual(result.demand_stddev, 2.0)
        self.assertEqual(result.safety_stock, 7)
        self.assertEqual(result.reorder_point, 29)

    def test_zero_variance(self):
        """A flat history needs no safety stock for any Z or lead time."""
        for z_score in (0.0, 1.65, 3.0):
            for lead_time_days in (0, 7, 30, 90):
                result = calculate_safety_stock([5] * 12, lead_time_days, z_score)
                self.assertEqual(result.safety_stock, 0)

    def test_zero_variance_reorder_point(self):
        """Without variability the reorder point is lead-time demand."""
        # ceil(5 * 30 / 7) = ceil(21.43) = 22
        result = calculate_safety_stock([5] * 12, 30)

        self.assertEqual(result.reorder_point, 22)

    def test_no_history(self):
        """No sales at all gives zero for both values."""
        result = calculate_safety_stock([0] * 12, 7)

        self.assertEqual(result, SafetyStockResult(0, 0, 0.0, 0.0))

    def test_reorder_point_at_least_safety_stock(self):
        """The reorder point never drops below the safety stock."""
        histories = (
            [0, 0, 0, 10, 0, 0, 0, 0, 0, 0, 0, 0],
            [1, 9, 2, 8, 3, 7],
            [20, 22, 19, 25, 18],
            [0, 1],
        )
        for series in histories:
            for lead_time_days in (0, 1, 7, 14, 45):
                result = calculate_safety_stock(series, lead_time_days)
                self.assertGreaterEqual(result.reorder_point, result.safety_stock)

    def test_single_week_history(self):
        """One observation has no measurable spread."""
        result = calculate_safety_stock([8], 14)

        self.assertEqual(result.safety_stock, 0)
        self.assertEqual(result.reorder_point, 16)


class TestAggregateSafetyStock(unittest.TestCase):
    """Test cases for combining variant results into product values."""

    def test_mean_rounded_half_up(self):
        """Halves round up, not to even."""
        results = [
            SafetyStockResult(7, 29, 5.0, 2.0),
            SafetyStockResult(8, 30, 6.0, 2.5),
        ]

        self.assertEqual(aggregate_safety_stock(results), (8, 30))

    def test_single_variant(self):
        """One variant passes its values through."""
        self.assertEqual(aggregate_safety_stock([SafetyStockResult(3, 11, 2.0, 1.0)]), (3, 11))

    def test_no_variants(self):
        """Nothing to aggregate."""
        self.assertIsNone(aggregate_safety_stock([]))


class TestServiceLevel(unittest.TestCase):
    """Test cases for service level and Z-score conversion."""

    def test_ninety_five_percent(self):
        """95% corresponds to the usual 1.645."""
        self.assertAlmostEqual(service_level_to_z(95.0), 1.6449, places=3)

    def test_clamped(self):
        """Goals outside [50, 99.99] are clamped."""
        self.assertAlmostEqual(service_level_to_z(10.0), 0.0)
        self.assertAlmostEqual(service_level_to_z(100.0), service_level_to_z(99.99))

    def test_default_z_service_level(self):
        """The default Z of 1.65 gives roughly 95% service."""
        self.assertAlmostEqual(z_to_service_level(1.65), 95.05, places=1)


class TestMathUtils(unittest.TestCase):
    """Test cases for the rounding helpers."""

    def test_round_half_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(2.4999), 2)
        self.assertEqual(round_half_up(7.0), 7)

    def test_safe_divide(self):
        self.assertEqual(safe_divide(1, 0), 0.0)
        self.assertEqual(safe_divide(1, 0, default=999.0), 999.0)
        self.assertEqual(safe_divide(6, 3), 2.0)


if __name__ == '__main__':
    unittest.main()
