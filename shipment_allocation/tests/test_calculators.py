"""
Tests for the shipping cost calculators.
"""
import unittest
from decimal import Decimal

from shipment_allocation.core.calculators import (
    FlatPercentItemTotal, FlatRate, FlexiRate, PerItem, PriceSack, build_calculator, compute_cost
)
from shipment_allocation.exceptions import CalculationError, ConfigError
from shipment_allocation.tests.helpers import ON_HAND, make_location, make_package, make_variant


class TestCalculators(unittest.TestCase):
    def setUp(self):
        self.location = make_location(1)
        self.variant = make_variant(1, price='10.00')

    def package_of(self, quantity, price='10.00', currency='USD'):
        variant = make_variant(1, price=price)
        return make_package(self.location, [(variant, ON_HAND)] * quantity, currency=currency)

    def test_flat_rate(self):
        self.assertEqual(Decimal('7.50'), FlatRate(amount='7.5').compute(self.package_of(4)))

    def test_flat_percent_item_total(self):
        calculator = FlatPercentItemTotal(flat_percent=10)

        self.assertEqual(Decimal('3.00'), calculator.compute(self.package_of(3)))

    def test_flat_percent_rounds_half_up(self):
        calculator = FlatPercentItemTotal(flat_percent='7.5')

        # 7.5% of 33.33 is 2.49975
        self.assertEqual(Decimal('2.50'), calculator.compute(self.package_of(1, price='33.33')))

    def test_flexi_rate_without_max_items(self):
        calculator = FlexiRate(first_item=10, additional_item=5)

        self.assertEqual(Decimal('20.00'), calculator.compute(self.package_of(3)))
        self.assertEqual(Decimal('0.00'), calculator.compute_from_quantity(0))

    def test_flexi_rate_with_max_items(self):
        calculator = FlexiRate(first_item=10, additional_item=5, max_items=2)

        self.assertEqual(Decimal('40.00'), calculator.compute_from_quantity(5))

    def test_per_item(self):
        self.assertEqual(Decimal('7.50'), PerItem(amount='2.5').compute(self.package_of(3)))

    def test_price_sack(self):
        calculator = PriceSack(minimal_amount=50, normal_amount=10, discount_amount=1)

        self.assertEqual(Decimal('10.00'), calculator.compute(self.package_of(3)))
        self.assertEqual(Decimal('1.00'), calculator.compute(self.package_of(6)))

    def test_currency_availability(self):
        calculator = FlatRate(amount=5, currency='EUR')

        self.assertTrue(calculator.available(self.package_of(1, currency='EUR')))
        self.assertFalse(calculator.available(self.package_of(1, currency='USD')))
        self.assertTrue(FlatRate(amount=5).available(self.package_of(1, currency='USD')))


class TestBuildCalculator(unittest.TestCase):
    def test_builds_from_preferences(self):
        calculator = build_calculator('flexi_rate', {'first_item': '4', 'additional_item': '1', 'currency': 'USD'})

        self.assertIsInstance(calculator, FlexiRate)
        self.assertEqual('USD', calculator.currency)
        self.assertEqual(Decimal('4'), calculator.first_item)

    def test_unknown_calculator(self):
        with self.assertRaises(ConfigError):
            build_calculator('table_rate', {})

    def test_unknown_preference(self):
        with self.assertRaises(ConfigError):
            build_calculator('flat_rate', {'price': 5})

    def test_invalid_preference_value(self):
        with self.assertRaises(ConfigError):
            build_calculator('per_item', {'amount': 'cheap'})

    def test_negative_cost_is_rejected(self):
        package = make_package(make_location(1), [(make_variant(1), ON_HAND)])

        with self.assertRaises(CalculationError):
            compute_cost(FlatRate(amount=-1), package)


if __name__ == '__main__':
    unittest.main()
