"""
Tests for the quantifier and stock location prioritizer.
"""
import math
import unittest

from shipment_allocation.core.availability import Availability
from shipment_allocation.core.prioritizer import (
    Prioritizer, build_location_sorter, keep_order, sort_locations
)
from shipment_allocation.core.quantifier import Quantifier
from shipment_allocation.exceptions import ConfigError
from shipment_allocation.tests.helpers import make_location, make_variant


class TestQuantifier(unittest.TestCase):
    def setUp(self):
        self.variant = make_variant(1)

    def test_total_on_hand_sums_active_locations(self):
        """On-hand stock is summed across active locations only."""
        locations = [
            make_location(1, stock={1: (3, False)}),
            make_location(2, stock={1: (4, False)}),
            make_location(3, stock={1: (10, False)}, active=False),
        ]
        quantifier = Quantifier(self.variant, locations)

        self.assertEqual(7, quantifier.total_on_hand)
        self.assertFalse(quantifier.backorderable)
        self.assertTrue(quantifier.can_supply(7))
        self.assertFalse(quantifier.can_supply(8))

    def test_negative_count_on_hand_counts_as_zero(self):
        """Units already owed to backorders are not available again."""
        quantifier = Quantifier(self.variant, [make_location(1, stock={1: (-2, True)})])

        self.assertEqual(0, quantifier.total_on_hand)
        self.assertTrue(quantifier.backorderable)
        self.assertTrue(quantifier.can_supply(50))

    def test_untracked_variant_is_always_available(self):
        variant = make_variant(1, track_inventory=False)
        quantifier = Quantifier(variant, [make_location(1, stock={1: (0, False)})])

        self.assertEqual(math.inf, quantifier.total_on_hand)
        self.assertTrue(quantifier.can_supply(1000))

    def test_available_at_location(self):
        backorderable = make_location(1, stock={1: (1, True)})
        limited = make_location(2, stock={1: (2, False)})
        empty = make_location(3)
        quantifier = Quantifier(self.variant, [backorderable, limited, empty])

        self.assertEqual(math.inf, quantifier.available_at(backorderable))
        self.assertEqual(2, quantifier.available_at(limited))
        self.assertEqual(0, quantifier.available_at(empty))


class TestPrioritizer(unittest.TestCase):
    def test_sort_locations_default_first_then_priority(self):
        """The default location leads, the rest follow by priority, name and id."""
        locations = [
            make_location(1, name='B', priority=2),
            make_location(2, name='A', priority=2),
            make_location(3, name='Z', priority=1),
            make_location(4, name='Main', priority=5, default=True),
            make_location(5, name='Closed', active=False),
        ]

        ordered = [location.id for location in sort_locations(locations)]

        self.assertEqual([4, 3, 2, 1], ordered)

    def test_rank_prefers_full_on_hand_over_partial_and_backorder(self):
        variant = make_variant(1)
        backorder_only = make_location(1, priority=0, stock={1: (0, True)})
        partial = make_location(2, priority=1, stock={1: (2, False)})
        full = make_location(3, priority=2, stock={1: (5, False)})
        nothing = make_location(4, priority=3, stock={1: (0, False)})
        availability = Availability([variant], [backorder_only, partial, full, nothing])

        ranked = Prioritizer(availability).rank(variant, 4)

        self.assertEqual([3, 2, 1], [location.id for location in ranked])

    def test_rank_keeps_priority_within_tier(self):
        variant = make_variant(1)
        first = make_location(1, priority=0, stock={1: (5, False)})
        second = make_location(2, priority=1, stock={1: (5, False)})
        availability = Availability([variant], [second, first])

        ranked = Prioritizer(availability).rank(variant, 3)

        self.assertEqual([1, 2], [location.id for location in ranked])

    def test_unsorted_sorter_keeps_given_order(self):
        variant = make_variant(1)
        later = make_location(1, priority=5, stock={1: (5, False)})
        default = make_location(2, priority=0, default=True, stock={1: (5, False)})
        closed = make_location(3, active=False, stock={1: (5, False)})
        availability = Availability([variant], [later, default, closed])

        ranked = Prioritizer(availability, keep_order).rank(variant, 3)

        self.assertEqual([1, 2], [location.id for location in ranked])

    def test_build_location_sorter(self):
        self.assertIs(sort_locations, build_location_sorter('default_first'))
        self.assertIs(keep_order, build_location_sorter('unsorted'))

    def test_unknown_location_sorter(self):
        with self.assertRaises(ConfigError):
            build_location_sorter('nearest')


if __name__ == '__main__':
    unittest.main()
