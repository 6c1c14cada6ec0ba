"""
Tests for the package splitters.
"""
import unittest

from shipment_allocation.core.splitters import (
    BackorderedSplitter, ShippingCategorySplitter, WeightSplitter,
    build_chain, split_packages
)
from shipment_allocation.exceptions import ConfigError
from shipment_allocation.tests.helpers import (
    BACKORDERED, ON_HAND, make_location, make_package, make_variant
)

CHAIN = ['shipping_category', 'backordered', 'weight']


def signatures(packages):
    return sorted(package.signature() for package in packages)


def unit_count(packages):
    return sum(package.quantity() for package in packages)


class TestShippingCategorySplitter(unittest.TestCase):
    def setUp(self):
        self.location = make_location(1)
        self.apparel = make_variant(1, shipping_category_id=1)
        self.hazmat = make_variant(2, shipping_category_id=2)

    def test_splits_incompatible_categories(self):
        package = make_package(self.location, [
            (self.apparel, ON_HAND), (self.hazmat, ON_HAND), (self.apparel, ON_HAND)
        ])

        packages = ShippingCategorySplitter().split([package])

        self.assertEqual(2, len(packages))
        for split in packages:
            self.assertEqual(1, len(split.shipping_category_ids()))
        self.assertEqual(3, unit_count(packages))

    def test_single_category_package_is_untouched(self):
        package = make_package(self.location, [(self.apparel, ON_HAND), (self.apparel, BACKORDERED)])

        packages = ShippingCategorySplitter().split([package])

        self.assertEqual([package], packages)
        self.assertEqual(2, len(package.contents))


class TestBackorderedSplitter(unittest.TestCase):
    def setUp(self):
        self.location = make_location(1)
        self.variant = make_variant(1)

    def test_separates_on_hand_and_backordered(self):
        package = make_package(self.location, [
            (self.variant, ON_HAND), (self.variant, ON_HAND), (self.variant, BACKORDERED)
        ])

        packages = BackorderedSplitter().split([package])

        self.assertEqual(2, len(packages))
        self.assertEqual(2, len(packages[0].on_hand))
        self.assertEqual([], packages[0].backordered)
        self.assertEqual(1, len(packages[1].backordered))
        self.assertEqual([], packages[1].on_hand)

    def test_does_not_mutate_input(self):
        package = make_package(self.location, [(self.variant, ON_HAND), (self.variant, BACKORDERED)])

        BackorderedSplitter().split([package])

        self.assertEqual(2, package.quantity())


class TestWeightSplitter(unittest.TestCase):
    def setUp(self):
        self.location = make_location(1)

    def test_packs_first_fit_decreasing(self):
        variants = [make_variant(i, weight=weight) for i, weight in enumerate([100, 60, 50, 40], start=1)]
        package = make_package(self.location, [(variant, ON_HAND) for variant in variants])

        packages = WeightSplitter(threshold=150).split([package])

        self.assertEqual([150.0, 100.0], [split.weight for split in packages])
        self.assertEqual(4, unit_count(packages))

    def test_overweight_unit_ships_alone(self):
        heavy = make_variant(1, weight=200)
        light = make_variant(2, weight=10)
        package = make_package(self.location, [(light, ON_HAND), (heavy, ON_HAND)])

        packages = WeightSplitter(threshold=150).split([package])

        self.assertEqual([200.0, 10.0], [split.weight for split in packages])

    def test_light_package_is_untouched(self):
        package = make_package(self.location, [(make_variant(1, weight=10), ON_HAND)] * 3)

        self.assertEqual([package], WeightSplitter(threshold=150).split([package]))

    def test_threshold_must_be_positive(self):
        with self.assertRaises(ConfigError):
            WeightSplitter(threshold=0)


class TestSplitterChain(unittest.TestCase):
    def setUp(self):
        self.location = make_location(1)
        self.chain = build_chain(CHAIN, weight_threshold=20)
        shirt = make_variant(1, shipping_category_id=1, weight=4)
        battery = make_variant(2, shipping_category_id=2, weight=9)
        anvil = make_variant(3, shipping_category_id=1, weight=25)
        self.package = make_package(self.location, [
            (shirt, ON_HAND), (shirt, ON_HAND), (shirt, BACKORDERED),
            (battery, ON_HAND), (battery, ON_HAND), (battery, ON_HAND),
            (anvil, ON_HAND), (shirt, ON_HAND), (anvil, BACKORDERED),
        ])

    def test_chain_preserves_unit_count(self):
        packages = split_packages([self.package], self.chain)

        self.assertEqual(self.package.quantity(), unit_count(packages))

    def test_chain_output_is_homogeneous(self):
        for package in split_packages([self.package], self.chain):
            self.assertEqual(1, len(package.shipping_category_ids()))
            self.assertFalse(package.on_hand and package.backordered)
            self.assertTrue(package.weight <= 20 or package.quantity() == 1)

    def test_chain_is_idempotent(self):
        once = split_packages([self.package], self.chain)
        twice = split_packages(once, self.chain)

        self.assertEqual(signatures(once), signatures(twice))

    def test_empty_packages_are_dropped(self):
        empty = make_package(self.location, [])

        self.assertEqual([], split_packages([empty], self.chain))

    def test_unknown_splitter_name(self):
        with self.assertRaises(ConfigError):
            build_chain(['shipping_category', 'volume'])

    def test_empty_chain(self):
        self.assertIsNone(build_chain([]))
        self.assertEqual([self.package], split_packages([self.package], None))


if __name__ == '__main__':
    unittest.main()
