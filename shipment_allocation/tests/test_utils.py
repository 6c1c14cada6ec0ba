"""
Tests for the math, validation and command line helpers.
"""
import os
import tempfile
import unittest
from decimal import Decimal

from sqlalchemy import text

from shipment_allocation.core.coordinator import AllocationResult
from shipment_allocation.core.structures import OrderRequest, RequestedItem
from shipment_allocation.db import db
from shipment_allocation.exceptions import DatabaseError, InsufficientStockError
from shipment_allocation.logging_setup import logger as log_manager
from shipment_allocation.main import main
from shipment_allocation.tests.helpers import (
    BACKORDERED, ON_HAND, make_location, make_method, make_package, make_variant
)
from shipment_allocation.utils.math_utils import allocation_summary, fill_rate, round_money, total_weight
from shipment_allocation.utils.validation import (
    validate_order_request, validate_shipping_method, validate_stock_location
)


class TestMathUtils(unittest.TestCase):
    def test_round_money(self):
        self.assertEqual(Decimal('2.50'), round_money(Decimal('2.495')))
        self.assertEqual(Decimal('0.10'), round_money(0.1))

    def test_total_weight(self):
        self.assertEqual(0.0, total_weight([]))
        self.assertEqual(7.5, total_weight([2.5, 5, None]))
        with self.assertRaises(ValueError):
            total_weight([1, -2])

    def test_fill_rate(self):
        self.assertEqual(100.0, fill_rate(0, 0))
        self.assertEqual(33.33, fill_rate(1, 3))

    def test_partial_allocation_summary(self):
        location = make_location(1)
        variant = make_variant(1, weight=3)
        packages = [
            make_package(location, [(variant, ON_HAND), (variant, ON_HAND)]),
            make_package(location, [(variant, BACKORDERED)]),
        ]

        summary = allocation_summary(AllocationResult(packages, [], {1: 1}))

        self.assertEqual(2, summary['units_on_hand'])
        self.assertEqual(1, summary['units_backordered'])
        self.assertEqual(1, summary['units_unfulfillable'])
        self.assertEqual(9.0, summary['total_weight'])
        self.assertEqual(6.0, summary['max_package_weight'])
        self.assertEqual(75.0, summary['fill_rate'])
        self.assertEqual('PARTIALLY_ALLOCATED', summary['status'])


class TestValidation(unittest.TestCase):
    def test_order_request_errors(self):
        order = OrderRequest('', [RequestedItem(make_variant(1), 2), RequestedItem(make_variant(2), -3)], currency='')

        errors = validate_order_request(order)

        self.assertEqual({'number', 'currency', 'items[1].quantity'}, set(errors))

    def test_stock_location_errors(self):
        location = make_location(1, stock={1: (-1, False), 2: (-1, True)})
        location.name = ''

        errors = validate_stock_location(location)

        self.assertEqual({'name', 'stock_items[1]'}, set(errors))

    def test_shipping_method_errors(self):
        method = make_method(1, '', None, categories=(), zones=())

        errors = validate_shipping_method(method)

        self.assertEqual({'name', 'calculator', 'shipping_category_ids'}, set(errors))


class TestErrors(unittest.TestCase):
    def test_insufficient_stock_to_dict(self):
        error = InsufficientStockError("Order R1 cannot be fully allocated", unfulfillable={7: 2})

        self.assertEqual({
            'error': 'InsufficientStockError',
            'message': 'Order R1 cannot be fully allocated',
            'code': 'INSUFFICIENT_STOCK',
            'details': {'unfulfillable': {7: 2}}
        }, error.to_dict())
        self.assertEqual('[INSUFFICIENT_STOCK] Order R1 cannot be fully allocated', str(error))

    def test_database_failure_becomes_database_error(self):
        db.initialize('sqlite://')

        with self.assertRaises(DatabaseError) as context:
            with db.session_scope() as session:
                session.execute(text('SELECT * FROM no_such_table'))

        self.assertIn('no_such_table', context.exception.details['reason'])
        db.engine.dispose()


class TestAllocationLog(unittest.TestCase):
    def test_end_log_reports_allocation_summary(self):
        location = make_location(1)
        variant = make_variant(1)
        result = AllocationResult([
            make_package(location, [(variant, ON_HAND), (variant, ON_HAND)]),
            make_package(location, [(variant, BACKORDERED)]),
        ], [], {2: 4})

        with self.assertLogs('shipment_allocation.allocation', level='INFO') as logs:
            log_info = log_manager.allocation_start_log('R9', 'quote')
            summary = log_manager.allocation_end_log(log_info, result=result)

        self.assertEqual(2, summary['packages'])
        self.assertIn('Allocating order R9 (quote)', logs.output[0])
        self.assertIn('2 packages from 1 locations, 2 on hand, 1 backordered, 4 unfulfillable', logs.output[1])

    def test_end_log_reports_shortfall_of_failed_run(self):
        error = InsufficientStockError("Order R9 cannot be fully allocated", unfulfillable={7: 2})

        with self.assertLogs('shipment_allocation.allocation', level='ERROR') as logs:
            summary = log_manager.allocation_end_log(log_manager.allocation_start_log('R9', 'quote'), error=error)

        self.assertIsNone(summary)
        self.assertIn('Unfulfillable units by variant: {7: 2}', logs.output[-1])


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.database_url = 'sqlite:///' + os.path.join(self.directory.name, 'allocation.db')

    def tearDown(self):
        db.engine.dispose()
        self.directory.cleanup()

    def test_init_db_then_quote_missing_order(self):
        self.assertEqual(0, main(['--database-url', self.database_url, 'init-db']))
        self.assertEqual(1, main(['--database-url', self.database_url, 'quote', '42']))
        self.assertEqual(1, main(['--database-url', self.database_url, 'availability', '42']))

    def test_no_command_prints_help(self):
        self.assertEqual(1, main([]))


if __name__ == '__main__':
    unittest.main()
