import argparse
import json
import sys

from shipment_allocation.config import config
from shipment_allocation.db import db, session_scope
from shipment_allocation.exceptions import AllocationError
from shipment_allocation.logging_setup import logger, get_logger

def init_application(connection_string=None):
    """Initialize application components."""
    db.initialize(connection_string)

    log = logger.app_logger
    log.info("Shipment Allocation engine initialized")
    log.info(f"Using database: {config.get_db_url()}")

    return True

def setup_database(drop=False):
    """Create (and optionally drop first) every table."""
    log = get_logger('setup')
    if drop:
        log.info("Dropping existing tables")
    db.create_all_tables(drop_first=drop)
    log.info("Database tables created")
    return True

def quote_order(args):
    """Print package and shipping rate quotes for an order.

    Args:
        args: Command-line arguments with the order ID
    """
    from shipment_allocation.services.shipment_service import ShipmentService

    log = get_logger('quote')
    try:
        with session_scope() as session:
            quotes = ShipmentService(session).quote(args.order_id)
            output = [quote.to_dict() for quote in quotes]
    except AllocationError as e:
        log.error(f"Error quoting order {args.order_id}: {str(e)}")
        print(json.dumps(e.to_dict(), indent=2, default=str))
        return False

    print(json.dumps(output, indent=2, default=str))
    return True

def ship_order(args):
    """Allocate an order and persist its shipments.

    Args:
        args: Command-line arguments with the order ID
    """
    from shipment_allocation.services.shipment_service import ShipmentService

    log = get_logger('shipments')
    try:
        with session_scope() as session:
            shipments = ShipmentService(session).create_shipments(args.order_id)
            output = [
                {
                    'number': shipment.number,
                    'stock_location_id': shipment.stock_location_id,
                    'state': shipment.state,
                    'units': len(shipment.inventory_units),
                    'cost': str(shipment.cost)
                }
                for shipment in shipments
            ]
    except AllocationError as e:
        log.error(f"Error creating shipments for order {args.order_id}: {str(e)}")
        print(json.dumps(e.to_dict(), indent=2, default=str))
        return False

    print(json.dumps(output, indent=2, default=str))
    return True

def summarize_order(args):
    """Print an allocation summary for an order, including unfulfillable units."""
    from shipment_allocation.services.shipment_service import ShipmentService
    from shipment_allocation.utils.math_utils import allocation_summary

    log = get_logger('quote')
    try:
        with session_scope() as session:
            result = ShipmentService(session).coordinator(args.order_id).allocate(allow_partial=True)
            summary = allocation_summary(result)
            summary['unfulfillable'] = result.unfulfillable
    except AllocationError as e:
        log.error(f"Error summarizing order {args.order_id}: {str(e)}")
        print(json.dumps(e.to_dict(), indent=2, default=str))
        return False

    print(json.dumps(summary, indent=2, default=str))
    return True

def check_availability(args):
    """Print whether the active stock locations can supply each variant of an order."""
    from shipment_allocation.services.shipment_service import ShipmentService

    log = get_logger('quote')
    try:
        with session_scope() as session:
            checks = ShipmentService(session).check_availability(args.order_id)
    except AllocationError as e:
        log.error(f"Error checking availability for order {args.order_id}: {str(e)}")
        print(json.dumps(e.to_dict(), indent=2, default=str))
        return False

    print(json.dumps(checks, indent=2, default=str))
    return all(check['can_supply'] for check in checks.values())

def main(argv=None):
    """Main application entry point."""
    parser = argparse.ArgumentParser(description='Shipment Allocation engine')
    parser.add_argument('--database-url', type=str, help='Override the configured database URL')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    init_parser = subparsers.add_parser('init-db', help='Create the database schema')
    init_parser.add_argument('--drop', action='store_true', help='Drop existing tables before setup')

    quote_parser = subparsers.add_parser('quote', help='Quote packages and shipping rates for an order')
    quote_parser.add_argument('order_id', type=int, help='Order ID')

    ship_parser = subparsers.add_parser('ship', help='Create shipments for an order')
    ship_parser.add_argument('order_id', type=int, help='Order ID')

    summary_parser = subparsers.add_parser('summary', help='Summarize how an order would be allocated')
    summary_parser.add_argument('order_id', type=int, help='Order ID')

    availability_parser = subparsers.add_parser('availability', help='Check whether stock can supply an order')
    availability_parser.add_argument('order_id', type=int, help='Order ID')

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    init_application(args.database_url)

    commands = {
        'init-db': lambda: setup_database(args.drop),
        'quote': lambda: quote_order(args),
        'ship': lambda: ship_order(args),
        'summary': lambda: summarize_order(args),
        'availability': lambda: check_availability(args),
    }
    return 0 if commands[args.command]() else 1

if __name__ == "__main__":
    sys.exit(main())
