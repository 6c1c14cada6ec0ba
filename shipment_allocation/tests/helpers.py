"""
Builders for allocation test fixtures.
"""
from decimal import Decimal

from shipment_allocation.core.package import Package
from shipment_allocation.core.structures import (
    InventoryUnit, InventoryUnitState, OrderRequest, RequestedItem, ShipAddress,
    ShippingMethodInfo, StockItemSnapshot, StockLocationSnapshot, VariantInfo, ZoneInfo
)

US = ZoneInfo('US', [('US', None)])
CANADA = ZoneInfo('Canada', [('CA', None)])
NEW_YORK = ShipAddress('US', 'NY')


def make_variant(id, shipping_category_id=1, weight=1.0, price='10.00', track_inventory=True):
    return VariantInfo(
        id,
        sku=f"SKU-{id}",
        weight=weight,
        shipping_category_id=shipping_category_id,
        track_inventory=track_inventory,
        price=Decimal(price)
    )


def make_location(id, name=None, stock=None, default=False, priority=0, active=True, address=NEW_YORK):
    """stock maps variant id to (count_on_hand, backorderable)."""
    return StockLocationSnapshot(
        id,
        name or f"Location {id}",
        active=active,
        default=default,
        priority=priority,
        address=address,
        stock_items=[
            StockItemSnapshot(variant_id, count, backorderable)
            for variant_id, (count, backorderable) in (stock or {}).items()
        ]
    )


def make_order(items, number='R100', ship_address=NEW_YORK, currency='USD'):
    """items is a list of (variant, quantity)."""
    return OrderRequest(
        number,
        [RequestedItem(variant, quantity, line_item_id=index) for index, (variant, quantity) in enumerate(items, start=1)],
        ship_address=ship_address,
        currency=currency
    )


def make_method(id, name, calculator, categories=(1,), zones=(US,), **options):
    return ShippingMethodInfo(
        id,
        name,
        calculator,
        shipping_category_ids=categories,
        zones=zones,
        **options
    )


def make_package(location, units, currency='USD'):
    """units is a list of (variant, state); unit ids are assigned in order."""
    package = Package(location, currency=currency)
    for index, (variant, state) in enumerate(units, start=1):
        package.add(InventoryUnit(variant, id=index, state=state), state)
    return package


ON_HAND = InventoryUnitState.ON_HAND
BACKORDERED = InventoryUnitState.BACKORDERED
