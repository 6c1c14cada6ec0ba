# shipment_allocation/services/shipment_service.py
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from shipment_allocation.config import config
from shipment_allocation.models import (
    InventoryUnit, Shipment, ShipmentState, ShippingRate, StockItem, StockLocation
)
from shipment_allocation.core.coordinator import Coordinator, ShipmentQuote
from shipment_allocation.core.estimator import Estimator
from shipment_allocation.core.package import Package
from shipment_allocation.core.structures import InventoryUnit as UnitInfo
from shipment_allocation.core.structures import InventoryUnitState, ShipAddress
from shipment_allocation.exceptions import NotFoundError, ShipmentError
from shipment_allocation.logging_setup import logger as log_manager
from shipment_allocation.services.snapshot_service import SnapshotService

logger = logging.getLogger(__name__)

ALLOCATED_STATES = (InventoryUnitState.ON_HAND.value, InventoryUnitState.BACKORDERED.value)
CLOSED_STATES = (ShipmentState.SHIPPED.value, ShipmentState.CANCELED.value)

class ShipmentService:
    """Service for quoting, persisting and progressing shipments."""

    def __init__(self, session: Session, splitter=None):
        """Initialize the shipment service.

        Args:
            session: Database session
            splitter: Optional splitter chain; the configured chain is used when omitted
        """
        self.session = session
        self.snapshot = SnapshotService(session)
        self.splitter = splitter
        self.frontend_only = config.shipping_config['frontend_only']

    def coordinator(self, order_id: int) -> Coordinator:
        order = self.snapshot.order_request(order_id)
        stock_locations = self.snapshot.stock_locations(variant.id for variant in order.variants)
        options = {'frontend_only': self.frontend_only}
        if self.splitter is not None:
            options['splitter'] = self.splitter
        return Coordinator(order, stock_locations, self.snapshot.shipping_methods(), **options)

    def check_availability(self, order_id: int) -> Dict[int, dict]:
        """Whether the active stock locations can supply every variant of an order.

        Args:
            order_id: Order ID

        Returns:
            Dictionary keyed by variant id, see Coordinator.supply_check
        """
        return self.coordinator(order_id).supply_check()

    def _allocate_and_quote(self, coordinator: Coordinator, mode: str) -> List[ShipmentQuote]:
        log_info = log_manager.allocation_start_log(coordinator.order.number, mode)
        try:
            result = coordinator.allocate(allow_partial=False)
            quotes = [coordinator.quote(package) for package in result.packages]
        except Exception as e:
            log_manager.allocation_end_log(log_info, error=e)
            raise

        log_manager.allocation_end_log(log_info, result=result)
        return quotes

    def quote(self, order_id: int) -> List[ShipmentQuote]:
        """Quote packages and shipping rates for an order without persisting anything.

        Args:
            order_id: Order ID

        Returns:
            List of shipment quotes
        """
        return self._allocate_and_quote(self.coordinator(order_id), 'quote')

    def get_shipment(self, shipment_id: int) -> Shipment:
        shipment = self.session.query(Shipment).filter(Shipment.id == shipment_id).first()
        if shipment is None:
            raise NotFoundError(f"Shipment {shipment_id} not found")
        return shipment

    def get_order_shipments(self, order_id: int) -> List[Shipment]:
        return (
            self.session.query(Shipment)
            .filter(Shipment.order_id == order_id)
            .order_by(Shipment.id)
            .all()
        )

    def _lock_stock_item(self, stock_location_id: int, variant_id: int) -> Optional[StockItem]:
        return (
            self.session.query(StockItem)
            .filter(
                StockItem.stock_location_id == stock_location_id,
                StockItem.variant_id == variant_id
            )
            .with_for_update()
            .first()
        )

    def _lock_stock_items(self, quotes: List[ShipmentQuote]) -> Dict[Tuple[int, int], StockItem]:
        """Lock every tracked stock item the quotes draw on, in (location, variant) order."""
        keys = sorted({
            (quote.package.stock_location.id, item.variant.id)
            for quote in quotes
            for item in quote.package.contents
            if item.variant.track_inventory
        })

        locked = {}
        for stock_location_id, variant_id in keys:
            stock_item = self._lock_stock_item(stock_location_id, variant_id)
            if stock_item is None:
                raise ShipmentError(
                    f"No stock item for variant {variant_id} at stock location {stock_location_id}"
                )
            locked[(stock_location_id, variant_id)] = stock_item
        return locked

    def create_shipments(self, order_id: int) -> List[Shipment]:
        """Allocate an order and persist one shipment per package.

        Stock items are locked and decremented for every allocated unit;
        backordered units take backorderable counts below zero.

        Args:
            order_id: Order ID

        Returns:
            List of created shipments
        """
        previous = self.get_order_shipments(order_id)
        live = [shipment for shipment in previous if shipment.state != ShipmentState.CANCELED.value]
        if live:
            raise ShipmentError(
                f"Order {order_id} already has shipments",
                details={'shipment_ids': [shipment.id for shipment in live]}
            )

        coordinator = self.coordinator(order_id)
        order = coordinator.order
        quotes = self._allocate_and_quote(coordinator, 'create_shipments')

        stock_items = self._lock_stock_items(quotes)
        shipments = [
            self._persist_quote(order.id, f"{order.number}-{index}", quote, stock_items)
            for index, quote in enumerate(quotes, start=len(previous) + 1)
        ]
        self.session.flush()

        logger.info(f"Created shipments {[shipment.number for shipment in shipments]} for order {order.number}")
        return shipments

    def _persist_quote(self, order_id: int, number: str, quote: ShipmentQuote,
                       stock_items: Dict[Tuple[int, int], StockItem]) -> Shipment:
        package = quote.package

        tracked = Counter(
            item.variant.id for item in package.contents if item.variant.track_inventory
        )
        for variant_id, quantity in sorted(tracked.items()):
            stock_items[(package.stock_location.id, variant_id)].reduce_count_on_hand(quantity)

        selected = quote.selected_rate
        shipment = Shipment(
            number=number,
            order_id=order_id,
            stock_location_id=package.stock_location.id,
            state=ShipmentState.PENDING.value if package.backordered else ShipmentState.READY.value,
            cost=selected.cost if selected else Decimal('0.00')
        )
        self.session.add(shipment)

        for item in package.contents:
            shipment.inventory_units.append(InventoryUnit(
                variant_id=item.variant.id,
                line_item_id=item.inventory_unit.line_item_id,
                state=item.state.value
            ))

        for rate in quote.shipping_rates:
            shipment.shipping_rates.append(ShippingRate(
                shipping_method_id=rate.shipping_method.id,
                cost=rate.cost,
                selected=rate.selected
            ))

        if selected is None:
            logger.warning(f"Shipment {number} has no shipping options")

        return shipment

    def _package_for(self, shipment: Shipment) -> Package:
        location = self.snapshot.stock_location_snapshot(shipment.stock_location)
        package = Package(location, currency=shipment.order.currency or config.shipping_config['default_currency'])
        for unit in shipment.inventory_units:
            if unit.state not in ALLOCATED_STATES:
                continue
            price = unit.line_item.price if unit.line_item is not None else None
            package.add(
                UnitInfo(self.snapshot.variant_info(unit.variant), unit.line_item_id, price=price, id=unit.id),
                InventoryUnitState(unit.state)
            )
        return package

    def refresh_rates(self, shipment_id: int) -> List[ShippingRate]:
        """Recompute the shipping rates of a persisted shipment.

        The previously selected method stays selected while it is still
        offered; otherwise the cheapest rate is selected.

        Args:
            shipment_id: Shipment ID

        Returns:
            New list of shipping rates
        """
        shipment = self.get_shipment(shipment_id)
        if shipment.state in CLOSED_STATES:
            raise ShipmentError(f"Cannot refresh rates of a {shipment.state} shipment")

        previous = shipment.selected_shipping_rate
        previous_method_id = previous.shipping_method_id if previous else None

        order = shipment.order
        ship_address = ShipAddress(order.ship_country_iso, order.ship_state_abbr) if order.ship_country_iso else None
        estimator = Estimator(self.snapshot.shipping_methods())
        quotes = estimator.shipping_rates(self._package_for(shipment), ship_address, self.frontend_only)

        if previous_method_id is not None and any(q.shipping_method.id == previous_method_id for q in quotes):
            for q in quotes:
                q.selected = q.shipping_method.id == previous_method_id

        shipment.shipping_rates.clear()
        for q in quotes:
            shipment.shipping_rates.append(ShippingRate(
                shipping_method_id=q.shipping_method.id,
                cost=q.cost,
                selected=q.selected
            ))

        selected = next((q for q in quotes if q.selected), None)
        shipment.cost = selected.cost if selected else Decimal('0.00')
        self.session.flush()
        return list(shipment.shipping_rates)

    def select_shipping_rate(self, shipment_id: int, shipping_rate_id: int) -> ShippingRate:
        """Select one of a shipment's rates and update the shipment cost."""
        shipment = self.get_shipment(shipment_id)
        if shipment.state in CLOSED_STATES:
            raise ShipmentError(f"Cannot change the rate of a {shipment.state} shipment")
        chosen = None
        for rate in shipment.shipping_rates:
            if rate.id == shipping_rate_id:
                chosen = rate
        if chosen is None:
            raise NotFoundError(f"Shipping rate {shipping_rate_id} not found on shipment {shipment_id}")

        for rate in shipment.shipping_rates:
            rate.selected = rate is chosen
        shipment.cost = chosen.cost
        self.session.flush()
        return chosen

    def ship(self, shipment_id: int) -> Shipment:
        """Mark a ready shipment and its units as shipped."""
        shipment = self.get_shipment(shipment_id)
        if shipment.state != ShipmentState.READY.value:
            raise ShipmentError(
                f"Shipment {shipment.number} is {shipment.state} and cannot ship",
                details={'backordered': sum(
                    1 for unit in shipment.inventory_units
                    if unit.state == InventoryUnitState.BACKORDERED.value
                )}
            )
        if shipment.selected_shipping_rate is None:
            raise ShipmentError(f"Shipment {shipment.number} has no selected shipping rate")

        for unit in shipment.inventory_units:
            unit.state = InventoryUnitState.SHIPPED.value
        shipment.state = ShipmentState.SHIPPED.value
        shipment.shipped_at = datetime.now()
        self.session.flush()

        logger.info(f"Shipped {shipment.number} with {len(shipment.inventory_units)} units")
        return shipment

    def cancel(self, shipment_id: int) -> Shipment:
        """Cancel a shipment that has not shipped and put its stock back.

        Released stock goes through restock, so it fills units waiting on
        backorder at the same location.
        """
        shipment = self.get_shipment(shipment_id)
        if shipment.state in CLOSED_STATES:
            raise ShipmentError(f"Shipment {shipment.number} is {shipment.state} and cannot be canceled")

        released = Counter()
        for unit in shipment.inventory_units:
            if unit.state not in ALLOCATED_STATES:
                continue
            if unit.variant.track_inventory:
                released[unit.variant_id] += 1
            unit.state = InventoryUnitState.CANCELED.value
        shipment.state = ShipmentState.CANCELED.value
        self.session.flush()

        for variant_id, quantity in sorted(released.items()):
            self.restock(shipment.stock_location_id, variant_id, quantity)

        logger.info(f"Canceled {shipment.number}, released {dict(released)}")
        return shipment

    def restock(self, stock_location_id: int, variant_id: int, quantity: int) -> Dict[str, int]:
        """Add stock and fill backordered units waiting on it, oldest first.

        Args:
            stock_location_id: Stock location ID
            variant_id: Variant ID
            quantity: Units received

        Returns:
            Dictionary with the new count on hand and the number of units filled
        """
        if quantity <= 0:
            raise ShipmentError("Restock quantity must be positive")

        location = self.session.query(StockLocation).filter(StockLocation.id == stock_location_id).first()
        if location is None:
            raise NotFoundError(f"Stock location {stock_location_id} not found")

        stock_item = self._lock_stock_item(stock_location_id, variant_id)
        if stock_item is None:
            stock_item = StockItem(stock_location_id=stock_location_id, variant_id=variant_id, count_on_hand=0)
            self.session.add(stock_item)
        stock_item.restock(quantity)

        backordered = (
            self.session.query(InventoryUnit)
            .join(Shipment, InventoryUnit.shipment_id == Shipment.id)
            .filter(
                Shipment.stock_location_id == stock_location_id,
                InventoryUnit.variant_id == variant_id,
                InventoryUnit.state == InventoryUnitState.BACKORDERED.value
            )
            .order_by(InventoryUnit.id)
            .limit(quantity)
            .all()
        )

        touched = set()
        for unit in backordered:
            unit.state = InventoryUnitState.ON_HAND.value
            touched.add(unit.shipment)

        for shipment in touched:
            if shipment.state == ShipmentState.PENDING.value and all(
                unit.state != InventoryUnitState.BACKORDERED.value for unit in shipment.inventory_units
            ):
                shipment.state = ShipmentState.READY.value

        self.session.flush()
        return {'count_on_hand': stock_item.count_on_hand, 'filled': len(backordered)}

    def return_unit(self, inventory_unit_id: int) -> InventoryUnit:
        """Mark a shipped unit as returned and put it back in stock at its shipment's location."""
        unit = self.session.query(InventoryUnit).filter(InventoryUnit.id == inventory_unit_id).first()
        if unit is None:
            raise NotFoundError(f"Inventory unit {inventory_unit_id} not found")
        if unit.state != InventoryUnitState.SHIPPED.value:
            raise ShipmentError(f"Only shipped units can be returned, unit {unit.id} is {unit.state}")

        unit.state = InventoryUnitState.RETURNED.value
        if unit.variant.track_inventory:
            self.restock(unit.shipment.stock_location_id, unit.variant_id, 1)
        self.session.flush()
        return unit
