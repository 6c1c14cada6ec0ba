# shipment_allocation/services/snapshot_service.py
from decimal import Decimal
from typing import Iterable, List, Optional
import logging

from sqlalchemy.orm import Session

from shipment_allocation.config import config
from shipment_allocation.models import (
    Order, ShippingMethod, StockItem, StockLocation, Variant, Zone
)
from shipment_allocation.core.structures import (
    DisplayOn, OrderRequest, RequestedItem, ShipAddress, ShippingMethodInfo,
    StockItemSnapshot, StockLocationSnapshot, VariantInfo, ZoneInfo
)
from shipment_allocation.core.calculators import build_calculator
from shipment_allocation.exceptions import ConfigError, NotFoundError, ValidationError
from shipment_allocation.utils.validation import validate_shipping_method, validate_stock_location

logger = logging.getLogger(__name__)

class SnapshotService:
    """Reads persisted records into the plain structures used by an allocation run."""

    def __init__(self, session: Session):
        """Initialize the snapshot service.

        Args:
            session: Database session
        """
        self.session = session

    @staticmethod
    def variant_info(variant: Variant) -> VariantInfo:
        return VariantInfo(
            variant.id,
            sku=variant.sku,
            weight=variant.weight or 0.0,
            shipping_category_id=variant.shipping_category_id,
            track_inventory=variant.track_inventory if variant.track_inventory is not None else True,
            price=variant.price if variant.price is not None else Decimal('0.00')
        )

    @staticmethod
    def zone_info(zone: Zone) -> ZoneInfo:
        return ZoneInfo(zone.name, [(member.country_iso, member.state_abbr) for member in zone.members])

    @staticmethod
    def location_address(location: StockLocation) -> Optional[ShipAddress]:
        if not location.country_iso:
            return None
        return ShipAddress(location.country_iso, location.state_abbr)

    def get_order(self, order_id: int) -> Order:
        order = self.session.query(Order).filter(Order.id == order_id).first()
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def order_request(self, order_id: int) -> OrderRequest:
        """Build the allocation request for an order.

        Args:
            order_id: Order ID

        Returns:
            OrderRequest with one requested item per line item
        """
        order = self.get_order(order_id)

        items = [
            RequestedItem(
                self.variant_info(line_item.variant),
                line_item.quantity,
                line_item_id=line_item.id,
                price=line_item.price
            )
            for line_item in order.line_items
        ]

        ship_address = None
        if order.ship_country_iso:
            ship_address = ShipAddress(order.ship_country_iso, order.ship_state_abbr)

        return OrderRequest(
            order.number,
            items,
            ship_address=ship_address,
            currency=order.currency or config.shipping_config['default_currency'],
            id=order.id
        )

    def stock_location_snapshot(self, location: StockLocation, variant_ids: Optional[Iterable[int]] = None) -> StockLocationSnapshot:
        """Snapshot one stock location; raises ValidationError on inconsistent stock."""
        query = self.session.query(StockItem).filter(StockItem.stock_location_id == location.id)
        if variant_ids is not None:
            query = query.filter(StockItem.variant_id.in_(list(variant_ids)))

        snapshot = StockLocationSnapshot(
            location.id,
            location.name,
            active=bool(location.active),
            default=bool(location.is_default),
            priority=location.priority or 0,
            address=self.location_address(location),
            stock_items=[
                StockItemSnapshot(item.variant_id, item.count_on_hand or 0, bool(item.backorderable))
                for item in query.all()
            ]
        )

        errors = validate_stock_location(snapshot)
        if errors:
            raise ValidationError(f"Invalid stock location {location.id}", details=errors)
        return snapshot

    def stock_locations(self, variant_ids: Optional[Iterable[int]] = None) -> List[StockLocationSnapshot]:
        """Snapshot every active stock location.

        Args:
            variant_ids: Optional variant IDs to restrict the stock items to

        Returns:
            List of stock location snapshots
        """
        if variant_ids is not None:
            variant_ids = list(variant_ids)

        locations = self.session.query(StockLocation).filter(StockLocation.active.is_(True)).order_by(StockLocation.id).all()
        return [self.stock_location_snapshot(location, variant_ids) for location in locations]

    def shipping_method_info(self, method: ShippingMethod) -> ShippingMethodInfo:
        """Build a shipping method with its calculator; raises ConfigError when misconfigured."""
        info = ShippingMethodInfo(
            method.id,
            method.name,
            build_calculator(method.calculator_type, method.calculator_preferences),
            shipping_category_ids=[category.id for category in method.shipping_categories],
            zones=[self.zone_info(zone) for zone in method.zones],
            stock_location_ids=[location.id for location in method.stock_locations],
            code=method.code,
            priority=method.priority or 0,
            display_on=DisplayOn.from_string(method.display_on)
        )

        errors = validate_shipping_method(info)
        if errors:
            raise ConfigError(f"Invalid shipping method {method.id}", details=errors)
        return info

    def shipping_methods(self) -> List[ShippingMethodInfo]:
        """Every active shipping method with its calculator."""
        methods = self.session.query(ShippingMethod).filter(ShippingMethod.active.is_(True)).order_by(ShippingMethod.id).all()
        return [self.shipping_method_info(method) for method in methods]
