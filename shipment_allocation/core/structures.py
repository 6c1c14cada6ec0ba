# shipment_allocation/core/structures.py
"""Plain in-memory structures handed to the allocation core.

These mirror the persisted records in ``shipment_allocation.models`` but carry
no session or ORM state, so an allocation run works on a fixed snapshot.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set, Tuple
import enum

from ..exceptions import ConfigError


class InventoryUnitState(enum.Enum):
    """Lifecycle states of an inventory unit."""
    PENDING = 'pending'
    ON_HAND = 'on_hand'
    BACKORDERED = 'backordered'
    SHIPPED = 'shipped'
    RETURNED = 'returned'
    CANCELED = 'canceled'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value


class DisplayOn(enum.Enum):
    """Where a shipping method may be offered."""
    BOTH = 'both'
    FRONT_END = 'front_end'
    BACK_END = 'back_end'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value: Optional[str]) -> 'DisplayOn':
        """Create a DisplayOn from a string value, defaulting to BOTH."""
        if not value:
            return cls.BOTH
        try:
            return cls(value)
        except ValueError:
            raise ConfigError(
                f"Invalid display_on value: {value}",
                details={'valid_values': [member.value for member in cls]}
            )


class ShipAddress:
    """Destination (or origin) of a package, reduced to what zones match on."""

    def __init__(self, country_iso: str, state_abbr: Optional[str] = None):
        self.country_iso = country_iso.upper() if country_iso else country_iso
        self.state_abbr = state_abbr.upper() if state_abbr else None

    def __eq__(self, other):
        if not isinstance(other, ShipAddress):
            return NotImplemented
        return (self.country_iso, self.state_abbr) == (other.country_iso, other.state_abbr)

    def __hash__(self):
        return hash((self.country_iso, self.state_abbr))

    def __repr__(self):
        if self.state_abbr:
            return f"ShipAddress({self.country_iso}-{self.state_abbr})"
        return f"ShipAddress({self.country_iso})"


class ZoneInfo:
    """A named set of countries and/or country states."""

    def __init__(self, name: str, members: Iterable[Tuple[str, Optional[str]]] = ()):
        self.name = name
        self.members: Set[Tuple[str, Optional[str]]] = set()
        for country_iso, state_abbr in members:
            self.members.add((
                country_iso.upper(),
                state_abbr.upper() if state_abbr else None
            ))

    def include(self, address: Optional[ShipAddress]) -> bool:
        """Return True when the address lies inside the zone.

        A country member matches any state of that country; a state member
        only matches the same state.
        """
        if address is None or not address.country_iso:
            return False
        if (address.country_iso, None) in self.members:
            return True
        return address.state_abbr is not None and (address.country_iso, address.state_abbr) in self.members

    def __repr__(self):
        return f"ZoneInfo({self.name!r})"


class VariantInfo:
    """A purchasable variant as seen by the allocation core."""

    def __init__(
        self,
        id: int,
        sku: str = '',
        weight: float = 0.0,
        shipping_category_id: Optional[int] = None,
        track_inventory: bool = True,
        price: Decimal = Decimal('0.00')
    ):
        if weight is not None and weight < 0:
            raise ValueError(f"Variant {id} has a negative weight")
        self.id = id
        self.sku = sku
        self.weight = float(weight or 0.0)
        self.shipping_category_id = shipping_category_id
        self.track_inventory = track_inventory
        self.price = Decimal(str(price))

    def __repr__(self):
        return f"VariantInfo(id={self.id}, sku={self.sku!r})"


class StockItemSnapshot:
    """Count on hand and backorder flag for one variant at one location."""

    def __init__(self, variant_id: int, count_on_hand: int = 0, backorderable: bool = False):
        self.variant_id = variant_id
        self.count_on_hand = int(count_on_hand)
        self.backorderable = backorderable

    @property
    def available_on_hand(self) -> int:
        """On-hand units available to allocate; negative counts are owed to earlier backorders."""
        return max(self.count_on_hand, 0)


class StockLocationSnapshot:
    """A stock location and its stock items, read at the start of a run."""

    def __init__(
        self,
        id: int,
        name: str,
        active: bool = True,
        default: bool = False,
        priority: int = 0,
        address: Optional[ShipAddress] = None,
        stock_items: Iterable[StockItemSnapshot] = ()
    ):
        self.id = id
        self.name = name
        self.active = active
        self.default = default
        self.priority = priority
        self.address = address
        self.stock_items: Dict[int, StockItemSnapshot] = {item.variant_id: item for item in stock_items}

    def stock_item(self, variant_id: int) -> Optional[StockItemSnapshot]:
        return self.stock_items.get(variant_id)

    def stocks(self, variant_id: int) -> bool:
        return variant_id in self.stock_items

    def __repr__(self):
        return f"StockLocationSnapshot(id={self.id}, name={self.name!r})"


class RequestedItem:
    """A line item of an order: a variant and the quantity asked for."""

    def __init__(self, variant: VariantInfo, quantity: int, line_item_id: Optional[int] = None, price: Optional[Decimal] = None):
        self.variant = variant
        self.quantity = quantity
        self.line_item_id = line_item_id
        self.price = Decimal(str(price)) if price is not None else variant.price


class InventoryUnit:
    """One physical unit of a variant allocated to an order."""

    def __init__(
        self,
        variant: VariantInfo,
        line_item_id: Optional[int] = None,
        price: Optional[Decimal] = None,
        state: InventoryUnitState = InventoryUnitState.PENDING,
        shipment_id: Optional[int] = None,
        id: Optional[int] = None
    ):
        self.id = id
        self.variant = variant
        self.line_item_id = line_item_id
        self.price = price if price is not None else variant.price
        self.state = state
        self.shipment_id = shipment_id

    def __repr__(self):
        return f"InventoryUnit(id={self.id}, variant={self.variant.id}, state={self.state})"


class ShippingMethodInfo:
    """A shipping method together with its cost calculator."""

    def __init__(
        self,
        id: int,
        name: str,
        calculator,
        shipping_category_ids: Iterable[int] = (),
        zones: Iterable[ZoneInfo] = (),
        stock_location_ids: Iterable[int] = (),
        code: Optional[str] = None,
        priority: int = 0,
        display_on: DisplayOn = DisplayOn.BOTH
    ):
        self.id = id
        self.name = name
        self.code = code
        self.priority = priority
        self.display_on = display_on
        self.calculator = calculator
        self.shipping_category_ids = frozenset(shipping_category_ids)
        self.zones = list(zones)
        # Empty means every stock location may use the method
        self.stock_location_ids = frozenset(stock_location_ids)

    def available_to_location(self, stock_location_id: int) -> bool:
        return not self.stock_location_ids or stock_location_id in self.stock_location_ids

    def include(self, address: Optional[ShipAddress]) -> bool:
        return any(zone.include(address) for zone in self.zones)

    def available_to_display(self, frontend_only: bool) -> bool:
        if self.display_on == DisplayOn.BOTH:
            return True
        if frontend_only:
            return self.display_on == DisplayOn.FRONT_END
        return self.display_on == DisplayOn.BACK_END

    def __repr__(self):
        return f"ShippingMethodInfo(id={self.id}, name={self.name!r})"


class ShippingRateQuote:
    """Price to ship one package with one shipping method."""

    def __init__(self, shipping_method: ShippingMethodInfo, cost: Decimal, currency: str, selected: bool = False):
        self.shipping_method = shipping_method
        self.cost = cost
        self.currency = currency
        self.selected = selected

    def sort_key(self):
        method = self.shipping_method
        return (self.cost, method.priority, method.name, method.id)

    def to_dict(self):
        return {
            'shipping_method_id': self.shipping_method.id,
            'shipping_method': self.shipping_method.name,
            'cost': str(self.cost),
            'currency': self.currency,
            'selected': self.selected
        }

    def __repr__(self):
        return f"ShippingRateQuote({self.shipping_method.name!r}, {self.cost} {self.currency})"


class OrderRequest:
    """What an order asks to have shipped."""

    def __init__(
        self,
        number: str,
        items: List[RequestedItem],
        ship_address: Optional[ShipAddress] = None,
        currency: str = 'USD',
        id: Optional[int] = None
    ):
        self.id = id
        self.number = number
        self.items = list(items)
        self.ship_address = ship_address
        self.currency = currency

    @property
    def variants(self) -> List[VariantInfo]:
        seen = {}
        for item in self.items:
            seen.setdefault(item.variant.id, item.variant)
        return list(seen.values())

    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)
