# shipment_allocation/core/package.py
from decimal import Decimal
from typing import Iterable, List, Optional, Set

from .structures import (
    InventoryUnit, InventoryUnitState, ShippingMethodInfo, StockLocationSnapshot
)


class ContentItem:
    """An inventory unit placed in a package, either on hand or backordered."""

    def __init__(self, inventory_unit: InventoryUnit, state: InventoryUnitState = InventoryUnitState.ON_HAND):
        if state not in (InventoryUnitState.ON_HAND, InventoryUnitState.BACKORDERED):
            raise ValueError(f"Package contents must be on_hand or backordered, got {state}")
        self.inventory_unit = inventory_unit
        self.state = state

    @property
    def variant(self):
        return self.inventory_unit.variant

    @property
    def weight(self) -> float:
        return self.variant.weight

    @property
    def price(self) -> Decimal:
        return self.inventory_unit.price

    def is_on_hand(self) -> bool:
        return self.state == InventoryUnitState.ON_HAND

    def is_backordered(self) -> bool:
        return self.state == InventoryUnitState.BACKORDERED

    def __repr__(self):
        return f"ContentItem({self.inventory_unit!r}, {self.state})"


class Package:
    """Transient grouping of inventory units bound for one shipment from one stock location."""

    def __init__(self, stock_location: StockLocationSnapshot, contents: Optional[Iterable[ContentItem]] = None, currency: str = 'USD'):
        self.stock_location = stock_location
        self.currency = currency
        self.contents: List[ContentItem] = []
        for item in contents or []:
            self._append(item)

    def _append(self, item: ContentItem):
        if self.find_item(item.inventory_unit) is None:
            self.contents.append(item)

    def sibling(self, contents: Iterable[ContentItem]) -> 'Package':
        """Build a package from the same stock location holding the given contents."""
        return Package(self.stock_location, contents, currency=self.currency)

    def add(self, inventory_unit: InventoryUnit, state: InventoryUnitState = InventoryUnitState.ON_HAND):
        self._append(ContentItem(inventory_unit, state))

    def add_multiple(self, inventory_units: Iterable[InventoryUnit], state: InventoryUnitState = InventoryUnitState.ON_HAND):
        for inventory_unit in inventory_units:
            self.add(inventory_unit, state)

    def remove(self, inventory_unit: InventoryUnit):
        self.contents = [item for item in self.contents if item.inventory_unit is not inventory_unit]

    def find_item(self, inventory_unit: InventoryUnit, state: Optional[InventoryUnitState] = None) -> Optional[ContentItem]:
        for item in self.contents:
            if item.inventory_unit is inventory_unit and (state is None or item.state == state):
                return item
        return None

    def quantity(self, state: Optional[InventoryUnitState] = None) -> int:
        if state is None:
            return len(self.contents)
        return sum(1 for item in self.contents if item.state == state)

    @property
    def on_hand(self) -> List[ContentItem]:
        return [item for item in self.contents if item.is_on_hand()]

    @property
    def backordered(self) -> List[ContentItem]:
        return [item for item in self.contents if item.is_backordered()]

    @property
    def weight(self) -> float:
        return sum(item.weight for item in self.contents)

    @property
    def item_total(self) -> Decimal:
        return sum((item.price for item in self.contents), Decimal('0.00'))

    @property
    def inventory_units(self) -> List[InventoryUnit]:
        return [item.inventory_unit for item in self.contents]

    def is_empty(self) -> bool:
        return not self.contents

    def shipping_category_ids(self) -> Set[Optional[int]]:
        return {item.variant.shipping_category_id for item in self.contents}

    def shipping_methods(self, shipping_methods: Iterable[ShippingMethodInfo]) -> List[ShippingMethodInfo]:
        """Shipping methods able to carry every category in the package from its stock location.

        Order of the given methods is preserved.
        """
        categories = self.shipping_category_ids()
        return [
            method for method in shipping_methods
            if categories <= method.shipping_category_ids
            and method.available_to_location(self.stock_location.id)
        ]

    def signature(self):
        """Hashable description of the package contents, independent of content order."""
        return (
            self.stock_location.id,
            tuple(sorted(
                (item.variant.id, item.inventory_unit.id if item.inventory_unit.id is not None else -1, item.state.value)
                for item in self.contents
            ))
        )

    def __len__(self):
        return len(self.contents)

    def __repr__(self):
        return (
            f"Package(location={self.stock_location.name!r}, on_hand={self.quantity(InventoryUnitState.ON_HAND)}, "
            f"backordered={self.quantity(InventoryUnitState.BACKORDERED)}, weight={self.weight})"
        )
