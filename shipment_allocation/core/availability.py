# shipment_allocation/core/availability.py
import math
from typing import Dict, Iterable, List, Mapping, Optional

from .structures import StockLocationSnapshot, VariantInfo


class StockQuantities:
    """Variant id to quantity mapping used for allocation arithmetic.

    Only positive quantities are kept. Quantities may be ``math.inf`` for
    stock that is never exhausted (untracked variants, backorderable items).
    """

    def __init__(self, quantities: Optional[Mapping[int, float]] = None):
        self._quantities: Dict[int, float] = {}
        for variant_id, quantity in (quantities or {}).items():
            if quantity > 0:
                self._quantities[variant_id] = quantity

    def __getitem__(self, variant_id):
        return self._quantities.get(variant_id, 0)

    def __contains__(self, variant_id):
        return variant_id in self._quantities

    def __iter__(self):
        return iter(self._quantities)

    def __len__(self):
        return len(self._quantities)

    def items(self):
        return self._quantities.items()

    def variant_ids(self) -> List[int]:
        return list(self._quantities)

    def __and__(self, other: 'StockQuantities') -> 'StockQuantities':
        """Quantities present in both, taking the smaller amount."""
        return StockQuantities({
            variant_id: min(quantity, other[variant_id])
            for variant_id, quantity in self.items()
            if variant_id in other
        })

    def __add__(self, other: 'StockQuantities') -> 'StockQuantities':
        merged = dict(self._quantities)
        for variant_id, quantity in other.items():
            merged[variant_id] = merged.get(variant_id, 0) + quantity
        return StockQuantities(merged)

    def __sub__(self, other: 'StockQuantities') -> 'StockQuantities':
        return StockQuantities({
            variant_id: quantity - other[variant_id]
            for variant_id, quantity in self.items()
        })

    def __eq__(self, other):
        if not isinstance(other, StockQuantities):
            return NotImplemented
        return self._quantities == other._quantities

    def is_empty(self) -> bool:
        return not self._quantities

    def total(self) -> float:
        return sum(self._quantities.values())

    def to_dict(self) -> Dict[int, float]:
        return dict(self._quantities)

    def __repr__(self):
        return f"StockQuantities({self._quantities})"


class Availability:
    """On-hand and backorderable quantities per stock location for a set of variants."""

    def __init__(self, variants: Iterable[VariantInfo], stock_locations: Iterable[StockLocationSnapshot]):
        self.variants = {variant.id: variant for variant in variants}
        self.stock_locations = [location for location in stock_locations if location.active]

    def on_hand_at(self, location: StockLocationSnapshot, variant_id: int) -> float:
        """Units of the variant that can ship from the location right now."""
        if not location.active:
            return 0
        stock_item = location.stock_item(variant_id)
        if stock_item is None:
            return 0
        variant = self.variants.get(variant_id)
        if variant is not None and not variant.track_inventory:
            return math.inf
        return stock_item.available_on_hand

    def backorderable_at(self, location: StockLocationSnapshot, variant_id: int) -> bool:
        if not location.active:
            return False
        stock_item = location.stock_item(variant_id)
        return stock_item is not None and stock_item.backorderable

    def on_hand_by_location(self) -> Dict[int, StockQuantities]:
        return {
            location.id: StockQuantities({
                variant_id: self.on_hand_at(location, variant_id)
                for variant_id in self.variants
            })
            for location in self.stock_locations
        }

    def backorderable_by_location(self) -> Dict[int, StockQuantities]:
        return {
            location.id: StockQuantities({
                variant_id: math.inf
                for variant_id in self.variants
                if self.backorderable_at(location, variant_id)
            })
            for location in self.stock_locations
        }
