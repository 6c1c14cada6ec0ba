# shipment_allocation/core/quantifier.py
import math
from typing import Iterable

from .availability import Availability
from .structures import StockLocationSnapshot, VariantInfo


class Quantifier:
    """Answers how many units of a variant the given stock locations can supply."""

    def __init__(self, variant: VariantInfo, stock_locations: Iterable[StockLocationSnapshot]):
        self.variant = variant
        self.stock_locations = [location for location in stock_locations if location.active]
        self._availability = Availability([variant], self.stock_locations)

    def available_at(self, location: StockLocationSnapshot) -> float:
        """On-hand units at one location, or infinity when the location can backorder."""
        if self._availability.backorderable_at(location, self.variant.id):
            return math.inf
        return self._availability.on_hand_at(location, self.variant.id)

    @property
    def total_on_hand(self) -> float:
        if not self.variant.track_inventory:
            return math.inf
        return sum(
            self._availability.on_hand_at(location, self.variant.id)
            for location in self.stock_locations
        )

    @property
    def backorderable(self) -> bool:
        return any(
            self._availability.backorderable_at(location, self.variant.id)
            for location in self.stock_locations
        )

    def can_supply(self, required: int = 1) -> bool:
        return self.backorderable or self.total_on_hand >= required
