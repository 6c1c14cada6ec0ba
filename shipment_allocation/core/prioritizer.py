# shipment_allocation/core/prioritizer.py
from typing import Callable, Dict, Iterable, List, Optional

from ..exceptions import ConfigError
from .availability import Availability
from .structures import StockLocationSnapshot, VariantInfo

LocationSorter = Callable[[Iterable[StockLocationSnapshot]], List[StockLocationSnapshot]]


def sort_locations(stock_locations: Iterable[StockLocationSnapshot]) -> List[StockLocationSnapshot]:
    """Active stock locations, default first, then by ascending priority, name and id."""
    return sorted(
        (location for location in stock_locations if location.active),
        key=lambda location: (not location.default, location.priority, location.name, location.id)
    )


def keep_order(stock_locations: Iterable[StockLocationSnapshot]) -> List[StockLocationSnapshot]:
    """Active stock locations in the order they were given."""
    return [location for location in stock_locations if location.active]


LOCATION_SORTERS: Dict[str, LocationSorter] = {
    'default_first': sort_locations,
    'unsorted': keep_order,
}


def build_location_sorter(name: Optional[str] = None) -> LocationSorter:
    """Look up a location sorter by name; the STOCK configuration decides when omitted."""
    if name is None:
        from ..config import config
        name = config.stock_config['location_sorter']

    sorter = LOCATION_SORTERS.get(name)
    if sorter is None:
        raise ConfigError(
            f"Unknown location sorter: {name}",
            details={'valid_location_sorters': sorted(LOCATION_SORTERS)}
        )
    return sorter


class Prioritizer:
    """Orders candidate stock locations for a requested variant.

    Locations whose on-hand stock covers the whole quantity come first,
    then locations with some stock on hand, then locations that can only
    backorder. The location sorter's order breaks ties inside each group.
    """

    FULL_ON_HAND = 0
    PARTIAL_ON_HAND = 1
    BACKORDER_ONLY = 2

    def __init__(self, availability: Availability, location_sorter: LocationSorter = sort_locations):
        self.availability = availability
        self.stock_locations = location_sorter(availability.stock_locations)

    def tier(self, location: StockLocationSnapshot, variant: VariantInfo, quantity: int):
        on_hand = self.availability.on_hand_at(location, variant.id)
        if on_hand >= quantity and on_hand > 0:
            return self.FULL_ON_HAND
        if on_hand > 0:
            return self.PARTIAL_ON_HAND
        if self.availability.backorderable_at(location, variant.id):
            return self.BACKORDER_ONLY
        return None

    def rank(self, variant: VariantInfo, quantity: int) -> List[StockLocationSnapshot]:
        """Candidate locations for ``quantity`` units of ``variant``, best first."""
        ranked = []
        for position, location in enumerate(self.stock_locations):
            tier = self.tier(location, variant, quantity)
            if tier is not None:
                ranked.append((tier, position, location))
        ranked.sort(key=lambda entry: (entry[0], entry[1]))
        return [location for _, _, location in ranked]
