# shipment_allocation/core/allocator.py
import logging
from typing import Dict, Tuple

from ..exceptions import ConfigError
from .availability import Availability, StockQuantities
from .prioritizer import Prioritizer

logger = logging.getLogger(__name__)


class OnHandFirstAllocator:
    """Allocates requested quantities to stock locations, on-hand stock before backorders."""

    def __init__(self, availability: Availability, prioritizer: Prioritizer = None):
        self.availability = availability
        self.prioritizer = prioritizer or Prioritizer(availability)

    def allocate(self, desired: StockQuantities) -> Tuple[Dict[int, StockQuantities], Dict[int, StockQuantities], StockQuantities]:
        """Split ``desired`` into on-hand and backordered quantities per location.

        Args:
            desired: Quantities requested per variant id

        Returns:
            Tuple of (on_hand by location id, backordered by location id, leftover)
        """
        on_hand, desired = self._allocate_on_hand(desired)
        backordered, desired = self._allocate_backordered(desired, on_hand)

        if not desired.is_empty():
            logger.info(f"Unable to allocate {desired.to_dict()}")

        return on_hand, backordered, desired

    def _allocate_on_hand(self, desired: StockQuantities):
        allocated: Dict[int, Dict[int, int]] = {}

        for variant_id, quantity in desired.items():
            variant = self.availability.variants[variant_id]
            remaining = quantity
            for location in self.prioritizer.rank(variant, quantity):
                if remaining <= 0:
                    break
                available = self.availability.on_hand_at(location, variant_id)
                taken = min(remaining, available)
                if taken > 0:
                    allocated.setdefault(location.id, {})[variant_id] = int(taken)
                    remaining -= taken

        on_hand = {location_id: StockQuantities(quantities) for location_id, quantities in allocated.items()}
        packaged = StockQuantities()
        for quantities in on_hand.values():
            packaged = packaged + quantities
        return on_hand, desired - packaged

    def _allocate_backordered(self, desired: StockQuantities, on_hand: Dict[int, StockQuantities]):
        allocated: Dict[int, Dict[int, int]] = {}
        leftover = {}

        for variant_id, quantity in desired.items():
            candidates = [
                location for location in self.prioritizer.stock_locations
                if self.availability.backorderable_at(location, variant_id)
            ]
            if not candidates:
                leftover[variant_id] = quantity
                continue
            # Keep backordered units with on-hand units of the same variant where possible
            candidates.sort(key=lambda location: variant_id not in on_hand.get(location.id, StockQuantities()))
            allocated.setdefault(candidates[0].id, {})[variant_id] = int(quantity)

        backordered = {location_id: StockQuantities(quantities) for location_id, quantities in allocated.items()}
        return backordered, StockQuantities(leftover)


ALLOCATORS: Dict[str, type] = {
    'on_hand_first': OnHandFirstAllocator,
}


def build_allocator(availability: Availability, prioritizer: Prioritizer, name: str = None) -> OnHandFirstAllocator:
    """Create the allocator registered under ``name``; the STOCK configuration decides when omitted."""
    if name is None:
        from ..config import config
        name = config.stock_config['allocator']

    allocator_class = ALLOCATORS.get(name)
    if allocator_class is None:
        raise ConfigError(
            f"Unknown allocator: {name}",
            details={'valid_allocators': sorted(ALLOCATORS)}
        )
    return allocator_class(availability, prioritizer)
