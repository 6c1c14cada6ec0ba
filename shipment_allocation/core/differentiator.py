# shipment_allocation/core/differentiator.py
from collections import Counter
from typing import Dict, Iterable, List

from .package import Package
from .structures import InventoryUnit


class Differentiator:
    """Compares the inventory units requested with the units packed."""

    def __init__(self, inventory_units: Iterable[InventoryUnit], packages: Iterable[Package]):
        self.inventory_units = list(inventory_units)
        self.packages = list(packages)
        self._packed = Counter(
            id(item.inventory_unit)
            for package in self.packages
            for item in package.contents
        )

    @property
    def missing(self) -> List[InventoryUnit]:
        """Requested units found in no package."""
        return [unit for unit in self.inventory_units if self._packed[id(unit)] == 0]

    @property
    def duplicated(self) -> List[InventoryUnit]:
        """Requested units found in more than one package."""
        return [unit for unit in self.inventory_units if self._packed[id(unit)] > 1]

    @property
    def unexpected(self) -> int:
        """Number of packed units that were never requested."""
        requested = {id(unit) for unit in self.inventory_units}
        return sum(count for unit_key, count in self._packed.items() if unit_key not in requested)

    def missing_by_variant(self) -> Dict[int, int]:
        return dict(Counter(unit.variant.id for unit in self.missing))

    def is_complete(self) -> bool:
        return not self.missing and not self.duplicated and self.unexpected == 0
