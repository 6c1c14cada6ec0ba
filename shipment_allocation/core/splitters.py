# shipment_allocation/core/splitters.py
"""Package splitters.

Each splitter refines a list of packages and hands the result to the next
splitter in its chain. Splitters never mutate the packages they receive and
never add or drop inventory units.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..exceptions import ConfigError
from .package import Package

logger = logging.getLogger(__name__)


class Splitter:
    """Base splitter: passes packages through to the next splitter."""

    name = 'base'

    def __init__(self, next_splitter: Optional['Splitter'] = None):
        self.next_splitter = next_splitter

    def split(self, packages: List[Package]) -> List[Package]:
        return self.return_next(packages)

    def return_next(self, packages: List[Package]) -> List[Package]:
        if self.next_splitter is None:
            return packages
        return self.next_splitter.split(packages)


class ShippingCategorySplitter(Splitter):
    """Separates units whose variants belong to different shipping categories."""

    name = 'shipping_category'

    def split(self, packages):
        split_packages = []
        for package in packages:
            groups = OrderedDict()
            for item in package.contents:
                groups.setdefault(item.variant.shipping_category_id, []).append(item)

            if len(groups) == 1:
                split_packages.append(package)
            else:
                split_packages.extend(package.sibling(contents) for contents in groups.values())
        return self.return_next(split_packages)


class BackorderedSplitter(Splitter):
    """Separates on-hand units from backordered units."""

    name = 'backordered'

    def split(self, packages):
        split_packages = []
        for package in packages:
            on_hand = package.on_hand
            backordered = package.backordered

            if on_hand and backordered:
                split_packages.append(package.sibling(on_hand))
                split_packages.append(package.sibling(backordered))
            elif on_hand or backordered:
                split_packages.append(package)
        return self.return_next(split_packages)


class WeightSplitter(Splitter):
    """Divides packages heavier than ``threshold``.

    Units are packed first-fit decreasing by weight; a unit heavier than the
    threshold on its own ships alone.
    """

    name = 'weight'
    DEFAULT_THRESHOLD = 150.0

    def __init__(self, next_splitter=None, threshold: float = DEFAULT_THRESHOLD):
        super().__init__(next_splitter)
        if threshold <= 0:
            raise ConfigError(f"Weight threshold must be positive, got {threshold}")
        self.threshold = threshold

    def split(self, packages):
        split_packages = []
        for package in packages:
            if package.is_empty():
                continue
            if package.weight <= self.threshold or len(package.contents) == 1:
                split_packages.append(package)
            else:
                split_packages.extend(self._reduce(package))
        return self.return_next(split_packages)

    def _reduce(self, package: Package) -> List[Package]:
        weights = np.array([item.weight for item in package.contents], dtype=float)
        order = np.argsort(-weights, kind='stable')

        bins = []
        loads = []
        for index in order:
            item = package.contents[int(index)]
            weight = item.weight
            for position, load in enumerate(loads):
                if load + weight <= self.threshold:
                    bins[position].append(item)
                    loads[position] = load + weight
                    break
            else:
                bins.append([item])
                loads.append(weight)

        logger.debug(f"Split package of weight {package.weight} into {len(bins)} packages")
        return [package.sibling(contents) for contents in bins]


SPLITTERS: Dict[str, type] = {
    ShippingCategorySplitter.name: ShippingCategorySplitter,
    BackorderedSplitter.name: BackorderedSplitter,
    WeightSplitter.name: WeightSplitter,
}


def build_chain(names: Sequence[str], weight_threshold: float = WeightSplitter.DEFAULT_THRESHOLD) -> Optional[Splitter]:
    """Link splitters by name into a chain and return its head.

    Args:
        names: Splitter names in the order they run
        weight_threshold: Threshold handed to the weight splitter

    Returns:
        First splitter of the chain, or None for an empty list
    """
    head = None
    for name in reversed(list(names)):
        splitter_class = SPLITTERS.get(name)
        if splitter_class is None:
            raise ConfigError(
                f"Unknown splitter: {name}",
                details={'valid_splitters': sorted(SPLITTERS)}
            )
        if splitter_class is WeightSplitter:
            head = WeightSplitter(head, threshold=weight_threshold)
        else:
            head = splitter_class(head)
    return head


def default_chain() -> Optional[Splitter]:
    """Build the splitter chain from the STOCK configuration section."""
    from ..config import config

    stock_config = config.stock_config
    return build_chain(stock_config['splitters'], stock_config['weight_threshold'])


def split_packages(packages: List[Package], splitter: Optional[Splitter]) -> List[Package]:
    """Run a splitter chain, dropping empty packages."""
    packages = [package for package in packages if not package.is_empty()]
    if splitter is None:
        return packages
    return splitter.split(packages)
