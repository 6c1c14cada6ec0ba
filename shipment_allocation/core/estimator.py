# shipment_allocation/core/estimator.py
import logging
from typing import Callable, Dict, Iterable, List, Optional

from ..exceptions import ConfigError
from .calculators import compute_cost
from .package import Package
from .structures import ShipAddress, ShippingMethodInfo, ShippingRateQuote

logger = logging.getLogger(__name__)

RateSorter = Callable[[List[ShippingRateQuote]], List[ShippingRateQuote]]


def sort_by_cost(rates: List[ShippingRateQuote]) -> List[ShippingRateQuote]:
    """Cheapest first; method priority, name and id break ties."""
    return sorted(rates, key=ShippingRateQuote.sort_key)


def sort_by_priority(rates: List[ShippingRateQuote]) -> List[ShippingRateQuote]:
    """Method priority first; cost, name and id break ties."""
    return sorted(rates, key=lambda rate: (
        rate.shipping_method.priority, rate.cost, rate.shipping_method.name, rate.shipping_method.id
    ))


RATE_SORTERS: Dict[str, RateSorter] = {
    'cost': sort_by_cost,
    'priority': sort_by_priority,
}


def build_rate_sorter(name: Optional[str] = None) -> RateSorter:
    """Look up a rate sorter by name; the SHIPPING configuration decides when omitted."""
    if name is None:
        from ..config import config
        name = config.shipping_config['rate_sorter']

    sorter = RATE_SORTERS.get(name)
    if sorter is None:
        raise ConfigError(
            f"Unknown rate sorter: {name}",
            details={'valid_rate_sorters': sorted(RATE_SORTERS)}
        )
    return sorter


class Estimator:
    """Computes the shipping rate options for a package.

    Rates come back in the order of the rate sorter, cheapest first by
    default, with every tie broken on stable keys so the same package and
    configuration always yield the same list. The first rate is marked
    selected. A package no method can serve gets an empty list.
    """

    def __init__(self, shipping_methods: Iterable[ShippingMethodInfo], rate_sorter: Optional[RateSorter] = None):
        self.shipping_methods = list(shipping_methods)
        self.rate_sorter = rate_sorter or build_rate_sorter()

    def eligible_methods(
        self,
        package: Package,
        ship_address: Optional[ShipAddress] = None,
        frontend_only: bool = True
    ) -> List[ShippingMethodInfo]:
        """Methods able to ship the package to the destination.

        Without a destination, zones are matched against the address of the
        package's stock location.
        """
        address = ship_address or package.stock_location.address
        return [
            method for method in package.shipping_methods(self.shipping_methods)
            if method.include(address)
            and method.available_to_display(frontend_only)
            and method.calculator.available(package)
        ]

    def shipping_rates(
        self,
        package: Package,
        ship_address: Optional[ShipAddress] = None,
        frontend_only: bool = True
    ) -> List[ShippingRateQuote]:
        """Sorted shipping rate quotes for the package.

        Args:
            package: Package to price
            ship_address: Destination address
            frontend_only: Only offer methods shown to customers

        Returns:
            List of ShippingRateQuote, best first, first one selected
        """
        rates = self.rate_sorter([
            ShippingRateQuote(method, compute_cost(method.calculator, package), package.currency)
            for method in self.eligible_methods(package, ship_address, frontend_only)
        ])

        if rates:
            rates[0].selected = True
        else:
            logger.info(f"No shipping options for package from {package.stock_location.name}")

        return rates
