# shipment_allocation/core/coordinator.py
import logging
import math
from collections import Counter, deque
from typing import Dict, Iterable, List, Optional

from ..exceptions import AllocationError, InsufficientStockError, ValidationError
from ..utils.validation import validate_order_request
from .allocator import build_allocator
from .availability import Availability, StockQuantities
from .differentiator import Differentiator
from .estimator import Estimator, RateSorter
from .package import Package
from .prioritizer import LocationSorter, Prioritizer, build_location_sorter
from .quantifier import Quantifier
from .splitters import Splitter, default_chain, split_packages
from .structures import (
    InventoryUnit, InventoryUnitState, OrderRequest, ShippingMethodInfo,
    ShippingRateQuote, StockLocationSnapshot
)

logger = logging.getLogger(__name__)

_DEFAULT_CHAIN = object()


class AllocationResult:
    """Packages built for an order plus whatever could not be allocated."""

    def __init__(self, packages: List[Package], inventory_units: List[InventoryUnit], unfulfillable: Optional[Dict[int, int]] = None):
        self.packages = packages
        self.inventory_units = inventory_units
        self.unfulfillable = dict(unfulfillable or {})

    @property
    def is_complete(self) -> bool:
        return not self.unfulfillable

    @property
    def unallocated_units(self) -> List[InventoryUnit]:
        return [unit for unit in self.inventory_units if unit.state == InventoryUnitState.PENDING]

    def packaged_quantity(self) -> int:
        return sum(package.quantity() for package in self.packages)


class ShipmentQuote:
    """A package and the shipping rates offered for it."""

    def __init__(self, package: Package, shipping_rates: List[ShippingRateQuote]):
        self.package = package
        self.shipping_rates = shipping_rates

    @property
    def selected_rate(self) -> Optional[ShippingRateQuote]:
        for rate in self.shipping_rates:
            if rate.selected:
                return rate
        return None

    @property
    def has_shipping_options(self) -> bool:
        return bool(self.shipping_rates)

    def to_dict(self):
        selected = self.selected_rate
        return {
            'stock_location': self.package.stock_location.name,
            'on_hand': len(self.package.on_hand),
            'backordered': len(self.package.backordered),
            'weight': self.package.weight,
            'shipping_rates': [rate.to_dict() for rate in self.shipping_rates],
            'selected_cost': str(selected.cost) if selected else None
        }


class Coordinator:
    """Turns an order request into packages and shipping rate quotes.

    Every requested unit ends up in exactly one package. Units that can be
    neither taken from stock nor backordered are reported as unfulfillable,
    never dropped.
    """

    def __init__(
        self,
        order: OrderRequest,
        stock_locations: Iterable[StockLocationSnapshot],
        shipping_methods: Iterable[ShippingMethodInfo] = (),
        splitter=_DEFAULT_CHAIN,
        frontend_only: bool = True,
        location_sorter: Optional[LocationSorter] = None,
        allocator: Optional[str] = None,
        rate_sorter: Optional[RateSorter] = None
    ):
        errors = validate_order_request(order)
        if errors:
            raise ValidationError(f"Invalid order request {order.number}", details=errors)

        self.order = order
        self.location_sorter = location_sorter or build_location_sorter()
        self.stock_locations = self.location_sorter(stock_locations)
        self.allocator_name = allocator
        self.splitter: Optional[Splitter] = default_chain() if splitter is _DEFAULT_CHAIN else splitter
        self.estimator = Estimator(shipping_methods, rate_sorter)
        self.frontend_only = frontend_only

    def requested_quantities(self) -> Dict[int, int]:
        requested = Counter()
        for item in self.order.items:
            requested[item.variant.id] += item.quantity
        return dict(requested)

    def supply_check(self) -> Dict[int, dict]:
        """Whether the stock locations can supply each requested variant.

        Returns:
            Dictionary keyed by variant id with the requested quantity, total
            on hand (None when unlimited), backorderable flag and verdict
        """
        requested = self.requested_quantities()
        checks = {}
        for variant in self.order.variants:
            quantifier = Quantifier(variant, self.stock_locations)
            on_hand = quantifier.total_on_hand
            checks[variant.id] = {
                'requested': requested[variant.id],
                'on_hand': None if math.isinf(on_hand) else int(on_hand),
                'backorderable': quantifier.backorderable,
                'can_supply': quantifier.can_supply(requested[variant.id])
            }
        return checks

    def _shortfall(self) -> Dict[int, int]:
        return {
            variant_id: check['requested'] - check['on_hand']
            for variant_id, check in self.supply_check().items()
            if not check['can_supply']
        }

    def build_inventory_units(self) -> List[InventoryUnit]:
        units = []
        for item in self.order.items:
            for _ in range(item.quantity):
                units.append(InventoryUnit(
                    item.variant,
                    line_item_id=item.line_item_id,
                    price=item.price,
                    id=len(units) + 1
                ))
        return units

    def allocate(self, allow_partial: bool = True) -> AllocationResult:
        """Allocate the order's units to packages.

        Args:
            allow_partial: Return unfulfillable quantities on the result
                instead of raising InsufficientStockError

        Returns:
            AllocationResult with split packages
        """
        if not allow_partial:
            shortfall = self._shortfall()
            if shortfall:
                raise InsufficientStockError(
                    f"Order {self.order.number} cannot be fully allocated",
                    unfulfillable=shortfall
                )

        inventory_units = self.build_inventory_units()
        desired = StockQuantities(Counter(unit.variant.id for unit in inventory_units))

        availability = Availability(self.order.variants, self.stock_locations)
        prioritizer = Prioritizer(availability, self.location_sorter)
        allocator = build_allocator(availability, prioritizer, self.allocator_name)
        on_hand, backordered, leftover = allocator.allocate(desired)

        unfulfillable = {variant_id: int(quantity) for variant_id, quantity in leftover.items()}
        if unfulfillable and not allow_partial:
            raise InsufficientStockError(
                f"Order {self.order.number} cannot be fully allocated",
                unfulfillable=unfulfillable
            )

        units_by_variant = {}
        for unit in inventory_units:
            units_by_variant.setdefault(unit.variant.id, deque()).append(unit)

        packages = []
        allocated_units = []
        for location in self.stock_locations:
            package = Package(location, currency=self.order.currency)
            for state, quantities in (
                (InventoryUnitState.ON_HAND, on_hand.get(location.id)),
                (InventoryUnitState.BACKORDERED, backordered.get(location.id))
            ):
                if quantities is None:
                    continue
                for variant_id, quantity in quantities.items():
                    for _ in range(int(quantity)):
                        unit = units_by_variant[variant_id].popleft()
                        unit.state = state
                        package.add(unit, state)
                        allocated_units.append(unit)
            if not package.is_empty():
                packages.append(package)

        packages = split_packages(packages, self.splitter)

        differentiator = Differentiator(allocated_units, packages)
        if not differentiator.is_complete():
            raise AllocationError(
                f"Packages for order {self.order.number} do not match the allocated units",
                code='PACKAGE_MISMATCH',
                details={
                    'missing': differentiator.missing_by_variant(),
                    'duplicated': len(differentiator.duplicated),
                    'unexpected': differentiator.unexpected
                }
            )

        logger.debug(f"Order {self.order.number}: {len(packages)} packages, unfulfillable {unfulfillable}")
        return AllocationResult(packages, inventory_units, unfulfillable)

    def packages(self) -> List[Package]:
        """Packages covering every requested unit; raises InsufficientStockError otherwise."""
        return self.allocate(allow_partial=False).packages

    def quote(self, package: Package) -> ShipmentQuote:
        rates = self.estimator.shipping_rates(package, self.order.ship_address, self.frontend_only)
        return ShipmentQuote(package, rates)

    def shipments(self) -> List[ShipmentQuote]:
        """Shipment quotes for a fully allocated order."""
        return [self.quote(package) for package in self.packages()]
