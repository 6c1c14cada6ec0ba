from .structures import (
    InventoryUnitState, DisplayOn, ShipAddress, ZoneInfo, VariantInfo,
    StockItemSnapshot, StockLocationSnapshot, RequestedItem, InventoryUnit,
    ShippingMethodInfo, ShippingRateQuote, OrderRequest
)
from .package import Package, ContentItem
from .availability import StockQuantities, Availability
from .quantifier import Quantifier
from .prioritizer import Prioritizer, sort_locations, keep_order, build_location_sorter, LOCATION_SORTERS
from .allocator import OnHandFirstAllocator, build_allocator, ALLOCATORS
from .splitters import (
    Splitter, ShippingCategorySplitter, BackorderedSplitter, WeightSplitter,
    build_chain, default_chain, split_packages
)
from .calculators import (
    ShippingCalculator, FlatRate, FlatPercentItemTotal, FlexiRate, PerItem,
    PriceSack, build_calculator
)
from .estimator import Estimator, sort_by_cost, sort_by_priority, build_rate_sorter, RATE_SORTERS
from .differentiator import Differentiator
from .coordinator import Coordinator, AllocationResult, ShipmentQuote

__all__ = [
    'InventoryUnitState',
    'DisplayOn',
    'ShipAddress',
    'ZoneInfo',
    'VariantInfo',
    'StockItemSnapshot',
    'StockLocationSnapshot',
    'RequestedItem',
    'InventoryUnit',
    'ShippingMethodInfo',
    'ShippingRateQuote',
    'OrderRequest',
    'Package',
    'ContentItem',
    'StockQuantities',
    'Availability',
    'Quantifier',
    'Prioritizer',
    'sort_locations',
    'keep_order',
    'build_location_sorter',
    'LOCATION_SORTERS',
    'OnHandFirstAllocator',
    'build_allocator',
    'ALLOCATORS',
    'Splitter',
    'ShippingCategorySplitter',
    'BackorderedSplitter',
    'WeightSplitter',
    'build_chain',
    'default_chain',
    'split_packages',
    'ShippingCalculator',
    'FlatRate',
    'FlatPercentItemTotal',
    'FlexiRate',
    'PerItem',
    'PriceSack',
    'build_calculator',
    'Estimator',
    'sort_by_cost',
    'sort_by_priority',
    'build_rate_sorter',
    'RATE_SORTERS',
    'Differentiator',
    'Coordinator',
    'AllocationResult',
    'ShipmentQuote'
]
