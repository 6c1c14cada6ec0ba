# shipment_allocation/utils/math_utils.py
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Union
import numpy as np

CENT = Decimal('0.01')

def round_money(value: Union[Decimal, float, int, str]) -> Decimal:
    """Round a monetary amount to cents, half up.

    Args:
        value: Amount to round

    Returns:
        Decimal rounded to two places
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)

def total_weight(weights: Iterable[float]) -> float:
    """Sum a sequence of unit weights.

    Args:
        weights: Unit weights

    Returns:
        Total weight as a Python float
    """
    values = np.fromiter((float(weight or 0.0) for weight in weights), dtype=float)
    if values.size == 0:
        return 0.0
    if np.any(values < 0):
        raise ValueError("Weights cannot be negative")
    return float(values.sum())

def fill_rate(fulfilled: float, requested: float) -> float:
    """Percentage of requested units that could be allocated."""
    if requested <= 0:
        return 100.0
    return round(float(fulfilled) / float(requested) * 100.0, 2)

def allocation_summary(result) -> Dict[str, Union[int, float, str]]:
    """Summarize an allocation result for logging and reporting.

    Args:
        result: AllocationResult returned by the coordinator

    Returns:
        Dictionary with package and unit counts
    """
    packages = result.packages
    on_hand = sum(len(package.on_hand) for package in packages)
    backordered = sum(len(package.backordered) for package in packages)
    unfulfillable = int(sum(result.unfulfillable.values()))
    weights = [package.weight for package in packages]

    requested = on_hand + backordered + unfulfillable

    return {
        'packages': len(packages),
        'stock_locations': len({package.stock_location.id for package in packages}),
        'units_on_hand': on_hand,
        'units_backordered': backordered,
        'units_unfulfillable': unfulfillable,
        'total_weight': round(total_weight(weights), 3),
        'max_package_weight': round(float(np.max(weights)), 3) if weights else 0.0,
        'fill_rate': fill_rate(on_hand + backordered, requested),
        'status': 'FULLY_ALLOCATED' if unfulfillable == 0 else 'PARTIALLY_ALLOCATED'
    }
