from .math_utils import round_money, total_weight, fill_rate, allocation_summary
from .validation import validate_order_request, validate_stock_location, validate_shipping_method

__all__ = [
    'round_money',
    'total_weight',
    'fill_rate',
    'allocation_summary',
    'validate_order_request',
    'validate_stock_location',
    'validate_shipping_method'
]
