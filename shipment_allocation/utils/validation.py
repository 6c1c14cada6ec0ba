from typing import Dict

def validate_order_request(order) -> Dict[str, str]:
    """Validate an order request.

    Args:
        order: Order request to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not order.number:
        errors['number'] = 'Order number is required'

    if not order.currency:
        errors['currency'] = 'Currency is required'

    for index, item in enumerate(order.items):
        if item.variant is None:
            errors[f'items[{index}].variant'] = 'Variant is required'
        if not isinstance(item.quantity, int) or item.quantity < 0:
            errors[f'items[{index}].quantity'] = 'Quantity must be a non-negative integer'

    return errors

def validate_stock_location(location) -> Dict[str, str]:
    """Validate a stock location snapshot.

    Args:
        location: Stock location to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not location.name:
        errors['name'] = 'Stock location name is required'

    for variant_id, stock_item in location.stock_items.items():
        if stock_item.count_on_hand < 0 and not stock_item.backorderable:
            errors[f'stock_items[{variant_id}]'] = 'Count on hand is negative but the item is not backorderable'

    return errors

def validate_shipping_method(method) -> Dict[str, str]:
    """Validate a shipping method.

    Args:
        method: Shipping method to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not method.name:
        errors['name'] = 'Shipping method name is required'

    if method.calculator is None:
        errors['calculator'] = 'Calculator is required'

    if not method.shipping_category_ids:
        errors['shipping_category_ids'] = 'At least one shipping category is required'

    return errors
