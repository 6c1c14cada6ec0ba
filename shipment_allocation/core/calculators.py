# shipment_allocation/core/calculators.py
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from ..exceptions import CalculationError, ConfigError
from ..utils.math_utils import round_money


def _to_decimal(name: str, value) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ConfigError(f"Invalid calculator preference {name}: {value!r}")


class ShippingCalculator:
    """Base shipping cost calculator.

    A calculator priced in a currency is only offered for packages in that
    currency; ``currency=None`` accepts any.
    """

    calculator_type = None

    def __init__(self, currency: Optional[str] = None):
        self.currency = currency

    def available(self, package) -> bool:
        return self.currency is None or self.currency == package.currency

    def compute(self, package) -> Decimal:
        raise NotImplementedError

    @property
    def preferences(self) -> Dict:
        return {}


class FlatRate(ShippingCalculator):
    """Same amount for every package."""

    calculator_type = 'flat_rate'

    def __init__(self, amount=0, currency=None):
        super().__init__(currency)
        self.amount = _to_decimal('amount', amount)

    def compute(self, package):
        return round_money(self.amount)

    @property
    def preferences(self):
        return {'amount': str(self.amount), 'currency': self.currency}


class FlatPercentItemTotal(ShippingCalculator):
    """Percentage of the value of the units in the package."""

    calculator_type = 'flat_percent_item_total'

    def __init__(self, flat_percent=0, currency=None):
        super().__init__(currency)
        self.flat_percent = _to_decimal('flat_percent', flat_percent)

    def compute(self, package):
        return round_money(package.item_total * self.flat_percent / Decimal('100'))

    @property
    def preferences(self):
        return {'flat_percent': str(self.flat_percent), 'currency': self.currency}


class FlexiRate(ShippingCalculator):
    """First item at one price, additional items at another.

    With ``max_items`` set, the first-item price applies again at the start
    of every group of ``max_items`` units.
    """

    calculator_type = 'flexi_rate'

    def __init__(self, first_item=0, additional_item=0, max_items=0, currency=None):
        super().__init__(currency)
        self.first_item = _to_decimal('first_item', first_item)
        self.additional_item = _to_decimal('additional_item', additional_item)
        try:
            self.max_items = int(max_items or 0)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid calculator preference max_items: {max_items!r}")
        if self.max_items < 0:
            raise ConfigError("max_items cannot be negative")

    def compute_from_quantity(self, quantity: int) -> Decimal:
        total = Decimal('0')
        for index in range(quantity):
            if (self.max_items == 0 and index == 0) or (self.max_items > 0 and index % self.max_items == 0):
                total += self.first_item
            else:
                total += self.additional_item
        return round_money(total)

    def compute(self, package):
        return self.compute_from_quantity(package.quantity())

    @property
    def preferences(self):
        return {
            'first_item': str(self.first_item),
            'additional_item': str(self.additional_item),
            'max_items': self.max_items,
            'currency': self.currency
        }


class PerItem(ShippingCalculator):
    """Fixed amount per unit."""

    calculator_type = 'per_item'

    def __init__(self, amount=0, currency=None):
        super().__init__(currency)
        self.amount = _to_decimal('amount', amount)

    def compute(self, package):
        return round_money(self.amount * package.quantity())

    @property
    def preferences(self):
        return {'amount': str(self.amount), 'currency': self.currency}


class PriceSack(ShippingCalculator):
    """Normal amount below a minimal item total, discounted amount at or above it."""

    calculator_type = 'price_sack'

    def __init__(self, minimal_amount=0, normal_amount=0, discount_amount=0, currency=None):
        super().__init__(currency)
        self.minimal_amount = _to_decimal('minimal_amount', minimal_amount)
        self.normal_amount = _to_decimal('normal_amount', normal_amount)
        self.discount_amount = _to_decimal('discount_amount', discount_amount)

    def compute(self, package):
        if package.item_total < self.minimal_amount:
            return round_money(self.normal_amount)
        return round_money(self.discount_amount)

    @property
    def preferences(self):
        return {
            'minimal_amount': str(self.minimal_amount),
            'normal_amount': str(self.normal_amount),
            'discount_amount': str(self.discount_amount),
            'currency': self.currency
        }


CALCULATORS = {
    calculator.calculator_type: calculator
    for calculator in (FlatRate, FlatPercentItemTotal, FlexiRate, PerItem, PriceSack)
}


def build_calculator(calculator_type: str, preferences: Optional[Dict] = None) -> ShippingCalculator:
    """Instantiate a calculator from its type name and stored preferences.

    Args:
        calculator_type: One of the keys of ``CALCULATORS``
        preferences: Keyword arguments for the calculator

    Returns:
        Calculator instance
    """
    calculator_class = CALCULATORS.get(calculator_type)
    if calculator_class is None:
        raise ConfigError(
            f"Unknown shipping calculator: {calculator_type}",
            details={'valid_calculators': sorted(CALCULATORS)}
        )
    try:
        return calculator_class(**(preferences or {}))
    except TypeError as e:
        raise ConfigError(f"Invalid preferences for {calculator_type}: {str(e)}")


def compute_cost(calculator: ShippingCalculator, package) -> Decimal:
    """Compute a package's shipping cost, wrapping unexpected calculator failures."""
    try:
        cost = calculator.compute(package)
    except (ConfigError, CalculationError):
        raise
    except (ArithmeticError, TypeError, ValueError) as e:
        raise CalculationError(f"Error computing shipping cost with {calculator.calculator_type}: {str(e)}")
    if cost is None or cost < 0:
        raise CalculationError(f"{calculator.calculator_type} returned an invalid cost: {cost}")
    return cost
