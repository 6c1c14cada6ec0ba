# shipment_allocation/models.py
from sqlalchemy import (
    Column, Integer, String, Float, Numeric, DateTime, Boolean, ForeignKey,
    JSON, Table, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

from shipment_allocation.exceptions import InsufficientStockError

Base = declarative_base()

class ShipmentState(enum.Enum):
    """Enum for shipment states.

    Values:
        PENDING ('pending'): Contains backordered units, cannot ship yet
        READY ('ready'): Every unit is on hand
        SHIPPED ('shipped'): Handed to the carrier
        CANCELED ('canceled'): No longer shipping
    """
    PENDING = 'pending'
    READY = 'ready'
    SHIPPED = 'shipped'
    CANCELED = 'canceled'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

shipping_method_categories = Table(
    'shipping_method_category',
    Base.metadata,
    Column('shipping_method_id', Integer, ForeignKey('shipping_method.id'), primary_key=True),
    Column('shipping_category_id', Integer, ForeignKey('shipping_category.id'), primary_key=True)
)

shipping_method_zones = Table(
    'shipping_method_zone',
    Base.metadata,
    Column('shipping_method_id', Integer, ForeignKey('shipping_method.id'), primary_key=True),
    Column('zone_id', Integer, ForeignKey('zone.id'), primary_key=True)
)

shipping_method_stock_locations = Table(
    'shipping_method_stock_location',
    Base.metadata,
    Column('shipping_method_id', Integer, ForeignKey('shipping_method.id'), primary_key=True),
    Column('stock_location_id', Integer, ForeignKey('stock_location.id'), primary_key=True)
)

class Zone(Base):
    __tablename__ = 'zone'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(255))

    members = relationship("ZoneMember", back_populates="zone", cascade="all, delete-orphan")
    shipping_methods = relationship("ShippingMethod", secondary=shipping_method_zones, back_populates="zones")

class ZoneMember(Base):
    __tablename__ = 'zone_member'

    id = Column(Integer, primary_key=True)
    zone_id = Column(Integer, ForeignKey('zone.id'), nullable=False)
    country_iso = Column(String(2), nullable=False)
    state_abbr = Column(String(10))  # Null means the whole country

    zone = relationship("Zone", back_populates="members")

class ShippingCategory(Base):
    __tablename__ = 'shipping_category'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)

    variants = relationship("Variant", back_populates="shipping_category")
    shipping_methods = relationship("ShippingMethod", secondary=shipping_method_categories, back_populates="shipping_categories")

class Variant(Base):
    __tablename__ = 'variant'

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, unique=True)
    weight = Column(Float, default=0.0)
    price = Column(Numeric(10, 2), default=0)
    track_inventory = Column(Boolean, default=True)
    shipping_category_id = Column(Integer, ForeignKey('shipping_category.id'))

    shipping_category = relationship("ShippingCategory", back_populates="variants")
    stock_items = relationship("StockItem", back_populates="variant")

class StockLocation(Base):
    __tablename__ = 'stock_location'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    active = Column(Boolean, default=True)
    is_default = Column(Boolean, default=False)
    priority = Column(Integer, default=0)  # Lower ships first

    # Origin address, used for zone matching when a quote has no destination
    country_iso = Column(String(2))
    state_abbr = Column(String(10))

    stock_items = relationship("StockItem", back_populates="stock_location")
    shipments = relationship("Shipment", back_populates="stock_location")

class StockItem(Base):
    __tablename__ = 'stock_item'
    __table_args__ = (
        UniqueConstraint('stock_location_id', 'variant_id', name='uq_stock_item_location_variant'),
    )

    id = Column(Integer, primary_key=True)
    stock_location_id = Column(Integer, ForeignKey('stock_location.id'), nullable=False)
    variant_id = Column(Integer, ForeignKey('variant.id'), nullable=False)
    count_on_hand = Column(Integer, default=0, nullable=False)
    backorderable = Column(Boolean, default=False)

    stock_location = relationship("StockLocation", back_populates="stock_items")
    variant = relationship("Variant", back_populates="stock_items")

    def reduce_count_on_hand(self, quantity):
        """Take units out of stock.

        The count may only drop below zero on a backorderable stock item.

        Args:
            quantity: Number of units leaving stock
        """
        remaining = (self.count_on_hand or 0) - quantity
        if remaining < 0 and not self.backorderable:
            raise InsufficientStockError(
                f"Stock item {self.id} has {self.count_on_hand} on hand, {quantity} requested",
                unfulfillable={self.variant_id: -remaining}
            )
        self.count_on_hand = remaining

    def restock(self, quantity):
        """Put units back into stock."""
        self.count_on_hand = (self.count_on_hand or 0) + quantity

class ShippingMethod(Base):
    __tablename__ = 'shipping_method'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    code = Column(String(50))
    priority = Column(Integer, default=0)
    display_on = Column(String(20), default='both')  # both, front_end, back_end
    active = Column(Boolean, default=True)

    # Calculator
    calculator_type = Column(String(50), nullable=False, default='flat_rate')
    calculator_preferences = Column(JSON, default=dict)

    shipping_categories = relationship("ShippingCategory", secondary=shipping_method_categories, back_populates="shipping_methods")
    zones = relationship("Zone", secondary=shipping_method_zones, back_populates="shipping_methods")
    stock_locations = relationship("StockLocation", secondary=shipping_method_stock_locations)

class Order(Base):
    __tablename__ = 'orders'

    id = Column(Integer, primary_key=True)
    number = Column(String(30), nullable=False, unique=True)
    currency = Column(String(3), default='USD')
    ship_country_iso = Column(String(2))
    ship_state_abbr = Column(String(10))
    created_at = Column(DateTime, default=func.now())

    line_items = relationship("LineItem", back_populates="order", cascade="all, delete-orphan")
    shipments = relationship("Shipment", back_populates="order")

class LineItem(Base):
    __tablename__ = 'line_item'

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id'), nullable=False)
    variant_id = Column(Integer, ForeignKey('variant.id'), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2))

    order = relationship("Order", back_populates="line_items")
    variant = relationship("Variant")

class Shipment(Base):
    __tablename__ = 'shipment'

    id = Column(Integer, primary_key=True)
    number = Column(String(30), nullable=False, unique=True)
    order_id = Column(Integer, ForeignKey('orders.id'), nullable=False)
    stock_location_id = Column(Integer, ForeignKey('stock_location.id'), nullable=False)
    state = Column(String(20), default=ShipmentState.PENDING.value)
    cost = Column(Numeric(10, 2), default=0)
    shipped_at = Column(DateTime)
    created_at = Column(DateTime, default=func.now())

    order = relationship("Order", back_populates="shipments")
    stock_location = relationship("StockLocation", back_populates="shipments")
    inventory_units = relationship("InventoryUnit", back_populates="shipment")
    shipping_rates = relationship("ShippingRate", back_populates="shipment", cascade="all, delete-orphan")

    @property
    def selected_shipping_rate(self):
        for rate in self.shipping_rates:
            if rate.selected:
                return rate
        return None

class InventoryUnit(Base):
    __tablename__ = 'inventory_unit'

    id = Column(Integer, primary_key=True)
    shipment_id = Column(Integer, ForeignKey('shipment.id'))
    line_item_id = Column(Integer, ForeignKey('line_item.id'))
    variant_id = Column(Integer, ForeignKey('variant.id'), nullable=False)
    state = Column(String(20), nullable=False)  # on_hand, backordered, shipped, returned, canceled

    shipment = relationship("Shipment", back_populates="inventory_units")
    line_item = relationship("LineItem")
    variant = relationship("Variant")

class ShippingRate(Base):
    __tablename__ = 'shipping_rate'

    id = Column(Integer, primary_key=True)
    shipment_id = Column(Integer, ForeignKey('shipment.id'), nullable=False)
    shipping_method_id = Column(Integer, ForeignKey('shipping_method.id'), nullable=False)
    cost = Column(Numeric(10, 2), nullable=False)
    selected = Column(Boolean, default=False)

    shipment = relationship("Shipment", back_populates="shipping_rates")
    shipping_method = relationship("ShippingMethod")

Index('ix_stock_item_variant', StockItem.variant_id)
Index('ix_inventory_unit_shipment', InventoryUnit.shipment_id)
