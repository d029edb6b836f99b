# replenishment_engine/models.py
from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey, Enum,
    Index, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()

class LocationType(enum.Enum):
    WAREHOUSE = 'WAREHOUSE'
    STORE = 'STORE'

class RevenueTier(enum.Enum):
    """Enum for location revenue tiers.

    Values:
        A: Highest-revenue locations, first in line for scarce stock
        B: Regular locations
        C: Low-revenue locations
    """
    A = 'A'
    B = 'B'
    C = 'C'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'RevenueTier':
        """Create a RevenueTier from a string value.

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Invalid revenue tier: {value}. Valid values are: A, B, C")

class MovementType(enum.Enum):
    SALE = 'SALE'
    RECEIPT = 'RECEIPT'
    TRANSFER_OUT = 'TRANSFER_OUT'
    TRANSFER_IN = 'TRANSFER_IN'
    ADJUSTMENT = 'ADJUSTMENT'
    RETURN = 'RETURN'

class ForecastMethod(enum.Enum):
    """Forecasting methods.

    MANUAL rows are entered by a planner and are never overwritten by an
    automated forecast run.
    """
    MOVING_AVG_12W = 'MOVING_AVG_12W'
    HOLT_WINTERS = 'HOLT_WINTERS'
    CROSTON_SBC = 'CROSTON_SBC'
    ENSEMBLE = 'ENSEMBLE'
    MANUAL = 'MANUAL'

    def __str__(self):
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'ForecastMethod':
        """Create a ForecastMethod from its name, accepting 'WMA' as an alias."""
        if value == 'WMA':
            return cls.MOVING_AVG_12W
        try:
            return cls(value)
        except ValueError:
            valid = ', '.join(m.value for m in cls)
            raise ValueError(f"Invalid forecast method: {value}. Valid values are: {valid}")

class Location(Base):
    __tablename__ = 'location'

    id = Column(Integer, primary_key=True)
    code = Column(String(20), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    location_type = Column(Enum(LocationType), nullable=False)
    revenue_tier = Column(Enum(RevenueTier), nullable=False, default=RevenueTier.B)
    is_active = Column(Boolean, nullable=False, default=True)

    inventory_levels = relationship("InventoryLevel", back_populates="location")

    def __repr__(self):
        return f"<Location(code='{self.code}', type='{self.location_type}')>"

class Product(Base):
    __tablename__ = 'product'

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    lead_time_days = Column(Integer, nullable=False, default=7)
    safety_stock = Column(Integer, nullable=False, default=0)
    reorder_point = Column(Integer, nullable=False, default=0)
    manual_safety_override = Column(Boolean, nullable=False, default=False)
    manual_reorder_override = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    variants = relationship("ProductVariant", back_populates="product")

    def __repr__(self):
        return f"<Product(sku='{self.sku}', safety_stock={self.safety_stock}, reorder_point={self.reorder_point})>"

class ProductVariant(Base):
    __tablename__ = 'product_variant'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    sku = Column(String(50), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("Product", back_populates="variants")

    def __repr__(self):
        return f"<ProductVariant(sku='{self.sku}')>"

class InventoryLevel(Base):
    __tablename__ = 'inventory_level'

    id = Column(Integer, primary_key=True)
    location_id = Column(Integer, ForeignKey('location.id'), nullable=False)
    product_variant_id = Column(Integer, ForeignKey('product_variant.id'), nullable=False)
    quantity_on_hand = Column(Integer, nullable=False, default=0)
    quantity_reserved = Column(Integer, nullable=False, default=0)

    location = relationship("Location", back_populates="inventory_levels")

    __table_args__ = (
        UniqueConstraint('location_id', 'product_variant_id', name='uq_inventory_level_location_variant'),
    )

    @property
    def quantity_available(self) -> int:
        """On hand minus reserved, never below zero."""
        return max(0, (self.quantity_on_hand or 0) - (self.quantity_reserved or 0))

class StockMovement(Base):
    __tablename__ = 'stock_movement'

    id = Column(Integer, primary_key=True)
    movement_type = Column(Enum(MovementType), nullable=False)
    product_variant_id = Column(Integer, ForeignKey('product_variant.id'), nullable=False)
    from_location_id = Column(Integer, ForeignKey('location.id'))
    to_location_id = Column(Integer, ForeignKey('location.id'))
    quantity = Column(Integer, nullable=False)
    occurred_at = Column(DateTime, nullable=False, default=func.now())

    __table_args__ = (
        Index('ix_stock_movement_type_variant_occurred', 'movement_type', 'product_variant_id', 'occurred_at'),
    )

class DemandForecast(Base):
    __tablename__ = 'demand_forecast'

    id = Column(Integer, primary_key=True)
    product_variant_id = Column(Integer, ForeignKey('product_variant.id'), nullable=False)
    location_id = Column(Integer, ForeignKey('location.id'), nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    forecasted_demand = Column(Float, nullable=False)
    forecast_method = Column(Enum(ForecastMethod), nullable=False, default=ForecastMethod.MOVING_AVG_12W)
    requested_method = Column(Enum(ForecastMethod))
    confidence_low = Column(Float)
    confidence_high = Column(Float)
    mape_score = Column(Float)
    generated_at = Column(DateTime, nullable=False, default=func.now())

    __table_args__ = (
        UniqueConstraint('product_variant_id', 'location_id', 'period_start',
                         name='uq_demand_forecast_variant_location_period'),
        Index('ix_demand_forecast_location_period', 'location_id', 'period_start'),
    )

    def __repr__(self):
        return (f"<DemandForecast(variant={self.product_variant_id}, location={self.location_id}, "
                f"period_start={self.period_start}, demand={self.forecasted_demand}, "
                f"method='{self.forecast_method}')>")
