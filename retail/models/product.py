"""Product model."""
import enum

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, Enum, CheckConstraint
from sqlalchemy.sql import func

from retail.database import Base, Id


class ProductStatus(str, enum.Enum):
    """Product lifecycle. Deletion is a status flip, rows are never removed."""
    ACTIVE = 'active'
    DELETED = 'deleted'


class Product(Base):
    """Product model."""

    __tablename__ = 'product'
    __table_args__ = (
        CheckConstraint('stock_quantity >= 0', name='ck_product_stock_non_negative'),
    )

    id = Column(Id, primary_key=True, autoincrement=True)
    sku = Column(String(64), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)  # Selling price
    cost_price = Column(Numeric(12, 2), nullable=False, default=0, server_default='0.00')  # Last purchase cost
    # Only ever written by the stock ledger
    stock_quantity = Column(Integer, nullable=False, default=0, server_default='0')
    min_stock = Column(Integer, nullable=False, default=0, server_default='0')
    max_stock = Column(Integer, nullable=True)
    status = Column(
        Enum(ProductStatus, name='product_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ProductStatus.ACTIVE
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', sku='{self.sku}')>"

    @property
    def is_active(self):
        return self.status == ProductStatus.ACTIVE

    @property
    def is_low_stock(self):
        """True when stock is at or below the configured minimum."""
        return self.stock_quantity <= (self.min_stock or 0)
