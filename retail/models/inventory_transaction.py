"""Inventory transaction (stock ledger) model."""
import enum

from sqlalchemy import Column, BigInteger, Integer, Text, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from retail.database import Base, Id


class TransactionType(str, enum.Enum):
    """Direction of a stock movement."""
    IMPORT = 'import'
    EXPORT = 'export'


class ReferenceType(str, enum.Enum):
    """Document that caused a stock movement."""
    ORDER = 'order'
    STOCK_IN = 'stock_in'


class InventoryTransaction(Base):
    """Append-only stock movement. Rows are never updated or deleted.

    ``quantity`` is always the positive magnitude; ``type`` carries the sign.
    """

    __tablename__ = 'inventory_transaction'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_inventory_transaction_quantity_positive'),
    )

    id = Column(Id, primary_key=True, autoincrement=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False, index=True)
    type = Column(
        Enum(TransactionType, name='inventory_transaction_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    quantity = Column(Integer, nullable=False)
    reference_type = Column(
        Enum(ReferenceType, name='inventory_reference_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    reference_id = Column(BigInteger, nullable=False)
    note = Column(Text, nullable=True)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    # Relationships
    product = relationship('Product')

    @property
    def signed_quantity(self):
        return self.quantity if self.type == TransactionType.IMPORT else -self.quantity

    def __repr__(self):
        return (
            f"<InventoryTransaction(id={self.id}, product_id={self.product_id}, "
            f"type={self.type.value}, quantity={self.quantity})>"
        )
