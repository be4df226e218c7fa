"""Stock-in (purchase receipt) model."""
import enum

from sqlalchemy import Column, BigInteger, Numeric, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from retail.database import Base, Id


class StockInStatus(str, enum.Enum):
    """Receipt status. Only ``confirmed`` has an inventory effect."""
    DRAFT = 'draft'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'


class StockInOrder(Base):
    """Goods received from a supplier."""

    __tablename__ = 'stock_in_order'

    id = Column(Id, primary_key=True, autoincrement=True)
    supplier_id = Column(BigInteger, ForeignKey('supplier.id'), nullable=False)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(
        Enum(StockInStatus, name='stock_in_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=StockInStatus.DRAFT
    )
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    supplier = relationship('Supplier', back_populates='stock_in_orders')
    creator = relationship('AppUser')
    items = relationship(
        'StockInItem',
        back_populates='stock_in_order',
        cascade='all, delete-orphan',
        order_by='StockInItem.id'
    )

    def __repr__(self):
        return f"<StockInOrder(id={self.id}, total_amount={self.total_amount}, status={self.status.value})>"
