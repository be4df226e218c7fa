"""Sales order model."""
import enum

from sqlalchemy import Column, BigInteger, Numeric, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from retail.database import Base, Id


class OrderStatus(str, enum.Enum):
    """Order lifecycle status."""
    DRAFT = 'draft'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class PaymentStatus(str, enum.Enum):
    """Order payment status."""
    PENDING = 'pending'
    PAID = 'paid'
    REFUNDED = 'refunded'


def _values(enum_cls):
    return [m.value for m in enum_cls]


class Order(Base):
    """Sales order. ``final_amount`` is snapshotted from its items at creation."""

    __tablename__ = 'orders'

    id = Column(Id, primary_key=True, autoincrement=True)
    customer_id = Column(BigInteger, ForeignKey('customer.id'), nullable=True)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    final_amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_status = Column(
        Enum(PaymentStatus, name='payment_status', values_callable=_values),
        nullable=False,
        default=PaymentStatus.PENDING
    )
    order_status = Column(
        Enum(OrderStatus, name='order_status', values_callable=_values),
        nullable=False,
        default=OrderStatus.CONFIRMED
    )
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    customer = relationship('Customer', back_populates='orders')
    creator = relationship('AppUser')
    items = relationship(
        'OrderItem',
        back_populates='order',
        cascade='all, delete-orphan',
        order_by='OrderItem.id'
    )

    @property
    def is_cancelled(self):
        return self.order_status == OrderStatus.CANCELLED

    def __repr__(self):
        return f"<Order(id={self.id}, final_amount={self.final_amount}, status={self.order_status.value})>"
