"""Stock-in item model."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from retail.database import Base, Id


class StockInItem(Base):
    """Receipt line (quantity received at a unit cost)."""

    __tablename__ = 'stock_in_item'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_stock_in_item_quantity_positive'),
    )

    id = Column(Id, primary_key=True, autoincrement=True)
    stock_in_order_id = Column(BigInteger, ForeignKey('stock_in_order.id'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(14, 2), nullable=False)

    # Relationships
    stock_in_order = relationship('StockInOrder', back_populates='items')
    product = relationship('Product')

    def __repr__(self):
        return f"<StockInItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
