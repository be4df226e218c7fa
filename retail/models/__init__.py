"""Models package - exports all SQLAlchemy models."""
from retail.models.app_user import AppUser
from retail.models.customer import Customer
from retail.models.supplier import Supplier
from retail.models.product import Product, ProductStatus
from retail.models.order import Order, OrderStatus, PaymentStatus
from retail.models.order_item import OrderItem
from retail.models.stock_in_order import StockInOrder, StockInStatus
from retail.models.stock_in_item import StockInItem
from retail.models.inventory_transaction import InventoryTransaction, TransactionType, ReferenceType

__all__ = [
    'AppUser', 'Customer', 'Supplier',
    'Product', 'ProductStatus',
    'Order', 'OrderStatus', 'PaymentStatus', 'OrderItem',
    'StockInOrder', 'StockInStatus', 'StockInItem',
    'InventoryTransaction', 'TransactionType', 'ReferenceType',
]
