"""Read models returned by the workflow services.

Services never hand ORM instances to callers: the session that loaded them
is closed at the end of the request. These frozen records carry the
persisted values plus the display fields joined from related rows.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class OrderItemResult(_Serializable):
    id: int
    product_id: int
    product_name: Optional[str]
    product_sku: Optional[str]
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    @classmethod
    def from_model(cls, item) -> "OrderItemResult":
        product = item.product
        return cls(
            id=item.id,
            product_id=item.product_id,
            product_name=product.name if product else None,
            product_sku=product.sku if product else None,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
        )


@dataclass(frozen=True)
class OrderResult(_Serializable):
    id: int
    customer_id: Optional[int]
    customer_name: Optional[str]
    customer_phone: Optional[str]
    customer_email: Optional[str]
    created_by: int
    created_by_username: Optional[str]
    created_by_name: Optional[str]
    final_amount: Decimal
    payment_status: str
    order_status: str
    note: Optional[str]
    created_at: Optional[datetime]
    items: Tuple[OrderItemResult, ...] = ()

    @classmethod
    def from_model(cls, order, with_items: bool = True) -> "OrderResult":
        customer = order.customer
        creator = order.creator
        items = tuple(OrderItemResult.from_model(i) for i in order.items) if with_items else ()
        return cls(
            id=order.id,
            customer_id=order.customer_id,
            customer_name=customer.name if customer else None,
            customer_phone=customer.phone if customer else None,
            customer_email=customer.email if customer else None,
            created_by=order.created_by,
            created_by_username=creator.username if creator else None,
            created_by_name=creator.full_name if creator else None,
            final_amount=order.final_amount,
            payment_status=order.payment_status.value,
            order_status=order.order_status.value,
            note=order.note,
            created_at=order.created_at,
            items=items,
        )


@dataclass(frozen=True)
class StockInItemResult(_Serializable):
    id: int
    product_id: int
    product_name: Optional[str]
    product_sku: Optional[str]
    current_cost_price: Optional[Decimal]
    quantity: int
    unit_cost: Decimal
    total_price: Decimal

    @classmethod
    def from_model(cls, item) -> "StockInItemResult":
        product = item.product
        return cls(
            id=item.id,
            product_id=item.product_id,
            product_name=product.name if product else None,
            product_sku=product.sku if product else None,
            current_cost_price=product.cost_price if product else None,
            quantity=item.quantity,
            unit_cost=item.unit_cost,
            total_price=item.total_price,
        )


@dataclass(frozen=True)
class StockInResult(_Serializable):
    id: int
    supplier_id: int
    supplier_name: Optional[str]
    created_by: int
    created_by_username: Optional[str]
    total_amount: Decimal
    status: str
    note: Optional[str]
    created_at: Optional[datetime]
    items: Tuple[StockInItemResult, ...] = ()

    @classmethod
    def from_model(cls, receipt, with_items: bool = True) -> "StockInResult":
        supplier = receipt.supplier
        creator = receipt.creator
        items = tuple(StockInItemResult.from_model(i) for i in receipt.items) if with_items else ()
        return cls(
            id=receipt.id,
            supplier_id=receipt.supplier_id,
            supplier_name=supplier.name if supplier else None,
            created_by=receipt.created_by,
            created_by_username=creator.username if creator else None,
            total_amount=receipt.total_amount,
            status=receipt.status.value,
            note=receipt.note,
            created_at=receipt.created_at,
            items=items,
        )


@dataclass(frozen=True)
class TransactionResult(_Serializable):
    id: int
    product_id: int
    type: str
    quantity: int
    signed_quantity: int
    reference_type: str
    reference_id: int
    note: Optional[str]
    created_by: Optional[int]
    created_at: Optional[datetime]

    @classmethod
    def from_model(cls, tx) -> "TransactionResult":
        return cls(
            id=tx.id,
            product_id=tx.product_id,
            type=tx.type.value,
            quantity=tx.quantity,
            signed_quantity=tx.signed_quantity,
            reference_type=tx.reference_type.value,
            reference_id=tx.reference_id,
            note=tx.note,
            created_by=tx.created_by,
            created_at=tx.created_at,
        )


@dataclass(frozen=True)
class ProductResult(_Serializable):
    id: int
    sku: str
    name: str
    price: Decimal
    cost_price: Decimal
    stock_quantity: int
    min_stock: int
    max_stock: Optional[int]
    status: str

    @classmethod
    def from_model(cls, product) -> "ProductResult":
        return cls(
            id=product.id,
            sku=product.sku,
            name=product.name,
            price=product.price,
            cost_price=product.cost_price,
            stock_quantity=product.stock_quantity,
            min_stock=product.min_stock,
            max_stock=product.max_stock,
            status=product.status.value,
        )


@dataclass(frozen=True)
class StockDiscrepancy(_Serializable):
    """A product whose stored stock disagrees with its ledger."""
    product_id: int
    sku: str
    stock_quantity: int
    ledger_quantity: int

    @property
    def difference(self) -> int:
        return self.stock_quantity - self.ledger_quantity


@dataclass(frozen=True)
class InventoryLineResult(_Serializable):
    """Current stock of one product with its value at cost."""
    product_id: int
    sku: str
    name: str
    stock_quantity: int
    min_stock: int
    max_stock: Optional[int]
    price: Decimal
    cost_price: Decimal
    inventory_value: Decimal
    stock_status: str

    @classmethod
    def from_model(cls, product, inventory_value: Decimal, stock_status: str) -> "InventoryLineResult":
        return cls(
            product_id=product.id,
            sku=product.sku,
            name=product.name,
            stock_quantity=product.stock_quantity,
            min_stock=product.min_stock,
            max_stock=product.max_stock,
            price=product.price,
            cost_price=product.cost_price,
            inventory_value=inventory_value,
            stock_status=stock_status,
        )


@dataclass(frozen=True)
class CustomerResult(_Serializable):
    id: int
    name: str
    phone: Optional[str]
    email: Optional[str]
    address: Optional[str]
    created_at: Optional[datetime]

    @classmethod
    def from_model(cls, customer) -> "CustomerResult":
        return cls(
            id=customer.id,
            name=customer.name,
            phone=customer.phone,
            email=customer.email,
            address=customer.address,
            created_at=customer.created_at,
        )


@dataclass(frozen=True)
class SupplierResult(_Serializable):
    id: int
    name: str
    contact_person: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    created_at: Optional[datetime]

    @classmethod
    def from_model(cls, supplier) -> "SupplierResult":
        return cls(
            id=supplier.id,
            name=supplier.name,
            contact_person=supplier.contact_person,
            phone=supplier.phone,
            email=supplier.email,
            created_at=supplier.created_at,
        )
