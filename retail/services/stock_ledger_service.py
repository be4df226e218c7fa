"""
Stock ledger: the only code path that changes ``product.stock_quantity``.

Every change is paired with one append-only ``inventory_transaction`` row.
Functions here never commit; they run inside the caller's unit of work so
the stock change, the ledger row and the document that caused them are
committed or rolled back together.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import case, func, select, update

from retail.exceptions import InsufficientStockError, InvalidRequestError, ProductNotFoundError
from retail.models import (
    Product, ProductStatus, InventoryTransaction, TransactionType, ReferenceType
)
from retail.services.results import StockDiscrepancy

logger = logging.getLogger(__name__)


def lock_products(session, product_ids: Iterable[int], active_only: bool = True) -> Dict[int, Product]:
    """Load products FOR UPDATE and return them keyed by id.

    PostgreSQL holds the row locks until the unit of work ends; SQLite
    ignores FOR UPDATE but already serializes write transactions.
    """
    ids = sorted(set(product_ids))  # Stable lock order avoids deadlocks
    if not ids:
        return {}

    query = select(Product).where(Product.id.in_(ids))
    if active_only:
        query = query.where(Product.status == ProductStatus.ACTIVE)
    query = (
        query.order_by(Product.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )

    products = session.execute(query).scalars().all()
    return {p.id: p for p in products}


def apply_movement(
    session,
    product_id: int,
    signed_quantity: int,
    reference_type: ReferenceType,
    reference_id: int,
    note: Optional[str],
    actor_id: Optional[int],
) -> InventoryTransaction:
    """
    Move stock for one product and append the matching ledger row.

    A negative quantity is an export: it is applied as a conditional
    decrement that only matches an active product holding enough stock, so
    two concurrent exports can never drive the quantity below zero. A
    positive quantity is an import and applies to any existing product
    (returns of discontinued products included).

    Raises:
        InvalidRequestError: quantity is zero or not an integer
        ProductNotFoundError: product missing (or inactive, for exports)
        InsufficientStockError: export larger than the available stock
    """
    if isinstance(signed_quantity, bool) or not isinstance(signed_quantity, int) or signed_quantity == 0:
        raise InvalidRequestError('Stock movement quantity must be a non-zero integer')

    quantity = abs(signed_quantity)

    if signed_quantity < 0:
        movement_type = TransactionType.EXPORT
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.status == ProductStatus.ACTIVE,
                Product.stock_quantity >= quantity,
            )
            .values(stock_quantity=Product.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
    else:
        movement_type = TransactionType.IMPORT
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=Product.stock_quantity + quantity)
            .execution_options(synchronize_session=False)
        )

    result = session.execute(stmt)

    if result.rowcount != 1:
        _raise_movement_rejected(session, product_id, quantity, movement_type)

    transaction = InventoryTransaction(
        product_id=product_id,
        type=movement_type,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        note=note,
        created_by=actor_id,
    )
    session.add(transaction)
    session.flush()

    logger.debug(
        "Stock %s of %s for product %s (%s #%s)",
        movement_type.value, quantity, product_id, reference_type.value, reference_id
    )
    return transaction


def _raise_movement_rejected(session, product_id, quantity, movement_type):
    """Work out why a stock UPDATE matched no row and raise accordingly."""
    row = session.execute(
        select(Product.name, Product.stock_quantity, Product.status).where(Product.id == product_id)
    ).first()

    if row is None:
        raise ProductNotFoundError(product_id)
    if movement_type == TransactionType.EXPORT and row.status != ProductStatus.ACTIVE:
        raise ProductNotFoundError(product_id)

    logger.warning(
        "Rejected export of %s for product %s: only %s in stock",
        quantity, product_id, row.stock_quantity
    )
    raise InsufficientStockError(
        row.name, available=row.stock_quantity, requested=quantity, product_id=product_id
    )


def set_cost_price(session, product_id: int, unit_cost: Decimal) -> None:
    """Overwrite the product's cost basis with the latest receipt cost."""
    session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(cost_price=unit_cost)
        .execution_options(synchronize_session=False)
    )


def _signed_sum():
    return func.coalesce(func.sum(
        case(
            (InventoryTransaction.type == TransactionType.IMPORT, InventoryTransaction.quantity),
            else_=-InventoryTransaction.quantity,
        )
    ), 0)


def reconstruct_stock(session, product_id: int, as_of: Optional[datetime] = None) -> int:
    """Stock level of a product computed from its ledger rows alone."""
    query = select(_signed_sum()).where(InventoryTransaction.product_id == product_id)
    if as_of is not None:
        query = query.where(InventoryTransaction.created_at <= as_of)
    return int(session.execute(query).scalar_one())


def ledger_totals(session, as_of: Optional[datetime] = None) -> Dict[int, int]:
    """Reconstructed stock for every product with at least one ledger row."""
    query = (
        select(InventoryTransaction.product_id, _signed_sum())
        .group_by(InventoryTransaction.product_id)
    )
    if as_of is not None:
        query = query.where(InventoryTransaction.created_at <= as_of)
    return {product_id: int(total) for product_id, total in session.execute(query)}


def verify_stock(session, product_id: Optional[int] = None) -> List[StockDiscrepancy]:
    """Compare stored stock against the ledger; return every mismatch."""
    query = select(Product.id, Product.sku, Product.stock_quantity).order_by(Product.id)
    if product_id is not None:
        query = query.where(Product.id == product_id)

    totals = ledger_totals(session)
    discrepancies = []
    for pid, sku, stock_quantity in session.execute(query):
        ledger_quantity = totals.get(pid, 0)
        if stock_quantity != ledger_quantity:
            discrepancies.append(StockDiscrepancy(
                product_id=pid,
                sku=sku,
                stock_quantity=stock_quantity,
                ledger_quantity=ledger_quantity,
            ))

    if discrepancies:
        logger.error("Stock ledger mismatch on %d product(s)", len(discrepancies))
    return discrepancies
