"""Stock-in (purchase receipt) service with transactional logic."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from retail.database import transaction
from retail.exceptions import (
    InvalidRequestError, InvalidStatusError, ProductNotFoundError, ReceiptNotFoundError
)
from retail.metrics import stock_in_confirmed_total, stock_movements_total
from retail.models import (
    ReferenceType, StockInItem, StockInOrder, StockInStatus, Supplier
)
from retail.services import status_guard
from retail.services.results import StockInItemResult, StockInResult
from retail.services.stock_ledger_service import apply_movement, lock_products, set_cost_price
from retail.utils.number_format import CENTS, TOTAL_LIMIT, ensure_money_fits, parse_money, parse_quantity

logger = logging.getLogger(__name__)


def create_stock_in(
    session,
    supplier_id: int,
    items: List[Dict[str, Any]],
    actor_id: int,
    status: str = 'draft',
    note: Optional[str] = None,
) -> StockInResult:
    """
    Create a stock-in receipt with its lines.

    Steps:
    1. Validate status, supplier and lines
    2. Calculate totals (quantity x unit_cost)
    3. Create stock_in_order + stock_in_item rows
    4. When created as confirmed: import each line through the stock
       ledger and overwrite the product cost price
    5. Commit transaction

    A draft receipt has no inventory effect until it is confirmed.

    Args:
        session: SQLAlchemy session (unit of work)
        supplier_id: supplier delivering the goods
        items: list of {product_id, quantity, unit_cost}
        actor_id: id of the user recording the receipt
        status: 'draft' (default) or 'confirmed'
        note: free text

    Returns:
        StockInResult with items

    Raises:
        InvalidRequestError: empty items, bad values or unknown supplier
        InvalidStatusError: unknown status, or 'cancelled' at creation
        ProductNotFoundError: product missing or deleted
        StorageError: database failure
    """
    receipt_status = status_guard.parse_stock_in_status(status or StockInStatus.DRAFT)
    if receipt_status == StockInStatus.CANCELLED:
        raise InvalidStatusError('A receipt cannot be created as cancelled', field='status')

    lines = _normalize_stock_in_lines(items)
    total_amount = sum((line['total_price'] for line in lines), Decimal('0.00')).quantize(CENTS)
    ensure_money_fits(total_amount, 'Receipt total', TOTAL_LIMIT)

    with transaction(session):
        if session.get(Supplier, supplier_id) is None:
            raise InvalidRequestError(f'Supplier {supplier_id} does not exist')

        products = lock_products(session, [line['product_id'] for line in lines])
        for line in lines:
            if line['product_id'] not in products:
                raise ProductNotFoundError(line['product_id'])

        receipt = StockInOrder(
            supplier_id=supplier_id,
            created_by=actor_id,
            total_amount=total_amount,
            status=receipt_status,
            note=note,
        )
        session.add(receipt)
        session.flush()  # Get receipt.id

        for line in lines:
            session.add(StockInItem(
                stock_in_order_id=receipt.id,
                product_id=line['product_id'],
                quantity=line['quantity'],
                unit_cost=line['unit_cost'],
                total_price=line['total_price'],
            ))

        if receipt_status == StockInStatus.CONFIRMED:
            _apply_receipt_lines(session, receipt.id, lines, actor_id)

        receipt_id = receipt.id

    if receipt_status == StockInStatus.CONFIRMED:
        _record_confirmation(receipt_id, len(lines), actor_id)
    logger.info(
        "Stock-in #%s created as %s by user %s: %d line(s), total %s",
        receipt_id, receipt_status.value, actor_id, len(lines), total_amount
    )
    return get_stock_in(session, receipt_id)


def update_stock_in_status(session, stock_in_id: int, new_status: str, actor_id: int) -> StockInResult:
    """
    Move a receipt to a new status.

    - draft -> confirmed: imports every line and updates cost prices
    - confirmed -> confirmed: no-op (never credits stock twice)
    - draft/confirmed -> cancelled: status change only; stock already
      received through a confirmed receipt stays in inventory
    - anything out of cancelled, or confirmed -> draft: InvalidStatusError

    Raises:
        InvalidStatusError: unknown status or forbidden transition
        ReceiptNotFoundError: receipt does not exist
        StorageError: database failure
    """
    requested = status_guard.parse_stock_in_status(new_status)
    applied_lines = 0

    with transaction(session):
        receipt = session.execute(
            select(StockInOrder).where(StockInOrder.id == stock_in_id).with_for_update()
        ).scalar_one_or_none()
        if receipt is None:
            raise ReceiptNotFoundError(stock_in_id)

        previous = receipt.status
        applies_stock = status_guard.check_stock_in_transition(previous, requested)

        if applies_stock:
            items = session.execute(
                select(StockInItem)
                .where(StockInItem.stock_in_order_id == stock_in_id)
                .order_by(StockInItem.id)
            ).scalars().all()
            lines = [
                {'product_id': i.product_id, 'quantity': i.quantity, 'unit_cost': i.unit_cost}
                for i in items
            ]
            _apply_receipt_lines(session, stock_in_id, lines, actor_id)
            applied_lines = len(lines)

        receipt.status = requested

    if applies_stock:
        _record_confirmation(stock_in_id, applied_lines, actor_id)
    elif previous == requested:
        logger.info("Stock-in #%s already %s, nothing to do", stock_in_id, requested.value)
    elif previous == StockInStatus.CONFIRMED and requested == StockInStatus.CANCELLED:
        logger.warning(
            "Stock-in #%s cancelled after confirmation; received stock was not reversed",
            stock_in_id
        )
    else:
        logger.info("Stock-in #%s changed from %s to %s", stock_in_id, previous.value, requested.value)

    return get_stock_in(session, stock_in_id)


def cancel_stock_in(session, stock_in_id: int, actor_id: int) -> StockInResult:
    """Cancel a receipt (status change only, see update_stock_in_status)."""
    return update_stock_in_status(session, stock_in_id, StockInStatus.CANCELLED, actor_id)


def get_stock_in(session, stock_in_id: int) -> StockInResult:
    """Load one receipt with supplier, creator and items."""
    receipt = session.execute(
        select(StockInOrder)
        .where(StockInOrder.id == stock_in_id)
        .options(
            selectinload(StockInOrder.items).selectinload(StockInItem.product),
            selectinload(StockInOrder.supplier),
            selectinload(StockInOrder.creator),
        )
    ).scalar_one_or_none()

    if receipt is None:
        raise ReceiptNotFoundError(stock_in_id)
    return StockInResult.from_model(receipt)


def get_stock_in_items(session, stock_in_id: int) -> List[StockInItemResult]:
    """Receipt lines with product name, sku and current cost price."""
    if session.get(StockInOrder, stock_in_id) is None:
        raise ReceiptNotFoundError(stock_in_id)

    items = session.execute(
        select(StockInItem)
        .where(StockInItem.stock_in_order_id == stock_in_id)
        .options(selectinload(StockInItem.product))
        .order_by(StockInItem.id)
    ).scalars().all()
    return [StockInItemResult.from_model(i) for i in items]


def list_stock_ins(
    session,
    status: Optional[str] = None,
    supplier_id: Optional[int] = None,
    limit: int = 50,
) -> List[StockInResult]:
    """Most recent receipts (headers only), optionally filtered."""
    query = (
        select(StockInOrder)
        .options(selectinload(StockInOrder.supplier), selectinload(StockInOrder.creator))
        .order_by(StockInOrder.created_at.desc(), StockInOrder.id.desc())
        .limit(limit)
    )
    if status:
        query = query.where(StockInOrder.status == status_guard.parse_stock_in_status(status))
    if supplier_id is not None:
        query = query.where(StockInOrder.supplier_id == supplier_id)

    receipts = session.execute(query).scalars().all()
    return [StockInResult.from_model(r, with_items=False) for r in receipts]


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _apply_receipt_lines(session, stock_in_id: int, lines, actor_id: int) -> None:
    """Import each line and make its unit cost the product's cost price.

    Lines are applied in order, so when a receipt lists the same product
    twice the last line's cost wins.
    """
    for line in lines:
        apply_movement(
            session,
            line['product_id'],
            line['quantity'],
            ReferenceType.STOCK_IN,
            stock_in_id,
            f'Stock in from receipt #{stock_in_id}',
            actor_id,
        )
        set_cost_price(session, line['product_id'], line['unit_cost'])


def _record_confirmation(stock_in_id: int, line_count: int, actor_id: int) -> None:
    stock_in_confirmed_total.inc()
    stock_movements_total.labels(type='import').inc(line_count)
    logger.info(
        "Stock-in #%s confirmed by user %s, %d line(s) received",
        stock_in_id, actor_id, line_count
    )


def _normalize_stock_in_lines(items) -> List[Dict[str, Any]]:
    """Validate receipt lines and compute their totals."""
    if not items or not isinstance(items, (list, tuple)):
        raise InvalidRequestError('A receipt needs at least one item')

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidRequestError('Each item must provide product_id, quantity and unit_cost')
        product_id = parse_quantity(item.get('product_id'), 'product_id')
        quantity = parse_quantity(item.get('quantity'), 'quantity')
        unit_cost = parse_money(item.get('unit_cost'), 'unit_cost')
        lines.append({
            'product_id': product_id,
            'quantity': quantity,
            'unit_cost': unit_cost,
            'total_price': (unit_cost * quantity).quantize(CENTS),
        })
    return lines
