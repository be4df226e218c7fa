"""
Sales order service with transactional logic.
Handles order creation, cancellation (stock reversal) and status updates.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from retail.database import transaction
from retail.exceptions import (
    InvalidRequestError, InsufficientStockError, NothingToUpdateError,
    OrderNotFoundError, ProductNotFoundError
)
from retail.metrics import (
    orders_created_total, orders_cancelled_total, stock_movements_total, insufficient_stock_total
)
from retail.models import (
    Customer, Order, OrderItem, OrderStatus, PaymentStatus, ReferenceType
)
from retail.services import status_guard
from retail.services.results import OrderResult
from retail.services.stock_ledger_service import apply_movement, lock_products
from retail.utils.number_format import CENTS, ensure_money_fits, parse_quantity

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('order_status', 'payment_status', 'note')


def create_order(
    session,
    items: List[Dict[str, Any]],
    actor_id: int,
    customer_id: Optional[int] = None,
    note: Optional[str] = None,
) -> OrderResult:
    """
    Create a confirmed sales order and take its goods out of stock.

    Steps:
    1. Validate the request lines
    2. Lock the requested products (active only) and check stock
    3. Snapshot unit prices and compute totals
    4. Insert order + order items
    5. Export each line through the stock ledger
    6. Commit, or roll everything back on any failure

    Args:
        session: SQLAlchemy session (unit of work)
        items: list of {product_id, quantity}
        actor_id: id of the user creating the order
        customer_id: optional customer reference
        note: free text

    Returns:
        OrderResult with items and display fields

    Raises:
        InvalidRequestError: empty items, bad quantity or unknown customer
        ProductNotFoundError: product missing or deleted
        InsufficientStockError: a line asks for more than is in stock
        StorageError: database failure
    """
    lines = _normalize_order_lines(items)

    try:
        with transaction(session):
            if customer_id is not None and session.get(Customer, customer_id) is None:
                raise InvalidRequestError(f'Customer {customer_id} does not exist')

            # Read for pricing and stock check under the same lock as the write
            products = lock_products(session, [line['product_id'] for line in lines])

            requested_by_product: Dict[int, int] = {}
            for line in lines:
                if line['product_id'] not in products:
                    raise ProductNotFoundError(line['product_id'])
                requested_by_product[line['product_id']] = (
                    requested_by_product.get(line['product_id'], 0) + line['quantity']
                )

            for product_id, requested in requested_by_product.items():
                product = products[product_id]
                if product.stock_quantity < requested:
                    raise InsufficientStockError(
                        product.name,
                        available=product.stock_quantity,
                        requested=requested,
                        product_id=product_id,
                    )

            final_amount = Decimal('0.00')
            priced_lines = []
            for line in lines:
                product = products[line['product_id']]
                unit_price = Decimal(product.price).quantize(CENTS)
                total_price = (unit_price * line['quantity']).quantize(CENTS)
                priced_lines.append((line, unit_price, total_price))
                final_amount += total_price

            ensure_money_fits(final_amount, 'Order total')

            order = Order(
                customer_id=customer_id,
                created_by=actor_id,
                final_amount=final_amount.quantize(CENTS),
                payment_status=PaymentStatus.PENDING,
                order_status=OrderStatus.CONFIRMED,
                note=note,
            )
            session.add(order)
            session.flush()  # Get order.id

            for line, unit_price, total_price in priced_lines:
                session.add(OrderItem(
                    order_id=order.id,
                    product_id=line['product_id'],
                    quantity=line['quantity'],
                    unit_price=unit_price,
                    total_price=total_price,
                ))
                apply_movement(
                    session,
                    line['product_id'],
                    -line['quantity'],
                    ReferenceType.ORDER,
                    order.id,
                    f'Stock out for order #{order.id}',
                    actor_id,
                )

            order_id = order.id
    except InsufficientStockError:
        insufficient_stock_total.inc()
        raise

    orders_created_total.inc()
    stock_movements_total.labels(type='export').inc(len(lines))
    logger.info(
        "Order #%s created by user %s: %d line(s), total %s",
        order_id, actor_id, len(lines), final_amount
    )
    return get_order(session, order_id)


def cancel_order(session, order_id: int, actor_id: int) -> OrderResult:
    """
    Cancel an order and return every line to stock.

    Cancelling an order that is already cancelled changes nothing, so a
    repeated request can never restock twice.

    Raises:
        OrderNotFoundError: order does not exist
        StorageError: database failure
    """
    restocked = 0
    with transaction(session):
        order = session.execute(
            select(Order).where(Order.id == order_id).with_for_update()
        ).scalar_one_or_none()

        if order is None:
            raise OrderNotFoundError(order_id)

        if order.is_cancelled:
            logger.info("Order #%s already cancelled, nothing to reverse", order_id)
        else:
            items = session.execute(
                select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
            ).scalars().all()
            # Deleted products still take their stock back
            lock_products(session, [item.product_id for item in items], active_only=False)

            for item in items:
                apply_movement(
                    session,
                    item.product_id,
                    item.quantity,
                    ReferenceType.ORDER,
                    order_id,
                    f'Stock returned, order #{order_id} cancelled',
                    actor_id,
                )
                restocked += 1

            order.order_status = OrderStatus.CANCELLED

    if restocked:
        orders_cancelled_total.inc()
        stock_movements_total.labels(type='import').inc(restocked)
        logger.info("Order #%s cancelled by user %s, %d line(s) restocked", order_id, actor_id, restocked)
    return get_order(session, order_id)


def update_order_status(session, order_id: int, changes: Dict[str, Any]) -> OrderResult:
    """
    Update order metadata (order_status, payment_status, note).

    Never moves stock. Unknown keys are ignored; status values are
    validated before anything is written.

    Raises:
        NothingToUpdateError: no updatable field supplied
        InvalidStatusError: unrecognized status or forbidden change
        OrderNotFoundError: order does not exist
    """
    updates = {k: v for k, v in (changes or {}).items() if k in UPDATABLE_FIELDS and v is not None}
    if not updates:
        raise NothingToUpdateError()

    order_status = None
    if 'order_status' in updates:
        order_status = status_guard.parse_order_status(updates['order_status'])
    payment_status = None
    if 'payment_status' in updates:
        payment_status = status_guard.parse_payment_status(updates['payment_status'])

    with transaction(session):
        order = session.execute(
            select(Order).where(Order.id == order_id).with_for_update()
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)

        status_guard.check_order_status_change(order.order_status, order_status)

        if order_status is not None:
            order.order_status = order_status
        if payment_status is not None:
            order.payment_status = payment_status
        if 'note' in updates:
            order.note = updates['note']

    logger.info("Order #%s updated: %s", order_id, ', '.join(sorted(updates)))
    return get_order(session, order_id)


def get_order(session, order_id: int) -> OrderResult:
    """Load one order with its items, customer and creator."""
    order = session.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.customer),
            selectinload(Order.creator),
        )
    ).scalar_one_or_none()

    if order is None:
        raise OrderNotFoundError(order_id)
    return OrderResult.from_model(order)


def list_orders(
    session,
    order_status: Optional[str] = None,
    payment_status: Optional[str] = None,
    customer_id: Optional[int] = None,
    limit: int = 50,
) -> List[OrderResult]:
    """Most recent orders (headers only), optionally filtered."""
    query = (
        select(Order)
        .options(selectinload(Order.customer), selectinload(Order.creator))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
    )
    if order_status:
        query = query.where(Order.order_status == status_guard.parse_order_status(order_status))
    if payment_status:
        query = query.where(Order.payment_status == status_guard.parse_payment_status(payment_status))
    if customer_id is not None:
        query = query.where(Order.customer_id == customer_id)

    orders = session.execute(query).scalars().all()
    return [OrderResult.from_model(o, with_items=False) for o in orders]


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _normalize_order_lines(items) -> List[Dict[str, int]]:
    """Validate request lines and coerce them to ints."""
    if not items or not isinstance(items, (list, tuple)):
        raise InvalidRequestError('An order needs at least one item')

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidRequestError('Each item must provide product_id and quantity')
        product_id = parse_quantity(item.get('product_id'), 'product_id')
        quantity = parse_quantity(item.get('quantity'), 'quantity')
        lines.append({'product_id': product_id, 'quantity': quantity})
    return lines

