"""Status value checks for orders and stock-in receipts.

Order statuses are checked as a value set only: any recognized status may
follow any other, except that a cancelled order is terminal and the
cancelled state is only reachable through the cancel workflow (which
restocks). Stock-in receipts have a small transition table because the
confirmed transition moves stock.
"""
from typing import Optional

from retail.exceptions import InvalidStatusError
from retail.models import OrderStatus, PaymentStatus, StockInStatus


def _parse(enum_cls, value, field: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    allowed = ', '.join(m.value for m in enum_cls)
    raise InvalidStatusError(
        f'Invalid {field} "{value}". Must be one of: {allowed}',
        field=field
    )


def parse_order_status(value) -> OrderStatus:
    return _parse(OrderStatus, value, 'order_status')


def parse_payment_status(value) -> PaymentStatus:
    return _parse(PaymentStatus, value, 'payment_status')


def parse_stock_in_status(value) -> StockInStatus:
    return _parse(StockInStatus, value, 'status')


def check_order_status_change(current: OrderStatus, requested: Optional[OrderStatus]) -> None:
    """Reject order status changes that would bypass the cancel workflow."""
    if requested is None or requested == current:
        return
    if current == OrderStatus.CANCELLED:
        raise InvalidStatusError('Cancelled orders cannot change status', field='order_status')
    if requested == OrderStatus.CANCELLED:
        raise InvalidStatusError(
            'Use the cancel operation to cancel an order so its stock is returned',
            field='order_status'
        )


# (from, to) -> True when the transition applies the receipt to inventory
_STOCK_IN_TRANSITIONS = {
    (StockInStatus.DRAFT, StockInStatus.CONFIRMED): True,
    (StockInStatus.DRAFT, StockInStatus.CANCELLED): False,
    (StockInStatus.CONFIRMED, StockInStatus.CANCELLED): False,
}


def check_stock_in_transition(current: StockInStatus, requested: StockInStatus) -> bool:
    """Validate a receipt transition.

    Returns True when the transition must apply the receipt lines to the
    stock ledger. Same-status requests are accepted and never move stock.
    """
    if current == requested:
        return False
    try:
        return _STOCK_IN_TRANSITIONS[(current, requested)]
    except KeyError:
        raise InvalidStatusError(
            f'Cannot change a {current.value} receipt to {requested.value}',
            field='status'
        ) from None
