"""Sales orders blueprint."""
from flask import Blueprint, current_app, g, request

from retail.blueprints import json_body, ok, query_limit
from retail.database import get_session
from retail.middleware import require_login
from retail.services import order_service
from retail.utils.number_format import parse_optional_id

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('', methods=['POST'])
@require_login
def create_order():
    """Create a confirmed order and take its items out of stock."""
    payload = json_body()
    order = order_service.create_order(
        get_session(),
        items=payload.get('items'),
        actor_id=g.user_id,
        customer_id=parse_optional_id(payload.get('customer_id'), 'customer_id'),
        note=payload.get('note'),
    )
    current_app.logger.info(f"Order #{order.id} created via API by user {g.user_id}")
    return ok(order.to_dict(), 201)


@orders_bp.route('', methods=['GET'])
@require_login
def list_orders():
    orders = order_service.list_orders(
        get_session(),
        order_status=request.args.get('status') or None,
        payment_status=request.args.get('payment_status') or None,
        customer_id=parse_optional_id(request.args.get('customer_id'), 'customer_id'),
        limit=query_limit(),
    )
    return ok([o.to_dict() for o in orders])


@orders_bp.route('/<int:order_id>', methods=['GET'])
@require_login
def get_order(order_id):
    return ok(order_service.get_order(get_session(), order_id).to_dict())


@orders_bp.route('/<int:order_id>/status', methods=['PATCH', 'PUT'])
@require_login
def update_order_status(order_id):
    """Update order_status / payment_status / note. Never moves stock."""
    order = order_service.update_order_status(get_session(), order_id, json_body())
    return ok(order.to_dict())


@orders_bp.route('/<int:order_id>/cancel', methods=['POST'])
@require_login
def cancel_order(order_id):
    """Cancel an order and return its items to stock (idempotent)."""
    order = order_service.cancel_order(get_session(), order_id, actor_id=g.user_id)
    return ok(order.to_dict())
