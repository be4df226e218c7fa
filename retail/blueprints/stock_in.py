"""Stock-in receipts blueprint."""
from flask import Blueprint, current_app, g, request

from retail.blueprints import json_body, ok, query_limit
from retail.database import get_session
from retail.middleware import require_login
from retail.services import stock_in_service
from retail.utils.number_format import parse_optional_id, parse_quantity

stock_in_bp = Blueprint('stock_in', __name__, url_prefix='/api/stock-in')


@stock_in_bp.route('', methods=['POST'])
@require_login
def create_stock_in():
    """Record goods received from a supplier (draft unless status=confirmed)."""
    payload = json_body()
    receipt = stock_in_service.create_stock_in(
        get_session(),
        supplier_id=parse_quantity(payload.get('supplier_id'), 'supplier_id'),
        items=payload.get('items'),
        actor_id=g.user_id,
        status=payload.get('status') or 'draft',
        note=payload.get('note'),
    )
    current_app.logger.info(f"Stock-in #{receipt.id} created via API by user {g.user_id}")
    return ok(receipt.to_dict(), 201)


@stock_in_bp.route('', methods=['GET'])
@require_login
def list_stock_ins():
    receipts = stock_in_service.list_stock_ins(
        get_session(),
        status=request.args.get('status') or None,
        supplier_id=parse_optional_id(request.args.get('supplier_id'), 'supplier_id'),
        limit=query_limit(),
    )
    return ok([r.to_dict() for r in receipts])


@stock_in_bp.route('/<int:stock_in_id>', methods=['GET'])
@require_login
def get_stock_in(stock_in_id):
    return ok(stock_in_service.get_stock_in(get_session(), stock_in_id).to_dict())


@stock_in_bp.route('/<int:stock_in_id>/items', methods=['GET'])
@require_login
def get_stock_in_items(stock_in_id):
    items = stock_in_service.get_stock_in_items(get_session(), stock_in_id)
    return ok([i.to_dict() for i in items])


@stock_in_bp.route('/<int:stock_in_id>/status', methods=['PATCH', 'PUT'])
@require_login
def update_stock_in_status(stock_in_id):
    """Confirm (applies stock) or cancel a receipt."""
    payload = json_body()
    receipt = stock_in_service.update_stock_in_status(
        get_session(), stock_in_id, payload.get('status'), actor_id=g.user_id
    )
    return ok(receipt.to_dict())


@stock_in_bp.route('/<int:stock_in_id>/cancel', methods=['POST'])
@require_login
def cancel_stock_in(stock_in_id):
    receipt = stock_in_service.cancel_stock_in(get_session(), stock_in_id, actor_id=g.user_id)
    return ok(receipt.to_dict())
