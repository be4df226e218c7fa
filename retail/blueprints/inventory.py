"""Inventory blueprint: current stock, ledger history and checks."""
from flask import Blueprint, current_app, request

from retail.blueprints import ok, query_limit
from retail.database import get_session
from retail.exceptions import InvalidRequestError
from retail.middleware import require_login
from retail.services import inventory_service, product_service
from retail.services.stock_ledger_service import verify_stock
from retail.utils.date_format import parse_as_of

inventory_bp = Blueprint('inventory', __name__, url_prefix='/api/inventory')


@inventory_bp.route('', methods=['GET'])
@require_login
def current_inventory():
    """Stock and value at cost of active products (``?search=``, ``?limit=``)."""
    report = inventory_service.current_inventory(
        get_session(),
        search=request.args.get('search'),
        limit=query_limit(50, 500),
    )
    return ok(report)


@inventory_bp.route('/low-stock', methods=['GET'])
@require_login
def low_stock():
    """Active products at or below min_stock (or ``?threshold=``)."""
    threshold = request.args.get('threshold')
    if threshold:
        try:
            threshold = int(threshold)
        except ValueError:
            raise InvalidRequestError('threshold must be an integer') from None
    else:
        threshold = None
    products = product_service.list_low_stock(get_session(), threshold=threshold)
    return ok([p.to_dict() for p in products])


@inventory_bp.route('/products/<int:product_id>/history', methods=['GET'])
@require_login
def product_history(product_id):
    rows = inventory_service.product_history(get_session(), product_id, limit=query_limit(100, 500))
    return ok([r.to_dict() for r in rows])


@inventory_bp.route('/as-of', methods=['GET'])
@require_login
def inventory_as_of():
    """Stock per product at ``?date=`` (ISO date or datetime)."""
    as_of = parse_as_of(request.args.get('date'))
    return ok(inventory_service.inventory_as_of(get_session(), as_of))


@inventory_bp.route('/verify', methods=['GET'])
@require_login
def verify():
    """Products whose stored stock disagrees with the ledger."""
    discrepancies = verify_stock(get_session())
    if discrepancies:
        current_app.logger.error(f"Stock verification found {len(discrepancies)} mismatch(es)")
    return ok({
        'consistent': not discrepancies,
        'discrepancies': [d.to_dict() for d in discrepancies],
    })
