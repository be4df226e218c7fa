"""Products blueprint (catalog entries the workflows depend on)."""
from flask import Blueprint, current_app, g

from retail.blueprints import json_body, ok
from retail.database import get_session
from retail.middleware import require_login
from retail.services import product_service

products_bp = Blueprint('products', __name__, url_prefix='/api/products')


@products_bp.route('', methods=['POST'])
@require_login
def create_product():
    payload = json_body()
    product = product_service.create_product(
        get_session(),
        sku=payload.get('sku'),
        name=payload.get('name'),
        price=payload.get('price'),
        cost_price=payload.get('cost_price', 0),
        min_stock=payload.get('min_stock', 0),
        max_stock=payload.get('max_stock'),
        description=payload.get('description'),
    )
    return ok(product.to_dict(), 201)


@products_bp.route('/<int:product_id>', methods=['GET'])
@require_login
def get_product(product_id):
    return ok(product_service.get_product(get_session(), product_id).to_dict())


@products_bp.route('/<int:product_id>', methods=['DELETE'])
@require_login
def delete_product(product_id):
    """Soft delete: the product is flagged deleted, history is kept."""
    return ok(product_service.soft_delete_product(get_session(), product_id).to_dict())


@products_bp.route('/<int:product_id>', methods=['PATCH', 'PUT'])
@require_login
def update_product(product_id):
    """Update catalog fields. ``stock_quantity`` is rejected."""
    product = product_service.update_product(get_session(), product_id, json_body())
    current_app.logger.info(f"Product #{product_id} updated via API by user {g.user_id}")
    return ok(product.to_dict())
