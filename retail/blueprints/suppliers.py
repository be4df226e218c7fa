"""Suppliers blueprint."""
from flask import Blueprint, current_app, g, request

from retail.blueprints import json_body, ok, query_limit
from retail.database import get_session
from retail.middleware import require_login
from retail.services import supplier_service

suppliers_bp = Blueprint('suppliers', __name__, url_prefix='/api/suppliers')


@suppliers_bp.route('', methods=['POST'])
@require_login
def create_supplier():
    """Create a supplier. Names are unique, ignoring case."""
    supplier = supplier_service.create_supplier(get_session(), json_body())
    current_app.logger.info(f"Supplier #{supplier.id} created via API by user {g.user_id}")
    return ok(supplier.to_dict(), 201)


@suppliers_bp.route('', methods=['GET'])
@require_login
def list_suppliers():
    suppliers = supplier_service.list_suppliers(
        get_session(), search=request.args.get('search'), limit=query_limit()
    )
    return ok([s.to_dict() for s in suppliers])


@suppliers_bp.route('/<int:supplier_id>', methods=['GET'])
@require_login
def get_supplier(supplier_id):
    return ok(supplier_service.get_supplier(get_session(), supplier_id).to_dict())


@suppliers_bp.route('/<int:supplier_id>', methods=['PATCH', 'PUT'])
@require_login
def update_supplier(supplier_id):
    supplier = supplier_service.update_supplier(get_session(), supplier_id, json_body())
    return ok(supplier.to_dict())
