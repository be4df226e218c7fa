"""Customers blueprint."""
from flask import Blueprint, current_app, g, request

from retail.blueprints import json_body, ok, query_limit
from retail.database import get_session
from retail.middleware import require_login
from retail.services import customer_service

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')


@customers_bp.route('', methods=['POST'])
@require_login
def create_customer():
    customer = customer_service.create_customer(get_session(), json_body())
    current_app.logger.info(f"Customer #{customer.id} created via API by user {g.user_id}")
    return ok(customer.to_dict(), 201)


@customers_bp.route('', methods=['GET'])
@require_login
def list_customers():
    """Customers by name; ``?search=`` matches name, phone or email."""
    customers = customer_service.list_customers(
        get_session(), search=request.args.get('search'), limit=query_limit()
    )
    return ok([c.to_dict() for c in customers])


@customers_bp.route('/<int:customer_id>', methods=['GET'])
@require_login
def get_customer(customer_id):
    return ok(customer_service.get_customer(get_session(), customer_id).to_dict())


@customers_bp.route('/<int:customer_id>', methods=['PATCH', 'PUT'])
@require_login
def update_customer(customer_id):
    customer = customer_service.update_customer(get_session(), customer_id, json_body())
    return ok(customer.to_dict())
