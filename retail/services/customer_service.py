"""Customer records referenced by sales orders."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select

from retail.database import transaction
from retail.exceptions import CustomerNotFoundError, InvalidRequestError, NothingToUpdateError
from retail.models import Customer
from retail.services.results import CustomerResult
from retail.utils.contact_format import clean_contact_fields

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = ('name', 'phone', 'email', 'address')


def create_customer(session, data: Dict[str, Any]) -> CustomerResult:
    """
    Create a customer from name, phone, email and address.

    Raises:
        InvalidRequestError: missing name or malformed contact data
    """
    fields = clean_contact_fields(data or {}, CUSTOMER_FIELDS)
    if not fields.get('name'):
        raise InvalidRequestError('name is required')

    with transaction(session):
        customer = Customer(**fields)
        session.add(customer)
        session.flush()
        customer_id = customer.id

    logger.info("Customer #%s created", customer_id)
    return get_customer(session, customer_id)


def get_customer(session, customer_id: int) -> CustomerResult:
    customer = session.get(Customer, customer_id)
    if customer is None:
        raise CustomerNotFoundError(customer_id)
    return CustomerResult.from_model(customer)


def list_customers(session, search: Optional[str] = None, limit: int = 50) -> List[CustomerResult]:
    """Customers by name, optionally matching name, phone or email."""
    query = select(Customer).order_by(Customer.name, Customer.id).limit(limit)
    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.where(or_(
            func.lower(Customer.name).like(pattern),
            func.lower(Customer.phone).like(pattern),
            func.lower(Customer.email).like(pattern),
        ))
    return [CustomerResult.from_model(c) for c in session.execute(query).scalars()]


def update_customer(session, customer_id: int, changes: Dict[str, Any]) -> CustomerResult:
    """
    Update any of name, phone, email, address. Unknown keys are ignored.

    Raises:
        NothingToUpdateError: no updatable field supplied
        InvalidRequestError: blank name or malformed contact data
        CustomerNotFoundError: customer does not exist
    """
    updates = clean_contact_fields(changes or {}, CUSTOMER_FIELDS)
    if not updates:
        raise NothingToUpdateError()

    with transaction(session):
        customer = session.get(Customer, customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)
        for field, value in updates.items():
            setattr(customer, field, value)

    logger.info("Customer #%s updated: %s", customer_id, ', '.join(sorted(updates)))
    return get_customer(session, customer_id)
