"""Suppliers delivering stock-in receipts."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select

from retail.database import transaction
from retail.exceptions import InvalidRequestError, NothingToUpdateError, SupplierNotFoundError
from retail.models import Supplier
from retail.services.results import SupplierResult
from retail.utils.contact_format import clean_contact_fields

logger = logging.getLogger(__name__)

SUPPLIER_FIELDS = ('name', 'contact_person', 'phone', 'email')


def create_supplier(session, data: Dict[str, Any]) -> SupplierResult:
    """
    Create a supplier. Names are unique (case-insensitive).

    Raises:
        InvalidRequestError: missing or duplicate name, malformed contact data
    """
    fields = clean_contact_fields(data or {}, SUPPLIER_FIELDS)
    if not fields.get('name'):
        raise InvalidRequestError('name is required')

    with transaction(session):
        _ensure_name_available(session, fields['name'])
        supplier = Supplier(**fields)
        session.add(supplier)
        session.flush()
        supplier_id = supplier.id

    logger.info("Supplier #%s (%s) created", supplier_id, fields['name'])
    return get_supplier(session, supplier_id)


def get_supplier(session, supplier_id: int) -> SupplierResult:
    supplier = session.get(Supplier, supplier_id)
    if supplier is None:
        raise SupplierNotFoundError(supplier_id)
    return SupplierResult.from_model(supplier)


def list_suppliers(session, search: Optional[str] = None, limit: int = 50) -> List[SupplierResult]:
    query = select(Supplier).order_by(Supplier.name, Supplier.id).limit(limit)
    if search:
        pattern = f'%{search.strip().lower()}%'
        query = query.where(or_(
            func.lower(Supplier.name).like(pattern),
            func.lower(Supplier.phone).like(pattern),
            func.lower(Supplier.email).like(pattern),
        ))
    return [SupplierResult.from_model(s) for s in session.execute(query).scalars()]


def update_supplier(session, supplier_id: int, changes: Dict[str, Any]) -> SupplierResult:
    """Update name, contact person, phone or email."""
    updates = clean_contact_fields(changes or {}, SUPPLIER_FIELDS)
    if not updates:
        raise NothingToUpdateError()

    with transaction(session):
        supplier = session.get(Supplier, supplier_id)
        if supplier is None:
            raise SupplierNotFoundError(supplier_id)
        if 'name' in updates:
            _ensure_name_available(session, updates['name'], exclude_id=supplier_id)
        for field, value in updates.items():
            setattr(supplier, field, value)

    logger.info("Supplier #%s updated: %s", supplier_id, ', '.join(sorted(updates)))
    return get_supplier(session, supplier_id)


def _ensure_name_available(session, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(Supplier.id).where(func.lower(Supplier.name) == name.lower())
    if exclude_id is not None:
        query = query.where(Supplier.id != exclude_id)
    if session.execute(query).first():
        raise InvalidRequestError(f'A supplier named "{name}" already exists')
