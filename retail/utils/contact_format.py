"""Cleanup and checks for name/phone/email fields of customers and suppliers."""
import re
from typing import Any, Dict, Iterable

from retail.exceptions import InvalidRequestError

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
MAX_PHONE_LENGTH = 20
MAX_NAME_LENGTH = 255


def clean_contact_fields(data: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """
    Strip the given fields; blank optional values become None.

    Only keys present in ``data`` are returned, so the result can be used
    for partial updates.

    Raises:
        InvalidRequestError: blank name, overlong name or phone, bad email.
    """
    cleaned = {}
    for field in fields:
        if field not in data:
            continue
        value = data[field]
        if value is not None and not isinstance(value, str):
            raise InvalidRequestError(f'{field} must be text')
        value = (value or '').strip() or None
        cleaned[field] = value

    if 'name' in cleaned:
        if not cleaned['name']:
            raise InvalidRequestError('name is required')
        if len(cleaned['name']) > MAX_NAME_LENGTH:
            raise InvalidRequestError('name is too long')
    if cleaned.get('phone') and len(cleaned['phone']) > MAX_PHONE_LENGTH:
        raise InvalidRequestError(f'phone cannot exceed {MAX_PHONE_LENGTH} characters')
    if cleaned.get('email') and not EMAIL_RE.match(cleaned['email']):
        raise InvalidRequestError('email is not valid')
    return cleaned
