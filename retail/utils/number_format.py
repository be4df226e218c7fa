"""Parsing helpers for quantities and money values coming from requests."""
from decimal import Decimal, InvalidOperation

from retail.exceptions import InvalidRequestError

CENTS = Decimal('0.01')

# Largest values the columns can hold: Integer, Numeric(12, 2), Numeric(14, 2)
MAX_QUANTITY = 2 ** 31 - 1
MONEY_LIMIT = Decimal('1e10')
TOTAL_LIMIT = Decimal('1e12')


def parse_quantity(value, field: str = 'quantity') -> int:
    """
    Parse a strictly positive whole quantity.

    Accepts ints, integral floats and digit strings ("3", 3, 3.0).

    Raises:
        InvalidRequestError: missing, fractional, zero, negative or
            larger than an integer column holds.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidRequestError(f'{field} must be a positive integer')

    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidRequestError(f'{field} must be a positive integer')
        number = int(value)
    else:
        try:
            number = int(str(value).strip())
        except ValueError:
            raise InvalidRequestError(f'{field} must be a positive integer') from None

    if number <= 0:
        raise InvalidRequestError(f'{field} must be a positive integer')
    if number > MAX_QUANTITY:
        raise InvalidRequestError(f'{field} is too large')
    return number


def parse_money(value, field: str = 'amount') -> Decimal:
    """
    Parse a non-negative monetary value with at most 2 decimals.

    Floats go through ``str`` first so 19.99 stays 19.99.

    Raises:
        InvalidRequestError: missing, negative, too large, or more than
            2 decimals.
    """
    if isinstance(value, bool) or value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRequestError(f'{field} is required')

    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidRequestError(f'{field} must be a number') from None

    if not amount.is_finite():
        raise InvalidRequestError(f'{field} must be a number')
    if amount < 0:
        raise InvalidRequestError(f'{field} cannot be negative')
    ensure_money_fits(amount, field)

    rounded = amount.quantize(CENTS)
    if rounded != amount:
        raise InvalidRequestError(f'{field} must have at most 2 decimals')
    return rounded


def ensure_money_fits(amount: Decimal, field: str, limit: Decimal = MONEY_LIMIT) -> Decimal:
    """Reject amounts the money columns cannot store."""
    if abs(amount) >= limit:
        raise InvalidRequestError(f'{field} is too large')
    return amount


def parse_optional_id(value, field: str):
    """Parse an optional positive id; empty values give None."""
    if value is None or value == '':
        return None
    return parse_quantity(value, field)
