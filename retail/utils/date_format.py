"""Parsing helpers for dates coming from query strings."""
from datetime import date, datetime, time

from retail.exceptions import InvalidRequestError


def parse_as_of(raw) -> datetime:
    """
    Parse a point in time for ledger reports.

    A bare date (``2024-05-01``) means the end of that day, down to the
    last microsecond. Anything else must be an ISO 8601 datetime.

    Raises:
        InvalidRequestError: missing or not ISO 8601
    """
    raw = (raw or '').strip()
    if not raw:
        raise InvalidRequestError('date is required')

    try:
        return datetime.combine(date.fromisoformat(raw), time.max)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidRequestError('date must be an ISO 8601 date or datetime') from None
