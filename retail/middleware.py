"""Middleware for the acting user."""
from functools import wraps

from flask import current_app, g, session

from retail.database import get_session
from retail.exceptions import UnauthorizedError
from retail.models import AppUser


def load_current_user():
    """
    Load the acting user into g (Flask's per-request global).

    The login endpoint (outside this service) stores ``user_id`` in the
    signed session cookie. Sets g.user and g.user_id when it points at an
    active user.
    """
    g.user = None
    g.user_id = None

    user_id = session.get('user_id')
    if not user_id:
        return

    db_session = get_session()
    if not db_session:
        return

    user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
    if user:
        g.user = user
        g.user_id = user.id
    else:
        current_app.logger.warning(f"Session references unknown or inactive user {user_id}")
        session.pop('user_id', None)


def require_login(f):
    """Decorator: require an acting user. Responds 401 otherwise."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise UnauthorizedError()
        return f(*args, **kwargs)
    return decorated_function
