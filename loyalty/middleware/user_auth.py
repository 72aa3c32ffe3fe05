"""
Current user resolution.

Login and sessions live in the storefront; by the time a request reaches
this service the gateway has authenticated it and forwards the user id in
the X-User-ID header.
"""
from functools import wraps
from flask import request, g

from ..models import User
from ..utils.errors import unauthorized


def get_user_from_request() -> User | None:
    """Load the user named by the X-User-ID header, if any."""
    user_id = request.headers.get('X-User-ID')
    if not user_id:
        return None

    try:
        return User.query.get(int(user_id))
    except (ValueError, TypeError):
        return None


def require_user(f):
    """
    Decorator to require an identified storefront user.

    Sets g.user if the X-User-ID header names an existing user.

    Usage:
        @require_user
        def my_endpoint():
            user = g.user
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not request.headers.get('X-User-ID'):
            return unauthorized('Authentication required')

        user = get_user_from_request()
        if not user:
            return unauthorized('Unknown user')

        g.user = user
        return f(*args, **kwargs)

    return decorated_function
