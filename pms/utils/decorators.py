from functools import wraps
from flask import g
from flask_jwt_extended import get_jwt_identity
from pms.extensions import db
from pms.models import User
from pms.services.authorization import authorize


def get_current_user():
    """Load the User behind the JWT identity, or None."""
    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def require_role(*roles):
    """
    Decorator to require specific roles
    Usage: @require_role('admin', 'assistant')
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            """
            Require that the current JWT-authenticated user has one of the given roles.
            Must be used together with @jwt_required() on the route.
            """
            user = get_current_user()
            rejected = authorize(user, *roles)
            if rejected:
                return rejected.to_response()

            g.current_user = user
            return f(*args, **kwargs)
        return decorated_function
    return decorator
