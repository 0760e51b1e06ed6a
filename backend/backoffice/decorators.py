# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, g

from .responses import fail
from .services import session_service
from .services.auth_service import Actor


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'actor')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.actor: Actor passed explicitly into service calls
    - g.session_context: The full SessionContext object

    Returns 401 if the Authorization header is missing, the token is
    invalid/expired/revoked, or the user has been deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return fail("Authentication required", 401)

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return fail("Invalid or expired token", 401)

        g.current_user = context.user
        g.actor = Actor.from_user(context.user)
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of roles.

    Must be stacked under @require_auth.
    """
    allowed = set(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return fail("Authentication required", 401)

            if g.actor.role not in allowed:
                return fail(
                    "Permission denied",
                    403,
                    required_roles=sorted(allowed),
                )

            return f(*args, **kwargs)

        return decorated_function

    return decorator
