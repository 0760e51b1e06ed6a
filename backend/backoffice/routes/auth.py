# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /api/auth/login   -> {token, user, expires_at}
- POST /api/auth/logout  -> revokes the presented token
- GET  /api/auth/me      -> the authenticated user
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth
from ..responses import fail, ok
from ..services import auth_service
from ..services import session_service
from ..time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included as "Authorization: Bearer <token>" on protected routes.
    """
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password")

    if not username or not password:
        return fail("username and password required", 400)

    try:
        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.info("Failed login for username=%s", username)
            return fail("Invalid credentials", 401)

        session, token = session_service.create_session(
            user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except Exception:
        current_app.logger.exception("Failed to login user")
        return fail("Internal server error", 500)

    return ok({
        "token": token,
        "user": user.to_dict(),
        "expires_at": to_utc_z(session.expires_at),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization", "").split(" ", 1)[1]
    try:
        session_service.revoke_session(token)
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return fail("Internal server error", 500)
    return ok({"message": "Logged out"})


@auth_bp.get("/me")
@require_auth
def me_route():
    return ok(g.current_user.to_dict())
