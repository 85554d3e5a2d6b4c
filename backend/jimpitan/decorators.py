# Overview: Request and permission decorators for API routes.

from __future__ import annotations

from functools import wraps
from flask import request, g

from .errors import AuthError
from .responses import error, from_exception
from .services import session_service


def extract_token() -> str | None:
    """
    Bearer token from the Authorization header.

    Falls back to the ?token= query parameter used by QR scanner links.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return request.args.get("token") or None


def require_auth(f):
    """
    Require a valid session token.

    Sets g.identity to the caller's session_service.Identity.

    SECURITY: Returns 401 if:
    - No token supplied
    - Invalid, superseded or logged-out token
    - Expired token
    - User account soft-deleted
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.identity = session_service.verify_token(extract_token())
        except AuthError as exc:
            return from_exception(exc)
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require the admin role. Must be stacked under @require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        identity = getattr(g, "identity", None)
        if identity is None:
            return error("Authentication required", 401)
        if not identity.is_admin:
            return error("Admin access required", 403)
        return f(*args, **kwargs)

    return decorated_function
