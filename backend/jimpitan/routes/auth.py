# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/jimpitan/routes/auth.py
"""
Authentication API routes

- POST /api/auth/login   username + password -> token
- GET  /api/auth/verify  token -> identity
- POST /api/auth/logout  ends the caller's session
"""

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, extract_token
from ..errors import JimpitanError
from ..responses import success, error, from_exception
from ..services import auth_service, session_service
from ..validation import require_object


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    A new login replaces the user's previous session.
    """
    try:
        data = require_object(request.get_json(silent=True))
        result = auth_service.authenticate(data.get("username"), data.get("password"))
        return success(result.to_dict(), "Login successful")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Login failed")
        return error("Internal server error", 500)


@auth_bp.get("/verify")
def verify_route():
    """Resolve a token (header or ?token=) to the identity it belongs to."""
    try:
        identity = session_service.verify_token(extract_token())
        return success(identity.to_dict(), "Token is valid")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Token verification failed")
        return error("Internal server error", 500)


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.invalidate(g.identity.user_id)
        return success(None, "Logout successful")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Logout failed")
        return error("Internal server error", 500)
