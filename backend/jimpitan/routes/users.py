# Overview: Flask API routes for staff account management; parses input and returns JSON responses.

# backend/jimpitan/routes/users.py
"""
Staff account routes.

Admins manage accounts; every authenticated user may change their own
password and read their own activity.
"""

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_admin
from ..errors import ForbiddenError, JimpitanError, ValidationError
from ..responses import success, error, from_exception
from ..services import user_service
from ..validation import require_object

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _json_body() -> dict:
    return require_object(request.get_json(silent=True))


def _ids_from_body() -> list:
    ids = _json_body().get("ids")
    if not isinstance(ids, list):
        raise ValidationError("ids array is required and cannot be empty")
    return [str(item) for item in ids]


@users_bp.get("")
@require_auth
@require_admin
def list_users():
    try:
        users = [user.to_dict() for user in user_service.list_users()]
        return success(users)
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to list users")
        return error("Internal server error", 500)


@users_bp.post("")
@require_auth
@require_admin
def create_user():
    """
    Create a new staff account.

    Request body:
    - name: str (required)
    - role: "admin" | "operator" (also accepts "petugas")
    - username: str (required, unique among active users)
    - password: str (required, min 6 chars)
    """
    try:
        data = _json_body()
        user = user_service.create_user(
            name=data.get("name"),
            role=data.get("role"),
            username=data.get("username"),
            password=data.get("password"),
        )
        return success(user.to_dict(), "User created", 201)
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return error("Internal server error", 500)


@users_bp.post("/bulk-delete")
@require_auth
@require_admin
def bulk_delete_users():
    try:
        ids = _ids_from_body()
        if g.identity.user_id in ids:
            raise ForbiddenError("You cannot delete your own account")
        result = user_service.bulk_delete_users(ids)
        return success(result.to_dict(), f"Deleted {result.succeeded} users")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to bulk delete users")
        return error("Internal server error", 500)


@users_bp.post("/password")
@require_auth
def change_password():
    """
    Change the caller's own password.

    Request body: old_password, new_password
    """
    try:
        data = _json_body()
        user_service.update_password(
            g.identity.user_id,
            data.get("old_password"),
            data.get("new_password"),
        )
        return success(None, "Password updated")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to change password")
        return error("Internal server error", 500)


@users_bp.get("/<user_id>")
@require_auth
@require_admin
def get_user(user_id: str):
    try:
        return success(user_service.get_user(user_id).to_dict())
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to get user %s", user_id)
        return error("Internal server error", 500)


@users_bp.put("/<user_id>")
@require_auth
@require_admin
def update_user(user_id: str):
    try:
        data = _json_body()
        user = user_service.update_user(
            user_id,
            name=data.get("name"),
            role=data.get("role"),
            username=data.get("username"),
        )
        return success(user.to_dict(), "User updated")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to update user %s", user_id)
        return error("Internal server error", 500)


@users_bp.delete("/<user_id>")
@require_auth
@require_admin
def delete_user(user_id: str):
    try:
        if user_id == g.identity.user_id:
            raise ForbiddenError("You cannot delete your own account")
        user_service.delete_user(user_id)
        return success(None, "User deleted")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to delete user %s", user_id)
        return error("Internal server error", 500)


@users_bp.get("/<user_id>/activity")
@require_auth
def user_activity(user_id: str):
    """Transactions recorded by a user. Operators may only read their own."""
    try:
        if not g.identity.is_admin and user_id != g.identity.user_id:
            raise ForbiddenError("You can only view your own activity")
        transactions = user_service.user_activity(user_id)
        return success([txn.to_dict() for txn in transactions])
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to load activity for %s", user_id)
        return error("Internal server error", 500)
