# Overview: Service-layer operations for users; encapsulates business logic and database work.

"""
Staff account administration.

Usernames are unique among live users only; a soft-deleted user's username
may be taken again. Deleting a user also ends their session.
"""

from __future__ import annotations

from flask import current_app

from ..errors import InvalidCredentialsError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Transaction, User, by_sequence, newest_first
from jimpitan.time_utils import utcnow
from ..validation import clean_text
from .auth_service import hash_password, normalize_role, verify_password
from .bulk_service import BulkResult, apply_bulk
from .concurrency import atomic, run_with_retry
from .identifier_service import KIND_USER, next_identifier


def _live_users():
    return db.session.query(User).filter(User.deleted_at.is_(None))


def _ensure_username_free(username: str, *, exclude_id: str | None = None) -> None:
    query = _live_users().filter(User.username == username)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ValidationError("Username already exists")


def list_users() -> list[User]:
    return _live_users().order_by(*by_sequence(User.id)).all()


def get_user(user_id: str) -> User:
    user = _live_users().filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def create_user(name: str, role: str, username: str, password: str) -> User:
    """
    Create a staff account with a fresh USR-xxx id.

    Raises ValidationError for missing fields, an unknown role, a taken
    username or a weak password.
    """
    name = clean_text(name, "name")
    username = clean_text(username, "username")
    if not role or not password:
        raise ValidationError("name, role, username and password are required")

    role = normalize_role(role)
    password_hash = hash_password(password)

    def _op() -> User:
        with atomic():
            _ensure_username_free(username)
            now = utcnow()
            user = User(
                id=next_identifier(KIND_USER),
                name=name,
                role=role,
                username=username,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
            )
            db.session.add(user)
        return user

    user = run_with_retry(_op)
    current_app.logger.info("User %s created (username=%s, role=%s)", user.id, user.username, user.role)
    return user


def update_user(user_id: str, name: str | None = None, role: str | None = None,
                username: str | None = None) -> User:
    name = clean_text(name, "name", required=False)
    username = clean_text(username, "username", required=False)
    if not name and not role and not username:
        raise ValidationError("At least one of name, role or username is required")
    if role:
        role = normalize_role(role)

    def _op() -> User:
        with atomic():
            user = get_user(user_id)
            if username and username != user.username:
                _ensure_username_free(username, exclude_id=user.id)
                user.username = username
            if name:
                user.name = name
            if role:
                user.role = role
            user.updated_at = utcnow()
        return user

    return run_with_retry(_op)


def update_password(user_id: str, old_password: str, new_password: str) -> None:
    """
    Change a user's own password.

    Raises InvalidCredentialsError when old_password does not match.
    """
    if not old_password or not new_password:
        raise ValidationError("old_password and new_password are required")
    if not isinstance(old_password, str) or not isinstance(new_password, str):
        raise ValidationError("old_password and new_password must be strings")

    user = get_user(user_id)
    if not verify_password(old_password, user.password_hash):
        raise InvalidCredentialsError("Old password is incorrect")

    new_hash = hash_password(new_password)

    def _op():
        with atomic():
            target = get_user(user_id)
            target.password_hash = new_hash
            target.updated_at = utcnow()

    run_with_retry(_op)
    current_app.logger.info("Password changed for %s", user_id)


def delete_user(user_id: str) -> None:
    """Soft delete and revoke the user's session."""
    def _op():
        with atomic():
            user = get_user(user_id)
            now = utcnow()
            user.deleted_at = now
            user.updated_at = now
            user.session_token_hash = None
            user.token_expiry = None

    run_with_retry(_op)
    current_app.logger.info("User %s deleted", user_id)


def bulk_delete_users(ids: list[str]) -> BulkResult:
    return apply_bulk(ids, delete_user, label="user delete")


def user_activity(user_id: str) -> list[Transaction]:
    """Active transactions recorded by the user, newest first."""
    get_user(user_id)
    return newest_first(
        db.session.query(Transaction).filter(
            Transaction.user_id == user_id,
            Transaction.deleted_at.is_(None),
        )
    ).all()
