# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every deposit must be attributable to a staff member. Uses bcrypt for
password hashing; session tokens are issued by session_service.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 6 characters required
- Unknown user and wrong password fail identically (InvalidCredentialsError)
- A successful login replaces any previous session of that user
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import bcrypt
from flask import current_app

from ..errors import (
    InvalidCredentialsError,
    PasswordValidationError,
    ValidationError,
)
from ..extensions import db
from ..models import User, ROLE_ADMIN, ROLE_OPERATOR, ROLES
from jimpitan.time_utils import to_utc_z
from . import session_service
from .concurrency import atomic, run_with_retry


MIN_PASSWORD_LENGTH = 6

# Legacy role name used by the mobile app and older data.
ROLE_ALIASES = {"petugas": ROLE_OPERATOR}

# Precomputed so unknown usernames cost one bcrypt check too.
_DUMMY_HASH = bcrypt.hashpw(b"jimpitan-dummy-password", bcrypt.gensalt(rounds=4)).decode("utf-8")


@dataclass(frozen=True)
class LoginResult:
    """What a successful login hands back to the client."""
    id: str
    name: str
    role: str
    username: str
    token: str
    token_expiry: datetime
    last_login: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "username": self.username,
            "token": self.token,
            "token_expiry": to_utc_z(self.token_expiry),
            "last_login": to_utc_z(self.last_login),
        }


def normalize_role(role: str | None) -> str:
    """
    Map user input to a stored role value.

    Raises ValidationError for anything other than admin/operator (petugas).
    """
    if role is not None and not isinstance(role, str):
        raise ValidationError("role must be a string")
    value = (role or "").strip().lower()
    value = ROLE_ALIASES.get(value, value)
    if value not in ROLES:
        raise ValidationError(f"role must be '{ROLE_ADMIN}' or '{ROLE_OPERATOR}'")
    return value


def validate_password_strength(password: str) -> None:
    """Raises PasswordValidationError if password is too weak."""
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() compares in constant time.
    Malformed hashes (e.g. legacy unsalted SHA-256 hex) never verify.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def get_live_user_by_username(username: str) -> User | None:
    return db.session.query(User).filter(
        User.username == username,
        User.deleted_at.is_(None),
    ).first()


def authenticate(
    username: str,
    password: str,
    *,
    token_id_factory: Callable[[], str] = session_service.generate_token_id,
    now: datetime | None = None,
) -> LoginResult:
    """
    Authenticate user with username and password and open a new session.

    token_id_factory supplies the token's jti claim; tests inject a
    deterministic one. now defaults to the current UTC time.

    Raises:
        ValidationError: username or password missing
        InvalidCredentialsError: unknown/deleted user or wrong password
    """
    if not username or not password:
        raise ValidationError("username and password are required")
    if not isinstance(username, str) or not isinstance(password, str):
        raise ValidationError("username and password must be strings")

    user = get_live_user_by_username(username)

    if not user:
        verify_password(password, _DUMMY_HASH)
        current_app.logger.info("Login failed for unknown username %r", username)
        raise InvalidCredentialsError("Invalid username or password")

    if not verify_password(password, user.password_hash):
        current_app.logger.info("Login failed for %s: wrong password", user.id)
        raise InvalidCredentialsError("Invalid username or password")

    def _op() -> LoginResult:
        with atomic():
            token, expiry, issued_at = session_service.open_session(
                user, token_id=token_id_factory(), now=now
            )
        return LoginResult(
            id=user.id,
            name=user.name,
            role=user.role,
            username=user.username,
            token=token,
            token_expiry=expiry,
            last_login=issued_at,
        )

    result = run_with_retry(_op)
    current_app.logger.info("User %s logged in (role=%s)", user.id, user.role)
    return result
