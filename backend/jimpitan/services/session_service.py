# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Bearer tokens let the mobile app and the web dashboard call the API
without resending credentials. Tokens are signed JWTs and must also match the
single session persisted on the user row, so logout and re-login revoke old
tokens immediately even though their signature is still valid.

SECURITY FEATURES:
- HS256 signed tokens carrying user_id, role, iat, exp and a random jti
- Only the SHA-256 hash of the live token is stored
- Absolute timeout (JWT_EXPIRY_HOURS, default 7 days)
- One live session per user: login overwrites, logout clears
- Tokens of soft-deleted users are rejected
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt
from flask import current_app

from ..errors import (
    InvalidTokenError,
    MissingTokenError,
    TokenExpiredError,
)
from ..extensions import db
from ..models import User, ROLE_ADMIN
from jimpitan.time_utils import as_naive_utc, to_epoch_seconds, to_utc_z, utcnow
from .concurrency import atomic, run_with_retry


@dataclass(frozen=True)
class Identity:
    """
    Authenticated caller, resolved from a bearer token.

    Passed explicitly into services that authorize by role or ownership.
    """
    user_id: str
    name: str
    role: str
    username: str
    token: str
    token_expiry: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.name,
            "role": self.role,
            "username": self.username,
            "token": self.token,
            "token_expiry": to_utc_z(self.token_expiry),
        }


def generate_token_id() -> str:
    """Random jti claim. 16 bytes from the OS CSPRNG."""
    return secrets.token_hex(16)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _secret() -> str:
    return current_app.config["JWT_SECRET"]


def _algorithm() -> str:
    return current_app.config.get("JWT_ALGORITHM", "HS256")


def open_session(user: User, *, token_id: str, now: datetime | None = None) -> tuple[str, datetime, datetime]:
    """
    Issue a signed token for user and persist it as the user's only session.

    Does not commit; runs inside the caller's unit of work.

    Returns (token, token_expiry, issued_at).
    """
    issued_at = now or utcnow()
    expiry = issued_at + timedelta(hours=current_app.config["JWT_EXPIRY_HOURS"])

    token = jwt.encode(
        {
            "user_id": user.id,
            "role": user.role,
            "iat": to_epoch_seconds(issued_at),
            "exp": to_epoch_seconds(expiry),
            "jti": token_id,
        },
        _secret(),
        algorithm=_algorithm(),
    )

    user.session_token_hash = hash_token(token)
    user.token_expiry = expiry
    user.last_login = issued_at
    user.updated_at = issued_at
    return token, expiry, issued_at


def verify_token(token: str | None, *, now: datetime | None = None) -> Identity:
    """
    Validate a bearer token and return the caller's Identity.

    Raises:
        MissingTokenError: token empty
        InvalidTokenError: bad signature/claims, user gone, or token is not
            the user's current session (logged out or superseded)
        TokenExpiredError: JWT exp passed or now >= persisted token_expiry
    """
    if not token:
        raise MissingTokenError("Token is required")

    try:
        claims = jwt.decode(
            token,
            _secret(),
            algorithms=[_algorithm()],
            options={"require": ["exp", "iat", "user_id"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError:
        raise InvalidTokenError("Invalid token")

    user = db.session.query(User).filter(
        User.id == claims["user_id"],
        User.deleted_at.is_(None),
    ).first()

    if not user or not user.session_token_hash:
        raise InvalidTokenError("Invalid token")

    if not hmac.compare_digest(user.session_token_hash, hash_token(token)):
        raise InvalidTokenError("Invalid token")

    current = now or utcnow()
    expiry = as_naive_utc(user.token_expiry)
    if expiry is None or current >= expiry:
        raise TokenExpiredError("Token has expired")

    return Identity(
        user_id=user.id,
        name=user.name,
        role=user.role,
        username=user.username,
        token=token,
        token_expiry=expiry,
    )


def invalidate(user_id: str) -> None:
    """
    Clear the user's session. Idempotent; unknown ids are a no-op.
    """
    def _op():
        with atomic():
            db.session.query(User).filter(User.id == user_id).update(
                {
                    User.session_token_hash: None,
                    User.token_expiry: None,
                    User.updated_at: utcnow(),
                },
                synchronize_session="fetch",
            )

    run_with_retry(_op)
    current_app.logger.info("Session invalidated for %s", user_id)
