"""
Auth gate tests.

Verifies:
- bcrypt hashing and the minimum password length
- Login issues a JWT whose jti comes from the injected factory
- One live session per user: re-login and logout revoke older tokens
- Expired, tampered and deleted-user tokens are rejected
"""

from datetime import timedelta

import jwt
import pytest

from jimpitan.errors import (
    InvalidCredentialsError,
    InvalidTokenError,
    MissingTokenError,
    PasswordValidationError,
    TokenExpiredError,
    ValidationError,
)
from jimpitan.extensions import db
from jimpitan.models import User
from jimpitan.services import auth_service, session_service, user_service
from jimpitan.time_utils import utcnow
from conftest import ADMIN_PASSWORD, OPERATOR_PASSWORD


class TestPasswords:

    def test_hash_and_verify(self, app):
        hashed = auth_service.hash_password("rahasia")
        assert hashed != "rahasia"
        assert auth_service.verify_password("rahasia", hashed)
        assert not auth_service.verify_password("salah123", hashed)

    def test_short_password_rejected(self, app):
        with pytest.raises(PasswordValidationError):
            auth_service.hash_password("12345")

    def test_malformed_hash_never_verifies(self, app):
        assert not auth_service.verify_password("admin123", "not-a-bcrypt-hash")

    @pytest.mark.parametrize("raw,expected", [("admin", "admin"), ("operator", "operator"),
                                              ("Petugas", "operator")])
    def test_normalize_role(self, raw, expected):
        assert auth_service.normalize_role(raw) == expected

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            auth_service.normalize_role("superuser")


class TestAuthenticate:

    def test_login_returns_session(self, admin_user):
        result = auth_service.authenticate("admin", ADMIN_PASSWORD, token_id_factory=lambda: "fixed-jti")

        assert result.id == admin_user.id
        assert result.role == "admin"
        assert result.token_expiry - result.last_login == timedelta(hours=168)

        claims = jwt.decode(result.token, "test-jwt-secret", algorithms=["HS256"])
        assert claims["jti"] == "fixed-jti"
        assert claims["user_id"] == admin_user.id
        assert claims["role"] == "admin"

        user = db.session.get(User, admin_user.id)
        assert user.session_token_hash == session_service.hash_token(result.token)
        assert user.last_login is not None

    def test_login_response_hides_hashes(self, admin_user):
        data = auth_service.authenticate("admin", ADMIN_PASSWORD).to_dict()
        assert "password_hash" not in data
        assert "session_token_hash" not in data
        assert data["token_expiry"].endswith("Z")

    def test_wrong_password(self, admin_user):
        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate("admin", "wrong-password")

    def test_unknown_user(self, db_session):
        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate("ghost", "whatever")

    def test_missing_input(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.authenticate("", "x")
        with pytest.raises(ValidationError):
            auth_service.authenticate("admin", None)

    def test_deleted_user_cannot_login(self, operator_user):
        user_service.delete_user(operator_user.id)
        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate("budi", OPERATOR_PASSWORD)


class TestVerifyToken:

    def test_valid_token(self, operator_user):
        result = auth_service.authenticate("budi", OPERATOR_PASSWORD)
        identity = session_service.verify_token(result.token)

        assert identity.user_id == operator_user.id
        assert identity.role == "operator"
        assert not identity.is_admin
        assert identity.to_dict()["id"] == operator_user.id

    def test_missing_token(self, db_session):
        with pytest.raises(MissingTokenError):
            session_service.verify_token("")
        with pytest.raises(MissingTokenError):
            session_service.verify_token(None)

    def test_tampered_token(self, admin_user):
        result = auth_service.authenticate("admin", ADMIN_PASSWORD)
        with pytest.raises(InvalidTokenError):
            session_service.verify_token(result.token + "x")

    def test_foreign_signature(self, admin_user):
        forged = jwt.encode({"user_id": admin_user.id, "role": "admin", "iat": 0,
                             "exp": 4102444800}, "other-secret", algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            session_service.verify_token(forged)

    def test_relogin_revokes_previous_token(self, admin_user):
        first = auth_service.authenticate("admin", ADMIN_PASSWORD)
        second = auth_service.authenticate("admin", ADMIN_PASSWORD)

        assert first.token != second.token
        with pytest.raises(InvalidTokenError):
            session_service.verify_token(first.token)
        assert session_service.verify_token(second.token).user_id == admin_user.id

    def test_expired_jwt(self, admin_user):
        stale = utcnow() - timedelta(hours=200)
        result = auth_service.authenticate("admin", ADMIN_PASSWORD, now=stale)
        with pytest.raises(TokenExpiredError):
            session_service.verify_token(result.token)

    def test_expiry_boundary(self, admin_user):
        result = auth_service.authenticate("admin", ADMIN_PASSWORD)
        with pytest.raises(TokenExpiredError):
            session_service.verify_token(result.token, now=result.token_expiry)
        just_before = result.token_expiry - timedelta(seconds=1)
        assert session_service.verify_token(result.token, now=just_before).user_id == admin_user.id

    def test_deleted_user_token_rejected(self, admin_user, operator_user):
        result = auth_service.authenticate("budi", OPERATOR_PASSWORD)
        user_service.delete_user(operator_user.id)
        with pytest.raises(InvalidTokenError):
            session_service.verify_token(result.token)


class TestInvalidate:

    def test_logout_revokes_token(self, admin_user):
        result = auth_service.authenticate("admin", ADMIN_PASSWORD)
        session_service.invalidate(admin_user.id)
        with pytest.raises(InvalidTokenError):
            session_service.verify_token(result.token)

    def test_idempotent(self, admin_user):
        session_service.invalidate(admin_user.id)
        session_service.invalidate(admin_user.id)
        session_service.invalidate("USR-999")

        user = db.session.get(User, admin_user.id)
        assert user.session_token_hash is None
        assert user.token_expiry is None
