from __future__ import annotations

from ..extensions import db
from jimpitan.time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_OPERATOR = "operator"
ROLES = (ROLE_ADMIN, ROLE_OPERATOR)


class User(db.Model):
    """
    Staff accounts: administrators and operators (petugas).

    WHY: Every deposit must be attributable to the staff member who took it.
    The user row is also the credential store: it holds the hash of the one
    live session token and its expiry. A new login overwrites the previous
    session, so at most one token per user is ever valid.

    SOFT DELETE: deleted_at marks logical removal. Username uniqueness is only
    enforced among live rows (service layer), so a deleted username can be
    reused.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_username_live", "username", "deleted_at"),
    )

    id = db.Column(db.String(16), primary_key=True)  # USR-001
    name = db.Column(db.String(128), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_OPERATOR)
    username = db.Column(db.String(64), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    # SHA-256 of the current bearer token (never store plaintext tokens!)
    session_token_hash = db.Column(db.String(64), nullable=True)
    token_expiry = db.Column(db.DateTime(timezone=True), nullable=True)
    last_login = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "username": self.username,
            "last_login": to_utc_z(self.last_login) if self.last_login else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
