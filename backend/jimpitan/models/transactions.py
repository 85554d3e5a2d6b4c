from __future__ import annotations

from ..extensions import db
from jimpitan.time_utils import to_utc_z
from .sequences import by_sequence


class Transaction(db.Model):
    """
    A single cash deposit (setoran) recorded by a staff member.

    LIFECYCLE: active -> voided. Voiding sets deleted_at and reverses the
    nominal on the customer's total_deposits. There is no way back.

    blok/name are snapshots of the customer at deposit time; petugas is the
    display name of whoever physically collected the money and may differ from
    the recording user's name.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_customer_active", "customer_id", "deleted_at"),
        db.Index("ix_transactions_user_active", "user_id", "deleted_at"),
        db.CheckConstraint("nominal > 0", name="ck_transactions_nominal_positive"),
    )

    id = db.Column(db.String(16), primary_key=True)  # 0001
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    customer_id = db.Column(db.String(16), db.ForeignKey("customers.id"), nullable=False)
    blok = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(128), nullable=False)

    # Rupiah, integer, > 0
    nominal = db.Column(db.Integer, nullable=False)

    user_id = db.Column(db.String(16), db.ForeignKey("users.id"), nullable=False)
    petugas = db.Column(db.String(128), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    user = db.relationship("User", backref=db.backref("transactions", lazy=True))

    @property
    def is_voided(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": to_utc_z(self.timestamp),
            "customer_id": self.customer_id,
            "blok": self.blok,
            "name": self.name,
            "nominal": self.nominal,
            "user_id": self.user_id,
            "petugas": self.petugas,
            "created_at": to_utc_z(self.created_at),
        }


def newest_first(query):
    """Newest transactions first; equal timestamps fall back to the id sequence."""
    return query.order_by(
        Transaction.timestamp.desc(),
        *by_sequence(Transaction.id, descending=True),
    )
