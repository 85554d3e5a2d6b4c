from __future__ import annotations

from ..extensions import db
from jimpitan.time_utils import to_utc_z


class Customer(db.Model):
    """
    Resident (warga) taking part in the jimpitan collection.

    WHY: Deposits are collected per household; blok is the unit/location
    label printed on the household's QR card.

    DENORMALIZED AGGREGATE: total_deposits is the running sum of nominal over
    all active transactions for this customer. It is never recomputed on read;
    every create/void adjusts it in the same database transaction
    (see customer_service.adjust_balance).

    qr_hash is derived from id and is NOT unique: truncation collisions are
    tolerated, lookups resolve to the lowest id.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_qr_hash_live", "qr_hash", "deleted_at"),
    )

    id = db.Column(db.String(16), primary_key=True)  # CUST-001
    blok = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    qr_hash = db.Column(db.String(64), nullable=False, index=True)

    # Rupiah, integer
    total_deposits = db.Column(db.Integer, nullable=False, default=0)
    last_transaction_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "blok": self.blok,
            "name": self.name,
            "qr_hash": self.qr_hash,
            "total_deposits": self.total_deposits,
            "last_transaction_at": to_utc_z(self.last_transaction_at) if self.last_transaction_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
