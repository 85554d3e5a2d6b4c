from __future__ import annotations

from ..extensions import db
from jimpitan.time_utils import to_utc_z


class IdentifierSequence(db.Model):
    """
    Atomic per-kind identifier sequences.

    WHY: Prevent race conditions when minting human-readable ids
    (USR-001, CUST-001, 0001). Counting rows and adding one lets two
    concurrent creates observe the same count.
    """
    __tablename__ = "identifier_sequences"
    __table_args__ = (
        db.UniqueConstraint("kind", name="uq_identifier_sequences_kind"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }


def by_sequence(column, *, descending: bool = False) -> tuple:
    """
    Order clauses that sort zero-padded sequential ids numerically.

    Plain string order puts CUST-1000 before CUST-999 and 10000 before 9999;
    shorter ids come first here.
    """
    length = db.func.length(column)
    if descending:
        return (length.desc(), column.desc())
    return (length, column)
