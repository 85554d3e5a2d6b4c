# Overview: Service-layer operations for identifier; encapsulates business logic and database work.

"""
Identifier Service - human-readable sequential ids

FORMATS (1-indexed, one sequence per kind):
- user:        USR-001
- customer:    CUST-001
- transaction: 0001

format_identifier() is a pure function of the current count.
next_identifier() reserves the next number atomically through the
identifier_sequences table instead of counting rows, so two concurrent
creates can never mint the same id.
"""

from __future__ import annotations

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..errors import ValidationError
from ..extensions import db
from ..models import IdentifierSequence, User, Customer, Transaction


KIND_USER = "user"
KIND_CUSTOMER = "customer"
KIND_TRANSACTION = "transaction"

_FORMATS = {
    KIND_USER: "USR-{:03d}",
    KIND_CUSTOMER: "CUST-{:03d}",
    KIND_TRANSACTION: "{:04d}",
}

# Tables counted (live AND soft-deleted rows) when a sequence is first seeded.
_MODELS = {
    KIND_USER: User,
    KIND_CUSTOMER: Customer,
    KIND_TRANSACTION: Transaction,
}


def _render(kind: str, number: int) -> str:
    try:
        pattern = _FORMATS[kind]
    except KeyError:
        raise ValidationError(f"Unknown identifier kind: {kind}")
    return pattern.format(number)


def format_identifier(kind: str, current_count: int) -> str:
    """
    Id for the entity created after current_count existing ones.

    >>> format_identifier("customer", 0)
    'CUST-001'
    """
    if current_count < 0:
        raise ValidationError("current_count must not be negative")
    return _render(kind, current_count + 1)


def _existing_row_count(kind: str) -> int:
    model = _MODELS[kind]
    return db.session.query(func.count(model.id)).scalar() or 0


def reserve_number(kind: str) -> int:
    """
    Atomically reserve the next number for kind.

    Does not commit: the reservation becomes durable together with the entity
    that uses it, and rolls back with it. Callers wrap the whole unit of work
    in run_with_retry.
    """
    if kind not in _FORMATS:
        raise ValidationError(f"Unknown identifier kind: {kind}")

    stmt = (
        update(IdentifierSequence)
        .where(IdentifierSequence.kind == kind)
        .values(next_number=IdentifierSequence.next_number + 1)
    )

    def _bump() -> int | None:
        result = db.session.execute(stmt)
        if not result.rowcount:
            return None
        current = (
            db.session.query(IdentifierSequence.next_number)
            .filter_by(kind=kind)
            .scalar()
        )
        return current - 1

    number = _bump()
    if number is not None:
        return number

    # First use: seed from existing rows so legacy data keeps its ids.
    first = _existing_row_count(kind) + 1
    try:
        with db.session.begin_nested():
            db.session.add(IdentifierSequence(kind=kind, next_number=first + 1))
        return first
    except IntegrityError:
        # Someone else seeded it concurrently.
        number = _bump()
        if number is None:
            raise
        return number


def next_identifier(kind: str) -> str:
    """Reserve and format the next id for kind."""
    return _render(kind, reserve_number(kind))
