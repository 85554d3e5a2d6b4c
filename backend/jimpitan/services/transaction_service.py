# Overview: Service-layer operations for transactions; encapsulates business logic and database work.

"""
Transaction Engine - deposits and voids

LIFECYCLE:
- active: counted in the customer's total_deposits
- voided: deleted_at set, nominal reversed on the customer (terminal)

ATOMICITY: inserting a transaction and crediting the customer happen in one
unit of work, as do marking a void and debiting the customer. If either half
fails the whole unit rolls back and the error surfaces to the caller.

AUTHORIZATION: operators may void only transactions they recorded; admins may
void any. Bulk void is admin-only and skips the ownership check.
"""

from __future__ import annotations

from flask import current_app

from ..errors import AllFailedError, ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Transaction, User, ROLE_ADMIN, newest_first
from jimpitan.time_utils import utcnow
from ..validation import clean_text, parse_nominal
from . import customer_service
from .bulk_service import BulkResult, apply_bulk
from .concurrency import atomic, lock_for_update, run_with_retry
from .identifier_service import KIND_TRANSACTION, next_identifier


def _active_transactions():
    return db.session.query(Transaction).filter(Transaction.deleted_at.is_(None))


def list_transactions() -> list[Transaction]:
    return newest_first(_active_transactions()).all()


def list_user_transactions(user_id: str) -> list[Transaction]:
    return newest_first(
        _active_transactions().filter(Transaction.user_id == user_id)
    ).all()


def get_transaction(transaction_id: str) -> Transaction:
    txn = _active_transactions().filter(Transaction.id == transaction_id).first()
    if not txn:
        raise NotFoundError("Transaction not found")
    return txn


def submit_transaction(
    customer_id: str,
    user_id: str,
    nominal,
    blok: str | None = None,
    name: str | None = None,
    petugas: str | None = None,
) -> Transaction:
    """
    Record a deposit and credit the customer.

    blok/name default to the customer's current values, petugas to the
    recording user's name.

    Raises:
        ValidationError: missing ids, non-string fields or bad nominal
        NotFoundError: customer or user absent/soft-deleted
    """
    customer_id = clean_text(customer_id, "customer_id")
    user_id = clean_text(user_id, "user_id")
    amount = parse_nominal(nominal)
    blok = clean_text(blok, "blok", required=False)
    name = clean_text(name, "name", required=False)
    petugas = clean_text(petugas, "petugas", required=False)

    def _op() -> Transaction:
        with atomic():
            customer = db.session.query(Customer).filter(
                Customer.id == customer_id,
                Customer.deleted_at.is_(None),
            ).first()
            if not customer:
                raise NotFoundError("Customer not found")

            user = db.session.query(User).filter(
                User.id == user_id,
                User.deleted_at.is_(None),
            ).first()
            if not user:
                raise NotFoundError("User not found")

            now = utcnow()
            txn = Transaction(
                id=next_identifier(KIND_TRANSACTION),
                timestamp=now,
                customer_id=customer.id,
                blok=blok or customer.blok,
                name=name or customer.name,
                nominal=amount,
                user_id=user.id,
                petugas=petugas or user.name,
                created_at=now,
            )
            db.session.add(txn)
            db.session.flush()

            customer_service.adjust_balance(customer.id, amount)
        return txn

    txn = run_with_retry(_op)
    current_app.logger.info(
        "Transaction %s recorded: %s +%d by %s", txn.id, txn.customer_id, txn.nominal, txn.user_id
    )
    return txn


def _void(transaction_id: str, *, requester_id: str | None = None, requester_role: str | None = None,
          check_owner: bool = True) -> Transaction:
    def _op() -> Transaction:
        with atomic():
            txn = lock_for_update(
                _active_transactions().filter(Transaction.id == transaction_id)
            ).first()
            if not txn:
                raise NotFoundError("Transaction not found")

            if check_owner and requester_role != ROLE_ADMIN and txn.user_id != requester_id:
                raise ForbiddenError("You can only delete your own transactions")

            txn.deleted_at = utcnow()
            db.session.flush()
            customer_service.adjust_balance(txn.customer_id, -txn.nominal)
        return txn

    txn = run_with_retry(_op)
    current_app.logger.info(
        "Transaction %s voided: %s -%d", txn.id, txn.customer_id, txn.nominal
    )
    return txn


def void_transaction(transaction_id: str, requester_id: str, requester_role: str) -> Transaction:
    """
    Void one transaction and reverse its nominal on the customer.

    Raises:
        NotFoundError: absent or already voided
        ForbiddenError: non-admin requester who did not record it
    """
    if not transaction_id:
        raise ValidationError("transaction id is required")
    return _void(transaction_id, requester_id=requester_id, requester_role=requester_role)


def void_transactions(ids: list[str]) -> BulkResult:
    """
    Admin bulk void. Each id is voided in its own unit of work.

    Raises ValidationError for an empty list and AllFailedError (with the
    per-item errors as details) when nothing could be voided.
    """
    result = apply_bulk(
        ids,
        lambda transaction_id: _void(transaction_id, check_owner=False),
        label="transaction void",
    )
    if result.succeeded == 0:
        raise AllFailedError("Failed to delete any transactions", details=result.errors)
    return result
