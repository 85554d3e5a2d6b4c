# Overview: Service-layer operations for customers; encapsulates business logic and database work.

"""
Customer Ledger

Owns customer records and their running deposit totals.

CONSISTENCY: total_deposits must always equal the sum of nominal over the
customer's active transactions. adjust_balance() is the only code path that
changes it and never commits on its own: transaction_service calls it inside
the same unit of work that inserts or voids the transaction.
"""

from __future__ import annotations

import hashlib

from flask import current_app
from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Transaction, by_sequence, newest_first
from jimpitan.time_utils import utcnow
from ..validation import MAX_BALANCE, clean_text
from .bulk_service import BulkResult, apply_bulk
from .concurrency import atomic, lock_for_update, run_with_retry
from .identifier_service import KIND_CUSTOMER, next_identifier


def derive_qr_hash(customer_id: str) -> str:
    """
    Deterministic short QR identifier for a customer id.

    sha256(salt + id) as hex, truncated. Collisions are tolerated.
    """
    salt = current_app.config["QR_HASH_SALT"]
    length = current_app.config["QR_HASH_LENGTH"]
    digest = hashlib.sha256(f"{salt}{customer_id}".encode("utf-8")).hexdigest()
    return digest[:length]


def _live_customers():
    return db.session.query(Customer).filter(Customer.deleted_at.is_(None))


def list_customers() -> list[Customer]:
    return _live_customers().order_by(*by_sequence(Customer.id)).all()


def get_customer(customer_id: str) -> Customer:
    customer = _live_customers().filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def get_customer_by_qr_hash(qr_hash: str) -> Customer:
    if not qr_hash:
        raise ValidationError("qr_hash is required")
    customer = (
        _live_customers()
        .filter(Customer.qr_hash == qr_hash)
        .order_by(*by_sequence(Customer.id))
        .first()
    )
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def create_customer(blok: str, name: str) -> Customer:
    """Create a customer with a fresh CUST-xxx id and zero balance."""
    blok = clean_text(blok, "blok")
    name = clean_text(name, "name")

    def _op() -> Customer:
        with atomic():
            customer_id = next_identifier(KIND_CUSTOMER)
            now = utcnow()
            customer = Customer(
                id=customer_id,
                blok=blok,
                name=name,
                qr_hash=derive_qr_hash(customer_id),
                total_deposits=0,
                created_at=now,
                updated_at=now,
            )
            db.session.add(customer)
        return customer

    customer = run_with_retry(_op)
    current_app.logger.info("Customer %s created (blok=%s)", customer.id, customer.blok)
    return customer


def update_customer(customer_id: str, blok: str | None = None, name: str | None = None) -> Customer:
    """
    Update blok and/or name.

    Transactions keep the blok/name snapshot taken at deposit time.
    """
    blok = clean_text(blok, "blok", required=False)
    name = clean_text(name, "name", required=False)
    if not blok and not name:
        raise ValidationError("blok or name is required")

    def _op() -> Customer:
        with atomic():
            customer = get_customer(customer_id)
            if blok:
                customer.blok = blok
            if name:
                customer.name = name
            customer.updated_at = utcnow()
        return customer

    return run_with_retry(_op)


def adjust_balance(customer_id: str, delta: int) -> Customer:
    """
    Add delta to the customer's total_deposits.

    Positive on deposit, negative on void. Positive deltas also stamp
    last_transaction_at. Applies to the raw row, so voiding a transaction of
    a soft-deleted customer still reverses its total.

    Does not commit. Raises NotFoundError if the row does not exist and
    ValidationError if the total would leave the storable range.
    """
    customer = lock_for_update(
        db.session.query(Customer).filter(Customer.id == customer_id)
    ).first()
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")

    total = (customer.total_deposits or 0) + delta
    if abs(total) > MAX_BALANCE:
        raise ValidationError(f"total_deposits of {customer_id} would exceed {MAX_BALANCE}")

    now = utcnow()
    customer.total_deposits = total
    if delta > 0:
        customer.last_transaction_at = now
    customer.updated_at = now
    db.session.flush()
    return customer


def delete_customer(customer_id: str) -> None:
    """
    Soft delete. The customer's transactions are left as they are.
    """
    def _op():
        with atomic():
            customer = get_customer(customer_id)
            now = utcnow()
            customer.deleted_at = now
            customer.updated_at = now

    run_with_retry(_op)
    current_app.logger.info("Customer %s deleted", customer_id)


def bulk_delete_customers(ids: list[str]) -> BulkResult:
    return apply_bulk(ids, delete_customer, label="customer delete")


def customer_history(customer_id: str) -> list[Transaction]:
    """Active transactions for the customer, newest first."""
    exists = db.session.query(Customer.id).filter(Customer.id == customer_id).first()
    if not exists:
        raise NotFoundError("Customer not found")

    return newest_first(
        db.session.query(Transaction).filter(
            Transaction.customer_id == customer_id,
            Transaction.deleted_at.is_(None),
        )
    ).all()


# =============================================================================
# Reconciliation
# =============================================================================

def find_balance_drift() -> list[dict]:
    """
    Customers whose total_deposits differs from the sum of their active
    transactions. Includes soft-deleted customers.
    """
    active_sums = dict(
        db.session.query(Transaction.customer_id, func.sum(Transaction.nominal))
        .filter(Transaction.deleted_at.is_(None))
        .group_by(Transaction.customer_id)
        .all()
    )

    drift = []
    for customer in db.session.query(Customer).order_by(*by_sequence(Customer.id)).all():
        expected = int(active_sums.get(customer.id) or 0)
        if customer.total_deposits != expected:
            drift.append({
                "customer_id": customer.id,
                "recorded": customer.total_deposits,
                "expected": expected,
                "difference": customer.total_deposits - expected,
            })
    return drift


def reconcile_balances(fix: bool = False) -> list[dict]:
    """
    Report drift and, with fix=True, overwrite totals with recomputed sums.
    """
    def _op() -> list[dict]:
        with atomic():
            drift = find_balance_drift()
            if fix:
                for row in drift:
                    adjust_balance(row["customer_id"], -row["difference"])
        return drift

    drift = run_with_retry(_op)
    for row in drift:
        current_app.logger.warning(
            "Balance drift on %s: recorded=%s expected=%s%s",
            row["customer_id"], row["recorded"], row["expected"],
            " (repaired)" if fix else "",
        )
    return drift
