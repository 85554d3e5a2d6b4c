# Overview: Flask API routes for deposit transactions; parses input and returns JSON responses.

# backend/jimpitan/routes/transactions.py
"""
Transaction routes.

The recording user is always the caller; a user_id in the body is ignored.
Operators may void only their own transactions; bulk void is admin-only.
"""

from flask import Blueprint, request, g, current_app

from ..decorators import require_auth, require_admin
from ..errors import JimpitanError, ValidationError
from ..responses import success, error, from_exception
from ..services import transaction_service
from ..validation import require_object

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
def list_transactions():
    try:
        transactions = transaction_service.list_transactions()
        return success([txn.to_dict() for txn in transactions])
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return error("Internal server error", 500)


@transactions_bp.get("/mine")
@require_auth
def list_my_transactions():
    try:
        transactions = transaction_service.list_user_transactions(g.identity.user_id)
        return success([txn.to_dict() for txn in transactions])
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to list transactions for %s", g.identity.user_id)
        return error("Internal server error", 500)


@transactions_bp.post("")
@require_auth
def submit_transaction():
    """
    Record a deposit.

    Request body:
    - customer_id: str (required)
    - nominal: whole rupiah > 0 (required)
    - blok, name | nama, petugas: optional snapshot overrides
    """
    try:
        data = require_object(request.get_json(silent=True))
        txn = transaction_service.submit_transaction(
            customer_id=data.get("customer_id"),
            user_id=g.identity.user_id,
            nominal=data.get("nominal"),
            blok=data.get("blok"),
            name=data.get("name") or data.get("nama"),
            petugas=data.get("petugas"),
        )
        return success(txn.to_dict(), "Transaction recorded", 201)
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to submit transaction")
        return error("Internal server error", 500)


@transactions_bp.post("/bulk-delete")
@require_auth
@require_admin
def bulk_void_transactions():
    """
    Void many transactions.

    200 with {deleted, errors?} when at least one succeeded,
    422 with the per-item errors when none did.
    """
    try:
        ids = require_object(request.get_json(silent=True)).get("ids")
        if not isinstance(ids, list):
            raise ValidationError("ids array is required and cannot be empty")
        result = transaction_service.void_transactions([str(item) for item in ids])
        return success(result.to_dict(), f"Deleted {result.succeeded} transactions")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to bulk void transactions")
        return error("Internal server error", 500)


@transactions_bp.get("/<transaction_id>")
@require_auth
def get_transaction(transaction_id: str):
    try:
        return success(transaction_service.get_transaction(transaction_id).to_dict())
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to get transaction %s", transaction_id)
        return error("Internal server error", 500)


@transactions_bp.delete("/<transaction_id>")
@require_auth
def void_transaction(transaction_id: str):
    try:
        transaction_service.void_transaction(
            transaction_id, g.identity.user_id, g.identity.role
        )
        return success(None, "Transaction deleted")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to void transaction %s", transaction_id)
        return error("Internal server error", 500)
