# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

# backend/jimpitan/routes/customers.py
"""
Customer (warga) routes.

Reads are open to any authenticated user so operators can scan QR cards;
writes are admin-only. Request bodies accept "nama" as an alias of "name"
for the mobile app.
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_admin
from ..errors import JimpitanError, ValidationError
from ..responses import success, error, from_exception
from ..services import customer_service
from ..validation import require_object

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _json_body() -> dict:
    return require_object(request.get_json(silent=True))


def _name_field(data: dict):
    return data.get("name") or data.get("nama")


@customers_bp.get("")
@require_auth
def list_customers():
    try:
        customers = [c.to_dict() for c in customer_service.list_customers()]
        return success(customers)
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to list customers")
        return error("Internal server error", 500)


@customers_bp.post("")
@require_auth
@require_admin
def create_customer():
    """
    Request body:
    - blok: str (required)
    - name | nama: str (required)
    """
    try:
        data = _json_body()
        customer = customer_service.create_customer(data.get("blok"), _name_field(data))
        return success(customer.to_dict(), "Customer created", 201)
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return error("Internal server error", 500)


@customers_bp.post("/bulk-delete")
@require_auth
@require_admin
def bulk_delete_customers():
    try:
        ids = _json_body().get("ids")
        if not isinstance(ids, list):
            raise ValidationError("ids array is required and cannot be empty")
        result = customer_service.bulk_delete_customers([str(item) for item in ids])
        return success(result.to_dict(), f"Deleted {result.succeeded} customers")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to bulk delete customers")
        return error("Internal server error", 500)


@customers_bp.get("/qr/<qr_hash>")
@require_auth
def get_customer_by_qr(qr_hash: str):
    try:
        return success(customer_service.get_customer_by_qr_hash(qr_hash).to_dict())
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("QR lookup failed for %s", qr_hash)
        return error("Internal server error", 500)


@customers_bp.get("/<customer_id>")
@require_auth
def get_customer(customer_id: str):
    try:
        return success(customer_service.get_customer(customer_id).to_dict())
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to get customer %s", customer_id)
        return error("Internal server error", 500)


@customers_bp.put("/<customer_id>")
@require_auth
@require_admin
def update_customer(customer_id: str):
    try:
        data = _json_body()
        customer = customer_service.update_customer(
            customer_id, blok=data.get("blok"), name=_name_field(data)
        )
        return success(customer.to_dict(), "Customer updated")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to update customer %s", customer_id)
        return error("Internal server error", 500)


@customers_bp.delete("/<customer_id>")
@require_auth
@require_admin
def delete_customer(customer_id: str):
    try:
        customer_service.delete_customer(customer_id)
        return success(None, "Customer deleted")
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to delete customer %s", customer_id)
        return error("Internal server error", 500)


@customers_bp.get("/<customer_id>/history")
@require_auth
def customer_history(customer_id: str):
    try:
        transactions = customer_service.customer_history(customer_id)
        return success([txn.to_dict() for txn in transactions])
    except JimpitanError as e:
        return from_exception(e)
    except Exception:
        current_app.logger.exception("Failed to load history for %s", customer_id)
        return error("Internal server error", 500)
