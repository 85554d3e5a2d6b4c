# backend/jimpitan/routes/system.py
"""
System health and version endpoints.

GET / and GET /api/health answer without authentication so load balancers
and the mobile app can check the backend.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Customer, Transaction, User
from ..responses import success, error
from jimpitan.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    """
    Check database connectivity with a few cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).filter(User.deleted_at.is_(None)).count()
        customer_count = db.session.query(Customer).filter(Customer.deleted_at.is_(None)).count()
        transaction_count = db.session.query(Transaction).filter(Transaction.deleted_at.is_(None)).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "customers": customer_count,
                "transactions": transaction_count,
            }
        }
    except SQLAlchemyError:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/")
@system_bp.get("/api/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    data = {
        "service": "jimpitan",
        "api_version": API_VERSION,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }

    if database_health["status"] != "healthy":
        return error("Service unhealthy", 503, data)
    return success(data, "Service healthy")
