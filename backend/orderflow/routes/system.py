# backend/orderflow/routes/system.py
"""
System health endpoints.

Reports database reachability and which external gateways are configured.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Order
from ..services.gateways import commerce_gateway, notifier
from ..services.order_state import STATUS_PENDING_PAYMENT

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        order_count = db.session.query(Order).count()
        pending_count = db.session.query(Order).filter_by(status=STATUS_PENDING_PAYMENT).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "orders": order_count,
                "pending_payment": pending_count,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/")
def index_route():
    return "OrderFlow automation live", 200


@system_bp.get("/health")
def health_route():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return jsonify({
        "status": database["status"],
        "database": database,
        "gateways": {
            "commerce": bool(commerce_gateway().enabled),
            "notifications": bool(notifier().enabled),
        },
    }), status_code
