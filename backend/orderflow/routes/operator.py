# Overview: Flask API routes for operator commands; parses input and returns JSON responses.

# backend/orderflow/routes/operator.py
"""
Operator Command API

WHY: The shop operator confirms payments, cancels or restores orders and
reviews the day's paid list. Chat front-ends (or a person with curl) call
these routes; the textual reply is also pushed to the operator chat.

ERRORS:
- 400: invalid input (unknown cancel mode, bad date)
- 404: order not found
- 409: lifecycle conflict (e.g. paying a cancelled order, second cancel)
- 500: unexpected failure (logged)
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_operator_token
from ..services import operator_service
from ..services.order_state import LifecycleError
from ..services.order_store import OrderNotFoundError, StaleOrderError


operator_bp = Blueprint("operator", __name__, url_prefix="/api/operator")


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _chat_id():
    return _body().get("chat_id") or request.args.get("chat_id")


def _run(action: str, fn, *args, **kwargs):
    chat_id = _chat_id()
    try:
        reply = fn(*args, chat_id=chat_id, **kwargs)
        return jsonify(reply.to_dict()), 200
    except OrderNotFoundError as e:
        operator_service.tell(chat_id, f"❌ {e}.")
        return jsonify({"error": str(e)}), 404
    except (LifecycleError, StaleOrderError) as e:
        operator_service.tell(chat_id, f"⚠️ {e}")
        return jsonify({"error": str(e)}), 409
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Operator command failed: %s", action)
        operator_service.tell(chat_id, f"⚠️ Error processing {action}. Check logs.")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ORDER COMMANDS
# =============================================================================

@operator_bp.get("/orders/<order_id>")
@require_operator_token
def show_order_route(order_id: str):
    return _run("order", operator_service.show_order, order_id)


@operator_bp.post("/orders/<order_id>/paid")
@require_operator_token
def mark_paid_route(order_id: str):
    """
    Mark an order as paid.

    Side effects: day ledger row, WooCommerce -> processing, supplier
    summary and today's paid list sent to chat.
    """
    return _run("paid", operator_service.mark_paid, order_id)


@operator_bp.post("/orders/<order_id>/cancel")
@require_operator_token
def cancel_order_route(order_id: str):
    """
    Request body:
    {
        "mode": "only_hide" | "full"
    }
    """
    mode = (_body().get("mode") or "").strip().lower()
    if not mode:
        return jsonify({"error": "mode required (only_hide or full)"}), 400
    return _run("cancel", operator_service.cancel, order_id, mode)


@operator_bp.post("/orders/<order_id>/restore")
@require_operator_token
def restore_order_route(order_id: str):
    return _run("restore", operator_service.restore, order_id)


@operator_bp.post("/orders/<order_id>/unhide")
@require_operator_token
def unhide_order_route(order_id: str):
    return _run("unhide", operator_service.unhide, order_id)


@operator_bp.post("/orders/<order_id>/resend-qr")
@require_operator_token
def resend_qr_route(order_id: str):
    return _run("resend_qr", operator_service.resend_qr, order_id)


@operator_bp.post("/orders/<order_id>/track")
@require_operator_token
def track_order_route(order_id: str):
    """
    Request body:
    {
        "phone": "9876543210",
        "tracking_id": "AWB123"
    }
    """
    data = _body()
    phone = (data.get("phone") or "").strip()
    tracking_id = (data.get("tracking_id") or "").strip()
    if not all([phone, tracking_id]):
        return jsonify({"error": "phone and tracking_id required"}), 400
    return _run("track", operator_service.track, order_id, phone, tracking_id)


# =============================================================================
# PAID LISTS
# =============================================================================

@operator_bp.get("/paid/today")
@require_operator_token
def list_today_route():
    return _run("today", operator_service.list_today)


@operator_bp.get("/paid/today/delete-preview")
@require_operator_token
def delete_today_preview_route():
    return _run("delete_today_preview", operator_service.delete_today_preview)


@operator_bp.post("/paid/today/delete")
@require_operator_token
def delete_today_confirm_route():
    """Requires {"confirm": true}; use delete-preview first."""
    if _body().get("confirm") is not True:
        return jsonify({"error": "confirm must be true"}), 400
    return _run("delete_today", operator_service.delete_today_confirm)


@operator_bp.get("/paid/<day>")
@require_operator_token
def list_by_day_route(day: str):
    try:
        parsed = operator_service.parse_day(day)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return _run("paidorders", operator_service.list_by_day, parsed)
