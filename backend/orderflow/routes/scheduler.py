# Overview: Endpoints hit by the outside cron: reminder pass and nightly summary.

from flask import Blueprint, current_app, jsonify

from ..services import operator_service, reminder_scheduler

scheduler_bp = Blueprint("scheduler", __name__)


@scheduler_bp.route("/cron-check", methods=["GET", "POST"])
def cron_check_route():
    """
    Run one reminder pass.

    Safe to call repeatedly: each pending order advances at most one
    reminder step per call and only when its threshold has passed.
    """
    try:
        result = reminder_scheduler.run_reminder_pass()
    except Exception:
        current_app.logger.exception("Reminder pass failed")
        return jsonify({"ok": False, "error": "Internal server error"}), 500
    return jsonify({"ok": True, **result.to_dict()}), 200


@scheduler_bp.get("/night-summary")
def night_summary_route():
    if not current_app.config.get("SUPPLIER_CHAT_ID"):
        return jsonify({"ok": False, "error": "SUPPLIER_CHAT_ID not configured"}), 200
    try:
        reply = operator_service.night_summary()
    except Exception:
        current_app.logger.exception("Night summary failed")
        return jsonify({"ok": False, "error": "Internal server error"}), 500
    return jsonify(reply.to_dict()), 200
