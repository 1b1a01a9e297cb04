# Overview: Commerce webhook receiver; acknowledges every delivery and logs failures.

"""
Order creation boundary.

WooCommerce retries deliveries that do not get a 2xx, which would replay
the same order again and again. The receiver therefore always answers 200
and reports the outcome in the body: OK, IGNORED or ERR.
"""

from flask import Blueprint, request

from ..services import intake_service

webhooks_bp = Blueprint("webhooks", __name__)

_BODY = {
    intake_service.RESULT_OK: "OK",
    intake_service.RESULT_IGNORED: "IGNORED",
    intake_service.RESULT_ERROR: "ERR",
}


@webhooks_bp.post("/webhooks/woocommerce")
@webhooks_bp.post("/woocommerce-webhook")
def woocommerce_webhook_route():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.get_data(as_text=True) or None
    result = intake_service.ingest_order(payload)
    return _BODY[result.result], 200
