# Overview: Per-app registry of external gateways and the best-effort call-site wrappers.

"""
External gateways (commerce platform, chat notifications).

Both are best-effort. Local state is the system of record: a failed or
timed-out gateway call (GatewayError) is logged as a warning, any other
error from a gateway is logged with its traceback, and either way the call
reports False. Nothing is raised into the lifecycle code or rolled back
against it.

Gateways are built lazily from app config and cached in app.extensions, so
tests can install fakes under the same keys before the first call.
"""

from __future__ import annotations

from flask import current_app


COMMERCE_EXTENSION = "orderflow.commerce"
NOTIFIER_EXTENSION = "orderflow.notifier"


class GatewayError(Exception):
    """An upstream gateway call failed or timed out."""
    pass


def build_commerce_gateway(config):
    from .commerce_gateway import NullCommerceGateway, WooCommerceGateway

    if not (config.get("WC_KEY") and config.get("WC_SECRET")):
        return NullCommerceGateway()
    return WooCommerceGateway(
        config["WC_BASE_URL"],
        config["WC_KEY"],
        config["WC_SECRET"],
        timeout=config.get("GATEWAY_TIMEOUT_SECONDS", 15.0),
    )


def build_notifier(config):
    from .notification_gateway import NullNotifier, TelegramNotifier

    if not config.get("TELEGRAM_TOKEN"):
        return NullNotifier()
    return TelegramNotifier(
        config["TELEGRAM_TOKEN"],
        api_url=config.get("TELEGRAM_API_URL", "https://api.telegram.org"),
        timeout=config.get("GATEWAY_TIMEOUT_SECONDS", 15.0),
    )


def commerce_gateway():
    gateway = current_app.extensions.get(COMMERCE_EXTENSION)
    if gateway is None:
        gateway = build_commerce_gateway(current_app.config)
        current_app.extensions[COMMERCE_EXTENSION] = gateway
    return gateway


def notifier():
    gateway = current_app.extensions.get(NOTIFIER_EXTENSION)
    if gateway is None:
        gateway = build_notifier(current_app.config)
        current_app.extensions[NOTIFIER_EXTENSION] = gateway
    return gateway


def mirror_order_status(order_id: str, status: str) -> bool:
    """Push a status to the commerce platform; True when the call succeeded."""
    gateway = commerce_gateway()
    if not gateway.enabled:
        return False
    try:
        gateway.set_order_status(order_id, status)
    except GatewayError:
        current_app.logger.warning("Commerce status mirror failed: order=%s status=%s", order_id, status, exc_info=True)
        return False
    except Exception:
        current_app.logger.exception("Unexpected commerce gateway error: order=%s status=%s", order_id, status)
        return False
    current_app.logger.info("Commerce status mirrored: order=%s status=%s", order_id, status)
    return True


def notify(channel_id, text: str) -> bool:
    """Send a chat message; False when no channel is configured or delivery failed."""
    if not channel_id:
        return False
    try:
        notifier().send(channel_id, text)
    except GatewayError:
        current_app.logger.warning("Notification to %s failed", channel_id, exc_info=True)
        return False
    except Exception:
        current_app.logger.exception("Unexpected notification gateway error: channel=%s", channel_id)
        return False
    return True
