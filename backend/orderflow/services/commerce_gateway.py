# Overview: WooCommerce REST client used to mirror local order status changes.

from __future__ import annotations

import httpx

from .gateways import GatewayError


# Local lifecycle status -> WooCommerce order status
WOO_STATUS_MAP = {
    "pending_payment": "pending",
    "paid": "processing",
    "cancelled": "cancelled",
    "completed": "completed",
}


def woo_status(status: str) -> str:
    return WOO_STATUS_MAP.get(status, status)


class WooCommerceGateway:
    """
    Minimal WooCommerce v3 client.

    Only order status updates are needed; everything else about the order
    lives in the local store.
    """
    enabled = True

    def __init__(self, base_url: str, key: str, secret: str, *, timeout: float = 15.0, transport=None):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            auth=(key, secret),
            timeout=timeout,
            transport=transport,
        )

    def set_order_status(self, order_id: str, status: str) -> None:
        target = woo_status(status)
        try:
            resp = self._client.put(f"/wp-json/wc/v3/orders/{order_id}", json={"status": target})
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise GatewayError(f"WooCommerce status update to '{target}' failed for order {order_id}: {exc}") from exc

    def close(self) -> None:
        self._client.close()


class NullCommerceGateway:
    """Used when WC_KEY / WC_SECRET are not configured; every call is a no-op."""
    enabled = False

    def set_order_status(self, order_id: str, status: str) -> None:
        return None

    def close(self) -> None:
        return None
