# Overview: Telegram Bot API client delivering operator and supplier messages.

from __future__ import annotations

import httpx

from .gateways import GatewayError


class TelegramNotifier:
    """
    sendMessage over the Bot API.

    The first attempt uses `parse_mode`; if Telegram rejects it (typically an
    unbalanced markup character in a customer name) the text is sent once
    more as plain text.
    """
    enabled = True

    def __init__(self, token: str, *, api_url: str = "https://api.telegram.org",
                 timeout: float = 15.0, parse_mode: str | None = "Markdown", transport=None):
        self._client = httpx.Client(
            base_url=f"{api_url.rstrip('/')}/bot{token}",
            timeout=timeout,
            transport=transport,
        )
        self.parse_mode = parse_mode

    def _send_message(self, channel_id, text: str, parse_mode: str | None) -> None:
        body = {"chat_id": channel_id, "text": text, "disable_web_page_preview": True}
        if parse_mode:
            body["parse_mode"] = parse_mode
        resp = self._client.post("/sendMessage", json=body)
        resp.raise_for_status()
        data = resp.json()
        if not data.get("ok", False):
            raise GatewayError(f"Telegram rejected message: {data.get('description') or data}")

    def send(self, channel_id, text: str) -> None:
        try:
            self._send_message(channel_id, text, self.parse_mode)
            return
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, GatewayError) as first_exc:
            first_error = first_exc
        try:
            self._send_message(channel_id, str(text), None)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, GatewayError) as exc:
            raise GatewayError(
                f"Telegram send to {channel_id} failed: {first_error}; plain-text retry: {exc}"
            ) from exc

    def close(self) -> None:
        self._client.close()


class NullNotifier:
    """Used when TELEGRAM_TOKEN is not configured."""
    enabled = False

    def send(self, channel_id, text: str) -> None:
        return None

    def close(self) -> None:
        return None
