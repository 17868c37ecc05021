"""Telegram Bot API sink."""

from __future__ import annotations

import time
from typing import Any, Callable

import httpx
import structlog

from ...config import DeliveryConfig
from ...exceptions import DeliveryError
from ..transform import CuratedMessage
from .base import DeliveryResult, DeliverySink, format_message


class TelegramSink(DeliverySink):
    """POST each message to ``sendMessage`` with HTML parse mode."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        config: DeliveryConfig | None = None,
        logger: structlog.BoundLogger | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(sleep)
        self.config = config or DeliveryConfig()
        self.chat_id = chat_id
        self.logger = logger or structlog.get_logger("headline_harvester.delivery")
        self._base_url = f"{self.config.api_base.rstrip('/')}/bot{bot_token}"
        self._client = httpx.Client(timeout=self.config.timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def send(self, message: CuratedMessage) -> DeliveryResult:
        payload = {
            "chat_id": self.chat_id,
            "text": format_message(message, self.config.message_limit, self.config.link_label),
            "parse_mode": "HTML",
            "disable_web_page_preview": False,
        }
        try:
            message_id = self._post("sendMessage", payload)
        except DeliveryError as exc:
            status = exc.details.get("status_code")
            self.logger.warning(
                "delivery_failed", url=message.source_url, status=status, error=exc.message
            )
            return DeliveryResult(success=False, error=exc.message, status_code=status)
        self.logger.info("message_delivered", url=message.source_url, message_id=message_id)
        return DeliveryResult(success=True, message_id=message_id)

    def _post(self, method: str, payload: dict[str, Any]) -> int | None:
        """Call a Bot API method and return the new message id.

        Raises:
            DeliveryError: transport failure or a rejection by the API.
        """

        try:
            response = self._client.post(f"{self._base_url}/{method}", json=payload)
        except httpx.HTTPError as exc:
            raise DeliveryError(str(exc) or exc.__class__.__name__) from exc
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.is_success:
            raise DeliveryError(
                data.get("description") or "Unknown error", {"status_code": response.status_code}
            )
        return (data.get("result") or {}).get("message_id")

    def test_connection(self) -> bool:
        try:
            return self._client.get(f"{self._base_url}/getMe").is_success
        except httpx.HTTPError:
            return False


__all__ = ["TelegramSink"]
