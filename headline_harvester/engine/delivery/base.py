"""Delivery sink Service Provider Interface."""

from __future__ import annotations

import html
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Callable, Iterable

from ..transform import CuratedMessage

TELEGRAM_LIMIT = 4090


@dataclass(slots=True)
class DeliveryResult:
    success: bool
    message_id: int | str | None = None
    error: str | None = None
    status_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def escape_html(text: str | None) -> str:
    if not text:
        return ""
    return html.escape(str(text), quote=False)


def format_message(
    message: CuratedMessage, limit: int = TELEGRAM_LIMIT, link_label: str = "Source"
) -> str:
    """Render ``message`` as Telegram HTML: bold title, body, then the link."""

    text = f"<b>{escape_html(message.title)}</b>\n\n{escape_html(message.body)}\n\n"
    if message.source_url:
        href = html.escape(message.source_url, quote=True)
        text += f'🔗 <a href="{href}">{escape_html(link_label)}</a>'
    return text[:limit]


class DeliverySink(ABC):
    """Uniform sink contract; one formatted message per call."""

    def __init__(self, sleep: Callable[[float], None] = time.sleep) -> None:
        self._sleep = sleep

    @abstractmethod
    def send(self, message: CuratedMessage) -> DeliveryResult:
        """Deliver one message."""

    def send_many(
        self, messages: Iterable[CuratedMessage], delay: float = 0.0
    ) -> list[DeliveryResult]:
        results: list[DeliveryResult] = []
        for message in messages:
            results.append(self.send(message))
            if delay:
                self._sleep(delay)
        return results

    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["DeliveryResult", "DeliverySink", "TELEGRAM_LIMIT", "escape_html", "format_message"]
