"""Console sink used when no bot credentials are configured."""

from __future__ import annotations

import time
from typing import Callable

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ..transform import CuratedMessage
from .base import DeliveryResult, DeliverySink


class ConsoleSink(DeliverySink):
    """Print each message instead of sending it."""

    def __init__(
        self, console: Console | None = None, sleep: Callable[[float], None] = time.sleep
    ) -> None:
        super().__init__(sleep)
        self.console = console or Console()
        self._counter = 0

    def send(self, message: CuratedMessage) -> DeliveryResult:
        self._counter += 1
        body = message.body
        if message.source_url:
            body = f"{body}\n\n{message.source_url}"
        panel = Panel(Text(body), title=Text(message.title), title_align="left", expand=False)
        self.console.print(panel)
        return DeliveryResult(success=True, message_id=self._counter)


__all__ = ["ConsoleSink"]
