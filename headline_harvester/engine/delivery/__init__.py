"""Delivery SPI and implementations."""

from .base import DeliveryResult, DeliverySink, format_message
from .console_sink import ConsoleSink
from .telegram_sink import TelegramSink

__all__ = ["ConsoleSink", "DeliveryResult", "DeliverySink", "TelegramSink", "format_message"]
