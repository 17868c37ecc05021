"""Exception hierarchy shared by the harvester components."""

from __future__ import annotations

from typing import Any


class HarvesterError(Exception):
    """Root exception carrying a message and optional structured details."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | details={self.details}"
        return self.message


class ConfigurationError(HarvesterError):
    """Missing credentials or invalid configuration; fatal at startup."""


class TransportError(HarvesterError):
    """Network failure or timeout while fetching a source."""


class ParseError(HarvesterError):
    """Markup could not be turned into a document."""


class StoreError(HarvesterError):
    """Base class for deduplication store failures."""


class DuplicateRecordError(StoreError):
    """The URL (or its fingerprint) is already recorded."""


class StorageError(StoreError):
    """Any persistence failure other than a uniqueness violation."""


class TransformError(HarvesterError):
    """The summarisation service returned an unusable answer."""


class DeliveryError(HarvesterError):
    """A message could not be handed to the delivery sink."""


__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "DuplicateRecordError",
    "HarvesterError",
    "ParseError",
    "StorageError",
    "StoreError",
    "TransformError",
    "TransportError",
]
