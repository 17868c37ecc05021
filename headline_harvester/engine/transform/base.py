"""Summarisation boundary: fetched headlines in, curated messages out."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from ..results import SourceFetchResult


@dataclass(slots=True)
class CuratedMessage:
    """A ready-to-deliver story produced by the transform."""

    title: str
    body: str
    source_url: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CuratedMessage":
        source_url = data.get("source_url")
        return cls(
            title=str(data.get("title") or ""),
            body=str(data.get("body") or ""),
            source_url=str(source_url).strip() if source_url else None,
        )

    @property
    def url(self) -> str | None:
        return self.source_url

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class TransformResult:
    success: bool
    messages: list[CuratedMessage] = field(default_factory=list)
    error: str | None = None
    raw_content: str | None = None

    @classmethod
    def failed(cls, error: str, raw_content: str | None = None) -> "TransformResult":
        return cls(success=False, error=error, raw_content=raw_content)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "messages": [message.to_dict() for message in self.messages],
            "error": self.error,
            "raw_content": self.raw_content,
        }


class ArticleTransform(ABC):
    """Turn a run's fetch results into curated messages.

    Implementations report failures through ``TransformResult`` and never
    raise for service or parsing problems.
    """

    @abstractmethod
    def transform(self, results: Mapping[str, SourceFetchResult]) -> TransformResult:
        """Return curated messages for ``results``."""

    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["ArticleTransform", "CuratedMessage", "TransformResult"]
