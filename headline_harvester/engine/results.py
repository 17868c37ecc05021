"""Per-source fetch outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from .strategies import ArticleCandidate


@dataclass(slots=True)
class FetchSuccess:
    headlines: list[ArticleCandidate] = field(default_factory=list)
    text_excerpt: str = ""


@dataclass(slots=True)
class FetchFailure:
    message: str


FetchOutcome = Union[FetchSuccess, FetchFailure]


@dataclass(slots=True)
class SourceFetchResult:
    """What one source produced during a run."""

    source_id: str
    base_url: str
    outcome: FetchOutcome
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, FetchSuccess)

    @property
    def headlines(self) -> list[ArticleCandidate]:
        if isinstance(self.outcome, FetchSuccess):
            return self.outcome.headlines
        return []

    @property
    def error(self) -> str | None:
        if isinstance(self.outcome, FetchFailure):
            return self.outcome.message
        return None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "source_id": self.source_id,
            "url": self.base_url,
            "fetched_at": self.fetched_at.isoformat(timespec="seconds"),
        }
        if isinstance(self.outcome, FetchSuccess):
            payload["content"] = {
                "headlines": [candidate.to_dict() for candidate in self.outcome.headlines],
                "text_content": self.outcome.text_excerpt,
            }
        else:
            payload["error"] = self.outcome.message
        return payload


def candidate_urls(results: dict[str, SourceFetchResult]) -> set[str]:
    """Every headline URL fetched in a run, for provenance checks."""

    return {
        candidate.url
        for result in results.values()
        for candidate in result.headlines
        if candidate.url
    }


__all__ = [
    "FetchFailure",
    "FetchOutcome",
    "FetchSuccess",
    "SourceFetchResult",
    "candidate_urls",
]
