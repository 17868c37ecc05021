"""Source-aware headline extraction engine."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlparse

import structlog
from selectolax.parser import HTMLParser

from ..exceptions import ParseError
from .strategies import (
    MAX_CANDIDATES,
    AlternateLinkStrategy,
    ArticleCandidate,
    ExtractionStrategy,
    GenericStrategy,
    MetaTagStrategy,
)

NOISE_SELECTORS = (
    "script",
    "style",
    "noscript",
    "nav",
    "footer",
    "iframe",
    "ads",
    "ins.adsbygoogle",
    ".ad",
    ".ads",
    '[class*="advert"]',
    '[id*="advert"]',
)


def parse_document(html: str) -> HTMLParser:
    """Parse ``html`` into a document, raising ``ParseError`` on unusable input."""

    if not isinstance(html, str):
        raise ParseError("Document is not text", {"type": type(html).__name__})
    if not html.strip():
        raise ParseError("Document is empty")
    return HTMLParser(html)


def strip_noise(document: HTMLParser) -> HTMLParser:
    """Remove scripts, styles, navigation, footers, iframes and ad slots in place."""

    # re-query after each removal so no handle to a freed subtree is kept
    for selector in NOISE_SELECTORS:
        node = document.css_first(selector)
        while node is not None:
            node.decompose()
            node = document.css_first(selector)
    return document


def text_excerpt(document: HTMLParser, limit: int = 10000) -> str:
    body = document.body
    if body is None:
        return ""
    return " ".join(body.text(separator=" ").split())[:limit]


class SourceExtractionEngine:
    """Pick a strategy by host token, fall back to the generic sweep, dedup and cap."""

    def __init__(
        self,
        cap: int = MAX_CANDIDATES,
        strategies: dict[str, ExtractionStrategy] | None = None,
        fallback: ExtractionStrategy | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.cap = cap
        self.strategies: dict[str, ExtractionStrategy] = (
            dict(strategies)
            if strategies is not None
            else {
                "coindesk": MetaTagStrategy(cap),
                "cointelegraph": AlternateLinkStrategy(cap),
            }
        )
        self.fallback = fallback or GenericStrategy(cap)
        self.logger = logger or structlog.get_logger("headline_harvester.extractor")

    def register(self, token: str, strategy: ExtractionStrategy) -> None:
        self.strategies[token.lower()] = strategy

    def strategy_for(self, base_url: str) -> ExtractionStrategy:
        host = (urlparse(base_url).hostname or "").lower()
        for token, strategy in self.strategies.items():
            if token in host:
                return strategy
        return self.fallback

    def extract_headlines(self, document: HTMLParser, base_url: str) -> list[ArticleCandidate]:
        strategy = self.strategy_for(base_url)
        candidates = strategy.extract(document, base_url)
        if not candidates and strategy is not self.fallback:
            self.logger.debug("strategy_empty_fallback", strategy=strategy.name, base_url=base_url)
            strategy = self.fallback
            candidates = strategy.extract(document, base_url)
        headlines = self._dedupe(candidates)[: self.cap]
        self.logger.debug(
            "headlines_extracted", strategy=strategy.name, base_url=base_url, count=len(headlines)
        )
        return headlines

    def extract_from_html(self, html: str, base_url: str) -> list[ArticleCandidate]:
        """Parse, clean and extract in one call; malformed input yields no headlines."""

        try:
            document = strip_noise(parse_document(html))
        except ParseError as exc:
            self.logger.warning("document_unparseable", base_url=base_url, error=str(exc))
            return []
        return self.extract_headlines(document, base_url)

    @staticmethod
    def _dedupe(candidates: Iterable[ArticleCandidate]) -> list[ArticleCandidate]:
        seen: set[str] = set()
        unique: list[ArticleCandidate] = []
        for candidate in candidates:
            key = candidate.url or f"title:{candidate.title}"
            if key in seen:
                continue
            seen.add(key)
            unique.append(candidate)
        return unique


__all__ = [
    "NOISE_SELECTORS",
    "SourceExtractionEngine",
    "parse_document",
    "strip_noise",
    "text_excerpt",
]
