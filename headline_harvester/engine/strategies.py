"""Headline extraction heuristics.

Each strategy turns a parsed document into an ordered list of
``ArticleCandidate`` objects. Site-specific strategies know one markup
quirk; ``GenericStrategy`` works on any page and is the fallback.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from selectolax.parser import HTMLParser, Node

from .urls import is_followable, is_navigational, normalize_url, path_matches, title_from_url

MAX_CANDIDATES = 15
MAX_TITLE_LENGTH = 300
MIN_GENERIC_TITLE = 20
MIN_SITE_TITLE = 10


@dataclass(slots=True)
class ArticleCandidate:
    """A headline found on a page, not yet checked against history."""

    title: str
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def clean_text(node: Node | None) -> str:
    if node is None:
        return ""
    return " ".join(node.text(separator=" ").split())


class CandidateCollector:
    """Ordered, capped accumulator keyed by URL (title when URL is absent)."""

    def __init__(self, cap: int = MAX_CANDIDATES, min_title: int = MIN_GENERIC_TITLE) -> None:
        self.cap = cap
        self.min_title = min_title
        self.items: list[ArticleCandidate] = []
        self._seen: set[str] = set()

    @property
    def full(self) -> bool:
        return len(self.items) >= self.cap

    def __len__(self) -> int:
        return len(self.items)

    def add(self, title: str, url: str | None) -> bool:
        title = title.strip()[:MAX_TITLE_LENGTH].strip()
        if self.full or len(title) < self.min_title:
            return False
        key = url if url else f"title:{title}"
        if key in self._seen:
            return False
        self._seen.add(key)
        self.items.append(ArticleCandidate(title=title, url=url))
        return True


class ExtractionStrategy(ABC):
    """Produce candidates from a parsed document."""

    name: str = "base"

    def __init__(self, cap: int = MAX_CANDIDATES) -> None:
        self.cap = cap

    @abstractmethod
    def extract(self, document: HTMLParser, base_url: str) -> list[ArticleCandidate]:
        """Return candidates in document order."""

    # shared helpers --------------------------------------------------
    @staticmethod
    def _resolve(href: str | None, base_url: str) -> str | None:
        if not is_followable(href):
            return None
        url = normalize_url(href, base_url)
        if is_navigational(url):
            return None
        return url

    @staticmethod
    def _heading_text(scope: Node, min_length: int = MIN_GENERIC_TITLE + 1) -> str:
        for heading in scope.css('h1, h2, h3, h4, [itemprop="headline"]'):
            text = clean_text(heading)
            if len(text) >= min_length:
                return text
        return ""

    def _nearby_heading(self, node: Node, scope_selector: str, depth: int = 3) -> str:
        """Heading text of ``node`` or a close ancestor owning no other ``scope_selector`` match."""

        current: Node | None = node
        for _ in range(depth):
            if current is None:
                break
            if current is not node and len(current.css(scope_selector)) > 1:
                break
            text = self._heading_text(current)
            if text:
                return text
            current = current.parent
        return ""

    def _container_pass(
        self,
        document: HTMLParser,
        base_url: str,
        collector: CandidateCollector,
        containers: str,
        patterns: tuple[str, ...],
    ) -> None:
        """Scan article-like containers for the first link on a content path."""

        for container in document.css(containers):
            if collector.full:
                break
            url = None
            anchor_text = ""
            for anchor in container.css("a[href]"):
                candidate = self._resolve(anchor.attributes.get("href"), base_url)
                if candidate and path_matches(candidate, patterns):
                    url = candidate
                    anchor_text = clean_text(anchor)
                    break
            if url is None:
                continue
            title = self._heading_text(container)
            if not title and len(anchor_text) >= collector.min_title:
                title = anchor_text
            collector.add(title or title_from_url(url), url)


class MetaTagStrategy(ExtractionStrategy):
    """Pages whose article cards carry an identity attribute with the article URL."""

    name = "meta_tag"
    IDENTITY_SELECTOR = 'meta[itemprop="url"], link[itemprop="url"], [data-url]'
    CONTAINER_SELECTOR = 'article, [class*="card"]'
    CONTENT_PATHS = ("/markets/", "/business/", "/tech/", "/policy/")

    def extract(self, document: HTMLParser, base_url: str) -> list[ArticleCandidate]:
        collector = CandidateCollector(self.cap, min_title=MIN_SITE_TITLE)
        for node in document.css(self.IDENTITY_SELECTOR):
            if collector.full:
                break
            attrs = node.attributes
            url = self._resolve(attrs.get("content") or attrs.get("href") or attrs.get("data-url"), base_url)
            if url is None:
                continue
            title = self._nearby_heading(node, self.IDENTITY_SELECTOR) or title_from_url(url)
            collector.add(title, url)
        self._container_pass(
            document, base_url, collector, self.CONTAINER_SELECTOR, self.CONTENT_PATHS
        )
        return collector.items


class AlternateLinkStrategy(ExtractionStrategy):
    """Pages advertising their articles through language-tagged alternate links."""

    name = "alternate_link"
    ALTERNATE_SELECTOR = 'link[rel="alternate"][hreflang], a[hreflang]'
    CONTAINER_SELECTOR = 'article, [class*="post"]'
    CONTENT_PATHS = ("/news", "/magazine", "/press-releases")
    CONTAINER_PATHS = ("/news/", "/magazine/")
    SECONDARY_THRESHOLD = 10

    def extract(self, document: HTMLParser, base_url: str) -> list[ArticleCandidate]:
        collector = CandidateCollector(self.cap, min_title=MIN_SITE_TITLE)
        page_url, page_title = self._document_identity(document, base_url)
        for node in document.css(self.ALTERNATE_SELECTOR):
            if collector.full:
                break
            url = self._resolve(node.attributes.get("href"), base_url)
            if url is None or not path_matches(url, self.CONTENT_PATHS):
                continue
            title = ""
            if page_title and page_url and _same_resource(url, page_url):
                title = page_title
            title = title or self._anchor_heading(document, url, base_url) or title_from_url(url)
            collector.add(title, url)
        if len(collector) < self.SECONDARY_THRESHOLD:
            self._container_pass(
                document, base_url, collector, self.CONTAINER_SELECTOR, self.CONTAINER_PATHS
            )
        return collector.items

    @staticmethod
    def _document_identity(document: HTMLParser, base_url: str) -> tuple[str | None, str]:
        url_node = document.css_first('meta[property="og:url"]') or document.css_first(
            'link[rel="canonical"]'
        )
        page_url = None
        if url_node is not None:
            href = url_node.attributes.get("content") or url_node.attributes.get("href")
            if is_followable(href):
                page_url = normalize_url(href, base_url)
        title = ""
        for selector in (
            'meta[property="og:title"]',
            'meta[name="twitter:title"]',
            'meta[name="title"]',
        ):
            node = document.css_first(selector)
            if node is not None and (node.attributes.get("content") or "").strip():
                title = " ".join(node.attributes["content"].split())
                break
        return page_url, title

    def _anchor_heading(self, document: HTMLParser, url: str, base_url: str) -> str:
        for anchor in document.css("a[href]"):
            href = anchor.attributes.get("href")
            if not is_followable(href) or not _same_resource(normalize_url(href, base_url), url):
                continue
            text = clean_text(anchor)
            if len(text) > MIN_GENERIC_TITLE:
                return text
            heading = self._nearby_heading(anchor, "a[href]")
            if heading:
                return heading
        return ""


class GenericStrategy(ExtractionStrategy):
    """Selector sweep over headings and headline/title-classed elements."""

    name = "generic"
    SELECTORS: tuple[str, ...] = (
        "article h2",
        "article h3",
        "article h4",
        ".headline",
        ".article-title",
        ".post-title",
        "h1 a",
        "h2 a",
        "h3 a",
        '[class*="headline"]',
        '[class*="title"]',
    )

    def __init__(self, cap: int = MAX_CANDIDATES, selectors: Iterable[str] | None = None) -> None:
        super().__init__(cap)
        self.selectors = tuple(selectors) if selectors else self.SELECTORS

    def extract(self, document: HTMLParser, base_url: str) -> list[ArticleCandidate]:
        collector = CandidateCollector(self.cap, min_title=MIN_GENERIC_TITLE)
        for selector in self.selectors:
            for element in document.css(selector):
                if collector.full:
                    break
                text = clean_text(element)
                if not text and element.parent is not None:
                    text = clean_text(element.parent)
                if len(text) < MIN_GENERIC_TITLE:
                    continue
                href = None
                anchor = element.css_first("a[href]")
                if anchor is not None:
                    href = anchor.attributes.get("href")
                if not href:
                    href = element.attributes.get("href")
                url = None
                if is_followable(href):
                    url = normalize_url(href, base_url)
                    if is_navigational(url):
                        continue
                collector.add(text, url)
            if collector.full:
                break
        return collector.items


def _same_resource(left: str, right: str) -> bool:
    return left.split("#", 1)[0].rstrip("/").lower() == right.split("#", 1)[0].rstrip("/").lower()


__all__ = [
    "AlternateLinkStrategy",
    "ArticleCandidate",
    "CandidateCollector",
    "ExtractionStrategy",
    "GenericStrategy",
    "MAX_CANDIDATES",
    "MetaTagStrategy",
    "clean_text",
]
