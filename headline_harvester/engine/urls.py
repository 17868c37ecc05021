"""URL helpers shared by the extraction strategies."""

from __future__ import annotations

import re
from urllib.parse import urlparse

NAVIGATION_PATHS = ("/about", "/contact", "/privacy", "/terms", "/category", "/tag", "/author")

_SKIP_PREFIXES = ("javascript:", "#", "mailto:", "tel:")
_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
# a navigation segment anywhere in the path, e.g. /tag/x, /en/about-us, /authors/, /privacy-policy
_NAVIGATION_SUFFIX = r"(?:s|-us|-policy|-of-service|-of-use)?(?:/|$)"
_NAVIGATION_PATTERN = re.compile(
    "(?:" + "|".join(re.escape(nav) for nav in NAVIGATION_PATHS) + ")" + _NAVIGATION_SUFFIX
)


def normalize_url(link: str, base_url: str) -> str:
    """Resolve ``link`` against the scheme and host of ``base_url``.

    Absolute http(s) links are returned unchanged. A malformed base URL
    leaves ``link`` untouched instead of raising.
    """

    link = link.strip()
    if _SCHEME_PATTERN.match(link):
        return link
    if link.startswith("//"):
        return f"https:{link}"
    try:
        parsed = urlparse(base_url)
        host = parsed.hostname
        port = parsed.port
    except ValueError:
        return link
    if not parsed.scheme or not host:
        return link
    origin = f"{parsed.scheme}://{host}" + (f":{port}" if port else "")
    if link.startswith("/"):
        return f"{origin}{link}"
    return f"{origin}/{link}"


def is_followable(href: str | None) -> bool:
    if not href:
        return False
    href = href.strip()
    return bool(href) and not href.lower().startswith(_SKIP_PREFIXES)


def is_navigational(url: str) -> bool:
    """True when the URL points at site chrome rather than an article."""

    path = urlparse(url).path.lower()
    return _NAVIGATION_PATTERN.search(path) is not None


def path_matches(url: str, patterns: tuple[str, ...]) -> bool:
    path = urlparse(url).path.lower()
    return any(pattern in path for pattern in patterns)


def title_from_url(url: str) -> str:
    """Synthesize a readable title from the last path segment."""

    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    if not segments:
        return ""
    words = [word for word in re.split(r"[-_]+", segments[-1]) if word]
    return " ".join(word.capitalize() for word in words)


__all__ = [
    "NAVIGATION_PATHS",
    "is_followable",
    "is_navigational",
    "normalize_url",
    "path_matches",
    "title_from_url",
]
