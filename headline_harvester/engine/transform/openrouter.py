"""Chat-completion transform backed by the OpenRouter API."""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

import httpx
import structlog

from ...config import TransformConfig
from ...exceptions import TransformError
from ..results import SourceFetchResult
from .base import ArticleTransform, CuratedMessage, TransformResult

REQUIRED_KEYS = ("title", "body", "source_url")
_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)

PROMPT_TEMPLATE = """\
You are a cryptocurrency and blockchain analyst. Review every headline below,
collected from {source_names}.

Pick the {count} most important stories of the day, judged by market impact,
technical developments, regulatory or institutional news, protocol updates and
security incidents.

For each story write a short summary (2-3 sentences) followed by an analysis of
why it matters, its likely market impact (bullish, bearish or neutral) and what
traders should watch. Write the title and the body in fluent {language}.

Answer with ONLY a JSON array of {count} objects with these keys:
  title: headline in {language}
  body: summary and analysis in {language}
  source_url: the exact FULL_URL value of the article the story is based on

Copy source_url character for character from a FULL_URL line. Never invent,
shorten or generalise a URL and never use a site's home page.

NEWS DATA:
{news}

JSON OUTPUT:
"""


def _source_label(source_id: str) -> str:
    return source_id.replace("_", " ").upper()


def format_news(results: Mapping[str, SourceFetchResult], context_chars: int = 1500) -> str:
    """Render successful fetch results as numbered TITLE / FULL_URL blocks."""

    sections: list[str] = []
    for source_id, result in results.items():
        if not result.ok:
            continue
        lines = [f"=== {_source_label(source_id)} ===", f"Base Site: {result.base_url}"]
        headlines = result.headlines
        if headlines:
            lines.append(f"\nARTICLES ({len(headlines)} found):")
            for index, candidate in enumerate(headlines, start=1):
                lines.append(f"\n[Article {index}]")
                lines.append(f"TITLE: {candidate.title}")
                lines.append(f"FULL_URL: {candidate.url or ''}")
        excerpt = getattr(result.outcome, "text_excerpt", "")
        if excerpt:
            lines.append("\nAdditional Context:")
            lines.append(excerpt[:context_chars])
        lines.append("\n" + "=" * 80 + "\n")
        sections.append("\n".join(lines))
    return "\n".join(sections)


def build_prompt(results: Mapping[str, SourceFetchResult], config: TransformConfig) -> str:
    names = ", ".join(
        _source_label(source_id) for source_id, result in results.items() if result.ok
    )
    return PROMPT_TEMPLATE.format(
        source_names=names or "the configured sources",
        count=config.story_count,
        language=config.language,
        news=format_news(results, config.context_chars),
    )


def decode_messages(content: str | None) -> list[CuratedMessage]:
    """Extract the first JSON array from ``content`` and validate its items.

    Raises:
        TransformError: the reply holds no usable array.
    """

    if not content:
        raise TransformError("Empty response content")
    match = _JSON_ARRAY.search(content)
    if match is None:
        raise TransformError("No JSON array found in response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise TransformError(f"JSON parsing failed: {exc}") from exc
    if not isinstance(parsed, list) or not all(
        isinstance(item, dict) and all(key in item for key in REQUIRED_KEYS) for item in parsed
    ):
        raise TransformError("Invalid JSON structure")
    return [CuratedMessage.from_mapping(item) for item in parsed]


def parse_response(content: str | None) -> TransformResult:
    try:
        messages = decode_messages(content)
    except TransformError as exc:
        return TransformResult.failed(exc.message, content)
    return TransformResult(success=True, messages=messages, raw_content=content)


class OpenRouterTransform(ArticleTransform):
    """Send the harvested headlines to a chat-completion model."""

    def __init__(
        self,
        api_key: str,
        config: TransformConfig | None = None,
        logger: structlog.BoundLogger | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config or TransformConfig()
        self.logger = logger or structlog.get_logger("headline_harvester.transform")
        self._client = httpx.Client(
            timeout=self.config.timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "HTTP-Referer": self.config.referer,
                "X-Title": self.config.title,
            },
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def request_body(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    def transform(self, results: Mapping[str, SourceFetchResult]) -> TransformResult:
        prompt = build_prompt(results, self.config)
        self.logger.info("transform_requested", model=self.config.model, prompt_chars=len(prompt))
        try:
            response = self._client.post(self.config.endpoint, json=self.request_body(prompt))
        except httpx.HTTPError as exc:
            self.logger.error("transform_request_failed", error=str(exc))
            return TransformResult.failed(f"Request failed: {exc}")
        if not response.is_success:
            self.logger.error("transform_http_error", status=response.status_code)
            return TransformResult.failed(
                f"OpenRouter API error: {response.status_code} - {response.text}", response.text
            )
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            return TransformResult.failed("Unexpected response payload", response.text)
        result = parse_response(content)
        if result.success:
            self.logger.info("transform_completed", messages=len(result.messages))
        else:
            self.logger.warning("transform_unusable", error=result.error)
        return result


__all__ = [
    "OpenRouterTransform",
    "build_prompt",
    "decode_messages",
    "format_news",
    "parse_response",
]
