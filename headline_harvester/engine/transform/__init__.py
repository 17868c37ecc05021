"""Transform SPI and implementations."""

from .base import ArticleTransform, CuratedMessage, TransformResult
from .openrouter import OpenRouterTransform, build_prompt, decode_messages, parse_response

__all__ = [
    "ArticleTransform",
    "CuratedMessage",
    "OpenRouterTransform",
    "TransformResult",
    "build_prompt",
    "decode_messages",
    "parse_response",
]
