"""Pydantic models used across the harvester configuration flow."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator

from ..exceptions import ConfigurationError

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class SourceId(str, Enum):
    """Known news origins."""

    COINDESK = "coindesk"
    COINTELEGRAPH = "cointelegraph"
    THEBLOCK = "theblock"
    BITCOIN_MAGAZINE = "bitcoin_magazine"


class ScheduleType(str, Enum):
    """Scheduler modes for unattended runs."""

    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class ScheduleConfig(BaseModel):
    """Configuration describing when the pipeline should run."""

    type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    value: Any = Field(
        default=3600,
        description="Cron expression, interval seconds or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL and not isinstance(self.value, (int, float, dict)):
            raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
        if (
            self.type is ScheduleType.ONCE
            and self.value is not None
            and not isinstance(self.value, str)
        ):
            raise ValueError("Once schedule expects ISO datetime string or null")
        return self


class SourceConfig(BaseModel):
    """One configured news origin."""

    source_id: SourceId
    base_url: str

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"base_url must be an absolute http(s) URL: {value!r}")
        return value

    @property
    def host(self) -> str:
        return urlparse(self.base_url).hostname or ""


def default_sources() -> list[SourceConfig]:
    return [
        SourceConfig(source_id=SourceId.COINDESK, base_url="https://www.coindesk.com"),
        SourceConfig(source_id=SourceId.COINTELEGRAPH, base_url="https://cointelegraph.com"),
        SourceConfig(source_id=SourceId.THEBLOCK, base_url="https://www.theblock.co"),
        SourceConfig(
            source_id=SourceId.BITCOIN_MAGAZINE, base_url="https://bitcoinmagazine.com"
        ),
    ]


class TransformConfig(BaseModel):
    """Settings for the summarisation call."""

    endpoint: str = "https://openrouter.ai/api/v1/chat/completions"
    model: str = "deepseek/deepseek-chat-v3.1:free"
    temperature: float = 0.7
    max_tokens: int = 4000
    timeout: float = 120.0
    context_chars: int = 1500
    story_count: int = 10
    language: str = "Persian"
    referer: str = "https://github.com/headline-harvester"
    title: str = "Headline Harvester"


class DeliveryConfig(BaseModel):
    """Settings for the message sink."""

    api_base: str = "https://api.telegram.org"
    timeout: float = 30.0
    message_delay: float = 1.0
    message_limit: int = 4090
    link_label: str = "Source"


class HarvesterConfig(BaseModel):
    """Top level controls shared by all components."""

    sources: list[SourceConfig] = Field(default_factory=default_sources)
    request_timeout: float = 30.0
    request_delay: float = 1.0
    user_agent: str = DEFAULT_USER_AGENT
    max_headlines: int = 15
    excerpt_chars: int = 10000
    database_path: Path = Field(default=Path("data/news.db"))
    output_dir: Path = Field(default=Path("data/output"))
    retention_days: int = 30
    strict_provenance: bool = False
    debug_dump: bool = False
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    transform: TransformConfig = Field(default_factory=TransformConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)

    @field_validator("database_path", "output_dir", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_limits(self) -> "HarvesterConfig":
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.request_delay < 0:
            raise ValueError("request_delay must be >= 0")
        if self.max_headlines < 1:
            raise ValueError("max_headlines must be >= 1")
        if self.retention_days < 1:
            raise ValueError("retention_days must be >= 1")
        ids = [source.source_id for source in self.sources]
        if len(ids) != len(set(ids)):
            raise ValueError("source ids must be unique")
        return self

    def resolve(self, base_dir: Path, path: Path) -> Path:
        """Return ``path`` anchored at ``base_dir`` when relative."""

        if not path.is_absolute():
            return (base_dir / path).resolve()
        return path


class Credentials(BaseModel):
    """Secrets for the external collaborators, read from the environment."""

    openrouter_api_key: str | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None

    @classmethod
    def from_env(cls) -> "Credentials":
        return cls(
            openrouter_api_key=os.environ.get("OPENROUTER_API_KEY") or None,
            telegram_bot_token=os.environ.get("TELEGRAM_BOT_TOKEN") or None,
            telegram_chat_id=os.environ.get("TELEGRAM_CHAT_ID") or None,
        )

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def require_transform(self) -> str:
        if not self.openrouter_api_key:
            raise ConfigurationError(
                "Missing required environment variable",
                {"missing": ["OPENROUTER_API_KEY"]},
            )
        return self.openrouter_api_key


__all__ = [
    "Credentials",
    "DEFAULT_USER_AGENT",
    "DeliveryConfig",
    "HarvesterConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SourceConfig",
    "SourceId",
    "TransformConfig",
    "default_sources",
]
