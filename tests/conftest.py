"""Shared fixtures for the harvester test-suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from headline_harvester.config import (
    ConfigLocator,
    ConfigRepository,
    HarvesterConfig,
    SourceConfig,
    SourceId,
)
from headline_harvester.engine.dedup import DeduplicationStore
from headline_harvester.engine.fetcher import FetchResponse
from headline_harvester.exceptions import TransportError
from headline_harvester.infra import SQLiteManager


@pytest.fixture(autouse=True)
def harvester_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("HEADLINE_HARVESTER_HOME", str(tmp_path))
    for name in ("OPENROUTER_API_KEY", "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def sample_config(tmp_path: Path) -> Callable[..., HarvesterConfig]:
    def _builder(**overrides: Any) -> HarvesterConfig:
        base: dict[str, Any] = {
            "database_path": tmp_path / "news.db",
            "output_dir": tmp_path / "output",
            "request_delay": 0,
        }
        base.update(overrides)
        return HarvesterConfig(**base)

    return _builder


@pytest.fixture
def sqlite_manager() -> Iterable[SQLiteManager]:
    manager = SQLiteManager()
    yield manager
    manager.close_all()


@pytest.fixture
def store(tmp_path: Path, sqlite_manager: SQLiteManager) -> DeduplicationStore:
    return DeduplicationStore(sqlite_manager, tmp_path / "history" / "news.db")


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator(project_root=tmp_path))


@pytest.fixture
def sources() -> list[SourceConfig]:
    return [
        SourceConfig(source_id=SourceId.COINDESK, base_url="https://www.coindesk.com"),
        SourceConfig(source_id=SourceId.COINTELEGRAPH, base_url="https://cointelegraph.com"),
        SourceConfig(source_id=SourceId.THEBLOCK, base_url="https://www.theblock.co"),
        SourceConfig(source_id=SourceId.BITCOIN_MAGAZINE, base_url="https://bitcoinmagazine.com"),
    ]


def article_page(*items: tuple[str, str]) -> str:
    """Minimal front page with one ``<article><h2><a>`` block per (href, title)."""

    blocks = "\n".join(
        f'<article><h2><a href="{href}">{title}</a></h2></article>' for href, title in items
    )
    return f"<html><head><title>Front page</title></head><body>{blocks}</body></html>"


class FakeFetcher:
    """Serve canned pages per URL; values may be HTML, a status code or an exception."""

    def __init__(self, pages: dict[str, Any]) -> None:
        self.pages = pages
        self.requested: list[str] = []
        self.closed = False

    def fetch(self, url: str) -> FetchResponse:
        self.requested.append(url)
        page = self.pages.get(url, 404)
        if isinstance(page, Exception):
            raise page
        if isinstance(page, int):
            return FetchResponse(url=url, status_code=page, text="", headers={})
        return FetchResponse(url=url, status_code=200, text=page, headers={})

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_fetcher() -> Callable[[dict[str, Any]], FakeFetcher]:
    return FakeFetcher


@pytest.fixture
def transport_error() -> Callable[[str], TransportError]:
    return lambda message: TransportError(message, {"reason": "test"})


@pytest.fixture
def page_builder() -> Callable[..., str]:
    return article_page
