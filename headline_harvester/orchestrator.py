"""Run orchestration: fetch every source, summarise, deliver and record."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence
from urllib.parse import urlparse

import structlog

from .config import HarvesterConfig, SourceConfig
from .engine.dedup import DeduplicationStore, NewsRecord, fingerprint
from .engine.delivery import DeliverySink
from .engine.extractor import SourceExtractionEngine, parse_document, strip_noise, text_excerpt
from .engine.fetcher import Fetcher
from .engine.results import FetchFailure, FetchSuccess, SourceFetchResult, candidate_urls
from .engine.transform import ArticleTransform, CuratedMessage
from .exceptions import (
    DuplicateRecordError,
    ParseError,
    StorageError,
    StoreError,
    TransportError,
)
from .logging_conf import run_context, source_logger


class FetchOrchestrator:
    """Fetch configured sources one after another and extract their headlines."""

    def __init__(
        self,
        sources: Sequence[SourceConfig],
        fetcher: Fetcher,
        engine: SourceExtractionEngine,
        delay: float = 1.0,
        excerpt_chars: int = 10000,
        sleep: Callable[[float], None] = time.sleep,
        logger_factory: Callable[[str], structlog.BoundLogger] = source_logger,
    ) -> None:
        self.sources = list(sources)
        self.fetcher = fetcher
        self.engine = engine
        self.delay = delay
        self.excerpt_chars = excerpt_chars
        self._sleep = sleep
        self._logger_factory = logger_factory

    @classmethod
    def from_config(
        cls, config: HarvesterConfig, fetcher: Fetcher | None = None, **kwargs: Any
    ) -> "FetchOrchestrator":
        return cls(
            config.sources,
            fetcher or Fetcher(config),
            SourceExtractionEngine(cap=config.max_headlines),
            delay=config.request_delay,
            excerpt_chars=config.excerpt_chars,
            **kwargs,
        )

    def fetch_all(
        self, sources: Sequence[SourceConfig] | None = None
    ) -> dict[str, SourceFetchResult]:
        results: dict[str, SourceFetchResult] = {}
        targets = list(sources) if sources is not None else self.sources
        for index, source in enumerate(targets):
            if index and self.delay:
                self._sleep(self.delay)
            results[source.source_id.value] = self.fetch_source(source)
        return results

    def fetch_source(self, source: SourceConfig) -> SourceFetchResult:
        log = self._logger_factory(source.source_id.value)
        log.info("fetch_started", url=source.base_url)
        try:
            response = self.fetcher.fetch(source.base_url)
        except TransportError as exc:
            log.error("fetch_failed", url=source.base_url, error=str(exc))
            return self._result(source, FetchFailure(message=exc.message))
        if not response.ok:
            log.error("fetch_failed", url=source.base_url, status=response.status_code)
            return self._result(source, FetchFailure(message=f"HTTP {response.status_code}"))
        try:
            document = strip_noise(parse_document(response.text))
        except ParseError as exc:
            log.warning("document_unparseable", url=source.base_url, error=str(exc))
            return self._result(source, FetchSuccess())
        headlines = self.engine.extract_headlines(document, source.base_url)
        excerpt = text_excerpt(document, self.excerpt_chars)
        log.info("headlines_extracted", url=source.base_url, count=len(headlines))
        return self._result(source, FetchSuccess(headlines=headlines, text_excerpt=excerpt))

    @staticmethod
    def _result(source: SourceConfig, outcome: FetchSuccess | FetchFailure) -> SourceFetchResult:
        return SourceFetchResult(
            source_id=source.source_id.value, base_url=source.base_url, outcome=outcome
        )

    def close(self) -> None:
        self.fetcher.close()


@dataclass(slots=True)
class RunSummary:
    sources_ok: int = 0
    sources_failed: int = 0
    headlines: int = 0
    messages: int = 0
    new: int = 0
    duplicates: int = 0
    unverified: int = 0
    delivered: int = 0
    delivery_failed: int = 0
    recorded: int = 0
    store_errors: int = 0
    transform_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def source_for_url(url: str | None, sources: Iterable[SourceConfig]) -> str | None:
    """Return the id of the configured source whose host serves ``url``."""

    if not url:
        return None
    host = (urlparse(url).hostname or "").lower().removeprefix("www.")
    for source in sources:
        source_host = source.host.lower().removeprefix("www.")
        if source_host and (host == source_host or host.endswith("." + source_host)):
            return source.source_id.value
    return None


def _json_default(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


class HarvestPipeline:
    """One complete run: fetch, transform, provenance check, dedup, deliver, record."""

    def __init__(
        self,
        config: HarvesterConfig,
        fetch_orchestrator: FetchOrchestrator,
        transform: ArticleTransform,
        sink: DeliverySink,
        store: DeduplicationStore,
        output_dir: Path | None = None,
        logger: structlog.BoundLogger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._sleep = sleep
        self.fetch_orchestrator = fetch_orchestrator
        self.transform = transform
        self.sink = sink
        self.store = store
        self.output_dir = output_dir
        self.logger = logger or structlog.get_logger("headline_harvester").bind(
            component="pipeline"
        )

    def run(self, record: bool = True, debug_dump: bool | None = None) -> RunSummary:
        with run_context():
            self.logger.info("run_started", record=record)
            return self._run(record, debug_dump)

    def _run(self, record: bool, debug_dump: bool | None) -> RunSummary:
        dump = self.config.debug_dump if debug_dump is None else debug_dump
        summary = RunSummary()

        results = self.fetch_orchestrator.fetch_all()
        for result in results.values():
            if result.ok:
                summary.sources_ok += 1
                summary.headlines += len(result.headlines)
            else:
                summary.sources_failed += 1
        self.logger.info(
            "sources_fetched", ok=summary.sources_ok, failed=summary.sources_failed
        )
        if dump:
            self._dump("fetched_news.json", {key: value.to_dict() for key, value in results.items()})

        transformed = self.transform.transform(results)
        if not transformed.success:
            summary.transform_error = transformed.error or "transform failed"
            self.logger.error("transform_failed", error=summary.transform_error)
            if dump:
                self._dump("ai_error.json", transformed.to_dict())
            return summary
        summary.messages = len(transformed.messages)
        if dump:
            self._dump("ai_analysis.json", transformed.to_dict())

        messages = self._check_provenance(transformed.messages, results, summary)
        try:
            filtered = self.store.filter_new(messages)
        except StoreError as exc:
            # without the history nothing can be delivered safely
            summary.store_errors += 1
            self.logger.error("history_unavailable", error=str(exc))
            return summary
        summary.duplicates += filtered.duplicate_count

        deliveries: list[dict[str, Any]] = []
        seen: set[str] = set()
        pending = list(filtered.new_items)
        for message in pending:
            key = fingerprint(message.source_url)
            if key in seen:
                summary.duplicates += 1
                continue
            seen.add(key)
            if summary.new and self.config.delivery.message_delay:
                self._sleep(self.config.delivery.message_delay)
            summary.new += 1
            outcome = self.sink.send(message)
            deliveries.append({"message": message.to_dict(), "result": outcome.to_dict()})
            if not outcome.success:
                summary.delivery_failed += 1
                continue
            summary.delivered += 1
            if record:
                self._record(message, summary)

        if dump:
            self._dump("delivery_results.json", deliveries)
        self.logger.info("run_completed", **summary.to_dict())
        return summary

    def _check_provenance(
        self,
        messages: list[CuratedMessage],
        results: Mapping[str, SourceFetchResult],
        summary: RunSummary,
    ) -> list[CuratedMessage]:
        """Count (and in strict mode drop) messages citing URLs nobody fetched."""

        known = {fingerprint(url) for url in candidate_urls(results)}
        verified: list[CuratedMessage] = []
        for message in messages:
            if message.source_url and fingerprint(message.source_url) in known:
                verified.append(message)
                continue
            summary.unverified += 1
            self.logger.warning("unverified_source_url", url=message.source_url)
            if not self.config.strict_provenance:
                verified.append(message)
        return verified

    def _record(self, message: CuratedMessage, summary: RunSummary) -> None:
        record = NewsRecord(
            title=message.title,
            url=message.source_url or "",
            description=message.body,
            source=source_for_url(message.source_url, self.config.sources),
        )
        try:
            self.store.add(record)
        except DuplicateRecordError:
            summary.duplicates += 1
        except StorageError as exc:
            summary.store_errors += 1
            self.logger.error("news_record_failed", url=record.url, error=str(exc))
        else:
            summary.recorded += 1

    def _dump(self, filename: str, payload: Any) -> None:
        if self.output_dir is None:
            return
        path = self.output_dir / filename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default),
                encoding="utf-8",
            )
        except OSError as exc:
            self.logger.warning("debug_dump_failed", path=str(path), error=str(exc))
        else:
            self.logger.info("debug_dump_written", path=str(path))

    def close(self) -> None:
        self.fetch_orchestrator.close()
        self.transform.close()
        self.sink.close()


__all__ = [
    "FetchOrchestrator",
    "HarvestPipeline",
    "RunSummary",
    "source_for_url",
]
